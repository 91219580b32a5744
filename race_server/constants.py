import string

# Room codes are short and typed by hand, so upper-case letters and digits only.
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

# Inbound actions (client -> server)
CHAT_MESSAGE = "chat_message"
GET_ROOMS = "get_rooms"
CREATE_ROOM = "create_room"
JOIN_ROOM = "join_room"
PLAYER_MOVED = "player_moved"
PLAYER_READY = "player_ready"
START_RACE = "start_race"
PLAYER_CHECKPOINT = "player_checkpoint"
LEAVE_ROOM = "leave_room"
GET_RACE_TIME = "get_race_time"
PLAYER_FINISHED = "player_finished"

INBOUND_ACTIONS = frozenset(
    {
        CHAT_MESSAGE,
        GET_ROOMS,
        CREATE_ROOM,
        JOIN_ROOM,
        PLAYER_MOVED,
        PLAYER_READY,
        START_RACE,
        PLAYER_CHECKPOINT,
        LEAVE_ROOM,
        GET_RACE_TIME,
        PLAYER_FINISHED,
    }
)

# Outbound-only actions (server -> client)
CONNECTED = "connected"
ROOMS_LIST = "rooms_list"
ROOM_CREATED = "room_created"
ROOM_JOINED = "room_joined"
PLAYER_JOINED = "player_joined"
PLAYER_LEAVE = "player_leave"
PLAYER_LEFT = "player_left"
GAME_STARTING = "game_starting"
GAME_STARTED = "game_started"
RACE_TIME = "race_time"
RACE_ENDED = "race_ended"
ERROR = "error"

# Error strings sent back in ``error{error}``
ERR_INVALID_MESSAGE = "Invalid message"
ERR_UNKNOWN_ACTION = "Unknown action"
ERR_ROOM_NOT_FOUND = "Room not found"
ERR_INTERNAL = "Internal server error"

# Room phases
PHASE_OPEN = "open"
PHASE_STARTING = "starting"
PHASE_RACING = "racing"

__all__ = [
    "ROOM_CODE_ALPHABET",
    "INBOUND_ACTIONS",
    "CHAT_MESSAGE",
    "GET_ROOMS",
    "CREATE_ROOM",
    "JOIN_ROOM",
    "PLAYER_MOVED",
    "PLAYER_READY",
    "START_RACE",
    "PLAYER_CHECKPOINT",
    "LEAVE_ROOM",
    "GET_RACE_TIME",
    "PLAYER_FINISHED",
    "CONNECTED",
    "ROOMS_LIST",
    "ROOM_CREATED",
    "ROOM_JOINED",
    "PLAYER_JOINED",
    "PLAYER_LEAVE",
    "PLAYER_LEFT",
    "GAME_STARTING",
    "GAME_STARTED",
    "RACE_TIME",
    "RACE_ENDED",
    "ERROR",
    "ERR_INVALID_MESSAGE",
    "ERR_UNKNOWN_ACTION",
    "ERR_ROOM_NOT_FOUND",
    "ERR_INTERNAL",
    "PHASE_OPEN",
    "PHASE_STARTING",
    "PHASE_RACING",
]
