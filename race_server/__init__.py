"""Real-time race lobby server: rooms, ready/start handshake and race timing over WebSockets."""

__version__ = "0.1.0"
