import pytest
from pydantic import ValidationError

from race_server.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RACE_ROOM_CODE_LENGTH", raising=False)
        assert Settings().room_code_length == 6

    @pytest.mark.parametrize("length", ["0", "1", "3"])
    def test_short_room_codes_are_rejected(self, monkeypatch, length):
        monkeypatch.setenv("RACE_ROOM_CODE_LENGTH", length)
        with pytest.raises(ValidationError):
            Settings()

    def test_code_length_from_environment(self, monkeypatch):
        monkeypatch.setenv("RACE_ROOM_CODE_LENGTH", "8")
        assert Settings().room_code_length == 8
