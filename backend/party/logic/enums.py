from enum import StrEnum


class RoomStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    VOTING = "voting"
    FINISHED = "finished"

    @property
    def is_active(self) -> bool:
        """True while a round is in progress (cards in hand, submissions open or being voted on)."""
        return self in (RoomStatus.PLAYING, RoomStatus.VOTING)


class ErrorCode(StrEnum):
    """Error codes that are reported back to the requesting connection."""

    ROOM_NOT_FOUND = "room_not_found"
    BAD_PASSWORD = "bad_password"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    SERVER_AT_CAPACITY = "server_at_capacity"
