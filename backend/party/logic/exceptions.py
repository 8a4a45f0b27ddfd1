"""Typed domain exceptions for room rule violations.

Room-level rule violations use subclasses of PartyRuleError rather than
raw ValueError. The engine converts InvalidActionError into either a
silent no-op or an ActionRejectedEvent addressed to the acting player;
the session layer converts lookup failures into ``room:error`` messages.
"""

from __future__ import annotations

from party.logic.enums import ErrorCode


class PartyRuleError(Exception):
    """Base exception for party room rule violations."""

    code: ErrorCode | None = None


class RoomNotFoundError(PartyRuleError):
    """No room is registered under the requested id."""

    code = ErrorCode.ROOM_NOT_FOUND

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"room {room_id!r} not found")


class BadPasswordError(PartyRuleError):
    """The room has a password and the supplied one does not match."""

    code = ErrorCode.BAD_PASSWORD

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"wrong password for room {room_id!r}")


class InvalidActionError(PartyRuleError):
    """Raised when a player action is not valid in the current room state.

    Most of these come from stale client state (double submits, votes after
    the round moved on) and are ignored. When ``surface`` is set the failure
    is meaningful to the player and is reported back with ``code``.

    Attributes:
        action: The command that was attempted (e.g. "play_card", "vote").
        reason: Human-readable explanation of why the action was rejected.

    """

    def __init__(
        self,
        *,
        action: str,
        reason: str,
        code: ErrorCode | None = None,
        surface: bool = False,
    ) -> None:
        self.action = action
        self.reason = reason
        self.code = code
        self.surface = surface
        super().__init__(f"invalid {action}: {reason}")


class ServerAtCapacityError(PartyRuleError):
    """The registry already holds the configured maximum number of rooms."""

    code = ErrorCode.SERVER_AT_CAPACITY

    def __init__(self, max_rooms: int) -> None:
        self.max_rooms = max_rooms
        super().__init__(f"server is at capacity ({max_rooms} rooms)")
