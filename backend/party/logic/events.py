"""Room events produced by the engine and their routing targets.

The engine never talks to connections. It returns ServiceEvent containers
and the session layer decides who receives what.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from party.logic.enums import ErrorCode, RoomStatus
from party.logic.models import ChatMessage


@dataclass(frozen=True)
class BroadcastTarget:
    """Event should be sent to every player in the room."""


@dataclass(frozen=True)
class PlayerTarget:
    """Event should be sent to one player only."""

    player_id: str


EventTarget = BroadcastTarget | PlayerTarget


class EventType(StrEnum):
    ROOM_UPDATED = "room_updated"
    CHAT_POSTED = "chat_posted"
    PHASE_CHANGED = "phase_changed"
    ACTION_REJECTED = "action_rejected"


class RoomEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: EventType


class RoomUpdatedEvent(RoomEvent):
    """Room state changed; ``lobby_changed`` is set when the lobby summary is affected too."""

    type: Literal[EventType.ROOM_UPDATED] = EventType.ROOM_UPDATED
    lobby_changed: bool = False


class ChatPostedEvent(RoomEvent):
    type: Literal[EventType.CHAT_POSTED] = EventType.CHAT_POSTED
    message: ChatMessage


class PhaseChangedEvent(RoomEvent):
    """A phase transition happened; any timer scheduled for an older phase is stale."""

    type: Literal[EventType.PHASE_CHANGED] = EventType.PHASE_CHANGED
    status: RoomStatus
    phase_version: int
    deadline: float | None = None


class ActionRejectedEvent(RoomEvent):
    type: Literal[EventType.ACTION_REJECTED] = EventType.ACTION_REJECTED
    code: ErrorCode
    message: str


class ServiceEvent(BaseModel):
    """Event transport container with a typed routing target."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: RoomEvent
    target: EventTarget = BroadcastTarget()
