"""Commands accepted by the room engine.

Every mutation of a Room is expressed as one of these frozen models and
dispatched through ``party.logic.engine.handle``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class CommandType(StrEnum):
    JOIN = "join"
    LEAVE = "leave"
    START = "start"
    PLAY_CARD = "play_card"
    VOTE = "vote"
    CHAT = "chat"
    UPDATE_SETTINGS = "update_settings"
    EXPIRE_PHASE = "expire_phase"


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class JoinCommand(_Command):
    type: Literal[CommandType.JOIN] = CommandType.JOIN
    player_id: str
    display_name: str


class LeaveCommand(_Command):
    type: Literal[CommandType.LEAVE] = CommandType.LEAVE
    player_id: str


class StartCommand(_Command):
    type: Literal[CommandType.START] = CommandType.START
    player_id: str


class PlayCardCommand(_Command):
    type: Literal[CommandType.PLAY_CARD] = CommandType.PLAY_CARD
    player_id: str
    card_id: str


class VoteCommand(_Command):
    type: Literal[CommandType.VOTE] = CommandType.VOTE
    player_id: str
    target_id: str


class ChatCommand(_Command):
    type: Literal[CommandType.CHAT] = CommandType.CHAT
    player_id: str
    body: str


class UpdateSettingsCommand(_Command):
    type: Literal[CommandType.UPDATE_SETTINGS] = CommandType.UPDATE_SETTINGS
    player_id: str
    prompt_total: int | None = None
    prompts: tuple[str, ...] = ()


class ExpirePhaseCommand(_Command):
    """Forced "time's up" for the phase identified by ``phase_version``."""

    type: Literal[CommandType.EXPIRE_PHASE] = CommandType.EXPIRE_PHASE
    phase_version: int


RoomCommand = Annotated[
    JoinCommand
    | LeaveCommand
    | StartCommand
    | PlayCardCommand
    | VoteCommand
    | ChatCommand
    | UpdateSettingsCommand
    | ExpirePhaseCommand,
    Field(discriminator="type"),
]
