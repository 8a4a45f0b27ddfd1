"""
Single entry point for room mutations.

``handle`` applies one command to a room and returns the events the session
layer should deliver. Rule violations never escape: they are either dropped
(logged at debug) or turned into an ActionRejectedEvent for the actor.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from party.logic import round as room_round
from party.logic.commands import (
    ChatCommand,
    ExpirePhaseCommand,
    JoinCommand,
    LeaveCommand,
    PlayCardCommand,
    RoomCommand,
    StartCommand,
    UpdateSettingsCommand,
    VoteCommand,
)
from party.logic.content import ContentSource
from party.logic.events import (
    ActionRejectedEvent,
    ChatPostedEvent,
    PhaseChangedEvent,
    PlayerTarget,
    RoomUpdatedEvent,
    ServiceEvent,
)
from party.logic.exceptions import InvalidActionError
from party.logic.models import Room
from party.logic.settings import GameSettings

logger = structlog.get_logger()


@dataclass(frozen=True)
class RuleContext:
    """Everything the engine needs besides the room itself."""

    settings: GameSettings
    content: ContentSource
    rng: random.Random | None = None
    clock: Callable[[], float] = field(default=time.time)


def _lobby_snapshot(room: Room) -> tuple[object, ...]:
    return (room.status, room.player_count, room.prompt_total, room.name)


def _actor_of(command: RoomCommand) -> str | None:
    return getattr(command, "player_id", None)


def _apply(room: Room, command: RoomCommand, ctx: RuleContext, now: float) -> list[ServiceEvent]:
    settings = ctx.settings
    if isinstance(command, JoinCommand):
        room_round.add_player(room, command.player_id, command.display_name, settings)
    elif isinstance(command, LeaveCommand):
        if not room_round.remove_player(room, command.player_id, settings, now):
            raise InvalidActionError(action="leave", reason="not a member of the room")
    elif isinstance(command, StartCommand):
        room_round.start_game(room, command.player_id, ctx.content.cards(), settings, now, ctx.rng)
    elif isinstance(command, PlayCardCommand):
        room_round.play_card(room, command.player_id, command.card_id, settings, now)
    elif isinstance(command, VoteCommand):
        room_round.cast_vote(room, command.player_id, command.target_id, settings, now)
    elif isinstance(command, ChatCommand):
        message = room_round.post_chat(room, command.player_id, command.body, now)
        return [ServiceEvent(data=ChatPostedEvent(message=message))]
    elif isinstance(command, UpdateSettingsCommand):
        room_round.update_settings(
            room,
            command.player_id,
            command.prompt_total,
            command.prompts,
            ctx.content.prompts(),
            settings,
        )
    elif isinstance(command, ExpirePhaseCommand):
        room_round.expire_phase(room, command.phase_version, settings, now)
    return []


def handle(room: Room, command: RoomCommand, ctx: RuleContext) -> list[ServiceEvent]:
    """Apply ``command`` to ``room`` and describe what changed.

    Returns an empty list when nothing observable happened. Otherwise the
    list carries the command-specific events followed by a RoomUpdatedEvent
    and, when a phase boundary was crossed, a PhaseChangedEvent.
    """
    before = _lobby_snapshot(room)
    version_before = room.phase_version
    now = ctx.clock()

    try:
        events = _apply(room, command, ctx, now)
    except InvalidActionError as e:
        logger.debug("action ignored", room_id=room.id, action=e.action, reason=e.reason)
        actor = _actor_of(command)
        if e.surface and e.code is not None and actor is not None:
            return [
                ServiceEvent(
                    data=ActionRejectedEvent(code=e.code, message=e.reason),
                    target=PlayerTarget(player_id=actor),
                )
            ]
        return []

    events.append(ServiceEvent(data=RoomUpdatedEvent(lobby_changed=_lobby_snapshot(room) != before)))
    if room.phase_version != version_before:
        deadline = room.turn_deadline if room.turn_deadline is not None else room.vote_deadline
        events.append(
            ServiceEvent(
                data=PhaseChangedEvent(status=room.status, phase_version=room.phase_version, deadline=deadline),
            )
        )
    return events
