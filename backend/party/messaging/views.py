"""
Projections of room state onto the wire.

A room is never sent as-is: every recipient gets their own view with only
their own hand, and vote tallies are reduced to counts. Deadlines are epoch
milliseconds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from party.logic.enums import RoomStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from party.logic.models import Card, ChatMessage, Room


class WireModel(BaseModel):
    """Base for every payload on the wire: camelCase keys, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LobbyRoomSummary(WireModel):
    id: str
    name: str
    player_count: int
    status: RoomStatus
    requires_password: bool
    prompt_total: int


class CardView(WireModel):
    id: str
    label: str
    image_url: str | None = None


class ChatEntry(WireModel):
    id: str
    sender: str = Field(alias="from")
    body: str
    ts: int


class PlayerView(WireModel):
    id: str
    name: str
    score: int
    is_host: bool
    has_played: bool


class SubmissionView(WireModel):
    owner_id: str
    owner_name: str
    card: CardView
    vote_count: int
    is_mine: bool


class RoomView(WireModel):
    id: str
    name: str
    status: RoomStatus
    host_id: str | None
    current_prompt_index: int
    prompt_total: int
    prompts: list[str]
    current_prompt: str | None
    turn_ends_at: int | None
    vote_ends_at: int | None
    deck_remaining: int
    is_game: bool
    players: list[PlayerView]
    submissions: list[SubmissionView]
    hand: list[CardView]
    chat: list[ChatEntry]


def _to_ms(deadline: float | None) -> int | None:
    return None if deadline is None else int(deadline * 1000)


def card_view(card: Card) -> CardView:
    return CardView(id=card.instance_id, label=card.label, image_url=card.image_ref)


def chat_entry(message: ChatMessage) -> ChatEntry:
    return ChatEntry(id=message.id, sender=message.sender, body=message.body, ts=message.ts)


def lobby_summary(rooms: Iterable[Room]) -> list[LobbyRoomSummary]:
    """Public listing of rooms. Passwords are reduced to a flag."""
    return [
        LobbyRoomSummary(
            id=room.id,
            name=room.name,
            player_count=room.player_count,
            status=room.status,
            requires_password=room.requires_password,
            prompt_total=room.prompt_total,
        )
        for room in rooms
    ]


def room_view_for(room: Room, player_id: str) -> RoomView:
    """Build the room as seen by ``player_id``.

    Only the recipient's own hand is included. Submissions carry a vote
    count, never the voters.
    """
    viewer = room.players.get(player_id)
    submissions = []
    for submission in room.submissions:
        owner = room.players.get(submission.owner_id)
        submissions.append(
            SubmissionView(
                owner_id=submission.owner_id,
                owner_name=owner.display_name if owner is not None else "???",
                card=card_view(submission.card),
                vote_count=submission.vote_count,
                is_mine=submission.owner_id == player_id,
            )
        )

    return RoomView(
        id=room.id,
        name=room.name,
        status=room.status,
        host_id=room.host_id,
        current_prompt_index=room.current_prompt_index,
        prompt_total=room.prompt_total,
        prompts=list(room.prompts),
        current_prompt=room.current_prompt,
        turn_ends_at=_to_ms(room.turn_deadline),
        vote_ends_at=_to_ms(room.vote_deadline),
        deck_remaining=len(room.deck),
        is_game=room.status.is_active,
        players=[
            PlayerView(
                id=player.id,
                name=player.display_name,
                score=player.score,
                is_host=player.id == room.host_id,
                has_played=player.has_played,
            )
            for player in room.players.values()
        ],
        submissions=submissions,
        hand=[card_view(card) for card in viewer.hand] if viewer is not None else [],
        chat=[chat_entry(message) for message in room.chat_log.messages],
    )
