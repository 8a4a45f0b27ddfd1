"""Room state: cards, players, submissions, chat, and the room itself.

Cards and chat messages are frozen pydantic models; everything a round
mutates (players, submissions, the room) is a plain dataclass owned by
exactly one Room.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from party.logic.enums import RoomStatus


class CardTemplate(BaseModel):
    """Catalog entry supplied by a content source."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    image_ref: str | None = None


class Card(BaseModel):
    """A dealt card instance. ``instance_id`` is unique within one game's deck."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    label: str
    image_ref: str | None = None


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sender: str
    body: str
    ts: int  # epoch milliseconds

    @classmethod
    def create(cls, sender: str, body: str, now: float) -> ChatMessage:
        return cls(id=f"msg-{uuid4().hex[:8]}", sender=sender, body=body, ts=int(now * 1000))


class ChatLog:
    """Append-only chat history that evicts the oldest entries past ``limit``."""

    def __init__(self, limit: int = 50) -> None:
        self._messages: deque[ChatMessage] = deque(maxlen=limit)

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


@dataclass
class Player:
    """A participant in one room, keyed by the connection id that joined."""

    id: str
    display_name: str
    hand: list[Card] = field(default_factory=list)
    score: int = 0
    is_host: bool = False
    played_card_id: str | None = None

    @property
    def has_played(self) -> bool:
        return self.played_card_id is not None

    def reset_for_game(self) -> None:
        self.hand = []
        self.score = 0
        self.played_card_id = None


@dataclass
class Submission:
    owner_id: str
    card: Card
    voter_ids: set[str] = field(default_factory=set)

    @property
    def vote_count(self) -> int:
        return len(self.voter_ids)


@dataclass
class Room:
    """One isolated game session.

    ``players`` preserves join order; host migration picks the first
    remaining entry. ``phase_version`` increases on every phase transition
    so that scheduled timeouts can tell whether they are stale.
    """

    id: str
    name: str
    prompts: list[str]
    password: str = ""
    host_id: str | None = None
    status: RoomStatus = RoomStatus.WAITING
    players: dict[str, Player] = field(default_factory=dict)  # player_id -> Player
    deck: list[Card] = field(default_factory=list)
    submissions: list[Submission] = field(default_factory=list)
    vote_registry: dict[str, str] = field(default_factory=dict)  # voter_id -> submission owner_id
    current_prompt_index: int = -1
    turn_deadline: float | None = None
    vote_deadline: float | None = None
    chat_log: ChatLog = field(default_factory=ChatLog)
    phase_version: int = 0

    @property
    def prompt_total(self) -> int:
        return len(self.prompts)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return self.player_count == 0

    @property
    def requires_password(self) -> bool:
        return bool(self.password)

    @property
    def current_prompt(self) -> str | None:
        if 0 <= self.current_prompt_index < len(self.prompts):
            return self.prompts[self.current_prompt_index]
        return None

    def submission_of(self, owner_id: str) -> Submission | None:
        for submission in self.submissions:
            if submission.owner_id == owner_id:
                return submission
        return None
