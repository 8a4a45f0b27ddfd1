"""Process-wide room registry: ids, per-room locks, creation and join gating."""

from __future__ import annotations

import asyncio
import hmac
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from party.logic.exceptions import BadPasswordError, RoomNotFoundError, ServerAtCapacityError
from party.logic.models import ChatLog, Room
from party.logic.round import add_player, select_prompts

if TYPE_CHECKING:
    from collections.abc import Sequence

    from party.logic.content import ContentSource
    from party.logic.settings import GameSettings

logger = structlog.get_logger()


def _new_room_id() -> str:
    return f"room-{uuid4().hex[:8]}"


class RoomRegistry:
    """Owns every live Room and the lock that serializes its mutations.

    Insert and remove go through an internal registry lock. Callers must
    hold the room's own lock (``get_lock``) for anything that touches room
    state after creation.
    """

    def __init__(
        self,
        settings: GameSettings,
        content: ContentSource,
        *,
        max_rooms: int | None = None,
    ) -> None:
        self._settings = settings
        self._content = content
        self._max_rooms = max_rooms
        self._rooms: dict[str, Room] = {}  # room_id -> Room
        self._locks: dict[str, asyncio.Lock] = {}  # room_id -> Lock
        self._registry_lock = asyncio.Lock()

    async def create_room(
        self,
        *,
        name: str,
        password: str,
        prompt_total: int | None,
        custom_prompts: Sequence[str],
        host_id: str,
        host_name: str,
    ) -> Room:
        """Create a room with its creator seated as host and register it.

        The room is only visible once the host is in it, so no one can
        slip in and take host first.
        """
        async with self._registry_lock:
            if self._max_rooms is not None and len(self._rooms) >= self._max_rooms:
                raise ServerAtCapacityError(self._max_rooms)
            room_id = _new_room_id()
            while room_id in self._rooms:
                room_id = _new_room_id()

            room = Room(
                id=room_id,
                name=name,
                password=password,
                prompts=select_prompts(prompt_total, custom_prompts, self._content.prompts(), self._settings),
                chat_log=ChatLog(limit=self._settings.chat_log_limit),
            )
            add_player(room, host_id, host_name, self._settings)
            self._rooms[room_id] = room
            self._locks[room_id] = asyncio.Lock()

        logger.info("room created", room_id=room_id, prompt_total=room.prompt_total, private=room.requires_password)
        return room

    async def remove_room(self, room_id: str) -> bool:
        """Drop an empty room. Non-empty rooms are left alone."""
        async with self._registry_lock:
            room = self._rooms.get(room_id)
            if room is None or not room.is_empty:
                return False
            del self._rooms[room_id]
            self._locks.pop(room_id, None)
        logger.info("room removed", room_id=room_id)
        return True

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_lock(self, room_id: str) -> asyncio.Lock | None:
        return self._locks.get(room_id)

    def check_join(self, room_id: str, password: str) -> Room:
        """Return the room if ``password`` opens it.

        Raises RoomNotFoundError or BadPasswordError.
        """
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        if room.requires_password and not hmac.compare_digest(
            room.password.encode("utf-8"),
            password.encode("utf-8"),
        ):
            raise BadPasswordError(room_id)
        return room

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def player_count(self) -> int:
        return sum(room.player_count for room in self._rooms.values())
