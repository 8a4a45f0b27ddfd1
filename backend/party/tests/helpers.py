"""Builders shared by the party test suites."""

from __future__ import annotations

from typing import TYPE_CHECKING

from party.logic.content import StaticContentSource
from party.logic.models import CardTemplate, ChatLog, Room
from party.logic.round import add_player
from party.logic.settings import GameSettings
from party.messaging.encoder import decode, encode
from party.tests.mocks import MockConnection

if TYPE_CHECKING:
    from party.session.manager import SessionManager

TEST_PROMPTS = (
    "When the build passes on the first try",
    "Monday morning stand-up",
    "Reading your own code from last year",
    "Production is down and it's Friday",
)


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_catalog(size: int = 5) -> list[CardTemplate]:
    return [CardTemplate(id=f"meme{i}", label=f"Meme {i}", image_ref=f"/memes/{i}.png") for i in range(size)]


def make_content(catalog_size: int = 5, prompts: tuple[str, ...] = TEST_PROMPTS) -> StaticContentSource:
    return StaticContentSource(make_catalog(catalog_size), prompts)


def make_room(
    player_ids: tuple[str, ...] = ("alice", "bob"),
    *,
    prompts: list[str] | None = None,
    password: str = "",
    settings: GameSettings | None = None,
) -> Room:
    """A waiting room with the given players seated in order; the first is host."""
    settings = settings or GameSettings()
    room = Room(
        id="room-test0001",
        name="Test room",
        prompts=list(prompts) if prompts is not None else list(TEST_PROMPTS[:2]),
        password=password,
        chat_log=ChatLog(limit=settings.chat_log_limit),
    )
    for player_id in player_ids:
        add_player(room, player_id, player_id.capitalize(), settings)
    return room


async def connect_players(manager: SessionManager, *names: str) -> list[MockConnection]:
    """Register one mock connection per name and clear the registration chatter."""
    connections = []
    for name in names:
        connection = MockConnection(connection_id=f"conn-{name.lower()}")
        manager.register_connection(connection)
        await manager.register_player(connection, name)
        connections.append(connection)
    for connection in connections:
        connection.clear()
    return connections


async def seat_players(manager: SessionManager, *names: str, password: str = "") -> tuple[str, list[MockConnection]]:
    """Register players, have the first create a room and the rest join it. Returns (room_id, connections)."""
    connections = await connect_players(manager, *names)
    room = await manager.create_room(connections[0], name="Party", password=password)
    assert room is not None
    for connection in connections[1:]:
        assert await manager.join_room(connection, room.id, password)
    for connection in connections:
        connection.clear()
    return room.id, connections


def send_ws(ws, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def recv_until(ws, message_type: str, limit: int = 20) -> dict:
    """Read messages until one of ``message_type`` arrives."""
    for _ in range(limit):
        message = recv_ws(ws)
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type!r} message within {limit} frames")
