from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from party.logic.commands import (
    ChatCommand,
    ExpirePhaseCommand,
    JoinCommand,
    LeaveCommand,
    PlayCardCommand,
    StartCommand,
    UpdateSettingsCommand,
    VoteCommand,
)
from party.logic.engine import RuleContext, handle
from party.logic.events import (
    ActionRejectedEvent,
    BroadcastTarget,
    ChatPostedEvent,
    PhaseChangedEvent,
    PlayerTarget,
    RoomUpdatedEvent,
    ServiceEvent,
)
from party.logic.exceptions import BadPasswordError, PartyRuleError, RoomNotFoundError, ServerAtCapacityError
from party.logic.models import ChatLog, ChatMessage
from party.logic.settings import GameSettings
from party.logic.text import DEFAULT_DISPLAY_NAME
from party.messaging.types import (
    ErrorMessage,
    LobbyChatPostedMessage,
    LobbyHistoryMessage,
    LobbyStateMessage,
    PlayerAckMessage,
    PongMessage,
    RoomChatPostedMessage,
    RoomErrorMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    RoomStateMessage,
    SessionErrorCode,
)
from party.messaging.views import chat_entry, lobby_summary, room_view_for
from party.session.broadcast import broadcast_to_connections, send_safely
from party.session.registry import RoomRegistry
from party.session.session_store import SessionStore
from party.session.timer_manager import PhaseTimerManager

if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from party.logic.commands import RoomCommand
    from party.logic.content import ContentSource
    from party.logic.models import Room
    from party.messaging.protocol import ConnectionProtocol
    from party.session.models import Session

logger = structlog.get_logger()


class SessionManager:
    """Bind connections to rooms and turn engine events into wire messages.

    Every room mutation runs under that room's lock: the command is applied,
    per-player views are built from the resulting state, and room messages
    are sent before the lock is released. The lobby summary is broadcast to
    every connection afterwards.
    """

    def __init__(
        self,
        content: ContentSource,
        settings: GameSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
        enforce_phase_timers: bool = False,
        max_rooms: int | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        self._clock = clock
        self._ctx = RuleContext(settings=self._settings, content=content, rng=rng, clock=clock)
        self._sessions = SessionStore()
        self._registry = RoomRegistry(self._settings, content, max_rooms=max_rooms)
        self._lobby_chat = ChatLog(limit=self._settings.chat_log_limit)
        self._timer_manager = PhaseTimerManager(on_timeout=self._handle_timeout) if enforce_phase_timers else None

    # --- Connections ---

    def register_connection(self, connection: ConnectionProtocol) -> Session:
        return self._sessions.add(connection)

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._sessions.remove(connection.connection_id)

    def get_session(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def get_room(self, room_id: str) -> Room | None:
        return self._registry.get_room(room_id)

    def rooms(self) -> list[Room]:
        return self._registry.rooms()

    @property
    def connection_count(self) -> int:
        return len(self._sessions)

    @property
    def room_count(self) -> int:
        return self._registry.room_count

    @property
    def player_count(self) -> int:
        return self._registry.player_count

    @property
    def timer_manager(self) -> PhaseTimerManager | None:
        return self._timer_manager

    async def shutdown(self) -> None:
        if self._timer_manager is not None:
            self._timer_manager.cancel_all()

    # --- Lobby ---

    async def register_player(self, connection: ConnectionProtocol, name: str) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            return
        session.display_name = name
        structlog.contextvars.bind_contextvars(player_name=name)
        logger.info("player registered")
        await send_safely(connection, PlayerAckMessage(id=session.connection_id, name=name).to_wire())
        history = LobbyHistoryMessage(messages=[chat_entry(m) for m in self._lobby_chat.messages])
        await send_safely(connection, history.to_wire())
        await self.broadcast_lobby()

    async def request_rooms(self, connection: ConnectionProtocol) -> None:
        await send_safely(connection, self._lobby_message())

    async def lobby_chat(self, connection: ConnectionProtocol, body: str) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None or not body:
            return
        message = ChatMessage.create(sender=session.display_name or DEFAULT_DISPLAY_NAME, body=body, now=self._clock())
        self._lobby_chat.append(message)
        payload = LobbyChatPostedMessage(**chat_entry(message).model_dump()).to_wire()
        await broadcast_to_connections([s.connection for s in self._sessions.sessions()], payload)

    async def broadcast_lobby(self) -> None:
        await self._broadcast_to_all(self._lobby_message())

    def _lobby_message(self) -> dict[str, Any]:
        return LobbyStateMessage(rooms=lobby_summary(self._registry.rooms())).to_wire()

    async def _broadcast_to_all(self, message: dict[str, Any]) -> None:
        await broadcast_to_connections([s.connection for s in self._sessions.sessions()], message)

    # --- Room membership ---

    async def create_room(
        self,
        connection: ConnectionProtocol,
        *,
        name: str,
        password: str = "",
        prompt_total: int | None = None,
        custom_prompts: Sequence[str] = (),
    ) -> Room | None:
        """Create a room with this connection as host. Unregistered connections are ignored."""
        session = self._sessions.get(connection.connection_id)
        if session is None or not session.is_registered:
            logger.debug("create_room ignored: connection not registered")
            return None

        if session.room_id is not None:
            await self.leave_room(connection)

        try:
            room = await self._registry.create_room(
                name=name,
                password=password,
                prompt_total=prompt_total,
                custom_prompts=custom_prompts,
                host_id=session.connection_id,
                host_name=session.display_name or DEFAULT_DISPLAY_NAME,
            )
        except ServerAtCapacityError as e:
            await self._send_room_error(connection, e)
            return None

        session.room_id = room.id
        structlog.contextvars.bind_contextvars(room_id=room.id)
        await self._dispatch_events(room.id, [ServiceEvent(data=RoomUpdatedEvent(lobby_changed=True))])
        await send_safely(connection, RoomJoinedMessage(room_id=room.id).to_wire())
        return room

    async def join_room(self, connection: ConnectionProtocol, room_id: str, password: str = "") -> bool:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            return False

        try:
            self._registry.check_join(room_id, password)
        except (RoomNotFoundError, BadPasswordError) as e:
            await self._send_room_error(connection, e)
            return False

        if session.room_id is not None and session.room_id != room_id:
            await self.leave_room(connection)

        command = JoinCommand(
            player_id=session.connection_id,
            display_name=session.display_name or DEFAULT_DISPLAY_NAME,
        )
        session.room_id = room_id
        if not await self._dispatch(room_id, command):
            # room emptied and vanished between the check and the lock
            session.room_id = None
            await self._send_room_error(connection, RoomNotFoundError(room_id))
            return False

        structlog.contextvars.bind_contextvars(room_id=room_id)
        logger.info("player joined room")
        await send_safely(connection, RoomJoinedMessage(room_id=room_id).to_wire())
        return True

    async def leave_room(self, connection: ConnectionProtocol, *, notify_player: bool = True) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None or session.room_id is None:
            return

        room_id = session.room_id
        session.room_id = None
        await self._dispatch(room_id, LeaveCommand(player_id=session.connection_id))
        logger.info("player left room", room_id=room_id)
        structlog.contextvars.unbind_contextvars("room_id")
        if notify_player:
            await send_safely(connection, RoomLeftMessage(room_id=room_id).to_wire())

    # --- Room actions ---

    async def room_chat(self, connection: ConnectionProtocol, body: str) -> None:
        if body:
            await self._dispatch_for(connection, lambda pid: ChatCommand(player_id=pid, body=body))

    async def start_game(self, connection: ConnectionProtocol) -> None:
        await self._dispatch_for(connection, lambda pid: StartCommand(player_id=pid))

    async def update_settings(
        self,
        connection: ConnectionProtocol,
        *,
        prompt_total: int | None = None,
        custom_prompts: Sequence[str] = (),
    ) -> None:
        await self._dispatch_for(
            connection,
            lambda pid: UpdateSettingsCommand(player_id=pid, prompt_total=prompt_total, prompts=tuple(custom_prompts)),
        )

    async def play_card(self, connection: ConnectionProtocol, card_id: str) -> None:
        await self._dispatch_for(connection, lambda pid: PlayCardCommand(player_id=pid, card_id=card_id))

    async def cast_vote(self, connection: ConnectionProtocol, target_player_id: str) -> None:
        await self._dispatch_for(connection, lambda pid: VoteCommand(player_id=pid, target_id=target_player_id))

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await send_safely(connection, PongMessage().to_wire())

    async def send_session_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("session error sent to client", error_code=code.value, error_message=message)
        await send_safely(connection, ErrorMessage(code=code, message=message).to_wire())

    async def _send_room_error(self, connection: ConnectionProtocol, error: PartyRuleError) -> None:
        logger.info("room error sent to client", error_code=error.code, error_message=str(error))
        code = error.code.value if error.code is not None else SessionErrorCode.ACTION_FAILED.value
        await send_safely(connection, RoomErrorMessage(code=code, message=str(error)).to_wire())

    async def _dispatch_for(
        self,
        connection: ConnectionProtocol,
        build: Callable[[str], RoomCommand],
    ) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None or session.room_id is None:
            logger.debug("room action ignored: not in a room")
            return
        await self._dispatch(session.room_id, build(session.connection_id))

    # --- Dispatch and delivery ---

    async def _dispatch(self, room_id: str, command: RoomCommand) -> bool:
        """Apply a command under the room lock and deliver its events.

        Returns False when the room no longer exists.
        """
        return await self._run_locked(room_id, lambda room: handle(room, command, self._ctx))

    async def _dispatch_events(self, room_id: str, events: list[ServiceEvent]) -> bool:
        """Deliver pre-built events (e.g. the initial state of a new room) under the room lock."""
        return await self._run_locked(room_id, lambda _room: events)

    async def _run_locked(self, room_id: str, produce: Callable[[Room], list[ServiceEvent]]) -> bool:
        lock = self._registry.get_lock(room_id)
        room = self._registry.get_room(room_id)
        if lock is None or room is None:
            return False

        lobby_changed = False
        async with lock:
            # the room may have been removed while we waited for the lock
            if self._registry.get_room(room_id) is not room:
                return False
            events = produce(room)
            if not events:
                return True
            lobby_changed = any(isinstance(e.data, RoomUpdatedEvent) and e.data.lobby_changed for e in events)
            if room.is_empty:
                await self._registry.remove_room(room_id)
                if self._timer_manager is not None:
                    self._timer_manager.cleanup_room(room_id)
            else:
                await self._deliver_events(room, events)
                self._maybe_schedule_timer(room, events)
            lobby = self._lobby_message() if lobby_changed else None

        if lobby is not None:
            await self._broadcast_to_all(lobby)
        return True

    async def _deliver_events(self, room: Room, events: list[ServiceEvent]) -> None:
        """Send every event to its recipients. Each player gets a view built for them."""
        for event in events:
            recipients = self._recipients(room, event)
            if isinstance(event.data, RoomUpdatedEvent):
                for player_id, connection in recipients:
                    message = RoomStateMessage(room=room_view_for(room, player_id)).to_wire()
                    await send_safely(connection, message)
            elif isinstance(event.data, ChatPostedEvent):
                message = RoomChatPostedMessage(**chat_entry(event.data.message).model_dump()).to_wire()
                await broadcast_to_connections([connection for _, connection in recipients], message)
            elif isinstance(event.data, ActionRejectedEvent):
                message = RoomErrorMessage(code=event.data.code.value, message=event.data.message).to_wire()
                await broadcast_to_connections([connection for _, connection in recipients], message)

    def _recipients(self, room: Room, event: ServiceEvent) -> list[tuple[str, ConnectionProtocol]]:
        if isinstance(event.target, BroadcastTarget):
            player_ids = list(room.players)
        elif isinstance(event.target, PlayerTarget):
            player_ids = [event.target.player_id]
        else:
            player_ids = []
        recipients = []
        for player_id in player_ids:
            session = self._sessions.get(player_id)
            if session is not None and session.room_id == room.id:
                recipients.append((player_id, session.connection))
        return recipients

    def _maybe_schedule_timer(self, room: Room, events: list[ServiceEvent]) -> None:
        """Re-arm the room's timer after a phase change."""
        if self._timer_manager is None:
            return
        for event in events:
            if isinstance(event.data, PhaseChangedEvent):
                deadline = event.data.deadline
                delay = None if deadline is None else deadline - self._clock()
                self._timer_manager.schedule(room.id, event.data.phase_version, delay)

    async def _handle_timeout(self, room_id: str, phase_version: int) -> None:
        structlog.contextvars.bind_contextvars(room_id=room_id)
        logger.info("phase deadline reached", phase_version=phase_version)
        await self._dispatch(room_id, ExpirePhaseCommand(phase_version=phase_version))
