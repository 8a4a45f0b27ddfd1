from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from party.messaging.types import (
    CreateRoomMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    LobbyChatMessage,
    PingMessage,
    PlayCardMessage,
    RegisterMessage,
    RequestRoomsMessage,
    RoomChatMessage,
    SessionErrorCode,
    StartGameMessage,
    UpdateSettingsMessage,
    VoteMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from party.messaging.protocol import ConnectionProtocol
    from party.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes incoming messages to session manager operations.

    Holds no state of its own and can be tested without real WebSocket
    connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """A closed connection leaves its room exactly as an explicit leave would."""
        await self._session_manager.leave_room(connection, notify_player=False)
        self._session_manager.unregister_connection(connection)

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await self._session_manager.send_session_error(connection, SessionErrorCode.INVALID_MESSAGE, str(e))
            return

        manager = self._session_manager
        if isinstance(message, RegisterMessage):
            await manager.register_player(connection, message.name)
        elif isinstance(message, CreateRoomMessage):
            await manager.create_room(
                connection,
                name=message.name,
                password=message.password,
                prompt_total=message.prompt_total,
                custom_prompts=message.prompts,
            )
        elif isinstance(message, RequestRoomsMessage):
            await manager.request_rooms(connection)
        elif isinstance(message, LobbyChatMessage):
            await manager.lobby_chat(connection, message.message)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.room_id, message.password)
        elif isinstance(message, LeaveRoomMessage):
            await manager.leave_room(connection)
        elif isinstance(message, RoomChatMessage):
            await manager.room_chat(connection, message.message)
        elif isinstance(message, StartGameMessage):
            await manager.start_game(connection)
        elif isinstance(message, UpdateSettingsMessage):
            await manager.update_settings(
                connection,
                prompt_total=message.prompt_total,
                custom_prompts=message.prompts,
            )
        elif isinstance(message, PlayCardMessage):
            await manager.play_card(connection, message.card_id)
        elif isinstance(message, VoteMessage):
            await manager.cast_vote(connection, message.target_player_id)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)
