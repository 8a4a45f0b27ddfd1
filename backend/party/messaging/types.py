from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, TypeAdapter

from party.logic.text import (
    DEFAULT_DISPLAY_NAME,
    DEFAULT_ROOM_NAME,
    MAX_CHAT_LENGTH,
    clean_display_name,
    clean_password,
    clean_room_name,
    clean_text,
    normalize_prompts,
)
from party.messaging.views import ChatEntry, LobbyRoomSummary, RoomView, WireModel


class ClientMessageType(StrEnum):
    REGISTER = "player:register"
    CREATE_ROOM = "lobby:createRoom"
    REQUEST_ROOMS = "lobby:requestRooms"
    LOBBY_CHAT = "lobby:chat"
    JOIN_ROOM = "room:join"
    LEAVE_ROOM = "room:leave"
    ROOM_CHAT = "room:chat"
    START_GAME = "room:start"
    UPDATE_SETTINGS = "room:updateSettings"
    PLAY_CARD = "game:playCard"
    VOTE = "game:vote"
    PING = "ping"


class SessionMessageType(StrEnum):
    PLAYER_ACK = "player:ack"
    LOBBY_STATE = "lobby:state"
    LOBBY_CHAT = "lobby:chat"
    LOBBY_HISTORY = "lobby:history"
    ROOM_JOINED = "room:joined"
    ROOM_LEFT = "room:left"
    ROOM_ERROR = "room:error"
    ROOM_STATE = "room:state"
    ROOM_CHAT = "room:chat"
    PONG = "pong"
    ERROR = "session_error"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"


def _coerce_prompt_total(value: object) -> int | None:
    """Anything that is not a usable integer means "use the default"."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None


DisplayName = Annotated[str, BeforeValidator(clean_display_name)]
RoomName = Annotated[str, BeforeValidator(clean_room_name)]
Password = Annotated[str, BeforeValidator(clean_password)]
ChatBody = Annotated[str, BeforeValidator(lambda v: clean_text(v, MAX_CHAT_LENGTH))]
PromptList = Annotated[list[str], BeforeValidator(normalize_prompts)]
PromptTotal = Annotated[int | None, BeforeValidator(_coerce_prompt_total)]

_ID_FIELD = Field(min_length=1, max_length=128)


# --- Client -> server ---


class RegisterMessage(WireModel):
    type: Literal[ClientMessageType.REGISTER] = ClientMessageType.REGISTER
    name: DisplayName = DEFAULT_DISPLAY_NAME


class CreateRoomMessage(WireModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    name: RoomName = DEFAULT_ROOM_NAME
    password: Password = ""
    prompt_total: PromptTotal = None
    prompts: PromptList = Field(default_factory=list)


class RequestRoomsMessage(WireModel):
    type: Literal[ClientMessageType.REQUEST_ROOMS] = ClientMessageType.REQUEST_ROOMS


class LobbyChatMessage(WireModel):
    type: Literal[ClientMessageType.LOBBY_CHAT] = ClientMessageType.LOBBY_CHAT
    message: ChatBody = ""


class JoinRoomMessage(WireModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = _ID_FIELD
    password: Password = ""


class LeaveRoomMessage(WireModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class RoomChatMessage(WireModel):
    type: Literal[ClientMessageType.ROOM_CHAT] = ClientMessageType.ROOM_CHAT
    message: ChatBody = ""


class StartGameMessage(WireModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class UpdateSettingsMessage(WireModel):
    type: Literal[ClientMessageType.UPDATE_SETTINGS] = ClientMessageType.UPDATE_SETTINGS
    prompt_total: PromptTotal = None
    prompts: PromptList = Field(default_factory=list)


class PlayCardMessage(WireModel):
    type: Literal[ClientMessageType.PLAY_CARD] = ClientMessageType.PLAY_CARD
    card_id: str = _ID_FIELD


class VoteMessage(WireModel):
    type: Literal[ClientMessageType.VOTE] = ClientMessageType.VOTE
    target_player_id: str = _ID_FIELD


class PingMessage(WireModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    RegisterMessage
    | CreateRoomMessage
    | RequestRoomsMessage
    | LobbyChatMessage
    | JoinRoomMessage
    | LeaveRoomMessage
    | RoomChatMessage
    | StartGameMessage
    | UpdateSettingsMessage
    | PlayCardMessage
    | VoteMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw decoded frame into a typed client message."""
    return _client_adapter.validate_python(data)


# --- Server -> client ---


class PlayerAckMessage(WireModel):
    type: Literal[SessionMessageType.PLAYER_ACK] = SessionMessageType.PLAYER_ACK
    id: str
    name: str


class LobbyStateMessage(WireModel):
    type: Literal[SessionMessageType.LOBBY_STATE] = SessionMessageType.LOBBY_STATE
    rooms: list[LobbyRoomSummary]


class LobbyChatPostedMessage(ChatEntry):
    type: Literal[SessionMessageType.LOBBY_CHAT] = SessionMessageType.LOBBY_CHAT


class LobbyHistoryMessage(WireModel):
    type: Literal[SessionMessageType.LOBBY_HISTORY] = SessionMessageType.LOBBY_HISTORY
    messages: list[ChatEntry]


class RoomJoinedMessage(WireModel):
    type: Literal[SessionMessageType.ROOM_JOINED] = SessionMessageType.ROOM_JOINED
    room_id: str


class RoomLeftMessage(WireModel):
    type: Literal[SessionMessageType.ROOM_LEFT] = SessionMessageType.ROOM_LEFT
    room_id: str


class RoomErrorMessage(WireModel):
    """A user-facing failure (room not found, wrong password, too few players)."""

    type: Literal[SessionMessageType.ROOM_ERROR] = SessionMessageType.ROOM_ERROR
    code: str
    message: str


class RoomStateMessage(WireModel):
    type: Literal[SessionMessageType.ROOM_STATE] = SessionMessageType.ROOM_STATE
    room: RoomView


class RoomChatPostedMessage(ChatEntry):
    type: Literal[SessionMessageType.ROOM_CHAT] = SessionMessageType.ROOM_CHAT


class PongMessage(WireModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


class ErrorMessage(WireModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode
    message: str
