"""Pydantic schemas for the realtime WebSocket protocol.

Every frame is a JSON object ``{"event": str, "data": any, "ack": str | int | null}``.

Client → Server intents are validated as one tagged union keyed on
``event``. Server → Client frames are either broadcast/personalized events
or the single ``ack`` reply each handled intent receives.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from chat_service.core.schemas import CamelModel
from chat_service.features.chats.schemas import ChatText
from chat_service.features.users.schemas import HEX_COLOR_PATTERN, UserCreate


class ClientEvent(str, Enum):
    """Intents sent from client to server."""

    CREATE_USER = "createUser"
    LOGIN = "login"
    CREATE_CHAT = "createChat"
    UPDATE_CHAT = "updateChat"
    REMOVE_CHAT = "removeChat"
    FIND_ALL_CHATS = "findAllChats"
    FIND_ONE_CHAT = "findOneChat"
    FIND_ALL_USERS = "findAllUsers"
    FIND_ONE_USER = "findOneUser"
    WHOAMI = "whoami"
    UPDATE_USER_COLOR = "updateUserColor"
    START_TYPING = "startTyping"
    STOP_TYPING = "stopTyping"


class ServerEvent(str, Enum):
    """Events sent from server to client."""

    CHATS = "chats"
    NEW_CHAT = "newChat"
    CHAT_UPDATED = "chatUpdated"
    CHAT_REMOVED = "chatRemoved"
    USER_CREATED = "userCreated"
    LOGIN_SUCCESS = "loginSuccess"
    LOGIN_ERROR = "loginError"
    NEW_USER = "newUser"
    USER_JOINED = "userJoined"
    USER_LEFT = "userLeft"
    USER_TYPING = "userTyping"
    USER_STOPPED_TYPING = "userStoppedTyping"
    USER_UPDATED = "userUpdated"
    UPDATE_ERROR = "updateError"
    ERROR = "error"
    ACK = "ack"


CLIENT_EVENTS = frozenset(e.value for e in ClientEvent)

AckId = str | int | None


# ──────────────────────────────────────────────────────────────
# Intent payloads
# ──────────────────────────────────────────────────────────────


class IdPayload(CamelModel):
    """``{id}``; a bare id string is accepted as well."""

    id: UUID

    @model_validator(mode="before")
    @classmethod
    def accept_bare_id(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"id": data}
        return data


class LoginPayload(CamelModel):
    """``{userId?, userData?}``.

    ``userId`` stays a plain string: an id that is not a UUID simply
    matches nobody.
    """

    user_id: str | None = None
    user_data: UserCreate | None = None


class UpdateChatPayload(ChatText):
    id: UUID


class UpdateUserColorPayload(CamelModel):
    user_id: UUID
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)


# ──────────────────────────────────────────────────────────────
# Client → Server intents
# ──────────────────────────────────────────────────────────────


class Intent(BaseModel):
    """Base for inbound intents; ``ack`` is echoed back in the reply."""

    ack: AckId = None


class CreateUserIntent(Intent):
    event: Literal["createUser"]
    data: UserCreate


class LoginIntent(Intent):
    event: Literal["login"]
    data: LoginPayload = Field(default_factory=LoginPayload)

    @model_validator(mode="before")
    @classmethod
    def null_data_is_empty(cls, values: Any) -> Any:
        if isinstance(values, dict) and values.get("data") is None:
            return {**values, "data": {}}
        return values


class CreateChatIntent(Intent):
    event: Literal["createChat"]
    data: ChatText


class UpdateChatIntent(Intent):
    event: Literal["updateChat"]
    data: UpdateChatPayload


class RemoveChatIntent(Intent):
    event: Literal["removeChat"]
    data: IdPayload


class FindAllChatsIntent(Intent):
    event: Literal["findAllChats"]
    data: Any = None


class FindOneChatIntent(Intent):
    event: Literal["findOneChat"]
    data: IdPayload


class FindAllUsersIntent(Intent):
    event: Literal["findAllUsers"]
    data: Any = None


class FindOneUserIntent(Intent):
    event: Literal["findOneUser"]
    data: IdPayload


class WhoamiIntent(Intent):
    event: Literal["whoami"]
    data: Any = None


class UpdateUserColorIntent(Intent):
    event: Literal["updateUserColor"]
    data: UpdateUserColorPayload


class StartTypingIntent(Intent):
    event: Literal["startTyping"]
    data: Any = None


class StopTypingIntent(Intent):
    event: Literal["stopTyping"]
    data: Any = None


ClientIntent = Annotated[
    CreateUserIntent
    | LoginIntent
    | CreateChatIntent
    | UpdateChatIntent
    | RemoveChatIntent
    | FindAllChatsIntent
    | FindOneChatIntent
    | FindAllUsersIntent
    | FindOneUserIntent
    | WhoamiIntent
    | UpdateUserColorIntent
    | StartTypingIntent
    | StopTypingIntent,
    Field(discriminator="event"),
]

intent_adapter: TypeAdapter[ClientIntent] = TypeAdapter(ClientIntent)


# ──────────────────────────────────────────────────────────────
# Server → Client payloads
# ──────────────────────────────────────────────────────────────


class UserRef(CamelModel):
    """``{userId}`` for userLeft / userStoppedTyping."""

    user_id: UUID


class TypingNotice(CamelModel):
    """``{userId, userName}`` for userTyping."""

    user_id: UUID
    user_name: str


class ChatRemoved(CamelModel):
    id: UUID


class ErrorPayload(CamelModel):
    """``{message}`` for error, loginError and updateError."""

    message: str


class ConnectionStats(CamelModel):
    """Response for GET /ws/stats."""

    total_connections: int
    authenticated_connections: int
    online_users: int
    typing_users: int


class Outcome(CamelModel):
    """``{success, message?, data?}`` reply body."""

    success: bool
    message: str | None = None
    data: Any = None

    def to_wire(self) -> dict:
        # Only top-level keys are dropped; nested payloads keep their nulls
        dumped = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in dumped.items() if value is not None}


# ──────────────────────────────────────────────────────────────
# Frame builders
# ──────────────────────────────────────────────────────────────


def _wire(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.to_wire() if isinstance(data, CamelModel) else data.model_dump(mode="json")
    if isinstance(data, list | tuple):
        return [_wire(item) for item in data]
    return data


def event_frame(event: ServerEvent, data: Any = None) -> dict[str, Any]:
    """Build a server event frame."""
    return {"event": event.value, "data": _wire(data)}


def ack_frame(intent: str, ack: AckId, data: Any) -> dict[str, Any]:
    """Build the reply frame for a handled intent."""
    return {"event": ServerEvent.ACK.value, "intent": intent, "ack": ack, "data": _wire(data)}


def failure(message: str) -> Outcome:
    return Outcome(success=False, message=message)
