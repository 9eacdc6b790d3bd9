"""Realtime session and broadcast coordinator.

ChatCoordinator is the only component that emits events to clients. It
turns inbound intents into store calls and session-state changes, then
fans the resulting events out through the ConnectionManager:

    handle_frame(raw) -> parse -> dispatch -> operation -> broadcast/personalized events
                                                       -> one ack reply

Errors from the taxonomy (AuthenticationFailed, NotAuthenticated,
NotFound, ValidationFailed) become a ``{success: false, message}`` ack on
the originating connection. Nothing raised while serving one connection
affects the others.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import ValidationError

from chat_service.core.database import NotFoundError
from chat_service.core.exceptions import (
    AppException,
    AuthenticationFailedException,
    NotFoundException,
)
from chat_service.core.settings import get_websocket_settings
from chat_service.features.realtime.schemas import (
    CLIENT_EVENTS,
    ChatRemoved,
    CreateChatIntent,
    CreateUserIntent,
    ErrorPayload,
    FindAllChatsIntent,
    FindAllUsersIntent,
    FindOneChatIntent,
    FindOneUserIntent,
    LoginIntent,
    LoginPayload,
    Outcome,
    RemoveChatIntent,
    ServerEvent,
    StartTypingIntent,
    StopTypingIntent,
    TypingNotice,
    UpdateChatIntent,
    UpdateUserColorIntent,
    UserRef,
    WhoamiIntent,
    ack_frame,
    event_frame,
    failure,
    intent_adapter,
)
from chat_service.features.realtime.sessions import SessionStore
from chat_service.infra.logging import get_lazy_logger, set_log_context

if TYPE_CHECKING:
    from chat_service.core.settings import WebSocketSettings
    from chat_service.features.chats.schemas import ChatRead
    from chat_service.features.realtime.schemas import ClientIntent
    from chat_service.features.realtime.store import ChatStore
    from chat_service.features.users.schemas import UserCreate, UserRead
    from chat_service.infra.realtime.manager import ConnectionManager

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

INTERNAL_ERROR = "Internal error"


def _not_found(exc: NotFoundError) -> NotFoundException:
    return NotFoundException(
        detail=f"{exc.model_name} not found",
        type=f"{exc.model_name.lower()}-not-found",
        extra=exc.identifier,
    )


def _validation_message(exc: ValidationError, event: str) -> str:
    first = exc.errors()[0]
    # loc starts with the union tag, then "data"
    where = ".".join(str(part) for part in first.get("loc", ()) if part not in (event, "data"))
    return f"Invalid payload: {where + ': ' if where else ''}{first.get('msg', 'invalid value')}"


class ChatCoordinator:
    """Coordinates sessions, persistence and fan-out for every connection.

    Args:
        store: Persistence for users and messages.
        manager: Live transports; used for personalized sends and broadcasts.
        sessions: Connection registry and typing tracker. A fresh one is
            created when omitted.
        settings: WebSocket settings (typing expiry, initial sync).
    """

    def __init__(
        self,
        store: ChatStore,
        manager: ConnectionManager,
        sessions: SessionStore | None = None,
        settings: WebSocketSettings | None = None,
    ) -> None:
        self.store = store
        self.manager = manager
        self.sessions = sessions if sessions is not None else SessionStore()
        self._settings = settings or get_websocket_settings()
        self._sweep_task: asyncio.Task | None = None

    # ──────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the typing expiry sweep when WS_TYPING_TIMEOUT is set."""
        if self._settings.typing_timeout > 0 and self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._typing_sweep_loop())
            logger.info(
                "Typing expiry enabled",
                extra={"typing_timeout": self._settings.typing_timeout},
            )

    async def stop(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

    # ──────────────────────────────────────────────────────────
    # Connection events
    # ──────────────────────────────────────────────────────────

    async def handle_connect(self, connection_id: str) -> None:
        """Greet a new connection with the current message list."""
        if not self._settings.send_initial_chats:
            return
        try:
            chats = await self.store.list_messages()
        except Exception:
            logger.exception("Failed to load initial chats", extra={"connection_id": connection_id})
            await self._send(connection_id, event_frame(ServerEvent.ERROR, ErrorPayload(message=INTERNAL_ERROR)))
            return
        await self._send(connection_id, event_frame(ServerEvent.CHATS, chats))

    async def handle_disconnect(self, connection_id: str) -> None:
        """Forget a closed connection and tell everyone the user left.

        Typing started from this connection is cleared first, so clients
        see ``userStoppedTyping`` before ``userLeft``. Connections that
        never logged in leave silently.
        """
        user_id = self.sessions.unregister(connection_id)
        if user_id is None:
            lazy_logger.debug(lambda: f"Unauthenticated connection {connection_id} closed")
            return

        if self.sessions.stop_typing_from(user_id, connection_id):
            await self._broadcast(ServerEvent.USER_STOPPED_TYPING, UserRef(user_id=user_id))
        await self._broadcast(ServerEvent.USER_LEFT, UserRef(user_id=user_id))

        logger.info(
            "User left",
            extra={
                "connection_id": connection_id,
                "user_id": str(user_id),
                "remaining_connections": len(self.sessions.connections_for(user_id)),
            },
        )

    async def handle_frame(self, connection_id: str, raw: str | bytes) -> None:
        """Parse one inbound frame, run it, and send the ack reply.

        Never raises for client mistakes or store failures; those turn into
        replies on this connection.
        """
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            await self._send(connection_id, event_frame(ServerEvent.ERROR, ErrorPayload(message="Invalid JSON")))
            return

        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            await self._send(
                connection_id,
                event_frame(ServerEvent.ERROR, ErrorPayload(message="Frame must be an object with an 'event' name")),
            )
            return

        event = message["event"]
        ack = message.get("ack") if isinstance(message.get("ack"), str | int) else None
        if event not in CLIENT_EVENTS:
            await self._send(
                connection_id,
                event_frame(ServerEvent.ERROR, ErrorPayload(message=f"Unknown event: {event}")),
            )
            return

        try:
            intent = intent_adapter.validate_python({**message, "ack": ack})
        except ValidationError as exc:
            lazy_logger.debug(lambda: f"Rejected {event} payload: {exc.errors()}")
            await self._reply(connection_id, event, ack, failure(_validation_message(exc, event)))
            return

        try:
            result = await self.dispatch(connection_id, intent)
        except NotFoundError as exc:
            await self._reply(connection_id, event, ack, failure(_not_found(exc).detail))
        except AppException as exc:
            logger.info(
                "Intent rejected",
                extra={"connection_id": connection_id, "intent": event, "reason": exc.detail},
            )
            await self._reply(connection_id, event, ack, failure(exc.detail))
        except Exception:
            logger.exception("Intent failed", extra={"connection_id": connection_id, "intent": event})
            await self._send(connection_id, event_frame(ServerEvent.ERROR, ErrorPayload(message=INTERNAL_ERROR)))
            await self._reply(connection_id, event, ack, failure(INTERNAL_ERROR))
        else:
            await self._reply(connection_id, event, ack, result)

    async def reject_oversized(self, connection_id: str, size: int, limit: int) -> None:
        logger.warning(
            "Frame too large",
            extra={"connection_id": connection_id, "size": size, "limit": limit},
        )
        await self._send(
            connection_id,
            event_frame(ServerEvent.ERROR, ErrorPayload(message=f"Frame exceeds {limit} bytes")),
        )

    async def dispatch(self, connection_id: str, intent: ClientIntent) -> Any:
        """Run a validated intent and return the ack reply body."""
        match intent:
            case CreateUserIntent(data=payload):
                return await self.register_user(connection_id, payload)
            case LoginIntent(data=payload):
                return await self.login(connection_id, payload)
            case CreateChatIntent(data=payload):
                return await self.post_message(connection_id, payload.text)
            case UpdateChatIntent(data=payload):
                return await self.edit_message(payload.id, payload.text)
            case RemoveChatIntent(data=payload):
                return await self.remove_message(payload.id)
            case FindAllChatsIntent():
                return await self.store.list_messages()
            case FindOneChatIntent(data=payload):
                return await self.store.find_message_by_id(payload.id)
            case FindAllUsersIntent():
                return await self.store.list_users()
            case FindOneUserIntent(data=payload):
                return await self.store.find_user_by_id(payload.id)
            case WhoamiIntent():
                return await self.whoami(connection_id)
            case UpdateUserColorIntent(data=payload):
                return await self.update_color(connection_id, payload.user_id, payload.color)
            case StartTypingIntent():
                return await self.start_typing(connection_id)
            case StopTypingIntent():
                return await self.stop_typing(connection_id)
        raise TypeError(f"Unhandled intent: {type(intent).__name__}")

    # ──────────────────────────────────────────────────────────
    # Identity
    # ──────────────────────────────────────────────────────────

    async def register_user(self, connection_id: str, data: UserCreate) -> UserRead:
        """Create a new user and bind this connection to it."""
        user = await self.store.create_user(data)
        await self._bind(connection_id, user.id)

        await self._send(connection_id, event_frame(ServerEvent.USER_CREATED, user))
        await self._broadcast(ServerEvent.NEW_USER, user)

        logger.info(
            "User registered",
            extra={"connection_id": connection_id, "user_id": str(user.id)},
        )
        return user

    async def login(self, connection_id: str, payload: LoginPayload) -> UserRead:
        """Resolve an identity for this connection.

        Resolution order: existing id, then exact name match, then create
        from the supplied data. A name match keeps the stored profile even
        if the supplied color or image differ.

        Raises:
            AuthenticationFailedException: Nothing matched and no data to create from
        """
        try:
            user = await self._resolve_login(payload)
        except AuthenticationFailedException as exc:
            await self._send(connection_id, event_frame(ServerEvent.LOGIN_ERROR, ErrorPayload(message=exc.detail)))
            raise

        await self._bind(connection_id, user.id)
        await self._send(connection_id, event_frame(ServerEvent.LOGIN_SUCCESS, user))
        await self._broadcast(ServerEvent.USER_JOINED, user)

        logger.info(
            "User logged in",
            extra={"connection_id": connection_id, "user_id": str(user.id)},
        )
        return user

    async def _resolve_login(self, payload: LoginPayload) -> UserRead:
        if payload.user_id:
            user_id = _parse_uuid(payload.user_id)
            user = await self.store.find_user_by_id(user_id) if user_id else None
            if user is not None:
                return user

        data = payload.user_data
        if data is not None:
            existing = await self.store.find_user_by_name(data.name)
            if existing is not None:
                if existing.color != data.color or (data.image and existing.image != data.image):
                    # Profile differences on a name match are not applied
                    lazy_logger.debug(
                        lambda: f"Login by name {data.name!r}: supplied profile differs, keeping stored one",
                    )
                return existing
            return await self.store.create_user(data)

        if payload.user_id:
            raise AuthenticationFailedException("User not found", extra={"user_id": payload.user_id})
        raise AuthenticationFailedException("No user data provided")

    async def whoami(self, connection_id: str) -> UserRead | None:
        user_id = self.sessions.lookup(connection_id)
        if user_id is None:
            return None
        return await self.store.find_user_by_id(user_id)

    async def update_color(self, connection_id: str, user_id: UUID, color: str) -> Outcome:
        """Change a user's color and broadcast the updated profile.

        Raises:
            NotFoundException: If the user does not exist
        """
        try:
            user = await self.store.update_user_color(user_id, color)
        except NotFoundError as exc:
            error = _not_found(exc)
            await self._send(connection_id, event_frame(ServerEvent.UPDATE_ERROR, ErrorPayload(message=error.detail)))
            raise error from exc

        await self._broadcast(ServerEvent.USER_UPDATED, user)
        return Outcome(success=True, data=user)

    # ──────────────────────────────────────────────────────────
    # Messages
    # ──────────────────────────────────────────────────────────

    async def post_message(self, connection_id: str, text: str) -> ChatRead:
        """Append a message from the user bound to this connection.

        Raises:
            NotAuthenticatedException: If the connection has not logged in
        """
        author_id = self.sessions.resolve(connection_id)
        chat = await self.store.create_message(text, author_id)

        await self._broadcast(ServerEvent.NEW_CHAT, chat)
        if self.sessions.stop_typing(author_id):
            await self._broadcast(ServerEvent.USER_STOPPED_TYPING, UserRef(user_id=author_id))

        return chat

    async def edit_message(self, chat_id: UUID, text: str) -> ChatRead:
        chat = await self.store.update_message_text(chat_id, text)
        await self._broadcast(ServerEvent.CHAT_UPDATED, chat)
        return chat

    async def remove_message(self, chat_id: UUID) -> ChatRead:
        chat = await self.store.delete_message(chat_id)
        await self._broadcast(ServerEvent.CHAT_REMOVED, ChatRemoved(id=chat_id))
        return chat

    # ──────────────────────────────────────────────────────────
    # Typing
    # ──────────────────────────────────────────────────────────

    async def start_typing(self, connection_id: str) -> Outcome:
        """Raises NotAuthenticatedException for an unbound connection."""
        user_id = self.sessions.resolve(connection_id)
        if self.sessions.start_typing(user_id, connection_id):
            user = await self.store.find_user_by_id(user_id)
            if user is None:
                self.sessions.stop_typing_from(user_id, connection_id)
                return Outcome(success=True)
            # The flag may have been cleared while the lookup was in flight
            if self.sessions.is_typing(user_id):
                await self._broadcast(ServerEvent.USER_TYPING, TypingNotice(user_id=user_id, user_name=user.name))
        return Outcome(success=True)

    async def stop_typing(self, connection_id: str) -> Outcome:
        """Raises NotAuthenticatedException for an unbound connection."""
        user_id = self.sessions.resolve(connection_id)
        if self.sessions.stop_typing(user_id):
            await self._broadcast(ServerEvent.USER_STOPPED_TYPING, UserRef(user_id=user_id))
        return Outcome(success=True)

    async def expire_typing(self, now: float | None = None) -> list[UUID]:
        """Clear typing states idle longer than WS_TYPING_TIMEOUT."""
        expired = self.sessions.expire_typing(self._settings.typing_timeout, now=now)
        for user_id in expired:
            await self._broadcast(ServerEvent.USER_STOPPED_TYPING, UserRef(user_id=user_id))
        return expired

    async def _typing_sweep_loop(self) -> None:
        interval = max(self._settings.typing_timeout / 2, 0.1)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.expire_typing()
            except Exception:
                logger.exception("Typing sweep failed")

    # ──────────────────────────────────────────────────────────
    # Delivery
    # ──────────────────────────────────────────────────────────

    async def _bind(self, connection_id: str, user_id: UUID) -> None:
        previous = self.sessions.register(connection_id, user_id)
        set_log_context(user_id=str(user_id))
        if previous is not None and previous != user_id and self.sessions.stop_typing_from(previous, connection_id):
            await self._broadcast(ServerEvent.USER_STOPPED_TYPING, UserRef(user_id=previous))

    async def _broadcast(self, event: ServerEvent, data: Any) -> int:
        delivered = await self.manager.broadcast(event_frame(event, data))
        lazy_logger.debug(lambda: f"broadcast {event.value} -> {delivered} connections")
        return delivered

    async def _send(self, connection_id: str, frame: dict[str, Any]) -> bool:
        return await self.manager.send_to_connection(connection_id, frame)

    async def _reply(self, connection_id: str, intent: str, ack: Any, data: Any) -> bool:
        return await self._send(connection_id, ack_frame(intent, ack, data))


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


# Global coordinator instance
_coordinator: ChatCoordinator | None = None


def get_chat_coordinator() -> ChatCoordinator:
    """Get the global coordinator.

    Raises:
        RuntimeError: If the coordinator has not been started
    """
    if _coordinator is None:
        raise RuntimeError("Chat coordinator not initialized. Call start_chat_coordinator() first.")
    return _coordinator


async def start_chat_coordinator(
    store: ChatStore,
    manager: ConnectionManager,
    settings: WebSocketSettings | None = None,
) -> ChatCoordinator:
    """Create and start the global coordinator with a fresh SessionStore."""
    global _coordinator

    _coordinator = ChatCoordinator(store, manager, SessionStore(), settings)
    await _coordinator.start()
    return _coordinator


async def stop_chat_coordinator() -> None:
    global _coordinator

    if _coordinator is not None:
        await _coordinator.stop()
        _coordinator = None
