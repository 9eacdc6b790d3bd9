"""Realtime chat: sessions, typing presence and the broadcast coordinator."""

from .coordinator import (
    ChatCoordinator,
    get_chat_coordinator,
    start_chat_coordinator,
    stop_chat_coordinator,
)
from .sessions import SessionStore, TypingState
from .store import ChatStore, SqlAlchemyChatStore

__all__ = [
    "ChatCoordinator",
    "ChatStore",
    "SessionStore",
    "SqlAlchemyChatStore",
    "TypingState",
    "get_chat_coordinator",
    "start_chat_coordinator",
    "stop_chat_coordinator",
]
