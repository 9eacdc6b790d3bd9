"""In-memory session state: which connection speaks for which user, and who is typing.

One SessionStore is owned by the server process and handed to the
coordinator; nothing here is persisted. All mutation happens on the
event loop between awaits, so no locking is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import TYPE_CHECKING

from chat_service.core.exceptions import NotAuthenticatedException
from chat_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


@dataclass(slots=True)
class TypingState:
    """The connection that started typing for a user, and when."""

    connection_id: str
    started_at: float


class SessionStore:
    """Connection registry plus typing tracker.

    Registry: ``connection_id -> user_id``. A connection absent from the
    map is unauthenticated.

    Typing: ``user_id -> TypingState``. At most one entry per user; the
    owning connection is remembered so a disconnect only clears typing
    started from that same connection.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, UUID] = {}
        self._typing: dict[UUID, TypingState] = {}

    # ──────────────────────────────────────────────────────────
    # Registry
    # ──────────────────────────────────────────────────────────

    def register(self, connection_id: str, user_id: UUID) -> UUID | None:
        """Bind a connection to a user, replacing any earlier binding.

        Returns:
            The user the connection was bound to before, if any
        """
        previous = self._sessions.get(connection_id)
        self._sessions[connection_id] = user_id
        lazy_logger.debug(
            lambda: f"session.register({connection_id}) -> {user_id} (was {previous})"
        )
        return previous

    def lookup(self, connection_id: str) -> UUID | None:
        return self._sessions.get(connection_id)

    def resolve(self, connection_id: str) -> UUID:
        """Return the user bound to a connection.

        Raises:
            NotAuthenticatedException: If the connection never logged in
        """
        user_id = self._sessions.get(connection_id)
        if user_id is None:
            raise NotAuthenticatedException(extra={"connection_id": connection_id})
        return user_id

    def unregister(self, connection_id: str) -> UUID | None:
        """Drop a connection's binding and return the user it had, if any."""
        return self._sessions.pop(connection_id, None)

    def is_authenticated(self, connection_id: str) -> bool:
        return connection_id in self._sessions

    def connections_for(self, user_id: UUID) -> list[str]:
        return [cid for cid, uid in self._sessions.items() if uid == user_id]

    def online_users(self) -> set[UUID]:
        return set(self._sessions.values())

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # ──────────────────────────────────────────────────────────
    # Typing
    # ──────────────────────────────────────────────────────────

    def start_typing(self, user_id: UUID, connection_id: str, now: float | None = None) -> bool:
        """Mark a user as typing.

        Returns:
            True on an idle -> typing transition, False when only refreshed
        """
        now = time.monotonic() if now is None else now
        was_idle = user_id not in self._typing
        self._typing[user_id] = TypingState(connection_id=connection_id, started_at=now)
        return was_idle

    def stop_typing(self, user_id: UUID) -> bool:
        """Mark a user as idle.

        Returns:
            True on a typing -> idle transition, False if already idle
        """
        return self._typing.pop(user_id, None) is not None

    def stop_typing_from(self, user_id: UUID, connection_id: str) -> bool:
        """Clear typing only if this connection started it."""
        state = self._typing.get(user_id)
        if state is None or state.connection_id != connection_id:
            return False
        del self._typing[user_id]
        return True

    def is_typing(self, user_id: UUID) -> bool:
        return user_id in self._typing

    def typing_users(self) -> set[UUID]:
        return set(self._typing)

    def expire_typing(self, max_age: float, now: float | None = None) -> list[UUID]:
        """Clear typing states older than ``max_age`` seconds.

        Returns:
            Users whose typing state was cleared
        """
        now = time.monotonic() if now is None else now
        stale = [uid for uid, state in self._typing.items() if now - state.started_at >= max_age]
        for uid in stale:
            del self._typing[uid]
        if stale:
            logger.debug("Expired typing states", extra={"count": len(stale)})
        return stale
