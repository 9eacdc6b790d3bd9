"""Database dependencies for FastAPI route handlers.

Two session getters exist:

1. `get_db_session()` (this module) - FastAPI dependency, session bound
   to the HTTP request.
2. `get_async_session()` (infra.database) - plain async context manager
   for CLI commands and background tasks.

Both use the same session factory.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from chat_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Example:
        @router.get("/chats")
        async def list_chats(session: Annotated[AsyncSession, Depends(get_db_session)]):
            ...
    """
    async with get_async_session() as session:
        yield session
