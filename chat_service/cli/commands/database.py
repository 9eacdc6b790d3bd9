"""Database management commands.

Example:bash
    # Create missing tables
    chat-service db init

    # Row counts
    chat-service db info

    # Drop and recreate every table (destroys all users and chats)
    chat-service db reset --yes
"""

import sys

import click
from sqlalchemy import func, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from chat_service.cli.utils import coro, error, info, success, warning
from chat_service.core.settings import get_db_settings
from chat_service.infra.database import close_database, get_async_session, init_database, reset_database


def _display_url() -> str:
    return make_url(get_db_settings().url).render_as_string(hide_password=True)


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Verify connectivity and create missing tables."""
    info(f"Connecting to: {_display_url()}")
    try:
        await init_database(create_tables=True)
        success("Database initialized")
    except (SQLAlchemyError, OSError) as e:
        error(f"Failed to initialize database: {e}")
        sys.exit(1)
    finally:
        await close_database()


@db.command(name="info")
@coro
async def info_cmd() -> None:
    """Show user and chat counts."""
    from chat_service.features.chats.models import Chat
    from chat_service.features.users.models import User

    info(f"Database: {_display_url()}")
    try:
        async with get_async_session() as session:
            users = await session.scalar(select(func.count()).select_from(User))
            chats = await session.scalar(select(func.count()).select_from(Chat))
    except SQLAlchemyError as e:
        error(f"Failed to query database: {e}")
        sys.exit(1)
    finally:
        await close_database()

    click.echo(f"  {'users':10} = {users}")
    click.echo(f"  {'chats':10} = {chats}")


@db.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@coro
async def reset(yes: bool) -> None:
    """Drop and recreate every table."""
    if not yes:
        warning(f"This deletes every user and chat in {_display_url()}")
        if not click.confirm("Continue?", default=False):
            info("Aborted")
            return
    try:
        await reset_database()
        success("Database reset")
    except SQLAlchemyError as e:
        error(f"Failed to reset database: {e}")
        sys.exit(1)
    finally:
        await close_database()
