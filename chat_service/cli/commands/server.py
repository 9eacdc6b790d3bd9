"""Server management commands."""

import click
import uvicorn

from chat_service.cli.utils import info, success, warning
from chat_service.core.settings import get_app_settings, get_websocket_settings


@click.group(name="server")
def server() -> None:
    """Server management commands."""


@server.command()
@click.option("--host", default=None, help="Host to bind (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug", "trace"]),
    help="Uvicorn log level",
)
def run(host: str | None, port: int | None, reload: bool, log_level: str) -> None:
    """Run the chat server with uvicorn.

    Chat state (sessions, typing) lives in this process, so only one
    worker is ever started.
    """
    settings = get_app_settings()
    ws_settings = get_websocket_settings()
    host = host or settings.host
    port = port or settings.port

    info(f"Server will run at: http://{host}:{port}")
    info(f"Environment: {settings.environment}")
    if ws_settings.enabled:
        info(f"WebSocket endpoint: ws://{host}:{port}{settings.api_prefix}{ws_settings.path}")
    else:
        warning("WebSockets disabled (WS_ENABLED=false); only HTTP endpoints are served")

    success("Starting uvicorn...")
    uvicorn.run(
        "chat_service.app.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        ws_max_size=ws_settings.max_message_size,
    )
