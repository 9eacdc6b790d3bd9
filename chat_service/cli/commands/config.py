"""Configuration inspection commands."""

import json

import click
from sqlalchemy.engine import make_url
import yaml

from chat_service.cli.utils import header, success
from chat_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_websocket_settings,
)


@click.group(name="config")
def config() -> None:
    """Configuration management commands."""


def _config_dict(show_secrets: bool) -> dict[str, dict[str, object]]:
    app = get_app_settings()
    db = get_db_settings()
    log = get_logging_settings()
    ws = get_websocket_settings()

    return {
        "app": {
            "name": app.service_name,
            "environment": app.environment,
            "debug": app.debug,
            "host": app.host,
            "port": app.port,
            "api_prefix": app.api_prefix,
        },
        "database": {
            "url": make_url(db.url).render_as_string(hide_password=not show_secrets),
            "create_tables": db.create_tables,
            "echo": db.echo,
        },
        "logging": {
            "level": log.level,
            "json_logs": log.json_logs,
            "file_enabled": log.file_enabled,
        },
        "websocket": {
            "enabled": ws.enabled,
            "path": ws.path,
            "max_connections": ws.max_connections,
            "send_timeout": ws.send_timeout,
            "heartbeat_interval": ws.heartbeat_interval,
            "typing_timeout": ws.typing_timeout,
        },
    }


@config.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml", "table"]),
    default="table",
    help="Output format",
)
@click.option(
    "--show-secrets/--hide-secrets",
    default=False,
    help="Show the database password",
)
def show(output_format: str, show_secrets: bool) -> None:
    """Display current configuration settings."""
    config_dict = _config_dict(show_secrets)

    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2, default=str))
    elif output_format == "yaml":
        click.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=False))
    else:
        click.echo("=" * 60)
        for section, values in config_dict.items():
            header(f"[{section.upper()}]")
            for key, value in values.items():
                click.echo(f"  {key:20} = {value}")
        click.echo("\n" + "=" * 60)
        success("Configuration loaded")
