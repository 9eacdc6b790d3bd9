"""Main CLI entry point for chat-service management commands."""

import click

from chat_service.cli.commands import config, database, server


@click.group()
@click.version_option(version="0.1.0", prog_name="chat-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Chat Service CLI.

    \b
    Command Groups:
      server     Run the chat server
      db         Create, inspect and reset the database
      config     Show effective configuration

    \b
    Quick Start:
      chat-service db init
      chat-service server run --reload
    """
    ctx.ensure_object(dict)


cli.add_command(server.server)
cli.add_command(database.db)
cli.add_command(config.config)
