"""Console entry point."""

from chat_service.cli.main import cli
from chat_service.infra.logging import setup_logging


def main() -> None:
    """Entry point for the ``chat-service`` command."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
