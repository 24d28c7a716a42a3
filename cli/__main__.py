"""Entry point for running the CLI as a module."""

import argparse
import asyncio
import sys

from .journale_cli import main


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Interactive NPC chat through the Journale client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $JOURNALE_CONFIG_FILE or ./journale.yaml)",
    )
    parser.add_argument(
        "--thread",
        type=str,
        default="cli",
        help="Local NPC thread id (default: cli)",
    )
    parser.add_argument(
        "--character",
        type=str,
        default=None,
        help="Character description sent with every message",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (shows signing details)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write logs to stderr as JSON lines",
    )

    return parser.parse_args()


def cli_entry() -> None:
    """CLI entry point."""
    args = parse_args()

    try:
        asyncio.run(
            main(
                config_path=args.config,
                thread_id=args.thread,
                character_description=args.character,
                debug=args.debug,
                json_logs=args.json_logs,
            )
        )
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    cli_entry()
