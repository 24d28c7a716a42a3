"""Main CLI loop for interactive NPC chat."""

import logging
import sys
from pathlib import Path
from typing import TextIO

from journale import Journale, JournaleConfig, JournaleError, load_config
from journale.infra.logging import setup_logging

from .formatter import ResponseFormatter

logger = logging.getLogger(__name__)


class JournaleCLI:
    """Interactive chat with one NPC thread."""

    def __init__(
        self,
        client: Journale,
        thread_id: str,
        character_description: str | None = None,
        input_stream: TextIO = sys.stdin,
        output_stream: TextIO = sys.stdout,
    ):
        """Initialize the CLI.

        Parameters
        ----------
        client
            Initialized (or initializable) Journale facade.
        thread_id
            Local identifier of the NPC conversation.
        character_description
            Optional character description sent with every message.
        input_stream
            Input stream for user input (default: stdin).
        output_stream
            Output stream for replies (default: stdout).
        """
        self.client = client
        self.thread_id = thread_id
        self.character_description = character_description
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.formatter = ResponseFormatter(output_stream)

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        try:
            self._print_welcome()
            while True:
                try:
                    message = self._get_user_input()
                    if not message:
                        continue

                    if message.strip().lower() in ("exit", "quit", "q"):
                        self._print("Goodbye!\n")
                        break

                    await self._process_message(message)

                except KeyboardInterrupt:
                    self._print("\n\nInterrupted. Use 'exit' or 'quit' to exit.\n")
                except EOFError:
                    self._print("\nGoodbye!\n")
                    break
        finally:
            await self.client.aclose()

    async def _process_message(self, message: str) -> None:
        try:
            reply = await self.client.send(
                self.thread_id,
                message,
                character_description=self.character_description,
            )
        except JournaleError as e:
            self.formatter.error(e)
            return
        self.formatter.reply(reply)

    def _get_user_input(self) -> str:
        self._print("> ")
        line = self.input_stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n\r")

    def _print_welcome(self) -> None:
        config = self.client.config
        self._print("Journale CLI - Interactive NPC Chat\n")
        if config is not None:
            self._print(f"Backend: {config.api_base_url}  Thread: {self.thread_id}\n")
        self._print(
            "Type your message and press Enter. Type 'exit' or 'quit' to exit.\n\n"
        )

    def _print(self, text: str) -> None:
        self.output_stream.write(text)
        self.output_stream.flush()


async def main(
    config_path: str | None = None,
    thread_id: str = "cli",
    character_description: str | None = None,
    debug: bool = False,
    json_logs: bool = False,
) -> None:
    """Main entry point for the CLI.

    Parameters
    ----------
    config_path
        YAML config file; defaults to the usual lookup, then to defaults
        plus environment variables.
    thread_id
        NPC conversation id.
    character_description
        Optional character description.
    debug
        Enable debug logging.
    json_logs
        Emit log records as JSON lines.
    """
    config = load_config(Path(config_path) if config_path else None)
    if config is None:
        config = JournaleConfig()

    logging_config = config.logging
    if debug:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    if json_logs:
        logging_config = logging_config.model_copy(update={"json_output": True})
    setup_logging(logging_config, logger_names=("journale", "cli"))

    client = Journale(config)
    client.initialize()

    cli = JournaleCLI(client, thread_id, character_description=character_description)
    await cli.run()
