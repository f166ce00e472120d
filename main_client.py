#!/usr/bin/env python3
"""
Main entry point for the RCON command-line client.

Runs the commands given on the command line, or reads commands from
stdin one per line when none are given. Configuration is loaded from
environment variables (or a .env file) and may be overridden by options.
"""

from typing import List, Optional
import argparse
import asyncio
import signal
import sys
import threading

from source_rcon.client.rcon_client import RconClient
from source_rcon.config.settings import Config
from source_rcon.utils.logging import setup_logging, get_logger
from source_rcon.utils.exceptions import ConfigurationError, RconError

logger = get_logger(__name__)

EXIT_COMMANDS = ('exit', 'quit')


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='source-rcon',
        description='Send commands to a server over the Source RCON protocol.',
    )
    parser.add_argument('commands', nargs='*', help='commands to run; reads stdin when omitted')
    parser.add_argument('--host', help='server host (RCON_HOST)')
    parser.add_argument('--port', type=int, help='server port (RCON_PORT)')
    parser.add_argument('--password', help='RCON password (RCON_PASSWORD)')
    parser.add_argument('--timeout-ms', type=int, help='command timeout, 0 disables (RCON_TIMEOUT_MS)')
    parser.add_argument(
        '--single-packet',
        dest='multipacket',
        action='store_false',
        default=None,
        help='return on the first reply packet instead of waiting for a boundary',
    )
    parser.add_argument('--log-level', help='logging level (LOG_LEVEL)')
    return parser.parse_args(argv)


class ClientApplication:
    """Main application class for the RCON client."""

    def __init__(self, args: argparse.Namespace):
        """Initialize application."""
        self.args = args
        self.config = Config()
        self.client: Optional[RconClient] = None
        self.shutdown_event = asyncio.Event()
        self._lines: Optional[asyncio.Queue] = None

    async def run(self) -> int:
        """
        Run the client application.

        Loads configuration, connects, runs the commands and disconnects.

        Returns:
            Process exit code
        """
        try:
            rcon_config = self.config.load_rcon_config(
                host=self.args.host,
                port=self.args.port,
                password=self.args.password,
                timeout_ms=self.args.timeout_ms,
                multipacket=self.args.multipacket,
            )
            logger.info(
                f"Configuration loaded: "
                f"server={rcon_config.endpoint}, "
                f"timeout_ms={rcon_config.timeout_ms}"
            )

            self.client = RconClient.from_config(rcon_config)
            await self.client.connect()

            if self.args.commands:
                for command in self.args.commands:
                    if self.shutdown_event.is_set():
                        break
                    await self._run_command(command, rcon_config.multipacket)
            else:
                await self._run_interactive(rcon_config.multipacket)

            return 0

        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            logger.error(
                "Please check your environment variables. "
                "See .env.example for required configuration."
            )
            return 1
        except RconError as e:
            if self.shutdown_event.is_set():
                logger.info(f"Stopped by signal: {e}")
                return 0
            logger.error(f"RCON error: {e}")
            return 1
        finally:
            if self.client:
                await self.client.close()

    async def _run_command(self, command: str, multipacket: bool) -> None:
        response = await self.client.send(command, multipacket=multipacket)
        print(response, end='' if response.endswith('\n') else '\n', flush=True)

    async def _run_interactive(self, multipacket: bool) -> None:
        self._lines = asyncio.Queue()
        reader = threading.Thread(
            target=self._read_stdin,
            args=(asyncio.get_running_loop(), self._lines),
            name="stdin-reader",
            daemon=True,
        )
        reader.start()

        while not self.shutdown_event.is_set():
            line = await self._lines.get()
            if line is None:
                break
            command = line.strip()
            if not command:
                continue
            if command.lower() in EXIT_COMMANDS:
                break
            await self._run_command(command, multipacket)

    @staticmethod
    def _read_stdin(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue) -> None:
        """Feed stdin lines to the event loop; None marks end of input."""
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:
            # Event loop already closed
            return

    def handle_shutdown(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        logger.info(f"Received signal {signum}")
        self.shutdown_event.set()
        if self._lines is not None:
            self._lines.put_nowait(None)
        if self.client:
            self.client.disconnect()


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = Config()

    try:
        logging_config = config.load_logging_config(args.log_level)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    setup_logging(logging_config.level)

    app = ClientApplication(args)

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(
                sig,
                lambda s=sig: app.handle_shutdown(s, None)
            )
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    return await app.run()


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == '__main__':
    run()
