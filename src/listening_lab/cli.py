"""
Listening Lab CLI - Command Line Interface

Interactive prompt by default; with a query argument, runs one
search-then-play cycle and exits.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from src.roon.client import RoonConnection
from src.roon.exceptions import RoonError

from . import __version__
from .browse_walker import BrowseWalker
from .coach import CoachClient
from .config import ListeningLabConfig
from .dispatcher import CommandDispatcher
from .history import CommandHistory, install_readline
from .logger import setup_logging
from .playback import PlaybackController
from .repl import Repl, ZoneEventPump
from .session import Session
from .single_play import run_single_play

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="listening-lab",
        description="Search and play music on a Roon Core and ask an audio coach what to listen for",
        epilog='Example: listening-lab "Radiohead Idioteque"  (search, play first match, exit)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "query",
        nargs="?",
        help="Search for QUERY, play the first track and exit instead of starting the prompt",
    )

    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Seconds to wait for Roon pairing (default: 3 interactive, 10 with a query)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def build_coach(config: ListeningLabConfig) -> Optional[CoachClient]:
    """Create the coach, or None when no OpenAI key is configured."""
    if not config.coach_enabled:
        logger.warning("No OpenAI API key configured, ask/suggest are disabled")
        return None
    return CoachClient(
        api_key=config.openai_api_key,
        model=config.openai_model,
        chain_description=config.chain_description,
    )


def display_header() -> None:
    print("Listening Lab")
    print("=============")
    print("Connecting to Roon...\n")


async def run_interactive(config: ListeningLabConfig, connection: RoonConnection) -> int:
    """
    Pair (bounded wait) and run the prompt loop.

    Args:
        config: Loaded configuration
        connection: Unconnected RoonConnection

    Returns:
        Exit code from the prompt loop
    """
    session = Session()
    dispatcher = CommandDispatcher(
        session,
        BrowseWalker(connection),
        PlaybackController(connection, session),
        build_coach(config),
    )
    history = CommandHistory(config.history_file, config.history_size)
    install_readline(history.load(), dispatcher.completion_candidates)
    pump = ZoneEventPump(connection.events, session, listener=dispatcher.report_connection_event)

    display_header()
    try:
        connected = await connection.connect(config.connect_timeout)
    except RoonError:
        # Reported from the event queue below.
        connected = False

    pump.drain()
    if not connected and session.connection_error is None:
        print("Waiting for Roon connection... (approve in Roon Settings > Extensions)")

    print('Type "help" for commands\n')
    return await Repl(dispatcher, pump, history).run()


async def async_main(args: argparse.Namespace) -> int:
    """
    Async main function.

    Args:
        args: Parsed CLI arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    config = ListeningLabConfig.from_environment()
    if args.connect_timeout is not None:
        config.connect_timeout = args.connect_timeout
        config.single_play_timeout = args.connect_timeout
        config.validate()
    logger.debug(f"Loaded {config!r}")

    connection = RoonConnection(config.to_roon_config())
    try:
        if args.query:
            return await run_single_play(args.query, connection, config.single_play_timeout)
        return await run_interactive(config, connection)
    finally:
        await connection.close()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)

    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 1
    except Exception as e:
        logger.debug("Fatal error in CLI", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
