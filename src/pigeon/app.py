# =============================================================================
# Pigeon Main Application
# =============================================================================
# Command-line entry point. Wires the pieces together:
#
#   Config.load() -> Settings -> PollManager(ConsoleNotifier, KeyringCredentials)
#                                    └── HistoryStore(Database)
#
# and runs the poller until SIGINT/SIGTERM, or for a single round with
# --once.
# =============================================================================

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from pigeon import __version__, __app_name__
from pigeon.config import Config, ConfigError, Settings, print_paths
from pigeon.credentials import KeyringCredentials
from pigeon.notify import ConsoleNotifier
from pigeon.storage import Database, HistoryStore
from pigeon.sync import PollManager

logger = logging.getLogger(__name__)


async def run(config: Config, *, once: bool = False, db_path: Path | None = None) -> int:
    """
    Run the poller.

    Args:
        config: Loaded configuration.
        once: Poll every account a single time, then exit.
        db_path: History database location (defaults to the XDG data dir).

    Returns:
        Exit code.
    """
    settings = Settings(config.options)
    notifier = ConsoleNotifier(settings)

    db = Database(db_path)
    await db.connect()

    manager = PollManager(
        settings,
        notifier,
        credentials=KeyringCredentials(),
        history_store=HistoryStore(db),
    )

    try:
        await manager.start(config.accounts.values(), poll_now=not once)
        if not manager.accounts:
            print("No enabled accounts configured. "
                  f"Add some to {Config.config_file_path()}", file=sys.stderr)
            return 1

        if once:
            await manager.check_all()
            return 0

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, stop.set)
        try:
            await stop.wait()
        finally:
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(signum)
        return 0

    finally:
        await manager.stop()
        await db.close()


# =============================================================================
# CLI Entry Point
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="Pigeon: get notified about new mail",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Check every account once and exit",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Pigeon.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration
        4. Runs the poller

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)

    if args.paths:
        print_paths()
        return 0

    setup_logging(args.debug)

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    try:
        return asyncio.run(run(config, once=args.once))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
