"""Command line entry point for homestack."""

import argparse
import asyncio
import os
import sys

from dotenv import find_dotenv, load_dotenv

from homestack.constants import EXIT_FAILURE, EXIT_INTERRUPTED
from homestack.core.exceptions import HomestackError
from homestack.core.logging_config import get_logger, setup_logging
from homestack.core.settings import FanOutMode, load_settings
from homestack.services.dispatcher import Dispatcher


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    load_dotenv(find_dotenv(usecwd=True))

    parser = argparse.ArgumentParser(
        prog="homestack",
        usage="%(prog)s [options] [stack] <command> [args...]",
        description="Run docker compose lifecycle commands across self-hosted stacks",
        epilog="Run '%(prog)s help' for the list of commands.",
    )
    parser.add_argument("--root", default=None, help="Stacks root directory (HOMESTACK_ROOT)")
    parser.add_argument(
        "--fan-out",
        default=None,
        choices=[mode.value for mode in FanOutMode],
        help="Policy when a verb is applied to every stack (HOMESTACK_FAN_OUT)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Also log to this directory")
    parser.add_argument("tokens", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)

    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Run homestack and return the process exit code."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level, log_dir=args.log_dir)
    logger = get_logger()

    try:
        # Configuration errors abort before anything is dispatched
        settings = load_settings(root=args.root, fan_out=args.fan_out)
        return asyncio.run(Dispatcher(settings).run(args.tokens))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED
    except HomestackError as e:
        logger.debug("Command failed", error_type=type(e).__name__, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


def main() -> None:
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
