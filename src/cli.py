"""Command line entry point for running pipeline scenarios."""
from __future__ import annotations

import logging
import sys
from typing import List, Optional

from .commands import EXIT_USAGE, create_parser, run_command, setup_logging, steps_command
from .config import get_config
from .ui.console import ConsoleManager

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for failed scenarios, 2 for usage errors)
    """
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help and --version exit with 0, usage errors with 2
        return int(e.code or 0)

    try:
        setup_logging(args.verbose)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE

    console_manager = ConsoleManager(verbose=args.verbose, json_output=args.json_output)
    if get_config().log_to_console:
        console_manager.setup_logging(logging.getLogger("src"))

    try:
        if args.command == "run":
            return run_command(args, console_manager)
        elif args.command == "steps":
            return steps_command(args, console_manager)
        else:
            parser.print_help()
            return EXIT_USAGE
    except KeyboardInterrupt:
        logger.error("Operation cancelled by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
