"""Shared CLI utilities and argument parser."""
from __future__ import annotations

import argparse
import logging
from typing import Optional

from .. import __version__
from ..config import HarnessConfig, get_config
from ..utils.logging_factory import LoggingFactory

# Exit status for usage errors and unloadable feature files
EXIT_USAGE = 2

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, config: Optional[HarnessConfig] = None) -> None:
    """Setup logging configuration based on verbosity level.

    Args:
        verbose: If True, set to DEBUG level; otherwise the configured level
        config: Harness configuration providing log directory and level
    """
    config = config or get_config()
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    LoggingFactory.initialize(log_dir=config.log_dir, level=level, to_console=False)
    LoggingFactory.configure_verbose(verbose)
    if not verbose:
        LoggingFactory.set_level("", level)
        LoggingFactory.set_level("src", level)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="media-pipeline-bdd",
        description="Behavior-driven scenarios for GStreamer pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Run every scenario of a feature file
  media-pipeline-bdd run features/colors.feature

  # Run a directory of features, only scenarios tagged @smoke
  media-pipeline-bdd run features/ --tags @smoke

  # Fail scenarios on validation issues nobody asserted on
  media-pipeline-bdd run features/ --strict-validation

  # Machine-readable results for CI
  media-pipeline-bdd --json-output run features/ > results.jsonl

  # List the recognized step phrases
  media-pipeline-bdd steps

Environment:
  HARNESS_STATE_CHANGE_TIMEOUT   seconds to wait for play/stop (default 10)
  HARNESS_FRAME_TIMEOUT          seconds to wait for a first frame (default 5)
  HARNESS_COLOR_TIMEOUT          seconds to wait for a significant color (default 5)
  HARNESS_STRICT_VALIDATION      fail on unchecked validation issues (default false)
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Emit machine-readable JSON events to stderr/stdout",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    # Run subcommand
    run_parser = subparsers.add_parser(
        "run",
        help="Run scenarios from feature files",
        description="Run the scenarios of one or more feature files (directories are searched recursively)",
    )
    run_parser.add_argument("features", nargs="+", help="Feature files or directories")
    run_parser.add_argument(
        "--tags",
        nargs="+",
        default=None,
        help="Only run scenarios carrying one of these tags (prefix with ~ to exclude)",
    )
    run_parser.add_argument(
        "--fail-fast", action="store_true", help="Stop after the first failing scenario"
    )
    run_parser.add_argument(
        "--strict-validation",
        action="store_true",
        default=None,
        help="Fail scenarios whose validation issues were never asserted on",
    )

    # Steps subcommand
    subparsers.add_parser(
        "steps",
        help="List recognized step phrases",
        description="Print the step vocabulary understood by the harness",
    )

    return parser
