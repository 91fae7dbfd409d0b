"""Command modules for the CLI."""

from .cli_utils import EXIT_USAGE, __version__, create_parser, setup_logging
from .run_command import run_command
from .steps_command import steps_command

__all__ = [
    "EXIT_USAGE",
    "__version__",
    "create_parser",
    "run_command",
    "setup_logging",
    "steps_command",
]
