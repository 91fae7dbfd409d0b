"""Process-wide logging setup for scenario runs.

Every run writes ``<log_dir>/harness.log`` with one shared format; the CLI
adds a rich console handler on top of it. Component loggers (steps, scenario,
pipeline, analysis, validation) are switched together between INFO and DEBUG.

Usage:
    LoggingFactory.initialize(log_dir=Path("logs"), level=logging.INFO, to_console=False)

    logger = get_logger(__name__)
    logger.info("Scenario started")
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

# Loggers of the harness components; verbosity switches apply to all of them.
COMPONENT_LOGGERS = (
    "src",
    "src.steps",
    "src.scenario",
    "src.pipeline",
    "src.analysis",
    "src.validation",
)


class LoggingFactory:
    """Factory for creating and configuring loggers consistently.

    Class Attributes:
        _initialized: Flag to ensure single initialization
        _log_dir: Directory path where log files are stored
    """

    _initialized = False
    _log_dir = Path("logs")
    _log_file_name = "harness.log"
    _handlers: list[logging.Handler] = []

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[Path] = None,
        level: int = logging.INFO,
        format_string: Optional[str] = None,
        to_console: bool = True,
    ) -> None:
        """Initialize the logging system once for the whole process.

        Only the first call has an effect. Configures the root logger with a
        file handler (``<log_dir>/harness.log``) and, unless disabled, a
        console handler.

        Args:
            log_dir: Directory for log files. If None, uses "logs" in current directory.
            level: Default logging level for root logger.
            format_string: Custom format string for log messages.
            to_console: Also log to stderr.
        """
        if cls._initialized:
            return

        if log_dir:
            cls._log_dir = Path(log_dir)

        cls._log_dir.mkdir(parents=True, exist_ok=True)

        if format_string is None:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

        handlers: list[logging.Handler] = [logging.FileHandler(cls._log_dir / cls._log_file_name)]
        if to_console:
            handlers.append(logging.StreamHandler())

        root = logging.getLogger()
        formatter = logging.Formatter(format_string)
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        root.setLevel(level)
        cls._handlers = handlers

        # Pipeline internals are chatty; keep them at INFO unless verbose.
        logging.getLogger("src.pipeline").setLevel(logging.INFO)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a configured logger, initializing with defaults on first use.

        Args:
            name: Module name for the logger, typically ``__name__``.

        Returns:
            Configured logger instance ready for use.
        """
        if not cls._initialized:
            cls.initialize()

        return logging.getLogger(name)

    @classmethod
    def set_level(cls, name: str, level: int) -> None:
        """Set the logging level for a specific logger."""
        logging.getLogger(name).setLevel(level)

    @classmethod
    def configure_verbose(cls, verbose: bool = False) -> None:
        """Switch the root and all component loggers between DEBUG and INFO."""
        level = logging.DEBUG if verbose else logging.INFO

        logging.getLogger().setLevel(level)
        for name in COMPONENT_LOGGERS:
            logging.getLogger(name).setLevel(level)

    @classmethod
    def reset(cls) -> None:
        """Detach the handlers added by initialize and forget it (used by tests)."""
        root = logging.getLogger()
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []
        cls._initialized = False
        cls._log_dir = Path("logs")


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for the given module name.

    Convenience wrapper around :meth:`LoggingFactory.get_logger`.
    """
    return LoggingFactory.get_logger(name)
