"""Utility modules for polling and logging."""

from .logging_factory import LoggingFactory, get_logger
from .retry import PollConfig, PollTimeoutError, poll_until

__all__ = [
    "LoggingFactory",
    "PollConfig",
    "PollTimeoutError",
    "get_logger",
    "poll_until",
]
