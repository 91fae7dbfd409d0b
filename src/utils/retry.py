"""Bounded polling utilities for waiting on pipeline-side conditions."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PollConfig:
    """Configuration for polling behavior.

    Attributes:
        timeout: Total time in seconds before giving up
        interval: Delay in seconds between attempts
        retriable_exceptions: Exception types that mean "not ready yet"
    """

    timeout: float = 5.0
    interval: float = 0.1
    retriable_exceptions: Tuple[Type[Exception], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.timeout < 0:
            raise ValueError("timeout must be non-negative")
        if self.interval <= 0:
            raise ValueError("interval must be positive")


class PollTimeoutError(Exception):
    """Raised when a polled condition did not hold before the deadline.

    Attributes:
        attempts: Number of attempts made
        elapsed: Seconds spent polling
        last_exception: The last retriable exception, if any
    """

    def __init__(self, attempts: int, elapsed: float, last_exception: Optional[Exception] = None) -> None:
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_exception = last_exception
        message = f"Condition not met after {attempts} attempts over {elapsed:.2f}s"
        if last_exception is not None:
            message += f". Last error: {last_exception}"
        super().__init__(message)


def poll_until(
    func: Callable[[], T],
    config: PollConfig,
    predicate: Optional[Callable[[T], bool]] = None,
    description: str = "condition",
) -> T:
    """Call ``func`` until it returns an accepted value or the deadline passes.

    ``func`` is always called at least once, so a zero timeout means a single
    attempt. Exceptions listed in ``config.retriable_exceptions`` count as a
    failed attempt; anything else propagates immediately.

    Args:
        func: Zero-argument callable producing a value
        config: Polling configuration
        predicate: Optional acceptance test for the value (default: any value)
        description: Human-readable name used in log messages

    Returns:
        The first accepted value

    Raises:
        PollTimeoutError: If no accepted value was produced in time
    """
    start = time.monotonic()
    deadline = start + config.timeout
    attempts = 0
    last_exception: Optional[Exception] = None

    while True:
        attempts += 1
        try:
            value = func()
        except config.retriable_exceptions as exc:
            last_exception = exc
            logger.debug(f"Waiting for {description} (attempt {attempts}): {exc}")
        else:
            if predicate is None or predicate(value):
                return value
            last_exception = None

        now = time.monotonic()
        if now >= deadline:
            raise PollTimeoutError(attempts, now - start, last_exception)
        time.sleep(min(config.interval, max(0.0, deadline - now)))
