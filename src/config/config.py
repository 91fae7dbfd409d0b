"""Harness configuration loaded from environment variables."""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _parse_bool(value: str | bool | None) -> bool:
    """Parse boolean value from various formats."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    return bool(value)


def _getenv(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.getenv(key, default)


def _getenv_int(key: str, default: int) -> int:
    """Get integer environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Parsed integer value

    Raises:
        ValueError: If value cannot be parsed as integer
    """
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid integer value for {key}='{value}'. "
            f"Expected integer, got: {value}"
        ) from e


def _getenv_float(key: str, default: float) -> float:
    """Get float environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Parsed float value

    Raises:
        ValueError: If value cannot be parsed as float
    """
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid float value for {key}='{value}'. "
            f"Expected float, got: {value}"
        ) from e


def load_environment(env_file: Optional[Path] = None) -> Optional[Path]:
    """Load a ``.env`` file into the process environment.

    Existing variables are never overridden. Searches the current directory,
    its parent and the home directory unless ``env_file`` is given.

    Returns:
        The file that was loaded, or None.
    """
    candidates = [env_file] if env_file else [Path(".env"), Path("../.env"), Path.home() / ".env"]
    for env_path in candidates:
        if env_path is not None and env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")
            return env_path
    return None


@dataclass
class HarnessConfig:
    """Harness configuration loaded from environment variables."""

    # ========== Pipeline Driving ==========
    state_change_timeout: float = field(
        default_factory=lambda: _getenv_float("HARNESS_STATE_CHANGE_TIMEOUT", 10.0)
    )

    # ========== Frame Sampling ==========
    frame_timeout: float = field(default_factory=lambda: _getenv_float("HARNESS_FRAME_TIMEOUT", 5.0))
    frame_poll_interval: float = field(
        default_factory=lambda: _getenv_float("HARNESS_FRAME_POLL_INTERVAL", 0.1)
    )
    color_timeout: float = field(default_factory=lambda: _getenv_float("HARNESS_COLOR_TIMEOUT", 5.0))
    color_stable_duration: float = field(
        default_factory=lambda: _getenv_float("HARNESS_COLOR_STABLE_DURATION", 1.0)
    )

    # ========== Validation ==========
    issue_queue_size: int = field(default_factory=lambda: _getenv_int("HARNESS_ISSUE_QUEUE_SIZE", 1024))
    strict_validation: bool = field(
        default_factory=lambda: _parse_bool(_getenv("HARNESS_STRICT_VALIDATION", "false"))
    )
    validate_config_dir: Path = field(
        default_factory=lambda: Path(_getenv("HARNESS_VALIDATE_CONFIG_DIR", tempfile.gettempdir()))
    )

    # ========== Logging ==========
    log_level: str = field(default_factory=lambda: _getenv("LOG_LEVEL", "INFO").upper())
    log_dir: Path = field(default_factory=lambda: Path(_getenv("LOG_DIR", "logs")))
    log_to_console: bool = field(default_factory=lambda: _parse_bool(_getenv("LOG_TO_CONSOLE", "true")))

    def validate(self) -> None:
        """Check that all values are usable.

        Raises:
            ValueError: If a value is out of range
        """
        if self.state_change_timeout <= 0:
            raise ValueError("state_change_timeout must be positive")
        if self.frame_timeout < 0:
            raise ValueError("frame_timeout must be non-negative")
        if self.frame_poll_interval <= 0:
            raise ValueError("frame_poll_interval must be positive")
        if self.color_timeout < 0:
            raise ValueError("color_timeout must be non-negative")
        if self.color_stable_duration < 0:
            raise ValueError("color_stable_duration must be non-negative")
        if self.color_stable_duration > self.color_timeout:
            raise ValueError("color_stable_duration must not exceed color_timeout")
        if self.issue_queue_size < 1:
            raise ValueError("issue_queue_size must be at least 1")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {self.log_level}")

    def with_overrides(self, **overrides: Any) -> "HarnessConfig":
        """Return a copy with the given fields replaced (None values ignored)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


# Singleton instance with thread-safe initialization
_config_instance: Optional[HarnessConfig] = None
_config_lock = threading.Lock()


def get_config() -> HarnessConfig:
    """Get global config instance (singleton pattern, thread-safe)."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            # Double-check pattern to prevent race conditions
            if _config_instance is None:
                load_environment()
                _config_instance = HarnessConfig()
    return _config_instance


def reset_config() -> None:
    """Drop the cached instance so the next ``get_config`` re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
