"""Configuration management for the scenario harness."""

from .config import HarnessConfig, get_config, load_environment, reset_config

__all__ = ["HarnessConfig", "get_config", "load_environment", "reset_config"]
