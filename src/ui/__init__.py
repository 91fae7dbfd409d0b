"""Console output for scenario runs."""

from .console import ConsoleManager

__all__ = ["ConsoleManager"]
