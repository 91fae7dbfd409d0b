"""Validation issue collection and verdicts."""

from .aggregator import IssueChannel, ValidationAggregator

__all__ = ["IssueChannel", "ValidationAggregator"]
