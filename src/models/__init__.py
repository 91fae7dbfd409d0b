"""Data models for the scenario harness.

This module provides data structures for sampled frames, color samples,
validation issues and the results of executed steps and scenarios.
"""

from .media import ColorSample, Frame, ValidationIssue
from .results import (
    FeatureResult,
    RunSummary,
    ScenarioResult,
    ScenarioStatus,
    StepOutcome,
    StepStatus,
)

__all__ = [
    "ColorSample",
    "FeatureResult",
    "Frame",
    "RunSummary",
    "ScenarioResult",
    "ScenarioStatus",
    "StepOutcome",
    "StepStatus",
    "ValidationIssue",
]
