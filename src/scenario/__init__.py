"""Scenario execution: context, step executor, runner and feature loading."""

from .context import ScenarioContext
from .executor import HANDLERS, StepExecutor
from .features import (
    FeatureDefinition,
    ScenarioDefinition,
    StepDefinition,
    discover_features,
    load_feature,
    parse_feature_text,
)
from .runner import ScenarioRunner

__all__ = [
    "HANDLERS",
    "FeatureDefinition",
    "ScenarioContext",
    "ScenarioDefinition",
    "ScenarioRunner",
    "StepDefinition",
    "StepExecutor",
    "discover_features",
    "load_feature",
    "parse_feature_text",
]
