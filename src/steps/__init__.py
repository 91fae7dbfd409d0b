"""Step phrase grammar and the typed actions it produces."""

from .actions import (
    ACTION_TYPES,
    Action,
    ActivateValidation,
    AssertFrameVisible,
    AssertNoValidationIssue,
    AssertSignificantColor,
    ChangeState,
    CheckProperty,
    ConfigureValidation,
    PropertyPath,
    SetPipeline,
    SetProperty,
    StateTransition,
    Wait,
)
from .parser import DEFAULT_TEMPLATES, PhraseParser, StepTemplate, parse_step

__all__ = [
    "ACTION_TYPES",
    "Action",
    "ActivateValidation",
    "AssertFrameVisible",
    "AssertNoValidationIssue",
    "AssertSignificantColor",
    "ChangeState",
    "CheckProperty",
    "ConfigureValidation",
    "DEFAULT_TEMPLATES",
    "PhraseParser",
    "PropertyPath",
    "SetPipeline",
    "SetProperty",
    "StateTransition",
    "StepTemplate",
    "Wait",
    "parse_step",
]
