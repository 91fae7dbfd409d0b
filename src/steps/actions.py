"""Typed actions produced by the phrase parser.

Each action is an immutable value and knows how to render its canonical step
phrase, so ``parser.parse(action.phrase()) == action`` for every action.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

# Seconds per unit accepted by the wait step.
WAIT_UNITS: Dict[str, float] = {
    "min": 60.0,
    "mins": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "sec": 1.0,
    "secs": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "ms": 1e-3,
    "millisecond": 1e-3,
    "milliseconds": 1e-3,
    "us": 1e-6,
    "microsecond": 1e-6,
    "microseconds": 1e-6,
}


class StateTransition(Enum):
    """Pipeline state requests understood by ``I <verb> the pipeline``."""

    PLAY = "play"
    STOP = "stop"
    PAUSE = "pause"
    PREPARE = "prepare"


@dataclass(frozen=True)
class PropertyPath:
    """``element::prop`` or ``element::child::prop`` reference."""

    element: str
    properties: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "PropertyPath":
        """Split a ``::`` separated path.

        Raises:
            ValueError: If the path has fewer than two segments or an empty one
        """
        tokens = text.split("::")
        if len(tokens) < 2:
            raise ValueError("expected <element>::<property>")
        if any(not token for token in tokens):
            raise ValueError("empty segment in property path")
        return cls(element=tokens[0], properties=tuple(tokens[1:]))

    @property
    def name(self) -> str:
        """Name of the property that is finally read or written."""
        return self.properties[-1]

    def __str__(self) -> str:
        return "::".join((self.element,) + self.properties)


def quote_value(value: str) -> str:
    """Quote a property value when it would not survive reparsing bare."""
    if value and not any(ch.isspace() for ch in value) and value[0] not in "'\"":
        return value
    quote = "'" if '"' in value else '"'
    return f"{quote}{value}{quote}"


class Action:
    """Base class of all step actions."""

    keyword = "When"

    def phrase(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.phrase()


@dataclass(frozen=True)
class ConfigureValidation(Action):
    config: str
    keyword = "Given"

    def phrase(self) -> str:
        return f"The validate configuration '{self.config}'"


@dataclass(frozen=True)
class SetPipeline(Action):
    description: str
    keyword = "Given"

    def phrase(self) -> str:
        return f"Pipeline is '{self.description}'"


@dataclass(frozen=True)
class ActivateValidation(Action):
    keyword = "Given"

    def phrase(self) -> str:
        return "Validate is activated"


@dataclass(frozen=True)
class ChangeState(Action):
    transition: StateTransition

    def phrase(self) -> str:
        return f"I {self.transition.value} the pipeline"


@dataclass(frozen=True)
class SetProperty(Action):
    path: PropertyPath
    value: str

    def phrase(self) -> str:
        return f"I set property {self.path} to {quote_value(self.value)}"


@dataclass(frozen=True)
class CheckProperty(Action):
    path: PropertyPath
    value: str
    keyword = "Then"

    def phrase(self) -> str:
        return f"Property {self.path} equals {quote_value(self.value)}"


@dataclass(frozen=True)
class Wait(Action):
    amount: int
    unit: str

    @property
    def seconds(self) -> float:
        return self.amount * WAIT_UNITS[self.unit]

    def phrase(self) -> str:
        return f"I wait for {self.amount} {self.unit}"


@dataclass(frozen=True)
class AssertFrameVisible(Action):
    element: str
    keyword = "Then"

    def phrase(self) -> str:
        return f"The user can see a frame on {self.element}"


@dataclass(frozen=True)
class AssertSignificantColor(Action):
    color: str
    element: str
    keyword = "Then"

    def phrase(self) -> str:
        return f"I should see significant color {self.color} on {self.element}"


@dataclass(frozen=True)
class AssertNoValidationIssue(Action):
    keyword = "Then"

    def phrase(self) -> str:
        return "Validate should not report any issue"


ACTION_TYPES: Tuple[type, ...] = (
    ConfigureValidation,
    SetPipeline,
    ActivateValidation,
    ChangeState,
    SetProperty,
    CheckProperty,
    Wait,
    AssertFrameVisible,
    AssertSignificantColor,
    AssertNoValidationIssue,
)
