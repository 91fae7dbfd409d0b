"""Closed grammar of step phrases.

Each :class:`StepTemplate` pairs a regular expression with a builder that turns
the captured placeholders into exactly one :class:`~src.steps.actions.Action`.
Templates have distinct literal shapes, so at most one can match a line.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..analysis.color_analyzer import known_color_names, normalize_color_name
from ..errors import AmbiguousStep, MalformedParameter, UnrecognizedStep
from .actions import (
    WAIT_UNITS,
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

logger = logging.getLogger(__name__)

_KEYWORD_PREFIX = re.compile(r"^(?:Given|When|Then|And|But|\*)\s+")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")
_DIGITS = re.compile(r"[0-9]+")

Builder = Callable[[str, "re.Match"], Action]


@dataclass(frozen=True)
class StepTemplate:
    """One recognized step phrase."""

    name: str
    pattern: "re.Pattern[str]"
    builder: Builder
    usage: str

    def match(self, text: str) -> Optional["re.Match"]:
        return self.pattern.match(text)


def _identifier(text: str, parameter: str, value: str) -> str:
    if not _IDENTIFIER.match(value):
        raise MalformedParameter(text, parameter, f"{value!r} is not a valid element name")
    return value


def _property_path(text: str, value: str) -> PropertyPath:
    try:
        path = PropertyPath.parse(value)
    except ValueError as exc:
        raise MalformedParameter(text, "property", str(exc)) from exc
    _identifier(text, "element", path.element)
    return path


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _non_empty(text: str, parameter: str, value: str) -> str:
    if not value.strip():
        raise MalformedParameter(text, parameter, "must not be empty")
    return value


def _build_pipeline(text: str, match: "re.Match") -> Action:
    return SetPipeline(description=_non_empty(text, "description", match.group("description")))


def _build_validate_config(text: str, match: "re.Match") -> Action:
    return ConfigureValidation(config=_non_empty(text, "config", match.group("config")))


def _build_activate(text: str, match: "re.Match") -> Action:
    return ActivateValidation()


def _build_state(text: str, match: "re.Match") -> Action:
    verb = match.group("verb")
    try:
        transition = StateTransition(verb)
    except ValueError as exc:
        choices = ", ".join(t.value for t in StateTransition)
        raise MalformedParameter(
            text, "state", f"invalid state name {verb!r}, expected one of: {choices}"
        ) from exc
    return ChangeState(transition=transition)


def _build_set_property(text: str, match: "re.Match") -> Action:
    return SetProperty(path=_property_path(text, match.group("path")), value=_unquote(match.group("value")))


def _build_check_property(text: str, match: "re.Match") -> Action:
    return CheckProperty(path=_property_path(text, match.group("path")), value=_unquote(match.group("value")))


def _build_wait(text: str, match: "re.Match") -> Action:
    amount = match.group("amount")
    unit = match.group("unit").lower()
    if not _DIGITS.fullmatch(amount):
        raise MalformedParameter(text, "duration", f"{amount!r} is not a non-negative integer")
    if unit not in WAIT_UNITS:
        raise MalformedParameter(
            text, "unit", f"invalid unit {unit!r}, only [min, sec, ms, us] are supported"
        )
    return Wait(amount=int(amount), unit=unit)


def _build_frame(text: str, match: "re.Match") -> Action:
    return AssertFrameVisible(element=_identifier(text, "element", match.group("element")))


def _build_color(text: str, match: "re.Match") -> Action:
    color = normalize_color_name(match.group("color"))
    if color is None:
        raise MalformedParameter(
            text,
            "color",
            f"unknown color {match.group('color')!r}, known colors: {', '.join(known_color_names())}",
        )
    return AssertSignificantColor(color=color, element=_identifier(text, "element", match.group("element")))


def _build_no_issue(text: str, match: "re.Match") -> Action:
    return AssertNoValidationIssue()


DEFAULT_TEMPLATES: Sequence[StepTemplate] = (
    StepTemplate(
        "pipeline",
        re.compile(r"^Pipeline is '(?P<description>.*)'$"),
        _build_pipeline,
        "Pipeline is '<description>'",
    ),
    StepTemplate(
        "validate-configuration",
        re.compile(r"^The validate configuration '(?P<config>.*)'$"),
        _build_validate_config,
        "The validate configuration '<config>'",
    ),
    StepTemplate(
        "validate-activate",
        re.compile(r"^Validate is activated$"),
        _build_activate,
        "Validate is activated",
    ),
    StepTemplate(
        "state",
        re.compile(r"^I (?P<verb>\S+) the pipeline$"),
        _build_state,
        "I <play|stop|pause|prepare> the pipeline",
    ),
    StepTemplate(
        "set-property",
        re.compile(r"^I set property (?P<path>\S+) to (?P<value>.+)$"),
        _build_set_property,
        "I set property <element>::<property> to <value>",
    ),
    StepTemplate(
        "check-property",
        re.compile(r"^Property (?P<path>\S+) equals (?P<value>.+)$"),
        _build_check_property,
        "Property <element>::<property> equals <value>",
    ),
    StepTemplate(
        "wait",
        re.compile(r"^I wait for (?P<amount>\S+) (?P<unit>\S+)$"),
        _build_wait,
        "I wait for <N> <min|sec|ms|us>",
    ),
    StepTemplate(
        "frame-visible",
        re.compile(r"^The user can see a frame on (?P<element>\S+)$"),
        _build_frame,
        "The user can see a frame on <element>",
    ),
    StepTemplate(
        "significant-color",
        re.compile(r"^I should see significant color (?P<color>\S+) on (?P<element>\S+)$"),
        _build_color,
        "I should see significant color <color> on <element>",
    ),
    StepTemplate(
        "no-validation-issue",
        re.compile(r"^Validate should not report any issue$"),
        _build_no_issue,
        "Validate should not report any issue",
    ),
)


class PhraseParser:
    """Turns a line of scenario text into a typed action."""

    def __init__(self, templates: Optional[Sequence[StepTemplate]] = None):
        self.templates: List[StepTemplate] = list(templates or DEFAULT_TEMPLATES)

    @staticmethod
    def strip_keyword(line: str) -> str:
        """Remove a leading Gherkin keyword (``Given``, ``And``, ...)."""
        return _KEYWORD_PREFIX.sub("", line.strip(), count=1)

    def parse(self, line: str) -> Action:
        """Parse one step line.

        Args:
            line: Step text, with or without its Gherkin keyword

        Returns:
            The matching action

        Raises:
            UnrecognizedStep: If no template matches
            MalformedParameter: If a placeholder has the wrong type
            AmbiguousStep: If several templates match
        """
        text = self.strip_keyword(line)
        matches = []
        for template in self.templates:
            match = template.match(text)
            if match:
                matches.append((template, match))

        if not matches:
            raise UnrecognizedStep(text)
        if len(matches) > 1:
            raise AmbiguousStep(text, [template.name for template, _ in matches])

        template, match = matches[0]
        action = template.builder(text, match)
        logger.debug(f"Parsed {text!r} as {type(action).__name__} via {template.name}")
        return action

    def usages(self) -> List[str]:
        return [template.usage for template in self.templates]


_default_parser = PhraseParser()


def parse_step(line: str) -> Action:
    """Parse ``line`` with the default grammar."""
    return _default_parser.parse(line)
