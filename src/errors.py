"""Exception hierarchy for the scenario harness.

Every failure a scenario can report derives from ``HarnessError`` and carries a
short ``kind`` string used in scenario reports. The four families are:

- ``ParseError``: the step text itself is wrong (authoring bug, never retried)
- ``PipelineError``: the pipeline could not be built, driven or inspected
- ``AssertionFailure``: the expected, reportable test-failure path
- ``TeardownWarning``: secondary problems while releasing resources
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence


class HarnessError(Exception):
    """Base class for all harness errors."""

    kind = "harness_error"


class FeatureLoadError(HarnessError):
    """Raised when a feature file cannot be read or parsed."""

    kind = "feature_load_error"

    def __init__(self, path: Any, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not load feature {path}: {reason}")


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(HarnessError):
    """Step text could not be turned into an action."""

    kind = "parse_error"

    def __init__(self, text: str, message: str) -> None:
        self.text = text
        super().__init__(message)


class UnrecognizedStep(ParseError):
    """No step template matches the given line."""

    kind = "unrecognized_step"

    def __init__(self, text: str) -> None:
        super().__init__(text, f"Unrecognized step: {text!r}")


class MalformedParameter(ParseError):
    """A template matched but one of its placeholders has the wrong type."""

    kind = "malformed_parameter"

    def __init__(self, text: str, parameter: str, reason: str) -> None:
        self.parameter = parameter
        self.reason = reason
        super().__init__(text, f"Malformed parameter {parameter!r} in {text!r}: {reason}")


class AmbiguousStep(ParseError):
    """More than one template matched; indicates a broken grammar."""

    kind = "ambiguous_step"

    def __init__(self, text: str, templates: Sequence[str]) -> None:
        self.templates = list(templates)
        super().__init__(text, f"Step {text!r} matches several templates: {', '.join(templates)}")


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------


class PipelineError(HarnessError):
    """Failure while building, driving or inspecting the pipeline."""

    kind = "pipeline_error"


class BackendUnavailable(PipelineError):
    """The media framework bindings could not be loaded."""

    kind = "backend_unavailable"


class PipelineNotConfigured(PipelineError):
    kind = "pipeline_not_configured"

    def __init__(self) -> None:
        super().__init__("Pipeline not configured yet")


class InvalidPipelineDescription(PipelineError):
    kind = "invalid_pipeline_description"

    def __init__(self, description: str, reason: str) -> None:
        self.description = description
        self.reason = reason
        super().__init__(f"Invalid pipeline description '{description}': {reason}")


class StateChangeTimeout(PipelineError):
    """The pipeline did not reach the requested state in time."""

    kind = "state_change_timeout"

    def __init__(self, state: str, timeout: float) -> None:
        self.state = state
        self.timeout = timeout
        super().__init__(f"Pipeline did not reach state {state} within {timeout:.1f}s")


class StateChangeFailure(PipelineError):
    """The pipeline refused the requested state change."""

    kind = "state_change_failure"

    def __init__(self, state: str, reason: Optional[str] = None) -> None:
        self.state = state
        self.reason = reason
        message = f"Unable to set pipeline state to {state}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class UnknownElement(PipelineError):
    kind = "unknown_element"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Could not find element: {name}")


class NoSuchProperty(PipelineError):
    kind = "no_such_property"

    def __init__(self, element: str, prop: str) -> None:
        self.element = element
        self.prop = prop
        super().__init__(f"Element {element} has no property {prop!r}")


class TypeMismatch(PipelineError):
    """A property value cannot be converted to the property's declared type."""

    kind = "type_mismatch"

    def __init__(self, element: str, prop: str, value: str, expected: str) -> None:
        self.element = element
        self.prop = prop
        self.value = value
        self.expected = expected
        super().__init__(f"Cannot set {element}::{prop} to {value!r}: expected {expected}")


class NoFrameAvailable(PipelineError):
    kind = "no_frame_available"

    def __init__(self, element: str, reason: str = "no frame rendered yet") -> None:
        self.element = element
        self.reason = reason
        super().__init__(f"No frame available on {element}: {reason}")


class ScenarioStateError(PipelineError):
    """A step was issued in a scenario phase that does not allow it."""

    kind = "scenario_state_error"


class ValidationNotActive(PipelineError):
    kind = "validation_not_active"

    def __init__(self) -> None:
        super().__init__("Validate hasn't been activated")


# ---------------------------------------------------------------------------
# Assertion failures
# ---------------------------------------------------------------------------


class AssertionFailure(HarnessError):
    """An assertion step observed something other than what it expected."""

    kind = "assertion_failure"


class FrameNotVisible(AssertionFailure):
    kind = "frame_not_visible"

    def __init__(self, element: str, reason: str) -> None:
        self.element = element
        self.reason = reason
        super().__init__(f"No visible frame on {element}: {reason}")


class ColorNotSignificant(AssertionFailure):
    """The expected color never covered enough of the frame."""

    kind = "color_not_significant"

    def __init__(
        self,
        element: str,
        color: str,
        observed: float,
        threshold: float,
        timeout: float,
        dominant: Optional[List[tuple]] = None,
    ) -> None:
        self.element = element
        self.color = color
        self.observed = observed
        self.threshold = threshold
        self.timeout = timeout
        self.dominant = dominant or []
        observed_colors = ", ".join(f"{name}={fraction:.1%}" for name, fraction in self.dominant)
        message = (
            f"Timeout reached, color {color} not detected on {element} after {timeout:.1f} seconds "
            f"(best fraction {observed:.1%}, threshold {threshold:.0%})"
        )
        if observed_colors:
            message += f"; observed {observed_colors}"
        super().__init__(message)


class PropertyMismatch(AssertionFailure):
    kind = "property_mismatch"

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"{path}={actual} != {expected}")


class ValidationFailed(AssertionFailure):
    """Validation issues were reported where none were expected."""

    kind = "validation_failed"

    def __init__(self, issues: Sequence[Any], dropped: int = 0) -> None:
        self.issues = list(issues)
        self.dropped = dropped
        lines = [f"  - {issue}" for issue in self.issues]
        if dropped:
            lines.append(f"  - ... {dropped} more issue(s) dropped (issue queue full)")
        super().__init__(
            f"Reported issues: {len(self.issues) + dropped}\n" + "\n".join(lines)
        )


# ---------------------------------------------------------------------------
# Teardown
# ---------------------------------------------------------------------------


class TeardownWarning(HarnessError):
    """Non-fatal problem while releasing scenario resources."""

    kind = "teardown_warning"

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed during teardown: {cause}")
