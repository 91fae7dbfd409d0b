"""Execution of parsed step actions against a scenario context."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from ..errors import HarnessError, PipelineError, PropertyMismatch
from ..models.results import StepOutcome, StepStatus
from ..steps.actions import (
    Action,
    ActivateValidation,
    AssertFrameVisible,
    AssertNoValidationIssue,
    AssertSignificantColor,
    ChangeState,
    CheckProperty,
    ConfigureValidation,
    SetPipeline,
    SetProperty,
    Wait,
)
from ..steps.parser import PhraseParser
from .context import ScenarioContext

logger = logging.getLogger(__name__)

StepHandler = Callable[[ScenarioContext, Any], None]


def _configure_validation(context: ScenarioContext, action: ConfigureValidation) -> None:
    context.validation.configure(context, action.config)


def _set_pipeline(context: ScenarioContext, action: SetPipeline) -> None:
    context.driver.build(action.description)


def _activate_validation(context: ScenarioContext, action: ActivateValidation) -> None:
    context.validation.activate(context)


def _change_state(context: ScenarioContext, action: ChangeState) -> None:
    context.driver.change_state(action.transition)


def _set_property(context: ScenarioContext, action: SetProperty) -> None:
    context.driver.set_property(action.path, action.value)


def _check_property(context: ScenarioContext, action: CheckProperty) -> None:
    if not context.driver.property_equals(action.path, action.value):
        actual = context.driver.get_property(action.path)
        raise PropertyMismatch(str(action.path), action.value, actual)


def _wait(context: ScenarioContext, action: Wait) -> None:
    context.driver.wait(action.seconds)


def _assert_frame_visible(context: ScenarioContext, action: AssertFrameVisible) -> None:
    context.sampler.assert_frame_visible(action.element)


def _assert_significant_color(context: ScenarioContext, action: AssertSignificantColor) -> None:
    context.sampler.assert_significant_color(action.element, action.color)


def _assert_no_issue(context: ScenarioContext, action: AssertNoValidationIssue) -> None:
    context.validation.assert_no_issue(context)


HANDLERS: Dict[type, StepHandler] = {
    ConfigureValidation: _configure_validation,
    SetPipeline: _set_pipeline,
    ActivateValidation: _activate_validation,
    ChangeState: _change_state,
    SetProperty: _set_property,
    CheckProperty: _check_property,
    Wait: _wait,
    AssertFrameVisible: _assert_frame_visible,
    AssertSignificantColor: _assert_significant_color,
    AssertNoValidationIssue: _assert_no_issue,
}


class StepExecutor:
    """Parses step text and runs the resulting action, one step at a time."""

    def __init__(
        self,
        parser: Optional[PhraseParser] = None,
        handlers: Optional[Dict[type, StepHandler]] = None,
        enable_metrics: bool = True,
    ):
        """Initialize the executor.

        Args:
            parser: Phrase parser (default grammar if None)
            handlers: Mapping of action type to handler (default handlers if None)
            enable_metrics: Enable metrics collection
        """
        self.parser = parser or PhraseParser()
        self.handlers = dict(handlers or HANDLERS)
        self.enable_metrics = enable_metrics
        self._metrics = {
            "steps_executed": 0,
            "steps_failed": 0,
        }

    def execute(self, context: ScenarioContext, action: Action) -> None:
        """Run ``action`` against ``context``.

        Errors outside the harness hierarchy are wrapped in :class:`PipelineError`.
        """
        handler = self.handlers.get(type(action))
        if handler is None:
            raise PipelineError(f"No handler registered for {type(action).__name__}")
        try:
            handler(context, action)
        except HarnessError:
            raise
        except Exception as e:
            raise PipelineError(f"{type(e).__name__}: {e}") from e

    def execute_step(self, context: ScenarioContext, outcome: StepOutcome) -> StepOutcome:
        """Parse and run one step, recording the result on ``outcome``.

        Errors are captured on the outcome rather than raised; errors outside
        the harness hierarchy are wrapped in :class:`PipelineError` first.

        Args:
            context: Scenario context
            outcome: Step to run (its ``text`` is parsed)

        Returns:
            The updated outcome
        """
        logger.info(f"Executing step: {outcome.display_text}")
        outcome.start()
        try:
            try:
                action = self.parser.parse(outcome.text)
            except HarnessError:
                raise
            except Exception as e:
                raise PipelineError(f"{type(e).__name__}: {e}") from e
            self.execute(context, action)
            outcome.complete()
        except HarnessError as e:
            logger.error(f"Step failed: {outcome.text}: {e}")
            outcome.complete(error=e)
        finally:
            if self.enable_metrics:
                self._metrics["steps_executed"] += 1
                if outcome.status == StepStatus.FAILED:
                    self._metrics["steps_failed"] += 1
        return outcome

    def get_metrics(self) -> Dict[str, Any]:
        """Get executor metrics.

        Returns:
            Metrics dictionary
        """
        return self._metrics.copy()
