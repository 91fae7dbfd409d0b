"""Scenario and feature orchestration.

Runs scenarios strictly one after another. Within a scenario the first failing
step short-circuits the rest (reported as skipped) and teardown always runs.
"""
from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import HarnessConfig, get_config
from ..errors import ValidationFailed
from ..models.results import FeatureResult, RunSummary, ScenarioResult, StepOutcome, StepStatus
from ..pipeline.backend import PipelineBackend
from .context import ScenarioContext
from .executor import StepExecutor
from .features import FeatureDefinition, ScenarioDefinition

logger = logging.getLogger(__name__)

# Label used when the verdict changes after the last step
TEARDOWN_STEP = "<scenario teardown>"

BackendFactory = Callable[[], PipelineBackend]


class ScenarioRunner:
    """Runs scenario definitions against fresh contexts.

    Callbacks can be registered for the events ``scenario_started``,
    ``step_finished``, ``scenario_finished`` and ``feature_finished``.
    """

    def __init__(
        self,
        backend_factory: BackendFactory,
        config: Optional[HarnessConfig] = None,
        executor: Optional[StepExecutor] = None,
        fail_fast: bool = False,
        enable_metrics: bool = True,
    ):
        """Initialize the runner.

        Args:
            backend_factory: Creates the pipeline backend for each scenario
            config: Harness configuration (global config if None)
            executor: Step executor (default grammar and handlers if None)
            fail_fast: Stop the run after the first failing scenario
            enable_metrics: Enable metrics collection
        """
        self.backend_factory = backend_factory
        self.config = config or get_config()
        self.executor = executor or StepExecutor()
        self.fail_fast = fail_fast
        self.enable_metrics = enable_metrics

        self._callbacks: Dict[str, List[Callable]] = {}
        self._lock = Lock()
        self._metrics = {
            "scenarios_started": 0,
            "scenarios_passed": 0,
            "scenarios_failed": 0,
            "steps_executed": 0,
            "steps_failed": 0,
            "steps_skipped": 0,
            "total_duration": 0.0,
        }

    def add_callback(self, event: str, callback: Callable) -> None:
        """Add an event callback.

        Args:
            event: Event name
            callback: Called with the event payload
        """
        self._callbacks.setdefault(event, []).append(callback)

    def _notify_callbacks(self, event: str, *payload: Any) -> None:
        for callback in self._callbacks.get(event, []):
            try:
                callback(*payload)
            except Exception as e:
                logger.error(f"Callback error on {event}: {e}")

    def run_scenario(self, scenario: ScenarioDefinition) -> ScenarioResult:
        """Run one scenario in its own context.

        Args:
            scenario: Scenario to run

        Returns:
            ScenarioResult with per-step outcomes and the verdict
        """
        result = ScenarioResult(name=scenario.name, feature=scenario.feature, tags=list(scenario.tags))
        with self._lock:
            if self.enable_metrics:
                self._metrics["scenarios_started"] += 1

        logger.info(f"Scenario: {scenario.name}")
        self._notify_callbacks("scenario_started", scenario)
        start = time.monotonic()

        context = ScenarioContext(self.backend_factory(), config=self.config, name=scenario.name)
        try:
            for step in scenario.steps:
                outcome = StepOutcome(text=step.text, keyword=step.keyword, line=step.line)
                result.steps.append(outcome)
                if not result.passed:
                    outcome.skip()
                    continue

                self.executor.execute_step(context, outcome)
                self._notify_callbacks("step_finished", scenario, outcome)
                if outcome.status == StepStatus.FAILED:
                    result.fail(outcome.text, outcome.error)
        finally:
            result.warnings.extend(str(warning) for warning in context.teardown())
            result.issues = list(context.issues)
            self._reconcile(context, result)
            result.duration = time.monotonic() - start
            self._finalize_scenario(result)

        return result

    def _reconcile(self, context: ScenarioContext, result: ScenarioResult) -> None:
        """Apply strict validation: leftover issues fail a passing scenario."""
        if not (self.config.strict_validation and result.passed and context.validation.activated):
            return
        if context.validation.outstanding(context):
            result.fail(TEARDOWN_STEP, ValidationFailed(context.issues, dropped=context.validation.dropped))
            logger.error(f"Scenario {scenario_label(result)} failed on unchecked validation issues")

    def _finalize_scenario(self, result: ScenarioResult) -> None:
        with self._lock:
            if self.enable_metrics:
                key = "scenarios_passed" if result.passed else "scenarios_failed"
                self._metrics[key] += 1
                self._metrics["total_duration"] += result.duration
                for step in result.steps:
                    if step.status == StepStatus.SKIPPED:
                        self._metrics["steps_skipped"] += 1
                    elif step.status != StepStatus.PENDING:
                        self._metrics["steps_executed"] += 1
                        if step.status == StepStatus.FAILED:
                            self._metrics["steps_failed"] += 1

        self._notify_callbacks("scenario_finished", result)
        if result.passed:
            logger.info(f"Scenario {scenario_label(result)} passed in {result.duration:.2f}s")
        else:
            logger.error(
                f"Scenario {scenario_label(result)} failed at {result.failed_step!r}: "
                f"[{result.error_kind}] {result.error_message}"
            )

    def run_feature(self, feature: FeatureDefinition, tags: Optional[Sequence[str]] = None) -> FeatureResult:
        """Run the selected scenarios of a feature in order."""
        feature_result = FeatureResult(name=feature.name, path=feature.path)
        for scenario in feature.select(tags):
            scenario_result = self.run_scenario(scenario)
            feature_result.scenarios.append(scenario_result)
            if self.fail_fast and not scenario_result.passed:
                logger.info("Stopping after first failure (fail-fast)")
                break
        self._notify_callbacks("feature_finished", feature_result)
        return feature_result

    def run(self, features: Sequence[FeatureDefinition], tags: Optional[Sequence[str]] = None) -> RunSummary:
        """Run several features and summarize the outcome."""
        summary = RunSummary()
        for feature in features:
            feature_result = self.run_feature(feature, tags)
            summary.features.append(feature_result)
            if self.fail_fast and not feature_result.passed:
                break
        return summary

    def get_metrics(self) -> Dict[str, Any]:
        """Get runner metrics.

        Returns:
            Metrics dictionary
        """
        return self._metrics.copy()


def scenario_label(result: ScenarioResult) -> str:
    return f"{result.feature}: {result.name}" if result.feature else result.name
