"""Per-scenario execution state."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..analysis.color_analyzer import ColorAnalyzer
from ..analysis.frame_sampler import FrameSampler
from ..config import HarnessConfig, get_config
from ..errors import TeardownWarning
from ..models.media import Frame, ValidationIssue
from ..pipeline.backend import ElementHandle, PipelineBackend
from ..pipeline.driver import PipelineDriver, ScenarioPhase
from ..validation.aggregator import IssueChannel, ValidationAggregator

logger = logging.getLogger(__name__)


class ScenarioContext:
    """Everything one scenario owns: its pipeline, frames and validation issues.

    A context is created when the scenario starts and torn down when it ends,
    whatever the outcome. Only the step task mutates it; validator threads
    deliver issues through :meth:`record_issue`.

    Attributes:
        driver: Pipeline driver (one pipeline per scenario)
        sampler: Frame sampler bound to the driver
        validation: Validation aggregator for this scenario
        channel: Hand-off queue for issues reported by the validator
        issues: Issues delivered up to the last synchronization point
        validation_config: Validator configuration lines, in order
        warnings: Problems met while tearing down
    """

    def __init__(
        self,
        backend: PipelineBackend,
        config: Optional[HarnessConfig] = None,
        analyzer: Optional[ColorAnalyzer] = None,
        name: str = "",
    ):
        self.config = config or get_config()
        self.name = name
        self.driver = PipelineDriver(backend, state_change_timeout=self.config.state_change_timeout)
        self.sampler = FrameSampler(
            self.driver,
            analyzer=analyzer,
            frame_timeout=self.config.frame_timeout,
            poll_interval=self.config.frame_poll_interval,
            color_timeout=self.config.color_timeout,
            stable_duration=self.config.color_stable_duration,
        )
        self.channel = IssueChannel(maxsize=self.config.issue_queue_size)
        self.validation = ValidationAggregator(backend, config_dir=self.config.validate_config_dir)
        self.issues: List[ValidationIssue] = []
        self.validation_config: List[str] = []
        self.warnings: List[TeardownWarning] = []
        self._torn_down = False

        self.driver.add_listener(self._on_phase_change)

    @property
    def phase(self) -> ScenarioPhase:
        return self.driver.phase

    @property
    def last_frames(self) -> Dict[str, Frame]:
        return self.sampler.last_frames

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def _on_phase_change(self, phase: ScenarioPhase) -> None:
        # Issues reported before a stop must be visible once it returns
        if phase == ScenarioPhase.STOPPED:
            self.validation.synchronize(self)

    def resolve_element(self, name: str) -> ElementHandle:
        """Look up a pipeline element by name (memoized).

        Raises:
            PipelineNotConfigured: If no pipeline was built yet
            UnknownElement: If the pipeline has no such element
        """
        return self.driver.element(name)

    def record_issue(self, issue: ValidationIssue) -> None:
        """Queue a validator report; safe to call from any thread, never blocks."""
        self.channel.put(issue)

    def teardown(self) -> List[TeardownWarning]:
        """Stop and release the pipeline and the validator.

        Safe to call more than once. Errors are collected in :attr:`warnings`
        and logged, never raised.

        Returns:
            Warnings produced by this call
        """
        if self._torn_down:
            return []
        self._torn_down = True

        operations: List[Tuple[str, Callable[[], object]]] = [
            ("stop pipeline", self.driver.shutdown),
            ("collect validation issues", lambda: self.validation.synchronize(self)),
            ("deactivate validation", self.validation.deactivate),
        ]
        produced = []
        for operation, func in operations:
            try:
                func()
            except Exception as e:
                warning = TeardownWarning(operation, e)
                logger.warning(str(warning))
                produced.append(warning)

        self.warnings.extend(produced)
        logger.debug(f"Scenario context {self.name!r} torn down")
        return produced
