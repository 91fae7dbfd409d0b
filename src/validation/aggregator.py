"""Collection of validation issues and the "no issue" verdict.

Issues are produced on validator threads and handed to the scenario through an
:class:`IssueChannel`. They only become visible to assertions when the channel
is drained, which happens every time the pipeline completes a transition to the
stopped state. An assertion made after ``stop`` returns therefore sees every
issue raised before it, and none raised after it.
"""
from __future__ import annotations

import logging
import os
import queue
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..errors import PipelineNotConfigured, ScenarioStateError, ValidationFailed, ValidationNotActive
from ..models.media import ValidationIssue
from ..pipeline.backend import PipelineBackend, ValidationMonitor
from ..pipeline.driver import ScenarioPhase

if TYPE_CHECKING:
    from ..scenario.context import ScenarioContext

logger = logging.getLogger(__name__)

# Phases in which the issue list is complete
SYNCHRONIZED_PHASES = (ScenarioPhase.STOPPED, ScenarioPhase.TORN_DOWN)


class IssueChannel:
    """Bounded, thread-safe hand-off from producers to the step task.

    ``put`` never blocks. When the channel is full the issue is dropped and
    counted in :attr:`dropped`.
    """

    def __init__(self, maxsize: int = 1024):
        self._queue: "queue.Queue[ValidationIssue]" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.dropped = 0

    def put(self, issue: ValidationIssue) -> bool:
        try:
            self._queue.put_nowait(issue)
        except queue.Full:
            with self._lock:
                self.dropped += 1
            logger.warning(f"Issue queue full, dropped validation issue: {issue}")
            return False
        return True

    def drain(self) -> List[ValidationIssue]:
        """Remove and return all queued issues in arrival order."""
        issues = []
        while True:
            try:
                issues.append(self._queue.get_nowait())
            except queue.Empty:
                return issues

    def __len__(self) -> int:
        return self._queue.qsize()


class ValidationAggregator:
    """Activates the validator on a scenario pipeline and judges its reports."""

    def __init__(self, backend: PipelineBackend, config_dir: Optional[Path] = None):
        self.backend = backend
        self.config_dir = config_dir
        self.monitor: Optional[ValidationMonitor] = None
        self.config_file: Optional[Path] = None
        self.activated = False
        self.dropped = 0

    @property
    def active(self) -> bool:
        return self.monitor is not None

    def configure(self, context: "ScenarioContext", line: str) -> None:
        """Append one line to the scenario's validator configuration."""
        if self.active:
            logger.warning("Validate configuration added after activation, it will not be applied")
        context.validation_config.append(line)
        logger.debug(f"Validate configuration: {line}")

    def _write_config(self, lines: List[str]) -> Optional[Path]:
        if not lines:
            return None
        if self.config_dir is not None:
            Path(self.config_dir).mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix="validate-", suffix=".config", dir=str(self.config_dir) if self.config_dir else None
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            for line in lines:
                handle.write(f"{line}\n")
        return Path(name)

    def activate(self, context: "ScenarioContext") -> None:
        """Attach the validator to the scenario pipeline.

        Raises:
            ScenarioStateError: If validation is already active
            PipelineNotConfigured: If no pipeline was built yet
        """
        if self.activated:
            raise ScenarioStateError("Validate has already been activated")
        if not context.driver.has_pipeline:
            raise PipelineNotConfigured()

        self.config_file = self._write_config(context.validation_config)
        try:
            monitor = self.backend.create_validation_monitor(
                context.driver.pipeline, config_path=self.config_file
            )
            monitor.start(context.record_issue)
        except Exception:
            self._remove_config()
            raise
        self.monitor = monitor
        self.activated = True
        context.driver.pin("Validate is monitoring it")
        logger.info("Validate activated")

    def synchronize(self, context: "ScenarioContext") -> List[ValidationIssue]:
        """Move delivered issues into ``context.issues``; returns the new ones.

        The channel's overflow count is snapshotted along with the issues.
        """
        issues = context.channel.drain()
        self.dropped = context.channel.dropped
        if issues:
            context.issues.extend(issues)
            logger.info(f"Collected {len(issues)} validation issue(s)")
        return issues

    def outstanding(self, context: "ScenarioContext") -> int:
        """Issues collected up to the last synchronization, dropped ones included."""
        return len(context.issues) + self.dropped

    def assert_no_issue(self, context: "ScenarioContext") -> None:
        """Fail if the validator reported anything.

        Raises:
            ValidationNotActive: If validation was never activated
            ScenarioStateError: If the pipeline has not been stopped
            ValidationFailed: If any issue was reported
        """
        if not self.activated:
            raise ValidationNotActive()
        if context.phase not in SYNCHRONIZED_PHASES:
            raise ScenarioStateError(
                f"Validation issues can only be checked once the pipeline is stopped "
                f"(current phase: {context.phase.value})"
            )
        if self.outstanding(context):
            raise ValidationFailed(context.issues, dropped=self.dropped)
        logger.info("Validate reported no issue")

    def deactivate(self) -> None:
        """Release the monitor and the temporary configuration file."""
        monitor, self.monitor = self.monitor, None
        try:
            if monitor is not None:
                monitor.stop()
        finally:
            self._remove_config()

    def _remove_config(self) -> None:
        path, self.config_file = self.config_file, None
        if path is not None and path.exists():
            path.unlink()
