"""Result models for executed steps, scenarios and feature runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .media import ValidationIssue


class StepStatus(Enum):
    """Individual step execution status."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ScenarioStatus(Enum):
    """Final verdict of a scenario."""

    PASSED = "passed"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """Result from executing one scenario step."""

    text: str
    keyword: str = ""
    line: Optional[int] = None
    status: StepStatus = StepStatus.PENDING
    error: Optional[Exception] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[float] = None

    def start(self) -> None:
        self.start_time = datetime.now()

    def complete(self, error: Optional[Exception] = None) -> None:
        """Mark step as complete."""
        self.end_time = datetime.now()
        if self.start_time is not None:
            self.duration = (self.end_time - self.start_time).total_seconds()
        if error is not None:
            self.status = StepStatus.FAILED
            self.error = error
        else:
            self.status = StepStatus.PASSED

    def skip(self) -> None:
        self.status = StepStatus.SKIPPED

    @property
    def display_text(self) -> str:
        return f"{self.keyword}{self.text}" if self.keyword else self.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "keyword": self.keyword.strip(),
            "line": self.line,
            "status": self.status.value,
            "duration": self.duration,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class ScenarioResult:
    """Final result of one scenario run."""

    name: str
    feature: str = ""
    status: ScenarioStatus = ScenarioStatus.PASSED
    steps: List[StepOutcome] = field(default_factory=list)
    failed_step: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    issues: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.PASSED

    def fail(self, step_text: str, error: Exception) -> None:
        """Record the first fatal error of the scenario."""
        if self.status == ScenarioStatus.FAILED:
            return
        self.status = ScenarioStatus.FAILED
        self.failed_step = step_text
        self.error_kind = getattr(error, "kind", type(error).__name__)
        self.error_message = str(error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "feature": self.feature,
            "status": self.status.value,
            "failed_step": self.failed_step,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "steps": [step.to_dict() for step in self.steps],
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": list(self.warnings),
            "tags": list(self.tags),
            "duration": self.duration,
        }


@dataclass
class FeatureResult:
    """Results of all scenarios of one feature file."""

    name: str
    path: Optional[str] = None
    scenarios: List[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(scenario.passed for scenario in self.scenarios)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "passed": self.passed,
            "scenarios": [scenario.to_dict() for scenario in self.scenarios],
        }


@dataclass
class RunSummary:
    """Aggregate counts over a whole run."""

    features: List[FeatureResult] = field(default_factory=list)

    @property
    def scenarios(self) -> List[ScenarioResult]:
        return [scenario for feature in self.features for scenario in feature.scenarios]

    @property
    def passed_count(self) -> int:
        return sum(1 for scenario in self.scenarios if scenario.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for scenario in self.scenarios if not scenario.passed)

    @property
    def passed(self) -> bool:
        return self.failed_count == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "scenarios_passed": self.passed_count,
            "scenarios_failed": self.failed_count,
            "features": [feature.to_dict() for feature in self.features],
        }
