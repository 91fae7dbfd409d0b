"""Console reporting of scenario runs with Rich.

This module provides a ConsoleManager that adapts output to:
- Rich-rendered panels and tables when attached to a terminal
- JSON lines for machine-readable logs (CI/CD)
"""

from __future__ import annotations

import json
import logging
import math
import re
import sys
import threading
from datetime import datetime
from typing import Any, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models.results import RunSummary, ScenarioResult, StepOutcome, StepStatus

# Control characters other than tab and newline
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_JSON_FLOAT_LIMIT = 1e308

_STEP_STYLES = {
    StepStatus.PASSED: ("✔", "green"),
    StepStatus.FAILED: ("✘", "red"),
    StepStatus.SKIPPED: ("-", "dim"),
    StepStatus.PENDING: ("?", "yellow"),
}


class ThreadSafeConsole:
    """Thread-safe wrapper around Rich Console."""

    def __init__(self, console: Console):
        self._console = console
        self._lock = threading.RLock()  # Reentrant lock for nested calls

    def print(self, *args, **kwargs):
        """Thread-safe print method."""
        with self._lock:
            self._console.print(*args, **kwargs)


class ConsoleManager:
    """Reports steps, scenarios and run summaries."""

    def __init__(self, verbose: bool = False, json_output: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.json_output = json_output
        self._json_max_field_length = 500

        if self.json_output:
            self.console = None
        else:
            raw_console = console or Console(stderr=True)
            self.console = ThreadSafeConsole(raw_console)

    def setup_logging(self, logger: logging.Logger) -> None:
        """Attach a console handler to ``logger`` unless it already has one.

        Rich output gets a ``RichHandler`` on the same console as the step
        lines; JSON output gets bare messages on stderr so stdout stays
        machine-readable. Verbose runs show everything, other runs only
        warnings and errors. The file log configured by LoggingFactory is
        unaffected.
        """
        handler_type = logging.StreamHandler if self.json_output else RichHandler
        if any(isinstance(h, handler_type) for h in logger.handlers):
            return

        if self.json_output:
            handler: logging.Handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler = RichHandler(
                console=self.console._console if self.console else None,
                show_time=True,
                show_path=self.verbose,
                rich_tracebacks=True,
            )
        handler.setLevel(logging.DEBUG if self.verbose else logging.WARNING)
        logger.addHandler(handler)

    def _emit(self, payload: dict[str, Any], stream=None) -> None:
        payload = {"timestamp": self._get_timestamp(), **payload}
        print(json.dumps(self._sanitize_json_value(payload)), file=stream or sys.stderr)

    def print_scenario_started(self, scenario: Any) -> None:
        if self.json_output:
            self._emit({"type": "scenario_started", "feature": scenario.feature, "name": scenario.name})
        elif self.console:
            self.console.print(Panel(f"[bold]{escape(scenario.name)}[/bold]", style="blue", padding=(0, 1)))

    def print_step(self, scenario: Any, outcome: StepOutcome) -> None:
        """Print one finished step."""
        if self.json_output:
            self._emit({"type": "step", "scenario": scenario.name, **outcome.to_dict()})
        elif self.console:
            mark, style = _STEP_STYLES[outcome.status]
            duration = f" [dim]({outcome.duration:.2f}s)[/dim]" if outcome.duration else ""
            self.console.print(f"  [{style}]{mark} {escape(outcome.display_text)}[/{style}]{duration}", markup=True)
            if outcome.error is not None:
                self.console.print(f"      [red]{escape(str(outcome.error))}[/red]")

    def print_scenario_result(self, result: ScenarioResult) -> None:
        """Print the verdict of a scenario, listing the steps it skipped."""
        if self.json_output:
            self._emit({"type": "scenario", **result.to_dict()})
            return
        if not self.console:
            return

        for outcome in result.steps:
            if outcome.status == StepStatus.SKIPPED:
                self.print_step(result, outcome)
        for warning in result.warnings:
            self.console.print(f"  [yellow]warning: {escape(warning)}[/yellow]")

        if result.passed:
            self.console.print(f"[green]PASSED[/green] {escape(result.name)} ({result.duration:.2f}s)")
        else:
            self.console.print(
                f"[red]FAILED[/red] {escape(result.name)}: [bold]{result.error_kind}[/bold] at "
                f"{escape(repr(result.failed_step))}"
            )

    def print_summary(self, summary: RunSummary) -> None:
        """Print run summary table or JSON."""
        if self.json_output:
            self._emit({"type": "summary", "results": summary.to_dict()}, stream=sys.stdout)
            return
        if not self.console:
            return

        table = Table(title="Scenario Summary")
        table.add_column("Feature", style="cyan")
        table.add_column("Scenario")
        table.add_column("Duration", style="green")
        table.add_column("Status", style="bold")
        table.add_column("Error")

        for scenario in summary.scenarios:
            status = "[green]passed[/green]" if scenario.passed else "[red]failed[/red]"
            table.add_row(
                scenario.feature,
                scenario.name,
                f"{scenario.duration:.1f}s",
                status,
                scenario.error_kind or "",
            )

        self.console.print(table)
        self.console.print(
            f"{summary.passed_count} passed, {summary.failed_count} failed, "
            f"{len(summary.scenarios)} total"
        )

    def print_steps(self, usages: Sequence[str]) -> None:
        """Print the step vocabulary."""
        if self.json_output:
            print(json.dumps({"steps": list(usages)}))
        elif self.console:
            table = Table(title="Step Phrases")
            table.add_column("Phrase", style="cyan")
            for usage in usages:
                table.add_row(usage)
            self.console.print(table)

    def print_error(self, message: str) -> None:
        """Print error message to stderr."""
        if self.json_output:
            self._emit({"type": "error", "message": message})
        elif self.console:
            self.console.print(f"[red]ERROR: {escape(message)}[/red]", markup=True)
        else:
            print(f"ERROR: {message}", file=sys.stderr)

    def _get_timestamp(self) -> str:
        """Get ISO timestamp for JSON output."""
        return datetime.now().isoformat()

    def _sanitize_json_value(self, value: Any) -> Any:
        """Make a value JSON-safe: finite numbers, printable bounded strings."""
        if isinstance(value, bool) or value is None:
            return value
        if isinstance(value, str):
            return self._sanitize_string_field(value)
        if isinstance(value, (int, float)):
            return self._sanitize_numeric_field(value)
        if isinstance(value, dict):
            return {str(k): self._sanitize_json_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._sanitize_json_value(item) for item in value]
        return self._sanitize_string_field(str(value))

    def _sanitize_string_field(self, value: str) -> str:
        value = _CONTROL_CHARS.sub("", value)
        limit = self._json_max_field_length
        return value if len(value) <= limit else value[: limit - 3] + "..."

    def _sanitize_numeric_field(self, value: float) -> float:
        # Output must stay strict JSON: no NaN or Infinity literals
        if math.isnan(value):
            return 0.0
        if math.isinf(value):
            return math.copysign(_JSON_FLOAT_LIMIT, value)
        return value
