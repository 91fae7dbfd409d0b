"""gst-validate monitor attached to a GStreamer pipeline."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from ..errors import BackendUnavailable
from ..models.media import ValidationIssue
from ..pipeline.backend import PipelineHandle, ValidationMonitor

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GST_VALIDATE_CONFIG"

GstValidate = None
GLib = None
GST_VALIDATE_AVAILABLE = None


def _ensure_gst_validate() -> bool:
    """Load the GstValidate introspection bindings once."""
    global GST_VALIDATE_AVAILABLE, GstValidate, GLib
    if GST_VALIDATE_AVAILABLE is not None:
        return GST_VALIDATE_AVAILABLE
    try:
        import gi

        gi.require_version("GstValidate", "1.0")
        from gi.repository import GLib as _GLib
        from gi.repository import GstValidate as _GstValidate

        GstValidate, GLib = _GstValidate, _GLib
        GST_VALIDATE_AVAILABLE = True
    except (ImportError, ValueError) as e:
        logger.warning(f"gst-validate bindings not available: {e}")
        GST_VALIDATE_AVAILABLE = False
    return GST_VALIDATE_AVAILABLE


def gst_validate_available() -> bool:
    return _ensure_gst_validate()


def report_to_issue(report: Any) -> ValidationIssue:
    """Convert a ``GstValidate.Report`` into a :class:`ValidationIssue`."""
    level = getattr(report, "level", None)
    if level is not None and hasattr(GstValidate, "report_level_get_name"):
        level_name = GstValidate.report_level_get_name(level)
    else:
        level_name = "issue"

    issue = getattr(report, "issue", None)
    issue_id = None
    summary = None
    if issue is not None:
        raw_id = getattr(issue, "issue_id", None)
        if raw_id:
            issue_id = GLib.quark_to_string(raw_id)
        summary = getattr(issue, "summary", None)

    reporter = getattr(report, "reporter_name", None)
    message = getattr(report, "message", None) or summary or "validation issue"
    return ValidationIssue(level=str(level_name), message=message, issue_id=issue_id, source=reporter)


class GstValidateMonitor(ValidationMonitor):
    """Runner plus pipeline monitor; forwards ``report-added`` to a callback.

    ``GST_VALIDATE_CONFIG`` is pointed at ``config_path`` for the lifetime of
    the monitor and restored afterwards.
    """

    def __init__(self, pipeline: PipelineHandle, config_path: Optional[Path] = None):
        if not _ensure_gst_validate():
            raise BackendUnavailable("gst-validate bindings (GstValidate 1.0) are not installed")
        self.pipeline = pipeline
        self.config_path = config_path
        self._runner = None
        self._monitor = None
        self._handler_id = None
        self._previous_env: Optional[str] = None
        self._env_set = False

    def start(self, on_issue: Callable[[ValidationIssue], None]) -> None:
        if self.config_path is not None:
            self._previous_env = os.environ.get(CONFIG_ENV_VAR)
            os.environ[CONFIG_ENV_VAR] = str(self.config_path)
            self._env_set = True
            logger.debug(f"{CONFIG_ENV_VAR}={self.config_path}")

        GstValidate.init()
        self._runner = GstValidate.Runner.new()

        def _on_report(runner, report):
            on_issue(report_to_issue(report))

        self._handler_id = self._runner.connect("report-added", _on_report)
        self._monitor = GstValidate.Monitor.factory_create(
            self.pipeline.gobject, self._runner, None
        )
        logger.info("gst-validate monitor attached")

    def stop(self) -> None:
        try:
            if self._runner is not None and self._handler_id is not None:
                self._runner.disconnect(self._handler_id)
        finally:
            self._handler_id = None
            self._monitor = None
            self._runner = None
            if self._env_set:
                if self._previous_env is None:
                    os.environ.pop(CONFIG_ENV_VAR, None)
                else:
                    os.environ[CONFIG_ENV_VAR] = self._previous_env
                self._env_set = False
        logger.debug("gst-validate monitor released")
