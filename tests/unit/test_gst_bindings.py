"""Tests for the GStreamer and gst-validate adapters that run without the bindings."""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest

from src.errors import BackendUnavailable, TypeMismatch
from src.pipeline.backend import PipelineState
from src.pipeline import gst_backend
from src.validation import gst_validate


class TestAvailability:
    def test_backend_unavailable(self):
        with patch.object(gst_backend, "_ensure_gst", return_value=False):
            with pytest.raises(BackendUnavailable):
                gst_backend.GstBackend()

    def test_monitor_unavailable(self):
        with patch.object(gst_validate, "_ensure_gst_validate", return_value=False):
            with pytest.raises(BackendUnavailable):
                gst_validate.GstValidateMonitor(Mock())

    def test_availability_is_cached(self):
        with patch.object(gst_validate, "GST_VALIDATE_AVAILABLE", True):
            assert gst_validate.gst_validate_available() is True


@pytest.fixture
def fake_gst_validate():
    """Module-level GstValidate/GLib replaced by mocks."""
    validate = MagicMock()
    validate.report_level_get_name.side_effect = lambda level: {1: "critical", 2: "warning"}[level]
    glib = MagicMock()
    glib.quark_to_string.side_effect = lambda quark: f"quark-{quark}"
    with patch.object(gst_validate, "GstValidate", validate), patch.object(gst_validate, "GLib", glib), \
            patch.object(gst_validate, "_ensure_gst_validate", return_value=True):
        yield validate


class TestReportConversion:
    def test_full_report(self, fake_gst_validate):
        report = SimpleNamespace(
            level=1,
            issue=SimpleNamespace(issue_id=7, summary="caps not negotiated"),
            reporter_name="videoconvert0",
            message="could not negotiate format",
        )
        issue = gst_validate.report_to_issue(report)
        assert issue.level == "critical"
        assert issue.issue_id == "quark-7"
        assert issue.source == "videoconvert0"
        assert issue.message == "could not negotiate format"

    def test_summary_used_without_message(self, fake_gst_validate):
        report = SimpleNamespace(level=2, issue=SimpleNamespace(issue_id=0, summary="buffer late"))
        issue = gst_validate.report_to_issue(report)
        assert issue.level == "warning"
        assert issue.message == "buffer late"
        assert issue.issue_id is None
        assert issue.source is None


class TestGstValidateMonitor:
    def test_start_and_stop(self, fake_gst_validate, tmp_path, monkeypatch):
        monkeypatch.setenv(gst_validate.CONFIG_ENV_VAR, "previous.config")
        config = tmp_path / "validate.config"
        pipeline = SimpleNamespace(gobject=object())
        runner = fake_gst_validate.Runner.new.return_value
        runner.connect.return_value = 11

        received = []
        monitor = gst_validate.GstValidateMonitor(pipeline, config_path=config)
        monitor.start(received.append)

        assert os.environ[gst_validate.CONFIG_ENV_VAR] == str(config)
        fake_gst_validate.init.assert_called_once()
        fake_gst_validate.Monitor.factory_create.assert_called_once_with(pipeline.gobject, runner, None)

        # deliver a report through the connected signal handler
        signal, handler = runner.connect.call_args[0]
        assert signal == "report-added"
        handler(runner, SimpleNamespace(level=1, issue=None, message="boom"))
        assert [issue.message for issue in received] == ["boom"]

        monitor.stop()
        runner.disconnect.assert_called_once_with(11)
        assert os.environ[gst_validate.CONFIG_ENV_VAR] == "previous.config"

    def test_env_removed_when_unset_before(self, fake_gst_validate, tmp_path):
        monitor = gst_validate.GstValidateMonitor(SimpleNamespace(gobject=None), config_path=tmp_path / "c")
        monitor.start(lambda issue: None)
        monitor.stop()
        assert gst_validate.CONFIG_ENV_VAR not in os.environ

    def test_no_config_leaves_env_alone(self, fake_gst_validate):
        monitor = gst_validate.GstValidateMonitor(SimpleNamespace(gobject=None))
        monitor.start(lambda issue: None)
        assert gst_validate.CONFIG_ENV_VAR not in os.environ
        monitor.stop()


@pytest.fixture
def fake_gst():
    """Module-level Gst/GObject replaced by mocks."""
    gst = MagicMock()
    gobject = MagicMock()
    with patch.object(gst_backend, "Gst", gst), patch.object(gst_backend, "GObject", gobject):
        yield gst


def _flags_element():
    pspec = MagicMock()
    pspec.value_type.fundamental = object()
    pspec.value_type.name = "GstPlayFlags"
    obj = MagicMock()
    obj.find_property.return_value = pspec
    return gst_backend.GstElement(obj, name="pb"), obj


class TestSerializedProperties:
    def test_unreadable_value_is_a_type_mismatch(self, fake_gst):
        fake_gst.value_deserialize_with_pspec.return_value = False
        element, obj = _flags_element()
        with pytest.raises(TypeMismatch) as exc_info:
            element.set_property_from_string("flags", "vidoe+audio")
        assert "GstPlayFlags" in str(exc_info.value)
        obj.set_property.assert_not_called()

    def test_deserialized_value_is_applied(self, fake_gst):
        fake_gst.value_deserialize_with_pspec.return_value = True
        element, obj = _flags_element()
        element.set_property_from_string("flags", "video+audio")
        gvalue, text, _ = fake_gst.value_deserialize_with_pspec.call_args[0]
        assert text == "video+audio"
        obj.set_property.assert_called_once_with("flags", gvalue.get_value.return_value)

    def test_values_compared_by_gstreamer(self, fake_gst):
        fake_gst.value_deserialize_with_pspec.return_value = True
        fake_gst.value_compare.return_value = fake_gst.VALUE_EQUAL
        element, _ = _flags_element()
        assert element.values_equal("flags", "video+audio")
        fake_gst.value_compare.return_value = fake_gst.VALUE_LESS_THAN
        assert not element.values_equal("flags", "video")

    def test_comparison_with_unreadable_value(self, fake_gst):
        fake_gst.value_deserialize_with_pspec.return_value = False
        element, _ = _flags_element()
        with pytest.raises(TypeMismatch):
            element.values_equal("flags", "???")

    def test_serialized_for_display(self, fake_gst):
        fake_gst.value_serialize.return_value = "video+audio"
        element, _ = _flags_element()
        assert element.get_property_as_string("flags") == "video+audio"


class TestBusDraining:
    def _message(self, gst, kind):
        message = MagicMock()
        message.type = kind
        message.parse_error.return_value = (SimpleNamespace(message="not negotiated"), "debug info")
        message.parse_warning.return_value = (SimpleNamespace(message="late buffer"), None)
        return message

    def test_state_change_drains_bus(self, fake_gst, caplog):
        fake_gst.SECOND = 1_000_000_000
        raw = MagicMock()
        raw.get_state.return_value = (fake_gst.StateChangeReturn.SUCCESS, MagicMock(), MagicMock())
        bus = raw.get_bus.return_value
        bus.pop.side_effect = [
            self._message(fake_gst, fake_gst.MessageType.ERROR),
            self._message(fake_gst, fake_gst.MessageType.WARNING),
            self._message(fake_gst, fake_gst.MessageType.STATE_CHANGED),
            None,
        ]
        pipeline = gst_backend.GstPipeline(raw, "videotestsrc ! fakevideosink")
        with caplog.at_level("WARNING", logger="src.pipeline.gst_backend"):
            assert pipeline.set_state(PipelineState.PLAYING, 1.0)
        assert bus.pop.call_count == 4
        assert "not negotiated" in caplog.text
        assert "late buffer" in caplog.text

    def test_pending_state_change_keeps_messages(self, fake_gst):
        fake_gst.SECOND = 1_000_000_000
        raw = MagicMock()
        raw.get_state.return_value = (fake_gst.StateChangeReturn.ASYNC, MagicMock(), MagicMock())
        pipeline = gst_backend.GstPipeline(raw, "videotestsrc ! fakevideosink")
        assert not pipeline.set_state(PipelineState.PLAYING, 0.1)
        raw.get_bus.return_value.pop.assert_not_called()
