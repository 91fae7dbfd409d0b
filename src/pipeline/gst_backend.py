"""GStreamer implementation of the pipeline backend (PyGObject bindings)."""
from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from ..errors import (
    BackendUnavailable,
    InvalidPipelineDescription,
    NoFrameAvailable,
    NoSuchProperty,
    StateChangeFailure,
    TypeMismatch,
)
from ..models.media import Frame
from .backend import ElementHandle, PipelineBackend, PipelineHandle, PipelineState, PropertyInfo

logger = logging.getLogger(__name__)

# =====================================================================
# Lazy dependency resolution
# =====================================================================

Gst = None
GstVideo = None
GLib = None
GObject = None
GST_AVAILABLE = None


def _ensure_gst() -> bool:
    """Load and initialize the GStreamer bindings once."""
    global GST_AVAILABLE, Gst, GstVideo, GLib, GObject
    if GST_AVAILABLE is not None:
        return GST_AVAILABLE
    try:
        import gi

        gi.require_version("Gst", "1.0")
        gi.require_version("GstVideo", "1.0")
        from gi.repository import GLib as _GLib
        from gi.repository import GObject as _GObject
        from gi.repository import Gst as _Gst
        from gi.repository import GstVideo as _GstVideo

        _Gst.init(None)
        Gst, GstVideo, GLib, GObject = _Gst, _GstVideo, _GLib, _GObject
        GST_AVAILABLE = True
    except (ImportError, ValueError) as e:
        logger.warning(f"GStreamer bindings not available: {e}")
        GST_AVAILABLE = False
    return GST_AVAILABLE


def gst_available() -> bool:
    return _ensure_gst()


_RGB_CAPS = "video/x-raw,format=RGB"

_BOOL_TRUE = {"true", "yes", "1", "on"}
_BOOL_FALSE = {"false", "no", "0", "off"}


def _gst_state(state: PipelineState):
    return {
        PipelineState.NULL: Gst.State.NULL,
        PipelineState.READY: Gst.State.READY,
        PipelineState.PAUSED: Gst.State.PAUSED,
        PipelineState.PLAYING: Gst.State.PLAYING,
    }[state]


class GstElement(ElementHandle):
    """Wraps a ``GObject.Object`` (an element, a pad or another child object)."""

    def __init__(self, obj: Any, name: Optional[str] = None):
        self._obj = obj
        self._name = name or obj.get_name()

    @property
    def name(self) -> str:
        return self._name

    @property
    def gobject(self) -> Any:
        return self._obj

    def _pspec(self, prop: str):
        pspec = self._obj.find_property(prop)
        if pspec is None:
            raise NoSuchProperty(self._name, prop)
        return pspec

    def find_property(self, name: str) -> Optional[PropertyInfo]:
        pspec = self._obj.find_property(name)
        if pspec is None:
            return None
        fundamental = pspec.value_type.fundamental
        return PropertyInfo(
            name=name,
            type_name=pspec.value_type.name,
            writable=bool(pspec.flags & GObject.ParamFlags.WRITABLE),
            readable=bool(pspec.flags & GObject.ParamFlags.READABLE),
            is_object=fundamental == GObject.TYPE_OBJECT,
        )

    def get_child(self, name: str) -> ElementHandle:
        pspec = self._obj.find_property(name)
        if pspec is not None and pspec.value_type.fundamental == GObject.TYPE_OBJECT:
            child = self._obj.get_property(name)
            if child is None:
                raise NoSuchProperty(self._name, name)
            return GstElement(child, name=f"{self._name}::{name}")

        # Pads of aggregators (compositor::sink_0) are reachable through the child proxy
        if isinstance(self._obj, Gst.ChildProxy):
            child = self._obj.get_child_by_name(name)
            if child is not None:
                return GstElement(child, name=f"{self._name}::{name}")
        raise NoSuchProperty(self._name, name)

    @staticmethod
    def _integer_types() -> tuple:
        return (
            GObject.TYPE_INT,
            GObject.TYPE_UINT,
            GObject.TYPE_LONG,
            GObject.TYPE_ULONG,
            GObject.TYPE_INT64,
            GObject.TYPE_UINT64,
            GObject.TYPE_CHAR,
            GObject.TYPE_UCHAR,
        )

    def _is_native(self, pspec) -> bool:
        """True for property types converted in Python rather than by GStreamer."""
        return pspec.value_type.fundamental in (
            GObject.TYPE_BOOLEAN,
            GObject.TYPE_FLOAT,
            GObject.TYPE_DOUBLE,
            GObject.TYPE_STRING,
            GObject.TYPE_ENUM,
            *self._integer_types(),
        )

    def _deserialize(self, prop: str, pspec, value: str):
        """Parse ``value`` into a ``GObject.Value`` with GStreamer's deserializers.

        Covers flags (``video+audio``), caps, structures and the other types
        GStreamer can read from their string form.

        Raises:
            TypeMismatch: If GStreamer cannot read ``value`` as the property type
        """
        gvalue = GObject.Value()
        gvalue.init(pspec.value_type)
        if not Gst.value_deserialize_with_pspec(gvalue, value.strip(), pspec):
            raise TypeMismatch(self._name, prop, value, pspec.value_type.name)
        return gvalue

    def _current_gvalue(self, prop: str, pspec):
        return GObject.Value(pspec.value_type, self._obj.get_property(prop))

    def _coerce(self, prop: str, pspec, value: str) -> Any:
        """Convert ``value`` to the Python value expected by a native ``pspec``."""
        fundamental = pspec.value_type.fundamental
        expected = pspec.value_type.name
        text = value.strip()

        if fundamental == GObject.TYPE_BOOLEAN:
            lowered = text.lower()
            if lowered in _BOOL_TRUE:
                return True
            if lowered in _BOOL_FALSE:
                return False
            raise TypeMismatch(self._name, prop, value, expected)

        if fundamental in self._integer_types():
            try:
                number = int(text, 0)
            except ValueError as e:
                raise TypeMismatch(self._name, prop, value, expected) from e
            minimum = getattr(pspec, "minimum", None)
            maximum = getattr(pspec, "maximum", None)
            if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
                raise TypeMismatch(self._name, prop, value, f"{expected} in [{minimum}, {maximum}]")
            return number

        if fundamental in (GObject.TYPE_FLOAT, GObject.TYPE_DOUBLE):
            try:
                return float(text)
            except ValueError as e:
                raise TypeMismatch(self._name, prop, value, expected) from e

        if fundamental == GObject.TYPE_STRING:
            return value

        if fundamental == GObject.TYPE_ENUM:
            enum_values = type(pspec.default_value).__enum_values__
            for number, member in enum_values.items():
                if text in (member.value_nick, member.value_name) or text == str(number):
                    return member
            choices = ", ".join(member.value_nick for member in enum_values.values())
            raise TypeMismatch(self._name, prop, value, f"{expected} (one of: {choices})")

        raise TypeMismatch(self._name, prop, value, expected)

    def set_property_from_string(self, name: str, value: str) -> None:
        pspec = self._pspec(name)
        if not pspec.flags & GObject.ParamFlags.WRITABLE:
            raise TypeMismatch(self._name, name, value, "a writable property")

        if self._is_native(pspec):
            self._obj.set_property(name, self._coerce(name, pspec, value))
        else:
            self._obj.set_property(name, self._deserialize(name, pspec, value).get_value())
        logger.debug(f"Set {self._name}::{name} to {value!r}")

    def get_property_as_string(self, name: str) -> str:
        pspec = self._pspec(name)
        if not self._is_native(pspec):
            return Gst.value_serialize(self._current_gvalue(name, pspec)) or ""
        current = self._obj.get_property(name)
        fundamental = pspec.value_type.fundamental
        if fundamental == GObject.TYPE_BOOLEAN:
            return "true" if current else "false"
        if fundamental == GObject.TYPE_ENUM:
            return current.value_nick
        return "" if current is None else str(current)

    def values_equal(self, name: str, value: str) -> bool:
        pspec = self._pspec(name)
        if not self._is_native(pspec):
            expected_value = self._deserialize(name, pspec, value)
            return Gst.value_compare(self._current_gvalue(name, pspec), expected_value) == Gst.VALUE_EQUAL
        current = self._obj.get_property(name)
        expected = self._coerce(name, pspec, value)
        if isinstance(expected, float):
            return abs(float(current) - expected) <= 1e-6 * max(1.0, abs(expected))
        if pspec.value_type.fundamental == GObject.TYPE_ENUM:
            return int(current) == int(expected)
        return current == expected

    def last_frame(self) -> Optional[Frame]:
        if self._obj.find_property("last-sample") is None:
            raise NoFrameAvailable(self._name, "element does not keep a last sample, use a video sink")
        if not self._obj.get_property("enable-last-sample"):
            raise NoFrameAvailable(self._name, "'enable-last-sample' is disabled on the sink")

        sample = self._obj.get_property("last-sample")
        if sample is None:
            return None

        try:
            converted = GstVideo.video_convert_sample(
                sample, Gst.Caps.from_string(_RGB_CAPS), Gst.CLOCK_TIME_NONE
            )
        except GLib.Error as e:
            raise NoFrameAvailable(self._name, f"could not convert sample to RGB: {e.message}") from e
        return self._to_frame(converted)

    def _to_frame(self, sample) -> Frame:
        caps = sample.get_caps()
        structure = caps.get_structure(0)
        width = structure.get_value("width") or 0
        height = structure.get_value("height") or 0
        buffer = sample.get_buffer()
        timestamp = buffer.pts if buffer.pts != Gst.CLOCK_TIME_NONE else None

        # Rows of packed RGB are padded to 4 bytes
        stride = (width * 3 + 3) & ~3
        ok, mapinfo = buffer.map(Gst.MapFlags.READ)
        if not ok:
            raise NoFrameAvailable(self._name, "could not map the sample buffer")
        try:
            data = np.frombuffer(mapinfo.data, dtype=np.uint8)
            if width == 0 or height == 0 or data.size < stride * height:
                logger.warning(
                    f"Malformed frame on {self._name}: {width}x{height} with {data.size} bytes"
                )
                pixels = np.zeros((0, 0, 3), dtype=np.uint8)
                width = height = 0
            else:
                rows = data[: stride * height].reshape(height, stride)[:, : width * 3]
                pixels = rows.reshape(height, width, 3).copy()
        finally:
            buffer.unmap(mapinfo)

        return Frame(
            element=self._name,
            width=width,
            height=height,
            pixels=pixels,
            caps=caps.to_string(),
            timestamp=timestamp,
        )


class GstPipeline(PipelineHandle):
    """A ``Gst.Pipeline`` built from a launch description."""

    def __init__(self, pipeline: Any, description: str):
        self._pipeline = pipeline
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    @property
    def gobject(self) -> Any:
        return self._pipeline

    def _pop_error(self) -> Optional[str]:
        bus = self._pipeline.get_bus()
        if bus is None:
            return None
        message = bus.pop_filtered(Gst.MessageType.ERROR)
        if message is None:
            return None
        error, debug = message.parse_error()
        return f"{error.message} ({debug})" if debug else error.message

    def drain_bus(self) -> int:
        """Pop every queued bus message, logging errors and warnings.

        Returns:
            Number of messages removed
        """
        bus = self._pipeline.get_bus()
        if bus is None:
            return 0
        count = 0
        while True:
            message = bus.pop()
            if message is None:
                return count
            count += 1
            if message.type == Gst.MessageType.ERROR:
                error, debug = message.parse_error()
                logger.error(f"Pipeline error from {message.src.get_name()}: {error.message} ({debug})")
            elif message.type == Gst.MessageType.WARNING:
                warning, debug = message.parse_warning()
                logger.warning(f"Pipeline warning from {message.src.get_name()}: {warning.message} ({debug})")

    def set_state(self, state: PipelineState, timeout: float) -> bool:
        result = self._pipeline.set_state(_gst_state(state))
        if result == Gst.StateChangeReturn.FAILURE:
            raise StateChangeFailure(state.value, self._pop_error())

        result, current, pending = self._pipeline.get_state(int(timeout * Gst.SECOND))
        if result == Gst.StateChangeReturn.FAILURE:
            raise StateChangeFailure(state.value, self._pop_error())
        if result == Gst.StateChangeReturn.ASYNC:
            logger.warning(
                f"State change to {state.value} still pending after {timeout:.1f}s "
                f"(current={current.value_nick}, pending={pending.value_nick})"
            )
            return False
        self.drain_bus()
        return True

    def current_state(self) -> PipelineState:
        _, current, _ = self._pipeline.get_state(0)
        for state in PipelineState:
            if _gst_state(state) == current:
                return state
        return PipelineState.NULL

    def get_element(self, name: str) -> Optional[ElementHandle]:
        element = self._pipeline.get_by_name(name)
        if element is None:
            return None
        return GstElement(element)

    def dispose(self) -> None:
        self._pipeline.set_state(Gst.State.NULL)
        self.drain_bus()
        self._pipeline = None


class GstBackend(PipelineBackend):
    """Builds pipelines with ``Gst.parse_launch``."""

    name = "gstreamer"

    def __init__(self) -> None:
        if not _ensure_gst():
            raise BackendUnavailable(
                "GStreamer Python bindings (PyGObject with Gst 1.0) are not installed"
            )

    def parse_launch(self, description: str) -> PipelineHandle:
        try:
            element = Gst.parse_launch(description)
        except GLib.Error as e:
            raise InvalidPipelineDescription(description, e.message) from e
        if element is None:
            raise InvalidPipelineDescription(description, "parser returned no element")

        if not isinstance(element, Gst.Pipeline):
            # A single element description; give it a pipeline to live in
            pipeline = Gst.Pipeline.new(None)
            pipeline.add(element)
            element = pipeline

        logger.debug(f"Pipeline is: '{description}'")
        return GstPipeline(element, description)

    def create_validation_monitor(self, pipeline: PipelineHandle, config_path: Optional[Any] = None):
        from ..validation.gst_validate import GstValidateMonitor

        return GstValidateMonitor(pipeline, config_path=config_path)
