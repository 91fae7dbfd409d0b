"""Abstract interface to the media framework that runs pipelines.

The driver only talks to these classes, which keeps the harness independent of
the bindings in use. :mod:`src.pipeline.gst_backend` implements them on top of
GStreamer; tests supply an in-memory implementation.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..models.media import Frame, ValidationIssue


class PipelineState(Enum):
    """Target states a pipeline can be asked to reach."""

    NULL = "null"
    READY = "ready"
    PAUSED = "paused"
    PLAYING = "playing"


@dataclass(frozen=True)
class PropertyInfo:
    """Description of one property of an element."""

    name: str
    type_name: str
    writable: bool = True
    readable: bool = True
    is_object: bool = False


class ElementHandle(ABC):
    """A named node of a running pipeline (or a child object of one)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Element name as used in the pipeline description."""

    @abstractmethod
    def find_property(self, name: str) -> Optional[PropertyInfo]:
        """Return the property description, or None if the element lacks it."""

    @abstractmethod
    def get_child(self, name: str) -> "ElementHandle":
        """Return the object stored in an object-valued property.

        Raises:
            NoSuchProperty: If the property is missing or not object-valued
        """

    @abstractmethod
    def set_property_from_string(self, name: str, value: str) -> None:
        """Convert ``value`` to the property's type and apply it.

        Raises:
            NoSuchProperty: If the element lacks the property
            TypeMismatch: If the value cannot be converted
        """

    @abstractmethod
    def get_property_as_string(self, name: str) -> str:
        """Return the current value of a property, serialized."""

    @abstractmethod
    def values_equal(self, name: str, value: str) -> bool:
        """Compare the current property value with a serialized one.

        Raises:
            TypeMismatch: If ``value`` cannot be converted to the property type
        """

    @abstractmethod
    def last_frame(self) -> Optional[Frame]:
        """Return the most recently rendered frame, or None if there is none yet.

        Raises:
            NoFrameAvailable: If the element cannot provide frames at all
        """


class PipelineHandle(ABC):
    """An instantiated pipeline."""

    @property
    @abstractmethod
    def description(self) -> str:
        """The textual description the pipeline was built from."""

    @abstractmethod
    def set_state(self, state: PipelineState, timeout: float) -> bool:
        """Request a state change and wait for it.

        Returns:
            True if the state was reached within ``timeout`` seconds

        Raises:
            StateChangeFailure: If the pipeline refused the change
        """

    @abstractmethod
    def current_state(self) -> PipelineState:
        """State the pipeline is currently in."""

    @abstractmethod
    def get_element(self, name: str) -> Optional[ElementHandle]:
        """Look an element up by name (searching nested bins)."""

    @abstractmethod
    def dispose(self) -> None:
        """Release all resources held by the pipeline."""


class ValidationMonitor(ABC):
    """A subscription to the validator's issue stream for one pipeline."""

    @abstractmethod
    def start(self, on_issue: Callable[[ValidationIssue], None]) -> None:
        """Begin delivering issues to ``on_issue`` (may be called from any thread)."""

    @abstractmethod
    def stop(self) -> None:
        """Cancel the subscription and release validator resources."""


class PipelineBackend(ABC):
    """Factory for pipelines and validation monitors."""

    name = "abstract"

    @abstractmethod
    def parse_launch(self, description: str) -> PipelineHandle:
        """Instantiate a pipeline from a textual description.

        Raises:
            InvalidPipelineDescription: On malformed syntax or unknown element types
        """

    @abstractmethod
    def create_validation_monitor(
        self, pipeline: PipelineHandle, config_path: Optional[Any] = None
    ) -> ValidationMonitor:
        """Attach the validator to ``pipeline``.

        Args:
            pipeline: Pipeline to monitor
            config_path: Path of a validator configuration file, if any
        """
