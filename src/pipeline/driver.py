"""Pipeline driver: builds one pipeline per scenario and drives its state."""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import (
    PipelineNotConfigured,
    ScenarioStateError,
    StateChangeTimeout,
    UnknownElement,
)
from ..steps.actions import PropertyPath, StateTransition
from .backend import ElementHandle, PipelineBackend, PipelineHandle, PipelineState

logger = logging.getLogger(__name__)


class ScenarioPhase(Enum):
    """Lifecycle of the pipeline owned by a scenario."""

    UNINITIALIZED = "uninitialized"
    BUILT = "built"
    READY = "ready"
    PAUSED = "paused"
    PLAYING = "playing"
    STOPPED = "stopped"
    TORN_DOWN = "torn_down"


# Phase reached after a successful transition, and the backend state requested
TRANSITIONS: Dict[StateTransition, Tuple[PipelineState, ScenarioPhase]] = {
    StateTransition.PLAY: (PipelineState.PLAYING, ScenarioPhase.PLAYING),
    StateTransition.PAUSE: (PipelineState.PAUSED, ScenarioPhase.PAUSED),
    StateTransition.PREPARE: (PipelineState.READY, ScenarioPhase.READY),
    StateTransition.STOP: (PipelineState.NULL, ScenarioPhase.STOPPED),
}

StateListener = Callable[[ScenarioPhase], None]


class PipelineDriver:
    """Owns the pipeline of one scenario.

    State changes block until the backend reports completion or
    ``state_change_timeout`` elapses. Listeners registered with
    :meth:`add_listener` are called after every completed transition, in
    registration order, on the caller's thread.
    """

    def __init__(self, backend: PipelineBackend, state_change_timeout: float = 10.0):
        self.backend = backend
        self.state_change_timeout = state_change_timeout
        self.phase = ScenarioPhase.UNINITIALIZED
        self._pipeline: Optional[PipelineHandle] = None
        self._elements: Dict[str, ElementHandle] = {}
        self._listeners: List[StateListener] = []
        self._pinned_by: Optional[str] = None

    @property
    def pipeline(self) -> PipelineHandle:
        if self._pipeline is None:
            raise PipelineNotConfigured()
        return self._pipeline

    @property
    def has_pipeline(self) -> bool:
        return self._pipeline is not None

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.phase)

    def pin(self, reason: str) -> None:
        """Forbid replacing the current pipeline; ``reason`` ends up in the error."""
        self._pinned_by = reason

    def _check_alive(self) -> None:
        if self.phase == ScenarioPhase.TORN_DOWN:
            raise ScenarioStateError("Scenario has already been torn down")

    def build(self, description: str) -> PipelineHandle:
        """Instantiate the scenario pipeline, replacing any previous one.

        Raises:
            InvalidPipelineDescription: If the backend rejects the description
            ScenarioStateError: If the current pipeline is pinned
        """
        self._check_alive()
        if self._pipeline is not None and self._pinned_by:
            raise ScenarioStateError(f"The pipeline cannot be replaced, {self._pinned_by}")
        if self._pipeline is not None:
            logger.info("Replacing the scenario pipeline, disposing the previous one")
            self._release()

        self._pipeline = self.backend.parse_launch(description)
        self.phase = ScenarioPhase.BUILT
        logger.info(f"Pipeline built: {description}")
        return self._pipeline

    def change_state(self, transition: StateTransition) -> None:
        """Drive the pipeline to the state named by ``transition``.

        Raises:
            PipelineNotConfigured: If no pipeline was built
            StateChangeTimeout: If the state was not reached in time
            StateChangeFailure: If the pipeline refused the change
        """
        self._check_alive()
        pipeline = self.pipeline
        state, phase = TRANSITIONS[transition]

        start = time.monotonic()
        reached = pipeline.set_state(state, self.state_change_timeout)
        if not reached:
            raise StateChangeTimeout(state.value, self.state_change_timeout)

        self.phase = phase
        logger.info(f"Pipeline {phase.value} ({time.monotonic() - start:.3f}s)")
        self._notify()

    def play(self) -> None:
        self.change_state(StateTransition.PLAY)

    def stop(self) -> None:
        self.change_state(StateTransition.STOP)

    def pause(self) -> None:
        self.change_state(StateTransition.PAUSE)

    def prepare(self) -> None:
        self.change_state(StateTransition.PREPARE)

    def element(self, name: str) -> ElementHandle:
        """Return the element called ``name``; lookups are memoized.

        Raises:
            PipelineNotConfigured: If no pipeline was built
            UnknownElement: If the pipeline has no such element
        """
        cached = self._elements.get(name)
        if cached is not None:
            return cached
        element = self.pipeline.get_element(name)
        if element is None:
            raise UnknownElement(name)
        self._elements[name] = element
        return element

    def resolve_property(self, path: PropertyPath) -> Tuple[ElementHandle, str]:
        """Walk ``path`` to the object owning its final property.

        Intermediate segments name object-valued properties (or child objects).
        """
        target = self.element(path.element)
        for segment in path.properties[:-1]:
            target = target.get_child(segment)
        return target, path.name

    def set_property(self, path: PropertyPath, value: str) -> None:
        """Apply ``value`` to the property at ``path`` immediately.

        Raises:
            NoSuchProperty: If the element lacks the property
            TypeMismatch: If the value cannot be converted
        """
        self._check_alive()
        target, prop = self.resolve_property(path)
        target.set_property_from_string(prop, value)
        logger.info(f"Property {path} set to {value!r}")

    def get_property(self, path: PropertyPath) -> str:
        target, prop = self.resolve_property(path)
        return target.get_property_as_string(prop)

    def property_equals(self, path: PropertyPath, value: str) -> bool:
        target, prop = self.resolve_property(path)
        return target.values_equal(prop, value)

    def wait(self, seconds: float) -> None:
        """Block for ``seconds`` of wall-clock time; the pipeline keeps running."""
        if seconds < 0:
            raise ValueError("wait duration must be non-negative")
        if seconds == 0:
            return
        logger.debug(f"Waiting {seconds:.3f}s")
        time.sleep(seconds)

    def shutdown(self) -> None:
        """Stop the pipeline if it is running, release it and end the lifecycle.

        The stop transition notifies listeners as usual. The driver ends in
        ``TORN_DOWN`` even when stopping fails; the error is re-raised.
        """
        if self.phase == ScenarioPhase.TORN_DOWN:
            return
        try:
            if self._pipeline is not None and self.phase not in (
                ScenarioPhase.STOPPED,
                ScenarioPhase.BUILT,
            ):
                self.stop()
        finally:
            try:
                self._release()
            finally:
                self.phase = ScenarioPhase.TORN_DOWN

    def _release(self) -> None:
        pipeline, self._pipeline = self._pipeline, None
        self._elements.clear()
        if pipeline is not None:
            pipeline.dispose()
            logger.debug(f"Disposed pipeline: {pipeline.description}")
