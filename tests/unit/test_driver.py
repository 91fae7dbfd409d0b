"""Tests for src.pipeline.driver module."""

import time

import pytest

from src.errors import (
    InvalidPipelineDescription,
    NoSuchProperty,
    PipelineNotConfigured,
    ScenarioStateError,
    StateChangeFailure,
    StateChangeTimeout,
    TypeMismatch,
    UnknownElement,
)
from src.pipeline.backend import PipelineState
from src.pipeline.driver import PipelineDriver, ScenarioPhase
from src.steps.actions import PropertyPath, StateTransition
from tests.mocks.fake_pipeline import FakeBackend


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def driver(backend):
    driver = PipelineDriver(backend, state_change_timeout=0.5)
    yield driver
    driver.shutdown()


def path(text):
    return PropertyPath.parse(text)


class TestBuild:
    def test_build_sets_phase(self, driver):
        assert driver.phase == ScenarioPhase.UNINITIALIZED
        driver.build("videotestsrc ! fakevideosink name=sink")
        assert driver.phase == ScenarioPhase.BUILT
        assert driver.has_pipeline

    def test_invalid_syntax(self, driver):
        with pytest.raises(InvalidPipelineDescription):
            driver.build("videotestsrc ! ! fakevideosink")
        assert not driver.has_pipeline

    def test_unknown_factory(self, driver):
        with pytest.raises(InvalidPipelineDescription) as exc_info:
            driver.build("nosuchsrc ! fakevideosink")
        assert "nosuchsrc" in str(exc_info.value)

    def test_rebuild_disposes_previous_pipeline(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink name=sink")
        driver.play()
        driver.build("videotestsrc ! fakevideosink name=other")
        first, second = backend.pipelines
        assert first.disposed
        assert not second.disposed
        assert driver.phase == ScenarioPhase.BUILT
        with pytest.raises(UnknownElement):
            driver.element("sink")

    def test_pinned_pipeline_cannot_be_replaced(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink name=sink")
        driver.pin("it is monitored")
        with pytest.raises(ScenarioStateError) as exc_info:
            driver.build("videotestsrc ! fakevideosink name=other")
        assert "it is monitored" in str(exc_info.value)
        assert len(backend.pipelines) == 1
        assert not backend.pipelines[0].disposed
        assert driver.element("sink") is not None

    def test_pipeline_access_before_build(self, driver):
        with pytest.raises(PipelineNotConfigured):
            driver.pipeline
        with pytest.raises(PipelineNotConfigured):
            driver.play()
        with pytest.raises(PipelineNotConfigured):
            driver.element("sink")


class TestStateChanges:
    @pytest.mark.parametrize(
        "transition,state,phase",
        [
            (StateTransition.PLAY, PipelineState.PLAYING, ScenarioPhase.PLAYING),
            (StateTransition.PAUSE, PipelineState.PAUSED, ScenarioPhase.PAUSED),
            (StateTransition.PREPARE, PipelineState.READY, ScenarioPhase.READY),
            (StateTransition.STOP, PipelineState.NULL, ScenarioPhase.STOPPED),
        ],
    )
    def test_transition(self, driver, backend, transition, state, phase):
        driver.build("videotestsrc ! fakevideosink")
        driver.change_state(transition)
        assert backend.pipelines[0].current_state() == state
        assert driver.phase == phase

    def test_play_then_stop(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        driver.stop()
        assert backend.pipelines[0].state_history == [PipelineState.PLAYING, PipelineState.NULL]

    def test_timeout(self, driver, backend):
        backend.hang_states.add(PipelineState.PLAYING)
        driver.build("videotestsrc ! fakevideosink")
        with pytest.raises(StateChangeTimeout) as exc_info:
            driver.play()
        assert exc_info.value.timeout == 0.5
        assert driver.phase == ScenarioPhase.BUILT

    def test_failure(self, driver, backend):
        backend.fail_states.add(PipelineState.PLAYING)
        driver.build("videotestsrc ! fakevideosink")
        with pytest.raises(StateChangeFailure):
            driver.play()

    def test_listeners_run_after_each_transition(self, driver):
        seen = []
        driver.add_listener(seen.append)
        driver.add_listener(lambda phase: seen.append(("second", phase)))
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        driver.stop()
        assert seen == [
            ScenarioPhase.PLAYING,
            ("second", ScenarioPhase.PLAYING),
            ScenarioPhase.STOPPED,
            ("second", ScenarioPhase.STOPPED),
        ]

    def test_listeners_not_called_on_timeout(self, driver, backend):
        seen = []
        driver.add_listener(seen.append)
        backend.hang_states.add(PipelineState.NULL)
        driver.build("videotestsrc ! fakevideosink")
        with pytest.raises(StateChangeTimeout):
            driver.stop()
        assert seen == []
        backend.hang_states.clear()


class TestProperties:
    def test_set_and_get(self, driver):
        driver.build("videotestsrc name=src ! fakevideosink name=sink")
        driver.set_property(path("src::pattern"), "green")
        assert driver.get_property(path("src::pattern")) == "green"
        assert driver.property_equals(path("src::pattern"), "green")
        assert not driver.property_equals(path("src::pattern"), "red")

    def test_values_are_compared_by_type(self, driver):
        driver.build("videotestsrc ! identity name=id ! fakevideosink name=sink")
        driver.set_property(path("sink::sync"), "0")
        assert driver.property_equals(path("sink::sync"), "false")
        driver.set_property(path("id::drop-probability"), "0.25")
        assert driver.property_equals(path("id::drop-probability"), "0.250")

    def test_set_while_playing(self, driver, backend):
        driver.build("videotestsrc name=src ! fakevideosink name=sink")
        driver.play()
        driver.set_property(path("src::pattern"), "blue")
        assert backend.pipelines[0].elements["src"].properties["pattern"].value == "blue"

    def test_nested_path(self, driver):
        driver.build("videotestsrc ! compositor name=comp ! fakevideosink")
        driver.set_property(path("comp::sink_0::alpha"), "0.5")
        target, prop = driver.resolve_property(path("comp::sink_0::alpha"))
        assert target.name == "sink_0"
        assert prop == "alpha"
        assert driver.property_equals(path("comp::sink_0::alpha"), "0.5")

    def test_unknown_element(self, driver):
        driver.build("videotestsrc ! fakevideosink")
        with pytest.raises(UnknownElement) as exc_info:
            driver.set_property(path("nope::pattern"), "green")
        assert exc_info.value.name == "nope"

    def test_unknown_property(self, driver):
        driver.build("videotestsrc name=src ! fakevideosink")
        with pytest.raises(NoSuchProperty):
            driver.set_property(path("src::colour"), "green")

    def test_unknown_child(self, driver):
        driver.build("videotestsrc ! compositor name=comp ! fakevideosink")
        with pytest.raises(NoSuchProperty):
            driver.set_property(path("comp::sink_9::alpha"), "0.5")

    @pytest.mark.parametrize("prop,value", [("is-live", "maybe"), ("num-buffers", "many"), ("pattern", "plaid")])
    def test_type_mismatch(self, driver, prop, value):
        driver.build("videotestsrc name=src ! fakevideosink")
        with pytest.raises(TypeMismatch):
            driver.set_property(path(f"src::{prop}"), value)

    def test_element_lookup_is_memoized(self, driver):
        driver.build("videotestsrc name=src ! fakevideosink")
        assert driver.element("src") is driver.element("src")


class TestWait:
    def test_zero_returns_immediately(self, driver):
        start = time.monotonic()
        driver.wait(0)
        assert time.monotonic() - start < 0.05

    def test_sleeps(self, driver):
        start = time.monotonic()
        driver.wait(0.05)
        assert time.monotonic() - start >= 0.05

    def test_negative(self, driver):
        with pytest.raises(ValueError):
            driver.wait(-1)


class TestShutdown:
    def test_shutdown_stops_and_disposes(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        driver.shutdown()
        pipeline = backend.pipelines[0]
        assert pipeline.state_history[-1] == PipelineState.NULL
        assert pipeline.disposed
        assert driver.phase == ScenarioPhase.TORN_DOWN
        assert not driver.has_pipeline

    def test_shutdown_without_pipeline(self, driver):
        driver.shutdown()
        assert driver.phase == ScenarioPhase.TORN_DOWN

    def test_shutdown_is_idempotent(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        driver.shutdown()
        driver.shutdown()
        assert backend.pipelines[0].state_history.count(PipelineState.NULL) == 1

    def test_already_stopped_pipeline_is_not_stopped_again(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        driver.stop()
        driver.shutdown()
        assert backend.pipelines[0].state_history == [PipelineState.PLAYING, PipelineState.NULL]

    def test_failed_stop_still_tears_down(self, driver, backend):
        driver.build("videotestsrc ! fakevideosink")
        driver.play()
        backend.fail_states.add(PipelineState.NULL)
        with pytest.raises(StateChangeFailure):
            driver.shutdown()
        assert driver.phase == ScenarioPhase.TORN_DOWN
        assert backend.pipelines[0].disposed

    def test_no_steps_after_teardown(self, driver):
        driver.build("videotestsrc ! fakevideosink")
        driver.shutdown()
        with pytest.raises(ScenarioStateError):
            driver.build("videotestsrc ! fakevideosink")
