"""Global pytest fixtures and configuration.

This module provides shared fixtures for all tests including:
- Isolation from HARNESS_* environment variables
- A fast harness configuration (short timeouts)
- The in-memory pipeline backend and contexts built on it
- GStreamer detection for integration tests
"""
from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from src.config import HarnessConfig, reset_config
from src.scenario.context import ScenarioContext
from src.scenario.runner import ScenarioRunner
from src.utils.logging_factory import LoggingFactory
from tests.mocks.fake_pipeline import FakeBackend

FEATURES_DIR = Path(__file__).parent / "features"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: runs scenarios against a real GStreamer installation"
    )


@pytest.fixture(autouse=True)
def clean_harness_env(monkeypatch):
    """Ensure no HARNESS_* or LOG_* variable leaks into a test."""
    for key in [
        "HARNESS_STATE_CHANGE_TIMEOUT",
        "HARNESS_FRAME_TIMEOUT",
        "HARNESS_FRAME_POLL_INTERVAL",
        "HARNESS_COLOR_TIMEOUT",
        "HARNESS_COLOR_STABLE_DURATION",
        "HARNESS_ISSUE_QUEUE_SIZE",
        "HARNESS_STRICT_VALIDATION",
        "HARNESS_VALIDATE_CONFIG_DIR",
        "LOG_LEVEL",
        "LOG_DIR",
        "LOG_TO_CONSOLE",
        "GST_VALIDATE_CONFIG",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
    LoggingFactory.reset()


@pytest.fixture
def fast_config(tmp_path: Path) -> HarnessConfig:
    """Configuration with timeouts small enough for unit tests."""
    return HarnessConfig(
        state_change_timeout=1.0,
        frame_timeout=0.3,
        frame_poll_interval=0.01,
        color_timeout=0.5,
        color_stable_duration=0.05,
        issue_queue_size=16,
        strict_validation=False,
        validate_config_dir=tmp_path / "validate",
        log_level="INFO",
        log_dir=tmp_path / "logs",
        log_to_console=False,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def context(fake_backend: FakeBackend, fast_config: HarnessConfig) -> Generator[ScenarioContext, None, None]:
    """Scenario context on the fake backend; torn down after the test."""
    ctx = ScenarioContext(fake_backend, config=fast_config, name="test scenario")
    yield ctx
    ctx.teardown()


@pytest.fixture
def runner(fake_backend: FakeBackend, fast_config: HarnessConfig) -> ScenarioRunner:
    return ScenarioRunner(lambda: fake_backend, config=fast_config)


@pytest.fixture
def features_dir() -> Path:
    return FEATURES_DIR


@pytest.fixture(scope="session")
def gst_backend():
    """Real GStreamer backend, skip tests if the bindings are not installed.

    Raises:
        pytest.skip: If PyGObject or GStreamer are not available
    """
    from src.pipeline.gst_backend import GstBackend, gst_available

    if not gst_available():
        pytest.skip("GStreamer not available - install PyGObject and GStreamer to run integration tests")
    return GstBackend()
