"""Tests for src.utils.logging_factory module."""

import logging
from pathlib import Path

import pytest

from src.utils.logging_factory import COMPONENT_LOGGERS, LoggingFactory, get_logger


@pytest.fixture(autouse=True)
def pristine_logging():
    """Reset LoggingFactory and root handlers around each test."""

    def _reset():
        LoggingFactory.reset()
        root = logging.getLogger()
        root.setLevel(logging.WARNING)
        for name in COMPONENT_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()


class TestLoggingFactoryInitialize:
    """Tests for LoggingFactory.initialize() method."""

    def test_initialize_creates_log_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        LoggingFactory.initialize(log_dir=log_dir)

        assert LoggingFactory._initialized is True
        assert LoggingFactory._log_dir == log_dir
        assert (log_dir / "harness.log").exists()

        root = logging.getLogger()
        assert root.level <= logging.INFO
        assert len(LoggingFactory._handlers) == 2  # FileHandler + StreamHandler
        assert all(handler in root.handlers for handler in LoggingFactory._handlers)

    def test_initialize_without_console(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path, to_console=False)

        handlers = LoggingFactory._handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)

    def test_initialize_custom_level(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path, level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_initialize_only_once(self, tmp_path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        LoggingFactory.initialize(log_dir=first)
        LoggingFactory.initialize(log_dir=second)

        assert LoggingFactory._log_dir == first
        assert not second.exists()

    def test_messages_reach_the_file(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path, to_console=False)
        logging.getLogger("src.scenario.runner").info("Scenario: green pattern")
        for handler in LoggingFactory._handlers:
            handler.flush()

        content = (tmp_path / "harness.log").read_text()
        assert "Scenario: green pattern" in content
        assert "src.scenario.runner" in content

    def test_custom_format(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path, format_string="%(levelname)s|%(message)s", to_console=False)
        logging.getLogger("src").warning("careful")
        for handler in LoggingFactory._handlers:
            handler.flush()
        assert "WARNING|careful" in (tmp_path / "harness.log").read_text()


class TestLoggingFactoryLevels:
    def test_configure_verbose(self):
        LoggingFactory.configure_verbose(True)
        assert logging.getLogger().level == logging.DEBUG
        for name in COMPONENT_LOGGERS:
            assert logging.getLogger(name).level == logging.DEBUG

        LoggingFactory.configure_verbose(False)
        for name in COMPONENT_LOGGERS:
            assert logging.getLogger(name).level == logging.INFO

    def test_set_level(self):
        LoggingFactory.set_level("src.analysis", logging.ERROR)
        assert logging.getLogger("src.analysis").level == logging.ERROR

    def test_reset(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path)
        handlers = list(LoggingFactory._handlers)
        LoggingFactory.reset()
        assert LoggingFactory._initialized is False
        assert not any(handler in logging.getLogger().handlers for handler in handlers)
        assert LoggingFactory._log_dir == Path("logs")


class TestGetLogger:
    def test_get_logger_auto_initializes(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        logger = get_logger("src.steps.parser")

        assert logger.name == "src.steps.parser"
        assert LoggingFactory._initialized is True
        assert (tmp_path / "logs" / "harness.log").exists()

    def test_same_name_same_logger(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path)
        assert get_logger("src.pipeline") is get_logger("src.pipeline")
