"""Tests for HarnessConfig loading and validation."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config import HarnessConfig, get_config, load_environment, reset_config


class TestHarnessConfigDefaults:
    def test_defaults(self):
        config = HarnessConfig()
        assert config.state_change_timeout == 10.0
        assert config.frame_timeout == 5.0
        assert config.frame_poll_interval == 0.1
        assert config.color_timeout == 5.0
        assert config.color_stable_duration == 1.0
        assert config.issue_queue_size == 1024
        assert config.strict_validation is False
        assert config.log_level == "INFO"
        assert config.log_dir == Path("logs")
        config.validate()

    def test_environment_overrides(self):
        env = {
            "HARNESS_STATE_CHANGE_TIMEOUT": "3",
            "HARNESS_FRAME_TIMEOUT": "0.5",
            "HARNESS_ISSUE_QUEUE_SIZE": "8",
            "HARNESS_STRICT_VALIDATION": "yes",
            "HARNESS_VALIDATE_CONFIG_DIR": "/tmp/validate",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env):
            config = HarnessConfig()
        assert config.state_change_timeout == 3.0
        assert config.frame_timeout == 0.5
        assert config.issue_queue_size == 8
        assert config.strict_validation is True
        assert config.validate_config_dir == Path("/tmp/validate")
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "key,value",
        [("HARNESS_FRAME_TIMEOUT", "soon"), ("HARNESS_ISSUE_QUEUE_SIZE", "1.5")],
    )
    def test_unparseable_environment(self, key, value):
        with patch.dict(os.environ, {key: value}):
            with pytest.raises(ValueError) as exc_info:
                HarnessConfig()
        assert key in str(exc_info.value)


class TestHarnessConfigValidate:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"state_change_timeout": 0},
            {"frame_timeout": -1},
            {"frame_poll_interval": 0},
            {"color_timeout": -0.1},
            {"color_stable_duration": -1},
            {"color_stable_duration": 10.0, "color_timeout": 5.0},
            {"issue_queue_size": 0},
            {"log_level": "VERBOSE"},
        ],
    )
    def test_invalid_values(self, overrides):
        config = HarnessConfig(**overrides)
        with pytest.raises(ValueError):
            config.validate()

    def test_with_overrides_ignores_none(self):
        config = HarnessConfig(strict_validation=False)
        assert config.with_overrides(strict_validation=None).strict_validation is False
        updated = config.with_overrides(strict_validation=True, frame_timeout=2.0)
        assert updated.strict_validation is True
        assert updated.frame_timeout == 2.0
        assert config.strict_validation is False


class TestGetConfig:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("HARNESS_COLOR_TIMEOUT", "9")
        reset_config()
        second = get_config()
        assert second is not first
        assert second.color_timeout == 9.0

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("HARNESS_FRAME_POLL_INTERVAL=0.25\n")
        monkeypatch.delenv("HARNESS_FRAME_POLL_INTERVAL", raising=False)
        try:
            assert load_environment(env_file) == env_file
            assert HarnessConfig().frame_poll_interval == 0.25
        finally:
            os.environ.pop("HARNESS_FRAME_POLL_INTERVAL", None)

    def test_dotenv_does_not_override(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("HARNESS_FRAME_TIMEOUT=99\n")
        monkeypatch.setenv("HARNESS_FRAME_TIMEOUT", "2")
        load_environment(env_file)
        assert HarnessConfig().frame_timeout == 2.0

    def test_missing_dotenv(self, tmp_path):
        assert load_environment(tmp_path / "absent.env") is None
