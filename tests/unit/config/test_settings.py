"""
Tests for settings loading.

Tests defaults, YAML config file mapping and env precedence.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from postback_relay.config import (
    AuditLogSettings,
    RuleSettings,
    Settings,
    get_settings,
    load_config_file,
    reload_settings,
)


@pytest.fixture(autouse=True)
def clean_env():
    """Isolate tests from POSTBACK_RELAY_* variables and the settings cache."""
    saved = dict(os.environ)
    for key in list(os.environ):
        if key.startswith("POSTBACK_RELAY_"):
            del os.environ[key]
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(saved)
    get_settings.cache_clear()


class TestDefaults:
    """Test built-in defaults."""

    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.dispatch.base_url == "https://xkcfj.ttrk.io/postback"
        assert settings.dispatch.timeout_seconds == 6
        assert settings.dispatch.body_excerpt_chars == 280
        assert settings.rules.value_threshold == 1
        assert settings.rules.marker == ("sub11", "low_value")
        assert settings.masking.keep_left == 3
        assert settings.masking.keep_right == 2
        assert settings.masking.mask_char == "*"
        assert settings.audit_log.path == Path("./logs") / "redtrack-postback-proxy.log"

    def test_blank_marker_disables_marker(self) -> None:
        assert RuleSettings(low_value_marker_value="").marker is None

    def test_settings_are_frozen(self) -> None:
        settings = Settings()
        with pytest.raises(PydanticValidationError):
            settings.debug = True

    def test_audit_log_path(self, tmp_path: Path) -> None:
        settings = AuditLogSettings(directory=tmp_path, filename="x.log")
        assert settings.path == tmp_path / "x.log"


class TestConfigFile:
    """Test YAML config file loading."""

    def test_missing_file_returns_empty(self, tmp_path: Path) -> None:
        assert load_config_file(str(tmp_path / "absent.yaml")) == {}

    def test_yaml_file_loaded(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("rules:\n  value_threshold: 2.5\n", encoding="utf-8")

        assert load_config_file(str(path)) == {"rules": {"value_threshold": 2.5}}

    def test_config_values_applied(self, tmp_path: Path) -> None:
        config = {
            "server": {"log_level": "WARNING"},
            "dispatch": {"base_url": "https://tracker.example/pb", "timeout_seconds": 3},
            "rules": {"value_threshold": 2.5},
            "masking": {"enabled": False},
            "audit_log": {"directory": str(tmp_path)},
        }
        with patch("postback_relay.config.load_config_file", return_value=config):
            settings = reload_settings()

        assert settings.log_level == "WARNING"
        assert settings.dispatch.base_url == "https://tracker.example/pb"
        assert settings.dispatch.timeout_seconds == 3
        assert settings.rules.value_threshold == 2.5
        assert settings.masking.enabled is False
        assert settings.audit_log.directory == tmp_path

    def test_env_overrides_config_file(self, monkeypatch) -> None:
        monkeypatch.setenv("POSTBACK_RELAY_RULES_VALUE_THRESHOLD", "5")
        config = {"rules": {"value_threshold": 2.5}}

        with patch("postback_relay.config.load_config_file", return_value=config):
            settings = reload_settings()

        assert settings.rules.value_threshold == 5
