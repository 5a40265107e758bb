"""
Test Configuration Module
========================

Unit tests for settings loading and automation source resolution.
"""

import json
import pytest
from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import (
    Settings, TwilioConfig, WebConfig, LoggingConfig,
    load_config, save_config, load_automation
)
from core.exceptions import ConfigError, ConfigValidationError
from rules.defaults import DEFAULT_CONFIG

ENV_VARS = [
    "FLOWWAVE_SETTINGS",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_WHATSAPP_NUMBER",
    "AUTOMATION_CONFIG",
    "FLOWWAVE_AUTOMATION_PATH",
    "FLOWWAVE_WEB_HOST",
    "FLOWWAVE_WEB_PORT",
    "FLOWWAVE_WEB_DEBUG",
    "FLOWWAVE_LOG_LEVEL",
    "FLOWWAVE_LOG_DIR",
    "FLOWWAVE_LOG_JSON",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSections:
    """Tests for individual settings sections."""

    def test_twilio_not_configured_by_default(self):
        """Empty credentials mean no transport."""
        assert TwilioConfig().is_configured is False
        assert TwilioConfig("AC123", "token", "+14155238886").is_configured is True

    def test_twilio_sid_prefix(self):
        """Account SIDs start with AC."""
        with pytest.raises(ConfigError):
            TwilioConfig(account_sid="XX123").validate()

    def test_invalid_port(self):
        with pytest.raises(ConfigError):
            WebConfig(port=70000).validate()

    def test_invalid_log_level(self):
        with pytest.raises(ConfigError):
            LoggingConfig(level="LOUD").validate()


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        """No file and no env gives defaults."""
        settings = load_config()

        assert settings.app_name == "FlowWave"
        assert settings.web.port == 8080
        assert settings.twilio.is_configured is False

    def test_env_overrides(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret")
        monkeypatch.setenv("TWILIO_WHATSAPP_NUMBER", "+14155238886")
        monkeypatch.setenv("FLOWWAVE_WEB_PORT", "9000")
        monkeypatch.setenv("FLOWWAVE_WEB_DEBUG", "true")

        settings = load_config()

        assert settings.twilio.is_configured
        assert settings.web.port == 9000
        assert settings.web.debug is True

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("FLOWWAVE_WEB_PORT", "eighty")

        with pytest.raises(ConfigError):
            load_config()

    def test_yaml_file(self, tmp_path):
        """Values from YAML are applied."""
        path = tmp_path / "settings.yaml"
        path.write_text("web:\n  host: 0.0.0.0\n  port: 9090\nlogging:\n  level: DEBUG\n")

        settings = load_config(str(path))

        assert settings.web.host == "0.0.0.0"
        assert settings.web.port == 9090
        assert settings.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_save_and_reload(self, tmp_path):
        """Saved settings load back the same."""
        settings = Settings()
        settings.web.port = 8181
        path = tmp_path / "out.yaml"

        save_config(settings, str(path))

        assert load_config(str(path), load_env=False).web.port == 8181

    def test_to_dict_redacts_token(self):
        settings = Settings()
        settings.twilio.auth_token = "secret"

        assert settings.to_dict()["twilio"]["auth_token"] == "********"


class TestLoadAutomation:
    """Tests for automation source resolution."""

    def test_default(self):
        """No source means the starter config."""
        config = load_automation(Settings())

        assert len(config.flows) == len(DEFAULT_CONFIG["flows"])

    def test_inline_json_wins(self, tmp_path):
        """Inline JSON takes precedence over a file."""
        path = tmp_path / "automation.json"
        path.write_text(json.dumps(DEFAULT_CONFIG))
        settings = Settings()
        settings.automation.config_path = str(path)
        settings.automation.config_json = json.dumps({"flows": [], "fallbackMessage": "inline"})

        assert load_automation(settings).fallback_message == "inline"

    def test_file(self, tmp_path):
        path = tmp_path / "automation.json"
        path.write_text(json.dumps({"flows": [], "fallbackMessage": "from file"}))
        settings = Settings()
        settings.automation.config_path = str(path)

        assert load_automation(settings).fallback_message == "from file"

    def test_invalid_source(self):
        """An invalid document fails loudly with all violations."""
        settings = Settings()
        settings.automation.config_json = json.dumps({"flows": "nope"})

        with pytest.raises(ConfigValidationError) as exc_info:
            load_automation(settings)

        assert {v.path for v in exc_info.value.violations} == {"fallbackMessage", "flows"}
