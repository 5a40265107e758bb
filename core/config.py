"""
Configuration Management - YAML-based settings with environment overrides
=========================================================================

This module holds the application settings that sit around the automation
engine: Twilio credentials, where the automation config comes from, the web
server bind address and logging. Settings are loaded in this order:

1. Default values from the dataclasses
2. Values from a YAML file
3. Environment variable overrides

The automation config itself (flows and fallback message) is a separate
JSON document, resolved by ``load_automation``.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict

from .exceptions import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class TwilioConfig:
    """
    Twilio messaging credentials.

    All three values are needed to send anything. When any is missing the
    webhook still replies, but handoff notifications and manual sends are
    skipped.
    """
    account_sid: str = ""
    auth_token: str = ""
    whatsapp_number: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.whatsapp_number)

    def validate(self) -> None:
        if self.account_sid and not self.account_sid.startswith("AC"):
            raise ConfigError(
                "Twilio account SID must start with 'AC'",
                {"account_sid": self.account_sid[:6] + "..."}
            )


@dataclass
class AutomationSourceConfig:
    """
    Where the automation config is read from.

    ``config_json`` (usually the AUTOMATION_CONFIG environment variable) wins
    over ``config_path``. With neither set the built-in defaults are used.
    """
    config_path: str = ""
    config_json: str = ""

    def validate(self) -> None:
        if self.config_path and not Path(self.config_path).is_file():
            raise ConfigError(
                f"Automation config file not found: {self.config_path}",
                {"path": self.config_path}
            )


@dataclass
class WebConfig:
    """Web server settings."""
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    def validate(self) -> None:
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid web port: {self.port}")


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    log_dir: str = ""
    json_format: bool = False

    def validate(self) -> None:
        if self.level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.level}")


@dataclass
class Settings:
    """
    Main settings container.

    Aggregates all sections into a single object and provides methods for
    validating and exporting.
    """
    app_name: str = "FlowWave"
    version: str = "1.0.0"

    twilio: TwilioConfig = field(default_factory=TwilioConfig)
    automation: AutomationSourceConfig = field(default_factory=AutomationSourceConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """
        Validate all sections.

        Raises:
            ConfigError: If any section is invalid
        """
        self.twilio.validate()
        self.automation.validate()
        self.web.validate()
        self.logging.validate()

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """Convert settings to a dictionary, hiding the auth token by default."""
        twilio = asdict(self.twilio)
        if redact and twilio["auth_token"]:
            twilio["auth_token"] = "********"
        return {
            "app_name": self.app_name,
            "version": self.version,
            "twilio": twilio,
            "automation": asdict(self.automation),
            "web": asdict(self.web),
            "logging": asdict(self.logging),
        }


def load_config(config_path: Optional[str] = None, load_env: bool = True) -> Settings:
    """
    Load settings from a YAML file with environment variable overrides.

    Args:
        config_path: Path to settings file (optional)
        load_env: Whether to apply environment variable overrides

    Returns:
        Validated Settings object

    Raises:
        ConfigError: If the file cannot be read or settings are invalid
    """
    settings = Settings()

    if config_path is None:
        config_path = os.environ.get("FLOWWAVE_SETTINGS")

    if config_path:
        yaml_path = Path(config_path)
        if not yaml_path.exists():
            raise ConfigError("Settings file not found", {"path": str(yaml_path)})
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse settings file: {e}", {"path": str(yaml_path)})
        except IOError as e:
            raise ConfigError(f"Failed to read settings file: {e}", {"path": str(yaml_path)})

        if not isinstance(yaml_config, dict):
            raise ConfigError("Settings file must contain a mapping", {"path": str(yaml_path)})
        _apply_yaml_config(settings, yaml_config)

    if load_env:
        _apply_env_overrides(settings)

    settings.validate()

    return settings


def _apply_yaml_config(settings: Settings, yaml_config: Dict[str, Any]) -> None:
    """Copy known keys from the YAML mapping onto the settings sections."""
    if "app_name" in yaml_config:
        settings.app_name = yaml_config["app_name"]

    for section in ("twilio", "automation", "web", "logging"):
        values = yaml_config.get(section) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"Settings section '{section}' must be a mapping")
        section_obj = getattr(settings, section)
        for key, value in values.items():
            if hasattr(section_obj, key):
                setattr(section_obj, key, value)


def _apply_env_overrides(settings: Settings) -> None:
    """
    Apply environment variable overrides.

    Twilio variables use the provider's conventional names so existing
    deployments keep working.
    """
    env_mappings = {
        "TWILIO_ACCOUNT_SID": ("twilio", "account_sid"),
        "TWILIO_AUTH_TOKEN": ("twilio", "auth_token"),
        "TWILIO_WHATSAPP_NUMBER": ("twilio", "whatsapp_number"),

        "AUTOMATION_CONFIG": ("automation", "config_json"),
        "FLOWWAVE_AUTOMATION_PATH": ("automation", "config_path"),

        "FLOWWAVE_WEB_HOST": ("web", "host"),
        "FLOWWAVE_WEB_PORT": ("web", "port", int),
        "FLOWWAVE_WEB_DEBUG": ("web", "debug", bool),

        "FLOWWAVE_LOG_LEVEL": ("logging", "level"),
        "FLOWWAVE_LOG_DIR": ("logging", "log_dir"),
        "FLOWWAVE_LOG_JSON": ("logging", "json_format", bool),
    }

    for env_var, mapping in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        section, key = mapping[0], mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str

        if converter is bool:
            converted = value.lower() in ("true", "1", "yes", "on")
        else:
            try:
                converted = converter(value)
            except ValueError:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}")

        setattr(getattr(settings, section), key, converted)


def save_config(settings: Settings, config_path: str) -> None:
    """
    Save settings to a YAML file. The auth token is written as-is.

    Raises:
        ConfigError: If the file cannot be written
    """
    yaml_path = Path(config_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(settings.to_dict(redact=False), f, default_flow_style=False, sort_keys=False)
    except IOError as e:
        raise ConfigError(f"Failed to save settings file: {e}", {"path": str(yaml_path)})


def load_automation(settings: Settings):
    """
    Resolve the automation config named by the settings.

    Inline JSON takes precedence, then the file path, then the built-in
    default config.

    Raises:
        ConfigError: If the file cannot be read
        ConfigValidationError: If the document is not a valid automation config
    """
    from rules.defaults import default_config
    from rules.validation import load_automation_config

    source = settings.automation

    if source.config_json:
        return load_automation_config(source.config_json).unwrap()

    if source.config_path:
        try:
            text = Path(source.config_path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                f"Failed to read automation config: {e}",
                {"path": source.config_path}
            )
        return load_automation_config(text).unwrap()

    return default_config()
