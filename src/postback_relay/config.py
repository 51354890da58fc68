"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
Settings are built once at startup and passed explicitly to the pipeline.
"""

import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/postback_relay
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class DispatchSettings(BaseSettings):
    """Outbound tracking platform configuration."""

    base_url: str = Field(default="https://xkcfj.ttrk.io/postback", description="Outbound postback base URL")
    timeout_seconds: float = Field(default=6.0, description="Per-request timeout")
    user_agent: str = Field(default="postback-relay/1.0", description="User-Agent sent downstream")
    body_excerpt_chars: int = Field(default=280, description="Response body characters kept for reporting")

    @field_validator("timeout_seconds")
    def validate_timeout(cls, v: float) -> float:
        """Timeout must be positive."""
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    class Config:
        env_prefix = "POSTBACK_RELAY_DISPATCH_"
        frozen = True


class RuleSettings(BaseSettings):
    """Decision table configuration."""

    value_threshold: float = Field(default=1.0, description="Payouts strictly below this are low-value")
    low_value_marker_key: str = Field(default="sub11", description="Query key flagging low-value events")
    low_value_marker_value: str = Field(default="low_value", description="Query value flagging low-value events")

    @property
    def marker(self) -> Optional[Tuple[str, str]]:
        """Marker pair, or None when either half is blank."""
        if self.low_value_marker_key and self.low_value_marker_value:
            return (self.low_value_marker_key, self.low_value_marker_value)
        return None

    class Config:
        env_prefix = "POSTBACK_RELAY_RULES_"
        frozen = True


class MaskingSettings(BaseSettings):
    """Click id masking for logs and reports."""

    enabled: bool = Field(default=True, description="Mask click ids in logs")
    keep_left: int = Field(default=3, ge=0, description="Leading characters kept")
    keep_right: int = Field(default=2, ge=0, description="Trailing characters kept")
    mask_char: str = Field(default="*", min_length=1, max_length=1, description="Replacement character")

    class Config:
        env_prefix = "POSTBACK_RELAY_MASKING_"
        frozen = True


class AuditLogSettings(BaseSettings):
    """Append-only audit log of fired events."""

    enabled: bool = Field(default=True, description="Write the audit log")
    directory: Path = Field(default=Path("./logs"), description="Audit log directory")
    filename: str = Field(default="redtrack-postback-proxy.log", description="Audit log file name")

    @property
    def path(self) -> Path:
        """Full audit log path."""
        return self.directory / self.filename

    class Config:
        env_prefix = "POSTBACK_RELAY_AUDIT_LOG_"
        frozen = True


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Component settings
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    rules: RuleSettings = Field(default_factory=RuleSettings)
    masking: MaskingSettings = Field(default_factory=MaskingSettings)
    audit_log: AuditLogSettings = Field(default_factory=AuditLogSettings)

    class Config:
        env_prefix = "POSTBACK_RELAY_"
        case_sensitive = False
        frozen = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


_CONFIG_ENV_MAPPINGS = {
    ("server", "host"): "POSTBACK_RELAY_HOST",
    ("server", "port"): "POSTBACK_RELAY_PORT",
    ("server", "debug"): "POSTBACK_RELAY_DEBUG",
    ("server", "log_level"): "POSTBACK_RELAY_LOG_LEVEL",
    ("dispatch", "base_url"): "POSTBACK_RELAY_DISPATCH_BASE_URL",
    ("dispatch", "timeout_seconds"): "POSTBACK_RELAY_DISPATCH_TIMEOUT_SECONDS",
    ("dispatch", "user_agent"): "POSTBACK_RELAY_DISPATCH_USER_AGENT",
    ("dispatch", "body_excerpt_chars"): "POSTBACK_RELAY_DISPATCH_BODY_EXCERPT_CHARS",
    ("rules", "value_threshold"): "POSTBACK_RELAY_RULES_VALUE_THRESHOLD",
    ("rules", "low_value_marker_key"): "POSTBACK_RELAY_RULES_LOW_VALUE_MARKER_KEY",
    ("rules", "low_value_marker_value"): "POSTBACK_RELAY_RULES_LOW_VALUE_MARKER_VALUE",
    ("masking", "enabled"): "POSTBACK_RELAY_MASKING_ENABLED",
    ("masking", "keep_left"): "POSTBACK_RELAY_MASKING_KEEP_LEFT",
    ("masking", "keep_right"): "POSTBACK_RELAY_MASKING_KEEP_RIGHT",
    ("masking", "mask_char"): "POSTBACK_RELAY_MASKING_MASK_CHAR",
    ("audit_log", "enabled"): "POSTBACK_RELAY_AUDIT_LOG_ENABLED",
    ("audit_log", "directory"): "POSTBACK_RELAY_AUDIT_LOG_DIRECTORY",
    ("audit_log", "filename"): "POSTBACK_RELAY_AUDIT_LOG_FILENAME",
}


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    for (section, key), env_var in _CONFIG_ENV_MAPPINGS.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
