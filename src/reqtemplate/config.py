"""Configuration loading and validation for reqtemplate."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from reqtemplate.models import PluginParameters

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "reqtemplate.yaml"
APPLICATION_NAME_KEY = "ApplicationName"


def stringify_values(values: dict[Any, Any]) -> dict[str, str]:
    """Turn YAML scalars into strings: null becomes "", booleans stay lowercase."""
    result: dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            result[str(key)] = ""
        elif isinstance(value, bool):
            result[str(key)] = "true" if value else "false"
        else:
            result[str(key)] = str(value)
    return result


class AppSettings(BaseModel):
    """Key-value settings used to seed empty context entries."""

    values: dict[str, str] = Field(default_factory=dict)

    @property
    def application_name(self) -> str:
        """Suffix for generated email addresses, empty when unset."""
        return self.values.get(APPLICATION_NAME_KEY, "")


class HttpConfig(BaseModel):
    """Configuration for the httpx client used to dispatch requests."""

    timeout: float = Field(default=30.0, gt=0.0, description="Request timeout in seconds")
    verify: bool = Field(default=True, description="Verify TLS certificates")


class LoggingConfig(BaseModel):
    """Configuration for logging output."""

    level: str = "info"
    output: str = Field(default="stderr", description="stderr, stdout, or a log file path")


class TemplatingConfig(BaseModel):
    """Top-level reqtemplate configuration."""

    model_config = ConfigDict(populate_by_name=True)

    app_settings: dict[str, str] | None = Field(
        default=None,
        alias="appSettings",
        description="Settings copied into empty context entries; None when the section is absent",
    )
    plugin: PluginParameters = Field(default_factory=PluginParameters)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("app_settings", mode="before")
    @classmethod
    def _stringify_settings(cls, value: Any) -> Any:
        # an empty appSettings: key is a present, empty section
        if value is None:
            return {}
        if isinstance(value, dict):
            return stringify_values(value)
        return value


def load_config(path: str | Path | None = None) -> TemplatingConfig:
    """Load reqtemplate configuration from a YAML file.

    Args:
        path: Path to the YAML config file. If None, uses 'reqtemplate.yaml'
              in the current directory, falling back to defaults.

    Returns:
        A validated TemplatingConfig instance.
    """
    path = Path(DEFAULT_CONFIG_PATH) if path is None else Path(path)

    if path.exists():
        with open(path) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        return TemplatingConfig.model_validate(raw)

    return TemplatingConfig()


def load_app_settings(path: str | Path | None = None) -> AppSettings | None:
    """Read only the settings section of the config file.

    A missing file or a missing section is not an error: the caller skips
    context seeding when this returns None.
    """
    config = load_config(path)
    if config.app_settings is None:
        logger.debug("No app settings section in %s, skipping seeding", path or DEFAULT_CONFIG_PATH)
        return None
    return AppSettings(values=config.app_settings)
