from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ilotplan.exceptions import ConfigurationError
from ilotplan.layout_config import LayoutConfig
from ilotplan.logging_config import setup_logging

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def _log_level(value: Any) -> str:
    if value is None:
        return "INFO"
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {value}")
    return level


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:  # noqa: D401
        return _log_level(value)

    def with_env_overrides(self) -> "LoggingSettings":
        """Apply LOG_LEVEL, JSON_LOGGING and LOG_FILE when set."""
        updates: dict[str, Any] = {}
        if os.getenv("LOG_LEVEL"):
            updates["level"] = _log_level(os.environ["LOG_LEVEL"])
        if os.getenv("JSON_LOGGING"):
            updates["json_format"] = os.environ["JSON_LOGGING"].lower() in {"true", "1", "yes"}
        if os.getenv("LOG_FILE"):
            updates["log_file"] = Path(os.environ["LOG_FILE"])
        return self.model_copy(update=updates)

    def apply(self) -> None:
        setup_logging(level=self.level, json_format=self.json_format, log_file=self.log_file)


class Settings(BaseModel):
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                ILOTPLAN_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the configuration file is missing or invalid.
        """
        config_path = path or Path(os.getenv("ILOTPLAN_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)},
            )
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
            return cls(**payload)
        except (yaml.YAMLError, PydanticValidationError, TypeError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "LoggingSettings",
    "get_settings",
]
