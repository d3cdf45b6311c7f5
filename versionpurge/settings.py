from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from versionpurge.exceptions import ConfigurationError

# Load .env file from project root (AWS_PROFILE, AWS_ACCESS_KEY_ID, ...)
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
CONFIG_ENV_VAR = "VERSIONPURGE_CONFIG"


class S3Settings(BaseModel):
    region: str | None = None
    endpoint_url: str | None = None
    profile: str | None = None

    @field_validator("region", "endpoint_url", "profile", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: Path | None = None
    quiet: bool = False

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper().strip()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class PurgeSettings(BaseModel):
    max_keys: int = Field(1000, ge=1, le=1000, description="MaxKeys for ListObjectVersions")
    timeout_seconds: float = Field(0.0, ge=0.0, description="Bound for the whole run; 0 disables it")
    max_empty_pages: int | None = Field(
        default=None,
        ge=1,
        description="Abort after this many consecutive empty pages with a live cursor; None disables it",
    )
    s3: S3Settings = Field(default_factory=S3Settings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "PurgeSettings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                the VERSIONPURGE_CONFIG environment variable or falls back to
                config/default.yaml.

        Returns:
            PurgeSettings instance with loaded configuration. Built-in defaults
            are used when no file was requested and the default file is absent.

        Raises:
            ConfigurationError: If a requested file does not exist or the
                configuration is invalid.
        """
        env_path = os.getenv(CONFIG_ENV_VAR)
        explicit = path is not None or bool(env_path)
        config_path = path or Path(env_path or DEFAULT_CONFIG_PATH)
        if not config_path.exists():
            if explicit:
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    {"path": str(config_path)},
                )
            return cls()
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Configuration file is not valid YAML: {config_path}",
                {"path": str(config_path)},
            ) from exc
        return cls.from_mapping(payload, source=str(config_path))

    @classmethod
    def from_mapping(cls, payload: Any, source: str = "<mapping>") -> "PurgeSettings":
        if not isinstance(payload, dict):
            raise ConfigurationError("Configuration must be a mapping", {"source": source})
        try:
            return cls(**payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"source": source}) from exc

    def merged(self, overrides: dict[str, Any]) -> "PurgeSettings":
        """Return a copy with non-None ``overrides`` applied (nested via dotted keys)."""
        payload = self.model_dump()
        for dotted, value in overrides.items():
            if value is None:
                continue
            target = payload
            *parents, leaf = dotted.split(".")
            for name in parents:
                target = target.setdefault(name, {})
            target[leaf] = value
        return type(self).from_mapping(payload, source="overrides")


__all__ = [
    "PurgeSettings",
    "S3Settings",
    "LoggingSettings",
]
