"""Configuration loading via pydantic-settings.

Loads from the environment / .env (FAULTLINE_* overrides) and faultline.yaml
(runtime settings).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faultline import ConfigurationError

DEFAULT_CONFIG_FILE = "faultline.yaml"


@dataclass
class BoundaryConfig:
    exit_code: int = 1
    # Exit status when the registered uncaught handler itself raises
    handler_failure_exit_code: int = 7
    show_origin: bool = True


@dataclass
class ObservabilityConfig:
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: str | None = None


class _EnvSettings(BaseSettings):
    """Loads raw values from the environment and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CONFIG: str = Field(default="")
    EXIT_CODE: int | None = Field(default=None)
    LOG_LEVEL: str = Field(default="")
    LOG_FORMAT: str = Field(default="")
    LOG_FILE: str = Field(default="")

    @field_validator("LOG_FORMAT")
    @classmethod
    def _check_format(cls, v: str) -> str:
        if v and v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v


@dataclass
class FaultlineSettings:
    """Assembled settings from env + faultline.yaml."""

    boundary: BoundaryConfig = field(default_factory=BoundaryConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    # Extra registry entries: {"ECODE": {"label": ..., "description": ...}}
    system_errors: dict[str, dict[str, str]] = field(default_factory=dict)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def _section(yaml_cfg: dict[str, Any], name: str) -> dict[str, Any]:
    """A top-level YAML section; an empty or missing one reads as {}."""
    value = yaml_cfg.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{name}: must be a mapping, got {type(value).__name__}")
    return value


def load_settings(config_path: Path | None = None) -> FaultlineSettings:
    """Build settings from the environment and an optional YAML file."""
    env = _EnvSettings()
    if config_path is None:
        config_path = Path(env.CONFIG) if env.CONFIG else Path.cwd() / DEFAULT_CONFIG_FILE
    yaml_cfg = _load_yaml_config(config_path)

    boundary_yaml = _section(yaml_cfg, "boundary")
    obs_yaml = _section(yaml_cfg, "observability")

    boundary = BoundaryConfig(
        exit_code=env.EXIT_CODE if env.EXIT_CODE is not None else boundary_yaml.get("exit_code", 1),
        handler_failure_exit_code=boundary_yaml.get("handler_failure_exit_code", 7),
        show_origin=bool(boundary_yaml.get("show_origin", True)),
    )

    observability = ObservabilityConfig(
        log_level=env.LOG_LEVEL or obs_yaml.get("log_level", "INFO"),
        log_format=env.LOG_FORMAT or obs_yaml.get("log_format", "json"),
        log_file=env.LOG_FILE or obs_yaml.get("log_file"),
    )

    settings = FaultlineSettings(
        boundary=boundary,
        observability=observability,
        system_errors=_section(yaml_cfg, "system_errors"),
    )
    verify_settings(settings)
    return settings


@lru_cache
def get_settings() -> FaultlineSettings:
    """Load and cache settings. Called once at startup."""
    return load_settings()


def verify_settings(settings: FaultlineSettings) -> None:
    """Reject settings that would break the termination contract."""
    b = settings.boundary
    if b.exit_code == 0:
        raise ConfigurationError("boundary.exit_code must be non-zero")
    if b.handler_failure_exit_code == 0:
        raise ConfigurationError("boundary.handler_failure_exit_code must be non-zero")
    if settings.observability.log_format not in ("json", "console"):
        raise ConfigurationError(
            f"observability.log_format must be 'json' or 'console', "
            f"got {settings.observability.log_format!r}"
        )
    if not isinstance(settings.system_errors, dict):
        raise ConfigurationError("system_errors must be a mapping of code to entry")
    for code, entry in settings.system_errors.items():
        if not isinstance(entry, dict) or "label" not in entry:
            raise ConfigurationError(f"system_errors.{code}: 'label' is required")
