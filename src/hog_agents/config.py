"""Configuration management for hog agents."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os
import shlex

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CONFIG_DIR = Path("~/.config/hog")
DEFAULT_PHASES: tuple[str, ...] = ("brainstorm", "plan", "implement", "review")


class HogSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    config_dir: Path = Field(default=DEFAULT_CONFIG_DIR, validation_alias="HOG_CONFIG_DIR")
    agent_command: str = Field(default="claude", validation_alias="HOG_AGENT_COMMAND")
    agent_extra_args: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(), validation_alias="HOG_AGENT_EXTRA_ARGS"
    )
    results_dir: Path | None = Field(default=None, validation_alias="HOG_RESULTS_DIR")
    ledger_path: Path | None = Field(default=None, validation_alias="HOG_LEDGER_PATH")
    max_concurrent_agents: int = Field(default=3, validation_alias="HOG_MAX_CONCURRENT_AGENTS")
    poll_interval: float = Field(default=5.0, validation_alias="HOG_POLL_INTERVAL")
    default_phases: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_PHASES, validation_alias="HOG_DEFAULT_PHASES"
    )
    prompt_paths: Annotated[tuple[Path, ...] | None, NoDecode] = Field(
        default=None, validation_alias="HOG_PROMPT_PATHS"
    )
    notify_sound: bool = Field(default=False, validation_alias="HOG_NOTIFY_SOUND")
    log_level: str = Field(default="INFO", validation_alias="HOG_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "HOG_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("agent_extra_args", mode="before")
    @classmethod
    def _parse_extra_args(cls, value):
        if value is None or value == "":
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            return tuple(shlex.split(value))
        raise TypeError("HOG_AGENT_EXTRA_ARGS must be a list or a shell-style string")

    @field_validator("default_phases", mode="before")
    @classmethod
    def _parse_phases(cls, value):
        if value is None or value == "":
            return DEFAULT_PHASES
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(",") if part.strip()]
            return tuple(parts) or DEFAULT_PHASES
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value) or DEFAULT_PHASES
        raise TypeError("HOG_DEFAULT_PHASES must be a list or a comma-separated string")

    @field_validator("prompt_paths", mode="before")
    @classmethod
    def _parse_prompt_paths(cls, value):
        if value is None or value == "":
            return None
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts) or None
        raise TypeError("HOG_PROMPT_PATHS must be a list of paths or a path-separated string")

    @field_validator("max_concurrent_agents")
    @classmethod
    def _validate_max_concurrent(cls, value: int) -> int:
        if value < 1:
            raise ValueError("HOG_MAX_CONCURRENT_AGENTS must be >= 1")
        return value

    @field_validator("poll_interval")
    @classmethod
    def _validate_poll_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("HOG_POLL_INTERVAL must be > 0")
        return value

    @model_validator(mode="after")
    def _derive_paths(self) -> "HogSettings":
        if self.results_dir is None:
            self.results_dir = self.config_dir / "agent-results"
        if self.ledger_path is None:
            self.ledger_path = self.config_dir / "enrichment.json"
        if self.prompt_paths is None:
            self.prompt_paths = (self.config_dir / "prompts",)
        return self


@lru_cache(maxsize=1)
def get_settings() -> HogSettings:
    """Return cached settings instance."""

    settings = HogSettings()
    settings.config_dir = settings.config_dir.expanduser().resolve()
    settings.results_dir = settings.results_dir.expanduser().resolve()
    settings.ledger_path = settings.ledger_path.expanduser().resolve()
    settings.prompt_paths = tuple(path.expanduser().resolve() for path in settings.prompt_paths)
    return settings


__all__ = ["DEFAULT_PHASES", "HogSettings", "get_settings"]
