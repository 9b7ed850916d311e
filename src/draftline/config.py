"""
Draftline Configuration System

Loads configuration from:
1. Default config (config/default.yaml in the project)
2. User config (~/.draftline/config/draftline.yaml)
3. Environment variables (DRAFTLINE_ prefix)

Uses Pydantic for validation and type coercion.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def expand_path(path: str | Path | None) -> Path | None:
    """Expand ~ and environment variables in paths."""
    if path is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(expanded)


# Correspondent domains that count towards the focus score
DEFAULT_ALLOW_DOMAINS = [
    "uchicago.edu",
    "google.com",
    "mckinsey.com",
    "bcg.com",
    "bain.com",
]

# Bulk senders whose mail never becomes a calendar draft
DEFAULT_SPAM_BRANDS = [
    "mcafee",
    "norton",
    "groupon",
    "temu",
    "shein",
    "wish.com",
]


class DraftlineMeta(BaseModel):
    """Core Draftline metadata."""

    name: str = "Draftline"
    version: str = "0.1.0"


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: Path | None = None

    @field_validator("file", mode="before")
    @classmethod
    def expand_file_path(cls, v: Any) -> Path | None:
        return expand_path(v)


class PipelineSettings(BaseModel):
    """Draft generation pipeline configuration."""

    user_tz: str = "America/New_York"
    min_gap_minutes: int = Field(default=10, ge=0)
    merge_window_minutes: int = Field(default=45, ge=0)
    default_duration_minutes: int = Field(default=30, gt=0)
    subject_similarity: float = Field(default=0.8, ge=0.0, le=1.0)
    focus_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    allow_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOW_DOMAINS))
    spam_brands: list[str] = Field(default_factory=lambda: list(DEFAULT_SPAM_BRANDS))
    ignore_keywords: list[str] = Field(default_factory=list)

    @field_validator("user_tz")
    @classmethod
    def check_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class RouterConfig(BaseModel):
    """Intent router configuration."""

    # Cue-free, non-empty input routes to "mixed" when on, "plan_request" when off
    conversational_default: bool = True


class SlotterConfig(BaseModel):
    """Scheduling-intent slotting configuration."""

    daily_cap: int = Field(default=4, ge=1)
    max_occurrences: int = Field(default=10, ge=1)


class LLMConfig(BaseModel):
    """LLM configuration."""

    primary_provider: str = "openai"  # claude or openai
    fallback_provider: str | None = None
    claude_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    max_tokens: int = 350
    temperature: float = 0.2
    timeout: float = 30.0
    max_retries: int = 0
    retry_delay: float = 1.0


class EvidenceConfig(BaseModel):
    """Evidence search configuration."""

    limit: int = Field(default=3, ge=1)
    timeout: float = 10.0


class DraftlineConfig(BaseSettings):
    """
    Main Draftline configuration.

    Loads from YAML files and environment variables.
    Environment variables use DRAFTLINE_ prefix and __ for nesting.
    Example: DRAFTLINE_PIPELINE__USER_TZ=America/Chicago
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAFTLINE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    draftline: DraftlineMeta = Field(default_factory=DraftlineMeta)
    log: LogConfig = Field(default_factory=LogConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    router: RouterConfig = Field(default_factory=RouterConfig)
    slotter: SlotterConfig = Field(default_factory=SlotterConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    evidence: EvidenceConfig = Field(default_factory=EvidenceConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats YAML values passed in as init kwargs
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def find_config_files() -> list[Path]:
    """
    Find configuration files, lowest priority first.

    1. ./config/default.yaml (development default)
    2. ~/.draftline/config/draftline.yaml (user config)
    """
    candidates = [
        Path.cwd() / "config" / "default.yaml",
        Path.home() / ".draftline" / "config" / "draftline.yaml",
    ]
    return [p for p in candidates if p.exists()]


def load_yaml_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f)

    return data if data else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(path: Path | None = None) -> DraftlineConfig:
    """
    Load complete configuration.

    Merges:
    1. Pydantic defaults
    2. YAML files (an explicit path replaces the search)
    3. Environment variables (highest priority)
    """
    paths = [path] if path is not None else find_config_files()
    yaml_config: dict[str, Any] = {}
    for config_path in paths:
        yaml_config = deep_merge(yaml_config, load_yaml_config(config_path))

    return DraftlineConfig(**yaml_config)


_config: DraftlineConfig | None = None


def get_config() -> DraftlineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
