"""
Engine settings (Pydantic).

Settings are loaded from `src/cakecompiler/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `CAKECOMPILER_LOG_LEVEL`)
- an external YAML file via `CAKECOMPILER_CONFIG_PATH`

Design rule:
- Thresholds, weights and learning-rate bounds live in YAML, not hard-coded in business logic.
  The packaged defaults match the module-level constants used when no settings are injected.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from cakecompiler.core.env import load_dotenv_if_present, resolve_project_path

CONFIG_PATH_ENV = "CAKECOMPILER_CONFIG_PATH"
LOG_LEVEL_ENV = "CAKECOMPILER_LOG_LEVEL"


def _parse_mapping(text: str, source: str) -> dict[str, Any]:
    """Parse YAML `text`; an empty document is an empty mapping, any other non-mapping is an error."""
    loaded = yaml.safe_load(text)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{source}: YAML root must be a mapping, got {type(loaded).__name__}")
    return loaded


def _packaged_yaml(filename: str) -> dict[str, Any]:
    resource = resources.files("cakecompiler.config").joinpath(filename)
    return _parse_mapping(resource.read_text(encoding="utf-8"), filename)


def _external_yaml(path: Path) -> dict[str, Any]:
    return _parse_mapping(path.read_text(encoding="utf-8"), str(path))


class AppSettings(BaseModel):
    name: str = "CakeCompiler"
    log_level: str = "INFO"


class ScoringSettings(BaseModel):
    self_weight: float = Field(0.2, ge=0)
    partner_weight: float = Field(0.8, ge=0)
    # Display probability when the caller supplies none: 1 - step * rank, clamped.
    fallback_probability_step: float = Field(0.1, ge=0, le=1)
    fallback_probability_min: float = Field(0.1, ge=0, le=1)
    fallback_probability_max: float = Field(0.9, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_weights(self) -> "ScoringSettings":
        if self.self_weight + self.partner_weight <= 0:
            raise ValueError("scoring.self_weight + scoring.partner_weight must be positive")
        if self.fallback_probability_min > self.fallback_probability_max:
            raise ValueError("scoring.fallback_probability_min must not exceed fallback_probability_max")
        return self


class SerendipitySettings(BaseModel):
    surprise_threshold: float = Field(0.5, ge=0)
    strong_threshold: float = Field(0.7, ge=0)
    dimension_threshold: float = Field(0.3, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_thresholds(self) -> "SerendipitySettings":
        if self.surprise_threshold > self.strong_threshold:
            raise ValueError("serendipity.surprise_threshold must not exceed serendipity.strong_threshold")
        return self


class LearningSettings(BaseModel):
    default_rate: float = Field(0.3, ge=0, le=1)
    min_rate: float = Field(0.1, ge=0, le=1)
    max_rate: float = Field(0.5, ge=0, le=1)
    significant_change: float = Field(0.1, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "LearningSettings":
        if self.min_rate > self.max_rate:
            raise ValueError("learning.min_rate must not exceed learning.max_rate")
        return self


class InferenceSettings(BaseModel):
    high_confidence: float = Field(0.7, ge=0, le=1)
    low_confidence: float = Field(0.4, ge=0, le=1)


class ShakeSettings(BaseModel):
    min_intensity: float = Field(0.5, ge=0, le=1)
    min_duration_ms: int = Field(300, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    serendipity: SerendipitySettings = Field(default_factory=SerendipitySettings)
    learning: LearningSettings = Field(default_factory=LearningSettings)
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    shake: ShakeSettings = Field(default_factory=ShakeSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment knobs onto the raw payload. Only the log level is read from env."""
    log_level = os.getenv(LOG_LEVEL_ENV)
    if not log_level:
        return data
    return {**data, "app": {**(data.get("app") or {}), "log_level": log_level}}


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached). Call `get_settings.cache_clear()` after env changes."""
    load_dotenv_if_present()
    config_path = os.getenv(CONFIG_PATH_ENV)
    if config_path:
        raw = _external_yaml(resolve_project_path(config_path))
    else:
        raw = _packaged_yaml("defaults.yaml")
    return Settings.model_validate(_apply_env_overrides(raw))


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Packaged dictConfig mapping (cached; callers must copy before editing)."""
    return _packaged_yaml("logging.yaml")
