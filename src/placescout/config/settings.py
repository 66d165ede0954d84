# src/placescout/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/placescout/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `PLACESCOUT_PLACE_SEARCH_URL`, `PLACESCOUT_LOG_LEVEL`)
- an external YAML file via `PLACESCOUT_CONFIG_PATH`

Design rule:
- Tuning knobs (radius policy, scoring weights, strictness order) live in YAML,
  not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from placescout.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `placescout.config`."""
    text = resources.files("placescout.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "PlaceScout"
    log_level: str = "INFO"
    http_timeout_seconds: float = 10


class CacheSettings(BaseModel):
    enabled: bool = False
    dir: str = ".cache/placescout"
    default_ttl_seconds: int = 60 * 60


class CatalogSettings(BaseModel):
    places_path: str = "data/catalogs/places.json"
    advertised_path: str | None = "data/catalogs/advertised.json"


class PlaceSearchSettings(BaseModel):
    base_url: str | None = None
    api_key: str | None = None
    max_results: int = Field(20, ge=1, le=60)


class RetrySettings(BaseModel):
    max_attempts: int = Field(2, ge=0)
    base_delay_seconds: float = Field(0.5, ge=0)
    rate_limited_base_delay_seconds: float = Field(2.0, ge=0)
    max_delay_seconds: float = Field(8.0, ge=0)


class DiscoverySettings(BaseModel):
    min_results: int = Field(4, ge=1)
    max_expansions: int = Field(3, ge=0)
    growth_factor: float = Field(2.0, gt=1)
    max_radius_m: float = Field(20_000, gt=0)
    batch_size: int = Field(4, ge=1)
    advertised_slot: int = Field(4, ge=0)
    pool_ttl_seconds: float = Field(30 * 60, gt=0)
    upstream_timeout_seconds: float = Field(10, gt=0)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @model_validator(mode="after")
    def _validate_batch(self) -> "DiscoverySettings":
        if self.batch_size < self.min_results:
            raise ValueError("discovery.batch_size must be >= discovery.min_results")
        return self


class MoodPreferenceSettings(BaseModel):
    tolerance: float = Field(30, gt=0, le=100)
    relaxed_tolerance: float = Field(60, gt=0, le=100)
    bands: dict[Literal["chill", "neutral", "hype"], tuple[int, int]] = Field(
        default_factory=lambda: {"chill": (0, 33), "neutral": (34, 66), "hype": (67, 100)}
    )

    @model_validator(mode="after")
    def _validate_order(self) -> "MoodPreferenceSettings":
        if self.relaxed_tolerance < self.tolerance:
            raise ValueError("mood.relaxed_tolerance must be >= mood.tolerance")
        return self


class BudgetPreferenceSettings(BaseModel):
    tiers: dict[Literal["low", "mid", "high"], list[int]] = Field(
        default_factory=lambda: {"low": [0, 1], "mid": [2], "high": [3, 4]}
    )
    relaxed_widen_by: int = Field(1, ge=0, le=4)


class DistancePreferenceSettings(BaseModel):
    anchors: list[tuple[float, float]] = Field(
        default_factory=lambda: [
            (0, 150),
            (10, 250),
            (30, 1000),
            (70, 5000),
            (90, 10000),
            (100, 20000),
        ]
    )

    @model_validator(mode="after")
    def _validate_anchors(self) -> "DistancePreferenceSettings":
        if len(self.anchors) < 2:
            raise ValueError("distance.anchors needs at least two points")
        pcts = [p for p, _ in self.anchors]
        meters = [m for _, m in self.anchors]
        if pcts != sorted(pcts) or len(set(pcts)) != len(pcts):
            raise ValueError("distance.anchors percentages must be strictly increasing")
        if meters != sorted(meters):
            raise ValueError("distance.anchors meters must be non-decreasing")
        if pcts[0] > 0 or pcts[-1] < 100:
            raise ValueError("distance.anchors must cover 0..100")
        return self


class StrictnessSettings(BaseModel):
    """How strictly each soft dimension constrains results (0..1); least strict relaxes first."""

    time_of_day: float = Field(0.25, ge=0, le=1)
    social_context: float = Field(0.45, ge=0, le=1)
    mood: float = Field(0.6, ge=0, le=1)
    budget: float = Field(0.8, ge=0, le=1)


class PreferenceSettings(BaseModel):
    mood: MoodPreferenceSettings = Field(default_factory=MoodPreferenceSettings)
    budget: BudgetPreferenceSettings = Field(default_factory=BudgetPreferenceSettings)
    distance: DistancePreferenceSettings = Field(default_factory=DistancePreferenceSettings)
    strictness: StrictnessSettings = Field(default_factory=StrictnessSettings)


class ScoringSettings(BaseModel):
    rating_weight: float = 0.4
    review_weight: float = 0.2
    mood_weight: float = 0.2
    category_bonus: float = 0.1
    budget_bonus: float = 0.1
    rating_max: float = Field(5.0, gt=0)
    review_count_reference: int = Field(500, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    place_search: PlaceSearchSettings = Field(default_factory=PlaceSearchSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    preferences: PreferenceSettings = Field(default_factory=PreferenceSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    cache_dir = os.getenv("PLACESCOUT_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("PLACESCOUT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    search_url = os.getenv("PLACESCOUT_PLACE_SEARCH_URL")
    search_key = os.getenv("PLACESCOUT_PLACE_SEARCH_API_KEY")
    if search_url:
        data.setdefault("place_search", {})["base_url"] = search_url
    if search_key:
        data.setdefault("place_search", {})["api_key"] = search_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("PLACESCOUT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
