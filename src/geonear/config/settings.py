# src/geonear/config/settings.py
"""
Library settings (Pydantic).

Settings are loaded from `src/geonear/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GEONEAR_CELL_SIZE_DEG`, `GEONEAR_LOG_LEVEL`)
- an external YAML file via `GEONEAR_CONFIG_PATH`

Design rule:
- Tuning knobs (grid resolution, earth radius) live in YAML, not hard-coded in the index.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from geonear.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geonear.config`."""
    text = resources.files("geonear.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "geonear"
    log_level: str = "INFO"


class IndexSettings(BaseModel):
    # Grid cell edge in degrees. Coarser cells mean fewer cells but larger candidate sets.
    cell_size_deg: float = Field(1.0, gt=0, le=360)


class GeoSettings(BaseModel):
    earth_radius_km: float = Field(6371.0, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("GEONEAR_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    cell_size = os.getenv("GEONEAR_CELL_SIZE_DEG")
    if cell_size:
        data.setdefault("index", {})["cell_size_deg"] = cell_size

    earth_radius = os.getenv("GEONEAR_EARTH_RADIUS_KM")
    if earth_radius:
        data.setdefault("geo", {})["earth_radius_km"] = earth_radius

    return data


def load_settings() -> Settings:
    """Load and validate settings (uncached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GEONEAR_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    return load_settings()


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
