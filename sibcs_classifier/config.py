"""Configuration management for sibcs-classifier.

Settings and static reference tables are loaded from YAML files in the
package ``data/`` directory. Engine settings can be overridden through
environment variables (a ``.env`` file is honoured).
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from sibcs_classifier.logging_config import get_logger

logger = get_logger(__name__)


class EngineSettings(BaseModel):
    """Tunable constants of the classification engine."""

    model_config = ConfigDict(frozen=True)

    engine_version: str = "1.0"
    min_primary_score: int = Field(40, ge=0, le=100)
    max_alternatives: int = Field(3, ge=0)
    abrupt_change_max_distance_cm: float = Field(7.5, ge=0.0)
    cation_warning_threshold: float = Field(40.0, gt=0.0)
    texture_sum_range: tuple[float, float] = (95.0, 105.0)
    ph_h2o_range: tuple[float, float] = (3.0, 9.0)


ENV_OVERRIDES = {
    "SIBCS_ENGINE_VERSION": "engine_version",
    "SIBCS_MIN_PRIMARY_SCORE": "min_primary_score",
    "SIBCS_MAX_ALTERNATIVES": "max_alternatives",
}


@lru_cache(maxsize=1)
def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path(__file__).resolve().parent / "data"

    if not config_dir.exists():
        raise FileNotFoundError(f"Configuration directory not found: {config_dir}")

    return config_dir


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file."""
    config_file = get_config_dir() / filename

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        logger.debug(f"Loaded configuration from {config_file}")
        return data or {}

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
    except Exception as e:
        raise RuntimeError(f"Failed to load {config_file}: {e}") from e


def _flatten_engine_config(data: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if "engine_version" in data:
        values["engine_version"] = str(data["engine_version"])
    for section in ("scoring", "horizons", "validation"):
        values.update(data.get(section) or {})
    return values


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get engine settings with environment override support.

    This is the single source of truth for engine configuration.
    """
    load_dotenv(override=False)

    values = _flatten_engine_config(load_yaml_config("engine.yaml"))
    for env_name, field_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw:
            values[field_name] = raw
            logger.debug(f"Setting {field_name} overridden by {env_name}")

    return EngineSettings(**values)


def clear_settings_cache() -> None:
    """Clear settings cache to force reload from current environment."""
    get_settings.cache_clear()
