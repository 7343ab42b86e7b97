"""Tests for engine settings and YAML configuration loading."""

import pytest
from pydantic import ValidationError

from sibcs_classifier.config import (
    EngineSettings,
    clear_settings_cache,
    get_config_dir,
    get_settings,
    load_yaml_config,
)


class TestConfigFiles:
    """Test the packaged configuration files."""

    def test_config_dir(self):
        config_dir = get_config_dir()

        assert config_dir.name == "data"
        assert (config_dir / "engine.yaml").exists()
        assert (config_dir / "soil_orders.yaml").exists()
        assert (config_dir / "checklist.yaml").exists()

    def test_load_yaml_config(self):
        data = load_yaml_config("engine.yaml")

        assert data["scoring"]["min_primary_score"] == 40
        assert data["horizons"]["abrupt_change_max_distance_cm"] == 7.5

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_yaml_config("does_not_exist.yaml")


class TestEngineSettings:
    """Test settings defaults and environment overrides."""

    def test_defaults_from_yaml(self):
        settings = get_settings()

        assert settings == EngineSettings()
        assert settings.texture_sum_range == (95.0, 105.0)
        assert settings.ph_h2o_range == (3.0, 9.0)

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SIBCS_MIN_PRIMARY_SCORE", "55")
        monkeypatch.setenv("SIBCS_ENGINE_VERSION", "2.0")
        clear_settings_cache()

        settings = get_settings()

        assert settings.min_primary_score == 55
        assert settings.engine_version == "2.0"
        assert settings.max_alternatives == 3

    def test_invalid_override(self, monkeypatch):
        monkeypatch.setenv("SIBCS_MIN_PRIMARY_SCORE", "150")
        clear_settings_cache()

        with pytest.raises(ValidationError):
            get_settings()

    def test_frozen(self):
        with pytest.raises(ValidationError):
            get_settings().min_primary_score = 10
