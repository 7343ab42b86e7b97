"""
pytest configuration for sibcs-classifier tests.

Provides a reference soil profile payload and resets cached configuration
between tests so environment overrides do not leak.
"""

import pytest

from sibcs_classifier.checklist import clear_checklist_cache
from sibcs_classifier.config import clear_settings_cache


@pytest.fixture(autouse=True)
def _reset_cached_config(monkeypatch):
    """Drop cached settings and clear engine overrides around each test."""
    for name in ("SIBCS_ENGINE_VERSION", "SIBCS_MIN_PRIMARY_SCORE", "SIBCS_MAX_ALTERNATIVES"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    clear_checklist_cache()
    yield
    clear_settings_cache()
    clear_checklist_cache()


@pytest.fixture
def surface_layer():
    """Sandy, acid A horizon (0-20 cm)."""
    return {
        "top_cm": 0,
        "bottom_cm": 20,
        "texture": {"clay_pct": 18, "sand_pct": 72, "silt_pct": 10},
        "chem": {
            "ph_h2o": 5.2,
            "ca": 1.2,
            "mg": 0.5,
            "k": 0.18,
            "na": 0.05,
            "al": 0.4,
            "h_al": 4.5,
            "p": 6,
            "om_pct": 2.1,
            "ec_dS_m": 0.2,
        },
    }


@pytest.fixture
def subsurface_layer():
    """Clayey, dystrophic B horizon (20-60 cm)."""
    return {
        "top_cm": 20,
        "bottom_cm": 60,
        "texture": {"clay_pct": 38, "sand_pct": 52, "silt_pct": 10},
        "chem": {
            "ph_h2o": 4.9,
            "ca": 0.6,
            "mg": 0.3,
            "k": 0.1,
            "na": 0.06,
            "al": 0.8,
            "h_al": 5.2,
            "p": 3,
            "om_pct": 1.2,
            "ec_dS_m": 0.2,
        },
    }


@pytest.fixture
def field_observations():
    """Field description of a profile with a textural B (Bt) horizon."""
    return {
        "profile_depth_cm": 180,
        "contact_rock_cm": 180,
        "water_saturation": "sometimes",
        "gley_matrix": "no",
        "mottles": "yes",
        "plinthite_or_petroplinthite": "no",
        "petroplinthite_continuous": "unknown",
        "seasonal_cracks": "no",
        "slickensides": "no",
        "eluvial_E_horizon": "no",
        "dense_planic_layer_Bpl": "no",
        "fluvial_stratification": "no",
        "histic_thickness_cm": 0,
        "morph_diag": {
            "has_Bw": "no",
            "has_Bt": "yes",
            "has_Bi": "no",
            "has_Bn": "no",
            "has_A_chernozemic": "no",
        },
    }


@pytest.fixture
def base_payload(surface_layer, subsurface_layer, field_observations):
    """Complete request payload: two lab layers plus field observations."""
    return {
        "meta": {"source": "manual"},
        "lab_layers": [surface_layer, subsurface_layer],
        "field": field_observations,
    }
