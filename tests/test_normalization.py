"""Tests for unit normalization."""

import pytest

from sibcs_classifier.models import ClassificationRequest
from sibcs_classifier.normalization import normalize_request


class TestNormalizeRequest:
    """Test conversion to canonical units."""

    def test_canonical_units_untouched(self, base_payload):
        request = ClassificationRequest.model_validate(base_payload)

        assert normalize_request(request) == request

    def test_mmolc_cations_divided(self, base_payload):
        base_payload["meta"]["units"] = {"cations": "mmolc_dm3"}
        base_payload["lab_layers"][0]["chem"].update({"ca": 12, "h_al": 45, "p": 6})
        request = ClassificationRequest.model_validate(base_payload)

        normalized = normalize_request(request)
        chem = normalized.lab_layers[0].chem

        assert chem.ca == pytest.approx(1.2)
        assert chem.h_al == pytest.approx(4.5)
        assert chem.p == 6
        assert chem.ph_h2o == pytest.approx(5.2)
        assert normalized.meta.units.cations.value == "cmolc_dm3"

    def test_g_kg_texture_and_om(self, base_payload):
        base_payload["meta"]["units"] = {"texture": "g_kg", "mo": "g_kg"}
        base_payload["lab_layers"][1]["texture"] = {
            "clay_pct": 380,
            "sand_pct": 520,
            "silt_pct": 100,
        }
        base_payload["lab_layers"][1]["chem"]["om_pct"] = 12
        request = ClassificationRequest.model_validate(base_payload)

        layer = normalize_request(request).lab_layers[1]

        assert layer.texture.clay_pct == pytest.approx(38)
        assert layer.texture.sand_pct == pytest.approx(52)
        assert layer.chem.om_pct == pytest.approx(1.2)

    def test_input_not_modified(self, base_payload):
        base_payload["meta"]["units"] = {"cations": "mmolc_dm3"}
        request = ClassificationRequest.model_validate(base_payload)

        normalize_request(request)

        assert request.lab_layers[0].chem.ca == pytest.approx(1.2)
        assert request.meta.units.cations.value == "mmolc_dm3"

    def test_idempotent(self, base_payload):
        """Normalizing twice equals normalizing once."""
        base_payload["meta"]["units"] = {
            "cations": "mmolc_dm3",
            "texture": "g_kg",
            "mo": "g_kg",
        }
        request = ClassificationRequest.model_validate(base_payload)

        once = normalize_request(request)
        assert normalize_request(once) == once

    def test_missing_values_stay_missing(self):
        request = ClassificationRequest.model_validate(
            {
                "meta": {"units": {"cations": "mmolc_dm3"}},
                "lab_layers": [{"top_cm": 0, "bottom_cm": 20, "chem": {"ca": None}}],
            }
        )

        assert normalize_request(request).lab_layers[0].chem.ca is None
