"""Tests for the rule table and candidate ranking."""

import pytest

from sibcs_classifier.models import (
    CandidateScore,
    ClassificationRequest,
    EngineMode,
    SoilOrder,
)
from sibcs_classifier.rules import (
    DIAGNOSTIC_SIGNATURES,
    ORDER_CAPS,
    RULE_TABLE,
    SPECIFICITY_PRIORITY,
    V_PERCENT_MISSING,
    ProfileMetrics,
    rules_for,
)
from sibcs_classifier.scoring import (
    build_profile_metrics,
    rank_candidates,
    score_candidate,
    score_orders,
)


def _scores(result):
    return {candidate.order: candidate for candidate in result.ranked}


class TestRuleTable:
    """Consistency checks on the declarative rule table."""

    def test_every_order_has_rules_and_cap(self):
        for order in SoilOrder.classified():
            assert rules_for(order), order
            assert order in ORDER_CAPS
            assert order in SPECIFICITY_PRIORITY

    def test_signatures_reference_existing_rules(self):
        for order, signatures in DIAGNOSTIC_SIGNATURES.items():
            keys = {rule.key for rule in rules_for(order)}
            for signature in signatures:
                assert signature <= keys, (order, signature - keys)

    def test_rule_keys_unique_per_order(self):
        seen = set()
        for rule in RULE_TABLE:
            assert (rule.order, rule.key) not in seen
            seen.add((rule.order, rule.key))


class TestProfileMetrics:
    """Test the per-request metrics the rules read."""

    def test_base_profile(self, base_payload):
        request = ClassificationRequest.model_validate(base_payload)
        metrics, horizon_layer = build_profile_metrics(request)

        assert horizon_layer is request.lab_layers[1]
        assert metrics.horizon_label == "20-60"
        assert metrics.abrupt_textural_change is True
        assert metrics.median_clay_pct == pytest.approx(28)
        assert metrics.texture_homogeneous is False
        assert metrics.depth_cm == 180
        assert metrics.ph_surface == pytest.approx(5.2)
        assert metrics.surface_thickness_cm == 20
        assert metrics.horizon.v_percent == pytest.approx(16.93, abs=0.01)
        assert metrics.any_b_diag is True

    def test_depth_from_layers(self, base_payload):
        base_payload["field"]["profile_depth_cm"] = None
        request = ClassificationRequest.model_validate(base_payload)

        metrics, _ = build_profile_metrics(request)
        assert metrics.depth_cm == 60

    def test_empty_request(self):
        metrics, horizon_layer = build_profile_metrics(ClassificationRequest())

        assert horizon_layer is None
        assert metrics.median_clay_pct is None
        assert metrics.horizon.v_percent is None
        assert metrics.any_b_diag is None


class TestScoreCandidate:
    """Test single-order scoring."""

    def test_missing_data_lowers_cap(self):
        request = ClassificationRequest()
        candidate = score_candidate(SoilOrder.ARGISSOLOS, request, ProfileMetrics())

        assert candidate.missing_critical == [
            "Confirmar horizonte Bt em morfologia.",
            V_PERCENT_MISSING,
        ]
        assert candidate.effective_cap == 70
        assert candidate.score == 10

    def test_effective_cap_per_missing_item(self):
        request = ClassificationRequest()
        candidate = score_candidate(SoilOrder.ESPODOSSOLOS, request, ProfileMetrics())

        assert len(candidate.missing_critical) == 1
        assert candidate.effective_cap == 65

    def test_effective_cap_floor(self, monkeypatch):
        monkeypatch.setitem(ORDER_CAPS, SoilOrder.ARGISSOLOS, 45)
        request = ClassificationRequest()
        candidate = score_candidate(SoilOrder.ARGISSOLOS, request, ProfileMetrics())

        assert candidate.effective_cap == 40

    def test_score_never_negative(self, base_payload):
        request = ClassificationRequest.model_validate(base_payload)
        metrics, _ = build_profile_metrics(request)

        candidate = score_candidate(SoilOrder.ORGANOSSOLOS, request, metrics)
        assert candidate.score == 0
        assert [c.key for c in candidate.conflicts] == ["histic_lt_20"]

    def test_evidence_recorded_with_deltas(self, base_payload):
        request = ClassificationRequest.model_validate(base_payload)
        metrics, _ = build_profile_metrics(request)

        candidate = score_candidate(SoilOrder.ARGISSOLOS, request, metrics)

        assert [(e.key, e.score_delta) for e in candidate.positives] == [
            ("bt_yes", 35),
            ("abrupt_true", 25),
            ("v_bt_lt_50", 15),
        ]
        assert candidate.conflicts == []
        assert candidate.score == 85
        assert candidate.mode is EngineMode.DETERMINISTIC


class TestRankCandidates:
    """Test ranking and tie-breaks."""

    def test_score_then_missing_then_priority(self):
        ranked = rank_candidates(
            [
                CandidateScore(order=SoilOrder.LATOSSOLOS, score=60),
                CandidateScore(order=SoilOrder.ARGISSOLOS, score=70),
                CandidateScore(
                    order=SoilOrder.GLEISSOLOS, score=70, missing_critical=["x"]
                ),
                CandidateScore(order=SoilOrder.LUVISSOLOS, score=70),
            ]
        )

        assert [c.order for c in ranked] == [
            SoilOrder.LUVISSOLOS,
            SoilOrder.ARGISSOLOS,
            SoilOrder.GLEISSOLOS,
            SoilOrder.LATOSSOLOS,
        ]


class TestScoreOrders:
    """Test full scoring of the thirteen orders."""

    def test_all_orders_scored(self, base_payload):
        result = score_orders(ClassificationRequest.model_validate(base_payload))

        assert len(result.ranked) == 13
        assert {c.order for c in result.ranked} == set(SoilOrder.classified())
        for candidate in result.ranked:
            assert 0 <= candidate.score <= candidate.effective_cap

    def test_base_profile_ranking(self, base_payload):
        result = score_orders(ClassificationRequest.model_validate(base_payload))

        assert [c.order for c in result.ranked[:4]] == [
            SoilOrder.ARGISSOLOS,
            SoilOrder.GLEISSOLOS,
            SoilOrder.LUVISSOLOS,
            SoilOrder.PLANOSSOLOS,
        ]
        scores = _scores(result)
        assert scores[SoilOrder.ARGISSOLOS].score == 85
        assert scores[SoilOrder.GLEISSOLOS].score == 55
        assert scores[SoilOrder.LUVISSOLOS].score == 50

    def test_organossolos_signature(self, base_payload):
        base_payload["field"].update(
            {
                "water_saturation": "permanent",
                "histic_thickness_cm": 45,
                "morph_diag": {},
            }
        )
        result = score_orders(ClassificationRequest.model_validate(base_payload))

        assert result.top.order is SoilOrder.ORGANOSSOLOS
        assert result.top.mode is EngineMode.DETERMINISTIC
        assert result.top.score == 100

    def test_high_base_saturation_favors_luvissolos(self, base_payload):
        base_payload["lab_layers"][1]["chem"].update(
            {"ca": 4.8, "mg": 2.0, "k": 0.5, "na": 0.3, "h_al": 2.0, "al": 0.1}
        )
        result = score_orders(ClassificationRequest.model_validate(base_payload))
        scores = _scores(result)

        assert result.top.order is SoilOrder.LUVISSOLOS
        assert result.top.mode is EngineMode.DETERMINISTIC
        assert scores[SoilOrder.LUVISSOLOS].score == 90
        assert scores[SoilOrder.ARGISSOLOS].score == 50

    def test_specificity_tie_break(self, base_payload):
        """Without V% Argissolos and Luvissolos tie and Luvissolos ranks first."""
        for layer in base_payload["lab_layers"]:
            layer["chem"].update({"ca": None, "mg": None, "k": None, "h_al": None})
        result = score_orders(ClassificationRequest.model_validate(base_payload))
        scores = _scores(result)

        assert scores[SoilOrder.LUVISSOLOS].score == scores[SoilOrder.ARGISSOLOS].score == 70
        assert result.ranked[0].order is SoilOrder.LUVISSOLOS
        assert result.ranked[1].order is SoilOrder.ARGISSOLOS
        assert V_PERCENT_MISSING in result.top.missing_critical
        assert result.top.mode is EngineMode.PROBABILISTIC

    def test_planossolos_with_bpl(self, base_payload):
        base_payload["field"]["dense_planic_layer_Bpl"] = "yes"
        result = score_orders(ClassificationRequest.model_validate(base_payload))
        scores = _scores(result)

        assert result.top.order is SoilOrder.PLANOSSOLOS
        assert result.top.score == 90
        assert result.top.mode is EngineMode.DETERMINISTIC
        assert scores[SoilOrder.ARGISSOLOS].score == 85

    def test_unknown_morphology_is_probabilistic(self, base_payload):
        base_payload["field"].update(
            {
                "water_saturation": "never",
                "gley_matrix": "no",
                "mottles": "no",
                "morph_diag": {},
            }
        )
        result = score_orders(ClassificationRequest.model_validate(base_payload))

        assert result.top.order is SoilOrder.ARGISSOLOS
        assert result.top.score == 50
        assert result.top.mode is EngineMode.PROBABILISTIC
        assert "Confirmar horizonte Bt em morfologia." in result.top.missing_critical
