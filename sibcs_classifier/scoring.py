"""Evaluate the rule table and rank the thirteen candidate orders."""

import statistics
from dataclasses import dataclass

from sibcs_classifier.chemistry import EMPTY_INDICATORS, calculate_chemistry_indicators
from sibcs_classifier.horizons import detect_abrupt_change, select_horizon_layer
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    CandidateScore,
    ClassificationRequest,
    EngineMode,
    EvidenceItem,
    SoilLayer,
    SoilOrder,
    TriState,
)
from sibcs_classifier.rules import (
    BASE_SCORE,
    DIAGNOSTIC_SIGNATURES,
    MIN_EFFECTIVE_CAP,
    MISSING_CAP_PENALTY,
    ORDER_CAPS,
    SPECIFICITY_PRIORITY,
    ProfileMetrics,
    rules_for,
)

logger = get_logger(__name__)

HOMOGENEOUS_CLAY_DELTA_PCT = 10.0


@dataclass(frozen=True)
class ScoringResult:
    ranked: list[CandidateScore]
    metrics: ProfileMetrics
    horizon_layer: SoilLayer | None = None

    @property
    def top(self) -> CandidateScore | None:
        return self.ranked[0] if self.ranked else None


def _any_b_diagnostic(request: ClassificationRequest) -> bool | None:
    flags = request.field.morph_diag.b_flags()
    if any(flag is TriState.YES for flag in flags):
        return True
    if all(flag is TriState.UNKNOWN for flag in flags):
        return None
    return False


def build_profile_metrics(
    request: ClassificationRequest,
) -> tuple[ProfileMetrics, SoilLayer | None]:
    """Compute, once per request, every profile value the rules read.

    Args:
        request: Normalized classification request

    Returns:
        Tuple of (metrics, selected diagnostic horizon layer or None)
    """
    layers = request.sorted_layers()
    field = request.field

    horizon_layer = select_horizon_layer(layers, field.morph_diag)
    horizon = (
        calculate_chemistry_indicators(horizon_layer.chem)
        if horizon_layer is not None
        else EMPTY_INDICATORS
    )

    clays = [layer.texture.clay_pct for layer in layers if layer.texture.clay_pct is not None]
    om_values = tuple(layer.chem.om_pct for layer in layers if layer.chem.om_pct is not None)

    surface = layers[0] if layers else None
    subsurface = layers[1] if len(layers) > 1 else None

    texture_homogeneous = None
    if (
        surface is not None
        and subsurface is not None
        and surface.texture.clay_pct is not None
        and subsurface.texture.clay_pct is not None
    ):
        delta = abs(subsurface.texture.clay_pct - surface.texture.clay_pct)
        texture_homogeneous = delta <= HOMOGENEOUS_CLAY_DELTA_PCT

    depth = field.profile_depth_cm
    if depth is None:
        bottoms = [layer.bottom_cm for layer in layers if layer.bottom_cm is not None]
        depth = max(bottoms) if bottoms else None

    surface_thickness = None
    if surface is not None and surface.top_cm is not None and surface.bottom_cm is not None:
        surface_thickness = surface.bottom_cm - surface.top_cm

    metrics = ProfileMetrics(
        abrupt_textural_change=detect_abrupt_change(request),
        median_clay_pct=statistics.median(clays) if clays else None,
        mean_clay_pct=statistics.fmean(clays) if clays else None,
        max_clay_pct=max(clays) if clays else None,
        clay_all_le_15=all(c <= 15 for c in clays) if clays else None,
        texture_homogeneous=texture_homogeneous,
        depth_cm=depth,
        ph_surface=surface.chem.ph_h2o if surface else None,
        om_surface_pct=surface.chem.om_pct if surface else None,
        om_subsurface_pct=subsurface.chem.om_pct if subsurface else None,
        om_values=om_values,
        sand_surface_pct=surface.texture.sand_pct if surface else None,
        surface_thickness_cm=surface_thickness,
        v_percent_a=calculate_chemistry_indicators(surface.chem).v_percent
        if surface
        else None,
        horizon=horizon,
        horizon_label=horizon_layer.label if horizon_layer is not None else None,
        horizon_na=horizon_layer.chem.na if horizon_layer is not None else None,
        any_b_diag=_any_b_diagnostic(request),
    )
    return metrics, horizon_layer


def score_candidate(
    order: SoilOrder, request: ClassificationRequest, metrics: ProfileMetrics
) -> CandidateScore:
    """Apply every rule of one order and cap the resulting score."""
    candidate = CandidateScore(order=order, cap=ORDER_CAPS[order])
    raw_score = BASE_SCORE
    matched: set[str] = set()

    for rule in rules_for(order):
        outcome = rule.when(request.field, metrics)
        if outcome is None:
            if rule.missing and rule.missing not in candidate.missing_critical:
                candidate.missing_critical.append(rule.missing)
            continue
        if not outcome:
            continue

        matched.add(rule.key)
        raw_score += rule.score_delta
        item = EvidenceItem(key=rule.key, detail=rule.message, score_delta=rule.score_delta)
        if rule.score_delta > 0:
            candidate.positives.append(item)
        elif rule.score_delta < 0:
            candidate.conflicts.append(item)

    penalty = MISSING_CAP_PENALTY * len(candidate.missing_critical)
    candidate.effective_cap = max(MIN_EFFECTIVE_CAP, candidate.cap - penalty)
    candidate.score = max(0, min(candidate.effective_cap, round(raw_score)))

    signatures = DIAGNOSTIC_SIGNATURES.get(order, ())
    if any(signature <= matched for signature in signatures):
        candidate.mode = EngineMode.DETERMINISTIC

    return candidate


def rank_candidates(candidates: list[CandidateScore]) -> list[CandidateScore]:
    """Sort by score, then fewer missing items, then SiBCS specificity."""
    return sorted(
        candidates,
        key=lambda c: (
            -c.score,
            len(c.missing_critical),
            SPECIFICITY_PRIORITY[c.order],
        ),
    )


def score_orders(request: ClassificationRequest) -> ScoringResult:
    """Score all thirteen orders against a normalized request.

    Returns:
        ScoringResult with candidates ranked best first and the profile
        metrics the rules were evaluated against
    """
    metrics, horizon_layer = build_profile_metrics(request)
    candidates = [
        score_candidate(order, request, metrics) for order in SoilOrder.classified()
    ]
    ranked = rank_candidates(candidates)

    logger.debug(
        "Ranking: "
        + ", ".join(f"{c.order.value}={c.score}" for c in ranked[:4])
    )
    return ScoringResult(ranked=ranked, metrics=metrics, horizon_layer=horizon_layer)
