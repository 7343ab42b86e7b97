"""Diagnostic horizon selection and abrupt textural change detection."""

from collections.abc import Sequence

from sibcs_classifier.config import get_settings
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    ClassificationRequest,
    MorphDiagnostics,
    SoilLayer,
    TriState,
)

logger = get_logger(__name__)

# Two-tier rule thresholds, in clay percentage points.
LOW_CLAY_SURFACE_PCT = 20.0
MIN_CLAY_INCREMENT_PCT = 20.0


def select_horizon_layer(
    layers: Sequence[SoilLayer], morph: MorphDiagnostics
) -> SoilLayer | None:
    """Pick the layer that stands for the diagnostic subsurface horizon.

    Only layers whose Ca, Mg, K and H+Al were all measured qualify, since the
    horizon is used for V%/m% discrimination. With a B horizon flagged in the
    field the deepest qualifying layer wins (preferring one with clay data);
    with exactly two layers the second one is used; otherwise the most
    clayey subsurface layer is chosen.

    Args:
        layers: Layers in depth order
        morph: Morphological diagnostics from the field description

    Returns:
        The selected layer or None when no layer qualifies
    """
    if not layers:
        return None
    if len(layers) == 1:
        only = layers[0]
        return only if only.has_core_chemistry() else None

    candidates = [layer for layer in layers[1:] if layer.has_core_chemistry()]
    if not candidates:
        return None

    if any(flag is TriState.YES for flag in morph.b_flags()):
        with_clay = [layer for layer in candidates if layer.texture.clay_pct is not None]
        return (with_clay or candidates)[-1]

    if len(layers) == 2:
        return candidates[0]

    best = candidates[0]
    for layer in candidates[1:]:
        clay = layer.texture.clay_pct
        best_clay = best.texture.clay_pct
        if clay is not None and (best_clay is None or clay > best_clay):
            best = layer
    return best


def abrupt_change_between(
    surface_clay: float | None, subsurface_clay: float | None
) -> bool | None:
    """Apply the SiBCS two-tier clay increase rule.

    Below 20% surface clay the subsurface must at least double it; at 20% or
    more the increase must reach 20 percentage points. Returns None when
    either value is missing.
    """
    if surface_clay is None or subsurface_clay is None:
        return None
    if surface_clay <= 0:
        return subsurface_clay >= MIN_CLAY_INCREMENT_PCT
    if surface_clay < LOW_CLAY_SURFACE_PCT:
        return subsurface_clay >= 2 * surface_clay
    return subsurface_clay - surface_clay >= MIN_CLAY_INCREMENT_PCT


def detect_abrupt_change(
    request: ClassificationRequest, max_distance_cm: float | None = None
) -> bool | None:
    """Decide whether the profile shows an abrupt textural change.

    A dense planic layer (Bpl) reported in the field settles the question.
    Otherwise the surface layer is compared with the first deeper layer that
    has clay data, provided the transition is no thicker than
    ``max_distance_cm``.

    Returns:
        True or False, or None when no surface/subsurface clay pair exists
    """
    if request.field.dense_planic_layer_Bpl is TriState.YES:
        return True

    if max_distance_cm is None:
        max_distance_cm = get_settings().abrupt_change_max_distance_cm

    layers = request.sorted_layers()
    if len(layers) < 2:
        return None

    surface = layers[0]
    below = next(
        (layer for layer in layers[1:] if layer.texture.clay_pct is not None), None
    )
    if surface.texture.clay_pct is None or below is None:
        return None

    if surface.bottom_cm is not None and below.top_cm is not None:
        gap = below.top_cm - surface.bottom_cm
        if gap > max_distance_cm:
            logger.debug(
                f"Clay comparison {surface.label} -> {below.label} spans {gap:g} cm"
            )
            return False

    return abrupt_change_between(surface.texture.clay_pct, below.texture.clay_pct)
