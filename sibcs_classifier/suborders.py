"""Suborder hints for the primary order, where the inputs support one."""

from sibcs_classifier.models import FieldObservations, SoilOrder, TriState, WaterSaturation
from sibcs_classifier.rules import ProfileMetrics

LITHIC_CONTACT_MAX_CM = 50.0
QUARTZ_SAND_MEAN_CLAY_PCT = 15.0
QUARTZ_SAND_MAX_CLAY_PCT = 20.0
NATRIC_NA_CMOLC = 1.0


def _neossolos(field: FieldObservations, metrics: ProfileMetrics) -> str | None:
    rock = field.contact_rock_cm
    if rock is not None and rock <= LITHIC_CONTACT_MAX_CM:
        return "Neossolos Litólicos"
    if field.fluvial_stratification is TriState.YES:
        return "Neossolos Flúvicos"
    if (
        metrics.mean_clay_pct is not None
        and metrics.mean_clay_pct <= QUARTZ_SAND_MEAN_CLAY_PCT
        and metrics.max_clay_pct is not None
        and metrics.max_clay_pct <= QUARTZ_SAND_MAX_CLAY_PCT
    ):
        return "Neossolos Quartzarênicos"
    if rock is not None:
        return "Neossolos Regolíticos"
    return None


def suggest_suborder(
    order: SoilOrder, field: FieldObservations, metrics: ProfileMetrics
) -> str | None:
    """Return a suborder name for ``order`` or None when undecidable."""
    if order is SoilOrder.NEOSSOLOS:
        return _neossolos(field, metrics)
    if order is SoilOrder.VERTISSOLOS:
        if field.water_saturation is not WaterSaturation.NEVER:
            return "Vertissolos Hidromórficos"
        return "Vertissolos Háplicos"
    if order is SoilOrder.PLINTOSSOLOS:
        if field.petroplinthite_continuous is TriState.YES:
            return "Plintossolos Pétricos"
        return None
    if order is SoilOrder.PLANOSSOLOS:
        if metrics.horizon_na is None:
            return None
        if metrics.horizon_na >= NATRIC_NA_CMOLC:
            return "Planossolos Nátricos"
        return "Planossolos Háplicos"
    return None
