"""Rewrite laboratory values into canonical units.

Canonical units are cmolc/dm³ for exchangeable cations and H+Al, and percent
for texture fractions and organic matter. pH, P, organic carbon and electrical
conductivity are reported in a single unit and pass through untouched.
"""

from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    CATION_FIELDS,
    CationUnit,
    ClassificationRequest,
    OrganicMatterUnit,
    TextureUnit,
    UnitsMeta,
)

logger = get_logger(__name__)

TEXTURE_FIELDS = ("clay_pct", "sand_pct", "silt_pct")

# mmolc/dm³ -> cmolc/dm³ and g/kg -> %
UNIT_DIVISOR = 10.0


def _scale(value: float | None, divisor: float) -> float | None:
    if value is None or divisor == 1.0:
        return value
    return value / divisor


def normalize_request(request: ClassificationRequest) -> ClassificationRequest:
    """Return a copy of ``request`` with every value in canonical units.

    The declared units are rewritten to the canonical ones, so normalizing
    an already normalized request returns an equal request.

    Args:
        request: Request as received, with units declared in ``meta.units``

    Returns:
        New request; the input is not modified
    """
    units = request.meta.units
    cation_divisor = UNIT_DIVISOR if units.cations is CationUnit.MMOLC_DM3 else 1.0
    texture_divisor = UNIT_DIVISOR if units.texture is TextureUnit.G_KG else 1.0
    om_divisor = UNIT_DIVISOR if units.mo is OrganicMatterUnit.G_KG else 1.0

    normalized = request.model_copy(deep=True)
    for layer in normalized.lab_layers:
        for name in CATION_FIELDS:
            setattr(layer.chem, name, _scale(getattr(layer.chem, name), cation_divisor))
        for name in TEXTURE_FIELDS:
            setattr(
                layer.texture, name, _scale(getattr(layer.texture, name), texture_divisor)
            )
        layer.chem.om_pct = _scale(layer.chem.om_pct, om_divisor)

    normalized.meta.units = UnitsMeta(
        cations=CationUnit.CMOLC_DM3,
        p=units.p,
        mo=OrganicMatterUnit.PERCENT,
        texture=TextureUnit.PERCENT,
    )

    if cation_divisor != 1.0 or texture_divisor != 1.0 or om_divisor != 1.0:
        logger.debug(
            f"Normalized units (cations={units.cations.value}, "
            f"texture={units.texture.value}, mo={units.mo.value})"
        )
    return normalized
