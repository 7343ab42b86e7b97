"""Structural and plausibility checks on a classification request.

Validation never raises and never blocks classification. Errors mark the
request as invalid and are surfaced to the caller as missing critical data;
warnings flag values that are plausible but suspicious.
"""

from sibcs_classifier.config import EngineSettings, get_settings
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    CATION_FIELDS,
    ClassificationRequest,
    SoilLayer,
    ValidationResult,
)

logger = get_logger(__name__)

NON_NEGATIVE_LAYER_FIELDS = (
    ("texture", "clay_pct"),
    ("texture", "sand_pct"),
    ("texture", "silt_pct"),
    ("chem", "ph_h2o"),
    ("chem", "ph_kcl"),
    ("chem", "ca"),
    ("chem", "mg"),
    ("chem", "k"),
    ("chem", "na"),
    ("chem", "al"),
    ("chem", "h_al"),
    ("chem", "p"),
    ("chem", "om_pct"),
    ("chem", "c_org_pct"),
    ("chem", "ec_dS_m"),
)

NON_NEGATIVE_FIELD_SCALARS = ("profile_depth_cm", "contact_rock_cm", "histic_thickness_cm")


def _fmt(value: float) -> str:
    return f"{round(value, 2):g}"


def _check_layer(
    position: int,
    layer: SoilLayer,
    settings: EngineSettings,
    errors: list[str],
    warnings: list[str],
) -> None:
    prefix = f"Camada {position}"

    if layer.top_cm is None or layer.bottom_cm is None:
        errors.append(f"{prefix}: top_cm e bottom_cm devem ser numéricos.")
    elif layer.top_cm >= layer.bottom_cm:
        errors.append(f"{prefix}: top_cm deve ser menor que bottom_cm.")

    texture = layer.texture
    fractions = (texture.clay_pct, texture.sand_pct, texture.silt_pct)
    if all(value is not None for value in fractions):
        total = sum(fractions)
        low, high = settings.texture_sum_range
        if total < low or total > high:
            errors.append(
                f"{prefix}: soma de textura fora da faixa {_fmt(low)}-{_fmt(high)} "
                f"(valor: {_fmt(total)})."
            )

    for group, name in NON_NEGATIVE_LAYER_FIELDS:
        value = getattr(getattr(layer, group), name)
        if value is not None and value < 0:
            errors.append(f"{prefix}: {name} não pode ser negativo.")

    ph = layer.chem.ph_h2o
    ph_low, ph_high = settings.ph_h2o_range
    if ph is not None and (ph < ph_low or ph > ph_high):
        errors.append(f"{prefix}: ph_h2o fora da faixa {_fmt(ph_low)}-{_fmt(ph_high)}.")

    for name in CATION_FIELDS:
        value = getattr(layer.chem, name)
        if value is not None and value > settings.cation_warning_threshold:
            warnings.append(
                f"{prefix}: {name} muito alto para cmolc/dm3 "
                "(verifique unidade de origem)."
            )


def validate_request(
    request: ClassificationRequest, settings: EngineSettings | None = None
) -> ValidationResult:
    """Check layer geometry and value ranges.

    Expects a normalized request: the cation warning threshold is expressed
    in cmolc/dm³. Layers are checked in depth order and numbered from 1.

    Args:
        request: Normalized classification request
        settings: Engine settings (defaults to the loaded configuration)

    Returns:
        ValidationResult; ``valid`` is False when any error was found
    """
    settings = settings or get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    if not request.lab_layers:
        errors.append("lab_layers deve possuir pelo menos uma camada.")

    layers = request.sorted_layers()
    previous: SoilLayer | None = None
    for position, layer in enumerate(layers, start=1):
        _check_layer(position, layer, settings, errors, warnings)

        if (
            previous is not None
            and previous.bottom_cm is not None
            and layer.top_cm is not None
            and layer.top_cm < previous.bottom_cm
        ):
            errors.append(
                f"Camadas com sobreposição: {previous.label} e {layer.label}."
            )
        previous = layer

    for name in NON_NEGATIVE_FIELD_SCALARS:
        value = getattr(request.field, name)
        if value is not None and value < 0:
            errors.append(f"Campo: {name} não pode ser negativo.")

    if errors:
        logger.debug(f"Validation found {len(errors)} error(s): {errors}")
    if warnings:
        logger.debug(f"Validation found {len(warnings)} warning(s)")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
