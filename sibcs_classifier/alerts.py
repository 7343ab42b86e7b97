"""Practical soil-health alerts derived from the surface layer and horizon metrics."""

from sibcs_classifier.models import (
    AgronomicAlert,
    AlertSeverity,
    AlertType,
    ClassificationRequest,
    DerivedMetrics,
    SoilOrder,
    WaterSaturation,
)

ACIDITY_PH_MAX = 5.0
AL_SATURATION_MIN_PCT = 20.0
LOW_P_MG_DM3 = 8.0
LOW_CTC_CMOLC = 10.0
SALINITY_EC_DS_M = 4.0
SODICITY_NA_CMOLC = 1.0
SANDY_SURFACE_PCT = 70.0
LOW_OM_PCT = 2.0


def build_agronomic_alerts(
    request: ClassificationRequest, derived: DerivedMetrics
) -> list[AgronomicAlert]:
    """Build alerts from a normalized request and the reported derived metrics.

    Surface values (pH, P, EC, Na, sand, OM) come from the shallowest layer;
    m% and T come from the diagnostic horizon.
    """
    alerts: list[AgronomicAlert] = []
    layers = request.sorted_layers()
    surface = layers[0] if layers else None

    ph = surface.chem.ph_h2o if surface else None
    p = surface.chem.p if surface else None
    ec = surface.chem.ec_dS_m if surface else None
    na = surface.chem.na if surface else None
    sand = surface.texture.sand_pct if surface else None
    om = surface.chem.om_pct if surface else None
    m_percent = derived.m_percent
    high_al = m_percent is not None and m_percent >= AL_SATURATION_MIN_PCT

    if (ph is not None and ph <= ACIDITY_PH_MAX) or high_al:
        alerts.append(
            AgronomicAlert(
                type=AlertType.ACIDITY,
                severity=AlertSeverity.HIGH,
                message="Acidez elevada no perfil; revisar necessidade de correção.",
                based_on=["ph_h2o", "m_percent"],
            )
        )
    if high_al:
        alerts.append(
            AgronomicAlert(
                type=AlertType.AL_TOXICITY,
                severity=AlertSeverity.HIGH,
                message="Saturação por alumínio alta com risco para desenvolvimento radicular.",
                based_on=["m_percent", "al"],
            )
        )
    if p is not None and p < LOW_P_MG_DM3:
        alerts.append(
            AgronomicAlert(
                type=AlertType.LOW_P,
                severity=AlertSeverity.MEDIUM,
                message="Fósforo disponível baixo; avaliar estratégia de fosfatagem.",
                based_on=["p"],
            )
        )
    if derived.t is not None and derived.t < LOW_CTC_CMOLC:
        alerts.append(
            AgronomicAlert(
                type=AlertType.LOW_CTC,
                severity=AlertSeverity.MEDIUM,
                message="CTC baixa na camada de referência do subsolo.",
                based_on=["t"],
            )
        )
    saturation = request.field.water_saturation
    if saturation is not WaterSaturation.NEVER:
        alerts.append(
            AgronomicAlert(
                type=AlertType.WATERLOGGING,
                severity=AlertSeverity.HIGH
                if saturation is WaterSaturation.PERMANENT
                else AlertSeverity.MEDIUM,
                message=(
                    "Sinal de saturação hídrica recorrente; "
                    "ajustar manejo do sistema de produção."
                ),
                based_on=["water_saturation", "gley_matrix", "mottles"],
            )
        )
    if ec is not None and ec >= SALINITY_EC_DS_M:
        alerts.append(
            AgronomicAlert(
                type=AlertType.SALINITY,
                severity=AlertSeverity.HIGH,
                message="Condutividade elétrica elevada com risco de salinidade.",
                based_on=["ec_dS_m"],
            )
        )
    if na is not None and na >= SODICITY_NA_CMOLC:
        alerts.append(
            AgronomicAlert(
                type=AlertType.SODICITY,
                severity=AlertSeverity.MEDIUM,
                message="Sódio trocável elevado; investigar sodicidade/ESP.",
                based_on=["na"],
            )
        )
    if (
        sand is not None
        and sand >= SANDY_SURFACE_PCT
        and om is not None
        and om <= LOW_OM_PCT
    ):
        alerts.append(
            AgronomicAlert(
                type=AlertType.LOW_WATER_STORAGE,
                severity=AlertSeverity.MEDIUM,
                message=(
                    "Perfil superficial arenoso com baixa MO e baixa capacidade "
                    "de armazenamento de água."
                ),
                based_on=["sand_pct", "om_pct"],
            )
        )

    return alerts


def build_management_notes(order: SoilOrder, derived: DerivedMetrics) -> list[str]:
    """Order-specific management notes plus horizon V%/m% notes, de-duplicated."""
    notes: list[str] = []
    if order is SoilOrder.VERTISSOLOS:
        notes.append("Janela de operação estreita: evitar preparo fora do ponto de umidade.")
    if order is SoilOrder.PLANOSSOLOS:
        notes.append("Priorizar manejo de drenagem superficial e tráfego controlado.")
    if order in (SoilOrder.GLEISSOLOS, SoilOrder.ORGANOSSOLOS):
        notes.append("Risco de anoxia radicular: usar culturas tolerantes à saturação.")
    if derived.v_percent is not None and derived.v_percent < 50:
        notes.append(
            "V% no subsolo abaixo de 50 indica maior necessidade de correção de acidez."
        )
    if derived.m_percent is not None and derived.m_percent > 20:
        notes.append("m% elevado sugere risco de toxidez por Al para raízes sensíveis.")
    return list(dict.fromkeys(notes))
