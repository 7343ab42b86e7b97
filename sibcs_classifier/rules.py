"""Declarative rule table for the thirteen SiBCS orders.

Each ``Rule`` is evaluated against the field observations and the profile
metrics computed once per request. A predicate returns True when the rule
applies, False when it does not, and None when its input is absent; in the
last case the rule's ``missing`` message (if any) is reported as missing
critical data.
"""

from collections.abc import Callable
from dataclasses import dataclass

from sibcs_classifier.chemistry import EMPTY_INDICATORS, ChemistryIndicators
from sibcs_classifier.models import (
    FieldObservations,
    SoilOrder,
    TriState,
    WaterSaturation,
)

BASE_SCORE = 10
MIN_EFFECTIVE_CAP = 40
MISSING_CAP_PENALTY = 10

V_PERCENT_MISSING = (
    "V% necessário para confirmar a classificação: informar Ca, Mg, K, Na e H+Al "
    "na camada Bt."
)
BT_MISSING = "Confirmar horizonte Bt em morfologia."


@dataclass(frozen=True)
class ProfileMetrics:
    """Profile-level values the rules are evaluated against."""

    abrupt_textural_change: bool | None = None
    median_clay_pct: float | None = None
    mean_clay_pct: float | None = None
    max_clay_pct: float | None = None
    clay_all_le_15: bool | None = None
    texture_homogeneous: bool | None = None
    depth_cm: float | None = None
    ph_surface: float | None = None
    om_surface_pct: float | None = None
    om_subsurface_pct: float | None = None
    om_values: tuple[float, ...] = ()
    sand_surface_pct: float | None = None
    surface_thickness_cm: float | None = None
    v_percent_a: float | None = None
    horizon: ChemistryIndicators = EMPTY_INDICATORS
    horizon_label: str | None = None
    horizon_na: float | None = None
    any_b_diag: bool | None = None


Predicate = Callable[[FieldObservations, ProfileMetrics], bool | None]


@dataclass(frozen=True)
class Rule:
    order: SoilOrder
    key: str
    when: Predicate
    score_delta: int
    message: str
    missing: str | None = None


def tri(value: TriState) -> bool | None:
    return value.as_bool()


def _at_least(value: float | None, threshold: float) -> bool:
    return value is not None and value >= threshold


def _below(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


def _saturated(f: FieldObservations) -> bool:
    return f.water_saturation is not WaterSaturation.NEVER


def _no_redox(f: FieldObservations) -> bool:
    return f.gley_matrix is TriState.NO and f.mottles is TriState.NO


def _histic_ge_40(f: FieldObservations, m: ProfileMetrics) -> bool | None:
    if f.histic_thickness_cm is None:
        return None
    return f.histic_thickness_cm >= 40


def _histic_partial_saturated(f: FieldObservations, m: ProfileMetrics) -> bool:
    histic = f.histic_thickness_cm
    return (
        histic is not None
        and 20 <= histic < 40
        and f.water_saturation is WaterSaturation.PERMANENT
    )


def _om_low_without_histic(f: FieldObservations, m: ProfileMetrics) -> bool:
    histic = f.histic_thickness_cm
    thin = histic is None or histic < 20
    return thin and bool(m.om_values) and all(v <= 2 for v in m.om_values)


def _no_b_diagnostic(f: FieldObservations, m: ProfileMetrics) -> bool | None:
    flags = f.morph_diag.b_flags()
    if all(flag is TriState.NO for flag in flags):
        return True
    if m.any_b_diag is None:
        return None
    return False


def _om_increases_below(f: FieldObservations, m: ProfileMetrics) -> bool:
    return (
        m.om_surface_pct is not None
        and m.om_surface_pct <= 2
        and m.om_subsurface_pct is not None
        and m.om_subsurface_pct >= m.om_surface_pct + 0.5
    )


def _moderate_depth_over_saprolite(f: FieldObservations, m: ProfileMetrics) -> bool:
    return (
        m.depth_cm is not None
        and 50 <= m.depth_cm <= 100
        and f.contact_rock_cm is not None
        and f.contact_rock_cm > 50
    )


def _v_bt_below_50(f: FieldObservations, m: ProfileMetrics) -> bool | None:
    v = m.horizon.v_percent
    return None if v is None else v < 50


def _v_bt_at_least_50(f: FieldObservations, m: ProfileMetrics) -> bool | None:
    v = m.horizon.v_percent
    return None if v is None else v >= 50


def _dark_thick_a(f: FieldObservations, m: ProfileMetrics) -> bool:
    return _at_least(m.surface_thickness_cm, 25) and _at_least(m.om_surface_pct, 3)


def _acid_low_v(f: FieldObservations, m: ProfileMetrics) -> bool:
    return (
        m.ph_surface is not None
        and m.ph_surface <= 5
        and _below(m.v_percent_a, 50)
    )


def _always_missing(f: FieldObservations, m: ProfileMetrics) -> None:
    return None


O = SoilOrder
YES = TriState.YES

RULE_TABLE: tuple[Rule, ...] = (
    # Organossolos
    Rule(O.ORGANOSSOLOS, "histic_ge_40", _histic_ge_40, 65,
         "Espessura orgânica >= 40 cm.",
         "Informar espessura orgânica (histic_thickness_cm)."),
    Rule(O.ORGANOSSOLOS, "histic_20_39_sat_perm", _histic_partial_saturated, 35,
         "Espessura orgânica 20-39 cm com saturação permanente."),
    Rule(O.ORGANOSSOLOS, "sat_permanent",
         lambda f, m: f.water_saturation is WaterSaturation.PERMANENT, 25,
         "Saturação hídrica permanente."),
    Rule(O.ORGANOSSOLOS, "sat_sometimes",
         lambda f, m: f.water_saturation is WaterSaturation.SOMETIMES, 10,
         "Saturação hídrica ocasional."),
    Rule(O.ORGANOSSOLOS, "histic_lt_20",
         lambda f, m: _below(f.histic_thickness_cm, 20), -40,
         "Espessura orgânica < 20 cm."),
    Rule(O.ORGANOSSOLOS, "om_low_no_histic", _om_low_without_histic, -30,
         "MO baixa sem camada orgânica significativa."),
    # Gleissolos
    Rule(O.GLEISSOLOS, "sat_present", lambda f, m: _saturated(f), 35,
         "Saturação hídrica recorrente."),
    Rule(O.GLEISSOLOS, "sat_never", lambda f, m: not _saturated(f), -30,
         "Saturação marcada como nunca."),
    Rule(O.GLEISSOLOS, "gley_yes", lambda f, m: tri(f.gley_matrix), 35,
         "Matriz glei presente.",
         "Confirmar matriz glei em campo."),
    Rule(O.GLEISSOLOS, "mottles_yes", lambda f, m: f.mottles is YES, 10,
         "Mosqueados presentes."),
    Rule(O.GLEISSOLOS, "no_redox_signals", lambda f, m: _no_redox(f), -20,
         "Sem indícios redox (glei/mosqueado)."),
    # Plintossolos
    Rule(O.PLINTOSSOLOS, "plinthite_yes",
         lambda f, m: tri(f.plinthite_or_petroplinthite), 55,
         "Presença de plintita/petroplintita.",
         "Confirmar presença de plintita/petroplintita em campo."),
    Rule(O.PLINTOSSOLOS, "petro_continuous",
         lambda f, m: f.petroplinthite_continuous is YES, 10,
         "Petroplintita contínua informada."),
    Rule(O.PLINTOSSOLOS, "sat_present", lambda f, m: _saturated(f), 10,
         "Saturação hídrica reforça ambiente plíntico."),
    Rule(O.PLINTOSSOLOS, "no_hydromorphism",
         lambda f, m: not _saturated(f) and _no_redox(f), -25,
         "Sem indícios hidromórficos associados."),
    Rule(O.PLINTOSSOLOS, "plinthite_unknown",
         lambda f, m: f.plinthite_or_petroplinthite is TriState.UNKNOWN, -20,
         "Plintita não informada."),
    # Vertissolos
    Rule(O.VERTISSOLOS, "cracks_yes", lambda f, m: tri(f.seasonal_cracks), 45,
         "Fendas estacionais presentes.",
         "Confirmar fendas largas na estação seca."),
    Rule(O.VERTISSOLOS, "slick_yes", lambda f, m: tri(f.slickensides), 35,
         "Slickensides presentes.",
         "Confirmar slickensides no perfil."),
    Rule(O.VERTISSOLOS, "clay_ge_30", lambda f, m: _at_least(m.median_clay_pct, 30), 10,
         "Argila mediana >= 30%."),
    Rule(O.VERTISSOLOS, "clay_lt_25", lambda f, m: _below(m.median_clay_pct, 25), -30,
         "Argila mediana < 25%."),
    Rule(O.VERTISSOLOS, "cracks_no", lambda f, m: f.seasonal_cracks is TriState.NO, -20,
         "Fendas estacionais ausentes."),
    # Planossolos
    Rule(O.PLANOSSOLOS, "bpl_yes", lambda f, m: tri(f.dense_planic_layer_Bpl), 40,
         "Camada adensada Bpl presente.",
         "Confirmar presença de camada adensada B plânico."),
    Rule(O.PLANOSSOLOS, "abrupt_true", lambda f, m: m.abrupt_textural_change, 30,
         "Mudança textural abrupta confirmada.",
         "Informar textura em pelo menos duas camadas para mudança abrupta."),
    Rule(O.PLANOSSOLOS, "sat_sometimes",
         lambda f, m: f.water_saturation is WaterSaturation.SOMETIMES, 10,
         "Saturação ocasional compatível com lençol suspenso."),
    Rule(O.PLANOSSOLOS, "texture_homogeneous",
         lambda f, m: m.texture_homogeneous is True, -25,
         "Textura homogênea contradiz assinatura plânica."),
    Rule(O.PLANOSSOLOS, "bpl_no",
         lambda f, m: f.dense_planic_layer_Bpl is TriState.NO, -20,
         "Bpl marcado como ausente."),
    # Espodossolos
    Rule(O.ESPODOSSOLOS, "e_horizon_yes", lambda f, m: f.eluvial_E_horizon is YES, 25,
         "Horizonte E claro informado."),
    Rule(O.ESPODOSSOLOS, "sand_ge_70", lambda f, m: _at_least(m.sand_surface_pct, 70), 15,
         "Areia superficial >= 70%."),
    Rule(O.ESPODOSSOLOS, "ph_le_5",
         lambda f, m: m.ph_surface is not None and m.ph_surface <= 5.0, 15,
         "pH superficial <= 5.0."),
    Rule(O.ESPODOSSOLOS, "om_pattern", _om_increases_below, 10,
         "Padrão de MO superficial baixa com incremento subsuperficial."),
    Rule(O.ESPODOSSOLOS, "clay_ge_25", lambda f, m: _at_least(m.median_clay_pct, 25), -30,
         "Argila mediana alta conflita com assinatura espodossólica."),
    Rule(O.ESPODOSSOLOS, "e_horizon_no",
         lambda f, m: f.eluvial_E_horizon is TriState.NO, -20,
         "Horizonte E marcado como ausente."),
    Rule(O.ESPODOSSOLOS, "spodic_confirmation", _always_missing, 0,
         "Horizonte espódico confirmado.",
         "Confirmar horizonte espódico (Bh/Bs/Bhs) em descrição morfológica."),
    # Neossolos
    Rule(O.NEOSSOLOS, "no_b_diag", _no_b_diagnostic, 40,
         "Nenhum horizonte B diagnóstico informado.",
         "Confirmar ausência/presença de Bw, Bt, Bi e Bn."),
    Rule(O.NEOSSOLOS, "rock_lt_50", lambda f, m: _below(f.contact_rock_cm, 50), 20,
         "Contato com rocha < 50 cm (litólico provável)."),
    Rule(O.NEOSSOLOS, "clay_all_le_15", lambda f, m: m.clay_all_le_15 is True, 20,
         "Argila <= 15% em todas as camadas (quartzarênico provável)."),
    Rule(O.NEOSSOLOS, "fluvial_yes", lambda f, m: f.fluvial_stratification is YES, 15,
         "Estratificação fluvial presente."),
    Rule(O.NEOSSOLOS, "any_b_yes", lambda f, m: m.any_b_diag is True, -30,
         "Horizonte B diagnóstico presente conflita com Neossolos."),
    # Cambissolos
    Rule(O.CAMBISSOLOS, "bi_yes", lambda f, m: tri(f.morph_diag.has_Bi), 50,
         "Horizonte Bi informado.",
         "Confirmar presença de horizonte Bi."),
    Rule(O.CAMBISSOLOS, "depth_saprolite_proxy", _moderate_depth_over_saprolite, 10,
         "Profundidade moderada compatível com perfil jovem."),
    Rule(O.CAMBISSOLOS, "other_b_diag",
         lambda f, m: YES in (f.morph_diag.has_Bt, f.morph_diag.has_Bw, f.morph_diag.has_Bn),
         -30, "Bt/Bw/Bn presentes conflitam com Cambissolos."),
    # Argissolos
    Rule(O.ARGISSOLOS, "bt_yes", lambda f, m: tri(f.morph_diag.has_Bt), 35,
         "Horizonte Bt informado.", BT_MISSING),
    Rule(O.ARGISSOLOS, "abrupt_true", lambda f, m: m.abrupt_textural_change is True, 25,
         "Mudança textural abrupta compatível com Bt."),
    Rule(O.ARGISSOLOS, "v_bt_lt_50", _v_bt_below_50, 15,
         "V% no Bt < 50 (distrófico).", V_PERCENT_MISSING),
    Rule(O.ARGISSOLOS, "texture_homogeneous",
         lambda f, m: m.texture_homogeneous is True, -20,
         "Textura homogênea conflita com assinatura argissólica."),
    Rule(O.ARGISSOLOS, "v_bt_ge_50", lambda f, m: _v_bt_at_least_50(f, m) is True, -20,
         "V% no Bt >= 50 favorece Luvissolos."),
    # Luvissolos
    Rule(O.LUVISSOLOS, "bt_yes", lambda f, m: tri(f.morph_diag.has_Bt), 35,
         "Horizonte Bt informado.", BT_MISSING),
    Rule(O.LUVISSOLOS, "abrupt_true", lambda f, m: m.abrupt_textural_change is True, 25,
         "Mudança textural abrupta compatível com Bt."),
    Rule(O.LUVISSOLOS, "v_bt_ge_50", _v_bt_at_least_50, 20,
         "V% no Bt >= 50 (eutrófico).", V_PERCENT_MISSING),
    Rule(O.LUVISSOLOS, "v_bt_lt_50", lambda f, m: _v_bt_below_50(f, m) is True, -20,
         "V% no Bt < 50 favorece Argissolos."),
    # Nitossolos
    Rule(O.NITOSSOLOS, "bn_yes", lambda f, m: tri(f.morph_diag.has_Bn), 50,
         "Horizonte Bn informado.",
         "Confirmar horizonte Bn em campo."),
    Rule(O.NITOSSOLOS, "clay_high", lambda f, m: _at_least(m.median_clay_pct, 35), 15,
         "Argila mediana alta compatível com Nitossolos."),
    Rule(O.NITOSSOLOS, "depth_gt_150",
         lambda f, m: m.depth_cm is not None and m.depth_cm > 150, 10,
         "Perfil profundo (>150 cm)."),
    Rule(O.NITOSSOLOS, "abrupt_true", lambda f, m: m.abrupt_textural_change is True, -25,
         "Mudança abrupta favorece Bt em vez de Bn."),
    # Latossolos
    Rule(O.LATOSSOLOS, "bw_yes", lambda f, m: tri(f.morph_diag.has_Bw), 40,
         "Horizonte Bw informado.",
         "Confirmar horizonte Bw em morfologia."),
    Rule(O.LATOSSOLOS, "granular_proxy", lambda f, m: f.morph_diag.has_Bw is YES, 10,
         "Bw confirmado (proxy para estrutura granular)."),
    Rule(O.LATOSSOLOS, "depth_gt_200",
         lambda f, m: m.depth_cm is not None and m.depth_cm > 200, 15,
         "Perfil muito profundo (>200 cm)."),
    Rule(O.LATOSSOLOS, "texture_homogeneous",
         lambda f, m: m.texture_homogeneous is True, 15,
         "Baixo gradiente textural."),
    Rule(O.LATOSSOLOS, "bt_or_bn_yes",
         lambda f, m: YES in (f.morph_diag.has_Bt, f.morph_diag.has_Bn), -25,
         "Bt/Bn presentes reduzem probabilidade de Latossolos."),
    # Chernossolos
    Rule(O.CHERNOSSOLOS, "a_cherno_yes", lambda f, m: tri(f.morph_diag.has_A_chernozemic),
         40, "Horizonte A chernozêmico informado.",
         "Confirmar horizonte A chernozêmico."),
    Rule(O.CHERNOSSOLOS, "dark_a_proxy", _dark_thick_a, 15,
         "Camada superficial espessa com MO elevada (proxy de A escuro)."),
    Rule(O.CHERNOSSOLOS, "v_a_ge_50", lambda f, m: _at_least(m.v_percent_a, 50), 15,
         "V% superficial >= 50."),
    Rule(O.CHERNOSSOLOS, "acid_low_v", _acid_low_v, -30,
         "pH muito ácido com V% baixo conflita com Chernossolos."),
)

ORDER_CAPS: dict[SoilOrder, int] = {
    O.ORGANOSSOLOS: 100,
    O.GLEISSOLOS: 95,
    O.PLINTOSSOLOS: 95,
    O.VERTISSOLOS: 95,
    O.PLANOSSOLOS: 90,
    O.ESPODOSSOLOS: 75,
    O.NEOSSOLOS: 90,
    O.CAMBISSOLOS: 90,
    O.ARGISSOLOS: 90,
    O.LUVISSOLOS: 90,
    O.NITOSSOLOS: 90,
    O.LATOSSOLOS: 90,
    O.CHERNOSSOLOS: 80,
}

# Joint matches that make a candidate deterministic. Orders without an
# entry (Espodossolos, Chernossolos) are always probabilistic.
DIAGNOSTIC_SIGNATURES: dict[SoilOrder, tuple[frozenset[str], ...]] = {
    O.ORGANOSSOLOS: (frozenset({"histic_ge_40"}), frozenset({"histic_20_39_sat_perm"})),
    O.GLEISSOLOS: (frozenset({"sat_present", "gley_yes"}),),
    O.PLINTOSSOLOS: (frozenset({"plinthite_yes"}),),
    O.VERTISSOLOS: (frozenset({"cracks_yes", "slick_yes", "clay_ge_30"}),),
    O.PLANOSSOLOS: (frozenset({"bpl_yes", "abrupt_true"}),),
    O.NEOSSOLOS: (frozenset({"no_b_diag"}),),
    O.CAMBISSOLOS: (frozenset({"bi_yes"}),),
    O.ARGISSOLOS: (frozenset({"bt_yes", "v_bt_lt_50"}),),
    O.LUVISSOLOS: (frozenset({"bt_yes", "v_bt_ge_50"}),),
    O.NITOSSOLOS: (frozenset({"bn_yes"}),),
    O.LATOSSOLOS: (frozenset({"bw_yes"}),),
}

# Tie-break: the more specific order in the SiBCS key wins.
SPECIFICITY_PRIORITY: dict[SoilOrder, int] = {
    O.ORGANOSSOLOS: 1,
    O.GLEISSOLOS: 2,
    O.PLINTOSSOLOS: 3,
    O.VERTISSOLOS: 4,
    O.PLANOSSOLOS: 5,
    O.ESPODOSSOLOS: 6,
    O.NEOSSOLOS: 7,
    O.CAMBISSOLOS: 8,
    O.LUVISSOLOS: 9,
    O.ARGISSOLOS: 10,
    O.NITOSSOLOS: 11,
    O.LATOSSOLOS: 12,
    O.CHERNOSSOLOS: 13,
}


def rules_for(order: SoilOrder) -> tuple[Rule, ...]:
    return tuple(rule for rule in RULE_TABLE if rule.order is order)
