"""Pydantic models for SiBCS classification requests and results."""

import math
import numbers
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TriState(str, Enum):
    """Field checklist answer with an explicit unknown state."""

    UNKNOWN = "unknown"
    YES = "yes"
    NO = "no"

    @classmethod
    def coerce(cls, value: Any) -> "TriState":
        """Map booleans, None and common spellings onto the three states."""
        if isinstance(value, cls):
            return value
        if value is True:
            return cls.YES
        if value is False:
            return cls.NO
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip().lower()
        if text in {"yes", "sim", "true", "1"}:
            return cls.YES
        if text in {"no", "nao", "não", "false", "0"}:
            return cls.NO
        return cls.UNKNOWN

    def as_bool(self) -> bool | None:
        """True/False for an answered question, None when unknown."""
        if self is TriState.YES:
            return True
        if self is TriState.NO:
            return False
        return None


class WaterSaturation(str, Enum):
    """How often the profile is water saturated."""

    NEVER = "never"
    SOMETIMES = "sometimes"
    PERMANENT = "permanent"


class SoilOrder(str, Enum):
    """The thirteen SiBCS orders plus the undetermined outcome."""

    LATOSSOLOS = "Latossolos"
    ARGISSOLOS = "Argissolos"
    CAMBISSOLOS = "Cambissolos"
    NEOSSOLOS = "Neossolos"
    LUVISSOLOS = "Luvissolos"
    NITOSSOLOS = "Nitossolos"
    CHERNOSSOLOS = "Chernossolos"
    ESPODOSSOLOS = "Espodossolos"
    PLANOSSOLOS = "Planossolos"
    PLINTOSSOLOS = "Plintossolos"
    GLEISSOLOS = "Gleissolos"
    ORGANOSSOLOS = "Organossolos"
    VERTISSOLOS = "Vertissolos"
    INDETERMINADA = "Indeterminada"

    @classmethod
    def classified(cls) -> list["SoilOrder"]:
        """All orders a profile can be assigned to (excludes Indeterminada)."""
        return [order for order in cls if order is not cls.INDETERMINADA]

    @classmethod
    def parse(cls, value: str | None) -> "SoilOrder":
        """Case-insensitive lookup that falls back to Indeterminada."""
        needle = (value or "").strip().lower()
        for order in cls:
            if order.value.lower() == needle:
                return order
        return cls.INDETERMINADA


class EngineMode(str, Enum):
    """Whether the winning order rests on a hard diagnostic signature."""

    DETERMINISTIC = "deterministic"
    PROBABILISTIC = "probabilistic"


class CationUnit(str, Enum):
    CMOLC_DM3 = "cmolc_dm3"
    MMOLC_DM3 = "mmolc_dm3"


class TextureUnit(str, Enum):
    PERCENT = "percent"
    G_KG = "g_kg"


class OrganicMatterUnit(str, Enum):
    PERCENT = "percent"
    G_KG = "g_kg"


class SourceType(str, Enum):
    MANUAL = "manual"
    PDF = "pdf"
    CSV = "csv"
    API = "api"


class LabMethodP(str, Enum):
    MEHLICH = "mehlich"
    RESINA = "resina"
    OUTRO = "outro"
    NAO_INFORMADO = "nao_informado"


class BiomeHint(str, Enum):
    AMAZONIA = "amazonia"
    CERRADO = "cerrado"
    CAATINGA = "caatinga"
    MATA_ATLANTICA = "mata_atlantica"
    PAMPA = "pampa"
    PANTANAL = "pantanal"


class AlertType(str, Enum):
    ACIDITY = "acidity"
    AL_TOXICITY = "al_toxicity"
    LOW_P = "low_p"
    LOW_CTC = "low_ctc"
    WATERLOGGING = "waterlogging"
    SALINITY = "salinity"
    SODICITY = "sodicity"
    LOW_WATER_STORAGE = "low_water_storage"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StepAction(str, Enum):
    FIELD_CHECK = "field_check"
    LAB_TEST = "lab_test"


class ExpectedImpact(str, Enum):
    RAISE_CONFIDENCE = "raise_confidence"
    RESOLVE_CONFLICT = "resolve_conflict"


def coerce_finite(value: Any) -> float | None:
    """Convert a raw lab value to a finite float, or None.

    Accepts numbers and numeric strings (comma decimal separator allowed).
    Booleans, non-numeric strings, NaN and infinities become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class LayerTexture(BaseModel):
    """Particle-size fractions of the fine earth."""

    clay_pct: float | None = Field(None, description="Clay fraction")
    sand_pct: float | None = Field(None, description="Sand fraction")
    silt_pct: float | None = Field(None, description="Silt fraction")

    @field_validator("*", mode="before")
    @classmethod
    def _finite_or_none(cls, v: Any) -> float | None:
        return coerce_finite(v)


class LayerChemistry(BaseModel):
    """Laboratory chemistry of one depth interval."""

    ph_h2o: float | None = Field(None, description="pH in water")
    ph_kcl: float | None = Field(None, description="pH in KCl")
    ca: float | None = Field(None, description="Exchangeable Ca")
    mg: float | None = Field(None, description="Exchangeable Mg")
    k: float | None = Field(None, description="Exchangeable K")
    na: float | None = Field(None, description="Exchangeable Na")
    al: float | None = Field(None, description="Exchangeable Al")
    h_al: float | None = Field(None, description="Potential acidity (H+Al)")
    p: float | None = Field(None, description="Available P (mg/dm³)")
    om_pct: float | None = Field(None, description="Organic matter")
    c_org_pct: float | None = Field(None, description="Organic carbon (%)")
    ec_dS_m: float | None = Field(None, description="Electrical conductivity (dS/m)")

    @field_validator("*", mode="before")
    @classmethod
    def _finite_or_none(cls, v: Any) -> float | None:
        return coerce_finite(v)


CATION_FIELDS = ("ca", "mg", "k", "na", "al", "h_al")


class SoilLayer(BaseModel):
    """A contiguous depth interval [top_cm, bottom_cm) with lab results."""

    top_cm: float | None = Field(None, description="Top of the interval (cm)")
    bottom_cm: float | None = Field(None, description="Bottom of the interval (cm)")
    texture: LayerTexture = Field(default_factory=LayerTexture)
    chem: LayerChemistry = Field(default_factory=LayerChemistry)

    @field_validator("top_cm", "bottom_cm", mode="before")
    @classmethod
    def _finite_depth(cls, v: Any) -> float | None:
        return coerce_finite(v)

    @property
    def label(self) -> str:
        """Depth label such as ``20-60``."""

        def fmt(value: float | None) -> str:
            return "?" if value is None else f"{value:g}"

        return f"{fmt(self.top_cm)}-{fmt(self.bottom_cm)}"

    def has_core_chemistry(self) -> bool:
        """Ca, Mg, K and H+Al all measured (enough to trust V%)."""
        chem = self.chem
        return all(v is not None for v in (chem.ca, chem.mg, chem.k, chem.h_al))


class MorphDiagnostics(BaseModel):
    """Diagnostic horizons recognised in the field description."""

    has_Bw: TriState = TriState.UNKNOWN
    has_Bt: TriState = TriState.UNKNOWN
    has_Bi: TriState = TriState.UNKNOWN
    has_Bn: TriState = TriState.UNKNOWN
    has_A_chernozemic: TriState = TriState.UNKNOWN

    @field_validator("*", mode="before")
    @classmethod
    def _tri(cls, v: Any) -> TriState:
        return TriState.coerce(v)

    def b_flags(self) -> tuple[TriState, TriState, TriState, TriState]:
        return (self.has_Bw, self.has_Bt, self.has_Bi, self.has_Bn)


TRI_STATE_FIELDS = (
    "high_gravel_stoniness",
    "gley_matrix",
    "mottles",
    "plinthite_or_petroplinthite",
    "petroplinthite_continuous",
    "seasonal_cracks",
    "slickensides",
    "eluvial_E_horizon",
    "dense_planic_layer_Bpl",
    "fluvial_stratification",
)


class FieldObservations(BaseModel):
    """Morphological observations collected at the profile pit."""

    profile_depth_cm: float | None = None
    contact_rock_cm: float | None = None
    histic_thickness_cm: float | None = Field(
        None, description="Thickness of the organic (histic) layer in cm"
    )
    water_saturation: WaterSaturation = WaterSaturation.NEVER
    high_gravel_stoniness: TriState = TriState.UNKNOWN
    gley_matrix: TriState = TriState.UNKNOWN
    mottles: TriState = TriState.UNKNOWN
    plinthite_or_petroplinthite: TriState = TriState.UNKNOWN
    petroplinthite_continuous: TriState = TriState.UNKNOWN
    seasonal_cracks: TriState = TriState.UNKNOWN
    slickensides: TriState = TriState.UNKNOWN
    eluvial_E_horizon: TriState = TriState.UNKNOWN
    dense_planic_layer_Bpl: TriState = TriState.UNKNOWN
    fluvial_stratification: TriState = TriState.UNKNOWN
    morph_diag: MorphDiagnostics = Field(default_factory=MorphDiagnostics)

    @field_validator(
        "profile_depth_cm", "contact_rock_cm", "histic_thickness_cm", mode="before"
    )
    @classmethod
    def _finite_or_none(cls, v: Any) -> float | None:
        return coerce_finite(v)

    @field_validator(*TRI_STATE_FIELDS, mode="before")
    @classmethod
    def _tri(cls, v: Any) -> TriState:
        return TriState.coerce(v)

    @field_validator("water_saturation", mode="before")
    @classmethod
    def _saturation(cls, v: Any) -> WaterSaturation:
        if isinstance(v, WaterSaturation):
            return v
        text = str(v or "").strip().lower()
        aliases = {
            "nunca": WaterSaturation.NEVER,
            "as_vezes": WaterSaturation.SOMETIMES,
            "permanente": WaterSaturation.PERMANENT,
        }
        if text in aliases:
            return aliases[text]
        try:
            return WaterSaturation(text)
        except ValueError:
            return WaterSaturation.NEVER


class UnitsMeta(BaseModel):
    """Units declared by the laboratory report."""

    cations: CationUnit = CationUnit.CMOLC_DM3
    p: Literal["mg_dm3"] = "mg_dm3"
    mo: OrganicMatterUnit = OrganicMatterUnit.PERCENT
    texture: TextureUnit = TextureUnit.PERCENT


class LocationMeta(BaseModel):
    country: Literal["BR"] = "BR"
    state: str | None = None
    municipality: str | None = None
    biome_hint: BiomeHint | None = None


class RequestMeta(BaseModel):
    engine_version: str = "1.0"
    source: SourceType = SourceType.MANUAL
    lab_name: str | None = None
    lab_method_p: LabMethodP = LabMethodP.NAO_INFORMADO
    units: UnitsMeta = Field(default_factory=UnitsMeta)
    location: LocationMeta = Field(default_factory=LocationMeta)


class ClassificationRequest(BaseModel):
    """Lab layers plus field observations for one soil profile."""

    meta: RequestMeta = Field(default_factory=RequestMeta)
    lab_layers: list[SoilLayer] = Field(default_factory=list)
    field: FieldObservations = Field(default_factory=FieldObservations)

    def sorted_layers(self) -> list[SoilLayer]:
        """Layers ordered by top depth; layers without a top depth go last."""
        return sorted(
            self.lab_layers,
            key=lambda layer: (layer.top_cm is None, layer.top_cm or 0.0),
        )


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class EvidenceItem(BaseModel):
    key: str
    detail: str
    score_delta: int = 0


class MissingItem(BaseModel):
    key: str
    detail: str


class CandidateScore(BaseModel):
    """Score and audit trail of one taxonomic order."""

    order: SoilOrder
    score: int = 0
    cap: int = 100
    effective_cap: int = 100
    mode: EngineMode = EngineMode.PROBABILISTIC
    positives: list[EvidenceItem] = Field(default_factory=list)
    conflicts: list[EvidenceItem] = Field(default_factory=list)
    missing_critical: list[str] = Field(default_factory=list)

    def top_message(self, fallback: str) -> str:
        if self.positives:
            return self.positives[0].detail
        if self.conflicts:
            return self.conflicts[0].detail
        return fallback


class DerivedMetrics(BaseModel):
    """Chemistry of the diagnostic horizon plus the abrupt-change verdict."""

    abrupt_textural_change: bool | None = None
    sb: float | None = None
    t: float | None = None
    v_percent: float | None = None
    m_percent: float | None = None
    layer_used_for_bt: str | None = None


class PrimaryResult(BaseModel):
    order: SoilOrder = SoilOrder.INDETERMINADA
    confidence: int = Field(0, ge=0, le=100)
    mode: EngineMode = EngineMode.PROBABILISTIC
    explanation_short: str = ""
    suborder_hint: str | None = None


class ResultBlock(BaseModel):
    primary: PrimaryResult = Field(default_factory=PrimaryResult)


class Alternative(BaseModel):
    order: SoilOrder
    confidence: int = Field(ge=0, le=100)
    why_competes: str


class ReferenceCheck(BaseModel):
    """Observed value compared against the order's reference range."""

    parameter: str
    value: float | None = None
    reference: str
    within: bool | None = None


class Audit(BaseModel):
    positive_evidence: list[EvidenceItem] = Field(default_factory=list)
    conflicts: list[EvidenceItem] = Field(default_factory=list)
    missing_critical: list[MissingItem] = Field(default_factory=list)
    derived_metrics: DerivedMetrics = Field(default_factory=DerivedMetrics)
    reference_checks: list[ReferenceCheck] = Field(default_factory=list)


class AgronomicAlert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str
    based_on: list[str] = Field(default_factory=list)


class NextStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: StepAction
    what: str
    why: str
    expected_impact: ExpectedImpact = ExpectedImpact.RAISE_CONFIDENCE


class ChecklistSummary(BaseModel):
    question_count: int = 0
    order_confirmation_focus: list[NextStep] = Field(default_factory=list)


class OrderReference(BaseModel):
    """Summary of the reference profile of the primary order."""

    order: SoilOrder
    diagnostic_criterion: str
    distinctive_criterion: str | None = None
    diagnostic_horizon: str
    suborders: list[str] = Field(default_factory=list)
    natural_fertility: str | None = None
    recommended_management: list[str] = Field(default_factory=list)
    source: str | None = None


class ClassificationResult(BaseModel):
    """Full response contract of the classification engine."""

    engine_version: str = "1.0"
    result: ResultBlock = Field(default_factory=ResultBlock)
    alternatives: list[Alternative] = Field(default_factory=list)
    audit: Audit = Field(default_factory=Audit)
    agronomic_alerts: list[AgronomicAlert] = Field(default_factory=list)
    management_notes: list[str] = Field(default_factory=list)
    next_steps: list[NextStep] = Field(default_factory=list)
    checklist: ChecklistSummary = Field(default_factory=ChecklistSummary)
    reference: OrderReference | None = None


class ClassificationOutcome(BaseModel):
    validation: ValidationResult
    response: ClassificationResult

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict with enum values."""
        return self.model_dump(mode="json")
