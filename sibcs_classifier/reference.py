"""Read-only technical reference profile of each SiBCS order.

Profiles are loaded once from ``data/soil_orders.yaml``. Reference ranges are
kept as written and also parsed into numeric bounds so observed values can be
compared against them. These comparisons are informational only.
"""

import re
from collections.abc import Mapping
from enum import Enum
from functools import lru_cache
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from sibcs_classifier.config import load_yaml_config
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import OrderReference, ReferenceCheck, SoilOrder

logger = get_logger(__name__)

SOIL_ORDERS_FILE = "soil_orders.yaml"

_NUMBER = r"-?\d+(?:\.\d+)?"
_BETWEEN = re.compile(rf"^({_NUMBER})-({_NUMBER})$")
_COMPARED = re.compile(rf"^(<=|>=|<|>)({_NUMBER})$")


class DepthClass(str, Enum):
    MUITO_RASO = "muito_raso"
    RASO = "raso"
    MODERADO = "moderado"
    PROFUNDO = "profundo"
    MUITO_PROFUNDO = "muito_profundo"
    NAO_CLASSIFICADO = "nao_classificado"


class SoilRange(BaseModel):
    """A reference range as written plus its parsed numeric bounds."""

    model_config = ConfigDict(frozen=True)

    raw: str = ""
    min: float | None = None
    max: float | None = None
    comparator: str | None = None

    @property
    def parsed(self) -> bool:
        return self.min is not None or self.max is not None

    def contains(self, value: float | None) -> bool | None:
        """Whether ``value`` falls in the range; None if either side is unknown."""
        if value is None or not self.parsed:
            return None
        if self.comparator == "<":
            return value < self.max
        if self.comparator == "<=":
            return value <= self.max
        if self.comparator == ">":
            return value > self.min
        if self.comparator == ">=":
            return value >= self.min
        return self.min <= value <= self.max


def parse_range(raw_value: str | None) -> SoilRange:
    """Parse ``"35-80"``, ``"<10"``, ``">=50"`` or ``"7"`` into a SoilRange.

    Anything else (for instance ``"<25 a >150"``) keeps only its raw text.
    """
    raw = str(raw_value or "").strip()
    if not raw:
        return SoilRange()

    compact = re.sub(r"\s+", "", raw.replace("–", "-").replace("—", "-"))

    between = _BETWEEN.match(compact)
    if between:
        a, b = float(between.group(1)), float(between.group(2))
        return SoilRange(raw=raw, min=min(a, b), max=max(a, b))

    compared = _COMPARED.match(compact)
    if compared:
        comparator, number = compared.group(1), float(compared.group(2))
        if comparator.startswith("<"):
            return SoilRange(raw=raw, max=number, comparator=comparator)
        return SoilRange(raw=raw, min=number, comparator=comparator)

    try:
        exact = float(compact)
    except ValueError:
        return SoilRange(raw=raw)
    return SoilRange(raw=raw, min=exact, max=exact)


def derive_depth_class(depth: SoilRange) -> DepthClass:
    """Map a depth range (cm) onto the SiBCS effective depth classes."""
    if depth.comparator in (">", ">=") and depth.min is not None and depth.min >= 200:
        return DepthClass.MUITO_PROFUNDO
    if depth.min is not None and depth.max is not None:
        if depth.max < 25:
            return DepthClass.MUITO_RASO
        if depth.min >= 25 and depth.max <= 50:
            return DepthClass.RASO
        if depth.min >= 50 and depth.max <= 100:
            return DepthClass.MODERADO
        if depth.min >= 100 and depth.max <= 200:
            return DepthClass.PROFUNDO
        if depth.min > 200:
            return DepthClass.MUITO_PROFUNDO
    return DepthClass.NAO_CLASSIFICADO


RANGE_PARAMETERS = ("depth_cm", "clay_pct", "ctc_cmolc_kg", "v_percent", "ph", "om_pct")


class OrderProfile(BaseModel):
    """Technical reference profile of one order."""

    model_config = ConfigDict(frozen=True)

    order: SoilOrder
    diagnostic_criterion: str
    distinctive_criterion: str | None = None
    diagnostic_horizon: str
    suborders: tuple[str, ...] = ()
    ranges: Mapping[str, SoilRange] = Field(default_factory=dict)
    depth_class: DepthClass = DepthClass.NAO_CLASSIFICADO
    natural_fertility: str | None = None
    limitations: tuple[str, ...] = ()
    management: tuple[str, ...] = ()
    biomes: tuple[str, ...] = ()
    source: str | None = None
    source_url: str | None = None

    @field_validator("ranges", mode="after")
    @classmethod
    def _read_only_ranges(cls, value: Mapping[str, SoilRange]) -> Mapping[str, SoilRange]:
        return MappingProxyType(dict(value))

    @field_serializer("ranges")
    def _serialize_ranges(self, value: Mapping[str, SoilRange]) -> dict[str, SoilRange]:
        return dict(value)

    def summary(self) -> OrderReference:
        return OrderReference(
            order=self.order,
            diagnostic_criterion=self.diagnostic_criterion,
            distinctive_criterion=self.distinctive_criterion,
            diagnostic_horizon=self.diagnostic_horizon,
            suborders=list(self.suborders),
            natural_fertility=self.natural_fertility,
            recommended_management=list(self.management),
            source=self.source,
        )


def _build_profile(row: dict, source_url: str | None) -> OrderProfile:
    raw_ranges = row.pop("ranges", None) or {}
    ranges = {name: parse_range(raw_ranges.get(name)) for name in RANGE_PARAMETERS}
    return OrderProfile(
        **row,
        ranges=ranges,
        depth_class=derive_depth_class(ranges["depth_cm"]),
        source_url=source_url,
    )


@lru_cache(maxsize=1)
def list_order_profiles() -> tuple[OrderProfile, ...]:
    """Reference profiles of all thirteen orders, in catalog order."""
    data = load_yaml_config(SOIL_ORDERS_FILE)
    source_url = data.get("source_url")
    profiles = tuple(
        _build_profile(dict(row), source_url) for row in data.get("orders") or []
    )
    logger.debug(f"Loaded {len(profiles)} soil order reference profiles")
    return profiles


def find_order_profile(order: SoilOrder | str | None) -> OrderProfile | None:
    """Look up an order's profile (case-insensitive); None for Indeterminada."""
    target = order if isinstance(order, SoilOrder) else SoilOrder.parse(order)
    if target is SoilOrder.INDETERMINADA:
        return None
    return next((p for p in list_order_profiles() if p.order is target), None)


def check_reference_ranges(
    profile: OrderProfile, observed: Mapping[str, float | None]
) -> list[ReferenceCheck]:
    """Compare observed values against the profile's parsed reference ranges.

    Parameters without a parseable range are skipped.

    Args:
        profile: Reference profile of the order
        observed: Values keyed by range parameter (``depth_cm``, ``clay_pct``,
            ``ctc_cmolc_kg``, ``v_percent``, ``ph``, ``om_pct``)

    Returns:
        One check per comparable parameter
    """
    checks = []
    for name in RANGE_PARAMETERS:
        reference = profile.ranges.get(name)
        if reference is None or not reference.parsed:
            continue
        value = observed.get(name)
        checks.append(
            ReferenceCheck(
                parameter=name,
                value=value,
                reference=reference.raw,
                within=reference.contains(value),
            )
        )
    return checks
