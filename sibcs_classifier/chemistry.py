"""Exchange-complex indicators: SB, T, V% and m%."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sibcs_classifier.models import LayerChemistry, coerce_finite

BASE_CATIONS = ("ca", "mg", "k", "na")


def round2(value: float | None) -> float | None:
    """Round to two decimals for reporting; None stays None."""
    if value is None:
        return None
    return round(value, 2)


@dataclass(frozen=True)
class ChemistryIndicators:
    """Indicators of one layer, at full precision.

    Attributes:
        sb: Sum of exchangeable bases (Ca + Mg + K + Na)
        t: Apparent cation exchange capacity (SB + H+Al)
        v_percent: Base saturation, 100 * SB / T
        m_percent: Aluminium saturation, 100 * Al / (SB + Al)
    """

    sb: float | None = None
    t: float | None = None
    v_percent: float | None = None
    m_percent: float | None = None

    def rounded(self) -> "ChemistryIndicators":
        return ChemistryIndicators(
            sb=round2(self.sb),
            t=round2(self.t),
            v_percent=round2(self.v_percent),
            m_percent=round2(self.m_percent),
        )


EMPTY_INDICATORS = ChemistryIndicators()


def _read(values: LayerChemistry | Mapping[str, Any], name: str) -> float | None:
    if isinstance(values, LayerChemistry):
        return getattr(values, name)
    return coerce_finite(values.get(name))


def _partial_sum(values: list[float | None]) -> float | None:
    # Absent members count as zero only when a sibling is present.
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def calculate_chemistry_indicators(
    values: LayerChemistry | Mapping[str, Any] | None,
) -> ChemistryIndicators:
    """Compute SB, T, V% and m% from exchangeable cation values.

    Accepts a layer's chemistry or any mapping with ``ca``, ``mg``, ``k``,
    ``na``, ``al`` and ``h_al`` keys. An indicator is None when all of its
    inputs are absent or its denominator is zero.
    """
    if values is None:
        return EMPTY_INDICATORS

    sb = _partial_sum([_read(values, name) for name in BASE_CATIONS])
    h_al = _read(values, "h_al")
    al = _read(values, "al")

    t = _partial_sum([sb, h_al])

    v_percent = None
    if sb is not None and t is not None and t > 0:
        v_percent = 100.0 * sb / t

    m_percent = None
    exchange = _partial_sum([sb, al])
    if exchange is not None and exchange > 0:
        m_percent = 100.0 * (al or 0.0) / exchange

    return ChemistryIndicators(sb=sb, t=t, v_percent=v_percent, m_percent=m_percent)
