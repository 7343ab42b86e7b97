"""Tests for the order reference catalog."""

import pytest

from sibcs_classifier.models import SoilOrder
from sibcs_classifier.reference import (
    DepthClass,
    SoilRange,
    check_reference_ranges,
    derive_depth_class,
    find_order_profile,
    list_order_profiles,
    parse_range,
)


class TestParseRange:
    """Test parsing of reference range strings."""

    @pytest.mark.parametrize(
        "raw,minimum,maximum,comparator",
        [
            ("35-80", 35, 80, None),
            ("4.5 - 5.8", 4.5, 5.8, None),
            ("80-35", 35, 80, None),
            ("<10", None, 10, "<"),
            ("<=15", None, 15, "<="),
            (">200", 200, None, ">"),
            (">=50", 50, None, ">="),
            ("7", 7, 7, None),
        ],
    )
    def test_parseable(self, raw, minimum, maximum, comparator):
        parsed = parse_range(raw)

        assert parsed.raw == raw
        assert parsed.parsed
        assert parsed.min == minimum
        assert parsed.max == maximum
        assert parsed.comparator == comparator

    @pytest.mark.parametrize("raw", ["<25 a >150", "100->200", "variável"])
    def test_unparseable_keeps_raw(self, raw):
        parsed = parse_range(raw)

        assert parsed.raw == raw
        assert not parsed.parsed

    def test_empty(self):
        assert parse_range("") == SoilRange()
        assert parse_range(None) == SoilRange()

    def test_contains(self):
        assert parse_range("35-80").contains(35) is True
        assert parse_range("35-80").contains(81) is False
        assert parse_range("<10").contains(10) is False
        assert parse_range("<=10").contains(10) is True
        assert parse_range(">=50").contains(50) is True
        assert parse_range(">200").contains(200) is False
        assert parse_range("35-80").contains(None) is None
        assert parse_range("variável").contains(10) is None


class TestDepthClass:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (">200", DepthClass.MUITO_PROFUNDO),
            ("10-20", DepthClass.MUITO_RASO),
            ("25-50", DepthClass.RASO),
            ("50-100", DepthClass.MODERADO),
            ("100-200", DepthClass.PROFUNDO),
            ("50-200", DepthClass.NAO_CLASSIFICADO),
            ("<25 a >150", DepthClass.NAO_CLASSIFICADO),
        ],
    )
    def test_derive_depth_class(self, raw, expected):
        assert derive_depth_class(parse_range(raw)) is expected


class TestOrderProfiles:
    """Test the loaded reference catalog."""

    def test_all_orders_present(self):
        profiles = list_order_profiles()

        assert len(profiles) == 13
        assert {p.order for p in profiles} == set(SoilOrder.classified())

    def test_latossolos(self):
        profile = find_order_profile("latossolos")

        assert profile.order is SoilOrder.LATOSSOLOS
        assert profile.diagnostic_horizon == "Bw"
        assert profile.depth_class is DepthClass.MUITO_PROFUNDO
        assert profile.ranges["clay_pct"].min == 35
        assert profile.source_url.startswith("https://")

    def test_ranges_read_only(self):
        profile = find_order_profile(SoilOrder.LATOSSOLOS)

        with pytest.raises(TypeError):
            profile.ranges["clay_pct"] = None
        assert profile.model_dump()["ranges"]["clay_pct"]["min"] == 35

    def test_find_indeterminada(self):
        assert find_order_profile(SoilOrder.INDETERMINADA) is None
        assert find_order_profile("unknown") is None

    def test_summary(self):
        summary = find_order_profile(SoilOrder.ARGISSOLOS).summary()

        assert summary.order is SoilOrder.ARGISSOLOS
        assert summary.source == "Embrapa - SiBCS"
        assert summary.recommended_management


class TestReferenceChecks:
    """Test comparison of observed values with reference ranges."""

    def test_latossolos_checks(self):
        profile = find_order_profile(SoilOrder.LATOSSOLOS)
        checks = check_reference_ranges(
            profile,
            {"depth_cm": 250, "clay_pct": 50, "v_percent": 60, "ph": None},
        )
        by_name = {c.parameter: c for c in checks}

        assert by_name["depth_cm"].within is True
        assert by_name["clay_pct"].within is True
        assert by_name["v_percent"].within is False
        assert by_name["ph"].within is None
        assert by_name["v_percent"].reference == "<50"

    def test_unparsed_ranges_skipped(self):
        profile = find_order_profile(SoilOrder.NEOSSOLOS)
        checks = check_reference_ranges(profile, {"depth_cm": 30})

        assert "depth_cm" not in {c.parameter for c in checks}
