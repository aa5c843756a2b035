"""
Unit tests for quota projection.

Tests linear projection, rounding, the exhaustion sentinel and risk tiers.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from quota_watch.config.loader import DEFAULT_MONITOR_CONFIG, ServiceQuota
from quota_watch.core.billing_cycle import compute_billing_period
from quota_watch.core.feed import ServiceUsage
from quota_watch.core.projection import (
    NO_EXHAUSTION,
    RiskTier,
    classify_risk,
    project_service,
    project_usage,
)
from quota_watch.core.rounding import quantize, round_half_up, round_to_int

# Sep 20 -> Oct 20: 27.5 days elapsed out of 30
PERIOD = compute_billing_period(datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc))
BUILD_MINUTES = ServiceQuota(name="Build Minutes", limit=6000, unit="min")


class TestRounding:
    """Test half-away-from-zero rounding."""

    @pytest.mark.parametrize("value,places,expected", [
        (2.675, 2, 2.68),
        (0.125, 2, 0.13),
        (-0.125, 2, -0.13),
        (1.05, 1, 1.1),
        (-1.05, 1, -1.1),
        (12.3456, 3, 12.346),
    ])
    def test_round_half_up(self, value, places, expected):
        assert round_half_up(value, places) == expected

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (-2.5, -3), (0.49, 0), (-7.6, -8)])
    def test_round_to_int(self, value, expected):
        assert round_to_int(value) == expected

    def test_values_beyond_default_precision(self):
        assert round_half_up(1e30, 1) == 1e30
        assert quantize(Decimal("12345678901234567890123456.78951"), 3) == Decimal(
            "12345678901234567890123456.790"
        )

    def test_huge_usage_projected(self):
        result = project_service(BUILD_MINUTES, 2.75e30, PERIOD)
        assert result.projected == pytest.approx(3e30)
        assert result.risk_tier == RiskTier.DANGER


class TestClassifyRisk:
    """Test risk tier thresholds."""

    @pytest.mark.parametrize("percent,expected", [
        (0.0, RiskTier.OK),
        (50.0, RiskTier.OK),
        (50.1, RiskTier.WARN),
        (80.0, RiskTier.WARN),
        (80.1, RiskTier.DANGER),
        (250.0, RiskTier.DANGER),
    ])
    def test_boundaries(self, percent, expected):
        """Thresholds are strictly greater-than."""
        assert classify_risk(percent) == expected

    def test_tier_values(self):
        assert [tier.value for tier in RiskTier] == ["ok", "warn", "danger"]


class TestProjectService:
    """Test a single service projection."""

    def test_linear_projection(self):
        result = project_service(BUILD_MINUTES, 2750.0, PERIOD)

        assert result.daily_rate == 100.0
        assert result.projected == 3000.0
        assert result.remaining == 3250.0
        assert result.days_until_exhaustion == 33
        assert result.projected_percent == 50.0
        assert result.risk_tier == RiskTier.OK
        assert result.limit == 6000
        assert result.unit == "min"

    def test_zero_usage_uses_sentinel(self):
        result = project_service(BUILD_MINUTES, 0.0, PERIOD)

        assert result.daily_rate == 0.0
        assert result.days_until_exhaustion == NO_EXHAUSTION
        assert result.projected == 0.0
        assert result.remaining == 6000.0
        assert result.risk_tier == RiskTier.OK

    def test_over_quota_goes_negative(self):
        """Overage keeps negative remaining and negative days, unclamped."""
        result = project_service(BUILD_MINUTES, 6875.0, PERIOD)

        assert result.daily_rate == 250.0
        assert result.remaining == -875.0
        assert result.days_until_exhaustion == round_to_int(-875.0 / 250.0)
        assert result.days_until_exhaustion == -4
        assert result.projected == 7500.0
        assert result.projected_percent == 125.0
        assert result.risk_tier == RiskTier.DANGER

    def test_projected_percent_not_clamped(self):
        quota = ServiceQuota(name="Fast Data Transfer", limit=10, unit="GB")
        result = project_service(quota, 55.0, PERIOD)
        assert result.projected_percent == 600.0

    def test_days_until_exhaustion_rounds_ratio(self):
        quota = ServiceQuota(name="Function Duration", limit=1000, unit="GB-h")
        result = project_service(quota, 110.0, PERIOD)

        # rate 4.0/day, remaining 890.0
        assert result.days_until_exhaustion == round_to_int(890.0 / 4.0)
        assert result.days_until_exhaustion == 223

    def test_warn_tier(self):
        # 4125 used -> 150/day -> 4500 projected -> 75%
        result = project_service(BUILD_MINUTES, 4125.0, PERIOD)
        assert result.projected_percent == 75.0
        assert result.risk_tier == RiskTier.WARN

    def test_per_consumer_passed_through(self):
        result = project_service(BUILD_MINUTES, 15.0, PERIOD, {"pole": 10.0, "pitch": 5.0})
        assert result.per_consumer == {"pole": 10.0, "pitch": 5.0}


class TestProjectUsage:
    """Test projection across all configured services."""

    def test_every_service_projected_in_config_order(self):
        usage = {"Function Invocations": ServiceUsage(total=Decimal("27500.000"))}
        projections = project_usage(usage, DEFAULT_MONITOR_CONFIG.services, PERIOD)

        assert list(projections) == list(DEFAULT_MONITOR_CONFIG.service_names)
        assert projections["Function Invocations"].used == 27500.0
        assert projections["Function Invocations"].projected == 30000.0

    def test_absent_service_treated_as_zero(self):
        projections = project_usage({}, DEFAULT_MONITOR_CONFIG.services, PERIOD)

        for result in projections.values():
            assert result.used == 0.0
            assert result.days_until_exhaustion == NO_EXHAUSTION
            assert result.per_consumer == {}
            assert result.risk_tier == RiskTier.OK

    def test_per_consumer_converted_to_float(self):
        usage = {
            "Build Minutes": ServiceUsage(
                total=Decimal("15.000"),
                per_consumer={"pole": Decimal("10.000"), "pitch": Decimal("5.000")},
            )
        }
        projections = project_usage(usage, DEFAULT_MONITOR_CONFIG.services, PERIOD)

        assert projections["Build Minutes"].used == 15.0
        assert projections["Build Minutes"].per_consumer == {"pole": 10.0, "pitch": 5.0}
