"""
Quota projection and risk classification.

Extrapolates each service's usage linearly to the end of the billing cycle
and compares it with the service quota.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence

from quota_watch.config.loader import ServiceQuota
from .billing_cycle import BillingPeriod
from .feed import ServiceUsage
from .rounding import round_half_up, round_to_int

# Days-until-exhaustion when nothing is being consumed
NO_EXHAUSTION = 999

DANGER_THRESHOLD = 80
WARN_THRESHOLD = 50


class RiskTier(Enum):
    """How close projected end-of-cycle usage is to the quota."""
    OK = "ok"
    WARN = "warn"
    DANGER = "danger"


def classify_risk(projected_percent: float) -> RiskTier:
    """Classify a projected quota percentage.

    Thresholds are strict: 80.0 is still WARN and 50.0 is still OK.
    """
    if projected_percent > DANGER_THRESHOLD:
        return RiskTier.DANGER
    if projected_percent > WARN_THRESHOLD:
        return RiskTier.WARN
    return RiskTier.OK


@dataclass(frozen=True)
class ProjectionResult:
    """End-of-cycle projection for one service."""
    used: float
    limit: float
    unit: str
    daily_rate: float
    projected: float
    remaining: float
    days_until_exhaustion: int
    projected_percent: float
    risk_tier: RiskTier
    per_consumer: Dict[str, float] = field(default_factory=dict)


def project_service(
    quota: ServiceQuota,
    used: float,
    period: BillingPeriod,
    per_consumer: Optional[Mapping[str, float]] = None,
) -> ProjectionResult:
    """Project one service's usage to the end of the billing cycle.

    Args:
        quota: Service quota (limit and display unit)
        used: Usage so far in this cycle
        period: Current billing period
        per_consumer: Usage breakdown per consumer, passed through

    Returns:
        ProjectionResult. ``remaining`` goes negative once the quota is
        exceeded; ``days_until_exhaustion`` is NO_EXHAUSTION when the daily
        rate is zero and is not clamped otherwise.
    """
    daily_rate = used / period.days_elapsed
    projected = round_half_up(daily_rate * period.total_days, 1)
    remaining = round_half_up(quota.limit - used, 1)
    if daily_rate > 0:
        days_until = round_to_int(remaining / daily_rate)
    else:
        days_until = NO_EXHAUSTION
    projected_percent = round_half_up(projected / quota.limit * 100, 1)

    return ProjectionResult(
        used=round_half_up(used, 3),
        limit=quota.limit,
        unit=quota.unit,
        daily_rate=round_half_up(daily_rate, 2),
        projected=projected,
        remaining=remaining,
        days_until_exhaustion=days_until,
        projected_percent=projected_percent,
        risk_tier=classify_risk(projected_percent),
        per_consumer=dict(per_consumer or {}),
    )


def project_usage(
    usage: Mapping[str, ServiceUsage],
    quotas: Sequence[ServiceQuota],
    period: BillingPeriod,
) -> Dict[str, ProjectionResult]:
    """Project every configured service, in configuration order.

    Services missing from ``usage`` are projected at zero usage.
    """
    projections = {}
    for quota in quotas:
        service_usage = usage.get(quota.name)
        if service_usage is None:
            used = 0.0
            per_consumer = {}
        else:
            used = float(service_usage.total)
            per_consumer = {
                consumer: float(amount)
                for consumer, amount in service_usage.per_consumer.items()
            }
        projections[quota.name] = project_service(quota, used, period, per_consumer)
    return projections
