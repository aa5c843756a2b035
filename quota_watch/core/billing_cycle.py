"""
Billing cycle computation.

Derives the current monthly billing window from a fixed anchor day-of-month.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class BillingPeriod:
    """Position of an instant inside its billing cycle.

    ``start`` is the last reset, ``end`` the next one; ``now`` is the instant
    the period was computed for.
    """
    start: datetime
    end: datetime
    now: datetime
    days_elapsed: float
    total_days: float
    days_remaining: float

    def __post_init__(self):
        """Validate the window is logical."""
        if self.start >= self.end:
            raise ValueError("start must be before end")


def _add_months(moment: datetime, months: int) -> datetime:
    # Anchor days are capped at 28 so the day always exists
    index = moment.month - 1 + months
    return moment.replace(year=moment.year + index // 12, month=index % 12 + 1)


def compute_billing_period(now: datetime, anchor_day: int = 20) -> BillingPeriod:
    """Compute the billing window containing now.

    The cycle resets at midnight on ``anchor_day``. From the anchor day onward
    the window starts in the current month, before it the window started in
    the previous month. The window always ends exactly one calendar month
    after it starts, whatever the month lengths.

    Args:
        now: Current instant (its tzinfo is kept for the window boundaries)
        anchor_day: Day-of-month the cycle resets on

    Returns:
        BillingPeriod with elapsed days floored at 1 and remaining days
        floored at 0
    """
    anchor = now.replace(day=anchor_day, hour=0, minute=0, second=0, microsecond=0)
    start = anchor if now.day >= anchor_day else _add_months(anchor, -1)
    end = _add_months(start, 1)

    return BillingPeriod(
        start=start,
        end=end,
        now=now,
        days_elapsed=max(_days_between(start, now), 1.0),
        total_days=_days_between(start, end),
        days_remaining=max(_days_between(now, end), 0.0),
    )


def _days_between(earlier: datetime, later: datetime) -> float:
    # Aware datetimes sharing a tzinfo subtract as wall clock, so go through UTC
    if earlier.tzinfo is not None:
        earlier = earlier.astimezone(timezone.utc)
        later = later.astimezone(timezone.utc)
    return (later - earlier) / ONE_DAY
