"""
Timestamp formatting for upstream queries and report display.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional


def isoformat_z(moment: datetime) -> str:
    """Format as UTC ISO-8601 with milliseconds and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_day(moment: datetime) -> str:
    return moment.strftime("%d/%m/%Y")


def format_epoch_ms(epoch_ms: float, tz: Optional[tzinfo] = None) -> str:
    """Render an epoch-milliseconds timestamp as ``dd/mm/YYYY HH:MM`` in tz."""
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=tz or timezone.utc)
    return moment.strftime("%d/%m/%Y %H:%M")
