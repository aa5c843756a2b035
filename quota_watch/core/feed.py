"""
Billing feed parsing and aggregation.

The billing feed is line-delimited JSON: one charge record per line with a
``ServiceName``, a ``ConsumedQuantity`` and optional ``Tags.ProjectName``.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Sequence

from .rounding import quantize

logger = logging.getLogger(__name__)

OTHER_CONSUMER = "_other"
MIN_LINE_LENGTH = 10
TOTAL_PLACES = 3


@dataclass(frozen=True)
class UsageRecord:
    """One accepted charge line."""
    service_name: str
    consumed_quantity: Decimal
    consumer_tag: str = OTHER_CONSUMER


@dataclass
class ServiceUsage:
    """Running usage total for one service, broken down per consumer."""
    total: Decimal = Decimal(0)
    per_consumer: Dict[str, Decimal] = field(default_factory=dict)

    def add(self, record: UsageRecord) -> None:
        self.total += record.consumed_quantity
        self.per_consumer[record.consumer_tag] = (
            self.per_consumer.get(record.consumer_tag, Decimal(0)) + record.consumed_quantity
        )

    def finalize(self) -> None:
        """Round the total and every subtotal once aggregation is done."""
        self.total = quantize(self.total, TOTAL_PLACES)
        self.per_consumer = {
            consumer: quantize(amount, TOTAL_PLACES)
            for consumer, amount in self.per_consumer.items()
        }


def _parse_quantity(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    try:
        quantity = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal(0)
    if not quantity.is_finite():
        return Decimal(0)
    return quantity


def _consumer_tag(tags) -> str:
    if isinstance(tags, dict):
        name = tags.get("ProjectName")
        if isinstance(name, str) and name:
            return name
    return OTHER_CONSUMER


def parse_line(line: str, services: Sequence[str]) -> Optional[UsageRecord]:
    """Parse one billing feed line into a UsageRecord.

    Returns None when the line must be discarded: too short, mentions no
    recognized service, is not a JSON object, or names a service that is not
    recognized. Discarding is never an error.

    Args:
        line: Raw feed line
        services: Recognized service names

    Returns:
        UsageRecord, or None if the line is discarded
    """
    if len(line) < MIN_LINE_LENGTH:
        return None

    # Textual pre-filter; skips the decode for lines of other services
    if not any(name in line for name in services):
        return None

    try:
        obj = json.loads(line, parse_float=Decimal)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None

    service_name = obj.get("ServiceName")
    if not isinstance(service_name, str) or service_name not in services:
        return None

    return UsageRecord(
        service_name=service_name,
        consumed_quantity=_parse_quantity(obj.get("ConsumedQuantity")),
        consumer_tag=_consumer_tag(obj.get("Tags")),
    )


class UsageAggregator:
    """Incremental fold of feed lines into per-service usage.

    Lines can be fed one at a time as they stream in; ``finalize`` rounds the
    totals and returns the result.
    """

    def __init__(self, services: Sequence[str]):
        self.services = tuple(services)
        self.usage: Dict[str, ServiceUsage] = {}
        self.accepted = 0
        self.discarded = 0

    def add_line(self, line: str) -> bool:
        """Parse and fold one line. Returns False if the line was discarded."""
        record = parse_line(line, self.services)
        if record is None:
            self.discarded += 1
            return False
        self.usage.setdefault(record.service_name, ServiceUsage()).add(record)
        self.accepted += 1
        return True

    def finalize(self) -> Dict[str, ServiceUsage]:
        for service_usage in self.usage.values():
            service_usage.finalize()
        logger.debug(
            "Aggregated billing feed: %d lines accepted, %d discarded",
            self.accepted, self.discarded
        )
        return self.usage


def aggregate_usage(lines: Iterable[str], services: Sequence[str]) -> Dict[str, ServiceUsage]:
    """Fold feed lines into per-service usage.

    Line order does not matter. Totals are summed exactly and rounded to three
    decimals at the end. Services without any accepted line are absent from
    the result, callers treat absence as zero usage.

    Args:
        lines: Raw feed lines
        services: Recognized service names

    Returns:
        Mapping of service name to finalized ServiceUsage
    """
    aggregator = UsageAggregator(services)
    for line in lines:
        aggregator.add_line(line)
    return aggregator.finalize()
