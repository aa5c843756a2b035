"""
OpenAI organization cost and usage summary.

Reads the admin Costs and Completions Usage endpoints for one project and
projects the monthly spend. The summary is informational: every failure
collapses to a zeroed report.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx

from quota_watch.core.rounding import round_half_up

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1"
COSTS_PATH = "/organization/costs"
COMPLETIONS_USAGE_PATH = "/organization/usage/completions"

COSTS_PAGE_LIMIT = 30
USAGE_PAGE_LIMIT = 31
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class SecondaryUsageReport:
    """Cost and request totals since the window start."""
    total_cost: float = 0.0
    request_count: int = 0
    cost_per_request: float = 0.0
    monthly_projected_cost: float = 0.0


def summarize_usage(
    total_cost: float,
    request_count: int,
    window_start: datetime,
    now: datetime,
) -> SecondaryUsageReport:
    """Derive per-request cost and a 30-day cost projection.

    Args:
        total_cost: Summed cost since window_start
        request_count: Summed model requests since window_start
        window_start: Start of the summed window
        now: Current instant

    Returns:
        SecondaryUsageReport; elapsed days are floored at 1
    """
    cost_per_request = round_half_up(total_cost / request_count, 4) if request_count > 0 else 0.0
    days_since = max((now - window_start) / timedelta(days=1), 1.0)

    return SecondaryUsageReport(
        total_cost=round_half_up(total_cost, 2),
        request_count=request_count,
        cost_per_request=cost_per_request,
        monthly_projected_cost=round_half_up(total_cost / days_since * DAYS_PER_MONTH, 2),
    )


async def _fetch_buckets(
    client: httpx.AsyncClient,
    path: str,
    params: Dict[str, Any],
    headers: Dict[str, str],
    max_pages: int,
) -> List[Dict[str, Any]]:
    buckets: List[Dict[str, Any]] = []
    page: Optional[str] = None

    for _ in range(max_pages):
        query = dict(params)
        if page:
            query["page"] = page
        response = await client.get(OPENAI_API_URL + path, params=query, headers=headers)
        response.raise_for_status()
        body = response.json()
        buckets.extend(body.get("data") or [])

        page = body.get("next_page")
        if not body.get("has_more") or not page:
            break

    return buckets


def _sum_results(buckets: List[Dict[str, Any]], extract: Callable[[Dict[str, Any]], float]) -> float:
    return sum(extract(result) for bucket in buckets for result in bucket.get("results") or [])


def _cost_amount(result: Dict[str, Any]) -> float:
    value = (result.get("amount") or {}).get("value")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _request_count(result: Dict[str, Any]) -> int:
    value = result.get("num_model_requests")
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


async def fetch_secondary_usage(
    client: httpx.AsyncClient,
    admin_key: Optional[str],
    project_id: Optional[str],
    window_start: datetime,
    now: datetime,
    max_pages: int = 12,
) -> SecondaryUsageReport:
    """Fetch costs and request counts concurrently and summarize them.

    Never raises. Missing credentials, HTTP errors and malformed bodies all
    return a zeroed SecondaryUsageReport.

    Args:
        client: Shared HTTP client
        admin_key: OpenAI admin API key
        project_id: OpenAI project identifier
        window_start: Start of the summed window
        now: Current instant
        max_pages: Page cap per endpoint

    Returns:
        SecondaryUsageReport
    """
    if not admin_key or not project_id:
        logger.info("OpenAI credentials not configured, skipping cost summary")
        return SecondaryUsageReport()

    headers = {"Authorization": f"Bearer {admin_key}"}
    start_time = int(window_start.timestamp())

    try:
        costs, usage = await asyncio.gather(
            _fetch_buckets(
                client, COSTS_PATH,
                {"start_time": start_time, "project_ids": project_id, "limit": COSTS_PAGE_LIMIT},
                headers, max_pages,
            ),
            _fetch_buckets(
                client, COMPLETIONS_USAGE_PATH,
                {"start_time": start_time, "project_ids": project_id, "limit": USAGE_PAGE_LIMIT},
                headers, max_pages,
            ),
            return_exceptions=True,
        )
        for outcome in (costs, usage):
            if isinstance(outcome, BaseException):
                raise outcome

        total_cost = _sum_results(costs, _cost_amount)
        request_count = int(_sum_results(usage, _request_count))
    except Exception as e:  # noqa: BLE001
        logger.warning("OpenAI cost summary unavailable: %s", e)
        return SecondaryUsageReport()

    return summarize_usage(total_cost, request_count, window_start, now)
