"""
Vercel billing feed and deployment status client.

Streams the line-delimited billing charges feed into the usage aggregator and
looks up the most recent deployment of each tracked project.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Dict, Optional, Sequence

import httpx

from quota_watch.config.loader import TrackedProject
from quota_watch.core.feed import ServiceUsage, UsageAggregator
from quota_watch.core.timefmt import format_epoch_ms, isoformat_z

logger = logging.getLogger(__name__)

VERCEL_API_URL = "https://api.vercel.com"
BILLING_CHARGES_PATH = "/v1/billing/charges"
DEPLOYMENTS_PATH = "/v6/deployments"

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class DeploymentStatus:
    """Latest deployment of a tracked project."""
    state: str = NOT_AVAILABLE
    last_deployed_at: str = NOT_AVAILABLE

    @classmethod
    def unavailable(cls) -> "DeploymentStatus":
        return cls()


def _headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def fetch_billing_usage(
    client: httpx.AsyncClient,
    token: str,
    team_id: str,
    period_start: datetime,
    now: datetime,
    services: Sequence[str],
) -> Dict[str, ServiceUsage]:
    """Stream the billing charges feed and aggregate it per service.

    A non-success status is reported as an empty feed. Transport errors
    propagate.

    Args:
        client: Shared HTTP client
        token: Vercel API token
        team_id: Vercel team identifier
        period_start: Start of the billing window
        now: End of the queried range
        services: Recognized service names

    Returns:
        Mapping of service name to ServiceUsage, services without usage absent
    """
    params = {
        "teamId": team_id,
        "from": isoformat_z(period_start),
        "to": isoformat_z(now),
    }
    aggregator = UsageAggregator(services)

    async with client.stream(
        "GET", VERCEL_API_URL + BILLING_CHARGES_PATH, params=params, headers=_headers(token)
    ) as response:
        if response.is_error:
            logger.warning(
                "Billing feed returned HTTP %d, reporting zero usage", response.status_code
            )
            return {}
        async for line in response.aiter_lines():
            aggregator.add_line(line)

    return aggregator.finalize()


def _format_created(created, tz: Optional[tzinfo]) -> str:
    if isinstance(created, bool) or not isinstance(created, (int, float)):
        return NOT_AVAILABLE
    return format_epoch_ms(created, tz)


async def fetch_deployment_status(
    client: httpx.AsyncClient,
    token: str,
    team_id: str,
    project: TrackedProject,
    tz: Optional[tzinfo] = None,
) -> DeploymentStatus:
    """Fetch the most recent deployment of one project.

    Never raises: any failure yields DeploymentStatus.unavailable().
    """
    params = {"projectId": project.id, "teamId": team_id, "limit": 1}
    try:
        response = await client.get(
            VERCEL_API_URL + DEPLOYMENTS_PATH, params=params, headers=_headers(token)
        )
        response.raise_for_status()
        deployments = response.json().get("deployments") or []
        if not deployments:
            return DeploymentStatus.unavailable()

        latest = deployments[0]
        return DeploymentStatus(
            state=latest.get("state") or NOT_AVAILABLE,
            last_deployed_at=_format_created(latest.get("created"), tz),
        )
    except Exception as e:  # noqa: BLE001
        logger.warning("Deployment lookup failed for %s: %s", project.short, e)
        return DeploymentStatus.unavailable()


async def fetch_deployment_statuses(
    client: httpx.AsyncClient,
    token: str,
    team_id: str,
    projects: Sequence[TrackedProject],
    tz: Optional[tzinfo] = None,
) -> Dict[str, DeploymentStatus]:
    """Look up every tracked project concurrently, keyed by short name."""
    statuses = await asyncio.gather(
        *(fetch_deployment_status(client, token, team_id, project, tz) for project in projects)
    )
    return {project.short: status for project, status in zip(projects, statuses)}
