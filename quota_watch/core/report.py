"""
Report assembly.

Runs the three independent data-gathering operations concurrently, projects
usage against quotas and assembles the JSON-ready report.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import httpx

from quota_watch.config.loader import Credentials, MonitorConfig
from quota_watch.providers.openai_usage import SecondaryUsageReport, fetch_secondary_usage
from quota_watch.providers.vercel import (
    DeploymentStatus,
    fetch_billing_usage,
    fetch_deployment_statuses,
)
from .billing_cycle import BillingPeriod, compute_billing_period
from .projection import ProjectionResult, project_usage
from .rounding import round_half_up
from .timefmt import format_day, isoformat_z

logger = logging.getLogger(__name__)


def _period_to_dict(period: BillingPeriod) -> Dict[str, Any]:
    return {
        "from": format_day(period.start),
        "to": format_day(period.now),
        "reset": format_day(period.end),
        "daysElapsed": round_half_up(period.days_elapsed, 1),
        "daysRemaining": round_half_up(period.days_remaining, 1),
    }


def _projection_to_dict(projection: ProjectionResult) -> Dict[str, Any]:
    return {
        "used": projection.used,
        "limit": projection.limit,
        "unit": projection.unit,
        "dailyRate": projection.daily_rate,
        "projected": projection.projected,
        "remaining": projection.remaining,
        "daysUntil": projection.days_until_exhaustion,
        "projPct": projection.projected_percent,
        "risk": projection.risk_tier.value,
        "perApp": dict(projection.per_consumer),
    }


def _deployment_to_dict(status: DeploymentStatus) -> Dict[str, str]:
    return {"state": status.state, "lastDate": status.last_deployed_at}


def _secondary_to_dict(report: SecondaryUsageReport) -> Dict[str, Any]:
    return {
        "totalCost": report.total_cost,
        "requests": report.request_count,
        "costPerPrompt": report.cost_per_request,
        "monthlyProjected": report.monthly_projected_cost,
    }


def assemble_report(
    period: BillingPeriod,
    projections: Mapping[str, ProjectionResult],
    deploys: Mapping[str, DeploymentStatus],
    secondary: SecondaryUsageReport,
    generated_at: datetime,
) -> Dict[str, Any]:
    """Compose the final report. Shape only, no computation."""
    return {
        "period": _period_to_dict(period),
        "vercel": {
            "proj": {name: _projection_to_dict(p) for name, p in projections.items()},
            "deploys": {short: _deployment_to_dict(s) for short, s in deploys.items()},
        },
        "openai": _secondary_to_dict(secondary),
        "generatedAt": isoformat_z(generated_at),
    }


async def build_report(
    credentials: Credentials,
    config: MonitorConfig,
    client: httpx.AsyncClient,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build one usage report.

    Primary credentials are checked before any request is made. Deployment
    and OpenAI failures are absorbed by their collectors; anything else
    propagates.

    Args:
        credentials: Upstream credentials
        config: Static monitor configuration
        client: Shared HTTP client
        now: Report instant, defaults to the current time in the display timezone

    Returns:
        JSON-ready report mapping

    Raises:
        MissingCredentialsError: If the Vercel token or team id is missing
    """
    credentials.require_primary()

    now = now or datetime.now(config.tzinfo)
    period = compute_billing_period(now, config.billing_anchor_day)

    usage, deploys, secondary = await asyncio.gather(
        fetch_billing_usage(
            client, credentials.vercel_token, credentials.vercel_team_id,
            period.start, now, config.service_names,
        ),
        fetch_deployment_statuses(
            client, credentials.vercel_token, credentials.vercel_team_id,
            config.projects, config.tzinfo,
        ),
        fetch_secondary_usage(
            client, credentials.openai_admin_key, credentials.openai_project_id,
            config.openai_since, now, config.openai_max_pages,
        ),
    )

    projections = project_usage(usage, config.services, period)
    logger.info(
        "Report built for cycle %s - %s (%d services, %d projects)",
        format_day(period.start), format_day(period.end), len(projections), len(deploys)
    )
    return assemble_report(period, projections, deploys, secondary, now)
