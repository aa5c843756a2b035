"""
Upstream providers for Quota Watch.

Async HTTP clients for the Vercel billing and deployments APIs and the
OpenAI organization cost endpoints.
"""

from .openai_usage import SecondaryUsageReport, fetch_secondary_usage
from .vercel import DeploymentStatus, fetch_billing_usage, fetch_deployment_statuses

__all__ = [
    "DeploymentStatus",
    "SecondaryUsageReport",
    "fetch_billing_usage",
    "fetch_deployment_statuses",
    "fetch_secondary_usage",
]
