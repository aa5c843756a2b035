"""
Configuration management and loading.

Handles the static monitor configuration and credentials from the environment.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

CONFIG_PATH_ENV = "QUOTA_WATCH_CONFIG"

PRIMARY_CREDENTIAL_VARS = ("VERCEL_TOKEN", "VERCEL_TEAM_ID")


class MissingCredentialsError(ValueError):
    """Raised when credentials required for a report are absent."""

    def __init__(self, missing: List[str]):
        super().__init__(f"Missing environment variables: {', '.join(missing)}")
        self.missing = missing


@dataclass(frozen=True)
class Credentials:
    """Upstream API credentials read from the environment."""
    vercel_token: Optional[str] = None
    vercel_team_id: Optional[str] = None
    openai_admin_key: Optional[str] = None
    openai_project_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Credentials":
        def _get(name: str) -> Optional[str]:
            value = os.getenv(name, "").strip()
            return value or None

        return cls(
            vercel_token=_get("VERCEL_TOKEN"),
            vercel_team_id=_get("VERCEL_TEAM_ID"),
            openai_admin_key=_get("OPENAI_ADMIN_KEY"),
            openai_project_id=_get("OPENAI_PROJECT_ID"),
        )

    def require_primary(self) -> None:
        """Raise MissingCredentialsError unless the Vercel token and team are set."""
        values = (self.vercel_token, self.vercel_team_id)
        missing = [name for name, value in zip(PRIMARY_CREDENTIAL_VARS, values) if not value]
        if missing:
            raise MissingCredentialsError(missing)


@dataclass(frozen=True)
class TrackedProject:
    """A hosted project whose latest deployment is reported."""
    id: str
    name: str
    short: str

    def __post_init__(self):
        if not self.id or not self.short:
            raise ValueError("tracked project needs a non-empty id and short name")


@dataclass(frozen=True)
class ServiceQuota:
    """Fixed per-cycle quota for one metered service."""
    name: str
    limit: float
    unit: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("service name cannot be empty")
        if self.limit <= 0:
            raise ValueError(f"limit for '{self.name}' must be > 0")


@dataclass(frozen=True)
class MonitorConfig:
    """Static monitor configuration, built once per process."""
    projects: Tuple[TrackedProject, ...]
    services: Tuple[ServiceQuota, ...]
    billing_anchor_day: int = 20
    display_timezone: str = "UTC"
    openai_since: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)
    openai_max_pages: int = 12
    request_timeout: float = 30.0

    def __post_init__(self):
        if not 1 <= self.billing_anchor_day <= 28:
            raise ValueError("billing_anchor_day must be between 1 and 28")
        if self.openai_since.tzinfo is None:
            raise ValueError("openai_since must be timezone-aware")
        if self.openai_max_pages < 1:
            raise ValueError("openai_max_pages must be >= 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        names = [service.name for service in self.services]
        if len(set(names)) != len(names):
            raise ValueError("service names must be unique")
        try:
            ZoneInfo(self.display_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown display_timezone: {self.display_timezone}")

    @property
    def service_names(self) -> Tuple[str, ...]:
        return tuple(service.name for service in self.services)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)


DEFAULT_MONITOR_CONFIG = MonitorConfig(
    projects=(
        TrackedProject(id="prj_345gNlBNxgvsSCakmtpNTSECGFqR", name="rubix-pole-acquisition", short="pole"),
        TrackedProject(id="prj_GM0WHDF8ik7PjMeib2Zha1EYXblM", name="rubix-pitch-generator-dev", short="pitch"),
        TrackedProject(id="prj_kAzFteCZudVEikhKBC2dK2GdpMVS", name="rubix-smart-content", short="smart"),
    ),
    services=(
        ServiceQuota(name="Build Minutes", limit=6000, unit="min"),
        ServiceQuota(name="Function Invocations", limit=1_000_000, unit="invoc."),
        ServiceQuota(name="Function Duration", limit=1000, unit="GB-h"),
        ServiceQuota(name="Fast Data Transfer", limit=1000, unit="GB"),
    ),
)


def load_monitor_config(path: str) -> MonitorConfig:
    """Load and validate monitor configuration from a YAML file.

    Keys left out fall back to the values of DEFAULT_MONITOR_CONFIG.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated MonitorConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Monitor config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {
        'billing_anchor_day', 'display_timezone', 'openai_since',
        'openai_max_pages', 'request_timeout', 'projects', 'services',
    }
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    defaults = DEFAULT_MONITOR_CONFIG

    projects = defaults.projects
    if 'projects' in raw_config:
        projects_data = raw_config['projects']
        if not isinstance(projects_data, list):
            raise ValueError("'projects' must be a list")
        projects = tuple(
            _parse_project(item, f"projects[{i}]") for i, item in enumerate(projects_data)
        )

    services = defaults.services
    if 'services' in raw_config:
        services_data = raw_config['services']
        if not isinstance(services_data, dict) or not services_data:
            raise ValueError("'services' must be a non-empty dictionary")
        services = tuple(
            _parse_service(name, data, f"services.{name}") for name, data in services_data.items()
        )

    openai_since = defaults.openai_since
    if 'openai_since' in raw_config:
        openai_since = _parse_timestamp(raw_config['openai_since'], "openai_since")

    return MonitorConfig(
        projects=projects,
        services=services,
        billing_anchor_day=int(raw_config.get('billing_anchor_day', defaults.billing_anchor_day)),
        display_timezone=str(raw_config.get('display_timezone', defaults.display_timezone)),
        openai_since=openai_since,
        openai_max_pages=int(raw_config.get('openai_max_pages', defaults.openai_max_pages)),
        request_timeout=float(raw_config.get('request_timeout', defaults.request_timeout)),
    )


def _parse_project(data: Dict, path: str) -> TrackedProject:
    if not isinstance(data, dict):
        raise ValueError(f"{path} must be a dictionary")

    allowed_keys = {'id', 'name', 'short'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    for key in ('id', 'short'):
        if key not in data:
            raise ValueError(f"Missing required '{key}' in {path}")

    return TrackedProject(
        id=str(data['id']),
        name=str(data.get('name', data['short'])),
        short=str(data['short']),
    )


def _parse_service(name: str, data: Dict, path: str) -> ServiceQuota:
    """Parse and validate one service quota entry.

    Args:
        name: Service name as reported by the billing feed
        data: Quota data
        path: Path for error messages

    Returns:
        Validated ServiceQuota

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"{path} must be a dictionary")

    allowed_keys = {'limit', 'unit'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'limit' not in data:
        raise ValueError(f"Missing required 'limit' in {path}")
    limit = data['limit']
    if isinstance(limit, bool) or not isinstance(limit, (int, float)) or limit <= 0:
        raise ValueError(f"'limit' in {path} must be > 0")

    if 'unit' not in data:
        raise ValueError(f"Missing required 'unit' in {path}")
    if not isinstance(data['unit'], str):
        raise ValueError(f"'unit' in {path} must be a string")

    return ServiceQuota(name=str(name), limit=float(limit), unit=data['unit'])


def _parse_timestamp(value, path: str) -> datetime:
    # yaml.safe_load already turns unquoted ISO timestamps into datetimes
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"'{path}' must be an ISO-8601 timestamp")
    else:
        raise ValueError(f"'{path}' must be an ISO-8601 timestamp")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@lru_cache(maxsize=1)
def get_monitor_config() -> MonitorConfig:
    """Return the process-wide monitor configuration.

    Reads the YAML file named by QUOTA_WATCH_CONFIG on first use, otherwise
    DEFAULT_MONITOR_CONFIG.
    """
    path = os.getenv(CONFIG_PATH_ENV, "").strip()
    if path:
        return load_monitor_config(path)
    return DEFAULT_MONITOR_CONFIG
