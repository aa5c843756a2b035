"""
Shared fixtures for Quota Watch tests.
"""

import pytest

from quota_watch.config.loader import get_monitor_config


@pytest.fixture(autouse=True)
def default_monitor_config(monkeypatch):
    """Use the built-in monitor configuration in every test."""
    monkeypatch.delenv("QUOTA_WATCH_CONFIG", raising=False)
    get_monitor_config.cache_clear()
    yield
    get_monitor_config.cache_clear()
