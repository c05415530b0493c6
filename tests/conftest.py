"""
Global pytest configuration and fixtures for all tests.

This file provides fixtures available to all test modules.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fixtures import (  # noqa: E402
    CampaignFactory,
    InMemoryTenantStore,
    StaticSettingsProvider,
)


@pytest.fixture(autouse=True, scope="function")
def test_environment(monkeypatch, request):
    """Configure test environment variables without global pollution."""
    monkeypatch.setenv("PODFLOW_TESTING", "true")

    # Unit tests must never reach a real database
    is_integration_test = "integration" in str(request.fspath)
    if not (is_integration_test and os.environ.get("DATABASE_URL")):
        monkeypatch.delenv("DATABASE_URL", raising=False)

    # Keep Slack off unless a test configures it explicitly
    monkeypatch.delenv("NOTIFICATIONS_SLACK_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    from src.core.config import reset_config
    from src.core.database.database_session import reset_engine, reset_health_state

    reset_config()
    reset_health_state()

    yield

    reset_engine()
    reset_config()


@pytest.fixture
def store():
    """Empty in-memory tenant schema."""
    return InMemoryTenantStore()


@pytest.fixture
def campaign_factory(store):
    """Seeds campaigns (with shows, spots and schedules) into the store."""
    return CampaignFactory(store)


@pytest.fixture
def settings_provider():
    return StaticSettingsProvider()
