"""
Test fixtures for the campaign workflow.

This module provides reusable test data and in-memory collaborators for testing.
"""

from .factories import (
    DEFAULT_ORGANIZATION_ID,
    DEFAULT_SCHEMA,
    DEFAULT_USER_ID,
    CampaignFactory,
    RequestFactory,
)
from .mocks import (
    InMemoryTenantStore,
    InMemoryTenantWorkflow,
    StaticSettingsProvider,
    TenantState,
)

__all__ = [
    # Factories
    "CampaignFactory",
    "RequestFactory",
    "DEFAULT_ORGANIZATION_ID",
    "DEFAULT_SCHEMA",
    "DEFAULT_USER_ID",
    # In-memory collaborators
    "InMemoryTenantStore",
    "InMemoryTenantWorkflow",
    "StaticSettingsProvider",
    "TenantState",
]
