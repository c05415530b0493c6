"""
Unit test specific fixtures.

These fixtures are only available to unit tests.
"""

from unittest.mock import MagicMock, patch

import pytest

from src.services.workflow.idempotency import InMemoryIdempotencyCache
from src.services.workflow.notifications import InMemoryNotificationPublisher
from src.services.workflow.stage_engine import StageEngine


@pytest.fixture(autouse=True)
def mock_all_external_dependencies():
    """Automatically block outbound HTTP for unit tests."""
    with patch("requests.post") as mock_post:
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {}
        yield mock_post


@pytest.fixture
def mock_session():
    """SQLAlchemy session double usable as a context manager."""
    session = MagicMock()
    session.__enter__ = MagicMock(return_value=session)
    session.__exit__ = MagicMock(return_value=None)
    return session


@pytest.fixture
def publisher():
    return InMemoryNotificationPublisher()


@pytest.fixture
def idempotency_cache():
    return InMemoryIdempotencyCache()


@pytest.fixture
def engine(store, settings_provider, publisher, idempotency_cache):
    """Stage engine wired to the in-memory tenant store."""
    return StageEngine(
        open_workflow=store.open_workflow,
        settings_provider=settings_provider,
        publisher=publisher,
        cache=idempotency_cache,
        idempotency_ttl_seconds=3600,
    )
