"""Factory for a production-wired StageEngine."""

import logging

from src.core.config import get_config
from src.services.slack_notifier import get_slack_notifier
from src.services.tenant_workflow import SqlWorkflowSettingsProvider, open_tenant_workflow
from src.services.workflow.idempotency import IdempotencyCache, InMemoryIdempotencyCache
from src.services.workflow.notifications import (
    CompositeNotificationPublisher,
    InAppNotificationPublisher,
    NotificationPublisher,
    SlackNotificationPublisher,
)
from src.services.workflow.stage_engine import StageEngine

logger = logging.getLogger(__name__)

_shared_cache: IdempotencyCache | None = None


def get_idempotency_cache() -> IdempotencyCache:
    """Process-wide cache shared by engines built here."""
    global _shared_cache
    if _shared_cache is None:
        _shared_cache = InMemoryIdempotencyCache()
    return _shared_cache


def build_notification_publisher() -> NotificationPublisher:
    """Publishers enabled by NotificationConfig, fanned out through a composite."""
    config = get_config().notifications
    publishers: list[NotificationPublisher] = []

    if config.in_app_enabled:
        publishers.append(InAppNotificationPublisher())

    slack = get_slack_notifier()
    if slack.enabled:
        publishers.append(SlackNotificationPublisher(slack))

    logger.info(f"Workflow notifications: {', '.join(p.name for p in publishers) or 'none'}")
    return CompositeNotificationPublisher(publishers)


def build_stage_engine(
    publisher: NotificationPublisher | None = None, cache: IdempotencyCache | None = None
) -> StageEngine:
    """StageEngine over PostgreSQL tenant schemas."""
    return StageEngine(
        open_workflow=open_tenant_workflow,
        settings_provider=SqlWorkflowSettingsProvider(),
        publisher=publisher if publisher is not None else build_notification_publisher(),
        cache=cache if cache is not None else get_idempotency_cache(),
        idempotency_ttl_seconds=get_config().workflow.idempotency_ttl_seconds,
    )
