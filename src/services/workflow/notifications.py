"""Domain events emitted by the stage engine and the publishers that deliver them.

The engine hands events to a ``NotificationPublisher`` after its unit of work
commits. Delivery failures are logged and counted but never reach the caller.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.core.database.database_session import get_db_session
from src.core.database.models import Notification
from src.core.metrics import notification_publish_total
from src.core.schemas import SideEffect, SideEffectAction
from src.services.slack_notifier import SlackNotifier

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    type: str
    title: str
    message: str
    organization_id: str
    campaign_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class NotificationPublisher(ABC):
    name = "publisher"

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Deliver one event. May raise; callers isolate failures."""


def publish_safely(publisher: NotificationPublisher, event: DomainEvent) -> bool:
    """Publish without letting delivery errors propagate."""
    try:
        publisher.publish(event)
    except Exception as e:
        logger.error(f"Notification publisher {publisher.name} failed for {event.type}: {e}", exc_info=True)
        notification_publish_total.labels(publisher=publisher.name, event_type=event.type, status="failed").inc()
        return False
    notification_publish_total.labels(publisher=publisher.name, event_type=event.type, status="published").inc()
    return True


class InAppNotificationPublisher(NotificationPublisher):
    """Persists events as rows in the shared notifications table."""

    name = "in_app"

    def publish(self, event: DomainEvent) -> None:
        with get_db_session() as session:
            session.add(
                Notification(
                    id=f"ntf_{uuid.uuid4().hex[:16]}",
                    organization_id=event.organization_id,
                    type=event.type,
                    title=event.title,
                    message=event.message,
                    campaign_id=event.campaign_id,
                    data=event.data or None,
                    is_read=False,
                    created_at=event.occurred_at,
                )
            )
            session.commit()


class SlackNotificationPublisher(NotificationPublisher):
    name = "slack"

    def __init__(self, notifier: SlackNotifier):
        self.notifier = notifier

    def publish(self, event: DomainEvent) -> None:
        if not self.notifier.enabled:
            return
        delivered = self.notifier.notify_workflow_event(
            event_type=event.type,
            title=event.title,
            message=event.message,
            organization_id=event.organization_id,
            campaign_id=event.campaign_id,
            data=event.data,
        )
        if not delivered:
            raise RuntimeError(f"Slack delivery failed for {event.type}")


class CompositeNotificationPublisher(NotificationPublisher):
    """Fans out to several publishers; one failing does not stop the others."""

    name = "composite"

    def __init__(self, publishers: list[NotificationPublisher]):
        self.publishers = list(publishers)

    def publish(self, event: DomainEvent) -> None:
        for publisher in self.publishers:
            publish_safely(publisher, event)


class InMemoryNotificationPublisher(NotificationPublisher):
    """Collects events in a list. Useful for tests and dry runs."""

    name = "in_memory"

    def __init__(self):
        self.events: list[DomainEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            self.events.append(event)

    def types(self) -> list[str]:
        with self._lock:
            return [event.type for event in self.events]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


def transition_events(
    organization_id: str,
    campaign_id: str,
    campaign_name: str,
    target_stage: int,
    side_effects: list[SideEffect],
) -> list[DomainEvent]:
    """One status-changed event plus one per notifiable side effect."""
    events = [
        DomainEvent(
            type="campaign_status_changed",
            title="Campaign Status Updated",
            message=f"Campaign {campaign_name} moved to {target_stage}%",
            organization_id=organization_id,
            campaign_id=campaign_id,
            data={"campaignId": campaign_id, "stage": target_stage},
        )
    ]

    for effect in side_effects:
        details = effect.details
        if effect.action == SideEffectAction.TALENT_APPROVAL_REQUESTED:
            events.append(
                DomainEvent(
                    type="talent_approval_requested",
                    title="Talent Approval Required",
                    message=f"Campaign {campaign_name} requires talent approval",
                    organization_id=organization_id,
                    campaign_id=campaign_id,
                    data={"campaignId": campaign_id, "approvalId": details.get("approvalId")},
                )
            )
        elif effect.action == SideEffectAction.INVENTORY_RESERVED:
            events.append(
                DomainEvent(
                    type="inventory_reserved",
                    title="Inventory Reserved",
                    message=f"Inventory reserved for campaign {campaign_name}",
                    organization_id=organization_id,
                    campaign_id=campaign_id,
                    data={"campaignId": campaign_id, "reservationIds": details.get("reservationIds", [])},
                )
            )
        elif effect.action == SideEffectAction.CONTRACT_GENERATED:
            events.append(
                DomainEvent(
                    type="contract_generated",
                    title="Contract Generated",
                    message=f"Contract generated for campaign {campaign_name}",
                    organization_id=organization_id,
                    campaign_id=campaign_id,
                    data={"campaignId": campaign_id, "contractId": details.get("contractId")},
                )
            )

    return events


def rejection_events(
    organization_id: str, campaign_id: str, campaign_name: str, released_count: int
) -> list[DomainEvent]:
    return [
        DomainEvent(
            type="inventory_released",
            title="Inventory Released",
            message=f"Released {released_count} inventory reservations for campaign {campaign_name}",
            organization_id=organization_id,
            campaign_id=campaign_id,
            data={"campaignId": campaign_id, "releasedCount": released_count},
        ),
        DomainEvent(
            type="campaign_rejected",
            title="Campaign Needs Revision",
            message=f"Campaign {campaign_name} was rejected at 90% and moved back to 65%",
            organization_id=organization_id,
            campaign_id=campaign_id,
            data={"campaignId": campaign_id, "stage": 65},
        ),
    ]
