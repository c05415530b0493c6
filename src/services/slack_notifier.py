"""
Slack notification system for campaign workflow events.
Sends stage changes, reservations, approvals and contracts to a Slack incoming webhook.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

from src.core.config import get_config

logger = logging.getLogger(__name__)

EVENT_EMOJI = {
    "campaign_status_changed": "📈",
    "talent_approval_requested": "🎙️",
    "inventory_reserved": "📦",
    "inventory_released": "↩️",
    "contract_generated": "📝",
    "campaign_rejected": "⛔",
}


class SlackNotifier:
    """Handles sending notifications to a Slack channel via webhook."""

    def __init__(self, webhook_url: str | None = None):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack webhook URL. Slack is disabled when not provided.
        """
        self.webhook_url = webhook_url
        self.enabled = bool(self.webhook_url)

        if self.enabled:
            parsed = urlparse(self.webhook_url)
            if not all([parsed.scheme, parsed.netloc]):
                logger.error(f"Invalid Slack webhook URL format: {self.webhook_url}")
                self.enabled = False
        else:
            logger.info("Slack notifications disabled (no webhook URL configured)")

    def send_message(
        self,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
        organization_id: str | None = None,
        event_type: str = "slack.notification",
    ) -> bool:
        """
        Send a message to Slack with retry logic.

        Args:
            text: Plain text message (fallback for notifications)
            blocks: Rich Block Kit blocks for formatted messages
            organization_id: Organization the message is about
            event_type: Event type, for delivery logging

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled or not self.webhook_url:
            return False

        payload: dict[str, Any] = {"text": text}
        if blocks:
            payload["blocks"] = blocks

        from src.core.webhook_delivery import WebhookDelivery, deliver_webhook_with_retry

        delivery = WebhookDelivery(
            webhook_url=self.webhook_url,
            payload=payload,
            headers={"Content-Type": "application/json"},
            max_retries=3,
            timeout=10,
            event_type=event_type,
            organization_id=organization_id,
        )

        success, result = deliver_webhook_with_retry(delivery)

        if not success:
            logger.error(
                f"Failed to send Slack notification after {result['attempts']} attempts: "
                f"{result.get('error', 'Unknown error')}"
            )

        return success

    def notify_workflow_event(
        self,
        event_type: str,
        title: str,
        message: str,
        organization_id: str,
        campaign_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """
        Send a campaign workflow event.

        Args:
            event_type: Notification type (e.g., 'inventory_reserved')
            title: Short headline
            message: Human-readable message
            organization_id: Owning organization
            campaign_id: Campaign the event is about
            data: Extra event fields shown as details

        Returns:
            True if notification sent successfully
        """
        emoji = EVENT_EMOJI.get(event_type, "🔔")
        blocks: list[dict[str, Any]] = [
            {"type": "header", "text": {"type": "plain_text", "text": f"{emoji} {title}"}},
            {"type": "section", "text": {"type": "mrkdwn", "text": message}},
        ]

        if campaign_id:
            blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"*Campaign:* `{campaign_id}`"}})

        if data:
            detail_text = self._format_details(data)
            if detail_text:
                blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"*Details:*\n{detail_text}"}})

        dashboard_url = os.getenv("DASHBOARD_URL")
        if dashboard_url and campaign_id:
            blocks.append(
                {
                    "type": "actions",
                    "elements": [
                        {
                            "type": "button",
                            "text": {"type": "plain_text", "text": "Open Campaign"},
                            "url": f"{dashboard_url.rstrip('/')}/campaigns/{campaign_id}",
                            "style": "primary",
                        }
                    ],
                }
            )

        blocks.append(
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"{event_type} at {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')}",
                    }
                ],
            }
        )

        return self.send_message(message, blocks, organization_id=organization_id, event_type=event_type)

    def _format_details(self, details: dict[str, Any]) -> str | None:
        """Format event data for a Slack message."""
        formatted_parts = []

        for field, value in details.items():
            if field == "campaignId" or value is None:
                continue
            if isinstance(value, list):
                value = f"{len(value)} item(s)"
            formatted_parts.append(f"• {field}: `{value}`")

        return "\n".join(formatted_parts[:5]) if formatted_parts else None  # Limit to 5 items


def get_slack_notifier(webhook_url: str | None = None) -> SlackNotifier:
    """Get a Slack notifier, falling back to NOTIFICATIONS_SLACK_WEBHOOK_URL."""
    return SlackNotifier(webhook_url=webhook_url or get_config().notifications.slack_webhook_url)
