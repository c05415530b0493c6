"""Webhook delivery with exponential backoff retry logic.

Used for outbound workflow notifications (Slack incoming webhooks):
- Exponential backoff retry strategy (1s, 2s, 4s)
- Retry on 5xx errors and network failures, no retry on 4xx client errors
- Only http(s) URLs with a host are accepted
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)


@dataclass
class WebhookDelivery:
    """Configuration for webhook delivery with retry logic.

    Attributes:
        webhook_url: Target URL for webhook POST request
        payload: JSON payload to send
        headers: HTTP headers
        max_retries: Maximum number of attempts (default: 3)
        timeout: Request timeout in seconds (default: 10)
        event_type: Event type for logging (e.g., "campaign_status_changed")
        organization_id: Organization the event belongs to
    """

    webhook_url: str
    payload: dict[str, Any]
    headers: dict[str, str]
    max_retries: int = 3
    timeout: int = 10
    event_type: str | None = None
    organization_id: str | None = None


def validate_webhook_url(url: str) -> tuple[bool, str]:
    """Check that a webhook URL is an absolute http(s) URL."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False, f"Unsupported scheme: {parsed.scheme or '(none)'}"
    if not parsed.netloc:
        return False, "Missing host"
    return True, ""


def deliver_webhook_with_retry(delivery: WebhookDelivery) -> tuple[bool, dict[str, Any]]:
    """Deliver webhook with exponential backoff retry.

    Retry strategy:
    - Attempt 1: Immediate
    - Attempt 2: After 1 second (2^0)
    - Attempt 3: After 2 seconds (2^1)

    Returns:
        Tuple of (success: bool, result: dict) where result contains:
        - delivery_id: Unique ID for this delivery
        - status: "delivered" or "failed"
        - attempts: Number of attempts made
        - response_code: HTTP status code (if received)
        - error: Error message (if failed)
    """
    is_valid, error_msg = validate_webhook_url(delivery.webhook_url)
    if not is_valid:
        logger.error(f"Webhook URL validation failed: {error_msg}")
        return False, {"status": "failed", "error": f"Invalid webhook URL: {error_msg}", "attempts": 0}

    delivery_id = f"whd_{uuid.uuid4().hex[:12]}"
    attempts = 0
    last_error = None
    response_code = None
    start_time = time.time()

    for attempt in range(delivery.max_retries):
        attempts += 1
        try:
            logger.info(
                f"[Webhook Delivery] Attempt {attempt + 1}/{delivery.max_retries} for {delivery_id} "
                f"({delivery.event_type or 'event'})"
            )
            response = requests.post(
                delivery.webhook_url, json=delivery.payload, headers=delivery.headers, timeout=delivery.timeout
            )
            response_code = response.status_code

            if 200 <= response_code < 300:
                total_duration = time.time() - start_time
                logger.info(f"[Webhook Delivery] SUCCESS: {delivery_id} delivered after {attempts} attempts")
                return True, {
                    "delivery_id": delivery_id,
                    "status": "delivered",
                    "attempts": attempts,
                    "response_code": response_code,
                    "duration": total_duration,
                }

            # Client errors (4xx): Don't retry
            if 400 <= response_code < 500:
                error_msg = f"Client error {response_code}: {response.text[:200]}"
                logger.warning(f"[Webhook Delivery] Client error, will NOT retry: {error_msg}")
                return False, {
                    "delivery_id": delivery_id,
                    "status": "failed",
                    "attempts": attempts,
                    "response_code": response_code,
                    "error": error_msg,
                }

            last_error = f"Server error {response_code}: {response.text[:200]}"
            logger.warning(f"[Webhook Delivery] Server error, will retry: {last_error}")

        except requests.exceptions.Timeout:
            last_error = f"Request timeout after {delivery.timeout}s"
            logger.warning(f"[Webhook Delivery] Timeout, will retry: {last_error}")

        except requests.exceptions.ConnectionError as e:
            last_error = f"Connection error: {str(e)[:200]}"
            logger.warning(f"[Webhook Delivery] Connection error, will retry: {last_error}")

        except requests.exceptions.RequestException as e:
            last_error = f"Request exception: {str(e)[:200]}"
            logger.warning(f"[Webhook Delivery] Request exception, will retry: {last_error}")

        if attempt < delivery.max_retries - 1:
            time.sleep(2**attempt)

    total_duration = time.time() - start_time
    logger.error(f"[Webhook Delivery] FAILED: {delivery_id} failed after {attempts} attempts in {total_duration:.2f}s")
    return False, {
        "delivery_id": delivery_id,
        "status": "failed",
        "attempts": attempts,
        "response_code": response_code,
        "error": last_error or "Max retries exceeded",
        "duration": total_duration,
    }
