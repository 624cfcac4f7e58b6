"""Notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
import httpx
from typing import Dict, Any
from procurement_gateway.config import settings
from procurement_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class NotificationClient:
    """Client for posting spending request events to the notification service"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Post a workflow event (approved, rejected, paid) to the notification webhook.

        Runs after the transition has committed, so a delivery failure is logged and
        counted but never undoes the transition.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logging.error(
                            f"Notification delivery failed after {attempt} attempts: {e}",
                            extra={"event": payload.get("event"), "entity_id": payload.get("request_id")},
                        )
                        return

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
