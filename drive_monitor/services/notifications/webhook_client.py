"""
Webhook delivery with bounded retry.

The transport only performs one HTTP POST; retry, backoff and batching live in
WebhookNotifier so they can be tested without a network.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from drive_monitor.core.exceptions import NotificationDeliveryError, WebhookResponseError
from drive_monitor.core.interfaces import NotificationTransport
from drive_monitor.services.notifications.models import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from drive_monitor.services.notifications.retry_policy import RetryPolicy

Sleep = Callable[[float], Awaitable[None]]


class HttpxTransport(NotificationTransport):
    """One AsyncClient shared by every post, retries included. Call ``aclose`` when done."""

    def __init__(self, timeout_seconds: float = 30.0):
        self._timeout = timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def post(self, url: str, payload: Dict[str, Any]) -> int:
        response = await self._get_client().post(
            url, json=payload, headers={"Content-Type": "application/json"}
        )
        if not response.is_success:
            logging.debug(f"Webhook responded {response.status_code}: {response.text[:200]}")
        return response.status_code

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def mask_webhook_url(url: str) -> str:
    if not url:
        return "<not configured>"
    if len(url) <= 20:
        return url[:4] + "***"
    return f"{url[:20]}***{url[-4:]}"


class WebhookNotifier:
    """
    Sends payloads to one webhook URL.

    ``send`` retries non-2xx responses and transport errors according to the
    RetryPolicy and raises NotificationDeliveryError once attempts are exhausted.
    ``send_batch`` never raises; it reports one bool per payload.
    """

    def __init__(
        self,
        transport: NotificationTransport,
        retry_policy: Optional[RetryPolicy] = None,
        webhook_url: str = "",
        sleep: Sleep = asyncio.sleep,
        batch_delay_seconds: float = 0.5,
    ):
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy()
        self._webhook_url = webhook_url
        self._sleep = sleep
        self._batch_delay_seconds = batch_delay_seconds

    @property
    def webhook_url(self) -> str:
        return self._webhook_url

    @property
    def masked_webhook_url(self) -> str:
        return mask_webhook_url(self._webhook_url)

    def bind(self, webhook_url: str) -> "WebhookNotifier":
        """Same transport and policy, different target URL."""
        return WebhookNotifier(
            transport=self._transport,
            retry_policy=self._retry_policy,
            webhook_url=webhook_url,
            sleep=self._sleep,
            batch_delay_seconds=self._batch_delay_seconds,
        )

    async def send(self, payload: Dict[str, Any]) -> None:
        if not self._webhook_url:
            raise NotificationDeliveryError(0, ValueError("webhook URL is not configured"))

        last_error: Optional[BaseException] = None
        attempt = 0
        while True:
            attempt += 1
            try:
                status = await self._transport.post(self._webhook_url, payload)
                if 200 <= status < 300:
                    logging.debug(
                        f"Webhook delivered to {self.masked_webhook_url} (attempt {attempt})"
                    )
                    return
                last_error = WebhookResponseError(status)
            except (httpx.HTTPError, OSError) as e:
                last_error = e

            logging.warning(
                f"Webhook attempt {attempt}/{self._retry_policy.max_attempts} "
                f"to {self.masked_webhook_url} failed: {last_error}"
            )
            if not self._retry_policy.should_retry(attempt):
                break
            await self._sleep(self._retry_policy.delay_after(attempt))

        raise NotificationDeliveryError(attempt, last_error)

    async def send_notification(self, notification: Notification) -> None:
        await self.send(notification.to_webhook_payload())
        logging.info(f"Sent {notification}", extra={"operation": "notification_sent"})

    async def send_batch(self, payloads: Sequence[Dict[str, Any]]) -> List[bool]:
        results = []
        for index, payload in enumerate(payloads):
            if index > 0:
                await self._sleep(self._batch_delay_seconds)
            try:
                await self.send(payload)
                results.append(True)
            except NotificationDeliveryError as e:
                logging.error(f"Batch item {index + 1}/{len(payloads)} failed: {e}")
                results.append(False)
        return results

    async def test_connection(self, channel: str = "#general") -> bool:
        notification = Notification(
            type=NotificationType.SYSTEM_STATUS,
            title="Drive Monitor connection test",
            message=f"Webhook connection test at {datetime.now(timezone.utc).isoformat(timespec='seconds')}",
            channel=channel,
            priority=NotificationPriority.LOW,
        )
        try:
            await self.send_notification(notification)
            return True
        except NotificationDeliveryError as e:
            logging.error(f"Webhook connection test failed: {e}")
            return False
