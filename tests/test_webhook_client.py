"""
Tests for webhook delivery: retry policy, batching and the httpx transport.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from conftest import WEBHOOK_URL, FakeTransport, RecordingSleep
from drive_monitor.core.exceptions import NotificationDeliveryError, WebhookResponseError
from drive_monitor.services.notifications.models import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from drive_monitor.services.notifications.retry_policy import RetryPolicy
from drive_monitor.services.notifications.webhook_client import (
    HttpxTransport,
    WebhookNotifier,
    mask_webhook_url,
)


@pytest.fixture
def notifier(transport, recording_sleep) -> WebhookNotifier:
    return WebhookNotifier(
        transport=transport,
        retry_policy=RetryPolicy(max_attempts=3, base_delay_seconds=1.0),
        webhook_url=WEBHOOK_URL,
        sleep=recording_sleep,
        batch_delay_seconds=0.5,
    )


class TestRetryPolicy:
    def test_linear_backoff(self):
        policy = RetryPolicy(max_attempts=3, base_delay_seconds=2.0)
        assert [policy.delay_after(attempt) for attempt in (1, 2)] == [2.0, 4.0]
        assert policy.should_retry(2)
        assert not policy.should_retry(3)


class TestWebhookNotifierSend:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self, notifier, transport, recording_sleep):
        await notifier.send({"text": "hello"})

        assert len(transport.calls) == 1
        assert transport.calls[0]["url"] == WEBHOOK_URL
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_non_success_status(self, notifier, transport, recording_sleep):
        transport.responses = [500, 429, 200]

        await notifier.send({"text": "hello"})

        assert len(transport.calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self, notifier, transport):
        transport.responses = [httpx.ConnectError("refused"), 204]

        await notifier.send({"text": "hello"})

        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_exhaustion_raises_with_final_error(self, notifier, transport, recording_sleep):
        transport.default_status = 503

        with pytest.raises(NotificationDeliveryError) as exc_info:
            await notifier.send({"text": "hello"})

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, WebhookResponseError)
        assert exc_info.value.last_error.status_code == 503
        assert len(transport.calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_missing_url_fails_without_posting(self, transport, recording_sleep):
        notifier = WebhookNotifier(transport=transport, sleep=recording_sleep)

        with pytest.raises(NotificationDeliveryError):
            await notifier.send({"text": "hello"})
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_bind_targets_other_url(self, notifier, transport):
        await notifier.bind("https://hooks.example.com/other").send({"text": "hi"})
        assert transport.calls[0]["url"] == "https://hooks.example.com/other"

    @pytest.mark.asyncio
    async def test_send_notification_renders_payload(self, notifier, transport):
        notification = Notification(
            type=NotificationType.FILE_UPDATE,
            title="File created: a.txt",
            message="File created",
            channel="#drive-changes",
        )
        await notifier.send_notification(notification)

        payload = transport.calls[0]["payload"]
        assert payload["channel"] == "#drive-changes"
        assert payload["text"] == "File created: a.txt"
        assert payload["attachments"][0]["color"] == "good"


class TestWebhookNotifierBatch:
    @pytest.mark.asyncio
    async def test_batch_reports_per_item(self, notifier, transport, recording_sleep):
        # First payload succeeds, second exhausts its three attempts, third succeeds
        transport.responses = [200, 500, 500, 500, 200]

        results = await notifier.send_batch([{"n": 1}, {"n": 2}, {"n": 3}])

        assert results == [True, False, True]
        assert recording_sleep.delays == [0.5, 1.0, 2.0, 0.5]

    @pytest.mark.asyncio
    async def test_connection_test(self, notifier, transport):
        assert await notifier.test_connection() is True

        transport.default_status = 404
        assert await notifier.test_connection() is False


class TestHttpxTransport:
    @pytest.mark.asyncio
    async def test_posts_json_and_returns_status(self):
        response = MagicMock()
        response.status_code = 200
        response.is_success = True

        mock_client = AsyncMock()
        mock_client.post.return_value = response
        mock_client.is_closed = False

        with patch("drive_monitor.services.notifications.webhook_client.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value = mock_client
            transport = HttpxTransport(timeout_seconds=5)

            status = await transport.post(WEBHOOK_URL, {"text": "x"})
            await transport.post(WEBHOOK_URL, {"text": "retry"})
            await transport.aclose()

        assert status == 200
        mock_cls.assert_called_once_with(timeout=5)
        assert mock_client.post.await_count == 2
        mock_client.aclose.assert_awaited_once()
        args, kwargs = mock_client.post.call_args_list[0]
        assert args[0] == WEBHOOK_URL
        assert kwargs["json"] == {"text": "x"}


def test_mask_webhook_url():
    assert mask_webhook_url("") == "<not configured>"
    masked = mask_webhook_url(WEBHOOK_URL)
    assert masked.startswith(WEBHOOK_URL[:20])
    assert "XXXXXXXX" not in masked


def test_summary_notifications_use_light_blue():
    notification = Notification(
        type=NotificationType.WEEKLY_SUMMARY,
        title="Weekly",
        message="Weekly summary",
        channel="#summary",
        priority=NotificationPriority.LOW,
        blocks=[{"type": "divider"}],
    )
    assert notification.color == "a3d9ff"
    assert notification.to_webhook_payload()["blocks"] == [{"type": "divider"}]
    assert not notification.is_high_priority
