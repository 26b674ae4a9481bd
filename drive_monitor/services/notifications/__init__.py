from .message_formatter import (
    SummaryFormatter,
    build_change_notification,
    build_error_alert,
)
from .models import Notification, NotificationPriority, NotificationType
from .retry_policy import RetryPolicy
from .webhook_client import HttpxTransport, WebhookNotifier

__all__ = [
    "HttpxTransport",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "RetryPolicy",
    "SummaryFormatter",
    "WebhookNotifier",
    "build_change_notification",
    "build_error_alert",
]
