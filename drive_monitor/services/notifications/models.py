from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drive_monitor.utils.formatting import ensure_aware

SUMMARY_COLOR = "a3d9ff"  # Light blue for daily/weekly summaries


class NotificationType(str, Enum):
    FILE_UPDATE = "file_update"
    DAILY_SUMMARY = "daily_summary"
    WEEKLY_SUMMARY = "weekly_summary"
    ERROR_ALERT = "error_alert"
    SYSTEM_STATUS = "system_status"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_PRIORITY_COLORS = {
    NotificationPriority.CRITICAL: "danger",
    NotificationPriority.HIGH: "warning",
    NotificationPriority.MEDIUM: "good",
    NotificationPriority.LOW: "#36a64f",
}


class Notification(BaseModel):
    """A message to a chat channel, rendered to a Slack-compatible webhook payload."""

    type: NotificationType
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    channel: str = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    data: Dict[str, Any] = Field(default_factory=dict)
    blocks: Optional[List[Dict[str, Any]]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    @classmethod
    def _make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def is_high_priority(self) -> bool:
        return self.priority in (NotificationPriority.HIGH, NotificationPriority.CRITICAL)

    @property
    def color(self) -> str:
        if self.type in (NotificationType.DAILY_SUMMARY, NotificationType.WEEKLY_SUMMARY):
            return SUMMARY_COLOR
        return _PRIORITY_COLORS[self.priority]

    def to_webhook_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "channel": self.channel,
            "username": "Drive Monitor",
            "icon_emoji": ":file_folder:",
            "text": self.title,
        }
        if self.blocks:
            payload["blocks"] = self.blocks
        else:
            payload["attachments"] = [
                {
                    "color": self.color,
                    "fields": [{"title": "Message", "value": self.message, "short": False}],
                    "footer": "Drive Monitor Alert",
                    "ts": int(self.timestamp.timestamp()),
                }
            ]
        return payload

    def __str__(self) -> str:
        return f"Notification({self.type.value}: {self.title} -> {self.channel})"
