"""
Builds Notification objects and Block Kit blocks for changes, alerts and summaries.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from drive_monitor.models import (
    ChangeType,
    Configuration,
    DailySummary,
    FileChange,
    FolderActivity,
    WeeklySummary,
)
from drive_monitor.services.notifications.models import (
    Notification,
    NotificationPriority,
    NotificationType,
)

SEPARATOR = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"
NOT_MONITORED = "_Not Monitored_"


def build_change_message(change: FileChange, now: Optional[datetime] = None) -> str:
    return (
        f'File "{change.file_name}" was {change.change_type.value} in folder "{change.folder_name}". '
        f"Owner: {change.owner or 'Unknown'}, Size: {change.formatted_size}, "
        f"Time: {change.time_ago(now)}"
    )


def build_change_notification(
    change: FileChange, channel: str, now: Optional[datetime] = None
) -> Notification:
    return Notification(
        type=NotificationType.FILE_UPDATE,
        title=f"File {change.change_type.value}: {change.file_name}",
        message=build_change_message(change, now),
        channel=channel,
        priority=NotificationPriority.MEDIUM,
        data={
            "file_change": change.model_dump(mode="json"),
            "folder_name": change.folder_name,
            "file_name": change.file_name,
            "change_type": change.change_type.value,
            "file_owner": change.owner,
            "file_size": change.formatted_size,
            "time_ago": change.time_ago(now),
        },
    )


def build_error_alert(
    error: BaseException, channel: str = "#alerts", user_id: Optional[str] = None
) -> Notification:
    return Notification(
        type=NotificationType.ERROR_ALERT,
        title="Drive Monitoring Error",
        message=f"Monitoring process failed: {error}",
        channel=channel,
        priority=NotificationPriority.HIGH,
        data={
            "error": str(error),
            "error_type": type(error).__name__,
            "user_id": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        },
        user_id=user_id,
    )


def trend_text(change_percent: int, suffix: str = "") -> str:
    if change_percent == 0:
        return ""
    icon, direction = ("📈", "up") if change_percent > 0 else ("📉", "down")
    return f"\n{icon} {abs(change_percent)}% {direction}{suffix}"


class SummaryFormatter:
    """Block Kit layout for the daily and weekly summaries."""

    def __init__(self, folder_url_template: str, change_log_url: str = ""):
        self._folder_url_template = folder_url_template
        self._change_log_url = change_log_url

    def folder_link(self, folder_name: str, activity: FolderActivity) -> str:
        if not activity.folder_id or not self._folder_url_template:
            return folder_name
        url = self._folder_url_template.format(folder_id=activity.folder_id)
        return f"<{url}|{folder_name}>"

    def _intro_blocks(self, header: str, period: str) -> List[Dict[str, Any]]:
        blocks: List[Dict[str, Any]] = [
            {"type": "header", "text": {"type": "plain_text", "text": header}},
            {"type": "context", "elements": [{"type": "mrkdwn", "text": SEPARATOR}]},
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"Below is a breakdown of all new and updated files that occurred {period}.",
                },
            },
        ]
        if self._change_log_url:
            blocks.append(
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*<{self._change_log_url}|File Change Summary>*"},
                }
            )
        blocks.append({"type": "divider"})
        return blocks

    def _folder_blocks(self, by_folder: Dict[str, FolderActivity]) -> List[Dict[str, Any]]:
        lines = [
            f"• {self.folder_link(name, activity)}: {activity.created} created, {activity.modified} modified"
            for name, activity in by_folder.items()
        ]
        if not lines:
            return []
        return [{"type": "section", "text": {"type": "mrkdwn", "text": "*By Folder:*\n" + "\n".join(lines)}}]

    def _link_button(self) -> List[Dict[str, Any]]:
        if not self._change_log_url:
            return []
        return [
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View full change log", "emoji": True},
                        "url": self._change_log_url,
                        "style": "primary",
                    }
                ],
            }
        ]

    def daily_blocks(self, summary: DailySummary) -> List[Dict[str, Any]]:
        blocks = self._intro_blocks(f"Daily update: for {summary.date}", "yesterday")
        deleted = summary.by_type.get(ChangeType.DELETED.value, 0)
        blocks.append(
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Total changes:*\n{summary.total}"},
                    {"type": "mrkdwn", "text": f"*Created:*\n{summary.by_type.get(ChangeType.CREATED.value, 0)}"},
                    {"type": "mrkdwn", "text": f"*Modified:*\n{summary.by_type.get(ChangeType.MODIFIED.value, 0)}"},
                    {"type": "mrkdwn", "text": f"*Deleted:*\n{deleted or NOT_MONITORED}"},
                ],
            }
        )
        blocks.append({"type": "divider"})
        blocks.extend(self._folder_blocks(summary.by_folder))
        blocks.extend(self._link_button())
        return blocks

    def weekly_blocks(self, summary: WeeklySummary) -> List[Dict[str, Any]]:
        start = date.fromisoformat(summary.start_date).strftime("%d/%m/%Y")
        end = date.fromisoformat(summary.end_date).strftime("%d/%m/%Y")
        blocks = self._intro_blocks(f"📊 Weekly File Summary: {start} - {end}", "this week")

        trends = summary.trends
        deleted = summary.by_type.get(ChangeType.DELETED.value, 0)
        blocks.append(
            {
                "type": "section",
                "fields": [
                    {
                        "type": "mrkdwn",
                        "text": f"*Total changes:*\n{summary.total}{trend_text(trends.total_change, ' from last week')}",
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Created:*\n{summary.by_type.get(ChangeType.CREATED.value, 0)}"
                        f"{trend_text(trends.created_change)}",
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Modified:*\n{summary.by_type.get(ChangeType.MODIFIED.value, 0)}"
                        f"{trend_text(trends.modified_change)}",
                    },
                    {"type": "mrkdwn", "text": f"*Deleted:*\n{deleted or NOT_MONITORED}"},
                ],
            }
        )
        blocks.append({"type": "divider"})
        blocks.extend(self._folder_blocks(summary.by_folder))

        previous = trends.previous_period
        if previous is not None and previous.total > 0:
            blocks.append(
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": (
                            f"*Weekly Comparison:*\nPrevious week: {previous.total} total changes "
                            f"({previous.by_type.get(ChangeType.CREATED.value, 0)} created, "
                            f"{previous.by_type.get(ChangeType.MODIFIED.value, 0)} modified)"
                        ),
                    },
                }
            )
        blocks.extend(self._link_button())
        return blocks

    def daily_notification(self, summary: DailySummary, configuration: Configuration) -> Notification:
        return Notification(
            type=NotificationType.DAILY_SUMMARY,
            title=f"Daily update: for {summary.date}",
            message=f"{summary.total} file changes on {summary.date}",
            channel=configuration.summary_channel,
            priority=NotificationPriority.LOW,
            data={"summary": summary.model_dump(mode="json")},
            blocks=self.daily_blocks(summary),
        )

    def weekly_notification(self, summary: WeeklySummary, configuration: Configuration) -> Notification:
        return Notification(
            type=NotificationType.WEEKLY_SUMMARY,
            title=f"Weekly File Summary: {summary.start_date} - {summary.end_date}",
            message=f"{summary.total} file changes between {summary.start_date} and {summary.end_date}",
            channel=configuration.summary_channel,
            priority=NotificationPriority.LOW,
            data={"summary": summary.model_dump(mode="json")},
            blocks=self.weekly_blocks(summary),
        )
