"""
Change-Detection Engine - orchestrates one monitoring cycle.

A cycle loads the Configuration, checks the gates (window, readiness, daily
run limit), scans every configured folder, appends each change to the change
log, notifies per change and finally writes the advanced watermark back.

Per-folder and per-change failures are logged and skipped. Only failures to
load the configuration or persist the scan state abort the cycle.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from drive_monitor.core.exceptions import (
    ChangeLogError,
    ConfigurationLoadError,
    FolderAccessError,
    NotificationDeliveryError,
)
from drive_monitor.core.interfaces import ConfigurationStore, FileSource
from drive_monitor.models import Configuration, CycleResult, FileChange, MonitorStatus, ScanState
from drive_monitor.services.change_log.change_log import ChangeLog
from drive_monitor.services.monitoring.folder_scanner import FolderScanner
from drive_monitor.services.notifications.message_formatter import (
    build_change_notification,
    build_error_alert,
)
from drive_monitor.services.notifications.webhook_client import WebhookNotifier

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChangeDetectionEngine:
    def __init__(
        self,
        store: ConfigurationStore,
        source: FileSource,
        change_log: ChangeLog,
        notifier: WebhookNotifier,
        fallback_alert_webhook_url: str = "",
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self._store = store
        self._scanner = FolderScanner(source)
        self._change_log = change_log
        self._notifier = notifier
        self._fallback_alert_webhook_url = fallback_alert_webhook_url
        self._clock = clock
        self._sleep = sleep
        logging.info("ChangeDetectionEngine initialized")

    def _result(
        self, start_time: datetime, success: bool, message: str, user_id: Optional[str] = None, **kwargs
    ) -> CycleResult:
        end_time = self._clock()
        return CycleResult(
            success=success,
            message=message,
            start_time=start_time,
            end_time=end_time,
            duration=max((end_time - start_time).total_seconds(), 0.0),
            user_id=user_id,
            **kwargs,
        )

    def _check_gates(self, configuration: Configuration, now: datetime, force_run: bool) -> Optional[str]:
        """Reason the cycle must not scan, or None when it may proceed."""
        if not force_run and not configuration.is_monitoring_active(now):
            local = configuration.local_time(now)
            return (
                f"Outside monitoring window ({configuration.monitoring_window}, "
                f"now {local:%H:%M} {configuration.timezone})"
            )

        errors = configuration.validation_errors()
        if errors:
            return f"Invalid configuration: {', '.join(errors)}"

        runs_today = configuration.scan_state.runs_on_day_of(configuration.local_time(now))
        if runs_today >= configuration.max_runs_per_day:
            return f"Daily limit reached ({runs_today}/{configuration.max_runs_per_day})"
        return None

    async def execute(self, force_run: bool = False, user_id: Optional[str] = None) -> CycleResult:
        start_time = self._clock()
        logging.info(
            f"Monitoring cycle started (force_run={force_run}, user={user_id or 'scheduler'})",
            extra={"operation": "monitor_cycle"},
        )

        try:
            configuration = await self._store.load()
        except Exception as e:
            logging.error(f"Monitoring cycle aborted: {e}", exc_info=not isinstance(e, ConfigurationLoadError))
            await self._send_error_alert(e, self._fallback_alert_webhook_url, "#alerts", user_id)
            return self._result(start_time, False, str(e), user_id)

        skip_reason = self._check_gates(configuration, start_time, force_run)
        if skip_reason:
            logging.info(f"Monitoring cycle skipped: {skip_reason}")
            return self._result(start_time, False, skip_reason, user_id, skipped=True)

        try:
            since = configuration.scan_state.last_check_time or (
                start_time - timedelta(minutes=configuration.lookback_window_minutes)
            )
            changes, folders_failed = await self._scan_folders(configuration, since, start_time)
            notifications_sent = await self._process_changes(configuration, changes, start_time)
            await self._update_scan_state(configuration, start_time, len(changes))
        except Exception as e:
            logging.error(f"Monitoring cycle failed: {e}", exc_info=True)
            await self._send_error_alert(
                e, configuration.webhook_url, configuration.alert_channel, user_id
            )
            return self._result(start_time, False, str(e), user_id)

        message = f"Monitoring completed: {len(changes)} changes found, {notifications_sent} notifications sent"
        if folders_failed:
            message += f" ({len(folders_failed)} folders could not be scanned)"
        logging.info(message, extra={"operation": "monitor_cycle"})

        return self._result(
            start_time,
            True,
            message,
            user_id,
            changes_found=len(changes),
            notifications_sent=notifications_sent,
            changes=changes,
            folders_failed=folders_failed,
        )

    async def _scan_folders(
        self, configuration: Configuration, since: datetime, now: datetime
    ) -> Tuple[List[FileChange], List[str]]:
        changes: List[FileChange] = []
        folders_failed: List[str] = []

        for index, folder_id in enumerate(configuration.folder_ids):
            if index > 0:
                await self._sleep(configuration.sleep_between_requests_ms / 1000)
            try:
                changes.extend(await self._scanner.scan_folder(folder_id, since, now, configuration))
            except FolderAccessError as e:
                logging.warning(f"Skipping folder {folder_id}: {e}")
                folders_failed.append(folder_id)
            except Exception as e:
                logging.error(f"Skipping folder {folder_id} after unexpected error: {e}", exc_info=True)
                folders_failed.append(folder_id)

        return changes, folders_failed

    async def _process_changes(
        self, configuration: Configuration, changes: List[FileChange], now: datetime
    ) -> int:
        notifier = self._notifier.bind(configuration.webhook_url)
        sent = 0

        for change in changes:
            try:
                await self._change_log.log_change(change)
            except ChangeLogError as e:
                logging.error(f"Failed to log {change}: {e}")

            try:
                notification = build_change_notification(change, configuration.notification_channel, now)
                await notifier.send_notification(notification)
                sent += 1
            except NotificationDeliveryError as e:
                logging.error(f"Failed to send notification for {change.file_name}: {e}")

        return sent

    async def _update_scan_state(self, configuration: Configuration, start_time: datetime, changes_found: int) -> None:
        runs_today = configuration.scan_state.runs_on_day_of(configuration.local_time(start_time))
        scan_state = ScanState(
            last_check_time=start_time,
            last_run_count=runs_today + 1,
            last_changes_found=changes_found,
        )
        await self._store.save(configuration.with_scan_state(scan_state))
        logging.debug(f"Scan state updated: {scan_state}")

    async def _send_error_alert(
        self, error: BaseException, webhook_url: str, channel: str, user_id: Optional[str]
    ) -> None:
        if not webhook_url:
            logging.error("No webhook configured for error alerts; alert only logged")
            return
        try:
            await self._notifier.bind(webhook_url).send_notification(
                build_error_alert(error, channel, user_id)
            )
        except Exception as alert_error:
            logging.error(f"Failed to send error alert: {alert_error}")

    async def get_status(self) -> MonitorStatus:
        configuration = await self._store.load()
        return MonitorStatus(
            monitoring_active=configuration.is_monitoring_active(self._clock()),
            configuration_valid=configuration.is_valid_for_monitoring(),
            monitoring_window=configuration.monitoring_window,
            folders_configured=len(configuration.folder_ids),
            webhook_configured=bool(configuration.webhook_url),
            last_check=configuration.scan_state.last_check_time,
        )

    async def test_connection(self) -> bool:
        configuration = await self._store.load()
        return await self._notifier.bind(configuration.webhook_url).test_connection(
            configuration.notification_channel
        )
