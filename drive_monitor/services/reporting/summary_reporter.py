"""
Summary Reporter - publishes daily and weekly change summaries.

Aggregates the change log, formats the summary as Block Kit, sends it to the
summary channel and caches the last sent summary in the configuration store.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union

from drive_monitor.core.interfaces import ConfigurationStore
from drive_monitor.models import ReportResult
from drive_monitor.services.change_log.aggregator import ChangeAggregator
from drive_monitor.services.notifications.message_formatter import SummaryFormatter
from drive_monitor.services.notifications.webhook_client import WebhookNotifier

LAST_DAILY_SUMMARY_KEY = "last_daily_summary"
LAST_WEEKLY_SUMMARY_KEY = "last_weekly_summary"

_CACHE_KEYS = {"daily": LAST_DAILY_SUMMARY_KEY, "weekly": LAST_WEEKLY_SUMMARY_KEY}


def previous_week_range(reference: date) -> tuple:
    """Monday and Sunday of the calendar week before ``reference``."""
    this_monday = reference - timedelta(days=reference.weekday())
    return this_monday - timedelta(days=7), this_monday - timedelta(days=1)


class SummaryReporter:
    def __init__(
        self,
        store: ConfigurationStore,
        aggregator: ChangeAggregator,
        notifier: WebhookNotifier,
        formatter: SummaryFormatter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._store = store
        self._aggregator = aggregator
        self._notifier = notifier
        self._formatter = formatter
        self._clock = clock

    async def send_daily_summary(self, date_key: Optional[Union[str, date]] = None) -> ReportResult:
        try:
            configuration = await self._store.load()
            if not configuration.daily_summary_enabled:
                logging.info("Daily summary disabled; skipping")
                return ReportResult(success=True, message="Daily summary is disabled", skipped=True)

            if date_key is None:
                date_key = self._clock().date() - timedelta(days=1)
            summary = await self._aggregator.aggregate_daily(date_key)

            notification = self._formatter.daily_notification(summary, configuration)
            await self._notifier.bind(configuration.webhook_url).send_notification(notification)

            await self._store.set_value(
                LAST_DAILY_SUMMARY_KEY,
                {
                    "timestamp": self._clock().isoformat(),
                    "date": summary.date,
                    "summary": summary.model_dump(mode="json"),
                },
            )
        except Exception as e:
            logging.error(f"Failed to send daily summary: {e}", exc_info=True)
            return ReportResult(success=False, message=f"Daily summary failed: {e}")

        logging.info(f"Daily summary sent for {summary.date}: {summary.total} changes")
        return ReportResult(
            success=True,
            message=f"Daily summary sent for {summary.date}",
            total=summary.total,
        )

    async def send_weekly_summary(self, reference_date: Optional[date] = None) -> ReportResult:
        try:
            configuration = await self._store.load()
            if not configuration.weekly_summary_enabled:
                logging.info("Weekly summary disabled; skipping")
                return ReportResult(success=True, message="Weekly summary is disabled", skipped=True)

            start, end = previous_week_range(reference_date or self._clock().date())
            summary = await self._aggregator.aggregate_weekly(start, end)

            notification = self._formatter.weekly_notification(summary, configuration)
            await self._notifier.bind(configuration.webhook_url).send_notification(notification)

            await self._store.set_value(
                LAST_WEEKLY_SUMMARY_KEY,
                {
                    "timestamp": self._clock().isoformat(),
                    "week_start": summary.start_date,
                    "week_end": summary.end_date,
                    "summary": summary.model_dump(mode="json"),
                },
            )
        except Exception as e:
            logging.error(f"Failed to send weekly summary: {e}", exc_info=True)
            return ReportResult(success=False, message=f"Weekly summary failed: {e}")

        logging.info(
            f"Weekly summary sent for {summary.start_date} - {summary.end_date}: {summary.total} changes"
        )
        return ReportResult(
            success=True,
            message=f"Weekly summary sent for {summary.start_date} - {summary.end_date}",
            total=summary.total,
        )

    async def get_last_summary(self, kind: str) -> Optional[Dict[str, Any]]:
        if kind not in _CACHE_KEYS:
            raise ValueError(f"Unknown summary kind: {kind!r} (expected 'daily' or 'weekly')")
        return await self._store.get_value(_CACHE_KEYS[kind])
