"""
Rollups over the change log: daily summaries and weekly summaries with trends.

Rows are matched on the calendar-date prefix of their UTC timestamp, so an
aggregation is a single pass over the loaded rows and independent of row order.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Union

from drive_monitor.models import (
    ChangeLogRow,
    ChangeType,
    DailySummary,
    DayActivity,
    FolderActivity,
    PeriodTotals,
    TrendSummary,
    WeeklySummary,
)
from drive_monitor.services.change_log.change_log import ChangeLog
from drive_monitor.utils.formatting import round_half_up

DateLike = Union[str, date]


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def percentage_change(current: int, previous: int) -> int:
    """Rounded percentage delta; a zero baseline yields 0."""
    if previous <= 0:
        return 0
    return round_half_up((current - previous) / previous * 100)


def summarize_day(rows: Iterable[ChangeLogRow], date_key: str) -> DailySummary:
    summary = DailySummary(date=date_key)

    for row in rows:
        if not row.timestamp or not row.change_type:
            continue
        if not row.timestamp.startswith(date_key):
            continue

        summary.total += 1
        summary.by_type[row.change_type] = summary.by_type.get(row.change_type, 0) + 1

        folder_name = row.parent_name or "Unknown"
        activity = summary.by_folder.get(folder_name)
        if activity is None:
            activity = FolderActivity(folder_id=row.parent_id)
            summary.by_folder[folder_name] = activity
        if row.change_type == ChangeType.CREATED.value:
            activity.created += 1
        elif row.change_type == ChangeType.MODIFIED.value:
            activity.modified += 1

    return summary


def _sum_by_type(target: Dict[str, int], source: Dict[str, int]) -> None:
    for change_type, count in source.items():
        target[change_type] = target.get(change_type, 0) + count


class ChangeAggregator:
    def __init__(self, change_log: ChangeLog):
        self._change_log = change_log

    async def aggregate_daily(self, date_key: DateLike) -> DailySummary:
        """Raises ValueError for a malformed date key and ChangeLogError when the log is unreadable."""
        key = _as_date(date_key).isoformat()
        rows = await self._change_log.read_rows()
        summary = summarize_day(rows, key)
        logging.info(f"Daily aggregation for {key}: {summary.total} changes")
        return summary

    async def aggregate_weekly(self, start_date: DateLike, end_date: DateLike) -> WeeklySummary:
        """
        Summarize an inclusive date range with trends against the preceding period.

        Raises ValueError for malformed dates or a start after the end, and
        ChangeLogError when the log is unreadable. Callers turn these into results.
        """
        start = _as_date(start_date)
        end = _as_date(end_date)
        if start > end:
            raise ValueError(f"start_date {start} is after end_date {end}")

        rows = await self._change_log.read_rows()
        weekly = WeeklySummary(start_date=start.isoformat(), end_date=end.isoformat())

        for day in _days(start, end):
            daily = summarize_day(rows, day.isoformat())
            weekly.daily_breakdown[day.isoformat()] = DayActivity(
                total=daily.total,
                created=daily.by_type.get(ChangeType.CREATED.value, 0),
                modified=daily.by_type.get(ChangeType.MODIFIED.value, 0),
            )
            weekly.total += daily.total
            _sum_by_type(weekly.by_type, daily.by_type)

            for folder_name, activity in daily.by_folder.items():
                folder = weekly.by_folder.setdefault(
                    folder_name, FolderActivity(folder_id=activity.folder_id)
                )
                folder.created += activity.created
                folder.modified += activity.modified

        try:
            weekly.trends = self._calculate_trends(rows, weekly, start, end)
        except Exception as e:
            logging.error(f"Failed to calculate trends for {start} - {end}: {e}")
            weekly.trends = TrendSummary()

        logging.info(
            f"Weekly aggregation for {weekly.start_date} - {weekly.end_date}: {weekly.total} changes"
        )
        return weekly

    def _calculate_trends(
        self, rows: List[ChangeLogRow], current: WeeklySummary, start: date, end: date
    ) -> TrendSummary:
        period_days = (end - start).days + 1
        previous_start = start - timedelta(days=period_days)
        previous_end = start - timedelta(days=1)

        previous = PeriodTotals(
            start_date=previous_start.isoformat(), end_date=previous_end.isoformat()
        )
        for day in _days(previous_start, previous_end):
            daily = summarize_day(rows, day.isoformat())
            previous.total += daily.total
            _sum_by_type(previous.by_type, daily.by_type)

        by_type_change = {}
        for change_type in (ChangeType.CREATED.value, ChangeType.MODIFIED.value):
            by_type_change[change_type] = percentage_change(
                current.by_type.get(change_type, 0), previous.by_type.get(change_type, 0)
            )

        return TrendSummary(
            total_change=percentage_change(current.total, previous.total),
            by_type_change=by_type_change,
            previous_period=previous,
        )


def _days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
