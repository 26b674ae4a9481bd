"""
Tests for the CSV change log and the daily/weekly aggregator.
"""

import random
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from drive_monitor.core.exceptions import ChangeLogError
from drive_monitor.models import ChangeLogRow, ChangeType, FileChange
from drive_monitor.services.change_log.aggregator import (
    ChangeAggregator,
    percentage_change,
    summarize_day,
)
from drive_monitor.services.change_log.change_log import ChangeLog


def make_change(day: int, change_type: ChangeType, folder: str = "Reports", hour: int = 10) -> FileChange:
    return FileChange(
        file_id=f"file-{day}-{hour}-{change_type.value}",
        file_name=f"doc-{day}.txt",
        folder_id=f"{folder.lower()}-id-000000",
        folder_name=folder,
        change_type=change_type,
        detected_at=datetime(2025, 10, day, hour, 0, tzinfo=timezone.utc),
        modified_at=datetime(2025, 10, day, hour, 0, tzinfo=timezone.utc),
    )


def row(date_key: str, change_type: str, folder: str = "Reports") -> ChangeLogRow:
    return ChangeLogRow(
        timestamp=f"{date_key}T10:00:00+00:00",
        change_type=change_type,
        name="doc.txt",
        file_id="file-1",
        parent_name=folder,
        parent_id=f"{folder.lower()}-id",
    )


class TestChangeLog:
    @pytest.mark.asyncio
    async def test_header_created_lazily(self, tmp_path):
        log_path = tmp_path / "logs" / "changes.csv"
        change_log = ChangeLog(str(log_path))

        assert not log_path.exists()
        assert await change_log.read_rows() == []

        await change_log.log_change(make_change(26, ChangeType.CREATED))

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert lines[0].split(",") == list(ChangeLogRow.HEADER)
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_rows_read_back_in_order(self, tmp_path):
        change_log = ChangeLog(str(tmp_path / "changes.csv"))
        await change_log.log_change(make_change(26, ChangeType.CREATED))
        await change_log.log_change(make_change(27, ChangeType.MODIFIED))

        rows = await change_log.read_rows()

        assert [r.change_type for r in rows] == ["created", "modified"]
        assert rows[0].date_key == "2025-10-26"
        assert rows[1].parent_name == "Reports"

    @pytest.mark.asyncio
    async def test_fields_with_commas_survive(self, tmp_path):
        change_log = ChangeLog(str(tmp_path / "changes.csv"))
        change = make_change(26, ChangeType.CREATED).model_copy(update={"file_name": 'Budget, "final".xlsx'})
        await change_log.log_change(change)

        rows = await change_log.read_rows()
        assert rows[0].name == 'Budget, "final".xlsx'

    @pytest.mark.asyncio
    async def test_blank_lines_skipped(self, tmp_path):
        log_path = tmp_path / "changes.csv"
        change_log = ChangeLog(str(log_path))
        await change_log.log_change(make_change(26, ChangeType.CREATED))
        with open(log_path, "a", encoding="utf-8") as f:
            f.write("\n\n")

        assert len(await change_log.read_rows()) == 1

    @pytest.mark.asyncio
    async def test_write_failure_raises_change_log_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        change_log = ChangeLog(str(blocker / "changes.csv"))

        with pytest.raises(ChangeLogError):
            await change_log.log_change(make_change(26, ChangeType.CREATED))


class TestDailyAggregation:
    def test_matches_on_date_prefix(self):
        rows = [row("2025-10-26", "created"), row("2025-10-27", "modified")]

        summary = summarize_day(rows, "2025-10-26")

        assert summary.total == 1
        assert summary.by_type == {"created": 1}
        assert summary.by_folder["Reports"].created == 1
        assert summary.by_folder["Reports"].folder_id == "reports-id"

    def test_order_independent(self):
        rows = [
            row("2025-10-26", "created", "Reports"),
            row("2025-10-26", "modified", "Reports"),
            row("2025-10-26", "modified", "Designs"),
            row("2025-10-25", "created", "Designs"),
        ]
        shuffled = list(rows)
        random.Random(7).shuffle(shuffled)

        first = summarize_day(rows, "2025-10-26")
        second = summarize_day(list(reversed(rows)), "2025-10-26")
        third = summarize_day(shuffled, "2025-10-26")

        assert first.total == second.total == third.total == 3
        assert first.by_type == second.by_type == third.by_type
        assert first.by_folder == second.by_folder == third.by_folder

    def test_rows_without_timestamp_or_type_are_skipped(self):
        rows = [
            row("2025-10-26", "created"),
            ChangeLogRow(timestamp="", change_type="created"),
            ChangeLogRow(timestamp="2025-10-26T11:00:00+00:00", change_type=""),
        ]
        assert summarize_day(rows, "2025-10-26").total == 1

    @pytest.mark.asyncio
    async def test_aggregate_daily_reads_the_log(self, tmp_path):
        change_log = ChangeLog(str(tmp_path / "changes.csv"))
        await change_log.log_change(make_change(26, ChangeType.CREATED))
        await change_log.log_change(make_change(27, ChangeType.MODIFIED))

        summary = await ChangeAggregator(change_log).aggregate_daily(date(2025, 10, 26))

        assert summary.date == "2025-10-26"
        assert summary.total == 1
        assert summary.by_type == {"created": 1}

    @pytest.mark.asyncio
    async def test_aggregate_daily_errors_reach_the_caller(self, tmp_path):
        with pytest.raises(ValueError):
            await ChangeAggregator(ChangeLog(str(tmp_path / "changes.csv"))).aggregate_daily("26-10-2025")

        broken_log = AsyncMock(spec=ChangeLog)
        broken_log.read_rows.side_effect = ChangeLogError("unreadable")
        with pytest.raises(ChangeLogError):
            await ChangeAggregator(broken_log).aggregate_daily("2025-10-26")


class TestWeeklyAggregation:
    @pytest.fixture
    def change_log(self):
        change_log = AsyncMock(spec=ChangeLog)
        change_log.read_rows.return_value = [
            # Previous week (13-19 Oct): 2 created, 2 modified
            row("2025-10-13", "created"),
            row("2025-10-15", "created"),
            row("2025-10-16", "modified"),
            row("2025-10-19", "modified"),
            # Current week (20-26 Oct): 3 created, 1 modified
            row("2025-10-20", "created"),
            row("2025-10-20", "created", "Designs"),
            row("2025-10-22", "modified"),
            row("2025-10-26", "created"),
        ]
        return change_log

    @pytest.mark.asyncio
    async def test_totals_and_dense_breakdown(self, change_log):
        weekly = await ChangeAggregator(change_log).aggregate_weekly("2025-10-20", "2025-10-26")

        assert weekly.total == 4
        assert weekly.by_type == {"created": 3, "modified": 1}
        assert list(weekly.daily_breakdown) == [f"2025-10-{day}" for day in range(20, 27)]
        assert weekly.daily_breakdown["2025-10-20"].created == 2
        assert weekly.daily_breakdown["2025-10-21"].total == 0
        assert weekly.by_folder["Reports"].created == 2
        assert weekly.by_folder["Designs"].created == 1

    @pytest.mark.asyncio
    async def test_trends_against_previous_period(self, change_log):
        weekly = await ChangeAggregator(change_log).aggregate_weekly(date(2025, 10, 20), date(2025, 10, 26))

        assert weekly.trends.total_change == 0
        assert weekly.trends.created_change == 50
        assert weekly.trends.modified_change == -50
        assert weekly.trends.previous_period.start_date == "2025-10-13"
        assert weekly.trends.previous_period.end_date == "2025-10-19"
        assert weekly.trends.previous_period.total == 4

    @pytest.mark.asyncio
    async def test_zero_baseline_gives_zero_trend(self):
        change_log = AsyncMock(spec=ChangeLog)
        change_log.read_rows.return_value = [row("2025-10-21", "created")]

        weekly = await ChangeAggregator(change_log).aggregate_weekly("2025-10-20", "2025-10-26")

        assert weekly.total == 1
        assert weekly.trends.total_change == 0
        assert weekly.trends.created_change == 0

    @pytest.mark.asyncio
    async def test_start_after_end_rejected(self, change_log):
        with pytest.raises(ValueError):
            await ChangeAggregator(change_log).aggregate_weekly("2025-10-26", "2025-10-20")

    @pytest.mark.asyncio
    async def test_trend_failure_yields_zero_trends(self, change_log, monkeypatch):
        aggregator = ChangeAggregator(change_log)

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(aggregator, "_calculate_trends", broken)
        weekly = await aggregator.aggregate_weekly("2025-10-20", "2025-10-26")

        assert weekly.total == 4
        assert weekly.trends.total_change == 0
        assert weekly.trends.previous_period is None


@pytest.mark.parametrize(
    "current,previous,expected",
    [(5, 0, 0), (3, 2, 50), (1, 3, -67), (2, 3, -33), (1, 2, -50), (3, 3, 0)],
)
def test_percentage_change(current, previous, expected):
    assert percentage_change(current, previous) == expected
