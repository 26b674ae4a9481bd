"""
Append-only change log backed by a CSV file.

Each detected FileChange becomes one row in the fixed 10-column layout.
Rows are never updated or deleted; the file and its header row are created
lazily on the first append.
"""

import csv
import io
import logging
from pathlib import Path
from typing import List, Sequence

import aiofiles
import aiofiles.os

from drive_monitor.core.exceptions import ChangeLogError
from drive_monitor.models import ChangeLogRow, FileChange


def _to_csv_line(fields: Sequence[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(fields)
    return buffer.getvalue()


class ChangeLog:
    def __init__(self, log_path: str):
        self._log_path = Path(log_path)
        logging.info(f"ChangeLog initialized: {self._log_path}")

    @property
    def log_path(self) -> Path:
        return self._log_path

    async def _ensure_log_file(self) -> None:
        if await aiofiles.os.path.exists(self._log_path):
            return

        await aiofiles.os.makedirs(self._log_path.parent, exist_ok=True)
        async with aiofiles.open(self._log_path, "w", encoding="utf-8", newline="") as f:
            await f.write(_to_csv_line(ChangeLogRow.HEADER))
        logging.info(f"Created change log with header: {self._log_path}")

    async def log_change(self, change: FileChange) -> ChangeLogRow:
        """Append one row for ``change``. Raises ChangeLogError on I/O failure."""
        row = change.to_log_row()
        try:
            await self._ensure_log_file()
            async with aiofiles.open(self._log_path, "a", encoding="utf-8", newline="") as f:
                await f.write(_to_csv_line(row.to_fields()))
        except OSError as e:
            raise ChangeLogError(f"Failed to append to {self._log_path}: {e}") from e

        logging.debug(f"Logged {change.change_type.value}: {change.file_name}")
        return row

    async def read_rows(self) -> List[ChangeLogRow]:
        """All data rows in insertion order. A log that does not exist yet is empty."""
        if not await aiofiles.os.path.exists(self._log_path):
            return []

        try:
            async with aiofiles.open(self._log_path, "r", encoding="utf-8", newline="") as f:
                content = await f.read()
        except OSError as e:
            raise ChangeLogError(f"Failed to read {self._log_path}: {e}") from e

        rows = []
        for index, fields in enumerate(csv.reader(io.StringIO(content))):
            if index == 0 and tuple(fields[: len(ChangeLogRow.HEADER)]) == ChangeLogRow.HEADER:
                continue
            if len(fields) < 2 or not any(field.strip() for field in fields):
                continue
            rows.append(ChangeLogRow.from_fields(fields))
        return rows
