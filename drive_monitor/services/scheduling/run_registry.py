"""
JSON run registry.

Implements the RunScheduler interface as a file that a host timer (cron,
systemd) reads to invoke ``python -m drive_monitor.main <entry_point>``.
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from drive_monitor.core.exceptions import RunRegistryError
from drive_monitor.core.interfaces import RunScheduler
from drive_monitor.models import RegisteredRun


class JsonRunRegistry(RunScheduler):
    def __init__(self, path: str):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def _read(self) -> List[RegisteredRun]:
        if not await aiofiles.os.path.exists(self._path):
            return []
        try:
            async with aiofiles.open(self._path, "r", encoding="utf-8") as f:
                content = await f.read()
            if not content.strip():
                return []
            return [RegisteredRun.model_validate(item) for item in json.loads(content)]
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            raise RunRegistryError(str(self._path), str(e)) from e

    async def _write(self, runs: List[RegisteredRun]) -> None:
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps([run.model_dump() for run in runs], indent=2))
            await aiofiles.os.replace(temp_path, self._path)
        except OSError as e:
            raise RunRegistryError(str(self._path), str(e)) from e

    async def _register(self, entry_point: str, hour: int, weekday: Optional[int]) -> RegisteredRun:
        run = RegisteredRun(
            run_id=uuid.uuid4().hex, entry_point=entry_point, hour=hour, weekday=weekday
        )
        async with self._lock:
            runs = await self._read()
            runs.append(run)
            await self._write(runs)
        logging.info(f"Registered run {entry_point} at {hour}:00" + (f" on weekday {weekday}" if weekday is not None else ""))
        return run

    async def register_daily_run(self, entry_point: str, hour: int) -> RegisteredRun:
        return await self._register(entry_point, hour, None)

    async def register_weekly_run(self, entry_point: str, weekday: int, hour: int) -> RegisteredRun:
        return await self._register(entry_point, hour, weekday)

    async def list_runs(self, entry_point: Optional[str] = None) -> List[RegisteredRun]:
        runs = await self._read()
        if entry_point is None:
            return runs
        return [run for run in runs if run.entry_point == entry_point]

    async def remove_run(self, run_id: str) -> None:
        async with self._lock:
            runs = await self._read()
            remaining = [run for run in runs if run.run_id != run_id]
            if len(remaining) != len(runs):
                await self._write(remaining)
                logging.info(f"Removed run {run_id}")
