"""
JSON file configuration store.

One document holds the Configuration under ``"configuration"`` and free-form
values (summary caches and similar) under ``"values"``. Writes go to a
temporary file that replaces the document atomically.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from drive_monitor.core.exceptions import ConfigurationLoadError, ConfigurationSaveError
from drive_monitor.core.interfaces import ConfigurationStore
from drive_monitor.models import Configuration

CONFIGURATION_KEY = "configuration"
VALUES_KEY = "values"


class JsonConfigurationStore(ConfigurationStore):
    def __init__(self, path: str):
        self._path = Path(path)
        self._lock = asyncio.Lock()
        logging.info(f"JsonConfigurationStore initialized: {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    async def _read_document(self) -> Dict[str, Any]:
        if not await aiofiles.os.path.exists(self._path):
            return {}
        async with aiofiles.open(self._path, "r", encoding="utf-8") as f:
            content = await f.read()
        if not content.strip():
            return {}
        document = json.loads(content)
        if not isinstance(document, dict):
            raise ValueError("document root must be an object")
        return document

    async def _write_document(self, document: Dict[str, Any]) -> None:
        await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(document, indent=2, ensure_ascii=False))
        await aiofiles.os.replace(temp_path, self._path)

    async def load(self) -> Configuration:
        try:
            document = await self._read_document()
        except (OSError, ValueError) as e:
            raise ConfigurationLoadError(str(self._path), str(e)) from e

        data = document.get(CONFIGURATION_KEY)
        if not data:
            raise ConfigurationLoadError(str(self._path), "no configuration stored")

        try:
            return Configuration.from_data(data)
        except ValidationError as e:
            raise ConfigurationLoadError(str(self._path), f"invalid configuration: {e}") from e

    async def save(self, configuration: Configuration) -> None:
        async with self._lock:
            try:
                document = await self._read_document()
                document[CONFIGURATION_KEY] = configuration.to_data()
                await self._write_document(document)
            except (OSError, ValueError) as e:
                raise ConfigurationSaveError(str(self._path), str(e)) from e
        logging.debug(f"Saved {configuration}")

    async def get_value(self, key: str) -> Optional[Any]:
        try:
            document = await self._read_document()
        except (OSError, ValueError) as e:
            raise ConfigurationLoadError(str(self._path), str(e)) from e
        return document.get(VALUES_KEY, {}).get(key)

    async def set_value(self, key: str, value: Any) -> None:
        async with self._lock:
            try:
                document = await self._read_document()
                document.setdefault(VALUES_KEY, {})[key] = value
                await self._write_document(document)
            except (OSError, TypeError, ValueError) as e:
                raise ConfigurationSaveError(str(self._path), str(e)) from e

    async def delete_value(self, key: str) -> None:
        async with self._lock:
            try:
                document = await self._read_document()
                if document.get(VALUES_KEY, {}).pop(key, None) is None:
                    return
                await self._write_document(document)
            except (OSError, ValueError) as e:
                raise ConfigurationSaveError(str(self._path), str(e)) from e
