"""
Interfaces for the external collaborators of the drive monitor.

The core only talks to these abstractions; concrete implementations live
under ``drive_monitor.services`` and are wired in ``drive_monitor.dependencies``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from drive_monitor.models import Configuration, FolderInfo, RegisteredRun, SourceFile


class FileSource(ABC):
    """Lists file metadata of a monitored folder."""

    @abstractmethod
    async def get_folder(self, folder_id: str) -> FolderInfo:
        """Raise FolderAccessError if the folder is missing or unreadable."""

    @abstractmethod
    async def list_files(
        self, folder_id: str, modified_since: datetime, limit: int
    ) -> List[SourceFile]:
        """Files in ``folder_id`` modified after ``modified_since``, at most ``limit``."""


class ConfigurationStore(ABC):
    """Persistent key/value store holding the Configuration and report caches."""

    @abstractmethod
    async def load(self) -> Configuration:
        """Raise ConfigurationLoadError if the stored configuration is missing or invalid."""

    @abstractmethod
    async def save(self, configuration: Configuration) -> None:
        """Raise ConfigurationSaveError if the configuration cannot be persisted."""

    @abstractmethod
    async def get_value(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set_value(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def delete_value(self, key: str) -> None:
        pass


class NotificationTransport(ABC):
    """Posts one JSON payload to a webhook URL."""

    @abstractmethod
    async def post(self, url: str, payload: Dict[str, Any]) -> int:
        """Return the HTTP status code. Connection problems are raised."""


class RunScheduler(ABC):
    """External time-based scheduler that invokes entry points by name."""

    @abstractmethod
    async def register_daily_run(self, entry_point: str, hour: int) -> RegisteredRun:
        pass

    @abstractmethod
    async def register_weekly_run(
        self, entry_point: str, weekday: int, hour: int
    ) -> RegisteredRun:
        pass

    @abstractmethod
    async def list_runs(self, entry_point: Optional[str] = None) -> List[RegisteredRun]:
        pass

    @abstractmethod
    async def remove_run(self, run_id: str) -> None:
        pass
