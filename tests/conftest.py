"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from drive_monitor.core.exceptions import (
    ConfigurationLoadError,
    ConfigurationSaveError,
    FolderAccessError,
)
from drive_monitor.core.interfaces import ConfigurationStore, FileSource, NotificationTransport
from drive_monitor.dependencies import reset_singletons
from drive_monitor.models import Configuration, FolderInfo, SourceFile

WEBHOOK_URL = "https://hooks.example.com/services/T000/B000/XXXXXXXX"
FOLDER_A = "folder-aaaaaaaaaa"
FOLDER_B = "folder-bbbbbbbbbb"


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before each test."""
    reset_singletons()
    yield
    reset_singletons()


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeTransport(NotificationTransport):
    """Returns queued status codes (or raises queued exceptions), then ``default_status``."""

    def __init__(self, default_status: int = 200):
        self.default_status = default_status
        self.responses: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    async def post(self, url: str, payload: Dict[str, Any]) -> int:
        self.calls.append({"url": url, "payload": payload})
        response = self.responses.pop(0) if self.responses else self.default_status
        if isinstance(response, BaseException):
            raise response
        return response


class InMemoryConfigurationStore(ConfigurationStore):
    def __init__(self, configuration: Optional[Configuration] = None):
        self.configuration = configuration
        self.values: Dict[str, Any] = {}
        self.saved: List[Configuration] = []
        self.fail_save = False

    async def load(self) -> Configuration:
        if self.configuration is None:
            raise ConfigurationLoadError("memory", "no configuration stored")
        return self.configuration

    async def save(self, configuration: Configuration) -> None:
        if self.fail_save:
            raise ConfigurationSaveError("memory", "disk full")
        self.configuration = configuration
        self.saved.append(configuration)

    async def get_value(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    async def set_value(self, key: str, value: Any) -> None:
        self.values[key] = value

    async def delete_value(self, key: str) -> None:
        self.values.pop(key, None)


class FakeFileSource(FileSource):
    def __init__(self):
        self.folders: Dict[str, FolderInfo] = {}
        self.files: Dict[str, List[SourceFile]] = {}
        self.list_calls: List[Dict[str, Any]] = []

    def add_folder(self, folder_id: str, name: str, files: Optional[List[SourceFile]] = None) -> None:
        self.folders[folder_id] = FolderInfo(id=folder_id, name=name)
        self.files[folder_id] = files or []

    async def get_folder(self, folder_id: str) -> FolderInfo:
        if folder_id not in self.folders:
            raise FolderAccessError(folder_id, "not found")
        return self.folders[folder_id]

    async def list_files(self, folder_id: str, modified_since: datetime, limit: int) -> List[SourceFile]:
        self.list_calls.append({"folder_id": folder_id, "modified_since": modified_since, "limit": limit})
        if folder_id not in self.folders:
            raise FolderAccessError(folder_id, "not found")
        files = [f for f in self.files[folder_id] if f.last_modified > modified_since]
        return files[:limit]


def make_source_file(
    name: str,
    last_modified: datetime,
    created_date: Optional[datetime] = None,
    size: int = 2048,
) -> SourceFile:
    return SourceFile(
        id=f"id-{name}",
        name=name,
        size=size,
        mime_type="text/plain",
        last_modified=last_modified,
        created_date=created_date or datetime(2020, 1, 1, tzinfo=timezone.utc),
        owner="owner@example.com",
        url=f"https://files.example.com/{name}",
    )


@pytest.fixture
def now() -> datetime:
    # Monday 27 October 2025, 20:00 UTC - inside the default 19-23 window
    return datetime(2025, 10, 27, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def configuration() -> Configuration:
    return Configuration(webhook_url=WEBHOOK_URL, folder_ids=(FOLDER_A,))


@pytest.fixture
def store(configuration) -> InMemoryConfigurationStore:
    return InMemoryConfigurationStore(configuration)


@pytest.fixture
def source() -> FakeFileSource:
    return FakeFileSource()
