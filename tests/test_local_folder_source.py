"""
Tests for LocalFolderSource against a real temporary directory tree.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

from drive_monitor.core.exceptions import FolderAccessError
from drive_monitor.services.sources import local_folder_source
from drive_monitor.services.sources.local_folder_source import LocalFolderSource

pytestmark = pytest.mark.asyncio

FOLDER_ID = "folder-aaaaaaaaaa"


def touch(path, modified: datetime, content: str = "data") -> None:
    path.write_text(content)
    timestamp = modified.timestamp()
    os.utime(path, (timestamp, timestamp))


@pytest.fixture
def folder(tmp_path):
    folder = tmp_path / FOLDER_ID
    folder.mkdir()
    return folder


class TestLocalFolderSource:
    async def test_folder_name_from_marker_file(self, tmp_path, folder):
        (folder / ".folder_name").write_text("Quarterly Reports\n")

        info = await LocalFolderSource(str(tmp_path)).get_folder(FOLDER_ID)

        assert info.id == FOLDER_ID
        assert info.name == "Quarterly Reports"

    async def test_folder_name_defaults_to_id(self, tmp_path, folder):
        info = await LocalFolderSource(str(tmp_path)).get_folder(FOLDER_ID)
        assert info.name == FOLDER_ID

    async def test_missing_folder_raises(self, tmp_path):
        source = LocalFolderSource(str(tmp_path))
        with pytest.raises(FolderAccessError):
            await source.get_folder("folder-missing000")
        with pytest.raises(FolderAccessError):
            await source.list_files("folder-missing000", datetime.now(timezone.utc), 10)

    async def test_folder_id_cannot_escape_root(self, tmp_path):
        with pytest.raises(FolderAccessError):
            await LocalFolderSource(str(tmp_path / "root")).get_folder("../outside-folder")

    async def test_lists_files_modified_since(self, tmp_path, folder):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        touch(folder / "new.txt", now - timedelta(minutes=1), "hello")
        touch(folder / "old.txt", now - timedelta(hours=2))
        touch(folder / ".hidden.txt", now - timedelta(minutes=1))
        (folder / "subdir").mkdir()

        files = await LocalFolderSource(str(tmp_path)).list_files(FOLDER_ID, now - timedelta(minutes=30), 10)

        assert [f.name for f in files] == ["new.txt"]
        new_file = files[0]
        assert new_file.id == f"{FOLDER_ID}/new.txt"
        assert new_file.size == 5
        assert new_file.mime_type == "text/plain"
        assert new_file.last_modified == now - timedelta(minutes=1)
        assert new_file.url.startswith("file://")

    async def test_limit_keeps_most_recent(self, tmp_path, folder):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        for minutes in (1, 2, 3):
            touch(folder / f"file-{minutes}.txt", now - timedelta(minutes=minutes))

        files = await LocalFolderSource(str(tmp_path)).list_files(FOLDER_ID, now - timedelta(hours=1), 2)

        assert [f.name for f in files] == ["file-1.txt", "file-2.txt"]

    async def test_blocking_path_lookups_run_in_threads(self, tmp_path, folder, monkeypatch):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        touch(folder / "new.txt", now - timedelta(minutes=1))
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args)

        monkeypatch.setattr(local_folder_source.asyncio, "to_thread", recording_to_thread)

        files = await LocalFolderSource(str(tmp_path)).list_files(FOLDER_ID, now - timedelta(minutes=30), 10)

        assert [f.name for f in files] == ["new.txt"]
        assert "_sync_escapes_root" in offloaded
        assert "_file_details" in offloaded
