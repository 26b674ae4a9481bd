"""
File source backed by local (or mounted) directories.

Each monitored folder id is a directory directly below ``root``. An optional
``.folder_name`` file inside the directory holds the display name; otherwise
the folder id is used. Listing is flat and skips hidden entries.
"""

import asyncio
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple

import aiofiles
import aiofiles.os

from drive_monitor.core.exceptions import FolderAccessError
from drive_monitor.core.interfaces import FileSource
from drive_monitor.models import FolderInfo, SourceFile
from drive_monitor.utils.formatting import ensure_aware

FOLDER_NAME_FILE = ".folder_name"


def _file_owner(path: Path) -> str:
    try:
        return path.owner()
    except (KeyError, NotImplementedError, OSError):
        return ""


def _file_details(path: Path) -> Tuple[str, Path]:
    """Owner and absolute path; both touch the filesystem, so run in a thread."""
    return _file_owner(path), path.resolve()


class LocalFolderSource(FileSource):
    def __init__(self, root: str):
        self._root = Path(root)
        logging.info(f"LocalFolderSource initialized with root: {self._root}")

    async def _folder_path(self, folder_id: str) -> Path:
        path = self._root / folder_id

        def _sync_escapes_root() -> bool:
            return path.resolve().parent != self._root.resolve()

        if await asyncio.to_thread(_sync_escapes_root):
            raise FolderAccessError(folder_id, "folder id escapes the source root")
        return path

    async def _require_directory(self, folder_id: str) -> Path:
        path = await self._folder_path(folder_id)
        if not await aiofiles.os.path.isdir(path):
            raise FolderAccessError(folder_id, f"directory not found: {path}")
        return path

    async def get_folder(self, folder_id: str) -> FolderInfo:
        path = await self._require_directory(folder_id)

        name = folder_id
        name_file = path / FOLDER_NAME_FILE
        if await aiofiles.os.path.isfile(name_file):
            try:
                async with aiofiles.open(name_file, "r", encoding="utf-8") as f:
                    name = (await f.read()).strip() or folder_id
            except OSError as e:
                logging.warning(f"Could not read folder name for {folder_id}: {e}")

        return FolderInfo(id=folder_id, name=name)

    async def list_files(self, folder_id: str, modified_since: datetime, limit: int) -> List[SourceFile]:
        path = await self._require_directory(folder_id)
        since = ensure_aware(modified_since)

        try:
            entries = await aiofiles.os.listdir(path)
        except OSError as e:
            raise FolderAccessError(folder_id, str(e)) from e

        files = []
        for entry in entries:
            if entry.startswith("."):
                continue
            file_path = path / entry
            try:
                if not await aiofiles.os.path.isfile(file_path):
                    continue
                stat = await aiofiles.os.stat(file_path)
            except OSError as e:
                # File vanished between listdir and stat
                logging.debug(f"Skipping {file_path}: {e}")
                continue

            last_modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            if last_modified <= since:
                continue

            created = getattr(stat, "st_birthtime", stat.st_ctime)
            owner, resolved = await asyncio.to_thread(_file_details, file_path)
            files.append(
                SourceFile(
                    id=f"{folder_id}/{entry}",
                    name=entry,
                    size=stat.st_size,
                    mime_type=mimetypes.guess_type(entry)[0] or "application/octet-stream",
                    last_modified=last_modified,
                    created_date=datetime.fromtimestamp(created, tz=timezone.utc),
                    owner=owner,
                    url=resolved.as_uri(),
                )
            )

        files.sort(key=lambda f: f.last_modified, reverse=True)
        return files[:limit]
