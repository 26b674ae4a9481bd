import logging
from datetime import datetime, timedelta
from typing import List

from drive_monitor.core.interfaces import FileSource
from drive_monitor.models import ChangeType, Configuration, FileChange, FolderInfo, SourceFile


def classify_file(file: SourceFile, since: datetime, now: datetime, threshold_minutes: int) -> List[ChangeType]:
    """
    Change types a listed file qualifies for in this cycle.

    Modified: last modification within the relevance threshold.
    Created: both creation and modification are newer than the watermark.
    A file can be both.
    """
    change_types = []
    if now - file.last_modified <= timedelta(minutes=threshold_minutes):
        change_types.append(ChangeType.MODIFIED)
    if file.created_date > since and file.last_modified > since:
        change_types.append(ChangeType.CREATED)
    return change_types


class FolderScanner:
    """Lists one folder through the FileSource and turns qualifying files into FileChanges."""

    def __init__(self, source: FileSource):
        self._source = source

    async def scan_folder(
        self, folder_id: str, since: datetime, now: datetime, configuration: Configuration
    ) -> List[FileChange]:
        """Raises FolderAccessError when the folder cannot be read."""
        folder = await self._source.get_folder(folder_id)
        files = await self._source.list_files(folder_id, since, configuration.max_files_to_process)

        changes = []
        for file in files:
            for change_type in classify_file(file, since, now, configuration.minutes_threshold):
                changes.append(self._build_change(file, folder, change_type, now))

        logging.info(f"Scanned folder '{folder.name}': {len(files)} files listed, {len(changes)} changes")
        return changes

    def _build_change(
        self, file: SourceFile, folder: FolderInfo, change_type: ChangeType, now: datetime
    ) -> FileChange:
        return FileChange(
            file_id=file.id,
            file_name=file.name,
            folder_id=folder.id,
            folder_name=folder.name,
            change_type=change_type,
            detected_at=now,
            modified_at=file.last_modified,
            owner=file.owner,
            size=file.size,
            mime_type=file.mime_type,
            url=file.url,
        )
