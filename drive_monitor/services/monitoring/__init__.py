from .change_detection_engine import ChangeDetectionEngine
from .folder_scanner import FolderScanner, classify_file

__all__ = ["ChangeDetectionEngine", "FolderScanner", "classify_file"]
