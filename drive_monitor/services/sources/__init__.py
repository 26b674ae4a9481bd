from .local_folder_source import LocalFolderSource

__all__ = ["LocalFolderSource"]
