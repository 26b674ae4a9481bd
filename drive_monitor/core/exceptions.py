# drive_monitor/core/exceptions.py
from typing import Optional


class DriveMonitorError(Exception):
    """Base class for all drive monitor errors."""


class ConfigurationLoadError(DriveMonitorError):
    """Raised when the persisted configuration cannot be read or parsed."""
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Configuration load failed from {source}: {reason}")


class ConfigurationSaveError(DriveMonitorError):
    """Raised when configuration (and with it the watermark) cannot be persisted."""
    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Configuration save failed to {target}: {reason}")


class FolderAccessError(DriveMonitorError):
    """Raised by a file source when a folder is missing or unreadable."""
    def __init__(self, folder_id: str, reason: str):
        self.folder_id = folder_id
        self.reason = reason
        super().__init__(f"Failed to access folder {folder_id}: {reason}")


class ChangeLogError(DriveMonitorError):
    """Raised when the append log cannot be written or read."""


class NotificationDeliveryError(DriveMonitorError):
    """Raised when a webhook payload could not be delivered after all attempts."""
    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Notification delivery failed after {attempts} attempt(s){detail}")


class WebhookResponseError(DriveMonitorError):
    """Raised for a non-success HTTP status from the webhook endpoint."""
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body[:200]}" if body else f"HTTP {status_code}")


class ScheduleValidationError(DriveMonitorError, ValueError):
    """Raised when schedule bounds cannot be turned into run times."""


class RunRegistryError(DriveMonitorError):
    """Raised when the run registry cannot be read or written."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Run registry {path} unusable: {reason}")
