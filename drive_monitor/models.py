import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils.formatting import (
    ensure_aware,
    format_file_size,
    format_time_ago,
    to_log_timestamp,
)

FOLDER_ID_PATTERN = re.compile(r"^\S{10,}$")
HALF_HOUR_RUN_SPAN = 0.5  # One planned run occupies half an hour


class ScheduleMode(str, Enum):
    """
    How the administrator expresses the monitoring schedule.

    WINDOW: explicit start/stop hour, run count is derived.
    COUNT: desired run count plus start hour, stop hour is derived.
    """

    WINDOW = "window"
    COUNT = "count"


class ChangeType(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class ScanState(BaseModel):
    """Watermark and run bookkeeping written back at the end of every cycle."""

    last_check_time: Optional[datetime] = Field(
        default=None, description="Watermark: files modified after this are new"
    )
    last_run_count: int = Field(
        default=0, ge=0, description="Runs completed on the watermark's calendar day"
    )
    last_changes_found: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("last_check_time")
    @classmethod
    def _make_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    def runs_on_day_of(self, now: datetime) -> int:
        """
        Run counter for the calendar day of ``now`` (in ``now``'s timezone).

        The counter belongs to the day of the last watermark, so a new day
        starts from zero without any explicit reset.
        """
        if self.last_check_time is None:
            return 0
        local_last = self.last_check_time.astimezone(now.tzinfo)
        if local_last.date() != now.date():
            return 0
        return self.last_run_count


class Configuration(BaseModel):
    """
    Immutable, validated monitoring configuration.

    Loaded fresh at the start of every cycle and replaced wholesale when it
    changes. An instance that exists is valid: every invariant is checked at
    construction and ``update`` re-validates.
    """

    # Monitoring
    folder_ids: Tuple[str, ...] = Field(default=())
    minutes_threshold: int = Field(default=5, ge=1, le=1440)
    max_files_to_process: int = Field(default=500, ge=1, le=1000)
    sleep_between_requests_ms: int = Field(default=1500, ge=100, le=60000)
    lookback_window_minutes: int = Field(default=30, ge=1, le=10080)
    timezone: str = Field(default="UTC", description="IANA zone for the active window")

    # Scheduling
    schedule_mode: ScheduleMode = ScheduleMode.WINDOW
    start_hour: int = Field(default=19, ge=0, le=23)
    stop_hour: int = Field(default=23, ge=0, le=23)
    max_runs_per_day: int = Field(default=8, ge=1, le=24)

    # Notification
    webhook_url: str
    notification_channel: str = "#drive-changes"
    alert_channel: str = "#alerts"
    summary_channel: str = "#drive-summary"
    daily_summary_enabled: bool = False
    weekly_summary_enabled: bool = True
    weekly_summary_day: int = Field(default=1, ge=0, le=6, description="0 = Sunday")

    # Access
    admin_emails: Tuple[str, ...] = Field(default=())

    scan_state: ScanState = Field(default_factory=ScanState)

    model_config = ConfigDict(frozen=True)

    @field_validator("folder_ids", "admin_emails", mode="before")
    @classmethod
    def _split_comma_separated(cls, value: Any) -> Any:
        # The property store used to hold folder ids as "id1, id2"
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @field_validator("folder_ids")
    @classmethod
    def _check_folder_ids(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for folder_id in value:
            if not FOLDER_ID_PATTERN.match(folder_id):
                raise ValueError(f"Invalid folder id format: {folder_id!r}")
        return tuple(dict.fromkeys(value))

    @field_validator("admin_emails")
    @classmethod
    def _check_admin_emails(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for email in value:
            if "@" not in email:
                raise ValueError(f"Invalid admin email format: {email!r}")
        return tuple(dict.fromkeys(value))

    @field_validator("webhook_url")
    @classmethod
    def _require_webhook(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("webhook_url is required")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value!r}") from e
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "Configuration":
        if self.schedule_mode == ScheduleMode.WINDOW and self.start_hour >= self.stop_hour:
            raise ValueError("start_hour must be before stop_hour")
        return self

    # ---- derived values -------------------------------------------------

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_time(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(timezone.utc)
        return ensure_aware(now).astimezone(self.zone)

    @property
    def effective_stop_hour(self) -> float:
        if self.schedule_mode == ScheduleMode.COUNT:
            return self.start_hour + self.max_runs_per_day * HALF_HOUR_RUN_SPAN
        return float(self.stop_hour)

    @property
    def active_hours(self) -> range:
        """Whole hours in which a scheduled cycle is allowed to scan."""
        stop = min(math.floor(self.effective_stop_hour), 24)
        return range(self.start_hour, stop)

    @property
    def monitoring_window(self) -> str:
        stop = self.effective_stop_hour
        stop_text = f"{int(stop)}:00" if stop == int(stop) else f"{int(stop)}:30"
        return f"{self.start_hour}:00 - {stop_text}"

    def is_monitoring_active(self, now: Optional[datetime] = None) -> bool:
        return self.local_time(now).hour in self.active_hours

    def is_admin(self, email: str) -> bool:
        return email in self.admin_emails

    def validation_errors(self) -> List[str]:
        """Readiness problems that do not make the instance invalid but block a scan."""
        errors = []
        if not self.folder_ids:
            errors.append("no folders configured")
        return errors

    def is_valid_for_monitoring(self) -> bool:
        return not self.validation_errors()

    # ---- derive updated copies -----------------------------------------

    def update(self, **changes: Any) -> "Configuration":
        """Return a new, re-validated Configuration with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return Configuration.model_validate(data)

    def with_scan_state(self, scan_state: ScanState) -> "Configuration":
        return self.update(scan_state=scan_state)

    def with_folder_added(self, folder_id: str) -> "Configuration":
        if folder_id in self.folder_ids:
            return self
        return self.update(folder_ids=self.folder_ids + (folder_id,))

    def with_folder_removed(self, folder_id: str) -> "Configuration":
        return self.update(folder_ids=tuple(f for f in self.folder_ids if f != folder_id))

    def with_admin_added(self, email: str) -> "Configuration":
        if email in self.admin_emails:
            return self
        return self.update(admin_emails=self.admin_emails + (email,))

    def with_admin_removed(self, email: str) -> "Configuration":
        return self.update(admin_emails=tuple(e for e in self.admin_emails if e != email))

    # ---- serialization --------------------------------------------------

    def to_data(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "Configuration":
        return cls.model_validate(data)

    @classmethod
    def create_default(cls, webhook_url: str) -> "Configuration":
        return cls(webhook_url=webhook_url)

    def __str__(self) -> str:
        return f"Configuration(folders: {len(self.folder_ids)}, monitoring: {self.monitoring_window})"


class FolderInfo(BaseModel):
    id: str
    name: str


class SourceFile(BaseModel):
    """File metadata as reported by a folder source."""

    id: str
    name: str
    size: int = Field(default=0, ge=0)
    mime_type: str = ""
    last_modified: datetime
    created_date: datetime
    owner: str = ""
    url: str = ""

    @field_validator("last_modified", "created_date")
    @classmethod
    def _make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class ChangeLogRow(BaseModel):
    """One row of the append log, in its fixed 10-field layout."""

    HEADER: ClassVar[Tuple[str, ...]] = (
        "Timestamp",
        "Change Type",
        "File/Folder Name",
        "File/Folder ID",
        "URL/Path",
        "Parent Folder Name",
        "Parent Folder ID",
        "User Responsible",
        "Mime Type",
        "Notes",
    )

    timestamp: str = ""
    change_type: str = ""
    name: str = ""
    file_id: str = ""
    url: str = ""
    parent_name: str = ""
    parent_id: str = ""
    owner: str = ""
    mime_type: str = ""
    notes: str = ""

    def to_fields(self) -> List[str]:
        return [
            self.timestamp,
            self.change_type,
            self.name,
            self.file_id,
            self.url,
            self.parent_name,
            self.parent_id,
            self.owner,
            self.mime_type,
            self.notes,
        ]

    @classmethod
    def from_fields(cls, fields: List[str]) -> "ChangeLogRow":
        padded = list(fields[: len(cls.HEADER)]) + [""] * (len(cls.HEADER) - len(fields))
        return cls(
            timestamp=padded[0],
            change_type=padded[1],
            name=padded[2],
            file_id=padded[3],
            url=padded[4],
            parent_name=padded[5],
            parent_id=padded[6],
            owner=padded[7],
            mime_type=padded[8],
            notes=padded[9],
        )

    @property
    def date_key(self) -> str:
        return self.timestamp[:10]


class FileChange(BaseModel):
    """
    One detected change of one file, built once per qualifying file per cycle.

    Never updated: the change log keeps it as a permanent audit row.
    """

    file_id: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    folder_id: str = Field(..., min_length=1)
    folder_name: str = Field(..., min_length=1)
    change_type: ChangeType
    detected_at: datetime = Field(..., description="When the cycle detected the change")
    modified_at: datetime = Field(..., description="The file's last modification time")
    owner: str = ""
    size: int = Field(default=0, ge=0)
    mime_type: str = ""
    url: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("detected_at", "modified_at")
    @classmethod
    def _make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def formatted_size(self) -> str:
        return format_file_size(self.size)

    def time_ago(self, now: Optional[datetime] = None) -> str:
        return format_time_ago(self.modified_at, now)

    def is_recent(self, minutes: int = 5, now: Optional[datetime] = None) -> bool:
        now = ensure_aware(now or datetime.now(timezone.utc))
        return (now - self.modified_at).total_seconds() <= minutes * 60

    def to_log_row(self) -> ChangeLogRow:
        return ChangeLogRow(
            timestamp=to_log_timestamp(self.detected_at),
            change_type=self.change_type.value,
            name=self.file_name,
            file_id=self.file_id,
            url=self.url,
            parent_name=self.folder_name,
            parent_id=self.folder_id,
            owner=self.owner,
            mime_type=self.mime_type,
            notes=f"Size: {self.formatted_size}; modified {to_log_timestamp(self.modified_at)}",
        )

    def __str__(self) -> str:
        return f"FileChange({self.change_type.value}: {self.file_name} in {self.folder_name})"


# ---- summaries ---------------------------------------------------------


class FolderActivity(BaseModel):
    folder_id: str = ""
    created: int = 0
    modified: int = 0


class DayActivity(BaseModel):
    total: int = 0
    created: int = 0
    modified: int = 0


class DailySummary(BaseModel):
    date: str
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_folder: Dict[str, FolderActivity] = Field(default_factory=dict)


class PeriodTotals(BaseModel):
    start_date: str
    end_date: str
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)


class TrendSummary(BaseModel):
    """Percentage deltas versus the preceding period of equal length."""

    total_change: int = 0
    by_type_change: Dict[str, int] = Field(default_factory=dict)
    previous_period: Optional[PeriodTotals] = None

    @property
    def created_change(self) -> int:
        return self.by_type_change.get(ChangeType.CREATED.value, 0)

    @property
    def modified_change(self) -> int:
        return self.by_type_change.get(ChangeType.MODIFIED.value, 0)


class WeeklySummary(BaseModel):
    start_date: str
    end_date: str
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_folder: Dict[str, FolderActivity] = Field(default_factory=dict)
    daily_breakdown: Dict[str, DayActivity] = Field(default_factory=dict)
    trends: TrendSummary = Field(default_factory=TrendSummary)


# ---- operation results -------------------------------------------------


class CycleResult(BaseModel):
    """Outcome of one monitoring cycle. ``success=False`` also covers skipped cycles."""

    success: bool
    message: str
    start_time: datetime
    end_time: datetime
    duration: float = Field(..., ge=0.0, description="Seconds")
    changes_found: int = 0
    notifications_sent: int = 0
    changes: List[FileChange] = Field(default_factory=list)
    folders_failed: List[str] = Field(default_factory=list)
    skipped: bool = Field(default=False, description="A gate stopped the cycle before scanning")
    user_id: Optional[str] = None


class MonitorStatus(BaseModel):
    monitoring_active: bool
    configuration_valid: bool
    monitoring_window: str
    folders_configured: int
    webhook_configured: bool
    last_check: Optional[datetime] = None


class ReportResult(BaseModel):
    success: bool
    message: str
    total: int = 0
    skipped: bool = False


class RunTime(BaseModel):
    """A single hour-of-day descriptor, materialized as one scheduler registration."""

    hour: int = Field(..., ge=0, le=23)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.hour}:00"


class SchedulePlan(BaseModel):
    mode: ScheduleMode
    start_hour: int
    stop_hour: float
    requested_runs: int
    run_times: List[RunTime]

    @property
    def hours(self) -> List[int]:
        return [run_time.hour for run_time in self.run_times]

    @property
    def runs_scheduled(self) -> int:
        return len(self.run_times)


class RegisteredRun(BaseModel):
    """A run time as known by the external scheduler."""

    run_id: str
    entry_point: str
    hour: int = Field(..., ge=0, le=23)
    weekday: Optional[int] = Field(default=None, ge=0, le=6, description="None = every day")


class ScheduleResult(BaseModel):
    success: bool
    message: str
    entry_point: str
    mode: Optional[ScheduleMode] = None
    calculated_runs: int = 0
    runs_scheduled: int = 0
    stop_hour: Optional[float] = None
    run_times: List[int] = Field(default_factory=list)
    removed: int = 0
    registered: int = 0


class ScheduleStatus(BaseModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    current_runs: List[RegisteredRun] = Field(default_factory=list)
