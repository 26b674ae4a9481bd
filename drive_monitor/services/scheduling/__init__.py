from .run_registry import JsonRunRegistry
from .schedule_calculator import plan_count_schedule, plan_monitor_schedule, plan_window_schedule
from .schedule_manager import (
    DAILY_SUMMARY_ENTRY_POINT,
    MONITOR_ENTRY_POINT,
    WEEKLY_SUMMARY_ENTRY_POINT,
    ScheduleManager,
)

__all__ = [
    "DAILY_SUMMARY_ENTRY_POINT",
    "JsonRunRegistry",
    "MONITOR_ENTRY_POINT",
    "ScheduleManager",
    "WEEKLY_SUMMARY_ENTRY_POINT",
    "plan_count_schedule",
    "plan_monitor_schedule",
    "plan_window_schedule",
]
