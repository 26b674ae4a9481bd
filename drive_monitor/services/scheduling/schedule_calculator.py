"""
Pure schedule planning.

Turns either schedule representation into whole-hour RunTimes. Nothing here
touches the scheduler, so invalid input is rejected before any registration
is changed.
"""

import math

from drive_monitor.core.exceptions import ScheduleValidationError
from drive_monitor.models import (
    HALF_HOUR_RUN_SPAN,
    Configuration,
    RunTime,
    ScheduleMode,
    SchedulePlan,
)

MIN_RUNS = 2
MAX_RUNS = 8


def _run_times(start_hour: int, stop_hour: float) -> list:
    return [RunTime(hour=hour) for hour in range(start_hour, math.floor(stop_hour))]


def plan_window_schedule(start_hour: int, stop_hour: int) -> SchedulePlan:
    """Window mode: one run per hour in ``[start_hour, stop_hour)``."""
    if not 0 <= start_hour <= 23 or not 0 <= stop_hour <= 24:
        raise ScheduleValidationError("Hours must be between 0 and 24")
    if stop_hour <= start_hour:
        raise ScheduleValidationError("Invalid monitoring window: start_hour must be before stop_hour")

    run_count = stop_hour - start_hour
    if run_count < MIN_RUNS:
        raise ScheduleValidationError(f"Minimum monitoring window is {MIN_RUNS} hours ({MIN_RUNS} runs)")
    if run_count > MAX_RUNS:
        raise ScheduleValidationError(
            f"Calculated {run_count} runs exceeds maximum of {MAX_RUNS}. Reduce time window."
        )

    return SchedulePlan(
        mode=ScheduleMode.WINDOW,
        start_hour=start_hour,
        stop_hour=float(stop_hour),
        requested_runs=run_count,
        run_times=_run_times(start_hour, stop_hour),
    )


def plan_count_schedule(run_count: int, start_hour: int) -> SchedulePlan:
    """
    Count mode: ``run_count`` half-hour slots starting at ``start_hour``.

    The scheduler only supports whole hours, so the materialized run times are
    the whole hours in ``[start_hour, floor(stop))`` and can be fewer than
    ``run_count``.
    """
    if not MIN_RUNS <= run_count <= MAX_RUNS:
        raise ScheduleValidationError(f"max_runs_per_day must be between {MIN_RUNS} and {MAX_RUNS}")
    if not 0 <= start_hour <= 23:
        raise ScheduleValidationError("start_hour must be between 0 and 23")

    stop_hour = start_hour + run_count * HALF_HOUR_RUN_SPAN
    if stop_hour > 24:
        raise ScheduleValidationError(
            f"Calculated end time ({stop_hour:g}:00) exceeds 24:00. Reduce runs or adjust start time."
        )

    return SchedulePlan(
        mode=ScheduleMode.COUNT,
        start_hour=start_hour,
        stop_hour=stop_hour,
        requested_runs=run_count,
        run_times=_run_times(start_hour, stop_hour),
    )


def plan_monitor_schedule(configuration: Configuration) -> SchedulePlan:
    if configuration.schedule_mode == ScheduleMode.COUNT:
        return plan_count_schedule(configuration.max_runs_per_day, configuration.start_hour)
    return plan_window_schedule(configuration.start_hour, configuration.stop_hour)
