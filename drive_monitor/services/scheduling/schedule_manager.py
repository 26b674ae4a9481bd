"""
Reconciles the external scheduler with the configured schedules.

Desired run times are computed first; only then are the registered runs
diffed against them. Surplus and duplicate registrations are removed and
missing ones added, so applying the same configuration twice is a no-op.
"""

import logging
from typing import Dict, List, Optional, Tuple

from drive_monitor.core.exceptions import DriveMonitorError, ScheduleValidationError
from drive_monitor.core.interfaces import RunScheduler
from drive_monitor.models import (
    Configuration,
    RegisteredRun,
    ScheduleMode,
    ScheduleResult,
    ScheduleStatus,
)
from drive_monitor.services.scheduling.schedule_calculator import plan_monitor_schedule

MONITOR_ENTRY_POINT = "monitor_drive_changes"
DAILY_SUMMARY_ENTRY_POINT = "send_daily_summary"
WEEKLY_SUMMARY_ENTRY_POINT = "send_weekly_summary"
ALL_ENTRY_POINTS = (MONITOR_ENTRY_POINT, DAILY_SUMMARY_ENTRY_POINT, WEEKLY_SUMMARY_ENTRY_POINT)

RunKey = Tuple[int, Optional[int]]  # (hour, weekday); weekday None = every day


def _run_key(run: RegisteredRun) -> RunKey:
    return (run.hour, run.weekday)


class ScheduleManager:
    def __init__(self, scheduler: RunScheduler, summary_hour: int = 7):
        self._scheduler = scheduler
        self._summary_hour = summary_hour

    async def _reconcile(self, entry_point: str, desired: List[RunKey]) -> Tuple[int, int]:
        """Make the registrations of ``entry_point`` equal ``desired``. Returns (removed, registered)."""
        registered = await self._scheduler.list_runs(entry_point)

        kept: Dict[RunKey, RegisteredRun] = {}
        removed = 0
        for run in registered:
            key = _run_key(run)
            if key in desired and key not in kept:
                kept[key] = run
                continue
            await self._scheduler.remove_run(run.run_id)
            removed += 1

        added = 0
        for hour, weekday in desired:
            if (hour, weekday) in kept:
                continue
            if weekday is None:
                await self._scheduler.register_daily_run(entry_point, hour)
            else:
                await self._scheduler.register_weekly_run(entry_point, weekday, hour)
            added += 1

        if removed or added:
            logging.info(
                f"Reconciled {entry_point}: removed {removed}, registered {added}",
                extra={"operation": "schedule_reconcile"},
            )
        return removed, added

    async def _remove_entry_point(self, entry_point: str) -> int:
        runs = await self._scheduler.list_runs(entry_point)
        for run in runs:
            await self._scheduler.remove_run(run.run_id)
        return len(runs)

    def _failed(self, entry_point: str, action: str, error: Exception, **fields) -> ScheduleResult:
        logging.error(f"{action} failed for {entry_point}: {error}", exc_info=not isinstance(error, DriveMonitorError))
        return ScheduleResult(success=False, message=f"{action} failed: {error}", entry_point=entry_point, **fields)

    async def setup_monitor_schedule(self, configuration: Configuration) -> ScheduleResult:
        try:
            return await self._setup_monitor_schedule(configuration)
        except Exception as e:
            return self._failed(MONITOR_ENTRY_POINT, "Monitor schedule setup", e, mode=configuration.schedule_mode)

    async def _setup_monitor_schedule(self, configuration: Configuration) -> ScheduleResult:
        try:
            plan = plan_monitor_schedule(configuration)
        except ScheduleValidationError as e:
            removed = await self._remove_entry_point(MONITOR_ENTRY_POINT)
            logging.error(f"Monitor schedule rejected: {e} (removed {removed} existing runs)")
            return ScheduleResult(
                success=False,
                message=str(e),
                entry_point=MONITOR_ENTRY_POINT,
                mode=configuration.schedule_mode,
                removed=removed,
            )

        removed, registered = await self._reconcile(
            MONITOR_ENTRY_POINT, [(hour, None) for hour in plan.hours]
        )

        hours_text = ", ".join(f"{hour}:00" for hour in plan.hours)
        message = f"Monitor schedule set: {plan.runs_scheduled} runs at {hours_text}"
        if plan.mode == ScheduleMode.COUNT and plan.runs_scheduled < plan.requested_runs:
            message += (
                f" ({plan.requested_runs} runs requested until {plan.stop_hour:g}:00; "
                f"the scheduler runs at most once per whole hour)"
            )
        logging.info(message)

        return ScheduleResult(
            success=True,
            message=message,
            entry_point=MONITOR_ENTRY_POINT,
            mode=plan.mode,
            calculated_runs=plan.requested_runs,
            runs_scheduled=plan.runs_scheduled,
            stop_hour=plan.stop_hour,
            run_times=plan.hours,
            removed=removed,
            registered=registered,
        )

    async def setup_daily_summary_schedule(self, configuration: Configuration) -> ScheduleResult:
        desired = [(self._summary_hour, None)] if configuration.daily_summary_enabled else []
        try:
            removed, registered = await self._reconcile(DAILY_SUMMARY_ENTRY_POINT, desired)
        except Exception as e:
            return self._failed(DAILY_SUMMARY_ENTRY_POINT, "Daily summary schedule setup", e)
        state = f"at {self._summary_hour}:00" if desired else "disabled"
        return ScheduleResult(
            success=True,
            message=f"Daily summary schedule {state}",
            entry_point=DAILY_SUMMARY_ENTRY_POINT,
            runs_scheduled=len(desired),
            run_times=[hour for hour, _ in desired],
            removed=removed,
            registered=registered,
        )

    async def setup_weekly_summary_schedule(self, configuration: Configuration) -> ScheduleResult:
        desired = (
            [(self._summary_hour, configuration.weekly_summary_day)]
            if configuration.weekly_summary_enabled
            else []
        )
        try:
            removed, registered = await self._reconcile(WEEKLY_SUMMARY_ENTRY_POINT, desired)
        except Exception as e:
            return self._failed(WEEKLY_SUMMARY_ENTRY_POINT, "Weekly summary schedule setup", e)
        state = (
            f"on weekday {configuration.weekly_summary_day} at {self._summary_hour}:00"
            if desired
            else "disabled"
        )
        return ScheduleResult(
            success=True,
            message=f"Weekly summary schedule {state}",
            entry_point=WEEKLY_SUMMARY_ENTRY_POINT,
            runs_scheduled=len(desired),
            run_times=[hour for hour, _ in desired],
            removed=removed,
            registered=registered,
        )

    async def setup_summary_schedules(self, configuration: Configuration) -> List[ScheduleResult]:
        return [
            await self.setup_daily_summary_schedule(configuration),
            await self.setup_weekly_summary_schedule(configuration),
        ]

    async def setup_all_schedules(self, configuration: Configuration) -> ScheduleResult:
        results = [await self.setup_monitor_schedule(configuration)]
        results.extend(await self.setup_summary_schedules(configuration))

        success = all(result.success for result in results)
        return ScheduleResult(
            success=success,
            message="; ".join(result.message for result in results),
            entry_point="all",
            runs_scheduled=sum(result.runs_scheduled for result in results),
            removed=sum(result.removed for result in results),
            registered=sum(result.registered for result in results),
        )

    async def remove_all_schedules(self) -> int:
        removed = 0
        for entry_point in ALL_ENTRY_POINTS:
            removed += await self._remove_entry_point(entry_point)
        logging.info(f"Removed {removed} scheduled runs")
        return removed

    async def get_schedule_status(self, configuration: Configuration) -> ScheduleStatus:
        status = ScheduleStatus()
        try:
            for entry_point in ALL_ENTRY_POINTS:
                status.current_runs.extend(await self._scheduler.list_runs(entry_point))
        except Exception as e:
            logging.error(f"Could not read scheduled runs: {e}", exc_info=not isinstance(e, DriveMonitorError))
            status.valid = False
            status.errors.append(f"Scheduled runs could not be read: {e}")
            return status

        def runs_for(entry_point: str) -> List[RegisteredRun]:
            return [run for run in status.current_runs if run.entry_point == entry_point]

        monitor_runs = runs_for(MONITOR_ENTRY_POINT)
        try:
            plan = plan_monitor_schedule(configuration)
        except ScheduleValidationError as e:
            status.valid = False
            status.errors.append(f"Monitor schedule is invalid: {e}")
        else:
            if not monitor_runs:
                status.warnings.append("Monitor schedule is missing.")
                status.recommendations.append("Run setup_schedules to create the monitor runs.")
            elif sorted(run.hour for run in monitor_runs) != plan.hours:
                status.warnings.append("Monitor runs differ from the configured schedule.")
                status.recommendations.append("Run setup_schedules to reconcile the monitor runs.")

        daily_runs = runs_for(DAILY_SUMMARY_ENTRY_POINT)
        if configuration.daily_summary_enabled and not daily_runs:
            status.warnings.append("Daily summary is enabled but no run is scheduled.")
            status.recommendations.append("Run setup_schedules to create the daily summary run.")
        elif not configuration.daily_summary_enabled and daily_runs:
            status.warnings.append("Daily summary is disabled but a run still exists.")
            status.recommendations.append("Run setup_schedules to remove the stale daily summary run.")

        weekly_runs = runs_for(WEEKLY_SUMMARY_ENTRY_POINT)
        if configuration.weekly_summary_enabled:
            if not weekly_runs:
                status.warnings.append("Weekly summary is enabled but no run is scheduled.")
                status.recommendations.append("Run setup_schedules to create the weekly summary run.")
            elif any(run.weekday != configuration.weekly_summary_day for run in weekly_runs):
                status.warnings.append("Weekly summary run is scheduled on a different day.")
                status.recommendations.append("Run setup_schedules to move the weekly summary run.")
        elif weekly_runs:
            status.warnings.append("Weekly summary is disabled but a run still exists.")
            status.recommendations.append("Run setup_schedules to remove the stale weekly summary run.")

        return status
