"""
Process entry point invoked by the host scheduler.

    python -m drive_monitor.main monitor_drive_changes [--force] [--user EMAIL]
    python -m drive_monitor.main send_daily_summary [--date YYYY-MM-DD]
    python -m drive_monitor.main send_weekly_summary
    python -m drive_monitor.main setup_schedules
    python -m drive_monitor.main schedule_status
    python -m drive_monitor.main init_config --webhook-url URL [--folder ID ...]
"""

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, List, Optional

from .core.exceptions import ConfigurationLoadError, DriveMonitorError
from .dependencies import (
    get_configuration_store,
    get_engine,
    get_schedule_manager,
    get_settings,
    get_summary_reporter,
    get_transport,
)
from .logging_config import setup_logging
from .models import Configuration


def _log_result(success: bool, message: str) -> None:
    if success:
        logging.info(message)
    else:
        logging.error(message)


async def monitor_drive_changes(force: bool = False, user: Optional[str] = None) -> int:
    result = await get_engine().execute(force_run=force, user_id=user)
    if result.success:
        logging.info(f"{result.message} in {result.duration:.1f}s")
        return 0
    if result.skipped:
        logging.info(f"Cycle skipped: {result.message}")
        return 0
    logging.error(f"Cycle failed: {result.message}")
    return 1


async def send_daily_summary(date_key: Optional[str] = None) -> int:
    result = await get_summary_reporter().send_daily_summary(date_key)
    _log_result(result.success, result.message)
    return 0 if result.success else 1


async def send_weekly_summary() -> int:
    result = await get_summary_reporter().send_weekly_summary()
    _log_result(result.success, result.message)
    return 0 if result.success else 1


async def setup_schedules() -> int:
    configuration = await get_configuration_store().load()
    result = await get_schedule_manager().setup_all_schedules(configuration)
    _log_result(result.success, result.message)
    return 0 if result.success else 1


async def schedule_status() -> int:
    configuration = await get_configuration_store().load()
    status = await get_schedule_manager().get_schedule_status(configuration)

    for run in status.current_runs:
        day = "daily" if run.weekday is None else f"weekday {run.weekday}"
        logging.info(f"Scheduled: {run.entry_point} at {run.hour}:00 ({day})")
    for error in status.errors:
        logging.error(error)
    for warning in status.warnings:
        logging.warning(warning)
    for recommendation in status.recommendations:
        logging.info(f"Recommendation: {recommendation}")
    return 0 if status.valid else 1


async def init_config(webhook_url: str, folders: List[str]) -> int:
    store = get_configuration_store()
    try:
        configuration = await store.load()
        logging.info(f"Existing configuration kept: {configuration}")
    except ConfigurationLoadError:
        configuration = Configuration.create_default(webhook_url)

    for folder_id in folders:
        configuration = configuration.with_folder_added(folder_id)
    await store.save(configuration)
    logging.info(f"Configuration saved to {store.path}: {configuration}")
    return 0


async def _run_command(command: Awaitable[int]) -> int:
    try:
        return await command
    finally:
        await get_transport().aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="drive_monitor", description="Drive change monitor")
    subparsers = parser.add_subparsers(dest="command", required=True)

    monitor = subparsers.add_parser("monitor_drive_changes", help="Run one monitoring cycle")
    monitor.add_argument("--force", action="store_true", help="Ignore the monitoring window")
    monitor.add_argument("--user", default=None, help="User triggering a manual run")

    daily = subparsers.add_parser("send_daily_summary", help="Send the daily summary")
    daily.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to yesterday")

    subparsers.add_parser("send_weekly_summary", help="Send last week's summary")
    subparsers.add_parser("setup_schedules", help="Reconcile all scheduled runs")
    subparsers.add_parser("schedule_status", help="Show scheduled runs and problems")

    init = subparsers.add_parser("init_config", help="Create the stored configuration")
    init.add_argument("--webhook-url", required=True)
    init.add_argument("--folder", action="append", default=[], help="Folder id to monitor")

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    logging.info(f"Configuration loaded from: {settings.config_file_info['active_config_file']}")

    if args.command == "monitor_drive_changes":
        coroutine = monitor_drive_changes(force=args.force, user=args.user)
    elif args.command == "send_daily_summary":
        coroutine = send_daily_summary(args.date)
    elif args.command == "send_weekly_summary":
        coroutine = send_weekly_summary()
    elif args.command == "setup_schedules":
        coroutine = setup_schedules()
    elif args.command == "schedule_status":
        coroutine = schedule_status()
    else:
        coroutine = init_config(args.webhook_url, args.folder)

    try:
        return asyncio.run(_run_command(coroutine))
    except DriveMonitorError as e:
        logging.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(run())
