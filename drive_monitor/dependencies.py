from functools import lru_cache
from typing import Any, Dict

from .config import Settings
from .services.change_log.aggregator import ChangeAggregator
from .services.change_log.change_log import ChangeLog
from .services.monitoring.change_detection_engine import ChangeDetectionEngine
from .services.notifications.message_formatter import SummaryFormatter
from .services.notifications.retry_policy import RetryPolicy
from .services.notifications.webhook_client import HttpxTransport, WebhookNotifier
from .services.reporting.summary_reporter import SummaryReporter
from .services.scheduling.run_registry import JsonRunRegistry
from .services.scheduling.schedule_manager import ScheduleManager
from .services.sources.local_folder_source import LocalFolderSource
from .services.storage.config_store import JsonConfigurationStore

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Get the Settings singleton instance."""
    return Settings()


def get_configuration_store() -> JsonConfigurationStore:
    if "configuration_store" not in _singletons:
        _singletons["configuration_store"] = JsonConfigurationStore(get_settings().config_store_path)
    return _singletons["configuration_store"]


def get_change_log() -> ChangeLog:
    if "change_log" not in _singletons:
        _singletons["change_log"] = ChangeLog(get_settings().change_log_path)
    return _singletons["change_log"]


def get_aggregator() -> ChangeAggregator:
    if "aggregator" not in _singletons:
        _singletons["aggregator"] = ChangeAggregator(get_change_log())
    return _singletons["aggregator"]


def get_file_source() -> LocalFolderSource:
    if "file_source" not in _singletons:
        _singletons["file_source"] = LocalFolderSource(get_settings().source_root)
    return _singletons["file_source"]


def get_transport() -> HttpxTransport:
    if "transport" not in _singletons:
        _singletons["transport"] = HttpxTransport(timeout_seconds=get_settings().webhook_timeout_seconds)
    return _singletons["transport"]


def get_notifier() -> WebhookNotifier:
    """Unbound notifier; callers bind it to the configured webhook URL."""
    if "notifier" not in _singletons:
        settings = get_settings()
        _singletons["notifier"] = WebhookNotifier(
            transport=get_transport(),
            retry_policy=RetryPolicy(
                max_attempts=settings.webhook_max_attempts,
                base_delay_seconds=settings.webhook_retry_delay_seconds,
            ),
            batch_delay_seconds=settings.batch_delay_seconds,
        )
    return _singletons["notifier"]


def get_run_registry() -> JsonRunRegistry:
    if "run_registry" not in _singletons:
        _singletons["run_registry"] = JsonRunRegistry(get_settings().run_registry_path)
    return _singletons["run_registry"]


def get_engine() -> ChangeDetectionEngine:
    if "engine" not in _singletons:
        _singletons["engine"] = ChangeDetectionEngine(
            store=get_configuration_store(),
            source=get_file_source(),
            change_log=get_change_log(),
            notifier=get_notifier(),
            fallback_alert_webhook_url=get_settings().fallback_alert_webhook_url,
        )
    return _singletons["engine"]


def get_schedule_manager() -> ScheduleManager:
    if "schedule_manager" not in _singletons:
        _singletons["schedule_manager"] = ScheduleManager(
            scheduler=get_run_registry(),
            summary_hour=get_settings().summary_hour,
        )
    return _singletons["schedule_manager"]


def get_summary_reporter() -> SummaryReporter:
    if "summary_reporter" not in _singletons:
        settings = get_settings()
        _singletons["summary_reporter"] = SummaryReporter(
            store=get_configuration_store(),
            aggregator=get_aggregator(),
            notifier=get_notifier(),
            formatter=SummaryFormatter(
                folder_url_template=settings.folder_url_template,
                change_log_url=settings.change_log_url,
            ),
        )
    return _singletons["summary_reporter"]


def reset_singletons() -> None:
    """Reset all singletons - useful for testing."""
    _singletons.clear()
    get_settings.cache_clear()
