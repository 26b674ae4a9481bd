from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.host_config import get_hostname_settings_file


class Settings(BaseSettings):
    """
    Deployment settings for the drive monitor.

    Administrator-editable monitoring options live in the persisted
    ``Configuration``; this class only holds what a host needs to wire the
    components together.
    """

    # Storage locations
    config_store_path: str = "data/configuration.json"
    change_log_path: str = "data/change_log.csv"
    change_log_url: str = ""  # Link shown in summaries ("view full log")
    run_registry_path: str = "data/scheduled_runs.json"

    # Folder source (one sub directory per folder id)
    source_root: str = "data/folders"
    folder_url_template: str = "https://drive.google.com/drive/folders/{folder_id}"

    # Webhook delivery
    webhook_timeout_seconds: float = 30.0
    webhook_max_attempts: int = 3
    webhook_retry_delay_seconds: float = 1.0
    batch_delay_seconds: float = 0.5
    fallback_alert_webhook_url: str = ""  # Used when the configuration cannot be loaded

    # Summary runs
    summary_hour: int = 7

    # Logging configuration
    log_level: str = "INFO"
    log_file_path: str = "logs/drive_monitor.log"
    log_retention_days: int = 30

    model_config = SettingsConfigDict(
        env_file=get_hostname_settings_file(),
        env_prefix="DRIVE_MONITOR_",
        extra="ignore",
    )

    @property
    def log_directory(self) -> Path:
        """Log directory as a Path object"""
        return Path(self.log_file_path).parent

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files(),
        }
