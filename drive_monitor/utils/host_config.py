"""
Host-specific settings file selection.

Each machine running the monitor gets its own ``<hostname>-settings.env``,
seeded from the shared ``settings.env`` the first time it is needed.
"""

import logging
import shutil
import socket
from pathlib import Path

BASE_SETTINGS_FILE = "settings.env"


def get_hostname() -> str:
    """Get the current hostname (without domain)."""
    return socket.gethostname().split(".")[0]


def _host_header(hostname: str, base_file: str) -> str:
    return (
        f"# Drive monitor settings for host: {hostname}\n"
        f"# Seeded from {base_file}; edit freely for this machine\n\n"
    )


def get_hostname_settings_file(base_file: str = BASE_SETTINGS_FILE) -> str:
    """
    Return the settings file for this host, creating it from the base file
    when it does not exist yet.

    Falls back to the base file name when there is nothing to copy or the
    copy fails.
    """
    try:
        hostname = get_hostname()
        base_settings = Path(base_file)
        host_settings = Path(f"{hostname}-settings.env")

        if host_settings.exists():
            logging.debug(f"Using host-specific configuration: {host_settings}")
            return str(host_settings)

        if not base_settings.exists():
            logging.debug(f"No {base_file} found, using defaults and environment")
            return base_file

        shutil.copy2(base_settings, host_settings)
        content = host_settings.read_text(encoding="utf-8")
        host_settings.write_text(
            _host_header(hostname, base_file) + content, encoding="utf-8"
        )
        logging.info(f"Created host-specific configuration: {host_settings}")
        return str(host_settings)

    except OSError as e:
        logging.error(f"Error preparing host-specific settings: {e}")
        return base_file


def list_all_settings_files() -> list[str]:
    """List the base settings file and every host-specific one present."""
    settings_files = []
    if Path(BASE_SETTINGS_FILE).exists():
        settings_files.append(BASE_SETTINGS_FILE)
    settings_files.extend(str(p) for p in sorted(Path(".").glob("*-settings.env")))
    return settings_files
