import logging
import logging.handlers

import pytest
from rich.logging import RichHandler

from drive_monitor.config import Settings
from drive_monitor.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_console_and_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "drive_monitor.log"
    settings = Settings(log_file_path=str(log_file), log_level="DEBUG", log_retention_days=7)

    setup_logging(settings)

    root = logging.getLogger()
    rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
    file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.TimedRotatingFileHandler)]

    assert len(rich_handlers) == 1
    assert len(file_handlers) == 1
    assert file_handlers[0].backupCount == 7
    assert root.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING

    logging.info("hello from the test")
    file_handlers[0].flush()
    assert "hello from the test" in log_file.read_text(encoding="utf-8")
