"""
Logging configuration tests
"""

import logging
import logging.handlers

import pytest

from llm_monitor.config import LoggingConfig
from llm_monitor.logging_config import setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging replaces root handlers; put pytest's back afterwards"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test handler wiring"""

    def test_console_only(self):
        setup_logging("debug")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_rotating_file(self, temp_dir):
        log_file = temp_dir / "logs" / "monitor.log"
        setup_logging("INFO", log_file=str(log_file), max_bytes=1024, backup_count=2)

        file_handlers = [
            h for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2

        logging.getLogger("llm_monitor.test").info("hello from the monitor")
        file_handlers[0].flush()
        assert "hello from the monitor" in log_file.read_text(encoding="utf-8")

    def test_third_party_loggers_quieted(self):
        setup_logging("DEBUG")
        assert logging.getLogger("opentelemetry").level == logging.WARNING

    def test_from_config(self, temp_dir):
        config = LoggingConfig(level="WARNING", file=str(temp_dir / "m.log"))
        setup_logging_from_config(config)

        assert logging.getLogger().level == logging.WARNING
        assert len(logging.getLogger().handlers) == 2
