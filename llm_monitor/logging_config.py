"""
Logging configuration

Console output plus an optional rotating log file.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
):
    """
    Configure application logging

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path; console only when None
        max_bytes: Max size of a single log file
        backup_count: Number of rotated files to keep
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_format = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(log_format)
        root_logger.addHandler(file_handler)

    # Third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized: level={log_level}, file={log_file}")


def setup_logging_from_config(logging_config) -> None:
    """Configure logging from a LoggingConfig section"""
    setup_logging(
        log_level=logging_config.level,
        log_file=logging_config.file,
        max_bytes=logging_config.max_bytes,
        backup_count=logging_config.backup_count,
    )


__all__ = ["LOG_FORMAT", "setup_logging", "setup_logging_from_config"]
