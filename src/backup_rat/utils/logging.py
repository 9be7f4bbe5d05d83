"""Logging configuration and utilities."""

import logging
import logging.handlers
import time
from pathlib import Path
from typing import Optional

LOGGER_NAME = "backup_rat"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class ContextualLogger(logging.LoggerAdapter):
    """Prefixes messages with ``key=value`` context such as the target name."""

    def process(self, msg, kwargs):
        context = " | ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"[{context}] {msg}", kwargs


class TimedOperation:
    """Times a block, logging when it starts and how long it took."""

    def __init__(self, logger, operation_name: str, level: int = logging.INFO):
        self.logger = logger
        self.operation_name = operation_name
        self.level = level
        self.duration = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        self.logger.log(self.level, f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self._start
        if exc_type is None:
            self.logger.log(self.level, f"Finished {self.operation_name} in {self.duration:.2f}s")
        else:
            self.logger.error(f"{self.operation_name} failed after {self.duration:.2f}s: {exc_val}")
