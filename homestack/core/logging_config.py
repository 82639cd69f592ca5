"""Logging configuration for homestack: console on stderr plus an optional file."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

LOG_FILE_NAME = "homestack.log"


def setup_logging(
    log_level: str | None = None,
    log_dir: Path | str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Setup logging: console on stderr, plus a JSON file when a log dir is given.

    Stdout is left alone so compose output, help text and generated passwords
    can be piped.

    Args:
        log_level: Log level (defaults to LOG_LEVEL env var or WARNING)
        log_dir: Directory for the log file (defaults to LOG_DIR env var, none if unset)
        max_file_size_mb: Max file size before truncation (no backup files kept)
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "WARNING")
    if log_dir is None:
        log_dir = os.getenv("LOG_DIR") or None

    log_level_num = getattr(logging, log_level.upper(), logging.WARNING)

    # Clear any existing handlers to prevent duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level_num)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if sys.stderr.isatty()
        else structlog.processors.JSONRenderer()
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level_num)
    console_handler.setFormatter(ProcessorFormatter(processor=renderer))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / LOG_FILE_NAME,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=0,  # Don't keep old files, just truncate
            encoding="utf-8",
        )
        file_handler.setLevel(log_level_num)
        file_handler.setFormatter(ProcessorFormatter(processor=structlog.processors.JSONRenderer()))
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    get_logger().debug(
        "Logging system initialized",
        log_level=log_level,
        log_file=str(Path(log_dir) / LOG_FILE_NAME) if log_dir is not None else None,
    )


def get_logger() -> Any:
    """Get the homestack logger."""
    return structlog.get_logger("homestack")
