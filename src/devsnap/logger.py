"""Logging infrastructure for devsnap.

structlog is layered on top of stdlib logging so that one event reaches two
handlers: a JSON-lines file for later inspection (`snapshot logs --last`) and
a human-readable console renderer on stderr.
"""

from __future__ import annotations

import logging
import socket
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from devsnap.models import LogLevel

__all__ = [
    "configure_logging",
    "create_log_file_path",
    "get_latest_log_file",
    "get_logger",
    "get_logs_directory",
]

# Register custom FULL log level with Python's logging module
logging.addLevelName(LogLevel.FULL, "FULL")


def _add_hostname(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add hostname to log context if not already present."""
    if "hostname" not in event_dict:
        event_dict["hostname"] = socket.gethostname()
    return event_dict


def configure_logging(
    log_file_level: LogLevel,
    log_cli_level: LogLevel,
    log_file_path: Path | None,
) -> None:
    """Configure structlog with dual output: file (JSON) and terminal (console).

    Args:
        log_file_level: Minimum level for file logging
        log_cli_level: Minimum level for terminal display
        log_file_path: Path to log file, or None to log to the terminal only
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_hostname,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    handlers: list[logging.Handler] = []

    if log_file_path is not None:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setLevel(log_file_level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=shared_processors,
            )
        )
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_cli_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(min(log_file_level, log_cli_level) if log_file_path else log_cli_level)


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger with bound context.

    Args:
        name: Logger name (typically the component, e.g. "devsnap.retention")
        **context: Additional context to bind (e.g., subvolume)

    Returns:
        BoundLogger with context
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


def get_logs_directory() -> Path:
    """Get the logs directory path."""
    return Path.home() / ".local" / "share" / "devsnap" / "logs"


def create_log_file_path(command: str, timestamp: datetime | None = None) -> Path:
    """Create log file path like ~/.local/share/devsnap/logs/snapshot-<timestamp>-<command>.log.

    Args:
        command: CLI command being run (e.g. "reconcile")
        timestamp: Optional timestamp for log filename. Defaults to current time.
    """
    if timestamp is None:
        timestamp = datetime.now()
    return get_logs_directory() / f"snapshot-{timestamp.strftime('%Y%m%dT%H%M%S')}-{command}.log"


def get_latest_log_file() -> Path | None:
    """Get the most recent log file, or None if no logs exist."""
    logs_dir = get_logs_directory()
    if not logs_dir.exists():
        return None

    log_files = sorted(logs_dir.glob("snapshot-*.log"), reverse=True)
    return log_files[0] if log_files else None
