"""structlog configuration for faultline.

Log records pass through stdlib handlers so a rotating file can sit next to
stderr. The fatal report is written to stderr by observability.report, so
when a log file is set the stderr handler only carries WARNING and above.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

_RENDERERS = ("json", "console")


def _handlers(
    level: int, log_file: str | None, max_bytes: int, backup_count: int
) -> list[logging.Handler]:
    stderr = logging.StreamHandler(sys.stderr)
    if not log_file:
        stderr.setLevel(level)
        return [stderr]

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    rotating = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    rotating.setLevel(level)
    stderr.setLevel(max(level, logging.WARNING))
    return [rotating, stderr]


def _renderer(log_format: str) -> Any:
    if log_format not in _RENDERERS:
        raise ValueError(f"log_format must be one of {_RENDERERS}, got {log_format!r}")
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Route structlog through the root logger.

    `log_format` picks JSON lines or the plain console renderer. With
    `log_file` set, records rotate at `max_bytes` keeping `backup_count` old
    files.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for handler in _handlers(level, log_file, max_bytes, backup_count):
        root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
