"""
Structured logging for stowage.

Migration runs are observable only through logs. Components emit
snake_case events through structlog; setup_logging() routes them to
stderr (and optionally a file) as console lines or JSON.
"""
import logging
import sys
from typing import Optional

import structlog

# Library loggers held at WARNING unless stowage itself runs at DEBUG
QUIET_LOGGERS = ("aiosqlite", "asyncio")


def _resolve_level(level: object) -> int:
    """Numeric level for a name like "debug"; unknown names mean INFO."""
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_handlers(log_level: int, log_file: Optional[str]) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)
    return handlers


def _renderers(json_output: bool) -> list[structlog.types.Processor]:
    if json_output:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure structlog and the stdlib root logger for a stowage run.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit one JSON object per event instead of console lines
        log_file: Also append events to this file
    """
    log_level = _resolve_level(level)

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=_build_handlers(log_level, log_file),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderers(json_output),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
