"""structlog setup for the sample views and the command line."""

import logging
import sys
from typing import Any

import structlog

# Context keys owned by an open sample view
VIEW_CONTEXT_KEYS = ("sample_id", "view_id")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _renderer(json_format: bool) -> structlog.types.Processor:
    if json_format:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "labcollab",
) -> None:
    """
    Route structlog output to stderr.

    Unknown level names fall back to INFO. httpx request lines are only
    shown when running at DEBUG.

    Args:
        level: Log level name
        json_format: One JSON object per line instead of console output
        service_name: Bound as ``service`` on every entry
    """
    threshold = _level(level)
    logging.getLogger("httpx").setLevel(logging.DEBUG if threshold <= logging.DEBUG else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_view_context(sample_id: str, view_id: str | None = None, **kwargs: Any) -> None:
    """Tag subsequent log entries with the sample an open view shows."""
    context: dict[str, Any] = {"sample_id": sample_id, **kwargs}
    if view_id:
        context["view_id"] = view_id
    structlog.contextvars.bind_contextvars(**context)


def clear_view_context() -> None:
    structlog.contextvars.unbind_contextvars(*VIEW_CONTEXT_KEYS)
