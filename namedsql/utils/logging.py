"""Logging helpers for namedsql.

Every logger lives under the ``namedsql`` namespace and carries a filter that
stamps the current correlation ID on its records. :func:`logger_sink` adapts a
logger to the single-argument sink sessions write their diagnostics to.
"""

from __future__ import annotations

import functools
import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from namedsql.utils.serializers import to_json

if TYPE_CHECKING:
    from collections.abc import Iterable
    from logging import LogRecord

    from namedsql.typing import LogSink

__all__ = (
    "ROOT_LOGGER_NAME",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "logger_sink",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final = "namedsql"
SIMPLE_FORMAT: Final = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("namedsql_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context, or clear it with None."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


class CorrelationIDFilter(logging.Filter):
    """Stamp the current correlation ID, when one is set, onto each record."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON object.

    A mapping passed as ``extra={"extra_fields": {...}}`` is merged into the
    object.
    """

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return to_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger ``namedsql.<name>``, or the package logger without a name.

    Names already under ``namedsql`` are used as given.
    """
    if not name:
        qualified_name = ROOT_LOGGER_NAME
    elif name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        qualified_name = name
    else:
        qualified_name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(qualified_name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def logger_sink(logger: logging.Logger, level: int) -> LogSink:
    """Adapt ``logger`` to a log sink emitting every line at ``level``."""
    return functools.partial(logger.log, level)


def _formatter_for(format_style: str) -> logging.Formatter:
    if format_style == "structured":
        return StructuredFormatter()
    if format_style == "simple":
        return logging.Formatter(SIMPLE_FORMAT)
    msg = f"Unknown log format style: {format_style!r}"
    raise ValueError(msg)


def configure_logging(
    level: int | str = logging.INFO,
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: Iterable[logging.Handler] = (),
) -> logging.Logger:
    """Send namedsql logs to stdout (and optionally a file) instead of the root logger.

    Args:
        level: Level name or number for the package logger.
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for plain text.
        log_to_file: Path of a file receiving structured lines as well.
        extra_handlers: Further handlers to attach.

    Raises:
        ValueError: Unknown ``format_style``.

    Returns:
        The package logger.
    """
    formatter = _formatter_for(format_style)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]
    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)
    handlers.extend(extra_handlers)
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.propagate = False

    package_logger.debug(
        "namedsql logging configured",
        extra={
            "extra_fields": {
                "level": logging.getLevelName(package_logger.level),
                "format_style": format_style,
                "handlers": len(handlers),
            }
        },
    )
    return package_logger
