"""Structured logging for LUGGO (structlog over stdlib logging)."""

import logging
import sys

import structlog

from luggo.config import LuggoSettings, get_settings

SERVICE_NAME = "luggo"

# Context keys owned by a single request; everything else (``service``) survives
REQUEST_CONTEXT_KEYS = ("request_id", "uid", "method", "path")

# The request middleware writes its own access line
QUIETED_LOGGERS = ("uvicorn.access",)


def configure_logging(settings: LuggoSettings | None = None) -> None:
    """Configure structlog from ``log_level`` and ``log_format`` (json or console)."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str, uid: str | None = None, **fields: str) -> None:
    """Attach request-scoped keys to every log entry until ``clear_request_context``."""
    if uid:
        fields["uid"] = uid
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars(*REQUEST_CONTEXT_KEYS)
