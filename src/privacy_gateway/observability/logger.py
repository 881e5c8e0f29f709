"""Structured logging configuration using structlog.

Every entry carries the service name and, inside a request, its correlation
ID. Production output is one JSON object per line.
"""

import logging
import sys

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from privacy_gateway.observability.constants import SERVICE_NAME
from privacy_gateway.observability.context import get_correlation_id

# Libraries whose INFO output is per-request noise at the gateway
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_correlation_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor adding the current request's correlation ID."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def service_name_processor(service_name: str = SERVICE_NAME) -> Processor:
    """Build a structlog processor stamping entries with ``service_name``."""

    def add_service_name(
        logger: WrappedLogger,  # noqa: ARG001
        method_name: str,  # noqa: ARG001
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service_name


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    development_mode: bool = False,
    service_name: str = SERVICE_NAME,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: The log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for production, "console" for development.
        development_mode: If True, uses colored console output regardless of
            ``log_format``.
        service_name: Value of the ``service`` key on every entry.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        service_name_processor(service_name),
        add_correlation_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "console" or development_mode:
        renderers: list[Processor] = [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[*shared_processors, *renderers],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("gateway.request.received", path="/gateway")
    """
    return structlog.get_logger(name)
