"""Centralized logging setup with Logfire integration.

Logfire itself is configured through environment variables
(LOGFIRE_TOKEN, LOGFIRE_SERVICE_NAME, LOGFIRE_ENVIRONMENT).
"""

import logging
import sys

import logfire
import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.types import EventDict, Processor, WrappedLogger
from structlog.typing import FilteringBoundLogger


def add_logfire_context(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Promote a few well-known keys so Logfire can index them as attributes."""
    if isinstance(event_dict.get("error"), BaseException):
        event_dict["error_type"] = type(event_dict["error"]).__name__

    error_context = event_dict.get("error_context")
    if isinstance(error_context, dict) and "error_code" in error_context:
        event_dict["error_code"] = error_context["error_code"]

    return event_dict


def setup_logging(level: int | None = None, colors: bool = True) -> None:
    """Set up process-wide logging with structlog and Logfire.

    Args:
        level: Root log level; DEBUG when settings.debug is on, INFO otherwise
        colors: Whether the console renderer uses ANSI colors
    """
    if level is None:
        from agent_recall.core.config import settings

        level = logging.DEBUG if settings.debug else logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        CallsiteParameterAdder(
            parameters=[
                CallsiteParameter.FILENAME,
                CallsiteParameter.LINENO,
                CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_logfire_context,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        # Must come before the final renderer
        logfire.StructlogProcessor(),
        structlog.dev.ConsoleRenderer(colors=colors),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib loggers (neo4j driver, httpx) through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=colors),
        foreign_pre_chain=processors[:-2],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger instance.

    Args:
        name: The name of the logger (usually __name__)
    """
    return structlog.get_logger(name)
