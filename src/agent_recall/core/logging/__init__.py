"""Structured logging module built on structlog and Logfire."""

from .context import bind_turn_context
from .setup import get_logger, setup_logging

__all__ = [
    "bind_turn_context",
    "get_logger",
    "setup_logging",
]
