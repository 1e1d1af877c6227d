"""Base error classes and enums"""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from logfire.integrations.pydantic import PluginSettings
from pydantic import BaseModel, Field, field_serializer


class ErrorLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_logging_level(self) -> int:
        """Convert ErrorLevel to logging level"""
        return {
            ErrorLevel.DEBUG: logging.DEBUG,
            ErrorLevel.INFO: logging.INFO,
            ErrorLevel.WARNING: logging.WARNING,
            ErrorLevel.ERROR: logging.ERROR,
            ErrorLevel.CRITICAL: logging.CRITICAL,
        }[self]


class ErrorCode(str, Enum):
    """Error codes for the engine."""

    # General Errors (1xxx)
    PROCESSING_FAILED = "1004"
    CONFIG_MISSING = "1006"

    # Composition Errors (2xxx)
    PROMPT_SOURCE_MISSING = "2101"
    RULE_FORMAT_INVALID = "2102"

    # AI/ML Errors (4xxx)
    EMBEDDING_FAILED = "4003"
    DIMENSION_MISMATCH = "4004"

    # Infrastructure Errors (5xxx)
    SERVICE_UNAVAILABLE = "5002"


class ErrorDetails(BaseModel, plugin_settings=PluginSettings(logfire={"record": "all"})):
    """Base model for structured error details"""

    source: str = Field(description="Component or module where the error occurred")
    operation: str = Field(description="Operation being performed when the error occurred")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), description="When the error occurred")

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class ServiceErrorDetails(ErrorDetails):
    """Details for service-related errors"""

    service_name: str = Field(description="Name of the service that failed")
    endpoint: str | None = Field(None, description="Service endpoint that was called")
    status_code: int | None = Field(None, description="HTTP or service status code")
    latency_ms: float | None = Field(None, description="Response time in milliseconds")


class DatabaseErrorDetails(ServiceErrorDetails):
    """Details for database-related errors"""

    query_type: str | None = Field(None, description="Type of query (read, write, index)")
    label: str | None = Field(None, description="Node label involved in the query")


class EmbeddingErrorDetails(ServiceErrorDetails):
    """Details for embedding provider errors"""

    model_name: str | None = Field(None, description="Embedding model name")
    text_length: int | None = Field(None, description="Length of the text being embedded")
    expected_dimensions: int | None = Field(None, description="Configured vector dimension")
    actual_dimensions: int | None = Field(None, description="Dimension actually received")


class CompositionErrorDetails(ErrorDetails):
    """Details for prompt and rule composition errors"""

    origins: list[str] = Field(default_factory=list, description="Source origins involved in the failure")
    payload_type: str | None = Field(None, description="Python type of the offending payload")


class ApplicationError(Exception):
    """Base class for all engine errors"""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        level: ErrorLevel = ErrorLevel.ERROR,
        details: ErrorDetails | dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.level = level

        if details is None:
            self.details = ErrorDetails(source="unknown", operation="unknown")
        elif isinstance(details, dict):
            details = dict(details)
            source = details.pop("source", "unknown")
            operation = details.pop("operation", "unknown")
            self.details = ErrorDetails(source=source, operation=operation, **details)
        else:
            self.details = details

        super().__init__(message)

