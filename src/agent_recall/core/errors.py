"""Specific error types for the recall engine."""

from .base import (
    ApplicationError,
    CompositionErrorDetails,
    EmbeddingErrorDetails,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ServiceErrorDetails,
)


class ServiceError(ApplicationError):
    """Error from external service calls."""

    def __init__(self, message: str, details: ServiceErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            level=ErrorLevel.ERROR,
            details=details or ServiceErrorDetails(
                source="service",
                operation="external_call",
                service_name="unknown",
            ),
        )


class ProcessingError(ApplicationError):
    """General processing errors."""

    def __init__(self, message: str, details: ErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.PROCESSING_FAILED,
            level=ErrorLevel.ERROR,
            details=details,
        )


class ConfigurationError(ApplicationError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, details: ErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.CONFIG_MISSING,
            level=ErrorLevel.ERROR,
            details=details,
        )


class EmbeddingProviderError(ApplicationError):
    """The embedding provider failed or returned nothing usable.

    Non-fatal for a turn: retrieval degrades to an empty memory list and
    chunk saves persist without a vector.
    """

    def __init__(self, message: str, details: EmbeddingErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.EMBEDDING_FAILED,
            level=ErrorLevel.WARNING,
            details=details,
        )


class DimensionMismatchError(ApplicationError):
    """Two vectors of different lengths were compared."""

    def __init__(self, message: str, details: EmbeddingErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.DIMENSION_MISMATCH,
            level=ErrorLevel.WARNING,
            details=details,
        )


class MissingRequiredPromptSourceError(ApplicationError):
    """A prompt or rule source marked required was empty."""

    def __init__(self, message: str, details: CompositionErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.PROMPT_SOURCE_MISSING,
            level=ErrorLevel.ERROR,
            details=details,
        )


class InvalidRuleFormatError(ApplicationError):
    """A behavior-rule payload could not be normalized to a list of strings."""

    def __init__(self, message: str, details: CompositionErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.RULE_FORMAT_INVALID,
            level=ErrorLevel.ERROR,
            details=details,
        )
