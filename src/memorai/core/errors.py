"""Specific error types for memorai."""

from typing import Any

from .base import (
    ApplicationError,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ServiceErrorDetails,
    StorageErrorDetails,
    ValidationErrorDetails,
)


class ValidationError(ApplicationError):
    """Bad caller input: empty text, invalid pagination or limit, dimension mismatch."""

    def __init__(self, message: str, details: ValidationErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            level=ErrorLevel.WARNING,
            details=details,
        )


class NotFoundError(ApplicationError):
    """A requested record does not exist."""

    def __init__(self, message: str, details: ErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            level=ErrorLevel.INFO,
            details=details,
        )


class InsufficientData(ApplicationError):
    """Not enough stored memories to derive a profile."""

    def __init__(self, message: str, details: ErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INSUFFICIENT_DATA,
            level=ErrorLevel.INFO,
            details=details,
        )


class ServiceUnreachable(ApplicationError):
    """The embedding/generation service could not be reached or timed out."""

    def __init__(self, message: str, details: ServiceErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            level=ErrorLevel.ERROR,
            details=details
            or ServiceErrorDetails(source="service", operation="external_call", service_name="unknown"),
        )


class ServiceError(ApplicationError):
    """The embedding/generation service answered with a non-success status."""

    def __init__(self, message: str, details: ServiceErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.EMBEDDING_FAILED,
            level=ErrorLevel.ERROR,
            details=details
            or ServiceErrorDetails(source="service", operation="external_call", service_name="unknown"),
        )


class InvalidResponse(ApplicationError):
    """The embedding/generation service returned a malformed payload."""

    def __init__(self, message: str, details: ServiceErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_RESPONSE,
            level=ErrorLevel.ERROR,
            details=details,
        )


class StorageError(ApplicationError):
    """Failure reported by the durable storage backend."""

    def __init__(self, message: str, details: StorageErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.STORAGE_OPERATION,
            level=ErrorLevel.ERROR,
            details=details,
        )
