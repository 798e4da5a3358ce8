from .base import ApplicationError, ErrorCode, ErrorLevel, ServiceErrorDetails
from .circuit_breaker import CircuitBreaker, CircuitState, RetryWithCircuitBreaker
from .errors import (
    InsufficientData,
    InvalidResponse,
    NotFoundError,
    ServiceError,
    ServiceUnreachable,
    StorageError,
    ValidationError,
)
