"""Circuit breaker and retry-with-backoff for calls to the embedding service."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from memorai.core.base import ServiceErrorDetails
from memorai.core.errors import ServiceUnreachable
from memorai.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, rejecting calls
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """
    Circuit breaker for handling service failures gracefully.

    The circuit breaker has three states:
    - CLOSED: Normal operation, calls go through
    - OPEN: Service is failing, calls are rejected immediately
    - HALF_OPEN: Testing if service has recovered

    Only ``expected_exception_types`` count as failures; anything else
    passes through without touching the state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exception_types: tuple[type[Exception], ...] = (ServiceUnreachable,),
        success_threshold: int = 1,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Name of the circuit (for logging)
            failure_threshold: Number of consecutive failures before opening circuit
            recovery_timeout: Seconds to wait before trying half-open
            expected_exception_types: Exceptions that trigger the breaker
            success_threshold: Successes needed in half-open to close circuit
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception_types = expected_exception_types
        self.success_threshold = success_threshold

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: float | None = None
        self.last_exception: Exception | None = None

    def should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt reset."""
        if self.last_failure_time is None:
            return False
        return time.monotonic() - self.last_failure_time >= self.recovery_timeout

    def _record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                logger.info(f"Circuit breaker '{self.name}' closing after recovery")
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                self.success_count = 0
                self.last_exception = None
        elif self.state == CircuitState.CLOSED:
            self.failure_count = 0

    def _record_failure(self, exception: Exception) -> None:
        self.last_failure_time = time.monotonic()
        self.last_exception = exception

        if self.state == CircuitState.HALF_OPEN:
            logger.warning(f"Circuit breaker '{self.name}' reopening after half-open failure")
            self.state = CircuitState.OPEN
            self.failure_count = 1
            self.success_count = 0
        elif self.state == CircuitState.CLOSED:
            self.failure_count += 1
            if self.failure_count >= self.failure_threshold:
                logger.error(
                    f"Circuit breaker '{self.name}' opening after {self.failure_count} failures",
                    last_exception=str(exception),
                )
                self.state = CircuitState.OPEN

    def _check_state(self) -> None:
        if self.state == CircuitState.OPEN and self.should_attempt_reset():
            logger.info(f"Circuit breaker '{self.name}' attempting reset (half-open)")
            self.state = CircuitState.HALF_OPEN
            self.success_count = 0

    def _open_error(self, operation: str) -> ServiceUnreachable:
        error_msg = f"Circuit breaker '{self.name}' is open"
        if self.last_exception:
            error_msg += f" (last error: {self.last_exception})"
        return ServiceUnreachable(
            message=error_msg,
            details=ServiceErrorDetails(
                source="circuit_breaker",
                operation=operation,
                service_name=self.name,
                status_code=503,
            ),
        )

    async def call_async(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Call an async function through the circuit breaker.

        Raises:
            ServiceUnreachable: If circuit is open
            Original exception: If the function fails
        """
        self._check_state()

        if self.state == CircuitState.OPEN:
            raise self._open_error("call_async")

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception_types as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def get_state(self) -> dict[str, Any]:
        """Get current circuit breaker state for monitoring."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
            "last_exception": str(self.last_exception) if self.last_exception else None,
        }


class RetryWithCircuitBreaker:
    """
    Combines retry logic with circuit breaker pattern.

    Transient failures (``retryable_exceptions``) are retried with exponential
    backoff; every other exception surfaces on the first attempt.
    """

    def __init__(
        self,
        circuit_breaker: CircuitBreaker,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        backoff_factor: float = 2.0,
        max_delay: float = 8.0,
        retryable_exceptions: tuple[type[Exception], ...] = (ServiceUnreachable,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize retry with circuit breaker.

        Args:
            circuit_breaker: Circuit breaker to use
            max_attempts: Total attempts including the first call
            initial_delay: Delay before the first retry in seconds
            backoff_factor: Multiplier for delay between retries
            max_delay: Maximum delay between retries
            retryable_exceptions: Exceptions that should trigger retry
            sleep: Awaitable sleep used between attempts
        """
        self.circuit_breaker = circuit_breaker
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.retryable_exceptions = retryable_exceptions
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        return min(self.initial_delay * self.backoff_factor ** (attempt - 1), self.max_delay)

    async def call_async(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Call an async function with retries and circuit breaker.

        Returns:
            Result from the function

        Raises:
            The last retryable exception once all attempts are used, or the
            first non-retryable exception.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.circuit_breaker.call_async(func, *args, **kwargs)
            except self.retryable_exceptions as e:
                if attempt >= self.max_attempts or self.circuit_breaker.state == CircuitState.OPEN:
                    if isinstance(e, ServiceUnreachable):
                        e.details = e.details.model_copy(update={"attempts": attempt})
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} to '{self.circuit_breaker.name}' failed, "
                    f"retrying in {delay:.2f}s",
                    error=str(e),
                )
                await self._sleep(delay)
