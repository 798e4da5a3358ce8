"""Error handling decorators"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from .base import ApplicationError, ErrorLevel
from .error_context import ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def _log_failure(func_name: str, error: Exception, fallback_level: ErrorLevel) -> None:
    """Log ``error`` with its flattened context at the error's own level."""
    level = error.level if isinstance(error, ApplicationError) else fallback_level
    with ErrorContextManager(error) as ctx:
        error_context: dict[str, Any] = {
            "function": func_name,
            "error_context": ctx.to_dict(),
        }
    # Expected failures are logged without a traceback
    logger.log(
        level.to_logging_level(),
        f"Error in {func_name}: {error!s}",
        exc_info=level.to_logging_level() >= ErrorLevel.ERROR.to_logging_level(),
        **error_context,
    )


def with_error_handling(
    error_level: ErrorLevel = ErrorLevel.ERROR,
    reraise: bool = True,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator for logging errors raised by a function.

    ApplicationErrors are logged at their own level; anything else at
    ``error_level``.

    Args:
        error_level: Severity level for unexpected exceptions
        reraise: Whether to re-raise the error after logging it

    Returns:
        Decorated function with error handling
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        original_signature = inspect.signature(func)

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                try:
                    return await cast("Callable[P, Awaitable[T]]", func)(*args, **kwargs)
                except Exception as e:
                    _log_failure(func.__name__, e, error_level)
                    if reraise:
                        raise
                    return cast("T", None)

            async_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
            return cast("Callable[P, T]", async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(func.__name__, e, error_level)
                if reraise:
                    raise
                return cast("T", None)

        sync_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
        return sync_wrapper

    return decorator


def with_session(driver_attr: str = "driver") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to automatically manage Neo4j session lifecycle.

    The session is injected as the first parameter after ``self``.

    Args:
        driver_attr: Name of the attribute containing the AsyncDriver (default: "driver")

    Usage:
        @with_session()
        async def get(self, session, record_id):
            result = await session.run(query, id=record_id)
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if not args:
                raise ValueError(f"{func.__name__} requires at least 'self' argument")

            self_obj = args[0]
            driver = getattr(self_obj, driver_attr, None)

            if driver is None:
                raise AttributeError(
                    f"Object {self_obj.__class__.__name__} has no attribute '{driver_attr}'. "
                    f"Either provide the correct driver_attr or open the store first."
                )

            async with driver.session() as session:
                new_args = (args[0], session) + args[1:]
                return await cast("Callable[..., Awaitable[T]]", func)(*new_args, **kwargs)

        return cast("Callable[P, T]", wrapper)

    return decorator
