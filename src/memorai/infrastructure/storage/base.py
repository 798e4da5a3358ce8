"""Storage collaborator contract shared by every backend."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from functools import wraps
from typing import Any, Protocol, TypeVar, cast, runtime_checkable

from memorai.core.base import StorageErrorDetails
from memorai.core.errors import StorageError

T = TypeVar("T")

Record = dict[str, Any]


def created_at_key(record: Record) -> str:
    """Fixed-width UTC timestamp for ordering records by ``created_at``.

    Serialized timestamps drop the fraction on whole seconds, so the raw
    strings do not sort chronologically.
    """
    created = datetime.fromisoformat(record["created_at"])
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return created.astimezone(UTC).isoformat(timespec="microseconds")


@runtime_checkable
class MemoryStore(Protocol):
    """Durable key-value store for memory records.

    Records are JSON-safe dicts carrying at least ``id`` and ``created_at``.
    Each operation is atomic on its own; there are no multi-record transactions.
    """

    backend: str

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def put(self, record_id: str, record: Record) -> None: ...

    async def get(self, record_id: str) -> Record | None: ...

    async def delete(self, record_id: str) -> bool: ...

    async def scan(self) -> list[Record]:
        """All records, oldest ``created_at`` first."""
        ...


def translate_errors(
    operation: str,
    *error_types: type[BaseException],
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Re-raise driver exceptions from a store method as StorageError.

    The record id is taken from the first positional argument when it is a string.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return await func(self, *args, **kwargs)
            except error_types as e:
                record_id = args[0] if args and isinstance(args[0], str) else None
                raise StorageError(
                    message=f"{self.backend} {operation} failed: {e}",
                    details=StorageErrorDetails(
                        source=type(self).__name__,
                        operation=operation,
                        backend=self.backend,
                        record_id=record_id,
                    ),
                ) from e

        return cast("Callable[..., Awaitable[T]]", wrapper)

    return decorator


def not_open_error(store: Any, operation: str) -> StorageError:
    return StorageError(
        message=f"{store.backend} store is not open",
        details=StorageErrorDetails(source=type(store).__name__, operation=operation, backend=store.backend),
    )
