"""Request-scoped logging context.

Values bound here are merged into every log event emitted on the same task
by ``structlog.contextvars.merge_contextvars`` (see ``setup_logging``).
"""

from typing import Any

import structlog


def get_log_context() -> dict[str, Any]:
    """Return a copy of the context bound to the current task."""
    return dict(structlog.contextvars.get_contextvars())


def set_log_context(**context: Any) -> None:
    """Replace the current context with ``context``."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)


def update_log_context(key: str, value: Any) -> None:
    """Update a single key in the logging context."""
    structlog.contextvars.bind_contextvars(**{key: value})


def clear_log_context() -> None:
    """Clear the current logging context."""
    structlog.contextvars.clear_contextvars()
