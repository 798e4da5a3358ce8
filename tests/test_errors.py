"""Tests for the error taxonomy, error context and logging context."""

import pytest

from memorai.core.base import ErrorCode, ValidationErrorDetails
from memorai.core.decorators import with_error_handling
from memorai.core.error_context import ErrorContext
from memorai.core.errors import (
    InsufficientData,
    InvalidResponse,
    NotFoundError,
    ServiceError,
    ServiceUnreachable,
    StorageError,
    ValidationError,
)
from memorai.core.handlers import status_for
from memorai.core.logging import (
    clear_log_context,
    get_log_context,
    set_log_context,
    setup_logging,
    update_log_context,
)


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (ValidationError("bad"), 400),
        (NotFoundError("gone"), 404),
        (InsufficientData("empty"), 404),
        (ServiceUnreachable("down"), 503),
        (ServiceError("500 from upstream"), 502),
        (InvalidResponse("garbled"), 502),
        (StorageError("disk"), 500),
    ],
)
def test_status_mapping(error, status):
    assert status_for(error) == status


def test_every_error_code_is_raised_by_some_error():
    raised = {
        type_("x").code
        for type_ in (
            ValidationError,
            NotFoundError,
            InsufficientData,
            ServiceUnreachable,
            ServiceError,
            InvalidResponse,
            StorageError,
        )
    }
    # the two request-level codes come from the HTTP handlers
    assert raised | {ErrorCode.INVALID_REQUEST, ErrorCode.PROCESSING_FAILED} == set(ErrorCode)


def test_dict_details_are_converted():
    error = NotFoundError("gone", details={"source": "repo", "operation": "get", "memory_id": "abc"})
    assert error.details.source == "repo"
    assert error.details.model_dump()["memory_id"] == "abc"


def test_error_context_flattens_details_and_context():
    error = ValidationError(
        "limit must be positive",
        details=ValidationErrorDetails(source="query_engine", operation="search", field="limit", actual_value=0),
    )

    flat = ErrorContext(error, trace_id="t-1", path="/v1/search").to_dict()

    assert flat["error_type"] == "ValidationError"
    assert flat["error_code"] == ErrorCode.INVALID_INPUT.value
    assert flat["trace_id"] == "t-1"
    assert flat["details.field"] == "limit"
    assert flat["context.path"] == "/v1/search"


class TestWithErrorHandling:
    async def test_async_reraises(self):
        @with_error_handling()
        async def explode():
            raise StorageError("disk full")

        with pytest.raises(StorageError):
            await explode()

    def test_sync_can_swallow(self):
        @with_error_handling(reraise=False)
        def explode():
            raise RuntimeError("boom")

        assert explode() is None


class TestLogContext:
    def test_set_update_clear(self):
        set_log_context(request_id="r-1")
        update_log_context("path", "/health")
        assert get_log_context() == {"request_id": "r-1", "path": "/health"}

        clear_log_context()
        assert get_log_context() == {}

    def test_setup_logging_accepts_unknown_level(self):
        setup_logging(level="not-a-level", colors=False)
