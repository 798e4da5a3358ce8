"""Error handlers that turn application errors into HTTP responses"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from memorai.core.logging import get_logger

from .base import ApplicationError, ErrorCode, ErrorLevel
from .error_context import ErrorContext, ErrorContextManager

logger = get_logger(__name__)

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INSUFFICIENT_DATA: status.HTTP_404_NOT_FOUND,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.EMBEDDING_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.INVALID_RESPONSE: status.HTTP_502_BAD_GATEWAY,
}


def status_for(error: ApplicationError) -> int:
    """HTTP status for an application error; unknown codes are server faults."""
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ErrorHandler:
    """Base class for error handlers"""

    def __init__(self, context_manager: ErrorContextManager | None = None):
        self.context_manager = context_manager or ErrorContextManager()

    def _format_response(
        self,
        error_context: ErrorContext,
        level: ErrorLevel,
        error_code: ErrorCode = ErrorCode.PROCESSING_FAILED,
    ) -> dict[str, Any]:
        """Format error response"""
        response: dict[str, Any] = {
            "error": str(error_context.error),
            "error_code": error_code.value,
            "level": level.value,
            "trace_id": error_context.trace_id,
            "timestamp": error_context.timestamp.isoformat(),
        }

        # Include rich structured data if it's an ApplicationError
        if isinstance(error_context.error, ApplicationError):
            response["error_code"] = error_context.error.code.value
            response["details"] = error_context.error.details.model_dump(mode="json")

        return response


class GlobalErrorHandler(ErrorHandler):
    """Global error handler for the FastAPI application"""

    async def handle_application_error(self, request: Request, error: ApplicationError) -> JSONResponse:
        """Map ApplicationError subclasses to 4xx/5xx responses."""
        status_code = status_for(error)
        error_context = self.context_manager.capture_context(error, path=request.url.path)
        log = logger.error if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
        log(
            f"{request.method} {request.url.path} failed: {error.message}",
            status_code=status_code,
            trace_id=error_context.trace_id,
            error_code=error.code.value,
        )
        return JSONResponse(
            status_code=status_code,
            content=self._format_response(error_context, error.level),
        )

    async def handle_request_validation(self, request: Request, error: RequestValidationError) -> JSONResponse:
        """Malformed query/body parameters are caller errors (400), not 422."""
        error_context = self.context_manager.capture_context(error, path=request.url.path)
        body = self._format_response(error_context, ErrorLevel.WARNING, ErrorCode.INVALID_REQUEST)
        body["details"] = {"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in error.errors()]}
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    async def handle_http_exception(self, request: Request, error: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions"""
        level = (
            ErrorLevel.ERROR
            if error.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else ErrorLevel.WARNING
        )
        error_context = self.context_manager.capture_context(error, status_code=error.status_code)
        body = self._format_response(error_context, level)
        body["error"] = error.detail
        return JSONResponse(status_code=error.status_code, content=body, headers=error.headers)

    def install(self, app: FastAPI) -> None:
        """Register the handlers on ``app``."""
        app.add_exception_handler(ApplicationError, self.handle_application_error)  # type: ignore[arg-type]
        app.add_exception_handler(RequestValidationError, self.handle_request_validation)  # type: ignore[arg-type]
        app.add_exception_handler(HTTPException, self.handle_http_exception)  # type: ignore[arg-type]
