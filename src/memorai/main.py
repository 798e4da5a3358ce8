"""memorai FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

import logfire
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_mcp import FastApiMCP

from memorai import __version__
from memorai.api import dependencies
from memorai.api.endpoints import core, memory
from memorai.core.config import Settings, settings
from memorai.core.handlers import GlobalErrorHandler
from memorai.core.logging import clear_log_context, get_logger, set_log_context, setup_logging
from memorai.services.memory_service import MemoryService

logger = get_logger(__name__)


def configure_observability(app_settings: Settings) -> None:
    """Configure Logfire (exports only when a token is set) and structlog."""
    token = app_settings.logfire_token.get_secret_value() if app_settings.logfire_token else None
    logfire.configure(
        service_name="memorai",
        service_version=__version__,
        token=token,
        send_to_logfire="if-token-present",
        console=False,
    )
    setup_logging(level=app_settings.log_level)


def create_app(app_settings: Settings = settings, service: MemoryService | None = None) -> FastAPI:
    """Build the application.

    Args:
        app_settings: Settings for storage, the Ollama gateway and limits
        service: Pre-built memory service; when omitted one is created from ``app_settings`` at startup
    """
    configure_observability(app_settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
        logger.info("Starting memorai...")
        memory_service = service if service is not None else MemoryService.from_settings(app_settings)
        try:
            await memory_service.open()
            logger.info(
                f"Loaded {len(memory_service.index)} memories into the similarity index",
                backend=memory_service.store.backend,
            )
            dependencies.memory_service = memory_service
            yield
        except Exception as e:
            logger.error(f"Failed to start memorai: {e}", exc_info=True)
            raise
        finally:
            logger.info("Shutting down memorai...")
            dependencies.memory_service = None
            await memory_service.close()
            logger.info("memorai shutdown complete")

    app = FastAPI(
        title="memorai",
        description="Local semantic memory store with vector search and profile generation",
        version=__version__,
        lifespan=lifespan,
    )

    GlobalErrorHandler().install(app)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid4().hex
        set_log_context(request_id=request_id, method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers["X-Request-ID"] = request_id
        return response

    logfire.instrument_fastapi(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(core.router)
    app.include_router(memory.router, prefix="/v1", tags=["memory"])

    if app_settings.enable_mcp:
        # Exposes the memory routes as MCP tools at /mcp
        mcp = FastApiMCP(app, name="memorai", exclude_operations=["health"])
        mcp.mount_http()

    return app


app = create_app(settings)


def run(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Serve the application with uvicorn."""
    uvicorn.run(
        "memorai.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
