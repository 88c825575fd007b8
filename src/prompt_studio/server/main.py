"""FastAPI application factory and server entry point."""

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware

from prompt_studio import __version__
from prompt_studio.config import Settings, get_settings
from prompt_studio.exceptions import StudioException
from prompt_studio.orchestrator import HealthTracker, ModelRegistry, OpenRouterTransport, Orchestrator
from prompt_studio.server.routes import health_router, llm_router
from prompt_studio.telemetry import RequestContext, metrics_collector, setup_logging

logger = structlog.get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to all requests."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        with RequestContext(request_id):
            start_time = time.time()
            response = await call_next(request)
            process_time = time.time() - start_time

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(process_time)

            logger.info(
                "Request processed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                process_time=process_time,
            )

        return response


def build_orchestrator(settings: Settings, http_client: httpx.AsyncClient | None = None) -> Orchestrator:
    """Wire registry, health tracker and transport into an orchestrator."""
    health = HealthTracker()
    transport = OpenRouterTransport(settings, health, client=http_client)
    return Orchestrator(
        registry=ModelRegistry.from_settings(settings),
        health=health,
        transport=transport,
        default_timeout_ms=settings.request_timeout_ms,
        default_deadline_ms=settings.orchestration_deadline_ms,
    )


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting Prompt Studio", version=__version__, environment=settings.environment)
        orchestrator = build_orchestrator(settings, http_client)
        logger.info("Model registry loaded", models=orchestrator.registry.identifiers())
        app.state.settings = settings
        app.state.orchestrator = orchestrator
        app.state.transport = orchestrator.transport

        yield

        logger.info("Shutting down Prompt Studio")
        await orchestrator.transport.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Prompt studio backend with multi-provider LLM fallback",
        version=__version__,
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(StudioException)
    async def studio_exception_handler(request: Request, exc: StudioException):
        """Render application errors with their own status code."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "Request failed",
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
        )
        content = exc.to_dict()
        content["request_id"] = request_id
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning("Validation error", errors=str(exc.errors()), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": True,
                "message": "Invalid request body",
                "details": jsonable_encoder(exc.errors()),
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": str(exc) or "Unknown server error",
                "timestamp": datetime.utcnow().isoformat(),
            },
        )

    app.include_router(llm_router, prefix=f"{settings.api_prefix}/llm", tags=["llm"])
    app.include_router(health_router, prefix=f"{settings.api_prefix}/health", tags=["health"])

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=metrics_collector.export(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/")
    async def root():
        return {
            "message": "Prompt Studio API",
            "version": __version__,
            "docs": "/docs",
            "llm": f"{settings.api_prefix}/llm",
            "health": f"{settings.api_prefix}/health",
        }

    return app


def start_server(host: str | None = None, port: int | None = None, reload: bool = False):
    """Start the server programmatically."""
    settings = get_settings()
    reload = reload or settings.reload
    uvicorn.run(
        "prompt_studio.server.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
        reload=reload,
        workers=settings.workers if not reload else 1,
    )


if __name__ == "__main__":
    start_server()
