"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics,
health checks and the research routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from research_engine import __version__
from research_engine.api.routes import router
from research_engine.config import get_settings
from research_engine.exceptions import ErrorCode, ResearchEngineError
from research_engine.logging_config import get_logger, setup_logging
from research_engine.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from research_engine.rag.pipeline import build_research_assistant

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the shared assistant on startup and closes its clients on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting Equity Research Engine",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    app.state.assistant = build_research_assistant(settings)

    yield

    logger.info("Shutting down Equity Research Engine")
    await app.state.assistant.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Equity Research Engine",
        description="Retrieval-augmented chat and equity research report synthesis",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ResearchEngineError, research_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Health"])

    app.include_router(router)

    return app


async def research_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert ResearchEngineError to a structured JSON response."""
    if not isinstance(exc, ResearchEngineError):
        return await unhandled_exception_handler(request, exc)

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code.value),
        content=exc.to_dict(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Log the full error and return a generic 500."""
    logger.exception(
        f"Unhandled error: {exc}",
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "Internal server error",
                "details": {},
            }
        },
    )


def _get_status_code(error_code: str) -> int:
    """Map error code to HTTP status code."""
    # Validation errors -> 400
    if error_code in ("RES-1002", "RES-4002"):
        return 400

    # Not found errors -> 404
    if error_code in ("RES-2000",):
        return 404

    # Conflict errors -> 409
    if error_code in ("RES-4003",):
        return 409

    # Unprocessable documents -> 422
    if error_code in ("RES-2001",):
        return 422

    # Rate limit -> 429
    if error_code in ("RES-5002",):
        return 429

    # Timeout -> 504
    if error_code in ("RES-3001", "RES-5001"):
        return 504

    return 500


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Readiness probe.

    The service is ready once the assistant exists; mock providers still
    count as ready.

    Returns:
        Readiness status with component checks.
    """
    assistant = getattr(request.app.state, "assistant", None)
    checks: dict[str, str] = {
        "config": "ok",
        "corpus": "ok" if assistant is not None else "not_loaded",
    }
    if assistant is not None:
        checks["llm"] = assistant.llm_client.mode
        checks["embedding"] = assistant.embedding_service.mode

    all_ok = checks["corpus"] == "ok"

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


app = create_app()
