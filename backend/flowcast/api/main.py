"""
Flowcast - FastAPI Application
==============================

Main application factory with routers and middleware.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowcast.api import notifications
from flowcast.core.config import settings
from flowcast.core.log_setup import configure_logging
from flowcast.core.notify.dispatcher import NotificationDispatcher
from flowcast.core.notify.repository import InMemoryWorkflowRepository, WorkflowRepository
from flowcast.core.schemas import ErrorResponse, HealthResponse

configure_logging(settings)

logger = structlog.get_logger()


# ==========================================================================
# Lifespan
# ==========================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Startup: create the webhook dispatcher unless one was injected.
    Shutdown: close its HTTP connection pool.
    """
    logger.info("Starting Flowcast", version=settings.APP_VERSION)

    if app.state.dispatcher is None:
        app.state.dispatcher = NotificationDispatcher.create(
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS
        )

    yield

    logger.info("Shutting down Flowcast")
    await close_owned_dispatcher(app)


async def close_owned_dispatcher(app: FastAPI) -> None:
    """Close the dispatcher if the app created it, whenever it was created."""
    if app.state.owns_dispatcher and app.state.dispatcher is not None:
        await app.state.dispatcher.aclose()
        app.state.dispatcher = None


# ==========================================================================
# App Factory
# ==========================================================================

def create_app(
    repository: Optional[WorkflowRepository] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        repository: Workflow/task lookup; defaults to an empty in-memory store
        dispatcher: Webhook dispatcher; created at startup when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Workflow task notifications for chat robots",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.repository = repository or InMemoryWorkflowRepository()
    app.state.dispatcher = dispatcher
    app.state.owns_dispatcher = dispatcher is None

    # ==========================================================================
    # Middleware
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )

        if settings.is_development:
            detail = str(exc)
        else:
            detail = "An unexpected error occurred"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal Server Error",
                detail=detail,
                code="INTERNAL_ERROR",
            ).model_dump(),
        )

    # ==========================================================================
    # Routers
    # ==========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

    app.include_router(notifications.router, prefix=settings.API_V1_PREFIX)

    return app


# ==========================================================================
# Application Instance
# ==========================================================================

app = create_app()


# ==========================================================================
# Development Server
# ==========================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flowcast.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="info",
    )
