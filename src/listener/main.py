"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, a
lifespan that builds the session service, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.listener.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.listener.api.v1.router import router as v1_router
from src.listener.config import get_settings
from src.listener.core.monitoring import MetricsMiddleware, get_metrics_response
from src.listener.sessions.service import MeetingSessionService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the session service, stop its tasks on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    # Tests may install their own service before startup.
    if getattr(app.state, "session_service", None) is None:
        app.state.session_service = MeetingSessionService.from_settings(settings)
    service: MeetingSessionService = app.state.session_service
    log.info(
        "listener.started",
        environment=settings.ENVIRONMENT.value,
        providers=[p.name for p in service.orchestrator.fallback_order()],
    )

    yield

    await service.shutdown()
    log.info("listener.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meeting Listener API",
        version="0.1.0",
        description="Live meeting context, question answering and minutes",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
