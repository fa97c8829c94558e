"""Health check endpoints.

/health is a plain liveness check. /health/ready also reports which
providers are configured; having none is a degraded but serviceable state
since minutes fall back to keyword heuristics.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from src.listener.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: service initialized plus provider availability."""
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        return {"status": "starting", "providers": [], "active_provider": "None"}

    orchestrator = service.orchestrator
    return {
        "status": "ready" if orchestrator.has_available_provider() else "degraded",
        "providers": [p.name for p in orchestrator.fallback_order()],
        "active_provider": orchestrator.preferred_display_name(),
    }
