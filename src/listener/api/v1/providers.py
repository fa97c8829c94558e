"""Provider selection endpoints.

Switching the preferred provider takes effect on the next call. Refresh
re-reads the settings (API keys, preferred provider, timeout) and rebuilds
the provider clients in place.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

import structlog

from src.listener.config import get_settings
from src.listener.core.errors import UnknownProvider
from src.listener.providers.orchestrator import ProviderOrchestrator

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


class ProvidersResponse(BaseModel):
    providers: list[str]
    preferred: str | None
    active_provider: str


class PreferredProviderRequest(BaseModel):
    name: str | None = None


def _get_orchestrator(request: Request) -> ProviderOrchestrator:
    """Orchestrator of the session service on app.state, 503 if not available."""
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session service not initialized",
        )
    return service.orchestrator


def _describe(orchestrator: ProviderOrchestrator) -> ProvidersResponse:
    return ProvidersResponse(
        providers=[p.name for p in orchestrator.fallback_order()],
        preferred=orchestrator.preferred,
        active_provider=orchestrator.preferred_display_name(),
    )


@router.get("/", response_model=ProvidersResponse)
async def list_providers(
    orchestrator: ProviderOrchestrator = Depends(_get_orchestrator),
) -> ProvidersResponse:
    return _describe(orchestrator)


@router.put("/preferred", response_model=ProvidersResponse)
async def set_preferred_provider(
    body: PreferredProviderRequest,
    orchestrator: ProviderOrchestrator = Depends(_get_orchestrator),
) -> ProvidersResponse:
    """Choose the provider tried first; null restores registration order."""
    try:
        orchestrator.set_preferred(body.name)
    except UnknownProvider as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _describe(orchestrator)


@router.post("/refresh", response_model=ProvidersResponse)
async def refresh_providers(
    orchestrator: ProviderOrchestrator = Depends(_get_orchestrator),
) -> ProvidersResponse:
    """Reload settings from the environment and rebuild provider clients."""
    get_settings.cache_clear()
    orchestrator.refresh(get_settings())
    logger.info("providers.refreshed", providers=[p.name for p in orchestrator.providers])
    return _describe(orchestrator)
