"""
NoteForge Backend — Health Check Route
========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Reports whether a provider client is bound. It deliberately does not
       call the provider: probes would burn the user's quota.

Status levels:
    healthy:   a provider client is bound
    degraded:  no key bound; content and tags are served by the fallback
"""

import time

from fastapi import APIRouter, Depends

from noteforge import __version__
from noteforge.dependencies import get_ai_service
from noteforge.schemas.generation import HealthResponse
from noteforge.services.ai_service import AIService

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(service: AIService = Depends(get_ai_service)) -> HealthResponse:
    bound = service.is_bound
    return HealthResponse(
        status="healthy" if bound else "degraded",
        version=__version__,
        provider="bound" if bound else "unbound",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
