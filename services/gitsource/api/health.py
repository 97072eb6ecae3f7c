"""
Health endpoints.

/health answers as long as the process serves requests. /ready also reports
which ref fetcher backs discovery and how many discovery results are cached,
so a rollout can tell a cold replica from a warm one.
"""

from typing import Any

from fastapi import APIRouter, Response, status

from gitsource.logging_config import get_logger
from gitsource.services.discovery_service import DiscoveryService, get_discovery_service_or_none

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


def discovery_status(service: DiscoveryService) -> dict[str, Any]:
    fetcher = service.fetcher
    return {
        "fetcher": type(fetcher).__name__,
        "symbolic_ref_names": fetcher.supports_symbolic_ref_names,
        "cached_results": len(service.cache),
    }


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(response: Response) -> dict[str, Any]:
    """Ready once init_discovery() has run during startup."""
    service = get_discovery_service_or_none()
    if service is None:
        logger.warning("Readiness check failed", discovery="not initialized")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready", "discovery": None}

    return {"status": "ready", "discovery": discovery_status(service)}
