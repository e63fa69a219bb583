"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/ingestion", status_code=status.HTTP_200_OK)
async def health_ingestion(request: Request) -> dict:
    """Check the telemetry ingestion API the simulator reports to."""
    client = getattr(request.app.state, "ingestion_client", None)
    if client is None:
        return {
            "service": "ingestion",
            "configured": False,
            "healthy": False,
            "message": "Ingestion API not configured. Set FLEETSIM_INGESTION_BASE_URL.",
        }
    result = await client.check_health()
    request.app.state.ingestion_online = result.success
    payload = {
        "service": "ingestion",
        "configured": True,
        "base_url": settings.ingestion_base_url,
        "healthy": result.success,
        "status_code": result.status_code,
    }
    if result.error:
        payload["error"] = result.error
    return payload
