from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import logging

from gws.api.deps import get_services
from gws.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {"status": "healthy", "service": "gws-ops-hub"}


@router.get("/ready")
def readiness_check(services: Services = Depends(get_services)):
    checks = {
        "recordStore": bool(getattr(services.record_store, "configured", True)),
        "linkStore": services.short_links.backend,
    }
    try:
        services.short_links.stats()
    except Exception:
        logger.exception("Readiness check: link store unavailable")
        checks["linkStore"] = "unavailable"

    ready = checks["recordStore"] and checks["linkStore"] != "unavailable"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
