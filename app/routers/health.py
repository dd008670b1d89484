"""
Health check endpoints.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from typing import Dict, Any

from app.config import get_settings
from app.dependencies import get_service_factory
from app.services.service_factory import ServiceFactory
from app.utils.logger import get_logger
from app.utils.time_utils import utc_now

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "Interview Coach API"
SERVICE_VERSION = "1.0.0"


@router.get("/", response_model=Dict[str, Any])
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/detailed", response_model=Dict[str, Any])
async def detailed_health_check(factory: ServiceFactory = Depends(get_service_factory)):
    """Detailed health check: storage backend and analysis collaborator."""
    checks = await factory.health()
    healthy = all(checks.values())
    if not healthy:
        logger.warning(f"Health check degraded: {checks}")

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utc_now().isoformat(),
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "backends": get_settings().configured_backends,
        "checks": {
            name: {"status": "healthy" if ok else "unhealthy"} for name, ok in checks.items()
        },
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
