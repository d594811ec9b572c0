"""
Health Check API Routes
Service health and status endpoints
"""
from fastapi import APIRouter

from flowcanvas.core.config import get_settings

router = APIRouter(tags=["Health"])

settings = get_settings()


@router.get("/health")
async def health_check():
    """
    Detailed health check endpoint

    Returns service status and configured layout defaults
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "layout": {
            "strategy": settings.DEFAULT_LAYOUT_STRATEGY,
            "direction": settings.DEFAULT_LAYOUT_DIRECTION,
            "branch_offset": settings.BRANCH_OFFSET
        }
    }


@router.get("/ping")
async def ping():
    """
    Simple ping endpoint for load balancers
    """
    return {"status": "ok"}
