"""
Health check route for the gateway
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Local liveness check, independent of backend health"""
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": request.app.state.settings.environment
    }
