"""
Health check route for the backend
"""

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter()


@router.get("/api/health")
async def health_check():
    """Health check endpoint polled by the gateway readiness gate"""
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
