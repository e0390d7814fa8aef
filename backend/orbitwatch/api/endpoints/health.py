"""
Health API Endpoint
"""

from fastapi import APIRouter

from orbitwatch.schemas.space import utcnow

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "ok", "now": utcnow()}
