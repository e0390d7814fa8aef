"""
API Router

All HTTP endpoints, mounted at the root and gated by the global rate limit.
"""

from fastapi import APIRouter

from orbitwatch.api.endpoints import health, iss, osdr, space

router = APIRouter()

# Include all endpoint routers
router.include_router(health.router, tags=["Health"])
router.include_router(iss.router, tags=["ISS Position"])
router.include_router(osdr.router, prefix="/osdr", tags=["OSDR Datasets"])
router.include_router(space.router, prefix="/space", tags=["Space Sources"])
