"""
ISS Position API Endpoints

Latest position, forced refresh and position trend with derived speed.
"""

from typing import Optional

from fastapi import APIRouter, Query

from orbitwatch.api.params import resolve_range
from orbitwatch.schemas.space import SourceId, TrendResponse
from orbitwatch.services.ingestion import get_ingestion_service
from orbitwatch.services.trend import build_trend

router = APIRouter()


@router.get("/last")
async def last_position():
    """
    Latest ISS position.

    Returns an empty object when no position has ever been fetched.
    """
    service = get_ingestion_service()
    record = await service.latest(SourceId.ISS)
    return record.model_dump(mode="json") if record else {}


@router.get("/fetch")
async def fetch_position():
    """Fetch the ISS position now, bypassing the schedule."""
    service = get_ingestion_service()
    record = await service.refresh(SourceId.ISS)
    return record.model_dump(mode="json")


@router.get("/iss/trend", response_model=TrendResponse)
async def position_trend(
    start: Optional[str] = Query(default=None, alias="from", description="Unix seconds or ISO-8601"),
    end: Optional[str] = Query(default=None, alias="to", description="Unix seconds or ISO-8601"),
    limit: int = Query(default=5000, ge=1, le=50000),
):
    """
    Stored positions in [from, to], oldest first, with speed (km/h)
    derived from the great-circle distance to the previous point.
    """
    start_at, end_at = resolve_range(start, end)

    service = get_ingestion_service()
    entries = await service.store.query_range(SourceId.ISS, start_at, end_at, limit)

    return TrendResponse(start=start_at, end=end_at, points=build_trend(entries))
