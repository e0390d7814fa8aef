"""
Space Sources API Endpoints

Latest record, history, bulk refresh and status summary for any source.
"""

import logging
from datetime import timedelta
from typing import Dict, Optional

from fastapi import APIRouter, Query, Request

from orbitwatch.api.params import resolve_range, resolve_source
from orbitwatch.schemas.space import NON_POSITION_SOURCES, SourceId, SourceSummary, utcnow
from orbitwatch.services.base import PersistenceError, ServiceError
from orbitwatch.services.ingestion import get_ingestion_service
from orbitwatch.services.scheduler import get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter()

# A cached value older than this many intervals is reported as stale
STALE_AFTER_INTERVALS = 2


@router.get("/refresh")
async def refresh_sources(
    src: Optional[str] = Query(default=None, description="Comma-separated sources (default: all but iss)"),
):
    """
    Refresh sources now. Each source reports its record, or an error entry
    if its upstream failed.
    """
    if src:
        sources = [resolve_source(name) for name in src.split(",") if name.strip()]
    else:
        sources = list(NON_POSITION_SOURCES)

    service = get_ingestion_service()
    results = await service.refresh_many(sources)

    out: Dict[str, dict] = {}
    for source, result in results.items():
        if isinstance(result, ServiceError):
            out[source.value] = {"error": result.message}
        else:
            out[source.value] = result.model_dump(mode="json")
    return out


@router.get("/summary")
async def summary(request: Request):
    """One status line per source."""
    service = get_ingestion_service()
    intervals = request.app.state.settings.schedule_config()
    now = utcnow()
    scheduler = get_scheduler()
    polling = scheduler.status() if scheduler is not None else {}

    out: Dict[str, SourceSummary] = {}
    for source in SourceId:
        entry = service.cached(source)
        status = service.status(source)
        interval = intervals[source]

        try:
            records = await service.store.count(source)
        except PersistenceError as e:
            logger.warning(f"Count for {source.value} failed: {e}")
            records = 0

        if entry is None:
            state = "empty"
        elif now - entry.cached_at > timedelta(seconds=interval * STALE_AFTER_INTERVALS):
            state = "stale"
        else:
            state = "ok"

        out[source.value] = SourceSummary(
            last_fetch=status.last_success or (entry.cached_at if entry else None),
            cached_at=entry.cached_at if entry else None,
            status=state,
            interval_seconds=interval,
            records=records,
            last_error=status.last_error or status.last_persist_error,
            consecutive_failures=status.consecutive_failures,
            polling=polling.get(source.value),
        )
    return out


@router.get("/{source}/latest")
async def latest_record(source: str):
    """Latest record for a source; empty object if none yet, 404 if unknown."""
    source_id = resolve_source(source)
    service = get_ingestion_service()
    record = await service.latest(source_id)
    return record.model_dump(mode="json") if record else {}


@router.get("/{source}/history")
async def source_history(
    source: str,
    start: Optional[str] = Query(default=None, alias="from"),
    end: Optional[str] = Query(default=None, alias="to"),
    limit: int = Query(default=500, ge=1, le=5000),
):
    """Stored records for a source in [from, to], oldest first."""
    source_id = resolve_source(source)
    start_at, end_at = resolve_range(start, end)

    service = get_ingestion_service()
    entries = await service.store.query_range(source_id, start_at, end_at, limit)
    return {
        "source": source_id.value,
        "from": start_at,
        "to": end_at,
        "items": [e.model_dump(mode="json") for e in entries],
    }
