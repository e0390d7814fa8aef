"""
OSDR Dataset Catalog API Endpoints
"""

from fastapi import APIRouter

from orbitwatch.schemas.space import SourceId
from orbitwatch.services.ingestion import get_ingestion_service

router = APIRouter()


@router.get("/sync")
async def sync_catalog():
    """Refresh the dataset catalog now and return the new snapshot."""
    service = get_ingestion_service()
    record = await service.refresh(SourceId.OSDR)
    return record.model_dump(mode="json")


@router.get("/list")
async def list_catalog():
    """Latest dataset catalog snapshot, or an empty object."""
    service = get_ingestion_service()
    record = await service.latest(SourceId.OSDR)
    return record.model_dump(mode="json") if record else {}
