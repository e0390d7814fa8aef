"""
Ingestion Service

CONTRACT:
    Input:  SourceId
    Output: Record

RESPONSIBILITIES:
    - Fetch the ISS position from wheretheiss.at
    - Fetch the OSDR dataset catalog, APOD, NEO feed and DONKI from NASA
    - Fetch the next SpaceX launch
    - Normalize all payloads to Record
    - Write through to the record cache, then append to history
"""

from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.registry import build_fetchers
from orbitwatch.services.ingestion.service import (
    IngestionService,
    SourceStatus,
    get_ingestion_service,
    set_ingestion_service,
)

__all__ = [
    "SourceFetcher",
    "build_fetchers",
    "IngestionService",
    "SourceStatus",
    "get_ingestion_service",
    "set_ingestion_service",
]
