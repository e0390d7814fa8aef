"""
OrbitWatch Schema Contracts

Shapes passed between the fetchers, the cache, the store and the API.
"""

from orbitwatch.schemas.space import (
    SourceId,
    NON_POSITION_SOURCES,
    Record,
    CacheEntry,
    HistoryEntry,
    TrendPoint,
    TrendResponse,
    SourceSummary,
)

__all__ = [
    "SourceId",
    "NON_POSITION_SOURCES",
    "Record",
    "CacheEntry",
    "HistoryEntry",
    "TrendPoint",
    "TrendResponse",
    "SourceSummary",
]
