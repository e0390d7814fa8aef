"""
Space telemetry contracts

Canonical shapes shared by the fetchers, the cache, the store and the API.
Upstream payloads are normalized into a Record before anything else sees them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class SourceId(str, Enum):
    ISS = "iss"          # spacecraft position
    OSDR = "osdr"        # biological dataset catalog
    APOD = "apod"        # astronomy picture of the day
    NEO = "neo"          # near-Earth object feed
    DONKI = "donki"      # space weather
    SPACEX = "spacex"    # launch schedule

    @classmethod
    def parse(cls, value: str) -> Optional["SourceId"]:
        """Resolve a source name, case-insensitively. None if unknown."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


NON_POSITION_SOURCES = [s for s in SourceId if s is not SourceId.ISS]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# RECORDS
# =============================================================================


class Record(BaseModel):
    """
    One normalized observation from one source.
    Produced by a SourceFetcher, never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    source: SourceId
    observed_at: datetime
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("observed_at")
    @classmethod
    def _observed_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


@dataclass(frozen=True)
class CacheEntry:
    """Latest record for a source as held in memory."""

    source: SourceId
    value: Record
    cached_at: datetime


class HistoryEntry(BaseModel):
    """A persisted record, as read back from the store."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source: SourceId
    observed_at: datetime
    fetched_at: datetime
    payload: Dict[str, Any]

    @field_validator("observed_at", "fetched_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    def to_record(self) -> Record:
        return Record(source=self.source, observed_at=self.observed_at, payload=self.payload)


# =============================================================================
# API OUTPUT
# =============================================================================


class TrendPoint(BaseModel):
    timestamp: datetime
    lat: float
    lon: float
    alt: Optional[float] = None
    speed_kmh: Optional[float] = None


class TrendResponse(BaseModel):
    source: SourceId = SourceId.ISS
    start: datetime = Field(serialization_alias="from")
    end: datetime = Field(serialization_alias="to")
    points: List[TrendPoint]


class SourceSummary(BaseModel):
    """One-line status for a source."""

    last_fetch: Optional[datetime] = None
    cached_at: Optional[datetime] = None
    status: str  # ok, stale, empty
    interval_seconds: int
    records: int = 0
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    polling: Optional[Dict[str, Any]] = None  # scheduler task state, None when polling is off
