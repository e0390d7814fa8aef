"""Global test fixtures."""

import asyncio
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

# Settings() requires DATABASE_URL. This must happen at module load time,
# before any test module imports the config.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
import pytest_asyncio

from orbitwatch.db.database import close_db, init_db, init_engine
from orbitwatch.schemas.space import HistoryEntry, Record, SourceId
from orbitwatch.services.base import PersistenceError, UpstreamFetchError
from orbitwatch.services.ingestion.interface import SourceFetcher


def make_record(
    source: SourceId = SourceId.ISS,
    observed_at: Optional[datetime] = None,
    **payload,
) -> Record:
    return Record(
        source=source,
        observed_at=observed_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        payload=payload,
    )


class FakeFetcher(SourceFetcher):
    """Fetcher that counts calls and can be held open with a gate."""

    def __init__(self, source: SourceId, record: Optional[Record] = None, error: Exception = None):
        self.source = source
        self.record = record or make_record(source, value=1)
        self.error = error
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def fetch(self, source: SourceId) -> Record:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.record


class FakeStore:
    """In-memory stand-in for HistoryStore."""

    def __init__(self, fail: bool = False):
        self.records: List[Record] = []
        self.fail = fail

    async def append(self, record: Record) -> None:
        if self.fail:
            raise PersistenceError("store", "disk full")
        self.records.append(record)

    def _entries(self, source: SourceId) -> List[HistoryEntry]:
        return [
            HistoryEntry(
                id=i,
                source=r.source,
                observed_at=r.observed_at,
                fetched_at=r.observed_at,
                payload=r.payload,
            )
            for i, r in enumerate(self.records, start=1)
            if r.source == source
        ]

    async def latest(self, source: SourceId) -> Optional[HistoryEntry]:
        entries = sorted(self._entries(source), key=lambda e: (e.observed_at, e.id))
        return entries[-1] if entries else None

    async def count(self, source: SourceId) -> int:
        return len(self._entries(source))

    async def query_range(self, source, start, end, limit=None) -> List[HistoryEntry]:
        entries = [e for e in self._entries(source) if start <= e.observed_at <= end]
        entries.sort(key=lambda e: (e.observed_at, e.id))
        return entries[:limit] if limit else entries


def failing_fetcher(source: SourceId) -> FakeFetcher:
    return FakeFetcher(source, error=UpstreamFetchError(f"{source.value}-fetcher", "HTTP 503"))


@pytest.fixture
def fake_fetchers() -> Dict[SourceId, FakeFetcher]:
    return {s: FakeFetcher(s, make_record(s, value=s.value)) for s in SourceId}


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest_asyncio.fixture
async def sqlite_db():
    """Fresh in-memory SQLite schema per test."""
    await close_db()
    init_engine("sqlite+aiosqlite://")
    await init_db()
    yield
    await close_db()
