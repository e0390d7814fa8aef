"""
Ingestion Service Implementation

One refresh cycle per call: fetch upstream, write through to the cache, then
append to history. Used identically by scheduled ticks and refresh endpoints;
the cache's single-flight guard makes concurrent refreshes of the same source
share one cycle.

If the append fails the cache keeps the new value: the cache reflects the
last observation, the store the last durable one, and the two may briefly
diverge.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Union

from orbitwatch.db.store import HistoryStore
from orbitwatch.schemas.space import CacheEntry, Record, SourceId, utcnow
from orbitwatch.services.base import PersistenceError, ServiceError, UpstreamFetchError
from orbitwatch.services.cache.record_cache import RecordCache
from orbitwatch.services.ingestion.interface import SourceFetcher

logger = logging.getLogger(__name__)


@dataclass
class SourceStatus:
    """Outcome bookkeeping for one source."""

    last_attempt: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_error: Optional[str] = None
    last_persist_error: Optional[str] = None
    consecutive_failures: int = 0


class IngestionService:
    """
    Refresh and read the latest record of every source.

    Usage:
        service = IngestionService(fetchers, cache, store)
        record = await service.refresh(SourceId.ISS)       # raises on failure
        record = await service.latest(SourceId.ISS)       # never raises, may be None
    """

    def __init__(
        self,
        fetchers: Dict[SourceId, SourceFetcher],
        cache: RecordCache,
        store: HistoryStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._fetchers = fetchers
        self._cache = cache
        self._store = store
        self._clock = clock
        self._status: Dict[SourceId, SourceStatus] = {s: SourceStatus() for s in fetchers}

    @property
    def cache(self) -> RecordCache:
        return self._cache

    @property
    def store(self) -> HistoryStore:
        return self._store

    def status(self, source: SourceId) -> SourceStatus:
        return self._status[source]

    def cached(self, source: SourceId) -> Optional[CacheEntry]:
        return self._cache.get(source)

    # ============ Refresh cycle ============

    async def refresh(self, source: SourceId) -> Record:
        """
        Fetch, cache and persist one source.
        Raises UpstreamFetchError; persistence failures are logged, not raised.
        """
        return await self._cache.refresh(source, self._fetch, on_published=self._persist)

    async def refresh_many(
        self, sources: Iterable[SourceId]
    ) -> Dict[SourceId, Union[Record, ServiceError]]:
        """Refresh several sources concurrently; failures are returned, not raised."""
        sources = list(sources)
        results = await asyncio.gather(
            *(self.refresh(s) for s in sources), return_exceptions=True
        )

        out: Dict[SourceId, Union[Record, ServiceError]] = {}
        for source, result in zip(sources, results):
            if isinstance(result, ServiceError):
                out[source] = result
            elif isinstance(result, Exception):
                logger.error(
                    f"Unexpected error refreshing {source.value}",
                    exc_info=(type(result), result, result.__traceback__),
                )
                out[source] = UpstreamFetchError(
                    f"{source.value}-fetcher", f"Unexpected error: {result!r}"
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                out[source] = result
        return out

    async def _fetch(self, source: SourceId) -> Record:
        status = self._status[source]
        status.last_attempt = self._clock()

        try:
            record = await self._fetchers[source].fetch(source)
        except UpstreamFetchError as e:
            self._record_failure(source, e)
            raise
        except ServiceError as e:
            self._record_failure(source, e)
            raise UpstreamFetchError(e.service_name, e.message, e.details) from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            # Payload shape surprises inside an adapter
            err = UpstreamFetchError(f"{source.value}-fetcher", f"Unparsable payload: {e}")
            self._record_failure(source, err)
            raise err from e

        status.last_success = self._clock()
        status.last_error = None
        status.consecutive_failures = 0
        return record

    def _record_failure(self, source: SourceId, error: Exception) -> None:
        status = self._status[source]
        status.last_error = str(error)
        status.consecutive_failures += 1

    async def _persist(self, record: Record) -> None:
        try:
            await self._store.append(record)
        except PersistenceError as e:
            self._status[record.source].last_persist_error = str(e)
            logger.error(f"Cached {record.source.value} but could not persist it: {e}")
            return
        self._status[record.source].last_persist_error = None
        logger.info(f"Stored {record.source.value} observed at {record.observed_at.isoformat()}")

    # ============ Reads ============

    async def latest(self, source: SourceId) -> Optional[Record]:
        """
        Latest known record for a source.

        Cache first; after a restart the cache is cold, so fall back to the
        newest stored entry, and only then read through to the upstream.
        Returns None when nothing is available.
        """
        entry = self._cache.get(source)
        if entry is not None:
            return entry.value

        try:
            stored = await self._store.latest(source)
        except PersistenceError as e:
            logger.warning(f"History lookup for {source.value} failed: {e}")
            stored = None
        if stored is not None:
            return stored.to_record()

        return await self._cache.get_or_fetch(source, self._fetch, on_published=self._persist)


# Singleton instance
_ingestion_service: Optional[IngestionService] = None


def set_ingestion_service(service: Optional[IngestionService]) -> None:
    """Install the process-wide service (startup) or clear it (shutdown, tests)."""
    global _ingestion_service
    _ingestion_service = service


def get_ingestion_service() -> IngestionService:
    """Get the ingestion service singleton."""
    if _ingestion_service is None:
        raise RuntimeError("Ingestion service not initialized")
    return _ingestion_service
