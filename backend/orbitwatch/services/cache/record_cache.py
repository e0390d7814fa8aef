"""
In-memory record cache with single-flight refresh.

Holds the latest Record per source. Reads never wait: an entry is an
immutable object swapped in with one assignment. A miss or a forced refresh
goes through a per-source in-flight task, so concurrent callers share one
upstream fetch instead of racing. The task belongs to no caller: a caller
that is cancelled stops waiting, and the others still get the result.

Entries live for the process lifetime only; history is the store's job.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from orbitwatch.schemas.space import CacheEntry, Record, SourceId, utcnow

logger = logging.getLogger(__name__)

FetchFn = Callable[[SourceId], Awaitable[Record]]
PublishHook = Callable[[Record], Awaitable[None]]


class RecordCache(ABC):
    """Latest-value cache contract. Swap in a fake for tests."""

    @abstractmethod
    def get(self, source: SourceId) -> Optional[CacheEntry]:
        """Current entry for a source, or None."""

    @abstractmethod
    def put(self, source: SourceId, record: Record) -> CacheEntry:
        """Publish a record as the latest value for its source."""

    @abstractmethod
    async def get_or_fetch(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook] = None,
    ) -> Optional[Record]:
        """Read-through lookup. Never raises on fetch failure."""

    @abstractmethod
    async def refresh(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook] = None,
    ) -> Record:
        """Forced single-flight refresh. Raises the fetch error."""

    @abstractmethod
    def entries(self) -> Dict[SourceId, CacheEntry]:
        """Snapshot of all live entries."""

    @abstractmethod
    def is_refreshing(self, source: SourceId) -> bool:
        """Whether a fetch for the source is in flight right now."""

    @abstractmethod
    async def close(self) -> None:
        """Cancel in-flight refreshes (process shutdown)."""


class MemoryRecordCache(RecordCache):
    """
    Process-local cache keyed by SourceId.

    Usage:
        cache = MemoryRecordCache()
        record = await cache.get_or_fetch(SourceId.ISS, fetcher.fetch)
        record = await cache.refresh(SourceId.ISS, fetcher.fetch, on_published=store)
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: Dict[SourceId, CacheEntry] = {}
        self._inflight: Dict[SourceId, asyncio.Task] = {}

    def get(self, source: SourceId) -> Optional[CacheEntry]:
        return self._entries.get(source)

    def put(self, source: SourceId, record: Record) -> CacheEntry:
        cached_at = self._clock()
        previous = self._entries.get(source)
        if previous is not None and previous.cached_at > cached_at:
            # Clock went backwards; keep cached_at monotonic per source
            cached_at = previous.cached_at

        entry = CacheEntry(source=source, value=record, cached_at=cached_at)
        self._entries[source] = entry
        return entry

    def entries(self) -> Dict[SourceId, CacheEntry]:
        return dict(self._entries)

    def is_refreshing(self, source: SourceId) -> bool:
        return source in self._inflight

    async def get_or_fetch(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook] = None,
    ) -> Optional[Record]:
        entry = self._entries.get(source)
        if entry is not None:
            return entry.value

        try:
            return await self._single_flight(source, fetch_fn, on_published)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Already logged by the refresh cycle.
            # Fall back to last-known-good, which a concurrent refresh may have set.
            entry = self._entries.get(source)
            return entry.value if entry is not None else None

    async def refresh(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook] = None,
    ) -> Record:
        return await self._single_flight(source, fetch_fn, on_published)

    async def _single_flight(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook],
    ) -> Record:
        task = self._inflight.get(source)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._run_cycle(source, fetch_fn, on_published),
                name=f"refresh-{source.value}",
            )
            self._inflight[source] = task
            task.add_done_callback(_retrieve_exception)

        # Every caller, the starter included, only waits on the cycle
        return await asyncio.shield(task)

    async def _run_cycle(
        self,
        source: SourceId,
        fetch_fn: FetchFn,
        on_published: Optional[PublishHook],
    ) -> Record:
        try:
            record = await fetch_fn(source)
            self.put(source, record)
            if on_published is not None:
                await on_published(record)
            return record
        except Exception as e:
            logger.warning(f"Refresh of {source.value} failed: {e}")
            raise
        finally:
            # Cleared before the result is visible, so later callers start a new cycle
            if self._inflight.get(source) is asyncio.current_task():
                del self._inflight[source]

    async def close(self) -> None:
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()


def _retrieve_exception(task: asyncio.Task) -> None:
    # A cycle whose callers all went away must not warn at GC
    if not task.cancelled():
        task.exception()


# Singleton instance
_record_cache: Optional[RecordCache] = None


def get_record_cache() -> RecordCache:
    """Get the record cache singleton."""
    global _record_cache
    if _record_cache is None:
        _record_cache = MemoryRecordCache()
    return _record_cache


def reset_record_cache() -> None:
    """Drop the singleton (process shutdown, tests)."""
    global _record_cache
    _record_cache = None
