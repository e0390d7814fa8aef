"""Tests for the fetch -> cache -> persist refresh cycle."""

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import FakeFetcher, FakeStore, failing_fetcher, make_record
from orbitwatch.schemas.space import SourceId
from orbitwatch.services.base import ServiceError, UpstreamFetchError
from orbitwatch.services.cache import MemoryRecordCache
from orbitwatch.services.ingestion import IngestionService


def make_service(fetchers, store=None, cache=None) -> IngestionService:
    return IngestionService(
        fetchers=fetchers,
        cache=cache or MemoryRecordCache(),
        store=store if store is not None else FakeStore(),
    )


class TestRefresh:
    @pytest.mark.asyncio
    async def test_success_caches_then_persists(self, fake_fetchers, fake_store):
        order = []
        cache = MemoryRecordCache()
        original_put = cache.put

        def put(source, record):
            order.append("cache")
            return original_put(source, record)

        async def append(record):
            order.append("store")
            fake_store.records.append(record)

        cache.put = put
        fake_store.append = append
        service = make_service(fake_fetchers, fake_store, cache)

        record = await service.refresh(SourceId.APOD)

        assert order == ["cache", "store"]
        assert service.cached(SourceId.APOD).value is record
        assert fake_store.records == [record]
        assert service.status(SourceId.APOD).last_success is not None

    @pytest.mark.asyncio
    async def test_fetch_failure_touches_nothing(self, fake_fetchers, fake_store):
        fake_fetchers[SourceId.NEO] = failing_fetcher(SourceId.NEO)
        service = make_service(fake_fetchers, fake_store)

        with pytest.raises(UpstreamFetchError):
            await service.refresh(SourceId.NEO)
        with pytest.raises(UpstreamFetchError):
            await service.refresh(SourceId.NEO)

        assert service.cached(SourceId.NEO) is None
        assert fake_store.records == []
        status = service.status(SourceId.NEO)
        assert status.consecutive_failures == 2
        assert "HTTP 503" in status.last_error

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_cache_update(self, fake_fetchers):
        store = FakeStore(fail=True)
        service = make_service(fake_fetchers, store)

        record = await service.refresh(SourceId.SPACEX)

        assert service.cached(SourceId.SPACEX).value is record
        assert store.records == []
        assert "disk full" in service.status(SourceId.SPACEX).last_persist_error

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_fetch_and_persist_once(self, fake_fetchers, fake_store):
        fetcher = fake_fetchers[SourceId.ISS]
        fetcher.gate = asyncio.Event()
        service = make_service(fake_fetchers, fake_store)

        tasks = [asyncio.create_task(service.refresh(SourceId.ISS)) for _ in range(8)]
        await asyncio.sleep(0)
        fetcher.gate.set()
        results = await asyncio.gather(*tasks)

        assert fetcher.calls == 1
        assert len(fake_store.records) == 1
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_adapter_parse_errors_become_upstream_errors(self, fake_fetchers):
        fake_fetchers[SourceId.DONKI] = FakeFetcher(SourceId.DONKI, error=KeyError("cmeAnalyses"))
        service = make_service(fake_fetchers)

        with pytest.raises(UpstreamFetchError) as exc_info:
            await service.refresh(SourceId.DONKI)
        assert "Unparsable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, fake_fetchers):
        fetcher = failing_fetcher(SourceId.OSDR)
        fake_fetchers[SourceId.OSDR] = fetcher
        service = make_service(fake_fetchers)

        with pytest.raises(UpstreamFetchError):
            await service.refresh(SourceId.OSDR)
        fetcher.error = None
        await service.refresh(SourceId.OSDR)

        status = service.status(SourceId.OSDR)
        assert status.consecutive_failures == 0
        assert status.last_error is None

    @pytest.mark.asyncio
    async def test_refresh_many_reports_failures_per_source(self, fake_fetchers, fake_store):
        fake_fetchers[SourceId.DONKI] = failing_fetcher(SourceId.DONKI)
        service = make_service(fake_fetchers, fake_store)

        results = await service.refresh_many([SourceId.APOD, SourceId.DONKI, SourceId.SPACEX])

        assert set(results) == {SourceId.APOD, SourceId.DONKI, SourceId.SPACEX}
        assert isinstance(results[SourceId.DONKI], ServiceError)
        assert results[SourceId.APOD].source == SourceId.APOD
        assert len(fake_store.records) == 2

    @pytest.mark.asyncio
    async def test_refresh_many_contains_unexpected_adapter_errors(self, fake_fetchers, fake_store):
        fake_fetchers[SourceId.NEO] = FakeFetcher(SourceId.NEO, error=IndexError("list index out of range"))
        service = make_service(fake_fetchers, fake_store)

        results = await service.refresh_many([SourceId.NEO, SourceId.SPACEX])

        assert isinstance(results[SourceId.NEO], UpstreamFetchError)
        assert "IndexError" in results[SourceId.NEO].message
        assert results[SourceId.SPACEX].source == SourceId.SPACEX
        assert [r.source for r in fake_store.records] == [SourceId.SPACEX]


class TestLatest:
    @pytest.mark.asyncio
    async def test_prefers_cache(self, fake_fetchers, fake_store):
        service = make_service(fake_fetchers, fake_store)
        cached = make_record(SourceId.ISS, n="cached")
        service.cache.put(SourceId.ISS, cached)

        assert await service.latest(SourceId.ISS) is cached
        assert fake_fetchers[SourceId.ISS].calls == 0

    @pytest.mark.asyncio
    async def test_cold_cache_falls_back_to_store(self, fake_fetchers, fake_store):
        stored = make_record(SourceId.ISS, datetime(2024, 2, 2, tzinfo=timezone.utc), n="stored")
        fake_store.records.append(stored)
        service = make_service(fake_fetchers, fake_store)

        latest = await service.latest(SourceId.ISS)

        assert latest.payload == {"n": "stored"}
        assert fake_fetchers[SourceId.ISS].calls == 0

    @pytest.mark.asyncio
    async def test_reads_through_when_nothing_is_known(self, fake_fetchers, fake_store):
        service = make_service(fake_fetchers, fake_store)

        latest = await service.latest(SourceId.APOD)

        assert latest is fake_fetchers[SourceId.APOD].record
        assert fake_store.records == [latest]

    @pytest.mark.asyncio
    async def test_failed_read_through_degrades_to_none(self, fake_fetchers, fake_store):
        fake_fetchers[SourceId.APOD] = failing_fetcher(SourceId.APOD)
        service = make_service(fake_fetchers, fake_store)

        assert await service.latest(SourceId.APOD) is None
        assert service.cached(SourceId.APOD) is None
