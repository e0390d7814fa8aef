"""HTTP-level tests against the assembled app."""

import asyncio
import math
from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio

from conftest import failing_fetcher, make_record
from orbitwatch.core.config import Settings
from orbitwatch.db.store import HistoryStore
from orbitwatch.main import create_app
from orbitwatch.schemas.space import NON_POSITION_SOURCES, SourceId
from orbitwatch.services.cache import MemoryRecordCache
from orbitwatch.services.ingestion import IngestionService, set_ingestion_service
from orbitwatch.services.scheduler import start_scheduler, stop_scheduler
from orbitwatch.services.trend import EARTH_RADIUS_KM


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "scheduler_enabled": False,
        "rate_limit_requests": 1000,
    }
    values.update(overrides)
    return Settings(**values)


def epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@pytest.fixture
def service(sqlite_db, fake_fetchers):
    svc = IngestionService(
        fetchers=fake_fetchers,
        cache=MemoryRecordCache(),
        store=HistoryStore(),
    )
    set_ingestion_service(svc)
    yield svc
    set_ingestion_service(None)


@pytest_asyncio.fixture
async def client(service):
    # ASGITransport does not run the lifespan; the service fixture wires state instead
    app = create_app(make_settings())
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "now" in response.json()


class TestIssRoutes:
    @pytest.mark.asyncio
    async def test_last_is_empty_object_when_nothing_known(self, client, service, fake_fetchers):
        fake_fetchers[SourceId.ISS].error = failing_fetcher(SourceId.ISS).error

        response = await client.get("/last")

        assert response.status_code == 200
        assert response.json() == {}

    @pytest.mark.asyncio
    async def test_fetch_returns_fresh_record(self, client, fake_fetchers):
        response = await client.get("/fetch")

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "iss"
        assert body["payload"] == {"value": "iss"}
        assert fake_fetchers[SourceId.ISS].calls == 1

        # Served from cache afterwards
        assert (await client.get("/last")).json()["payload"] == {"value": "iss"}
        assert fake_fetchers[SourceId.ISS].calls == 1

    @pytest.mark.asyncio
    async def test_fetch_upstream_failure_is_502(self, client, fake_fetchers):
        fake_fetchers[SourceId.ISS].error = failing_fetcher(SourceId.ISS).error

        response = await client.get("/fetch")

        assert response.status_code == 502
        assert response.json()["error"] == "UpstreamFetchError"

    @pytest.mark.asyncio
    async def test_trend_speed_from_stored_positions(self, client):
        store = HistoryStore()
        # One degree of longitude along the equator per minute
        for i, seconds in enumerate([0, 60, 120]):
            await store.append(
                make_record(SourceId.ISS, epoch(seconds), latitude=0.0, longitude=float(i), altitude=420.0)
            )

        response = await client.get("/iss/trend", params={"from": "0", "to": "120"})

        assert response.status_code == 200
        body = response.json()
        assert set(body) >= {"from", "to", "points"}
        points = body["points"]
        assert [p["lon"] for p in points] == [0.0, 1.0, 2.0]
        assert points[0]["speed_kmh"] is None

        expected = math.radians(1.0) * EARTH_RADIUS_KM / (60 / 3600)
        assert points[1]["speed_kmh"] == pytest.approx(expected, rel=1e-9)
        assert points[2]["speed_kmh"] == pytest.approx(expected, rel=1e-9)

    @pytest.mark.asyncio
    async def test_trend_accepts_iso_bounds(self, client):
        await HistoryStore().append(make_record(SourceId.ISS, epoch(30), latitude=1.0, longitude=2.0))

        response = await client.get(
            "/iss/trend",
            params={"from": "1970-01-01T00:00:00Z", "to": "1970-01-01T00:01:00Z"},
        )

        assert response.status_code == 200
        assert len(response.json()["points"]) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"from": "120", "to": "60"},
            {"from": "yesterday"},
            {"to": "not-a-time"},
        ],
    )
    async def test_trend_rejects_bad_ranges(self, client, params):
        response = await client.get("/iss/trend", params=params)

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"


class TestOsdrRoutes:
    @pytest.mark.asyncio
    async def test_sync_then_list(self, client, fake_fetchers):
        synced = await client.get("/osdr/sync")
        listed = await client.get("/osdr/list")

        assert synced.status_code == 200
        assert listed.json() == synced.json()
        assert fake_fetchers[SourceId.OSDR].calls == 1


class TestSpaceRoutes:
    @pytest.mark.asyncio
    async def test_latest_for_any_source(self, client):
        response = await client.get("/space/APOD/latest")

        assert response.status_code == 200
        assert response.json()["source"] == "apod"

    @pytest.mark.asyncio
    async def test_unknown_source_is_404(self, client):
        response = await client.get("/space/pluto/latest")

        assert response.status_code == 404
        assert response.json()["error"] == "UnknownSourceError"

    @pytest.mark.asyncio
    async def test_refresh_reports_each_source(self, client, fake_fetchers):
        fake_fetchers[SourceId.DONKI].error = failing_fetcher(SourceId.DONKI).error

        response = await client.get("/space/refresh", params={"src": "apod,donki"})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"apod", "donki"}
        assert body["apod"]["payload"] == {"value": "apod"}
        assert "error" in body["donki"]

    @pytest.mark.asyncio
    async def test_refresh_defaults_to_non_position_sources(self, client, fake_fetchers):
        response = await client.get("/space/refresh")

        assert set(response.json()) == {s.value for s in NON_POSITION_SOURCES}
        assert fake_fetchers[SourceId.ISS].calls == 0

    @pytest.mark.asyncio
    async def test_summary(self, client):
        await client.get("/space/refresh", params={"src": "apod"})

        response = await client.get("/space/summary")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {s.value for s in SourceId}
        assert body["apod"]["status"] == "ok"
        assert body["apod"]["records"] == 1
        assert body["iss"]["status"] == "empty"
        assert body["iss"]["interval_seconds"] == 120
        assert body["osdr"]["interval_seconds"] == 600
        assert body["apod"]["polling"] is None

    @pytest.mark.asyncio
    async def test_summary_reports_polling_state(self, client, service, fake_fetchers):
        fake_fetchers[SourceId.DONKI].error = failing_fetcher(SourceId.DONKI).error
        start_scheduler(service, {s: 3600 for s in SourceId})
        try:
            for _ in range(200):
                if all(f.calls for f in fake_fetchers.values()):
                    break
                await asyncio.sleep(0.01)

            body = (await client.get("/space/summary")).json()
        finally:
            await stop_scheduler()

        assert body["apod"]["polling"]["running"]
        assert body["apod"]["polling"]["ticks"] == 1
        assert body["donki"]["consecutive_failures"] == 1
        assert body["donki"]["polling"]["last_error"] is not None

    @pytest.mark.asyncio
    async def test_history(self, client):
        store = HistoryStore()
        for seconds in [0, 60, 120, 600]:
            await store.append(make_record(SourceId.NEO, epoch(seconds), t=seconds))

        response = await client.get("/space/neo/history", params={"from": "0", "to": "120"})

        body = response.json()
        assert body["source"] == "neo"
        assert [item["payload"]["t"] for item in body["items"]] == [0, 60, 120]


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_six_requests_in_one_window_reject_one(self, service):
        app = create_app(make_settings(rate_limit_requests=5, rate_limit_window_seconds=1.0))
        app.state.rate_limiter._clock = lambda: 1000.0

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            paths = ["/health", "/space/summary", "/health", "/last", "/health", "/health"]
            responses = [await c.get(path) for path in paths]

        statuses = [r.status_code for r in responses]
        assert statuses.count(429) == 1
        assert statuses[-1] == 429
        assert responses[-1].json() == {"detail": "Too many requests"}
        assert app.state.rate_limiter.rejected_total == 1
