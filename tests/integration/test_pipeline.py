"""
End-to-end pipeline tests.

Drives the TimelineEngine against a mock HTTP transport so the client,
parsers, caches, fetchers and orchestrators run together.
"""

import asyncio
from datetime import date
from unittest.mock import patch

import httpx
import orjson
import pytest

from transit_app.config.loader import build_config
from transit_app.engine import TimelineEngine
from transit_app.persistence.backends import MemoryCacheBackend, SqliteCacheBackend
from transit_app.scoring.aspects import format_aspect, headline_aspect
from transit_app.state.models import EphemerisRequest, RequestState, TransitRequest


class MockService:
    """Routes requests the way the calculation service does."""

    def __init__(self, transit_payload, subject_payload, fail_days=()):
        self.transit_payload = transit_payload
        self.subject_payload = subject_payload
        self.fail_days = set(fail_days)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = orjson.loads(request.content)
        self.requests.append((request.url.path, body))

        if request.url.path.endswith("/chart-data/transit"):
            subject = body["transit_subject"]
            day = date(subject["year"], subject["month"], subject["day"])
            if day in self.fail_days:
                return httpx.Response(500, text="Internal Server Error")
            return httpx.Response(200, content=orjson.dumps(self.transit_payload(day)))

        if request.url.path.endswith("/subject"):
            subject = body["subject"]
            day = date(subject["year"], subject["month"], subject["day"])
            return httpx.Response(200, content=orjson.dumps(self.subject_payload(day)))

        return httpx.Response(404, text="Not Found")


def make_engine(service, **cache_overrides):
    config = build_config({
        "client": {"api_key": "test-key"},
        "range_fetch": {"inter_call_delay_seconds": 0},
        "ephemeris": {"chunk_delay_seconds": 0},
        "cache": {"backend": "memory", **cache_overrides},
    })
    return TimelineEngine(config=config, transport=httpx.MockTransport(service))


@pytest.fixture
def service(transit_payload, subject_payload):
    return MockService(transit_payload, subject_payload)


class TestTransitPipeline:
    """Test transit fetching through the whole stack."""

    def test_fetch_transits(self, service, natal_subject):
        """Test a cross-month window with one failing day."""
        service.fail_days = {date(2024, 2, 3)}

        async def scenario():
            async with make_engine(service) as engine:
                return await engine.fetch_transits("subject-1", natal_subject,
                                                   date(2024, 1, 30), date(2024, 2, 5))

        days = asyncio.run(scenario())

        assert len(days) == 6
        assert date(2024, 2, 3) not in [d.day for d in days]
        assert format_aspect(headline_aspect(days[0])) == "Sun-Moon trine (1.5°)"

        transit_bodies = [body for path, body in service.requests]
        assert all(body["include_house_comparison"] for body in transit_bodies)
        assert all("zodiac_type" not in body["first_subject"] for body in transit_bodies)

    def test_orchestrated_request_settles(self, service, natal_subject):
        snapshots = []

        async def scenario():
            async with make_engine(service) as engine:
                orchestrator = engine.transit_orchestrator(snapshots.append)
                orchestrator.request(TransitRequest("subject-1", natal_subject,
                                                    date(2024, 1, 1), date(2024, 1, 31)))
                await orchestrator.wait()
                cached = await engine.month_cache.get("subject-1", "2024-01")
                return cached

        cached = asyncio.run(scenario())

        assert snapshots[0].state == RequestState.FETCHING
        assert snapshots[-1].state == RequestState.SETTLED
        assert len(snapshots[-1].data) == 31
        assert cached is not None and len(cached) == 31

    def test_month_cache_survives_restart_on_sqlite(self, service, natal_subject, tmp_path):
        """Test that a second engine on the same database makes no calls."""
        db_path = str(tmp_path / "cache.db")

        async def run_once():
            async with make_engine(service, backend="sqlite", sqlite_path=db_path) as engine:
                assert isinstance(engine.month_cache.backend, SqliteCacheBackend)
                return await engine.fetch_transits("subject-1", natal_subject,
                                                   date(2024, 2, 1), date(2024, 2, 29))

        first = asyncio.run(run_once())
        calls = len(service.requests)
        second = asyncio.run(run_once())

        assert calls == 29
        assert len(service.requests) == calls
        assert second == first


class TestEphemerisPipeline:
    """Test ephemeris fetching through the whole stack."""

    def test_fetch_ephemeris(self, service):
        async def scenario():
            async with make_engine(service) as engine:
                assert isinstance(engine.ephemeris_cache.backend, MemoryCacheBackend)
                entries = await engine.fetch_ephemeris(date(2024, 1, 1), date(2024, 1, 3))
                info = await engine.ephemeris_cache.info()
                return entries, info

        entries, info = asyncio.run(scenario())

        assert len(entries) == 3
        assert entries[0].planets[0].name == "Sun"
        assert info["count"] == 1

        path, body = service.requests[0]
        assert path.endswith("/subject")
        assert body["subject"]["city"] == "Greenwich"
        assert body["subject"]["hour"] == 12

    def test_orchestrated_refetch(self, service):
        snapshots = []

        async def scenario():
            async with make_engine(service) as engine:
                orchestrator = engine.ephemeris_orchestrator(snapshots.append)
                orchestrator.request(EphemerisRequest(date(2024, 1, 1), date(2024, 1, 2)))
                await orchestrator.wait()
                orchestrator.refetch()
                await orchestrator.wait()

        asyncio.run(scenario())

        assert len(service.requests) == 4
        assert snapshots[-1].generation == 2
        assert snapshots[-1].state == RequestState.SETTLED

    def test_cache_maintenance(self, service):
        async def scenario():
            async with make_engine(service) as engine:
                await engine.fetch_ephemeris(date(2024, 1, 1), date(2024, 1, 1))
                removed = await engine.cleanup_caches()
                cleared = await engine.clear_caches()
                info = await engine.ephemeris_cache.info()
                return removed, cleared, info

        removed, cleared, info = asyncio.run(scenario())

        assert removed == 0
        assert cleared is True
        assert info["count"] == 0


class TestEngineSetup:
    """Test engine construction options."""

    def test_setup_logging_applies_config(self, service):
        config = build_config({"logging": {"level": "DEBUG", "format_json": True}})

        with patch("transit_app.engine.configure_logging") as mock_configure:
            engine = TimelineEngine(config=config, transport=httpx.MockTransport(service),
                                    setup_logging=True)

        mock_configure.assert_called_once_with(level="DEBUG", format_json=True, include_caller=False)
        asyncio.run(engine.aclose())
