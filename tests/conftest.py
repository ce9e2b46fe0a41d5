"""Pytest configuration and shared fixtures."""

from datetime import date
from typing import Any, Dict, List, Optional

import pytest

from transit_app.data.models import ChartOptions, Subject
from transit_app.data.parsers import (
    EPHEMERIS_PLANET_KEYS,
    HOUSE_KEYS,
    SubjectResponse,
    TransitChartResponse,
    parse_subject_response,
    parse_transit_response,
)
from transit_app.errors import CalculationApiError
from transit_app.fetch.ephemeris_fetcher import EphemerisFetcher
from transit_app.fetch.range_fetcher import RangeFetcher
from transit_app.persistence.backends import MemoryCacheBackend
from transit_app.persistence.caches import CachePolicy, EphemerisCache, MonthCache


def make_point(name: str, position: float = 10.0, house: Optional[str] = "First_House",
               retrograde: bool = False, point_type: str = "AstrologicalPoint") -> Dict[str, Any]:
    """Point dictionary as returned by the calculation service."""
    return {
        "name": name,
        "quality": "Cardinal",
        "element": "Fire",
        "sign": "Ari",
        "sign_num": 0,
        "position": position,
        "abs_pos": position,
        "emoji": "♈️",
        "point_type": point_type,
        "house": house,
        "retrograde": retrograde,
    }


def make_transit_payload(day: date, aspects: Optional[List[Dict[str, Any]]] = None,
                         status: str = "OK") -> Dict[str, Any]:
    """Body of a successful transit chart-data call."""
    return {
        "status": status,
        "chart_data": {
            "second_subject": {
                "name": "Transit",
                "year": day.year,
                "month": day.month,
                "day": day.day,
                "sun": make_point("Sun", position=float(day.day)),
            },
            "aspects": aspects if aspects is not None else [
                {"p1_name": "Sun", "p2_name": "Moon", "aspect": "trine", "orbit": 1.5},
            ],
            "house_comparison": {
                "first_points_in_second_houses": [],
                "second_points_in_first_houses": [],
            },
        },
    }


def make_subject_payload(day: date) -> Dict[str, Any]:
    """Body of a successful subject call carrying every ephemeris point."""
    subject: Dict[str, Any] = {"name": "Ephemeris", "year": day.year, "month": day.month, "day": day.day}
    for key, name in EPHEMERIS_PLANET_KEYS:
        subject[key] = make_point(name or key.title(), position=float(day.day))
    for key in HOUSE_KEYS:
        subject[key] = make_point(key.replace("_", " ").title(), house=None,
                                  point_type="House")
    return {"status": "OK", "subject": subject}


class FakeCalculationClient:
    """In-memory stand-in for CalculationClient that records every call."""

    def __init__(self):
        self.transit_calls: List[date] = []
        self.subject_calls: List[date] = []
        self.fail_days: set = set()
        self.aspects: Optional[List[Dict[str, Any]]] = None
        self.natal_payloads: List[Dict[str, Any]] = []
        self.options_seen: List[Optional[ChartOptions]] = []

    async def get_transit_chart_data(self, natal: Subject, transit: Subject,
                                     options: Optional[ChartOptions] = None) -> TransitChartResponse:
        day = date(transit.year, transit.month, transit.day)
        self.transit_calls.append(day)
        self.natal_payloads.append(natal.basic_payload())
        self.options_seen.append(options)
        if day in self.fail_days:
            raise CalculationApiError("API Error 500: boom", status_code=500)
        return parse_transit_response(make_transit_payload(day, self.aspects))

    async def get_subject(self, subject: Subject,
                          active_points: Optional[List[str]] = None) -> SubjectResponse:
        day = date(subject.year, subject.month, subject.day)
        self.subject_calls.append(day)
        if day in self.fail_days:
            raise CalculationApiError("API Error 503: unavailable", status_code=503)
        return parse_subject_response(make_subject_payload(day))


async def no_sleep(_seconds: float) -> None:
    """Drop-in for asyncio.sleep that returns immediately."""
    return None


@pytest.fixture
def natal_subject() -> Subject:
    """Sample natal subject for testing."""
    return Subject(
        name="Test Natal",
        year=1990,
        month=6,
        day=15,
        hour=14,
        minute=30,
        city="London",
        nation="GB",
        timezone="Europe/London",
        longitude=-0.1278,
        latitude=51.5074,
        zodiac_type="Tropic",
        houses_system_identifier="P",
    )


@pytest.fixture
def fake_client() -> FakeCalculationClient:
    """Recording calculation client."""
    return FakeCalculationClient()


@pytest.fixture
def month_cache() -> MonthCache:
    """Month cache over an in-memory backend."""
    return MonthCache(MemoryCacheBackend(), CachePolicy.from_days(5, version=2, max_entries=500))


@pytest.fixture
def ephemeris_cache() -> EphemerisCache:
    """Ephemeris cache over an in-memory backend."""
    return EphemerisCache(MemoryCacheBackend(), CachePolicy.from_days(30, version=1, max_entries=500))


@pytest.fixture
def sample_aspect_dict() -> Dict[str, Any]:
    """Sample aspect as returned by the calculation service."""
    return {
        "p1_name": "Sun",
        "p2_name": "Moon",
        "aspect": "trine",
        "orbit": 1.25,
        "aspect_movement": "Applying",
        "aspect_degrees": 120,
        "diff": 118.75,
        "p1_owner": "Transit",
        "p2_owner": "Test Natal",
    }


@pytest.fixture
def range_fetcher(fake_client, month_cache):
    """RangeFetcher over the fake client with delays disabled."""
    return RangeFetcher(fake_client, month_cache, sleep=no_sleep)


@pytest.fixture
def ephemeris_fetcher(fake_client, ephemeris_cache):
    """EphemerisFetcher over the fake client with delays disabled."""
    return EphemerisFetcher(fake_client, ephemeris_cache, sleep=no_sleep)


@pytest.fixture
def transit_payload():
    """Factory for transit chart-data response bodies."""
    return make_transit_payload


@pytest.fixture
def subject_payload():
    """Factory for subject response bodies."""
    return make_subject_payload
