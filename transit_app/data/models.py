"""
Canonical data models for subjects, aspects and day records.

Immutable structures describing what is sent to the calculation service
and what comes back from it. Every model round-trips through plain
dictionaries so it can be cached as JSON.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Optional

from ..utils.dates import to_utc_day

BASIC_SUBJECT_FIELDS = (
    "name", "year", "month", "day", "hour", "minute", "second",
    "city", "nation", "timezone", "longitude", "latitude",
)

SETTING_FIELDS = (
    "zodiac_type", "sidereal_mode", "houses_system_identifier", "perspective_type",
)


@dataclass(frozen=True)
class Subject:
    """A point in space-time sent to the calculation service."""
    name: str
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int = 0
    city: str = ""
    nation: str = ""
    timezone: str = "UTC"
    longitude: float = 0.0
    latitude: float = 0.0

    # Optional pre-resolved settings
    zodiac_type: Optional[str] = None
    sidereal_mode: Optional[str] = None
    houses_system_identifier: Optional[str] = None
    perspective_type: Optional[str] = None

    @classmethod
    def from_datetime(cls, name: str, when: datetime, **location: Any) -> "Subject":
        """Build a subject from a datetime, converted to UTC."""
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        return cls(
            name=name,
            year=when.year,
            month=when.month,
            day=when.day,
            hour=when.hour,
            minute=when.minute,
            second=when.second,
            **location,
        )

    def basic_payload(self) -> dict[str, Any]:
        """Birth fields only; the transit data endpoint rejects settings."""
        return {name: getattr(self, name) for name in BASIC_SUBJECT_FIELDS}

    def payload(self) -> dict[str, Any]:
        """Birth fields plus any configured settings."""
        data = self.basic_payload()
        for name in SETTING_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    def at_instant(self, day: date, name: str = "Transit", hour: int = 12) -> "Subject":
        """Same location at ``hour``:00 UTC on ``day``, without settings."""
        return replace(
            self,
            name=name,
            year=day.year,
            month=day.month,
            day=day.day,
            hour=hour,
            minute=0,
            second=0,
            timezone=self.timezone or "UTC",
            zodiac_type=None,
            sidereal_mode=None,
            houses_system_identifier=None,
            perspective_type=None,
        )


@dataclass(frozen=True)
class ChartOptions:
    """Computation options forwarded to the calculation service."""
    active_points: Optional[tuple[str, ...]] = None
    active_aspects: Optional[tuple[dict[str, Any], ...]] = None
    distribution_method: Optional[str] = None
    custom_distribution_weights: Optional[dict[str, float]] = None

    def to_payload(self) -> dict[str, Any]:
        """Request fields for every option that is set."""
        data: dict[str, Any] = {}
        if self.active_points is not None:
            data["active_points"] = list(self.active_points)
        if self.active_aspects is not None:
            data["active_aspects"] = [dict(a) for a in self.active_aspects]
        if self.distribution_method is not None:
            data["distribution_method"] = self.distribution_method
        if self.custom_distribution_weights:
            data["custom_distribution_weights"] = dict(self.custom_distribution_weights)
        return data


@dataclass(frozen=True)
class Aspect:
    """Angular relationship between two points."""
    p1_name: str
    p2_name: str
    aspect: str
    orbit: float                          # Signed degrees from exact
    aspect_movement: Optional[str] = None  # Applying / Separating
    aspect_degrees: Optional[float] = None
    diff: Optional[float] = None
    p1_owner: Optional[str] = None
    p2_owner: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Aspect":
        return cls(
            p1_name=data["p1_name"],
            p2_name=data["p2_name"],
            aspect=data["aspect"],
            orbit=float(data["orbit"]),
            aspect_movement=data.get("aspect_movement"),
            aspect_degrees=data.get("aspect_degrees"),
            diff=data.get("diff"),
            p1_owner=data.get("p1_owner"),
            p2_owner=data.get("p2_owner"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "p1_name": self.p1_name,
            "p2_name": self.p2_name,
            "aspect": self.aspect,
            "orbit": self.orbit,
        }
        for name in ("aspect_movement", "aspect_degrees", "diff", "p1_owner", "p2_owner"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class HouseComparison:
    """Projection of each subject's points into the other's houses."""
    first_points_in_second_houses: tuple[dict[str, Any], ...] = ()
    second_points_in_first_houses: tuple[dict[str, Any], ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "HouseComparison":
        data = data or {}
        return cls(
            first_points_in_second_houses=tuple(data.get("first_points_in_second_houses") or ()),
            second_points_in_first_houses=tuple(data.get("second_points_in_first_houses") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_points_in_second_houses": list(self.first_points_in_second_houses),
            "second_points_in_first_houses": list(self.second_points_in_first_houses),
        }


@dataclass(frozen=True)
class TransitDayData:
    """Transit positions and aspects to a natal chart for one day."""
    date: str                             # ISO-8601 UTC, truncated to the day
    transit_subject: dict[str, Any]
    aspects: tuple[Aspect, ...] = ()
    house_comparison: HouseComparison = field(default_factory=HouseComparison)

    @property
    def day(self) -> date:
        return to_utc_day(self.date)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransitDayData":
        return cls(
            date=data["date"],
            transit_subject=data.get("transit_subject") or {},
            aspects=tuple(Aspect.from_dict(a) for a in data.get("aspects") or ()),
            house_comparison=HouseComparison.from_dict(data.get("house_comparison")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "transit_subject": self.transit_subject,
            "aspects": [a.to_dict() for a in self.aspects],
            "house_comparison": self.house_comparison.to_dict(),
        }


@dataclass(frozen=True)
class EphemerisPoint:
    """One planet or house cusp in an ephemeris entry."""
    name: str
    quality: str
    element: str
    sign: str
    sign_num: int
    position: float
    abs_pos: float
    emoji: str
    point_type: str
    house: str = ""
    retrograde: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EphemerisPoint":
        return cls(**{name: data[name] for name in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass(frozen=True)
class Ephemeris:
    """Sky positions at the fixed observer for one day."""
    date: str                             # ISO-8601 UTC sample instant
    planets: tuple[EphemerisPoint, ...]
    houses: tuple[EphemerisPoint, ...]

    @property
    def day(self) -> date:
        return to_utc_day(self.date)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ephemeris":
        return cls(
            date=data["date"],
            planets=tuple(EphemerisPoint.from_dict(p) for p in data["planets"]),
            houses=tuple(EphemerisPoint.from_dict(h) for h in data["houses"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "planets": [p.to_dict() for p in self.planets],
            "houses": [h.to_dict() for h in self.houses],
        }


@dataclass(frozen=True)
class MonthResult:
    """Outcome of fetching one calendar month of transits."""
    month: str                            # yyyy-mm
    days: tuple[TransitDayData, ...]
    from_cache: bool = False
    complete: bool = False                # Whole month fetched and cacheable


@dataclass(frozen=True)
class Progress:
    """Progress counters reported to the presentation layer."""
    loaded: int = 0
    total: int = 0

    def advance(self, step: int = 1) -> "Progress":
        return Progress(loaded=min(self.loaded + step, self.total), total=self.total)
