"""
Response parsers for the calculation service.

Decodes raw response bodies with orjson and turns the service's JSON into
the canonical models. Shape problems raise day-level errors so the fetchers
can skip the day.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

import orjson

from ..errors import IncompleteResponseError, MalformedResponseError
from ..utils.dates import day_iso, instant_iso
from .models import Aspect, HouseComparison, TransitDayData

STATUS_OK = "OK"

# Subject attribute -> display name, in ephemeris order
EPHEMERIS_PLANET_KEYS: tuple[tuple[str, Optional[str]], ...] = (
    # Core planets keep the name reported by the service
    ("sun", None), ("moon", None), ("mercury", None), ("venus", None),
    ("mars", None), ("jupiter", None), ("saturn", None), ("uranus", None),
    ("neptune", None), ("pluto", None),
    # Lunar nodes
    ("mean_north_lunar_node", "Mean_North_Lunar_Node"),
    ("true_north_lunar_node", "True_North_Lunar_Node"),
    ("mean_south_lunar_node", "Mean_South_Lunar_Node"),
    ("true_south_lunar_node", "True_South_Lunar_Node"),
    # Centaurs
    ("chiron", "Chiron"), ("pholus", "Pholus"),
    # Lilith
    ("mean_lilith", "Mean_Lilith"), ("true_lilith", "True_Lilith"),
    ("earth", "Earth"),
    # Asteroids
    ("ceres", "Ceres"), ("pallas", "Pallas"), ("juno", "Juno"), ("vesta", "Vesta"),
    # Dwarf planets
    ("eris", "Eris"), ("sedna", "Sedna"), ("haumea", "Haumea"),
    ("makemake", "Makemake"), ("ixion", "Ixion"), ("orcus", "Orcus"),
    ("quaoar", "Quaoar"),
    # Fixed stars
    ("regulus", "Regulus"), ("spica", "Spica"),
    # Axes
    ("ascendant", "Ascendant"), ("medium_coeli", "Medium_Coeli"),
    ("descendant", "Descendant"), ("imum_coeli", "Imum_Coeli"),
    # Special points
    ("vertex", "Vertex"), ("anti_vertex", "Anti_Vertex"),
    # Arabic parts
    ("pars_fortunae", "Pars_Fortunae"), ("pars_spiritus", "Pars_Spiritus"),
    ("pars_amoris", "Pars_Amoris"), ("pars_fidei", "Pars_Fidei"),
)

HOUSE_KEYS = (
    "first_house", "second_house", "third_house", "fourth_house",
    "fifth_house", "sixth_house", "seventh_house", "eighth_house",
    "ninth_house", "tenth_house", "eleventh_house", "twelfth_house",
)

POINT_FIELDS = (
    "name", "quality", "element", "sign", "sign_num", "position",
    "abs_pos", "emoji", "point_type",
)


@dataclass(frozen=True)
class SubjectResponse:
    """Envelope of a single-subject calculation."""
    status: str
    subject: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class TransitChartResponse:
    """Envelope of a transit chart-data calculation."""
    status: str
    second_subject: Optional[dict[str, Any]]
    aspects: tuple[Aspect, ...]
    house_comparison: HouseComparison

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def decode_json(raw: bytes) -> Any:
    """
    Decode a response body.

    Raises:
        MalformedResponseError: If the body is not valid JSON
    """
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Response is not valid JSON: {e}",
            raw_data=raw[:200].decode("utf-8", errors="replace"),
            expected_format="json",
        ) from e


def _require_object(payload: Any, what: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"{what} must be a JSON object, got {type(payload).__name__}",
            expected_format="object",
        )
    return payload


def parse_subject_response(payload: Any) -> SubjectResponse:
    """Parse the body of a ``/subject`` call."""
    body = _require_object(payload, "Subject response")
    subject = body.get("subject")
    if not isinstance(subject, dict):
        raise MalformedResponseError("Subject response has no subject object",
                                     expected_format="object")
    return SubjectResponse(status=str(body.get("status", "")), subject=subject)


def parse_transit_response(payload: Any) -> TransitChartResponse:
    """Parse the body of a ``/chart-data/transit`` call."""
    body = _require_object(payload, "Transit response")
    chart_data = _require_object(body.get("chart_data") or {}, "chart_data")

    try:
        aspects = tuple(Aspect.from_dict(a) for a in chart_data.get("aspects") or ())
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid aspect in transit response: {e}") from e

    try:
        house_comparison = HouseComparison.from_dict(chart_data.get("house_comparison"))
    except (AttributeError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid house comparison in transit response: {e}") from e

    second_subject = chart_data.get("second_subject")
    return TransitChartResponse(
        status=str(body.get("status", "")),
        second_subject=second_subject if isinstance(second_subject, dict) else None,
        aspects=aspects,
        house_comparison=house_comparison,
    )


def build_transit_day(day: date, response: TransitChartResponse) -> TransitDayData:
    """
    Turn a transit response into a day record.

    Raises:
        IncompleteResponseError: If the status is not OK or the transit
            subject is missing
    """
    if not response.ok:
        raise IncompleteResponseError(
            f"Transit calculation returned status {response.status!r}",
            status=response.status,
        )
    if response.second_subject is None:
        raise IncompleteResponseError(
            "Transit calculation returned no transit subject",
            status=response.status,
            missing_fields=["second_subject"],
        )

    return TransitDayData(
        date=day_iso(day),
        transit_subject=response.second_subject,
        aspects=response.aspects,
        house_comparison=response.house_comparison,
    )


def _point_dict(point: dict[str, Any], name: Optional[str], house: Any, retrograde: Any) -> dict[str, Any]:
    data = {key: point.get(key) for key in POINT_FIELDS}
    if name is not None:
        data["name"] = name
    data["house"] = house
    data["retrograde"] = retrograde
    return data


def build_ephemeris_entry(day: date, response: SubjectResponse, hour: int = 12) -> dict[str, Any]:
    """
    Project a subject response onto the ephemeris shape.

    The result is a plain dictionary so the whole batch can be validated
    before models are built.

    Raises:
        IncompleteResponseError: If the status is not OK
        MalformedResponseError: If a point is not an object
    """
    if not response.ok:
        raise IncompleteResponseError(
            f"Subject calculation returned status {response.status!r}",
            status=response.status,
        )

    subject = response.subject
    planets = []
    for key, name in EPHEMERIS_PLANET_KEYS:
        point = subject.get(key)
        if point:
            point = _require_object(point, f"Subject point {key!r}")
            planets.append(_point_dict(point, name, point.get("house") or "", point.get("retrograde")))

    houses = []
    for key in HOUSE_KEYS:
        point = subject.get(key)
        if point:
            point = _require_object(point, f"Subject point {key!r}")
            houses.append(_point_dict(point, None, "", False))

    return {
        "date": instant_iso(day, hour),
        "planets": planets,
        "houses": houses,
    }
