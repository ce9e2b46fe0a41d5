"""Tests for ephemeris batch validation."""

import pytest

from transit_app.errors import EphemerisValidationError
from transit_app.validation.ephemeris_schema import (
    EphemerisValidator,
    validate_ephemeris_array,
    validator,
)


def make_point(name="Sun", **overrides):
    point = {
        "name": name,
        "quality": "Cardinal",
        "element": "Fire",
        "sign": "Ari",
        "sign_num": 0,
        "position": 12.5,
        "abs_pos": 12.5,
        "emoji": "♈️",
        "point_type": "AstrologicalPoint",
        "house": "First_House",
        "retrograde": False,
    }
    point.update(overrides)
    return point


def make_entry(date="2024-01-01T12:00:00Z", **overrides):
    entry = {
        "date": date,
        "planets": [make_point()],
        "houses": [make_point("First_House", house="", point_type="House")],
    }
    entry.update(overrides)
    return entry


class TestEphemerisValidator:
    """Test entry-level checks."""

    def test_valid_entry(self):
        assert validator.validate_entry(make_entry()) == []

    @pytest.mark.parametrize("value", [
        "2024-01-01T12:00:00Z",
        "2024-01-01T12:00:00.123Z",
        "2024-01-01T12:00:00+01:00",
        "2024-01-01T12:00:00",
    ])
    def test_accepted_dates(self, value):
        assert validator.validate_entry(make_entry(date=value)) == []

    @pytest.mark.parametrize("value", ["2024-01-01", "2024-01-01T12:00Z", "yesterday", 20240101])
    def test_rejected_dates(self, value):
        problems = validator.validate_entry(make_entry(date=value), index=3)
        assert len(problems) == 1
        assert problems[0].startswith("[3].date")

    def test_missing_fields(self):
        problems = validator.validate_entry({"date": "2024-01-01T12:00:00Z"})
        assert problems == ["[0] missing required fields: ['planets', 'houses']"]

    def test_wrong_point_types(self):
        entry = make_entry(planets=[make_point(position="12.5", retrograde="no")])
        problems = validator.validate_entry(entry)

        assert len(problems) == 2
        assert any(".position must be a number" in p for p in problems)
        assert any(".retrograde must be a boolean" in p for p in problems)

    def test_boolean_is_not_a_number(self):
        problems = validator.validate_entry(make_entry(planets=[make_point(sign_num=True)]))
        assert problems and "sign_num" in problems[0]

    def test_schema_copy(self):
        schema = EphemerisValidator().get_schema()
        assert schema["required"] == ["date", "planets", "houses"]


class TestValidateArray:
    """Test batch validation."""

    def test_valid_batch(self):
        assert validate_ephemeris_array([make_entry(), make_entry("2024-01-02T12:00:00Z")])

    def test_not_a_list(self):
        with pytest.raises(EphemerisValidationError):
            validate_ephemeris_array({"date": "2024-01-01T12:00:00Z"})

    def test_collects_problems_across_entries(self):
        with pytest.raises(EphemerisValidationError) as exc_info:
            validate_ephemeris_array([make_entry(), "oops", make_entry(houses="none")])

        assert exc_info.value.problems == [
            "[1] entry must be an object",
            "[2].houses must be an array",
        ]
