"""Schema validation for assembled ephemeris batches."""

import re
from typing import Any

from ..errors import EphemerisValidationError
from ..logging.config import get_logger

logger = get_logger(__name__)

DATETIME_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?$"

_POINT_SCHEMA = {
    "type": "object",
    "required": [
        "name", "quality", "element", "sign", "sign_num", "position",
        "abs_pos", "emoji", "point_type", "house", "retrograde",
    ],
    "properties": {
        "name": {"type": "string"},
        "quality": {"type": "string"},
        "element": {"type": "string"},
        "sign": {"type": "string"},
        "sign_num": {"type": "number"},
        "position": {"type": "number"},
        "abs_pos": {"type": "number"},
        "emoji": {"type": "string"},
        "point_type": {"type": "string"},
        "house": {"type": "string"},
        "retrograde": {"type": "boolean"},
    },
    "additionalProperties": True
}

# One ephemeris entry; a batch is an array of these
EPHEMERIS_SCHEMA = {
    "type": "object",
    "required": ["date", "planets", "houses"],
    "properties": {
        "date": {
            "type": "string",
            "pattern": DATETIME_PATTERN,
            "description": "Sample instant, seconds required, offset optional"
        },
        "planets": {
            "type": "array",
            "items": _POINT_SCHEMA,
            "description": "Bodies and points in extraction order"
        },
        "houses": {
            "type": "array",
            "items": _POINT_SCHEMA,
            "description": "House cusps, first to twelfth"
        }
    },
    "additionalProperties": True
}

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
}


class EphemerisValidator:
    """Validates ephemeris entries against EPHEMERIS_SCHEMA."""

    def __init__(self):
        self.schema = EPHEMERIS_SCHEMA
        self._date_re = re.compile(DATETIME_PATTERN)

    def validate_entry(self, entry: Any, index: int = 0) -> list[str]:
        """
        Check one entry.

        Args:
            entry: Candidate ephemeris entry
            index: Position in the batch, used in messages

        Returns:
            List of problems; empty when the entry is valid
        """
        if not isinstance(entry, dict):
            return [f"[{index}] entry must be an object"]

        problems = self._validate_required_fields(entry, self.schema["required"], f"[{index}]")
        if problems:
            return problems

        problems.extend(self._validate_date(entry["date"], index))

        for section in ("planets", "houses"):
            points = entry[section]
            if not isinstance(points, list):
                problems.append(f"[{index}].{section} must be an array")
                continue
            for i, point in enumerate(points):
                problems.extend(self._validate_point(point, f"[{index}].{section}[{i}]"))

        return problems

    def _validate_required_fields(self, data: dict[str, Any], required: list[str], path: str) -> list[str]:
        missing = [name for name in required if name not in data]
        return [f"{path} missing required fields: {missing}"] if missing else []

    def _validate_date(self, value: Any, index: int) -> list[str]:
        if not isinstance(value, str) or not self._date_re.match(value):
            return [f"[{index}].date is not a valid datetime string: {value!r}"]
        return []

    def _validate_point(self, point: Any, path: str) -> list[str]:
        if not isinstance(point, dict):
            return [f"{path} must be an object"]

        problems = self._validate_required_fields(point, _POINT_SCHEMA["required"], path)
        if problems:
            return problems

        for name, rule in _POINT_SCHEMA["properties"].items():
            if not _TYPE_CHECKS[rule["type"]](point[name]):
                problems.append(f"{path}.{name} must be a {rule['type']}, got {point[name]!r}")
        return problems

    def validate_array(self, entries: Any) -> bool:
        """
        Validate a whole batch.

        Returns:
            True if valid

        Raises:
            EphemerisValidationError: If any entry fails
        """
        if not isinstance(entries, list):
            raise EphemerisValidationError("Ephemeris batch must be an array",
                                           problems=["batch must be an array"])

        problems = []
        for index, entry in enumerate(entries):
            problems.extend(self.validate_entry(entry, index))

        if problems:
            logger.error("Ephemeris validation failed",
                         problem_count=len(problems), first_problem=problems[0])
            raise EphemerisValidationError(
                f"Invalid ephemeris data: {problems[0]}",
                problems=problems,
            )

        return True

    def get_schema(self) -> dict[str, Any]:
        """Get the schema for one ephemeris entry."""
        return self.schema.copy()


# Global validator instance
validator = EphemerisValidator()


def validate_ephemeris_array(entries: Any) -> bool:
    """Convenience function to validate an ephemeris batch."""
    return validator.validate_array(entries)
