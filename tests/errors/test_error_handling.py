"""
Error handling tests for the transit timeline pipeline.

Tests cover the error hierarchy and how day-level failures are contained
by the fetchers while range-level failures surface.
"""

import asyncio
from datetime import date

import pytest

from transit_app.data.parsers import (
    build_transit_day,
    decode_json,
    parse_subject_response,
    parse_transit_response,
)
from transit_app.errors import (
    CacheUnavailableError,
    CalculationApiError,
    CalculationNetworkError,
    CalculationTimeoutError,
    ConfigurationError,
    DayFetchError,
    EphemerisValidationError,
    IncompleteResponseError,
    MalformedResponseError,
    NoDataError,
    PipelineFailureError,
)


class TestErrorClassification:
    """Test error classification system."""

    def test_day_level_error_hierarchy(self):
        """Test that day-level errors are recoverable."""
        base_error = DayFetchError("base error")
        assert base_error.recoverable is True
        assert base_error.context == {}

        timeout_error = CalculationTimeoutError("timed out", timeout_seconds=15.0)
        assert isinstance(timeout_error, DayFetchError)
        assert timeout_error.timeout_seconds == 15.0

        api_error = CalculationApiError("API Error 429: slow down", status_code=429,
                                        response_text="slow down")
        assert isinstance(api_error, DayFetchError)
        assert api_error.status_code == 429

        network_error = CalculationNetworkError("refused", endpoint="/subject")
        assert network_error.endpoint == "/subject"

        incomplete_error = IncompleteResponseError("no subject", status="OK",
                                                   missing_fields=["second_subject"])
        assert incomplete_error.missing_fields == ["second_subject"]

    def test_pipeline_failure_hierarchy(self):
        """Test that pipeline failures are not recoverable."""
        no_data = NoDataError("nothing", start="2024-01-01", end="2024-01-31")
        assert isinstance(no_data, PipelineFailureError)
        assert no_data.recoverable is False
        assert no_data.start == "2024-01-01"

        validation = EphemerisValidationError("bad", problems=["[0].date"])
        assert validation.problems == ["[0].date"]

        cache_error = CacheUnavailableError("disk", operation="read", key="s_2024-01")
        assert cache_error.operation == "read"
        assert cache_error.key == "s_2024-01"

        config_error = ConfigurationError("invalid")
        assert config_error.errors == []

    def test_error_context_is_preserved(self):
        """Test that context dictionaries are carried through."""
        error = MalformedResponseError("bad json", raw_data="{", expected_format="json",
                                       context={"endpoint": "/subject"})
        assert error.context == {"endpoint": "/subject"}
        assert error.raw_data == "{"


class TestResponseParsing:
    """Test parser error mapping."""

    def test_decode_invalid_json(self):
        """Test that an undecodable body raises MalformedResponseError."""
        with pytest.raises(MalformedResponseError) as exc_info:
            decode_json(b"<html>gateway</html>")
        assert exc_info.value.expected_format == "json"

    def test_non_object_body(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(MalformedResponseError):
            parse_transit_response([1, 2, 3])

    def test_subject_response_without_subject(self):
        """Test that a subject response must carry a subject object."""
        with pytest.raises(MalformedResponseError):
            parse_subject_response({"status": "OK"})

    def test_invalid_aspect(self):
        """Test that aspects missing required keys are rejected."""
        payload = {"status": "OK", "chart_data": {"aspects": [{"p1_name": "Sun"}]}}
        with pytest.raises(MalformedResponseError):
            parse_transit_response(payload)

    def test_non_ok_status(self, transit_payload):
        """Test that a non-OK status is an incomplete response."""
        response = parse_transit_response(transit_payload(date(2024, 1, 1), status="ERROR"))
        with pytest.raises(IncompleteResponseError) as exc_info:
            build_transit_day(date(2024, 1, 1), response)
        assert exc_info.value.status == "ERROR"

    def test_missing_transit_subject(self):
        """Test that an OK response without a transit subject is incomplete."""
        response = parse_transit_response({"status": "OK", "chart_data": {"aspects": []}})
        with pytest.raises(IncompleteResponseError) as exc_info:
            build_transit_day(date(2024, 1, 1), response)
        assert exc_info.value.missing_fields == ["second_subject"]


class TestFailureContainment:
    """Test that day failures never escape the fetchers."""

    def test_every_failure_type_is_skipped(self, range_fetcher, fake_client, natal_subject):
        """Test that each day-level error type results in a skipped day."""
        errors = [
            CalculationTimeoutError("timeout"),
            CalculationNetworkError("refused"),
            MalformedResponseError("garbage"),
            IncompleteResponseError("no subject"),
        ]

        async def failing(natal, transit, options=None):
            raise errors.pop(0)

        fake_client.get_transit_chart_data = failing

        days = asyncio.run(range_fetcher.fetch_range(
            "subject-1", natal_subject, date(2024, 1, 1), date(2024, 1, 4)
        ))

        assert days == []
        assert errors == []

    def test_all_ephemeris_days_failing_raises_no_data(self, ephemeris_fetcher, fake_client):
        """Test that a range with zero results surfaces NoDataError."""
        fake_client.fail_days = {date(2024, 1, 1), date(2024, 1, 2)}

        with pytest.raises(NoDataError, match="No ephemeris data could be fetched"):
            asyncio.run(ephemeris_fetcher.fetch_ephemeris(date(2024, 1, 1), date(2024, 1, 2)))
