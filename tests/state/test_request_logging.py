"""Tests for request lifecycle logging."""

import asyncio
from datetime import date
from unittest.mock import Mock, patch

import orjson
import structlog

from transit_app.logging.config import configure_logging, log_request_transition, redact_credentials
from transit_app.state.models import RequestState, TransitRequest
from transit_app.state.orchestrator import TransitTimelineOrchestrator


class TestLogRequestTransition:
    """Test the standardized transition record."""

    def setup_method(self):
        configure_logging(level="DEBUG", format_json=True)

    def test_binds_transition_fields(self):
        mock_logger = Mock()
        bound = mock_logger.bind.return_value
        bound.bind.return_value = bound

        log_request_transition(
            mock_logger,
            generation=4,
            from_state="fetching",
            to_state="settled",
            trigger="fetch_complete",
            context={"days": 31},
        )

        mock_logger.bind.assert_called_once_with(
            generation=4,
            from_state="fetching",
            to_state="settled",
            trigger="fetch_complete",
        )
        bound.bind.assert_called_once_with(context={"days": 31})
        bound.info.assert_called_once_with("request_transition")

    def test_context_is_optional(self):
        mock_logger = Mock()
        bound = mock_logger.bind.return_value

        log_request_transition(mock_logger, 1, "idle", "fetching", "request")

        bound.bind.assert_not_called()
        bound.info.assert_called_once_with("request_transition")


class TestRedactCredentials:
    """Test masking of credentials before rendering."""

    def test_top_level_keys_are_masked(self):
        event = redact_credentials(None, "info", {"event": "x", "api_key": "s3cret", "Authorization": "Bearer t"})

        assert event == {"event": "x", "api_key": "***", "Authorization": "***"}

    def test_headers_mapping_is_masked(self):
        headers = {"X-RapidAPI-Key": "s3cret", "User-Agent": "transit-app"}

        event = redact_credentials(None, "info", {"event": "x", "headers": headers})

        assert event["headers"] == {"X-RapidAPI-Key": "***", "User-Agent": "transit-app"}
        assert headers["X-RapidAPI-Key"] == "s3cret"

    def test_empty_values_are_left_alone(self):
        event = redact_credentials(None, "info", {"event": "x", "api_key": ""})
        assert event["api_key"] == ""

    def test_json_output_never_contains_the_key(self, capsys):
        configure_logging(level="INFO", format_json=True, include_timestamp=False)
        structlog.get_logger("transit_app.test").info("client configured", api_key="s3cret")

        record = orjson.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["api_key"] == "***"
        assert record["event"] == "client configured"


class TestOrchestratorTransitions:
    """Test which transitions an orchestrator records."""

    def test_supersession_is_logged(self, range_fetcher, natal_subject):
        """Test the transition sequence when a running request is replaced."""
        orchestrator = None
        req_a = TransitRequest("subject-a", natal_subject, date(2024, 1, 1), date(2024, 2, 29))
        req_b = TransitRequest("subject-b", natal_subject, date(2024, 3, 1), date(2024, 3, 2))

        def listener(snapshot):
            if snapshot.generation == 1 and snapshot.data and orchestrator.generation == 1:
                orchestrator.request(req_b)

        orchestrator = TransitTimelineOrchestrator(range_fetcher, listener)

        async def scenario():
            task_a = orchestrator.request(req_a)
            await task_a
            await orchestrator.wait()

        with patch("transit_app.state.orchestrator.log_request_transition") as mock_log:
            asyncio.run(scenario())

        transitions = [
            (c.kwargs["generation"], c.kwargs["to_state"]) for c in mock_log.call_args_list
        ]
        assert transitions == [
            (1, RequestState.FETCHING.value),
            (1, RequestState.SUPERSEDED.value),
            (2, RequestState.FETCHING.value),
            (2, RequestState.SETTLED.value),
        ]
