"""Async client for the remote astrological calculation service."""

from typing import Any, Optional, Sequence

import httpx
import orjson

from ..config.defaults import ClientParams
from ..data.models import ChartOptions, Subject
from ..data.parsers import (
    SubjectResponse,
    TransitChartResponse,
    decode_json,
    parse_subject_response,
    parse_transit_response,
)
from ..errors import CalculationApiError, CalculationNetworkError, CalculationTimeoutError
from ..logging.config import get_fetch_logger

SUBJECT_ENDPOINT = "/subject"
TRANSIT_ENDPOINT = "/chart-data/transit"


class CalculationClient:
    """
    Thin async wrapper over the calculation service.

    Each call is one POST with a fixed timeout. Transport problems are
    mapped to day-level errors; the client never retries.
    """

    def __init__(self, params: Optional[ClientParams] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.params = params or ClientParams()
        self.logger = get_fetch_logger(__name__)
        self._client = httpx.AsyncClient(
            base_url=self.params.base_url,
            headers=self._build_headers(),
            timeout=self.params.timeout_seconds,
            transport=transport,
        )

    def _build_headers(self) -> dict[str, str]:
        """Default headers; auth headers only when configured."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.params.user_agent,
        }
        if self.params.api_host:
            headers[self.params.api_host_header] = self.params.api_host
        if self.params.api_key:
            headers[self.params.api_key_header] = self.params.api_key
        return headers

    async def __aenter__(self) -> "CalculationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, endpoint: str, body: dict[str, Any]) -> Any:
        """POST a JSON body and return the decoded response."""
        try:
            response = await self._client.post(endpoint, content=orjson.dumps(body))
        except httpx.TimeoutException as e:
            self.logger.warning(
                "Calculation request timed out",
                endpoint=endpoint,
                timeout_seconds=self.params.timeout_seconds,
            )
            raise CalculationTimeoutError(
                f"Request to {endpoint} timed out after {self.params.timeout_seconds}s",
                timeout_seconds=self.params.timeout_seconds,
            ) from e
        except httpx.HTTPError as e:
            self.logger.warning(
                "Calculation request network error",
                endpoint=endpoint,
                error=str(e),
            )
            raise CalculationNetworkError(f"Network error: {e}", endpoint=endpoint) from e

        if not response.is_success:
            text = response.text
            self.logger.warning(
                "Calculation request failed with HTTP error",
                endpoint=endpoint,
                response_code=response.status_code,
                response_data=text[:200],
            )
            raise CalculationApiError(
                f"API Error {response.status_code}: {text[:200]}",
                status_code=response.status_code,
                response_text=text,
            )

        return decode_json(response.content)

    async def get_subject(self, subject: Subject,
                          active_points: Optional[Sequence[str]] = None) -> SubjectResponse:
        """
        Compute a single subject's positions and houses.

        Args:
            subject: Subject to compute
            active_points: Points to include; service default when None

        Returns:
            Parsed subject response
        """
        body: dict[str, Any] = {"subject": subject.payload()}
        if active_points is not None:
            body["active_points"] = list(active_points)

        return parse_subject_response(await self._post(SUBJECT_ENDPOINT, body))

    async def get_transit_chart_data(self, natal: Subject, transit: Subject,
                                     options: Optional[ChartOptions] = None) -> TransitChartResponse:
        """
        Compute a transit chart of ``transit`` against ``natal``.

        Both subjects are reduced to their basic birth fields.

        Args:
            natal: Natal subject
            transit: Transit subject at the sample instant
            options: Computation options forwarded verbatim

        Returns:
            Parsed transit chart response
        """
        body: dict[str, Any] = {
            "first_subject": natal.basic_payload(),
            "transit_subject": transit.basic_payload(),
            "include_house_comparison": True,
        }
        if options is not None:
            body.update(options.to_payload())

        return parse_transit_response(await self._post(TRANSIT_ENDPOINT, body))
