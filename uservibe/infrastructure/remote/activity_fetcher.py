"""Performs one remote lookup for one subject.

Waits for the shared rate-limit pause, sends the request, feeds the
response's quota headers back into the rate limiter and turns the body
into subject data. Every failure is raised as a ``FetchError`` subclass;
a failure never produces a cache write.
"""

import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from uservibe.domain.events.dispatcher import EventDispatcher
from uservibe.domain.events.fetch_events import FetchDeferred, FetchFailed, FetchInitiated, FetchSucceeded
from uservibe.domain.interfaces.subject_source import SubjectSource
from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import FetchParams, Subject
from uservibe.domain.models.errors import FetchError, ProtocolFailure, ThrottledFailure, TransportFailure
from uservibe.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
DEFAULT_REMAINING = 99.0
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class QuotaStatus:
    """Throttle metadata carried by every response."""
    remaining: float
    reset_seconds: int

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "QuotaStatus":
        """Parses the quota headers, falling back to "plenty left, no reset"."""
        try:
            remaining = float(headers.get(REMAINING_HEADER, DEFAULT_REMAINING))
        except (TypeError, ValueError):
            remaining = DEFAULT_REMAINING
        try:
            reset_seconds = int(float(headers.get(RESET_HEADER, 0)))
        except (TypeError, ValueError):
            reset_seconds = 0
        return cls(remaining=remaining, reset_seconds=max(0, reset_seconds))


class ActivityFetcher:
    """Rate-limit aware client for a :class:`SubjectSource`."""

    def __init__(
        self,
        source: SubjectSource,
        rate_limiter: RateLimiter,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        events: Optional[EventDispatcher] = None,
    ):
        """Initializes the fetcher.

        Args:
            source: Describes the endpoint and its payload.
            rate_limiter: Shared limiter consulted before and updated after each request.
            client: Optional pre-configured httpx client (tests pass one with a MockTransport).
            timeout: Request timeout in seconds, used when creating our own client.
            events: Optional dispatcher for fetch events.
        """
        self.source = source
        self.rate_limiter = rate_limiter
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "uservibe/1.0"},
        )
        self._events = events or EventDispatcher()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, subject: Subject, params: FetchParams) -> SubjectData:
        """Looks up one subject.

        Returns:
            The parsed data in server order. May be empty.

        Raises:
            TransportFailure: The request could not be sent or answered.
            ThrottledFailure: The service answered 429 (the pause has been extended).
            ProtocolFailure: Non-success status or a body without usable data.
        """
        wait = self.rate_limiter.remaining_pause()
        if wait > 0:
            self._events.publish(FetchDeferred(subject=subject, wait_time_seconds=wait))
        await self.rate_limiter.wait_if_paused()

        query = self.source.build_query(subject, params)
        self._events.publish(FetchInitiated(subject=subject, url=self.source.url))
        start_time = time.perf_counter()
        try:
            response = await self._client.get(self.source.url, params=query)
        except httpx.HTTPError as e:
            logger.warning(f"Network error fetching '{subject}': {e}")
            raise self._failed(subject, TransportFailure(f"Network error: {e}")) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"GET {response.request.url} -> {response.status_code} ({latency_ms:.0f}ms)")

        quota = QuotaStatus.from_headers(response.headers)
        throttled = response.status_code == httpx.codes.TOO_MANY_REQUESTS
        await self.rate_limiter.note_response(quota.remaining, quota.reset_seconds, throttled=throttled)

        if throttled:
            raise self._failed(
                subject,
                ThrottledFailure(f"Too many requests, reset in {quota.reset_seconds}s", quota.reset_seconds),
                status_code=response.status_code,
            )
        if not response.is_success:
            raise self._failed(
                subject,
                ProtocolFailure(f"HTTP {response.status_code}", status_code=response.status_code),
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise self._failed(subject, ProtocolFailure(f"Unparseable response body: {e}", response.status_code)) from e

        data = self.source.parse_payload(body)
        if data is None:
            raise self._failed(subject, ProtocolFailure("Response carried no usable data", response.status_code))

        self._events.publish(FetchSucceeded(subject=subject, latency_ms=latency_ms, item_count=len(data)))
        return data

    def _failed(self, subject: Subject, error: FetchError, status_code: Optional[int] = None) -> FetchError:
        self._events.publish(
            FetchFailed(
                subject=subject,
                error_type=type(error).__name__,
                error_message=str(error),
                status_code=status_code,
            )
        )
        return error
