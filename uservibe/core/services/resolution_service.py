"""Subject resolution: the single entry point used by the discovery layer.

Composes the cache, the coalesced fetcher, the shared rate limiter and the
retry scheduler behind ``resolve(subject)``:

1. Cache hit -> return immediately.
2. Miss -> drive the retry scheduler, one coalesced fetch per attempt.
3. Success -> the attempt has already written through to the cache.
4. Given up -> None; the listener is told to drop its loading indicator.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from uservibe.domain.events.fetch_events import RetryScheduled, SubjectGivenUp
from uservibe.domain.interfaces.annotation_listener import AnnotationListener, NullAnnotationListener
from uservibe.domain.interfaces.cache import SubjectCache
from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import FetchParams, Subject, SubjectState
from uservibe.domain.models.errors import RetriesExhausted
from uservibe.infrastructure.remote.activity_fetcher import ActivityFetcher
from uservibe.infrastructure.resilience.request_coalescer import RequestCoalescer
from uservibe.infrastructure.resilience.retry_scheduler import RetryScheduler

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 7 * 24 * 60 * 60


class SubjectResolver:
    """Resolves subjects to their activity data."""

    def __init__(
        self,
        cache: SubjectCache,
        fetcher: ActivityFetcher,
        scheduler: RetryScheduler,
        params: Optional[FetchParams] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        listener: Optional[AnnotationListener] = None,
    ):
        """Initializes the resolver.

        Args:
            cache: Store for successful results.
            fetcher: Performs one remote lookup.
            scheduler: Drives retries; shares the fetcher's rate limiter.
            params: Fetch identity (limit, time window).
            cache_ttl: Maximum age of a cached entry, in seconds.
            listener: Rendering collaborator notified of progress.
        """
        self.cache = cache
        self.fetcher = fetcher
        self.scheduler = scheduler
        self.params = params or FetchParams()
        self.cache_ttl = cache_ttl
        self.listener = listener or NullAnnotationListener()
        self._coalescer = RequestCoalescer()
        # Retry and give-up events are published on the scheduler's dispatcher
        scheduler.events.subscribe(RetryScheduled, self._on_retry_scheduled)
        scheduler.events.subscribe(SubjectGivenUp, self._on_given_up)

    @property
    def rate_limiter(self):
        return self.scheduler.rate_limiter

    def state_of(self, subject: Subject) -> SubjectState:
        return self.scheduler.state_of(subject)

    def update_params(self, params: FetchParams) -> None:
        """Replaces the fetch parameters. Clearing the cache is the caller's job."""
        if params != self.params:
            logger.info(f"Fetch parameters changed: {self.params} -> {params}")
        self.params = params

    async def resolve(self, subject: Subject) -> Optional[SubjectData]:
        """Returns data for ``subject``, or None once it has been given up on.

        Concurrent calls for a subject that is already being resolved join
        that resolution and receive the same outcome.
        """
        cached = await self.cache.get(subject, self.cache_ttl)
        if cached is not None:
            self.listener.on_data_ready(subject, cached)
            return cached

        if not self.scheduler.is_active(subject) and not self.scheduler.is_cooling_down(subject):
            self.listener.on_loading_started(subject)

        try:
            return await self.scheduler.run(subject, lambda: self._attempt(subject))
        except RetriesExhausted as e:
            logger.debug(f"'{subject}' unavailable: {e}")
            return None

    async def on_subject_discovered(self, subject: Subject) -> Optional[SubjectData]:
        """Discovery-layer hook. A no-op while the subject is loading, retrying or cooling down."""
        if self.scheduler.is_active(subject):
            logger.debug(f"Ignoring re-discovery of '{subject}' (already {self.state_of(subject).value})")
            return None
        if self.scheduler.is_cooling_down(subject):
            logger.debug(f"Ignoring re-discovery of '{subject}' (given up recently)")
            return None
        return await self.resolve(subject)

    async def resolve_many(self, subjects: Iterable[Subject]) -> Dict[Subject, Optional[SubjectData]]:
        """Resolves several subjects concurrently. Duplicates are looked up once."""
        unique: List[Subject] = list(dict.fromkeys(subjects))
        results = await asyncio.gather(*(self.resolve(subject) for subject in unique))
        return dict(zip(unique, results))

    async def retry_now(self, subject: Subject) -> Optional[SubjectData]:
        """Manual retry: clears the rate-limit pause and restarts ``subject`` from attempt 0."""
        logger.info(f"Manual retry requested for '{subject}'")
        await self.scheduler.retry_now(subject)
        return await self.resolve(subject)

    def rate_limit_tip(self) -> str:
        return self.rate_limiter.describe_state()

    async def _attempt(self, subject: Subject) -> SubjectData:
        return await self._coalescer.resolve_once(subject, lambda: self._fetch_and_store(subject))

    async def _fetch_and_store(self, subject: Subject) -> SubjectData:
        data = await self.fetcher.fetch(subject, self.params)
        await self.cache.put(subject, data)
        self.listener.on_data_ready(subject, data)
        return data

    def _on_retry_scheduled(self, event: RetryScheduled) -> None:
        self.listener.on_rate_limit_tip_changed(Subject(event.subject), self.rate_limit_tip())

    def _on_given_up(self, event: SubjectGivenUp) -> None:
        self.listener.on_given_up(Subject(event.subject))
