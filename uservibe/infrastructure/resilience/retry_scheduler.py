"""Per-subject retry state machine with bounded exponential backoff.

States: idle -> loading -> {succeeded | retrying -> loading | given_up}.
A subject is tracked only while it is being resolved or cooling down after
giving up; unknown subjects report idle.
A failed attempt is retried after ``max(backoff, remaining rate-limit pause)``
until ``max_retries`` retries have been spent.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

from uservibe.domain.events.dispatcher import EventDispatcher
from uservibe.domain.events.fetch_events import RetryScheduled, SubjectGivenUp
from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject, SubjectState
from uservibe.domain.models.errors import FetchError, RetriesExhausted
from uservibe.infrastructure.resilience.rate_limiter import RateLimiter
from uservibe.infrastructure.resilience.request_coalescer import RequestCoalescer

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 60.0
DEFAULT_GIVE_UP_COOLDOWN_SECONDS = 15 * 60


def compute_retry_delay(
    attempt: int,
    pause_until: float,
    now: float,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
) -> float:
    """Delay in seconds before retrying after failed attempt number ``attempt`` (0-based).

    The exponential term is ``2^(attempt+1) * base_delay`` capped at
    ``max_delay``. A known rate-limit deadline acts as a floor.
    """
    backoff = min((2 ** (attempt + 1)) * base_delay, max_delay)
    return max(backoff, pause_until - now)


@dataclass
class _SubjectRecord:
    """Scheduler-owned bookkeeping for one subject."""
    state: SubjectState = SubjectState.IDLE
    attempt: int = 0
    given_up_at: Optional[float] = None
    given_up_after: int = 0
    retry_signal: asyncio.Event = field(default_factory=asyncio.Event)


class RetryScheduler:
    """Drives repeated attempts for each subject, one resolution at a time."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        give_up_cooldown: float = DEFAULT_GIVE_UP_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
        events: Optional[EventDispatcher] = None,
    ):
        """Initializes the RetryScheduler.

        Args:
            rate_limiter: Shared limiter, read for the pause floor and cleared on manual retry.
            max_retries: Retries after the first attempt before giving up.
            base_delay: Seconds multiplied by ``2^(attempt+1)`` for the backoff.
            max_delay: Upper bound of the exponential term.
            give_up_cooldown: Seconds during which a given-up subject is not retried
                automatically. 0 disables the cooldown.
            clock: Returns the current Unix time in seconds.
            events: Optional dispatcher for retry/give-up events.
        """
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.give_up_cooldown = give_up_cooldown
        self._clock = clock
        self.events = events or EventDispatcher()
        self._records: Dict[Subject, _SubjectRecord] = {}
        # Whole resolutions (all attempts) are coalesced per subject
        self._resolutions = RequestCoalescer()
        logger.info(
            f"RetryScheduler initialized: max_retries={max_retries}, base_delay={base_delay}s, "
            f"max_delay={max_delay}s, give_up_cooldown={give_up_cooldown}s"
        )

    # --- State inspection ---

    def state_of(self, subject: Subject) -> SubjectState:
        record = self._records.get(subject)
        return record.state if record else SubjectState.IDLE

    def attempt_of(self, subject: Subject) -> int:
        record = self._records.get(subject)
        return record.attempt if record else 0

    def is_active(self, subject: Subject) -> bool:
        """True while the subject is loading or waiting to retry."""
        return self.state_of(subject) in (SubjectState.LOADING, SubjectState.RETRYING)

    def is_cooling_down(self, subject: Subject) -> bool:
        """True if the subject was given up on less than ``give_up_cooldown`` seconds ago."""
        record = self._records.get(subject)
        if record is None or record.state is not SubjectState.GIVEN_UP or record.given_up_at is None:
            return False
        return self._clock() - record.given_up_at < self.give_up_cooldown

    @property
    def tracked_count(self) -> int:
        """Number of subjects currently holding scheduler state."""
        return len(self._records)

    def delay_for(self, attempt: int) -> float:
        return compute_retry_delay(
            attempt, self.rate_limiter.pause_until, self._clock(), self.base_delay, self.max_delay
        )

    # --- Driving ---

    async def run(
        self,
        subject: Subject,
        attempt_fn: Callable[[], Awaitable[SubjectData]],
    ) -> SubjectData:
        """Resolves ``subject`` by calling ``attempt_fn`` until it succeeds or we give up.

        A call for a subject that is already being resolved joins the running
        resolution instead of starting another one.

        Args:
            subject: The subject being resolved.
            attempt_fn: One attempt; raises FetchError on failure.

        Returns:
            The data produced by the successful attempt.

        Raises:
            RetriesExhausted: If the subject was given up on, now or within the cooldown.
        """
        self._prune_expired()
        if not self._resolutions.in_flight(subject) and self.is_cooling_down(subject):
            logger.debug(f"'{subject}' was given up on recently, not retrying yet")
            raise RetriesExhausted(subject, self._records[subject].given_up_after)
        return await self._resolutions.resolve_once(subject, lambda: self._drive(subject, attempt_fn))

    async def retry_now(self, subject: Subject) -> bool:
        """Manual "retry now": clears the rate-limit pause and resets the attempt counter.

        Returns:
            True if a running resolution was nudged (a pending delay is skipped
            and it re-enters loading immediately). False if nothing is running
            for the subject; the caller should start a new resolution. A
            given-up subject is forgotten, so its cooldown no longer applies.
        """
        await self.rate_limiter.clear()
        record = self._records.get(subject)
        if record is None:
            return False
        if record.state is SubjectState.GIVEN_UP:
            del self._records[subject]
            return False
        record.attempt = 0
        if record.state is SubjectState.RETRYING:
            logger.info(f"Manual retry for '{subject}', skipping scheduled delay")
            record.retry_signal.set()
        return True

    async def _drive(
        self,
        subject: Subject,
        attempt_fn: Callable[[], Awaitable[SubjectData]],
    ) -> SubjectData:
        record = self._records[subject] = _SubjectRecord(state=SubjectState.LOADING)
        try:
            while True:
                record.state = SubjectState.LOADING
                try:
                    data = await attempt_fn()
                except FetchError as e:
                    delay = self._schedule_retry(subject, record, e)
                    await self._sleep_until_retry(record, delay)
                    continue
                record.state = SubjectState.SUCCEEDED
                self._forget(subject, record)
                return data
        except (asyncio.CancelledError, Exception):
            if record.state is not SubjectState.GIVEN_UP:
                self._forget(subject, record)
            raise

    def _forget(self, subject: Subject, record: _SubjectRecord) -> None:
        if self._records.get(subject) is record:
            del self._records[subject]

    def _prune_expired(self) -> None:
        """Drops given-up subjects whose cooldown has elapsed."""
        expired = [
            subject for subject, record in self._records.items()
            if record.state is SubjectState.GIVEN_UP and not self.is_cooling_down(subject)
        ]
        for subject in expired:
            del self._records[subject]

    def _schedule_retry(self, subject: Subject, record: _SubjectRecord, error: FetchError) -> float:
        """Moves a failed subject to retrying and returns the delay, or gives up.

        Raises:
            RetriesExhausted: If ``max_retries`` retries have already been spent.
        """
        if record.attempt >= self.max_retries:
            record.state = SubjectState.GIVEN_UP
            record.given_up_at = self._clock()
            attempts, record.attempt = record.attempt, 0
            record.given_up_after = attempts
            logger.warning(f"Giving up on '{subject}' after {attempts} retries")
            self.events.publish(SubjectGivenUp(subject=subject, attempts=attempts, reason=str(error)))
            raise RetriesExhausted(subject, attempts, error) from error

        delay = self.delay_for(record.attempt)
        record.attempt += 1
        record.state = SubjectState.RETRYING
        logger.debug(
            f"Retry {record.attempt}/{self.max_retries} for '{subject}' in {delay:.1f}s ({type(error).__name__})"
        )
        self.events.publish(RetryScheduled(subject=subject, attempt_number=record.attempt, delay_seconds=delay))
        return delay

    async def _sleep_until_retry(self, record: _SubjectRecord, delay: float) -> None:
        """Waits ``delay`` seconds, or less if a manual retry fires the record's signal."""
        signal = record.retry_signal
        try:
            await asyncio.wait_for(signal.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        if signal.is_set():
            record.retry_signal = asyncio.Event()
