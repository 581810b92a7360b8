import asyncio
from typing import List

import pytest

from uservibe.domain.events.fetch_events import RetryScheduled, SubjectGivenUp
from uservibe.domain.models.activity import SubredditActivity
from uservibe.domain.models.common import Subject, SubjectState
from uservibe.domain.models.errors import ProtocolFailure, RetriesExhausted, TransportFailure
from uservibe.infrastructure.resilience.retry_scheduler import RetryScheduler, compute_retry_delay

BOB = Subject("bob")
PAYLOAD = (SubredditActivity("AskReddit", 3),)


@pytest.fixture
def scheduler(rate_limiter, clock, events):
    return RetryScheduler(rate_limiter, clock=clock, events=events)


@pytest.fixture
def slept(scheduler, clock, monkeypatch) -> List[float]:
    """Replaces the real retry sleep with one that advances the fake clock."""
    delays: List[float] = []

    async def fake_sleep(record, delay):
        delays.append(delay)
        clock.advance(delay)

    monkeypatch.setattr(scheduler, "_sleep_until_retry", fake_sleep)
    return delays


def failing_then(results):
    """Attempt function yielding each item in turn, then failing forever."""
    remaining = list(results)
    calls = []
    exhausted = TransportFailure("down")

    async def attempt():
        calls.append(1)
        item = remaining.pop(0) if remaining else exhausted
        if isinstance(item, Exception):
            raise item
        return item

    attempt.calls = calls
    return attempt


@pytest.mark.parametrize(
    "attempt, expected",
    [(0, 2), (1, 4), (2, 8), (3, 16), (4, 32), (5, 60), (10, 60)],
)
def test_backoff_is_exponential_and_capped(attempt, expected):
    assert compute_retry_delay(attempt, pause_until=0, now=1000) == expected


def test_rate_limit_pause_is_a_floor():
    assert compute_retry_delay(0, pause_until=1010, now=1000) == 10
    assert compute_retry_delay(4, pause_until=1010, now=1000) == 32


@pytest.mark.asyncio
async def test_success_on_first_attempt(scheduler, slept):
    attempt = failing_then([PAYLOAD])

    assert await scheduler.run(BOB, attempt) is PAYLOAD
    assert len(attempt.calls) == 1
    assert slept == []
    assert scheduler.state_of(BOB) is SubjectState.IDLE
    assert scheduler.attempt_of(BOB) == 0
    assert scheduler.tracked_count == 0


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(scheduler, slept, recorded_events):
    attempt = failing_then([TransportFailure("reset"), ProtocolFailure("HTTP 502", 502), PAYLOAD])

    assert await scheduler.run(BOB, attempt) is PAYLOAD

    assert slept == [2, 4]
    assert len(attempt.calls) == 3
    scheduled = [e for e in recorded_events if isinstance(e, RetryScheduled)]
    assert [e.attempt_number for e in scheduled] == [1, 2]
    assert scheduler.attempt_of(BOB) == 0


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(scheduler, slept, recorded_events):
    attempt = failing_then([])

    with pytest.raises(RetriesExhausted) as exc_info:
        await scheduler.run(BOB, attempt)

    assert len(attempt.calls) == scheduler.max_retries + 1
    assert slept == [2, 4, 8, 16, 32]
    assert isinstance(exc_info.value.last_error, TransportFailure)
    assert scheduler.state_of(BOB) is SubjectState.GIVEN_UP
    given_up = [e for e in recorded_events if isinstance(e, SubjectGivenUp)]
    assert len(given_up) == 1 and given_up[0].attempts == 5


@pytest.mark.asyncio
async def test_given_up_subject_is_not_retried_during_cooldown(scheduler, slept, clock):
    with pytest.raises(RetriesExhausted):
        await scheduler.run(BOB, failing_then([]))

    second = failing_then([PAYLOAD])
    clock.advance(scheduler.give_up_cooldown - 1)
    assert scheduler.is_cooling_down(BOB)
    with pytest.raises(RetriesExhausted) as exc_info:
        await scheduler.run(BOB, second)
    assert second.calls == []
    assert exc_info.value.attempts == 5
    assert "after 5 retries" in str(exc_info.value)

    clock.advance(1)
    assert not scheduler.is_cooling_down(BOB)
    assert await scheduler.run(BOB, second) is PAYLOAD


@pytest.mark.asyncio
async def test_retry_now_after_give_up_starts_over(scheduler, slept):
    with pytest.raises(RetriesExhausted):
        await scheduler.run(BOB, failing_then([]))

    assert await scheduler.retry_now(BOB) is False
    assert scheduler.state_of(BOB) is SubjectState.IDLE
    assert not scheduler.is_cooling_down(BOB)

    attempt = failing_then([PAYLOAD])
    assert await scheduler.run(BOB, attempt) is PAYLOAD
    assert len(attempt.calls) == 1


@pytest.mark.asyncio
async def test_retry_now_skips_pending_delay(rate_limiter, clock, events):
    # Real sleep, long backoff: only the manual retry can finish this quickly
    scheduler = RetryScheduler(rate_limiter, base_delay=30, clock=clock, events=events)
    attempt = failing_then([TransportFailure("down"), PAYLOAD])
    await rate_limiter.note_pause_until(clock() + 120)

    task = asyncio.create_task(scheduler.run(BOB, attempt))
    for _ in range(5):
        await asyncio.sleep(0)
    assert scheduler.state_of(BOB) is SubjectState.RETRYING
    assert scheduler.attempt_of(BOB) == 1

    assert await scheduler.retry_now(BOB) is True
    assert rate_limiter.pause_until == 0.0

    assert await asyncio.wait_for(task, timeout=1) is PAYLOAD
    assert len(attempt.calls) == 2
    assert scheduler.state_of(BOB) is SubjectState.IDLE


@pytest.mark.asyncio
async def test_concurrent_runs_join_one_resolution(scheduler, slept):
    gate = asyncio.Event()
    calls = []

    async def attempt():
        calls.append(1)
        await gate.wait()
        return PAYLOAD

    tasks = [asyncio.create_task(scheduler.run(BOB, attempt)) for _ in range(4)]
    await asyncio.sleep(0)
    assert scheduler.is_active(BOB)
    gate.set()

    results = await asyncio.gather(*tasks)

    assert len(calls) == 1
    assert all(result is PAYLOAD for result in results)


@pytest.mark.asyncio
async def test_cancellation_returns_subject_to_idle(scheduler):
    started = asyncio.Event()

    async def attempt():
        started.set()
        await asyncio.sleep(60)
        return PAYLOAD

    task = asyncio.create_task(scheduler.run(BOB, attempt))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert scheduler.state_of(BOB) is SubjectState.IDLE
    assert not scheduler.is_active(BOB)
    assert scheduler.tracked_count == 0


@pytest.mark.asyncio
async def test_finished_subjects_are_forgotten(scheduler):
    async def ok():
        return PAYLOAD

    for i in range(1000):
        await scheduler.run(Subject(f"user{i}"), ok)

    assert scheduler.tracked_count == 0


@pytest.mark.asyncio
async def test_given_up_subject_is_dropped_after_cooldown(scheduler, slept, clock):
    with pytest.raises(RetriesExhausted):
        await scheduler.run(BOB, failing_then([]))
    assert scheduler.tracked_count == 1

    clock.advance(scheduler.give_up_cooldown)
    await scheduler.run(Subject("alice"), failing_then([PAYLOAD]))

    assert scheduler.tracked_count == 0
    assert scheduler.state_of(BOB) is SubjectState.IDLE
