"""Shared test fixtures for unit and integration tests.

Provides a controllable clock, an in-memory cache, a mocked rendering
listener and helpers for building fetchers on top of httpx.MockTransport.
No real network or user configuration is touched.
"""

import os
from typing import Callable, List

import httpx
import pytest
from typer.testing import CliRunner

from uservibe.domain.events.dispatcher import EventDispatcher
from uservibe.domain.events.fetch_events import DomainEvent
from uservibe.domain.interfaces.annotation_listener import AnnotationListener
from uservibe.infrastructure.cache.subject_cache import MemorySubjectCache
from uservibe.infrastructure.config.settings import clear_test_config, reset_configuration
from uservibe.infrastructure.remote.activity_fetcher import ActivityFetcher
from uservibe.infrastructure.remote.arctic_shift_source import SubredditInteractionsSource
from uservibe.infrastructure.resilience.rate_limiter import RateLimiter

API_URL = "https://api.test/interactions/subreddits"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def api_url() -> str:
    return API_URL


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def recorded_events(events: EventDispatcher) -> List[object]:
    """Every event published on the ``events`` fixture, in order."""
    seen: List[object] = []
    events.subscribe(DomainEvent, seen.append)
    return seen


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def memory_cache(clock: FakeClock) -> MemorySubjectCache:
    return MemorySubjectCache(clock=clock)


@pytest.fixture
def mock_listener(mocker):
    return mocker.MagicMock(spec=AnnotationListener)


@pytest.fixture
def make_fetcher(events: EventDispatcher):
    """Factory: builds an ActivityFetcher whose requests are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], limiter: RateLimiter) -> ActivityFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ActivityFetcher(SubredditInteractionsSource(API_URL), limiter, client=client, events=events)

    return _make


def json_response(data, status_code: int = 200, remaining: float = 50, reset: int = 0) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=data,
        headers={"x-ratelimit-remaining": str(remaining), "x-ratelimit-reset": str(reset)},
    )


@pytest.fixture
def respond():
    """Builds JSON responses carrying the quota headers."""
    return json_response


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_configuration(tmp_path, monkeypatch):
    """Keeps tests away from the real ~/.uservibe and any stray .env file."""
    for key in list(os.environ):
        if key.startswith("USERVIBE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("USERVIBE_CONFIG_FILE", str(tmp_path / "config.yaml"))
    monkeypatch.setenv("USERVIBE_CACHE_DIR", str(tmp_path / "cache"))
    reset_configuration()
    clear_test_config()
    yield
    reset_configuration()
    clear_test_config()
