"""Domain Events related to fetching, caching and retrying subjects.

Examples include events for when fetches are deferred by the rate limit,
retried, given up on, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class FetchInitiated(DomainEvent):
    """A request for one subject is about to be sent."""
    subject: str
    url: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class FetchSucceeded(DomainEvent):
    """The remote service returned usable data for a subject."""
    subject: str
    latency_ms: float
    item_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class FetchFailed(DomainEvent):
    """A single attempt failed (it may still be retried)."""
    subject: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class FetchDeferred(DomainEvent):
    """A fetch is waiting for the shared rate-limit pause to elapse."""
    subject: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """A failed subject will be attempted again after ``delay_seconds``."""
    subject: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class SubjectGivenUp(DomainEvent):
    """No further attempts will be made for a subject."""
    subject: str
    attempts: int
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheCleared(DomainEvent):
    """Every cached subject was removed."""
    removed: int
    reason: str = "manual"
    timestamp: float = field(default_factory=time.time)
