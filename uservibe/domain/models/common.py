"""Defines common Value Objects used across the application.

These objects represent simple values or concepts like subjects, cache keys
and fetch parameters, ensuring consistency and type safety.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
Subject = NewType("Subject", str)        # Opaque, case-preserving id (a Reddit username)
CacheKey = NewType("CacheKey", str)      # Namespaced storage key for one subject


@dataclass(frozen=True)
class FetchParams:
    """Caller-supplied parameters that define the identity of a fetch.

    Changing either value changes what the remote service returns, so cached
    answers produced with the old values must be discarded.
    """
    limit: int = 10
    after: str = "6month"  # Relative window, "" means all time


class SubjectState(str, Enum):
    """Lifecycle of a single subject inside the Retry Scheduler."""
    IDLE = "idle"
    LOADING = "loading"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    GIVEN_UP = "given_up"

