"""Failure taxonomy for remote lookups.

All fetch failures collapse to ``FetchError`` for the Retry Scheduler; only
``ThrottledFailure`` additionally moves the shared rate-limit pause.
"""

from typing import Optional


class FetchError(Exception):
    """Base class for any failed lookup of a single subject."""


class TransportFailure(FetchError):
    """The remote service could not be reached (DNS, connect, timeout...)."""


class ThrottledFailure(FetchError):
    """The remote service answered with an explicit 'too many requests'."""

    def __init__(self, message: str, reset_seconds: int = 0):
        self.reset_seconds = reset_seconds
        super().__init__(message)


class ProtocolFailure(FetchError):
    """Non-success status, unparseable body or a payload without usable data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RetriesExhausted(FetchError):
    """Raised when a subject has failed too many consecutive attempts."""

    def __init__(self, subject: str, attempts: int, last_error: Optional[Exception] = None):
        self.subject = subject
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Giving up on '{subject}' after {attempts} retries. Last error: {last_error}")
