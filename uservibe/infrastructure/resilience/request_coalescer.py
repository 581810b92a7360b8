"""Merges concurrent lookups of the same subject into one operation."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject

logger = logging.getLogger(__name__)


class RequestCoalescer:
    """At most one outstanding operation per subject.

    Callers arriving while an operation is in flight join it and receive the
    same outcome (the same result object or the same exception). The entry
    is dropped once the operation settles, so failures are not shared with
    later attempts.
    """

    def __init__(self):
        self._in_flight: Dict[Subject, "asyncio.Future[SubjectData]"] = {}
        self._lock = asyncio.Lock()

    def in_flight(self, subject: Subject) -> bool:
        return subject in self._in_flight

    async def resolve_once(
        self, subject: Subject, fn: Callable[[], Awaitable[SubjectData]]
    ) -> SubjectData:
        """Runs ``fn`` for ``subject`` unless a run is already in flight.

        Raises:
            Whatever ``fn`` raises, to every joined caller.
        """
        async with self._lock:
            future = self._in_flight.get(subject)
            owner = future is None
            if owner:
                # Inserted before fn() gets a chance to suspend
                future = asyncio.get_running_loop().create_future()
                self._in_flight[subject] = future

        if not owner:
            logger.debug(f"Joining in-flight request for '{subject}'")
            return await asyncio.shield(future)

        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so a join-less failure does not warn on GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            async with self._lock:
                if self._in_flight.get(subject) is future:
                    del self._in_flight[subject]
