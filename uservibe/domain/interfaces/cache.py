"""Interface for the per-subject cache.

Defines the contract for storing and retrieving subject data with a
time-to-live that is checked lazily on read.
"""

import abc
from typing import Optional

from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject


class SubjectCache(abc.ABC):
    """Abstract Base Class for TTL-checked subject caching.

    Implementations never raise on their own account: a storage error on
    read is reported as a miss, and on write it is logged and dropped.
    """

    @abc.abstractmethod
    async def get(self, subject: Subject, ttl: float) -> Optional[SubjectData]:
        """Retrieves a subject's data if it was fetched less than ``ttl`` seconds ago.

        Args:
            subject: The subject to look up.
            ttl: Maximum entry age in seconds. An entry exactly ``ttl``
                seconds old is already expired.

        Returns:
            The cached data, or None if absent or expired.
        """
        pass

    @abc.abstractmethod
    async def put(self, subject: Subject, data: SubjectData) -> None:
        """Stores (always overwrites) a subject's data, stamped with the current time.

        Callers must never pass a "no usable information" result here.
        """
        pass

    @abc.abstractmethod
    async def clear_all(self) -> int:
        """Removes every subject entry in this store's namespace.

        Other data kept in the same backing store is left alone.

        Returns:
            The number of entries removed.
        """
        pass
