"""Concrete implementations of the per-subject cache.

Entries are ``{"fetched_at": <unix seconds>, "data": [records]}`` stored
under ``KEY_PREFIX + subject``. Expiry is checked on read; there is no
background sweep. Storage errors are logged and degrade to a cache miss.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import diskcache as dc

from uservibe.domain.interfaces.cache import SubjectCache
from uservibe.domain.models.activity import SubjectData, activity_from_records, activity_to_records
from uservibe.domain.models.common import CacheKey, Subject

logger = logging.getLogger(__name__)

KEY_PREFIX = "uservibe_user_"
DEFAULT_CACHE_DIR = Path.home() / ".uservibe" / "cache"


def cache_key_for(subject: Subject) -> CacheKey:
    return CacheKey(KEY_PREFIX + subject)


@dataclass
class CacheEntry:
    """Internal representation of a stored subject."""
    data: SubjectData
    fetched_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.fetched_at < ttl

    def to_record(self) -> Dict[str, Any]:
        return {"fetched_at": self.fetched_at, "data": activity_to_records(self.data)}

    @classmethod
    def from_record(cls, record: Any) -> "CacheEntry":
        """Raises KeyError, TypeError or ValueError for a malformed record."""
        return cls(data=activity_from_records(record["data"]), fetched_at=float(record["fetched_at"]))


class MemorySubjectCache(SubjectCache):
    """Process-local cache, lost on exit."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    async def get(self, subject: Subject, ttl: float) -> Optional[SubjectData]:
        entry = self._entries.get(cache_key_for(subject))
        if entry is None or not entry.is_fresh(self._clock(), ttl):
            logger.debug(f"Cache miss for '{subject}'")
            return None
        logger.debug(f"Cache hit for '{subject}'")
        return entry.data

    async def put(self, subject: Subject, data: SubjectData) -> None:
        self._entries[cache_key_for(subject)] = CacheEntry(data=data, fetched_at=self._clock())

    async def clear_all(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared {removed} user cache entries")
        return removed


class DiskSubjectCache(SubjectCache):
    """Persistent cache backed by a diskcache directory.

    The directory may hold other data; only keys carrying ``KEY_PREFIX``
    belong to this store.
    """

    def __init__(
        self,
        cache_dir: Path = DEFAULT_CACHE_DIR,
        clock: Callable[[], float] = time.time,
        disk_cache: Optional[dc.Cache] = None,
    ):
        """Initializes the disk cache.

        Args:
            cache_dir: Directory for the diskcache database.
            clock: Returns the current Unix time in seconds.
            disk_cache: Optional already opened diskcache.Cache to share.
        """
        self._clock = clock
        if disk_cache is not None:
            self._cache: Optional[dc.Cache] = disk_cache
        else:
            try:
                self._cache = dc.Cache(str(Path(cache_dir).expanduser()), timeout=1)
                logger.info(f"Initialized subject disk cache at: {self._cache.directory}")
            except Exception as e:
                logger.error(f"Failed to initialize disk cache at {cache_dir}: {e}", exc_info=True)
                self._cache = None

    @property
    def directory(self) -> Optional[str]:
        return self._cache.directory if self._cache is not None else None

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()

    async def get(self, subject: Subject, ttl: float) -> Optional[SubjectData]:
        if self._cache is None:
            return None
        key = cache_key_for(subject)
        try:
            record = self._cache.get(key)
        except Exception as e:
            logger.error(f"Failed to read cache entry {key}: {e}")
            return None
        if record is None:
            logger.debug(f"Cache miss for '{subject}'")
            return None

        try:
            entry = CacheEntry.from_record(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Corrupt cache entry {key}: {e}. Treating as miss.")
            return None
        if not entry.is_fresh(self._clock(), ttl):
            logger.debug(f"Cache entry for '{subject}' expired")
            return None
        logger.debug(f"Cache hit for '{subject}'")
        return entry.data

    async def put(self, subject: Subject, data: SubjectData) -> None:
        if self._cache is None:
            return
        key = cache_key_for(subject)
        entry = CacheEntry(data=data, fetched_at=self._clock())
        try:
            self._cache.set(key, entry.to_record())
            logger.debug(f"Stored '{subject}' in disk cache ({len(data)} items)")
        except Exception as e:
            logger.error(f"Failed to write cache entry {key}: {e}")

    async def clear_all(self) -> int:
        if self._cache is None:
            return 0
        try:
            keys: List[str] = [
                key for key in self._cache.iterkeys()
                if isinstance(key, str) and key.startswith(KEY_PREFIX)
            ]
            for key in keys:
                self._cache.delete(key)
        except Exception as e:
            logger.error(f"Failed to clear user cache entries: {e}")
            return 0
        logger.info(f"Cleared {len(keys)} user cache entries")
        return len(keys)
