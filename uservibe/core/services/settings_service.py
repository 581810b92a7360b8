"""Applies settings changes to a running resolver.

Fetch parameters (``limit`` and ``after``) define what the remote service
returns, so changing either one clears the subject cache before the next
resolution.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from uservibe.core.services.resolution_service import SubjectResolver
from uservibe.domain.events.dispatcher import EventDispatcher
from uservibe.domain.events.fetch_events import CacheCleared
from uservibe.domain.interfaces.cache import SubjectCache
from uservibe.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    UserVibeSettings,
    load_settings,
    save_settings,
)

logger = logging.getLogger(__name__)


def fetch_identity_changed(old: UserVibeSettings, new: UserVibeSettings) -> bool:
    return old.fetch_params != new.fetch_params


class SettingsService:
    """Owns the current settings and keeps the cache consistent with them."""

    def __init__(
        self,
        cache: SubjectCache,
        settings: Optional[UserVibeSettings] = None,
        config_file: Path = DEFAULT_CONFIG_FILE,
        resolver: Optional[SubjectResolver] = None,
        events: Optional[EventDispatcher] = None,
    ):
        self.cache = cache
        self.settings = settings or load_settings()
        self.config_file = config_file
        self.resolver = resolver
        self._events = events or EventDispatcher()

    def load(self) -> UserVibeSettings:
        self.settings = load_settings()
        return self.settings

    def save(self, settings: UserVibeSettings) -> None:
        save_settings(settings, self.config_file)

    async def apply(self, new_settings: UserVibeSettings) -> bool:
        """Makes ``new_settings`` current.

        Returns:
            True if the cache was cleared because the fetch identity changed.
        """
        cleared = False
        if fetch_identity_changed(self.settings, new_settings):
            removed = await self.cache.clear_all()
            self._events.publish(CacheCleared(removed=removed, reason="fetch parameters changed"))
            logger.info(f"Fetch parameters changed, cleared {removed} cached users")
            cleared = True

        if self.resolver is not None:
            self.resolver.update_params(new_settings.fetch_params)
            self.resolver.cache_ttl = new_settings.cache_ttl_seconds
        self.settings = new_settings
        return cleared

    async def update(self, persist: bool = True, **changes: Any) -> bool:
        """Applies a partial change (ignoring None values) and optionally saves it.

        Returns:
            True if the cache was cleared.
        """
        changes = {key: value for key, value in changes.items() if value is not None}
        if not changes:
            return False
        new_settings = replace(self.settings, **changes)
        cleared = await self.apply(new_settings)
        if persist:
            self.save(new_settings)
        return cleared
