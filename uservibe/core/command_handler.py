"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the subject resolver and the settings service. Acts as the
discovery layer for the command line: it turns user-supplied references
into subjects and honours the ``paused`` setting.
"""

import logging
from typing import Dict, List, Optional

from uservibe.core.services.resolution_service import SubjectResolver
from uservibe.core.services.settings_service import SettingsService
from uservibe.domain.interfaces.cache import SubjectCache
from uservibe.domain.interfaces.user_interface import UserInterface
from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject
from uservibe.domain.models.subject import parse_subject

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        resolver: SubjectResolver,
        settings_service: SettingsService,
        cache: SubjectCache,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.resolver = resolver
        self.settings_service = settings_service
        self.cache = cache
        self.ui = ui

    def _parse_subjects(self, references: List[str]) -> List[Subject]:
        subjects: List[Subject] = []
        for reference in references:
            subject = parse_subject(reference)
            if subject is None:
                self.ui.display_warning(f"Not a Reddit user: '{reference}'")
                continue
            subjects.append(subject)
        return subjects

    async def handle_lookup(self, references: List[str], force: bool = False) -> Dict[Subject, Optional[SubjectData]]:
        """Handles the 'lookup' command: resolves every referenced user concurrently."""
        if self.settings_service.settings.paused and not force:
            self.ui.display_warning("Annotations are paused. Run 'uservibe configure --resume' or pass --force.")
            return {}

        subjects = self._parse_subjects(references)
        if not subjects:
            self.ui.display_error("No valid users given.")
            return {}

        logger.info(f"Handling 'lookup' for {len(subjects)} user(s)")
        results = await self.resolver.resolve_many(subjects)
        self.ui.display_summary(results)
        unavailable = [subject for subject, data in results.items() if data is None]
        if unavailable:
            self.ui.display_warning(
                f"No data for: {', '.join(unavailable)}. {self.resolver.rate_limit_tip()}"
            )
        return results

    async def handle_retry(self, reference: str) -> Optional[SubjectData]:
        """Handles the 'retry' command: manual retry of one user through the resolver."""
        subject = parse_subject(reference)
        if subject is None:
            self.ui.display_error(f"Not a Reddit user: '{reference}'")
            return None
        data = await self.resolver.retry_now(subject)
        if data is None:
            self.ui.display_warning(f"Still no data for '{subject}'.")
        return data

    async def handle_clear_cache(self) -> int:
        """Handles the 'clear-cache' command."""
        logger.info("Handling 'clear-cache' command")
        removed = await self.cache.clear_all()
        self.ui.display_info(f"Cleared {removed} cached user(s).")
        return removed

    async def handle_configure(
        self,
        limit: Optional[int] = None,
        after: Optional[str] = None,
        cache_days: Optional[float] = None,
        paused: Optional[bool] = None,
    ) -> bool:
        """Handles the 'configure' command: saves settings and clears stale cache entries."""
        if limit is not None and limit < 1:
            self.ui.display_error("--limit must be at least 1.")
            return False
        if cache_days is not None and cache_days <= 0:
            self.ui.display_error("--cache-days must be positive.")
            return False

        if all(value is None for value in (limit, after, cache_days, paused)):
            self.ui.display_info("Nothing to change.")
            return False

        cleared = await self.settings_service.update(
            limit=limit, after=after, cache_days=cache_days, paused=paused
        )
        if cleared:
            self.ui.display_info("Fetch parameters changed; cached users were cleared.")
        self.ui.display_info("Settings saved.")
        return cleared

    async def handle_show_config(self) -> None:
        """Handles the 'show-config' command."""
        self.ui.display_settings(self.settings_service.settings.to_dict())
