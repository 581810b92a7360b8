"""Main entry point for the uservibe application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional

import httpx
import typer
from typing_extensions import Annotated

from uservibe.core.command_handler import CommandHandler
from uservibe.core.services.resolution_service import SubjectResolver
from uservibe.core.services.settings_service import SettingsService
from uservibe.domain.events.dispatcher import EventDispatcher
from uservibe.domain.interfaces.cache import SubjectCache
from uservibe.infrastructure.cache.subject_cache import DiskSubjectCache, MemorySubjectCache
from uservibe.infrastructure.cli.display import ConsoleDisplay
from uservibe.infrastructure.config.settings import (
    UserVibeSettings,
    config_file_path,
    get_config,
    load_configuration,
    load_settings,
)
from uservibe.infrastructure.monitoring.logger_setup import level_from_name, setup_logging
from uservibe.infrastructure.remote.activity_fetcher import ActivityFetcher
from uservibe.infrastructure.remote.arctic_shift_source import SubredditInteractionsSource
from uservibe.infrastructure.resilience.rate_limiter import RateLimiter
from uservibe.infrastructure.resilience.retry_scheduler import RetryScheduler

logger = logging.getLogger(__name__)

# Set by the --verbose flag before dependencies are created
_verbose = False


def build_http_client(timeout: float) -> httpx.AsyncClient:
    """Creates the HTTP client used for the remote activity service."""
    return httpx.AsyncClient(timeout=timeout, headers={"User-Agent": "uservibe/1.0"})


def build_cache(settings: UserVibeSettings) -> SubjectCache:
    if settings.cache_backend == "memory":
        return MemorySubjectCache()
    if settings.cache_backend != "disk":
        logger.warning(f"Unknown cache backend '{settings.cache_backend}', using disk.")
    return DiskSubjectCache(Path(settings.cache_dir))


# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for one command.

    This acts as the Composition Root.
    """
    config_file = config_file_path()
    load_configuration(config_file=config_file)
    log_level = logging.DEBUG if _verbose else level_from_name(get_config("logging.level"))
    setup_logging(
        log_level=log_level,
        log_file=get_config("logging.file"),
        log_format=get_config("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
    )

    settings = load_settings()
    dependencies: Dict[str, Any] = {"settings": settings}
    dependencies["events"] = events = EventDispatcher()
    dependencies["ui"] = ui = ConsoleDisplay(colors={
        "sub_color": settings.sub_color,
        "count_color": settings.count_color,
        "sub_text_color": settings.sub_text_color,
        "count_text_color": settings.count_text_color,
    })
    dependencies["cache"] = cache = build_cache(settings)

    # One limiter shared by the fetcher and the scheduler
    dependencies["rate_limiter"] = rate_limiter = RateLimiter()
    dependencies["http_client"] = http_client = build_http_client(settings.request_timeout_seconds)
    dependencies["fetcher"] = fetcher = ActivityFetcher(
        source=SubredditInteractionsSource(settings.api_base),
        rate_limiter=rate_limiter,
        client=http_client,
        events=events,
    )
    dependencies["scheduler"] = scheduler = RetryScheduler(
        rate_limiter,
        max_retries=settings.max_retries,
        give_up_cooldown=settings.give_up_cooldown_seconds,
        events=events,
    )
    dependencies["resolver"] = resolver = SubjectResolver(
        cache=cache,
        fetcher=fetcher,
        scheduler=scheduler,
        params=settings.fetch_params,
        cache_ttl=settings.cache_ttl_seconds,
        listener=ui,
    )
    dependencies["settings_service"] = settings_service = SettingsService(
        cache, settings, config_file=config_file, resolver=resolver, events=events
    )
    dependencies["command_handler"] = CommandHandler(
        resolver=resolver, settings_service=settings_service, cache=cache, ui=ui
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="uservibe",
    help="uservibe: show which subreddits Reddit users are most active in.",
    add_completion=False,
)


def run_async(dependencies: Dict[str, Any], coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a command coroutine and releases its resources afterwards."""

    async def _run() -> Any:
        try:
            return await coro
        finally:
            await dependencies["http_client"].aclose()
            cache = dependencies["cache"]
            if isinstance(cache, DiskSubjectCache):
                cache.close()

    try:
        return asyncio.run(_run())
    except KeyboardInterrupt:
        dependencies["ui"].display_warning("Interrupted.")
        raise typer.Exit(code=130)


@app.command()
def lookup(
    users: Annotated[List[str], typer.Argument(help="Usernames, u/<name> or profile URLs.")],
    force: Annotated[bool, typer.Option("--force", help="Look up even while paused.")] = False,
):
    """Show the top subreddits of one or more users."""
    dependencies = create_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    results = run_async(dependencies, handler.handle_lookup(users, force=force))
    if not results:
        raise typer.Exit(code=1)


@app.command()
def retry(
    user: Annotated[str, typer.Argument(help="Username to look up again.")],
):
    """Look up one user, restarting its retries from the first attempt.

    Rate-limit pauses and give-up cooldowns only last for the duration of a
    single command, so from the command line this behaves like a one-user
    lookup. It differs only when the resolver runs in a long-lived process.
    """
    dependencies = create_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    run_async(dependencies, handler.handle_retry(user))


@app.command(name="clear-cache")
def clear_cache_command():
    """Remove every cached user."""
    dependencies = create_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    run_async(dependencies, handler.handle_clear_cache())


@app.command()
def configure(
    limit: Annotated[Optional[int], typer.Option(help="Maximum subreddits per user.")] = None,
    after: Annotated[Optional[str], typer.Option(help="Time window, e.g. '3month'. Empty for all time.")] = None,
    cache_days: Annotated[Optional[float], typer.Option("--cache-days", help="Days before cached data expires.")] = None,
    paused: Annotated[Optional[bool], typer.Option("--pause/--resume", help="Pause or resume lookups.")] = None,
):
    """Change and save settings. Changing --limit or --after clears the cache."""
    dependencies = create_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    run_async(dependencies, handler.handle_configure(limit=limit, after=after, cache_days=cache_days, paused=paused))


@app.command(name="show-config")
def show_config_command():
    """Print the effective settings."""
    dependencies = create_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    run_async(dependencies, handler.handle_show_config())


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """uservibe command line."""
    global _verbose
    _verbose = verbose


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
