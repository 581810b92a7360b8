import pytest
import yaml
from unittest.mock import MagicMock

from uservibe.core.services.resolution_service import SubjectResolver
from uservibe.core.services.settings_service import SettingsService, fetch_identity_changed
from uservibe.domain.events.fetch_events import CacheCleared
from uservibe.domain.models.activity import SubredditActivity
from uservibe.domain.models.common import FetchParams, Subject
from uservibe.infrastructure.config.settings import UserVibeSettings

ALICE = Subject("alice")
TTL = 7 * 24 * 60 * 60


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "settings" / "config.yaml"


@pytest.fixture
def mock_resolver():
    return MagicMock(spec=SubjectResolver)


@pytest.fixture
def service(memory_cache, config_file, mock_resolver, events):
    return SettingsService(
        memory_cache, UserVibeSettings(), config_file=config_file, resolver=mock_resolver, events=events
    )


@pytest.mark.parametrize(
    "changes, expected",
    [
        ({"limit": 20}, True),
        ({"after": ""}, True),
        ({"cache_days": 1.0}, False),
        ({"paused": True}, False),
        ({"sub_color": "#000000"}, False),
    ],
)
def test_fetch_identity(changes, expected):
    old = UserVibeSettings()
    assert fetch_identity_changed(old, UserVibeSettings(**changes)) is expected


@pytest.mark.asyncio
async def test_changing_limit_clears_cache(service, memory_cache, mock_resolver, recorded_events):
    await memory_cache.put(ALICE, (SubredditActivity("python", 1),))

    cleared = await service.apply(UserVibeSettings(limit=20))

    assert cleared is True
    assert await memory_cache.get(ALICE, TTL) is None
    mock_resolver.update_params.assert_called_once_with(FetchParams(limit=20, after="6month"))
    assert isinstance(recorded_events[-1], CacheCleared)
    assert recorded_events[-1].removed == 1


@pytest.mark.asyncio
async def test_unrelated_change_keeps_cache(service, memory_cache, mock_resolver):
    await memory_cache.put(ALICE, ())

    cleared = await service.apply(UserVibeSettings(cache_days=1.0))

    assert cleared is False
    assert await memory_cache.get(ALICE, 60) == ()
    assert mock_resolver.cache_ttl == 24 * 60 * 60


@pytest.mark.asyncio
async def test_update_persists_to_yaml(service, config_file):
    cleared = await service.update(after="1year", paused=None)

    assert cleared is True
    assert service.settings.after == "1year"
    assert service.settings.paused is False
    saved = yaml.safe_load(config_file.read_text())
    assert saved["after"] == "1year"
    assert saved["limit"] == 10


@pytest.mark.asyncio
async def test_update_without_changes_is_a_no_op(service, config_file):
    assert await service.update(limit=None, after=None) is False
    assert not config_file.exists()


@pytest.mark.asyncio
async def test_update_can_skip_persisting(service, config_file):
    await service.update(persist=False, paused=True)

    assert service.settings.paused is True
    assert not config_file.exists()
