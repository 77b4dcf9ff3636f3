"""Tests for wiring the service from settings."""

from winnerstays.config.settings import AppSettings
from winnerstays.service.factory import build_service, build_snapshot_store
from winnerstays.storage.memory_store import MemoryFixtureStore, MemoryRoster
from winnerstays.storage.snapshots import JsonFileSnapshotStore

from helpers import T0, three_teams


async def test_memory_backend_is_default() -> None:
    config = AppSettings(_env_file=None, storage_backend="memory")
    service = await build_service(config, roster=MemoryRoster(three_teams()))
    assert isinstance(service.store, MemoryFixtureStore)

    fixture = await service.create_fixture(T0)
    assert (await service.get_fixture(fixture.fixture_id)).fixture_id == fixture.fixture_id


def test_snapshot_store_uses_configured_directory(tmp_path) -> None:
    config = AppSettings(_env_file=None, clock_snapshot_dir=str(tmp_path))
    store = build_snapshot_store(config)
    assert isinstance(store, JsonFileSnapshotStore)
    assert store.directory == tmp_path
