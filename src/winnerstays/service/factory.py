from typing import Optional

from loguru import logger

from winnerstays.config.settings import AppSettings, settings as default_settings
from winnerstays.storage.base import FixtureStore, RosterProvider
from winnerstays.storage.memory_store import MemoryFixtureStore, MemoryRoster
from winnerstays.storage.snapshots import JsonFileSnapshotStore
from winnerstays.storage.supabase_client import (
    SupabaseFixtureStore,
    SupabaseRoster,
    initialize_supabase,
)

from .fixture_service import FixtureService


async def build_service(
    config: Optional[AppSettings] = None, roster: Optional[RosterProvider] = None
) -> FixtureService:
    """Wires a FixtureService onto the configured storage backend."""
    config = config or default_settings
    store: FixtureStore
    if config.storage_backend == "supabase":
        client = await initialize_supabase(
            str(config.supabase_url) if config.supabase_url else None, config.supabase_key
        )
        store = SupabaseFixtureStore(client)
        roster = roster or SupabaseRoster(client)
    else:
        store = MemoryFixtureStore()
        roster = roster or MemoryRoster()
    logger.info(f"Fixture service using the {config.storage_backend} backend")
    return FixtureService(store, roster)


def build_snapshot_store(config: Optional[AppSettings] = None) -> JsonFileSnapshotStore:
    config = config or default_settings
    return JsonFileSnapshotStore(config.clock_snapshot_dir)
