import pytest

from winnerstays.models.fixture import Fixture
from winnerstays.service.fixture_service import FixtureService
from winnerstays.storage.memory_store import MemoryFixtureStore, MemoryRoster
from winnerstays.storage.snapshots import MemorySnapshotStore

from helpers import OWNER, STARTING_ROLES, FakeClock, T0, three_teams


@pytest.fixture
def wall_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def roster() -> MemoryRoster:
    return MemoryRoster(three_teams())


@pytest.fixture
def store() -> MemoryFixtureStore:
    return MemoryFixtureStore()


@pytest.fixture
def snapshots() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def service(store, roster, wall_clock) -> FixtureService:
    return FixtureService(store, roster, now=wall_clock)


@pytest.fixture
async def live_fixture(service) -> Fixture:
    """A fixture owned by OWNER, started with Red home, Blue away and Green waiting."""
    fixture = await service.create_fixture(T0, owner_id=OWNER)
    await service.setup_fixture(fixture.fixture_id, STARTING_ROLES, actor_id=OWNER)
    fixture, _ = await service.start_fixture(fixture.fixture_id, actor_id=OWNER)
    return fixture
