import asyncio
from typing import Dict, Iterable, Optional, Sequence

from loguru import logger

from winnerstays.engine.errors import StorageError
from winnerstays.models.events import Event
from winnerstays.models.fixture import Fixture
from winnerstays.models.team import Team

from .base import FixtureStore, RosterProvider


class MemoryFixtureStore(FixtureStore):
    """In-process store. Fixtures are copied in and out, so callers never share state with it."""

    def __init__(self) -> None:
        self._fixtures: Dict[str, Fixture] = {}
        self._match_index: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get_fixture(self, fixture_id: str) -> Optional[Fixture]:
        fixture = self._fixtures.get(fixture_id)
        return fixture.model_copy(deep=True) if fixture else None

    async def find_fixture_by_match(self, match_id: str) -> Optional[Fixture]:
        fixture_id = self._match_index.get(match_id)
        if fixture_id is None:
            return None
        return await self.get_fixture(fixture_id)

    async def commit(self, fixture: Fixture, new_events: Sequence[Event] = ()) -> None:
        async with self._lock:
            stored = self._fixtures.get(fixture.fixture_id)
            incoming_ids = {e.event_id for e in fixture.iter_events()}
            if stored is not None:
                missing = [e.event_id for e in stored.iter_events() if e.event_id not in incoming_ids]
                if missing:
                    raise StorageError("Refusing to drop stored events")
            unexpected = {e.event_id for e in new_events} - incoming_ids
            if unexpected:
                raise StorageError("New events must belong to the committed fixture")

            self._fixtures[fixture.fixture_id] = fixture.model_copy(deep=True)
            for match in fixture.matches:
                self._match_index[match.match_id] = fixture.fixture_id
        logger.debug(
            f"Committed fixture {fixture.fixture_id} with {len(new_events)} new event(s)"
        )

    async def delete_fixture(self, fixture_id: str) -> bool:
        async with self._lock:
            fixture = self._fixtures.pop(fixture_id, None)
            if fixture is None:
                return False
            for match in fixture.matches:
                self._match_index.pop(match.match_id, None)
        return True


class MemoryRoster(RosterProvider):
    """Roster backed by a dict; handy for tests and the console demo."""

    def __init__(self, teams: Iterable[Team] = ()) -> None:
        self._teams: Dict[str, Team] = {t.team_id: t for t in teams}

    def put(self, team: Team) -> None:
        self._teams[team.team_id] = team

    async def get_team(self, team_id: str) -> Optional[Team]:
        team = self._teams.get(team_id)
        return team.model_copy(deep=True) if team else None
