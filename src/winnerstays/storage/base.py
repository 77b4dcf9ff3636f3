from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Sequence

from winnerstays.models.events import Event
from winnerstays.models.fixture import Fixture
from winnerstays.models.team import Team


class FixtureStore(ABC):
    """Persistence for fixtures, their match contexts and their events."""

    @abstractmethod
    async def get_fixture(self, fixture_id: str) -> Optional[Fixture]:
        """Load a fixture with its match contexts and events, or None."""
        pass

    @abstractmethod
    async def find_fixture_by_match(self, match_id: str) -> Optional[Fixture]:
        """Load the fixture owning a match context, or None."""
        pass

    @abstractmethod
    async def commit(self, fixture: Fixture, new_events: Sequence[Event] = ()) -> None:
        """Atomically write the fixture row, every match row, and ``new_events``.

        Events already stored are never rewritten; ``new_events`` are inserted.
        Either everything is written or nothing is.

        Raises:
            StorageError: The write failed and nothing was committed.
        """
        pass

    @abstractmethod
    async def delete_fixture(self, fixture_id: str) -> bool:
        """Remove a fixture, its match contexts and their events in one step."""
        pass


class RosterProvider(ABC):
    """Roster lookups owned by the team-management side of the application."""

    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[Team]:
        pass

    async def get_teams(self, team_ids: Iterable[str]) -> Dict[str, Team]:
        """Teams keyed by id; unknown ids are left out."""
        teams: Dict[str, Team] = {}
        for team_id in team_ids:
            team = await self.get_team(team_id)
            if team is not None:
                teams[team_id] = team
        return teams
