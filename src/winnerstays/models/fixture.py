from datetime import datetime
from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import FixtureStatus, MatchStatus, Role
from .events import Event, utcnow
from .team import Player, Team


class TeamSlot(BaseModel):
    """A team as it was when a match context opened: membership is frozen here."""

    model_config = ConfigDict(frozen=True)

    team_id: str
    name: str
    color: Optional[str] = None
    players: List[Player] = []

    @classmethod
    def from_team(cls, team: Team) -> "TeamSlot":
        return cls(
            team_id=team.team_id,
            name=team.name,
            color=team.color,
            players=list(team.players),
        )

    def has_player(self, player_id: str) -> bool:
        return any(p.player_id == player_id for p in self.players)

    def player_name(self, player_id: str) -> Optional[str]:
        for player in self.players:
            if player.player_id == player_id:
                return player.name
        return None


class RoleAssignment(BaseModel):
    """Which of the fixture's three teams starts in which role."""

    model_config = ConfigDict(frozen=True)

    home_team_id: str
    away_team_id: str
    waiting_team_id: str

    def team_ids(self) -> List[str]:
        return [self.home_team_id, self.away_team_id, self.waiting_team_id]


class MatchContext(BaseModel):
    """One head-to-head contest inside a fixture and its slice of the event log."""

    match_id: str
    fixture_id: str  # FK to Fixture.fixture_id
    sequence: int = 0  # Position within the fixture, 0 for the opening match
    home: TeamSlot
    away: TeamSlot
    waiting: TeamSlot
    status: MatchStatus = MatchStatus.NOT_STARTED
    events: List[Event] = []
    winning_team_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @computed_field  # type: ignore[misc]
    @property
    def description(self) -> str:
        """A human-readable description of the match context."""
        return f"Match {self.sequence + 1}: {self.home.name} v {self.away.name} ({self.waiting.name} waiting)"

    def slot(self, role: Role) -> TeamSlot:
        return {Role.HOME: self.home, Role.AWAY: self.away, Role.WAITING: self.waiting}[role]

    def role_of(self, team_id: str) -> Optional[Role]:
        for role in Role:
            if self.slot(role).team_id == team_id:
                return role
        return None

    def slot_for(self, team_id: str) -> Optional[TeamSlot]:
        role = self.role_of(team_id)
        return self.slot(role) if role else None

    def team_ids(self) -> List[str]:
        return [self.home.team_id, self.away.team_id, self.waiting.team_id]

    @property
    def is_live(self) -> bool:
        return self.status == MatchStatus.IN_PROGRESS


class Fixture(BaseModel):
    """A scheduled occasion between a fixed pool of three teams."""

    fixture_id: str
    scheduled_at: datetime
    status: FixtureStatus = FixtureStatus.NOT_STARTED
    owner_id: Optional[str] = None
    roles: Optional[RoleAssignment] = None  # Set by setup
    matches: List[MatchContext] = []
    current_match_id: Optional[str] = None  # Set only by start and rotate
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def current_match(self) -> Optional[MatchContext]:
        if self.current_match_id is None:
            return None
        return self.get_match(self.current_match_id)

    def get_match(self, match_id: str) -> Optional[MatchContext]:
        for match in self.matches:
            if match.match_id == match_id:
                return match
        return None

    def iter_events(self) -> Iterator[Event]:
        for match in self.matches:
            yield from match.events
