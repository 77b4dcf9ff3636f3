"""Builders shared by the test modules."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from winnerstays.models.enums import EventType, MatchStatus
from winnerstays.models.events import EventDraft
from winnerstays.models.fixture import MatchContext, RoleAssignment, TeamSlot
from winnerstays.models.team import Player, Team

T0 = datetime(2025, 3, 1, 19, 0, tzinfo=timezone.utc)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_team(team_id: str, *names: str) -> Team:
    return Team(
        team_id=team_id,
        name=team_id.title(),
        color=team_id,
        players=[Player(player_id=f"{team_id}_{n.lower()}", name=n) for n in names],
    )


def three_teams() -> List[Team]:
    return [
        make_team("red", "Ada", "Bola", "Cai"),
        make_team("blue", "Dev", "Esme", "Finn"),
        make_team("green", "Gus", "Hana", "Ines"),
    ]


def make_match(match_id: str = "m1", status: MatchStatus = MatchStatus.IN_PROGRESS) -> MatchContext:
    red, blue, green = three_teams()
    return MatchContext(
        match_id=match_id,
        fixture_id="f1",
        home=TeamSlot.from_team(red),
        away=TeamSlot.from_team(blue),
        waiting=TeamSlot.from_team(green),
        status=status,
        created_at=T0,
    )


def goal(team_id: str, scorer: str, assist: Optional[str] = None) -> EventDraft:
    return EventDraft(
        type=EventType.GOAL,
        team_id=team_id,
        player_id=f"{team_id}_{scorer.lower()}",
        assist_player_id=f"{team_id}_{assist.lower()}" if assist else None,
    )


def player_event(event_type: EventType, team_id: str, player: str) -> EventDraft:
    return EventDraft(type=event_type, team_id=team_id, player_id=f"{team_id}_{player.lower()}")


OWNER = "organiser"
STARTING_ROLES = RoleAssignment(home_team_id="red", away_team_id="blue", waiting_team_id="green")
