from collections import Counter
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from winnerstays.models.enums import EventType
from winnerstays.models.events import Event, GoalEvent, PlayerEvent
from winnerstays.models.fixture import Fixture

from .scoring import derive_assists


class PlayerStats(BaseModel):
    """Per-player tallies for a match context or a whole fixture."""

    player_id: str
    name: str
    team_id: str
    goals: int = 0
    assists: int = 0
    saves: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    wow_moments: int = 0


class TeamStats(BaseModel):
    """Per-team tallies; ``wins`` counts WIN markers."""

    team_id: str
    name: str
    color: Optional[str] = None
    goals: int = 0
    saves: int = 0
    wins: int = 0


_PLAYER_COUNTERS = {
    EventType.GOAL: "goals",
    EventType.SAVE: "saves",
    EventType.YELLOW_CARD: "yellow_cards",
    EventType.RED_CARD: "red_cards",
    EventType.WOW_MOMENT: "wow_moments",
}


def _events_in_scope(fixture: Fixture, match_id: Optional[str]) -> List[Event]:
    return [e for e in fixture.iter_events() if match_id is None or e.match_id == match_id]


def _snapshots(events: List[Event]) -> Dict[str, Tuple[str, str]]:
    """Player id -> (name, team id) as recorded on the events themselves."""
    seen: Dict[str, Tuple[str, str]] = {}
    for event in events:
        if isinstance(event, (GoalEvent, PlayerEvent)):
            seen.setdefault(event.player_id, (event.player_name or "Unknown player", event.team_id))
        if isinstance(event, GoalEvent) and event.assist_player_id:
            seen.setdefault(
                event.assist_player_id,
                (event.assist_player_name or "Unknown player", event.team_id),
            )
    return seen


def player_stats(fixture: Fixture, match_id: Optional[str] = None) -> List[PlayerStats]:
    """Tally every rostered player across the fixture, or within one match context.

    Players are listed in roster order, teams in the order they first appear.
    A player who appears only in events (for example after being removed from
    the roster) is listed under the event's name snapshot, whether they scored,
    assisted or were credited with anything else.
    """
    rows: Dict[str, PlayerStats] = {}
    for match in fixture.matches:
        for slot in (match.home, match.away, match.waiting):
            for player in slot.players:
                rows.setdefault(
                    player.player_id,
                    PlayerStats(player_id=player.player_id, name=player.name, team_id=slot.team_id),
                )

    events = _events_in_scope(fixture, match_id)
    seen = _snapshots(events)

    def row_for(player_id: str) -> PlayerStats:
        if player_id not in rows:
            name, team_id = seen[player_id]
            rows[player_id] = PlayerStats(player_id=player_id, name=name, team_id=team_id)
        return rows[player_id]

    for event in events:
        field = _PLAYER_COUNTERS.get(EventType(event.type))
        if field is None:
            continue
        row = row_for(event.player_id)
        setattr(row, field, getattr(row, field) + 1)

    for player_id, count in derive_assists(events).items():
        row_for(player_id).assists = count

    return list(rows.values())


def team_stats(fixture: Fixture, match_id: Optional[str] = None) -> List[TeamStats]:
    """Goals, saves and wins per team of the fixture's pool."""
    rows: Dict[str, TeamStats] = {}
    for match in fixture.matches:
        for slot in (match.home, match.away, match.waiting):
            rows.setdefault(
                slot.team_id, TeamStats(team_id=slot.team_id, name=slot.name, color=slot.color)
            )

    counts = Counter(
        (event.team_id, EventType(event.type)) for event in _events_in_scope(fixture, match_id)
    )
    for team_id, row in rows.items():
        row.goals = counts[(team_id, EventType.GOAL)]
        row.saves = counts[(team_id, EventType.SAVE)]
        row.wins = counts[(team_id, EventType.WIN)]
    return list(rows.values())
