"""Event-sourced score derivation.

Scores are never stored. They are recounted from the event log every time,
so the same log always yields the same numbers whatever order events arrive in.
"""

from collections import Counter
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from winnerstays.models.enums import EventType
from winnerstays.models.events import Event, GoalEvent
from winnerstays.models.fixture import MatchContext


class Scoreline(BaseModel):
    """Goals for the two active teams of a match context."""

    model_config = ConfigDict(frozen=True)

    home_team_id: str
    away_team_id: str
    home: int = 0
    away: int = 0

    @property
    def is_level(self) -> bool:
        return self.home == self.away


def derive_scores(events: Iterable[Event], match_id: str) -> Counter:
    """Count GOAL events per team id for one match context.

    Teams without goals are simply absent; indexing the returned ``Counter``
    for them yields 0.
    """
    return Counter(
        event.team_id
        for event in events
        if event.match_id == match_id and event.type == EventType.GOAL
    )


def derive_assists(events: Iterable[Event], match_id: Optional[str] = None) -> Counter:
    """Count assists per player id, for one match or for every match given.

    An assist is either the secondary player on a GOAL or a standalone ASSIST
    event.
    """
    assists: Counter = Counter()
    for event in events:
        if match_id is not None and event.match_id != match_id:
            continue
        if isinstance(event, GoalEvent) and event.assist_player_id:
            assists[event.assist_player_id] += 1
        elif event.type == EventType.ASSIST:
            assists[event.player_id] += 1
    return assists


def scoreline(match: MatchContext) -> Scoreline:
    scores = derive_scores(match.events, match.match_id)
    return Scoreline(
        home_team_id=match.home.team_id,
        away_team_id=match.away.team_id,
        home=scores[match.home.team_id],
        away=scores[match.away.team_id],
    )
