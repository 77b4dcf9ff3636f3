"""Winner-stays-on rotation.

After a contest the winner keeps (or takes) the home role, the team that was
resting comes on as the new away side, and the loser sits out.
"""

from datetime import datetime
from typing import Mapping, Optional, Tuple

from loguru import logger

from winnerstays.models.enums import MatchStatus, Role
from winnerstays.models.events import WinEvent
from winnerstays.models.fixture import Fixture, MatchContext, TeamSlot
from winnerstays.models.team import Team

from .errors import InvalidStateError, NotFoundError
from .event_log import append_win
from .lifecycle import ensure_in_progress, open_match


def next_roles(
    match: MatchContext, winning_team_id: str, losing_team_id: Optional[str] = None
) -> Tuple[TeamSlot, TeamSlot, TeamSlot]:
    """Return the (home, away, waiting) slots for the match that follows ``match``.

    Raises:
        InvalidStateError: The winner is not an active team, or the loser is
            not the other active team.
    """
    winner_role = match.role_of(winning_team_id)
    if winner_role not in (Role.HOME, Role.AWAY):
        raise InvalidStateError("Winning team must be one of the two teams playing")

    loser_role = Role.AWAY if winner_role == Role.HOME else Role.HOME
    if losing_team_id is not None and match.role_of(losing_team_id) != loser_role:
        raise InvalidStateError("Losing team must be the other team playing")

    return match.slot(winner_role), match.waiting, match.slot(loser_role)


def _refresh(slot: TeamSlot, teams: Optional[Mapping[str, Team]]) -> TeamSlot:
    # A new match context picks up roster changes made since the last one
    if teams and slot.team_id in teams:
        return TeamSlot.from_team(teams[slot.team_id])
    return slot


def rotate(
    fixture: Fixture,
    match_id: str,
    winning_team_id: str,
    losing_team_id: Optional[str] = None,
    *,
    teams: Optional[Mapping[str, Team]] = None,
    now: Optional[datetime] = None,
) -> Tuple[MatchContext, WinEvent]:
    """Conclude ``match_id`` with a winner and open the next match context.

    Every precondition is checked before anything changes, so on failure the
    fixture is untouched. On success the concluding match holds a WIN event and
    is COMPLETED, and the new match is live and current.

    Returns:
        The new match context and the WIN event recorded on the old one.
    """
    ensure_in_progress(fixture)
    match = fixture.get_match(match_id)
    if match is None:
        raise NotFoundError("Match not found")
    if not match.is_live or fixture.current_match_id != match.match_id:
        raise InvalidStateError("Only the match currently being played can be rotated")

    home, away, waiting = next_roles(match, winning_team_id, losing_team_id)

    win = append_win(match, winning_team_id, now)
    match.status = MatchStatus.COMPLETED
    match.winning_team_id = winning_team_id

    new_match = open_match(
        fixture, _refresh(home, teams), _refresh(away, teams), _refresh(waiting, teams), now
    )
    logger.info(
        f"Rotated fixture {fixture.fixture_id}: {home.name} stays home, "
        f"{away.name} comes on, {waiting.name} waits"
    )
    return new_match, win
