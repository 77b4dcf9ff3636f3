"""Fixture lifecycle state machine.

NOT_STARTED -> WAITING_TO_START -> IN_PROGRESS -> COMPLETED

Every transition is one-directional. Rotations happen inside IN_PROGRESS and
never change the fixture status. These functions mutate the fixture they are
given; callers work on a copy and commit it only when the call returns.
"""

from datetime import datetime
from typing import Dict, Mapping, Optional, Set

from loguru import logger

from winnerstays.models.enums import EventType, FixtureStatus, MatchStatus
from winnerstays.models.events import utcnow
from winnerstays.models.fixture import Fixture, MatchContext, RoleAssignment, TeamSlot
from winnerstays.models.team import Team
from winnerstays.utils.misc_utils import new_id

from .errors import InvalidTransitionError, NotFoundError, ValidationError

ALLOWED_TRANSITIONS: Dict[FixtureStatus, Set[FixtureStatus]] = {
    FixtureStatus.NOT_STARTED: {FixtureStatus.WAITING_TO_START},
    FixtureStatus.WAITING_TO_START: {FixtureStatus.IN_PROGRESS},
    FixtureStatus.IN_PROGRESS: {FixtureStatus.COMPLETED},
    FixtureStatus.COMPLETED: set(),
    FixtureStatus.FINISHED: set(),
}


def _transition(fixture: Fixture, to_status: FixtureStatus, now: Optional[datetime] = None) -> None:
    current = fixture.status
    if to_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(
            f"Fixture cannot move from {current.value} to {to_status.value}"
        )
    fixture.status = to_status
    fixture.updated_at = now or utcnow()
    logger.info(f"Fixture {fixture.fixture_id}: {current.value} -> {to_status.value}")


def ensure_in_progress(fixture: Fixture) -> None:
    if fixture.status != FixtureStatus.IN_PROGRESS:
        raise InvalidTransitionError(
            f"Fixture is {fixture.status.value}; events and rotations need IN_PROGRESS"
        )


def validate_roles(roles: RoleAssignment, teams: Mapping[str, Team]) -> None:
    """Check a role assignment names three distinct, known teams with players."""
    team_ids = roles.team_ids()
    if len(set(team_ids)) != len(team_ids):
        raise ValidationError("Invalid team setup: home, away and waiting must be different teams")
    for team_id in team_ids:
        team = teams.get(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        if not team.players:
            raise ValidationError(f"Invalid team setup: {team.name} has no players")


def open_match(
    fixture: Fixture,
    home: TeamSlot,
    away: TeamSlot,
    waiting: TeamSlot,
    now: Optional[datetime] = None,
) -> MatchContext:
    """Create the next match context, make it live and current."""
    match = MatchContext(
        match_id=new_id("match"),
        fixture_id=fixture.fixture_id,
        sequence=len(fixture.matches),
        home=home,
        away=away,
        waiting=waiting,
        status=MatchStatus.IN_PROGRESS,
        created_at=now or utcnow(),
    )
    fixture.matches.append(match)
    fixture.current_match_id = match.match_id
    return match


def setup(fixture: Fixture, roles: RoleAssignment, teams: Mapping[str, Team]) -> Fixture:
    """Assign the three teams to their starting roles."""
    if fixture.status != FixtureStatus.NOT_STARTED:
        raise InvalidTransitionError(
            f"Fixture is {fixture.status.value}; teams can only be set up before it starts"
        )
    validate_roles(roles, teams)
    fixture.roles = roles
    _transition(fixture, FixtureStatus.WAITING_TO_START)
    return fixture


def start(fixture: Fixture, teams: Mapping[str, Team], now: Optional[datetime] = None) -> MatchContext:
    """Open the first match context from the set-up roles.

    Rosters are snapshotted from ``teams`` as they are now, not as they were at
    setup.
    """
    if fixture.status != FixtureStatus.WAITING_TO_START or fixture.roles is None:
        raise InvalidTransitionError(
            f"Fixture is {fixture.status.value}; only a set-up fixture can be started"
        )
    roles = fixture.roles
    validate_roles(roles, teams)
    _transition(fixture, FixtureStatus.IN_PROGRESS, now)
    return open_match(
        fixture,
        TeamSlot.from_team(teams[roles.home_team_id]),
        TeamSlot.from_team(teams[roles.away_team_id]),
        TeamSlot.from_team(teams[roles.waiting_team_id]),
        now,
    )


def end(fixture: Fixture, now: Optional[datetime] = None) -> Fixture:
    """Terminate the fixture; the live match concludes without a winner."""
    if fixture.status != FixtureStatus.IN_PROGRESS:
        raise InvalidTransitionError(
            f"Fixture is {fixture.status.value}; only a fixture in progress can be ended"
        )
    current = fixture.current_match
    if current is not None and current.is_live:
        current.status = MatchStatus.COMPLETED
    _transition(fixture, FixtureStatus.COMPLETED, now)
    return fixture


def infer_status(fixture: Fixture) -> FixtureStatus:
    """Reconstruct a status from event history alone, for records that lack one.

    No events at all means the fixture never started; a match with events but
    no WIN marker means play was still going on; otherwise every contest was
    decided and the fixture is FINISHED.
    """
    if not any(match.events for match in fixture.matches):
        return FixtureStatus.NOT_STARTED
    unfinished = any(
        match.events and not any(e.type == EventType.WIN for e in match.events)
        for match in fixture.matches
    )
    return FixtureStatus.IN_PROGRESS if unfinished else FixtureStatus.FINISHED
