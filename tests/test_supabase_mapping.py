"""Tests for mapping Supabase rows to fixtures and back."""

from winnerstays.engine import lifecycle
from winnerstays.engine.event_log import append_events
from winnerstays.models.events import GoalEvent, PlayerEvent
from winnerstays.models.enums import EventType, FixtureStatus, MatchStatus
from winnerstays.models.fixture import Fixture
from winnerstays.storage.supabase_client import fixture_from_row, fixture_to_payload

from helpers import STARTING_ROLES, T0, goal, player_event, three_teams


def _live_fixture() -> Fixture:
    teams = {team.team_id: team for team in three_teams()}
    fixture = Fixture(fixture_id="f1", scheduled_at=T0, owner_id="organiser", created_at=T0, updated_at=T0)
    lifecycle.setup(fixture, STARTING_ROLES, teams)
    lifecycle.start(fixture, teams, T0)
    return fixture


def _as_row(payload) -> dict:
    """Shape a commit payload the way the nested select returns it."""
    row = dict(payload["fixture"])
    row["matches"] = [
        dict(m, events=[e for e in payload["events"] if e["match_id"] == m["id"]])
        for m in payload["matches"]
    ]
    return row


def test_payload_carries_only_new_events() -> None:
    """Stored events are never re-sent; only the batch being committed is."""
    fixture = _live_fixture()
    match = fixture.current_match
    append_events(match, [goal("red", "Ada")], now=T0)
    new = append_events(match, [player_event(EventType.SAVE, "blue", "Dev")], now=T0)

    payload = fixture_to_payload(fixture, new)

    assert payload["fixture"]["status"] == "IN_PROGRESS"
    assert payload["fixture"]["roles"]["home_team_id"] == "red"
    assert [e["type"] for e in payload["events"]] == ["SAVE"]
    assert payload["events"][0]["id"] == new[0].event_id
    assert "event_id" not in payload["events"][0]


def test_row_round_trip() -> None:
    """A committed fixture reads back with its matches, rosters and typed events."""
    fixture = _live_fixture()
    match = fixture.current_match
    stored = append_events(
        match,
        [goal("red", "Ada", assist="Bola"), player_event(EventType.YELLOW_CARD, "blue", "Esme")],
        now=T0,
    )

    loaded = fixture_from_row(_as_row(fixture_to_payload(fixture, stored)))

    assert loaded.status == FixtureStatus.IN_PROGRESS
    assert loaded.current_match_id == match.match_id
    assert loaded.roles == STARTING_ROLES
    loaded_match = loaded.current_match
    assert loaded_match.status == MatchStatus.IN_PROGRESS
    assert loaded_match.home.player_name("red_ada") == "Ada"
    goal_event, card = loaded_match.events
    assert isinstance(goal_event, GoalEvent)
    assert goal_event.assist_player_name == "Bola"
    assert isinstance(card, PlayerEvent)
    assert card.type == EventType.YELLOW_CARD


def test_row_without_roles_or_matches() -> None:
    row = {
        "id": "f2",
        "scheduled_at": T0.isoformat(),
        "status": "NOT_STARTED",
        "owner_id": None,
        "roles": None,
        "current_match_id": None,
        "created_at": T0.isoformat(),
        "updated_at": T0.isoformat(),
    }
    fixture = fixture_from_row(row)
    assert fixture.roles is None
    assert fixture.matches == []
    assert fixture.current_match is None
