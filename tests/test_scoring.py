"""Tests for score and statistics derivation from the event log."""

from winnerstays.engine.event_log import append_events
from winnerstays.engine.scoring import derive_assists, derive_scores, scoreline
from winnerstays.engine.stats import player_stats, team_stats
from winnerstays.models.enums import EventType
from winnerstays.models.fixture import Fixture

from helpers import T0, goal, make_match, player_event


class TestDeriveScores:
    """Scores are recounted from events every time."""

    def test_empty_log_scores_nil_nil(self) -> None:
        """A match without events scores 0-0 for both active teams."""
        score = scoreline(make_match())
        assert (score.home, score.away) == (0, 0)
        assert score.is_level

    def test_derivation_is_deterministic(self) -> None:
        """Deriving twice from the same log gives identical results."""
        match = make_match()
        append_events(match, [goal("red", "Ada"), goal("blue", "Dev"), goal("red", "Cai")], now=T0)
        first = derive_scores(match.events, match.match_id)
        second = derive_scores(list(match.events), match.match_id)
        assert first == second
        assert first["red"] == 2 and first["blue"] == 1

    def test_order_does_not_matter(self) -> None:
        """Reversing the event order yields the same totals."""
        match = make_match()
        append_events(match, [goal("red", "Ada"), goal("blue", "Dev"), goal("red", "Cai")], now=T0)
        assert derive_scores(reversed(match.events), "m1") == derive_scores(match.events, "m1")

    def test_goal_counts_once_in_its_own_match_only(self) -> None:
        """A GOAL adds exactly one to its team in its own match context."""
        first, second = make_match("m1"), make_match("m2")
        append_events(first, [goal("red", "Ada")], now=T0)
        events = first.events + second.events

        assert derive_scores(events, "m1")["red"] == 1
        assert derive_scores(events, "m2")["red"] == 0
        assert derive_scores(events, "m1")["blue"] == 0

    def test_non_goal_events_do_not_score(self) -> None:
        """Saves, cards and assists leave the score untouched."""
        match = make_match()
        append_events(
            match,
            [
                player_event(EventType.SAVE, "blue", "Dev"),
                player_event(EventType.YELLOW_CARD, "red", "Bola"),
                player_event(EventType.ASSIST, "red", "Cai"),
            ],
            now=T0,
        )
        assert sum(derive_scores(match.events, "m1").values()) == 0


class TestDeriveAssists:
    def test_assists_from_goals_and_assist_events(self) -> None:
        """An assist is either the secondary player on a GOAL or an ASSIST event."""
        match = make_match()
        append_events(
            match,
            [
                goal("red", "Ada", assist="Bola"),
                player_event(EventType.ASSIST, "red", "Bola"),
                goal("red", "Cai"),
            ],
            now=T0,
        )
        assists = derive_assists(match.events)
        assert assists["red_bola"] == 2
        assert assists["red_cai"] == 0


class TestStats:
    def _fixture(self) -> Fixture:
        match = make_match()
        append_events(
            match,
            [
                goal("red", "Ada", assist="Bola"),
                player_event(EventType.SAVE, "blue", "Dev"),
                player_event(EventType.WOW_MOMENT, "red", "Ada"),
            ],
            now=T0,
        )
        return Fixture(fixture_id="f1", scheduled_at=T0, matches=[match])

    def test_player_stats_cover_every_rostered_player(self) -> None:
        """Players without events still appear with zero tallies."""
        rows = {row.player_id: row for row in player_stats(self._fixture())}
        assert len(rows) == 9
        assert rows["red_ada"].goals == 1
        assert rows["red_ada"].wow_moments == 1
        assert rows["red_bola"].assists == 1
        assert rows["blue_dev"].saves == 1
        assert rows["green_gus"].goals == 0

    def test_team_stats(self) -> None:
        """Team tallies are split by team id."""
        rows = {row.team_id: row for row in team_stats(self._fixture())}
        assert rows["red"].goals == 1
        assert rows["blue"].saves == 1
        assert rows["green"].goals == 0
        assert all(row.wins == 0 for row in rows.values())

    def test_assist_by_player_no_longer_rostered(self) -> None:
        """An assister missing from every roster is listed under their snapshot name."""
        match = make_match()
        append_events(match, [goal("red", "Ada", assist="Bola")], now=T0)
        home = match.home.model_copy(
            update={"players": [p for p in match.home.players if p.player_id != "red_bola"]}
        )
        match = match.model_copy(update={"home": home})
        fixture = Fixture(fixture_id="f1", scheduled_at=T0, matches=[match])

        rows = {row.player_id: row for row in player_stats(fixture)}

        assert rows["red_bola"].name == "Bola"
        assert rows["red_bola"].team_id == "red"
        assert rows["red_bola"].assists == 1
        assert rows["red_ada"].goals == 1
