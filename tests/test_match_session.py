"""Tests for the viewer-side session: auto-rotation, time-up handling and tie-breaks."""

import asyncio

import pytest
from tenacity import wait_none

from winnerstays.engine.errors import InvalidStateError, StorageError
from winnerstays.models.enums import FixtureStatus, Outcome
from winnerstays.service.fixture_service import FixtureService
from winnerstays.service.match_session import MatchSession
from winnerstays.storage.snapshots import clock_key

from helpers import OWNER, goal


def _session(service, fixture, snapshots, wall_clock, **kwargs) -> MatchSession:
    kwargs.setdefault("autotick", False)
    return MatchSession(
        service,
        fixture.fixture_id,
        snapshots,
        actor_id=OWNER,
        goals_to_win=2,
        match_minutes=8,
        overtime_minutes=2,
        direction="down",
        retry_wait=wait_none(),
        now=wall_clock,
        **kwargs,
    )


class _ReadsCanFailStore:
    """Delegates to a real store; reads raise StorageError while ``failing`` is set."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.failing = False

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def get_fixture(self, fixture_id):
        if self.failing:
            raise StorageError("Store unavailable")
        return await self.inner.get_fixture(fixture_id)


def _roles(match):
    return match.home.team_id, match.away.team_id, match.waiting.team_id


async def _run_out_clock(session: MatchSession):
    session.clock.start()
    session.clock.adjust_time(session.clock.remaining_seconds - 1)
    return await session.tick()


class TestAutoRotation:
    async def test_threshold_win_rotates(self, service, live_fixture, snapshots, wall_clock) -> None:
        """Reaching the goal threshold rotates straight away and resets the clock."""
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        session.clock.start()

        first = await session.record([goal("red", "Ada")])
        assert first.outcome == Outcome.NO_WINNER

        decision = await session.record([goal("red", "Cai", assist="Bola")])
        assert decision.winning_team_id == "red"
        assert session.last_decision == decision
        assert _roles(session.current_match) == ("red", "green", "blue")
        assert session.clock.state.display == "08:00"
        assert not session.clock.running

    async def test_without_auto_rotate_decision_is_only_reported(
        self, service, live_fixture, snapshots, wall_clock
    ) -> None:
        session = _session(service, live_fixture, snapshots, wall_clock, auto_rotate=False)
        await session.open()
        await session.record([goal("blue", "Dev"), goal("blue", "Esme")])

        assert session.last_decision.winning_team_id == "blue"
        assert session.current_match.sequence == 0

        new_match = await session.rotate("blue", "red")
        assert _roles(new_match) == ("blue", "green", "red")

    async def test_time_up_gives_win_to_leader(self, service, live_fixture, snapshots, wall_clock) -> None:
        """When the clock runs out the leading team wins and rotation follows."""
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        await session.record([goal("blue", "Finn")])

        decision = await _run_out_clock(session)

        assert decision.winning_team_id == "blue"
        assert _roles(session.current_match) == ("blue", "green", "red")


class TestTieBreaks:
    async def test_tie_then_manual_winner(self, service, live_fixture, snapshots, wall_clock) -> None:
        """A level score at full time waits for the viewer to pick a winner."""
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        await session.record([goal("red", "Ada"), goal("blue", "Dev")])

        decision = await _run_out_clock(session)
        assert decision.needs_tie_break
        assert session.pending_tie_break
        assert session.current_match.sequence == 0

        new_match = await session.resolve_tie("blue")
        assert _roles(new_match) == ("blue", "green", "red")
        assert not session.pending_tie_break

    async def test_tie_then_overtime_goal(self, service, live_fixture, snapshots, wall_clock) -> None:
        """Overtime restarts the clock at its own limit and play continues."""
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        await session.record([goal("red", "Ada"), goal("blue", "Dev")])
        await _run_out_clock(session)

        state = session.start_overtime()
        assert state.overtime
        assert state.display == "02:00"
        assert session.clock.running

        decision = await session.record([goal("red", "Bola")])
        assert decision.winning_team_id == "red"
        assert session.current_match.sequence == 1
        assert not session.clock.state.overtime

    async def test_no_tie_to_break(self, service, live_fixture, snapshots, wall_clock) -> None:
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        with pytest.raises(InvalidStateError):
            await session.resolve_tie("red")
        with pytest.raises(InvalidStateError):
            session.start_overtime()


class TestClockLifecycle:
    async def test_reopened_session_handles_time_that_ran_out(
        self, service, live_fixture, snapshots, wall_clock
    ) -> None:
        """A viewer coming back after the limit passed gets the result applied."""
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        await session.record([goal("green", "Gus"), goal("red", "Ada")])
        session.clock.start()
        await session.close()

        wall_clock.advance(9 * 60)
        reopened = _session(service, live_fixture, snapshots, wall_clock)
        await reopened.open()

        assert reopened.last_decision.winning_team_id == "red"
        assert reopened.current_match.sequence == 1

    async def test_end_clears_clock_snapshot(self, service, live_fixture, snapshots, wall_clock) -> None:
        session = _session(service, live_fixture, snapshots, wall_clock)
        await session.open()
        session.clock.start()
        assert snapshots.load(clock_key(live_fixture.fixture_id)) is not None

        fixture = await session.end()

        assert fixture.status == FixtureStatus.COMPLETED
        assert snapshots.load(clock_key(live_fixture.fixture_id)) is None
        with pytest.raises(InvalidStateError):
            await session.record([goal("red", "Ada")])

    async def test_background_tick_triggers_rotation(
        self, service, live_fixture, snapshots, wall_clock
    ) -> None:
        """With autotick the clock task evaluates the match when time runs out."""
        session = _session(
            service, live_fixture, snapshots, wall_clock, autotick=True, tick_seconds=0.001
        )
        await session.open()
        await session.record([goal("blue", "Dev")])
        session.clock.adjust_time(session.clock.remaining_seconds - 2)
        session.clock.start()

        for _ in range(400):
            await asyncio.sleep(0.005)
            if session.current_match.sequence == 1:
                break
        await session.close()

        assert session.current_match.sequence == 1
        assert _roles(session.current_match) == ("blue", "green", "red")


class TestUnresolvedTimeUp:
    async def _time_up_while_store_down(self, store, roster, live_fixture, snapshots, wall_clock):
        reads = _ReadsCanFailStore(store)
        service = FixtureService(reads, roster, now=wall_clock)
        session = _session(
            service,
            live_fixture,
            snapshots,
            wall_clock,
            autotick=True,
            tick_seconds=0.001,
            retry_attempts=1,
        )
        await session.open()
        await session.record([goal("blue", "Dev")])
        session.clock.adjust_time(session.clock.remaining_seconds - 2)
        reads.failing = True
        session.clock.start()

        for _ in range(400):
            await asyncio.sleep(0.005)
            if session.unresolved_time_up and not session.clock.running:
                break
        await session.close()
        return reads, service, session

    async def test_failed_time_up_is_retried_on_tick(
        self, store, roster, live_fixture, snapshots, wall_clock
    ) -> None:
        """A time-up the store could not take is kept and applied by the next tick."""
        reads, _, session = await self._time_up_while_store_down(
            store, roster, live_fixture, snapshots, wall_clock
        )
        assert session.unresolved_time_up
        assert session.current_match.sequence == 0

        reads.failing = False
        decision = await session.tick()

        assert decision.winning_team_id == "blue"
        assert not session.unresolved_time_up
        assert _roles(session.current_match) == ("blue", "green", "red")

    async def test_reopened_session_applies_stranded_time_up(
        self, store, roster, live_fixture, snapshots, wall_clock
    ) -> None:
        """A clock left at its limit is evaluated when the viewer comes back."""
        reads, service, _ = await self._time_up_while_store_down(
            store, roster, live_fixture, snapshots, wall_clock
        )
        reads.failing = False

        reopened = _session(service, live_fixture, snapshots, wall_clock)
        await reopened.open()

        assert reopened.last_decision.winning_team_id == "blue"
        assert reopened.current_match.sequence == 1
