"""One viewer's live view of a fixture: scoreboard, clock and auto-rotation.

The session owns nothing durable. Events and rotations go through the
FixtureService; the clock lives in a snapshot store local to the viewer.
"""

from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from loguru import logger
from tenacity.wait import wait_base

from winnerstays.config.settings import settings
from winnerstays.engine.clock import MatchClock
from winnerstays.engine.errors import FixtureEngineError, InvalidStateError
from winnerstays.engine.scoring import Scoreline, scoreline
from winnerstays.engine.win_condition import NO_WINNER, WinDecision, evaluate_win_condition
from winnerstays.models.clock import ClockState
from winnerstays.models.enums import ClockDirection, FixtureStatus
from winnerstays.models.events import EventDraft, utcnow
from winnerstays.models.fixture import Fixture, MatchContext
from winnerstays.storage.snapshots import ClockSnapshotStore, clock_key

from .fixture_service import FixtureService, parse_drafts
from .retry import with_store_retry


class MatchSession:
    """Drives a fixture from one viewer's seat.

    After every recorded batch the win condition is evaluated on the derived
    score. A decided contest is rotated straight away when ``auto_rotate`` is
    set. A tie when time runs out pauses play until the viewer either picks a
    winner with ``resolve_tie`` or plays on with ``start_overtime``.
    """

    def __init__(
        self,
        service: FixtureService,
        fixture_id: str,
        clock_store: ClockSnapshotStore,
        *,
        actor_id: Optional[str] = None,
        goals_to_win: Optional[int] = None,
        match_minutes: Optional[int] = None,
        overtime_minutes: Optional[int] = None,
        direction: Optional[Union[ClockDirection, str]] = None,
        tick_seconds: Optional[float] = None,
        auto_rotate: bool = True,
        autotick: bool = True,
        retry_attempts: Optional[int] = None,
        retry_wait: Optional[wait_base] = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.service = service
        self.fixture_id = fixture_id
        self.actor_id = actor_id
        self.goals_to_win = goals_to_win or settings.goals_to_win
        self.auto_rotate = auto_rotate
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self.fixture: Optional[Fixture] = None
        self.pending_tie_break = False
        self.last_decision: WinDecision = NO_WINNER
        # Set while a time-up has been seen but not yet applied to the match
        self.unresolved_time_up = False
        self.clock = MatchClock(
            clock_key(fixture_id),
            clock_store,
            match_minutes=match_minutes or settings.match_minutes,
            overtime_minutes=overtime_minutes or settings.overtime_minutes,
            direction=ClockDirection(direction or settings.clock_direction),
            tick_seconds=tick_seconds or settings.clock_tick_seconds,
            on_limit_reached=self._on_limit_reached,
            now=now,
            autotick=autotick,
        )

    async def _call(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await with_store_retry(
            operation, *args, attempts=self.retry_attempts, wait=self.retry_wait, **kwargs
        )

    async def _refresh(self) -> Fixture:
        self.fixture = await self._call(self.service.get_fixture, self.fixture_id)
        return self.fixture

    def _require_live(self) -> MatchContext:
        match = self.current_match
        if match is None or not match.is_live:
            raise InvalidStateError("There is no match being played")
        return match

    @property
    def current_match(self) -> Optional[MatchContext]:
        return self.fixture.current_match if self.fixture else None

    def score(self) -> Scoreline:
        return scoreline(self._require_live())

    # --- Lifecycle ---

    async def open(self) -> Fixture:
        """Load the fixture and pick the clock up where this viewer left it."""
        fixture = await self._refresh()
        if fixture.status == FixtureStatus.IN_PROGRESS:
            if self.clock.recover() or self.clock.limit_reached:
                await self.handle_time_up()
        elif fixture.status.is_terminal:
            self.clock.clear()
        return fixture

    async def start(self) -> MatchContext:
        """Start the fixture. The clock is reset but left stopped."""
        self.fixture, match = await self._call(
            self.service.start_fixture, self.fixture_id, actor_id=self.actor_id
        )
        self.clock.reset()
        return match

    async def end(self) -> Fixture:
        """Complete the fixture and drop this viewer's clock snapshot."""
        self.fixture = await self._call(
            self.service.end_fixture, self.fixture_id, actor_id=self.actor_id
        )
        self.pending_tie_break = False
        self.clock.clear()
        return self.fixture

    async def close(self) -> None:
        await self.clock.close()

    # --- Play ---

    async def record(
        self, drafts: Sequence[Union[EventDraft, Mapping[str, Any]]]
    ) -> WinDecision:
        """Submit a batch of events for the live match and re-evaluate it.

        Event ids are fixed before the first attempt, so a retried submit
        cannot log the batch twice.
        """
        match = self._require_live()
        parsed = parse_drafts(drafts)
        await self._call(
            self.service.submit_events, match.match_id, parsed, actor_id=self.actor_id
        )
        await self._refresh()
        return await self._evaluate(clock_expired=self.clock.limit_reached)

    async def rotate(
        self, winning_team_id: str, losing_team_id: Optional[str] = None
    ) -> MatchContext:
        match = self._require_live()
        self.fixture, new_match = await self._call(
            self.service.rotate_teams,
            match.match_id,
            winning_team_id,
            losing_team_id,
            actor_id=self.actor_id,
        )
        self.pending_tie_break = False
        self.last_decision = NO_WINNER
        self.clock.reset()
        logger.info(f"Next up: {new_match.description}")
        return new_match

    async def tick(self) -> Optional[WinDecision]:
        """Advance the clock by hand; evaluates the match if time ran out.

        A time-up that could not be applied earlier is retried here.
        """
        if self.clock.tick() or self.unresolved_time_up:
            return await self.handle_time_up()
        return None

    async def _on_limit_reached(self) -> None:
        try:
            await self.handle_time_up()
        except FixtureEngineError as e:
            logger.error(f"Could not apply time-up to fixture {self.fixture_id}: {e}")

    async def handle_time_up(self) -> WinDecision:
        self.unresolved_time_up = True
        await self._refresh()
        match = self.current_match
        if match is None or not match.is_live:
            self.unresolved_time_up = False
            return NO_WINNER
        decision = await self._evaluate(clock_expired=True)
        self.unresolved_time_up = False
        return decision

    async def _evaluate(self, clock_expired: bool) -> WinDecision:
        decision = evaluate_win_condition(self.score(), self.goals_to_win, clock_expired)
        self.last_decision = decision
        if decision.has_winner:
            self.pending_tie_break = False
            if self.auto_rotate:
                await self.rotate(decision.winning_team_id, decision.losing_team_id)
                self.last_decision = decision
        elif decision.needs_tie_break:
            self.pending_tie_break = True
            self.clock.pause()
            logger.info(
                f"Time up with the scores level in {self._require_live().description}; "
                "choose a winner or play overtime"
            )
        return decision

    # --- Tie-breaks ---

    async def resolve_tie(self, winning_team_id: str) -> MatchContext:
        """Settle a tied match by naming its winner."""
        if not self.pending_tie_break:
            raise InvalidStateError("There is no tie to resolve")
        return await self.rotate(winning_team_id)

    def start_overtime(self) -> ClockState:
        """Play on: the clock restarts at the overtime limit and runs."""
        if not self.pending_tie_break:
            raise InvalidStateError("Overtime is only played after a tie")
        self.pending_tie_break = False
        self.last_decision = NO_WINNER
        self.clock.start_overtime()
        return self.clock.start()
