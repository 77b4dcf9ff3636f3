"""Match clock with a persisted snapshot that survives reloads.

Each viewer keeps its own clock. The clock is approximate state, not history:
after a crash it is rebuilt from its last snapshot and the wall-clock time
since that snapshot, never from the event log.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from loguru import logger
from pydantic import ValidationError as SchemaError

from winnerstays.models.clock import ClockState
from winnerstays.models.enums import ClockDirection
from winnerstays.models.events import utcnow
from winnerstays.storage.snapshots import ClockSnapshotStore

from .errors import InvalidStateError

LimitCallback = Callable[[], Awaitable[None]]


class MatchClock:
    """Countdown or countup clock for the live match context of one fixture.

    Args:
        key: Snapshot key, normally ``clock_key(fixture_id)``.
        store: Where snapshots are written after every state change.
        match_minutes: Limit for a normal match context.
        overtime_minutes: Limit while in overtime.
        direction: DOWN shows remaining time, UP shows elapsed time.
        tick_seconds: Wall-clock seconds between ticks of the background task.
        on_limit_reached: Awaited by the background task when time runs out.
        now: Wall-clock source, injectable for tests.
        autotick: Schedule a background tick task on start; disable to drive
            ``tick()`` by hand.
    """

    def __init__(
        self,
        key: str,
        store: ClockSnapshotStore,
        *,
        match_minutes: int = 8,
        overtime_minutes: int = 2,
        direction: ClockDirection = ClockDirection.DOWN,
        tick_seconds: float = 1.0,
        on_limit_reached: Optional[LimitCallback] = None,
        now: Callable[[], datetime] = utcnow,
        autotick: bool = True,
    ) -> None:
        self.key = key
        self.store = store
        self.match_minutes = match_minutes
        self.overtime_minutes = overtime_minutes
        self.direction = ClockDirection(direction)
        self.tick_seconds = tick_seconds
        self.on_limit_reached = on_limit_reached
        self._now = now
        self.autotick = autotick
        self._task: Optional[asyncio.Task] = None
        self._limit_task: Optional[asyncio.Task] = None
        self.state = self._initial_state(overtime=False)

    # --- Derived time ---

    @property
    def limit_seconds(self) -> int:
        minutes = self.overtime_minutes if self.state.overtime else self.match_minutes
        return minutes * 60

    @property
    def elapsed_seconds(self) -> int:
        if self.direction == ClockDirection.DOWN:
            return self.limit_seconds - self.state.total_seconds
        return self.state.total_seconds

    @property
    def remaining_seconds(self) -> int:
        return self.limit_seconds - self.elapsed_seconds

    @property
    def limit_reached(self) -> bool:
        return self.remaining_seconds <= 0

    @property
    def running(self) -> bool:
        return self.state.running

    def _initial_state(self, overtime: bool) -> ClockState:
        limit = (self.overtime_minutes if overtime else self.match_minutes) * 60
        shown = limit if self.direction == ClockDirection.DOWN else 0
        minutes, seconds = divmod(shown, 60)
        return ClockState(minutes=minutes, seconds=seconds, overtime=overtime)

    def _set_elapsed(self, elapsed: int) -> None:
        elapsed = min(max(elapsed, 0), self.limit_seconds)
        shown = self.limit_seconds - elapsed if self.direction == ClockDirection.DOWN else elapsed
        minutes, seconds = divmod(shown, 60)
        self.state = self.state.model_copy(update={"minutes": minutes, "seconds": seconds})

    def _set_running(self, running: bool) -> None:
        self.state = self.state.model_copy(update={"running": running})

    def _persist(self, at: Optional[datetime] = None) -> None:
        self.state = self.state.model_copy(update={"last_persisted_at": at or self._now()})
        self.store.save(self.key, self.state.model_dump(mode="json"))

    # --- Background tick task ---

    def _schedule(self) -> None:
        if self.autotick and self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A limit callback may reset the clock from inside the task itself
        if task is not current:
            task.cancel()

    async def _run(self) -> None:
        me = asyncio.current_task()
        while self.running and self._task is me:
            await asyncio.sleep(self.tick_seconds)
            if self._task is not me:
                break
            if self.tick():
                if self._task is me:
                    self._task = None
                # close() awaits the callback through this
                self._limit_task = me
                if self.on_limit_reached is not None:
                    await self.on_limit_reached()
                break

    # --- Transitions ---

    def start(self) -> ClockState:
        """stopped -> running. Starting a running clock does nothing."""
        if self.running:
            return self.state
        if self.limit_reached:
            raise InvalidStateError("Time is up; reset the clock or start overtime")
        self._set_running(True)
        self._persist()
        self._schedule()
        logger.debug(f"Clock {self.key} started at {self.state.display}")
        return self.state

    def pause(self) -> ClockState:
        """running -> stopped. Pausing a stopped clock does nothing."""
        if not self.running:
            return self.state
        self._cancel_task()
        self._set_running(False)
        self._persist()
        logger.debug(f"Clock {self.key} paused at {self.state.display}")
        return self.state

    def tick(self) -> bool:
        """Advance one second while running.

        Returns:
            True when this tick ran the clock out; the clock is then stopped.
        """
        if not self.running:
            return False
        self._set_elapsed(self.elapsed_seconds + 1)
        if self.limit_reached:
            self._set_running(False)
            self._persist()
            logger.info(f"Clock {self.key} reached its limit")
            return True
        self._persist()
        return False

    def adjust_time(self, delta_seconds: int) -> ClockState:
        """Move the clock forward (positive) or back (negative) without starting or stopping it."""
        self._set_elapsed(self.elapsed_seconds + delta_seconds)
        self._persist()
        return self.state

    def reset(self, overtime: bool = False) -> ClockState:
        """Back to the initial value for the chosen mode, stopped."""
        self._cancel_task()
        self.state = self._initial_state(overtime)
        self._persist()
        return self.state

    def start_overtime(self) -> ClockState:
        return self.reset(overtime=True)

    def recover(self) -> bool:
        """Restore from the persisted snapshot after a reload.

        A snapshot that was running is advanced by the wall-clock time since it
        was written, in whole seconds. The rewritten snapshot is stamped at the
        end of the counted seconds, so the leftover fraction carries over to
        the next recovery and no interval is counted twice or lost.

        Returns:
            True when the recovered clock had already run out; it is then stopped.
        """
        self._cancel_task()
        raw = self.store.load(self.key)
        if raw is None:
            self.state = self._initial_state(overtime=False)
            return False
        try:
            self.state = ClockState.model_validate(raw)
        except SchemaError as e:
            logger.warning(f"Discarding invalid clock snapshot {self.key}: {e}")
            self.store.delete(self.key)
            self.state = self._initial_state(overtime=False)
            return False

        if not self.running:
            return False

        stamp = None
        persisted_at = self.state.last_persisted_at
        if persisted_at is not None:
            drift = int((self._now() - persisted_at).total_seconds())
            if drift >= 0:
                stamp = persisted_at + timedelta(seconds=drift)
            if drift > 0:
                self._set_elapsed(self.elapsed_seconds + drift)
                logger.debug(f"Clock {self.key} recovered {drift}s since last snapshot")

        if self.limit_reached:
            self._set_running(False)
            self._persist(stamp)
            logger.info(f"Clock {self.key} ran out while away")
            return True

        self._persist(stamp)
        self._schedule()
        return False

    def clear(self) -> None:
        """Forget the clock entirely, snapshot included."""
        self._cancel_task()
        self.store.delete(self.key)
        self.state = self._initial_state(overtime=False)

    async def close(self) -> None:
        """Cancel the tick task and wait for it to finish.

        A limit callback that is still running is awaited rather than
        cancelled, and an exception it raised is raised here.
        """
        task = self._task
        self._cancel_task()
        current = asyncio.current_task()
        if task is not None and task is not current:
            try:
                await task
            except asyncio.CancelledError:
                pass
        limit_task, self._limit_task = self._limit_task, None
        if limit_task is not None and limit_task is not task and limit_task is not current:
            await limit_task
