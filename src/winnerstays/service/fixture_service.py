"""Request/response operations on fixtures.

Each mutating call loads a fresh copy of the fixture, applies one engine
operation to it, and commits the result in a single store call. If anything
fails before the commit returns, the stored fixture is unchanged.
"""

import asyncio
import functools
from contextlib import asynccontextmanager
from datetime import datetime
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from loguru import logger
from pydantic import ValidationError as SchemaError

from winnerstays.engine import lifecycle, rotation
from winnerstays.engine.errors import (
    AuthorizationError,
    FixtureEngineError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from winnerstays.engine.event_log import append_events, ensure_live
from winnerstays.models.events import Event, EventDraft, utcnow
from winnerstays.models.fixture import Fixture, MatchContext, RoleAssignment
from winnerstays.models.team import Team
from winnerstays.storage.base import FixtureStore, RosterProvider
from winnerstays.utils.misc_utils import new_id

Authorizer = Callable[[Optional[str], Fixture], bool]


def owner_only(actor_id: Optional[str], fixture: Fixture) -> bool:
    """Only the fixture's owner may change it; fixtures without an owner are open."""
    return fixture.owner_id is None or fixture.owner_id == actor_id


def _logged(operation: str):
    """Log engine errors at the service boundary, then let them propagate."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError as e:
                logger.error(f"{operation} failed in storage: {e}")
                raise
            except FixtureEngineError as e:
                logger.warning(f"{operation} rejected: {e}")
                raise

        return wrapper

    return decorator


def parse_drafts(drafts: Sequence[Union[EventDraft, Mapping[str, Any]]]) -> List[EventDraft]:
    """Coerce raw submissions into drafts, fixing each one's event id."""
    try:
        return [d if isinstance(d, EventDraft) else EventDraft.model_validate(d) for d in drafts]
    except SchemaError as e:
        raise ValidationError(f"Invalid event data: {e.error_count()} problem(s)") from e


class FixtureService:
    """Engine operations for fixtures, backed by a store and a roster.

    Mutations of one fixture are serialised within this process. Across
    processes the last commit wins.
    """

    def __init__(
        self,
        store: FixtureStore,
        roster: RosterProvider,
        *,
        authorizer: Authorizer = owner_only,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.roster = roster
        self.authorizer = authorizer
        self._now = now
        self._locks: Dict[str, asyncio.Lock] = {}

    # --- Helpers ---

    async def _load(self, fixture_id: str) -> Fixture:
        fixture = await self.store.get_fixture(fixture_id)
        if fixture is None:
            raise NotFoundError("Fixture not found")
        return fixture

    @asynccontextmanager
    async def _locked(self, fixture_id: str) -> AsyncIterator[Fixture]:
        """Hold the fixture's lock and yield a fresh copy of it.

        Only fixtures that exist keep a lock around.
        """
        lock = self._locks.setdefault(fixture_id, asyncio.Lock())
        async with lock:
            fixture = await self.store.get_fixture(fixture_id)
            if fixture is None:
                if self._locks.get(fixture_id) is lock:
                    del self._locks[fixture_id]
                raise NotFoundError("Fixture not found")
            yield fixture

    async def _fixture_id_for_match(self, match_id: str) -> str:
        fixture = await self.store.find_fixture_by_match(match_id)
        if fixture is None:
            raise NotFoundError("Match not found")
        return fixture.fixture_id

    def _authorize(self, actor_id: Optional[str], fixture: Fixture) -> None:
        if not self.authorizer(actor_id, fixture):
            raise AuthorizationError("You are not allowed to change this fixture")

    async def _teams(self, team_ids: Iterable[str]) -> Dict[str, Team]:
        return await self.roster.get_teams(team_ids)

    async def _commit(self, fixture: Fixture, new_events: Sequence[Event] = ()) -> None:
        fixture.updated_at = self._now()
        await self.store.commit(fixture, new_events)

    # --- Reads ---

    @_logged("get_fixture")
    async def get_fixture(self, fixture_id: str) -> Fixture:
        return await self._load(fixture_id)

    @_logged("list_events")
    async def list_events(self, fixture_id: str) -> List[Event]:
        """Every event of the fixture, newest first."""
        fixture = await self._load(fixture_id)
        return sorted(fixture.iter_events(), key=lambda e: e.created_at, reverse=True)

    # --- Lifecycle ---

    @_logged("create_fixture")
    async def create_fixture(
        self, scheduled_at: datetime, owner_id: Optional[str] = None
    ) -> Fixture:
        now = self._now()
        fixture = Fixture(
            fixture_id=new_id("fixture"),
            scheduled_at=scheduled_at,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        await self._commit(fixture)
        logger.info(f"Created fixture {fixture.fixture_id} for {scheduled_at.isoformat()}")
        return fixture

    @_logged("setup_fixture")
    async def setup_fixture(
        self, fixture_id: str, roles: RoleAssignment, *, actor_id: Optional[str] = None
    ) -> Fixture:
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            teams = await self._teams(roles.team_ids())
            lifecycle.setup(fixture, roles, teams)
            await self._commit(fixture)
            return fixture

    @_logged("start_fixture")
    async def start_fixture(
        self, fixture_id: str, *, actor_id: Optional[str] = None
    ) -> Tuple[Fixture, MatchContext]:
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            teams = await self._teams(fixture.roles.team_ids()) if fixture.roles else {}
            match = lifecycle.start(fixture, teams, self._now())
            await self._commit(fixture)
            logger.success(f"Fixture {fixture_id} started: {match.description}")
            return fixture, match

    @_logged("end_fixture")
    async def end_fixture(self, fixture_id: str, *, actor_id: Optional[str] = None) -> Fixture:
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            lifecycle.end(fixture, self._now())
            await self._commit(fixture)
            logger.success(f"Fixture {fixture_id} completed after {len(fixture.matches)} match(es)")
            return fixture

    @_logged("delete_fixture")
    async def delete_fixture(self, fixture_id: str, *, actor_id: Optional[str] = None) -> None:
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            if not await self.store.delete_fixture(fixture_id):
                raise NotFoundError("Fixture not found")
        self._locks.pop(fixture_id, None)
        logger.info(f"Deleted fixture {fixture_id} with its matches and events")

    # --- Match play ---

    @_logged("submit_events")
    async def submit_events(
        self,
        match_id: str,
        drafts: Sequence[Union[EventDraft, Mapping[str, Any]]],
        *,
        actor_id: Optional[str] = None,
    ) -> List[Event]:
        """Append a batch of events to a live match; all of them or none.

        Drafts whose ids are already logged are not written again, so a
        batch resubmitted after an uncertain commit is safe.
        """
        parsed = parse_drafts(drafts)
        fixture_id = await self._fixture_id_for_match(match_id)
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            match = fixture.get_match(match_id)
            if match is None:
                raise NotFoundError("Match not found")
            lifecycle.ensure_in_progress(fixture)
            ensure_live(match)
            elsewhere = {e.event_id for e in fixture.iter_events() if e.match_id != match_id}
            if any(d.event_id in elsewhere for d in parsed):
                raise ValidationError("Event id is already used by another match")

            logged = {e.event_id for e in match.events}
            stored = append_events(match, parsed, now=self._now())
            fresh = [e for e in stored if e.event_id not in logged]
            if fresh:
                await self._commit(fixture, fresh)
                logger.info(
                    f"Recorded {', '.join(e.type for e in fresh)} in match {match.sequence + 1}"
                )
            else:
                logger.info(f"Batch for match {match.sequence + 1} was already recorded")
            return stored

    @_logged("rotate_teams")
    async def rotate_teams(
        self,
        match_id: str,
        winning_team_id: str,
        losing_team_id: Optional[str] = None,
        *,
        actor_id: Optional[str] = None,
    ) -> Tuple[Fixture, MatchContext]:
        """Conclude the live match with a winner and open the next one."""
        fixture_id = await self._fixture_id_for_match(match_id)
        async with self._locked(fixture_id) as fixture:
            self._authorize(actor_id, fixture)
            current = fixture.get_match(match_id)
            teams = await self._teams(current.team_ids()) if current else {}
            new_match, win = rotation.rotate(
                fixture,
                match_id,
                winning_team_id,
                losing_team_id,
                teams=teams,
                now=self._now(),
            )
            await self._commit(fixture, [win])
            return fixture, new_match
