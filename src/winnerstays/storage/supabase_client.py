# src/winnerstays/storage/supabase_client.py
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from supabase import create_async_client, AsyncClient
from postgrest import APIResponse
from postgrest.exceptions import APIError

from winnerstays.config.settings import settings
from winnerstays.engine.errors import StorageError
from winnerstays.models.events import EVENT_ADAPTER, Event
from winnerstays.models.fixture import Fixture, MatchContext, RoleAssignment, TeamSlot
from winnerstays.models.team import Player, Team

from .base import FixtureStore, RosterProvider

FIXTURE_SELECT = "*, matches(*, events(*))"


async def initialize_supabase(
    url: Optional[str] = None, key: Optional[str] = None
) -> AsyncClient:
    """Creates an async Supabase client from explicit values or settings."""
    url = url or (str(settings.supabase_url) if settings.supabase_url else None)
    key = key or settings.supabase_key
    if not url or not key:
        logger.critical("Supabase URL or Key not configured in settings.")
        raise SystemExit("Supabase configuration missing.")

    logger.debug(f"Attempting to initialize Async Supabase client with URL: {url}")
    try:
        client: AsyncClient = await create_async_client(url, key)
    except Exception as e:
        logger.exception(f"Failed to initialize Async Supabase client: {e}")
        raise StorageError("Could not connect to the fixture store") from e
    logger.success("Async Supabase client initialized successfully.")
    return client


# --- Row <-> model mapping ---


def _event_from_row(row: Dict[str, Any]) -> Event:
    data = {k: v for k, v in row.items() if v is not None}
    data["event_id"] = data.pop("id")
    return EVENT_ADAPTER.validate_python(data)


def _event_to_row(event: Event) -> Dict[str, Any]:
    data = event.model_dump(mode="json")
    data["id"] = data.pop("event_id")
    return data


def _match_from_row(row: Dict[str, Any]) -> MatchContext:
    events = sorted(
        (_event_from_row(e) for e in row.get("events") or []),
        key=lambda e: e.created_at,
    )
    return MatchContext(
        match_id=row["id"],
        fixture_id=row["fixture_id"],
        sequence=row.get("sequence", 0),
        home=TeamSlot.model_validate(row["home"]),
        away=TeamSlot.model_validate(row["away"]),
        waiting=TeamSlot.model_validate(row["waiting"]),
        status=row["status"],
        events=events,
        winning_team_id=row.get("winning_team_id"),
        created_at=row["created_at"],
    )


def _match_to_row(match: MatchContext) -> Dict[str, Any]:
    return {
        "id": match.match_id,
        "fixture_id": match.fixture_id,
        "sequence": match.sequence,
        "home": match.home.model_dump(mode="json"),
        "away": match.away.model_dump(mode="json"),
        "waiting": match.waiting.model_dump(mode="json"),
        "status": match.status.value,
        "winning_team_id": match.winning_team_id,
        "created_at": match.created_at.isoformat(),
    }


def fixture_from_row(row: Dict[str, Any]) -> Fixture:
    matches = sorted(
        (_match_from_row(m) for m in row.get("matches") or []), key=lambda m: m.sequence
    )
    return Fixture(
        fixture_id=row["id"],
        scheduled_at=row["scheduled_at"],
        status=row["status"],
        owner_id=row.get("owner_id"),
        roles=RoleAssignment.model_validate(row["roles"]) if row.get("roles") else None,
        matches=matches,
        current_match_id=row.get("current_match_id"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def fixture_to_payload(fixture: Fixture, new_events: Sequence[Event]) -> Dict[str, Any]:
    """Argument for the ``commit_fixture`` database function."""
    return {
        "fixture": {
            "id": fixture.fixture_id,
            "scheduled_at": fixture.scheduled_at.isoformat(),
            "status": fixture.status.value,
            "owner_id": fixture.owner_id,
            "roles": fixture.roles.model_dump(mode="json") if fixture.roles else None,
            "current_match_id": fixture.current_match_id,
            "created_at": fixture.created_at.isoformat(),
            "updated_at": fixture.updated_at.isoformat(),
        },
        "matches": [_match_to_row(m) for m in fixture.matches],
        "events": [_event_to_row(e) for e in new_events],
    }


class SupabaseFixtureStore(FixtureStore):
    """Fixture store on Supabase.

    Reads use nested selects. Every write goes through a PostgreSQL function
    (see ``sql/schema.sql``) so that one commit is one transaction.
    """

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def _execute(self, query: Any, action: str) -> APIResponse:
        try:
            return await query.execute()
        except APIError as e:
            logger.error(f"Supabase API error while trying to {action}: {e.message}")
            logger.debug(f"Full APIError details: {e}")
            raise StorageError(f"Could not {action}") from e
        except Exception as e:
            logger.exception(f"Unexpected error while trying to {action}: {e}")
            raise StorageError(f"Could not {action}") from e

    async def get_fixture(self, fixture_id: str) -> Optional[Fixture]:
        response = await self._execute(
            self.client.table("fixtures").select(FIXTURE_SELECT).eq("id", fixture_id).limit(1),
            "load fixture",
        )
        if not response.data:
            return None
        return fixture_from_row(response.data[0])

    async def find_fixture_by_match(self, match_id: str) -> Optional[Fixture]:
        response = await self._execute(
            self.client.table("matches").select("fixture_id").eq("id", match_id).limit(1),
            "look up match",
        )
        if not response.data:
            return None
        return await self.get_fixture(response.data[0]["fixture_id"])

    async def commit(self, fixture: Fixture, new_events: Sequence[Event] = ()) -> None:
        payload = fixture_to_payload(fixture, new_events)
        await self._execute(
            self.client.rpc("commit_fixture", {"payload": payload}), "save fixture"
        )
        logger.success(
            f"Committed fixture {fixture.fixture_id} ({len(payload['matches'])} matches, "
            f"{len(payload['events'])} new events)"
        )

    async def delete_fixture(self, fixture_id: str) -> bool:
        # Matches and events go with it through ON DELETE CASCADE
        response = await self._execute(
            self.client.table("fixtures").delete().eq("id", fixture_id), "delete fixture"
        )
        return bool(response.data)


class SupabaseRoster(RosterProvider):
    """Reads teams and their ordered members from the roster tables."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def get_team(self, team_id: str) -> Optional[Team]:
        try:
            response: APIResponse = (
                await self.client.table("teams")
                .select("id, name, color, team_players(position, players(id, name))")
                .eq("id", team_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error(f"Supabase API error fetching team {team_id}: {e.message}")
            raise StorageError("Could not load team") from e

        if not response.data:
            return None
        row = response.data[0]
        members: List[Dict[str, Any]] = sorted(
            row.get("team_players") or [], key=lambda tp: tp.get("position", 0)
        )
        return Team(
            team_id=row["id"],
            name=row["name"],
            color=row.get("color"),
            players=[
                Player(player_id=tp["players"]["id"], name=tp["players"]["name"])
                for tp in members
                if tp.get("players")
            ],
        )
