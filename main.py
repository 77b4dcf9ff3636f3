import sys
import asyncio
from datetime import timedelta
from typing import List

# --- Settings/Logging ---
from winnerstays.logging.setup import setup_logging
from winnerstays.config.settings import settings

setup_logging()

from loguru import logger

# --- End Settings/Logging ---

from winnerstays.engine.errors import FixtureEngineError, InvalidStateError
from winnerstays.engine.scoring import scoreline
from winnerstays.engine.stats import player_stats, team_stats
from winnerstays.models.enums import DEFAULT_TEAM_COLORS, EVENT_EMOJIS, EventType
from winnerstays.models.events import EventDraft, utcnow
from winnerstays.models.fixture import Fixture, RoleAssignment
from winnerstays.models.team import Player, Team
from winnerstays.service.fixture_service import FixtureService
from winnerstays.service.match_session import MatchSession
from winnerstays.storage.memory_store import MemoryFixtureStore, MemoryRoster
from winnerstays.storage.snapshots import MemorySnapshotStore

from rich import print
from rich.panel import Panel
from rich.table import Table

OWNER_ID = "organiser"


def demo_teams() -> List[Team]:
    """Three small squads in the default bib colours."""
    squads = {
        "red": ["Ada", "Bola", "Cai"],
        "blue": ["Dev", "Esme", "Finn"],
        "green": ["Gus", "Hana", "Ines"],
    }
    colours = dict(zip(squads, DEFAULT_TEAM_COLORS.values()))
    return [
        Team(
            team_id=key,
            name=key.title(),
            color=colours[key],
            players=[Player(player_id=f"{key}_{name.lower()}", name=name) for name in names],
        )
        for key, names in squads.items()
    ]


def goal(team_id: str, scorer: str, assist: str | None = None) -> EventDraft:
    return EventDraft(
        type=EventType.GOAL,
        team_id=team_id,
        player_id=f"{team_id}_{scorer.lower()}",
        assist_player_id=f"{team_id}_{assist.lower()}" if assist else None,
    )


def moment(event_type: EventType, team_id: str, player: str) -> EventDraft:
    return EventDraft(type=event_type, team_id=team_id, player_id=f"{team_id}_{player.lower()}")


def render_matches(fixture: Fixture) -> None:
    for match in fixture.matches:
        score = scoreline(match)
        lines = [
            f"{EVENT_EMOJIS[EventType(e.type)]} {e.type.replace('_', ' ').title()}"
            + (f" - {e.player_name}" if getattr(e, "player_name", None) else "")
            + (f" (assist {e.assist_player_name})" if getattr(e, "assist_player_name", None) else "")
            for e in match.events
        ]
        title = (
            f"[{match.home.color}]{match.home.name}[/] {score.home} - {score.away} "
            f"[{match.away.color}]{match.away.name}[/]"
        )
        print(
            Panel(
                "\n".join(lines) or "No events yet",
                title=title,
                subtitle=f"{match.description} | {match.status.value}",
            )
        )


def render_stats(fixture: Fixture) -> None:
    teams = Table(title="Teams")
    for column in ("Team", "Goals", "Saves", "Wins"):
        teams.add_column(column)
    for row in sorted(team_stats(fixture), key=lambda t: (-t.wins, -t.goals)):
        teams.add_row(f"[{row.color}]{row.name}[/]", str(row.goals), str(row.saves), str(row.wins))
    print(teams)

    players = Table(title="Players")
    for column in ("Player", "Team", "G", "A", "Sv", "YC", "RC", "Wow"):
        players.add_column(column)
    for row in player_stats(fixture):
        players.add_row(
            row.name,
            row.team_id,
            str(row.goals),
            str(row.assists),
            str(row.saves),
            str(row.yellow_cards),
            str(row.red_cards),
            str(row.wow_moments),
        )
    print(players)


async def play_fixture(service: FixtureService) -> Fixture:
    """Scripted fixture covering a threshold win, a timed win, and a tie settled in overtime."""
    fixture = await service.create_fixture(utcnow() + timedelta(minutes=5), owner_id=OWNER_ID)
    await service.setup_fixture(
        fixture.fixture_id,
        RoleAssignment(home_team_id="red", away_team_id="blue", waiting_team_id="green"),
        actor_id=OWNER_ID,
    )

    session = MatchSession(
        service,
        fixture.fixture_id,
        MemorySnapshotStore(),
        actor_id=OWNER_ID,
        autotick=False,
        retry_attempts=settings.store_retry_attempts,
    )
    try:
        first = await session.start()
        logger.info(f"Kick-off: {first.description}")

        # Match 1: Red reach the goal threshold
        await session.record([goal("red", "Ada", assist="Bola")])
        await session.record([moment(EventType.SAVE, "blue", "Dev")])
        decision = await session.record([goal("red", "Cai")])
        logger.success(f"Match 1 decided: {decision.outcome.value} for {decision.winning_team_id}")

        try:
            await service.submit_events(first.match_id, [goal("red", "Ada")], actor_id=OWNER_ID)
        except InvalidStateError as e:
            logger.info(f"Late goal for match 1 refused as expected: {e}")

        # Match 2: Green lead when the clock runs out
        await session.record([goal("green", "Gus")])
        await session.record([moment(EventType.YELLOW_CARD, "red", "Bola")])
        session.clock.start()
        session.clock.adjust_time(session.clock.remaining_seconds - 1)
        decision = await session.tick()
        logger.success(f"Match 2 decided on time: {decision.winning_team_id if decision else None}")

        # Match 3: level at full time, Blue win in overtime
        await session.record([goal("blue", "Esme"), goal("green", "Hana")])
        session.clock.start()
        session.clock.adjust_time(session.clock.remaining_seconds - 1)
        decision = await session.tick()
        if decision is not None and decision.needs_tie_break:
            state = session.start_overtime()
            logger.info(f"Overtime started with {state.display} on the clock")
        await session.record(
            [goal("blue", "Finn", assist="Dev"), moment(EventType.WOW_MOMENT, "blue", "Finn")]
        )

        return await session.end()
    finally:
        await session.close()


async def main() -> None:
    """Main entry point for the console demo."""
    logger.info("Starting Winner Stays - scripted fixture on the in-memory store")

    service = FixtureService(MemoryFixtureStore(), MemoryRoster(demo_teams()))
    try:
        fixture = await play_fixture(service)
        logger.success(
            f"Fixture {fixture.fixture_id} {fixture.status.value} after {len(fixture.matches)} matches"
        )
        render_matches(fixture)
        render_stats(fixture)

        events = await service.list_events(fixture.fixture_id)
        logger.info(f"{len(events)} events logged; latest: {events[0].type if events else 'none'}")
    except FixtureEngineError as e:
        logger.error(f"Fixture engine error during demo: {e}")
    except Exception:
        logger.exception("An error occurred during main execution loop.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unhandled exception in main execution: {e}")
        sys.exit(1)
