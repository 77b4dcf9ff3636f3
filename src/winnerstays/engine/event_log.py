"""Append-only event log for a match context.

Nothing here edits or removes an event. A batch is validated in full before
any of it is appended, so a bad draft leaves the log exactly as it was.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from winnerstays.models.enums import EventType
from winnerstays.models.events import Event, EventDraft, GoalEvent, PlayerEvent, WinEvent, utcnow
from winnerstays.models.fixture import MatchContext

from .errors import InvalidStateError, ValidationError


def ensure_live(match: MatchContext) -> None:
    if not match.is_live:
        raise InvalidStateError(
            f"Match is {match.status.value.lower().replace('_', ' ')}; it no longer accepts events"
        )


def build_event(
    match: MatchContext,
    draft: EventDraft,
    *,
    allow_win: bool = False,
    now: Optional[datetime] = None,
) -> Event:
    """Validate one draft against the match's roles and frozen rosters."""
    slot = match.slot_for(draft.team_id)
    if slot is None:
        raise ValidationError("Team is not part of this match")

    created_at = draft.timestamp or now or utcnow()
    common = dict(
        event_id=draft.event_id,
        match_id=match.match_id,
        team_id=draft.team_id,
        created_at=created_at,
    )

    if draft.type == EventType.WIN:
        if not allow_win:
            raise ValidationError("WIN events are recorded when teams rotate")
        return WinEvent(**common)

    if not draft.player_id:
        raise ValidationError(f"Player is required for a {draft.type.value} event")
    if not slot.has_player(draft.player_id):
        raise ValidationError(f"Player is not in {slot.name}")

    if draft.type != EventType.GOAL:
        if draft.assist_player_id:
            raise ValidationError("Only a GOAL can carry an assist")
        return PlayerEvent(
            type=draft.type.value,
            player_id=draft.player_id,
            player_name=slot.player_name(draft.player_id),
            **common,
        )

    assist_name = None
    if draft.assist_player_id:
        if draft.assist_player_id == draft.player_id:
            raise ValidationError("A player cannot assist their own goal")
        if not slot.has_player(draft.assist_player_id):
            raise ValidationError(f"Assisting player is not in {slot.name}")
        assist_name = slot.player_name(draft.assist_player_id)

    return GoalEvent(
        player_id=draft.player_id,
        player_name=slot.player_name(draft.player_id),
        assist_player_id=draft.assist_player_id,
        assist_player_name=assist_name,
        **common,
    )


def append_events(
    match: MatchContext,
    drafts: Sequence[EventDraft],
    *,
    allow_win: bool = False,
    now: Optional[datetime] = None,
) -> List[Event]:
    """Validate every draft, then append them all to ``match.events``.

    A draft whose id is already in the log is a resubmission: the stored
    event is returned in its place and nothing new is appended for it.

    Returns:
        One stored event per draft, in draft order.

    Raises:
        InvalidStateError: The match is not in progress.
        ValidationError: Any draft is inconsistent with the match; nothing is appended.
    """
    ensure_live(match)
    if not drafts:
        raise ValidationError("No events submitted")
    if len({draft.event_id for draft in drafts}) != len(drafts):
        raise ValidationError("Each event in a batch needs its own id")

    logged = {event.event_id: event for event in match.events}
    result: List[Event] = []
    fresh: List[Event] = []
    for draft in drafts:
        if draft.event_id in logged:
            result.append(logged[draft.event_id])
            continue
        event = build_event(match, draft, allow_win=allow_win, now=now)
        result.append(event)
        fresh.append(event)

    match.events.extend(fresh)
    logger.debug(
        f"Appended {len(fresh)} event(s) to match {match.match_id}"
        + (f", {len(result) - len(fresh)} already logged" if len(fresh) < len(result) else "")
    )
    return result


def append_win(match: MatchContext, team_id: str, now: Optional[datetime] = None) -> WinEvent:
    """Append the WIN marker for a concluding match."""
    (event,) = append_events(
        match, [EventDraft(type=EventType.WIN, team_id=team_id)], allow_win=True, now=now
    )
    return event  # type: ignore[return-value]
