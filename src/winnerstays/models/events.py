"""Event log records.

Each event type is its own frozen model so that "does this event carry a
player?" is answered by the type, not by checking optional fields. The
``Event`` union is discriminated on ``type`` and is what the store hands back.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from winnerstays.utils.misc_utils import new_id

from .enums import EventType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """Fields shared by every stored event."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    match_id: str  # FK to MatchContext.match_id
    team_id: str  # Team occupying one of the match's three roles
    created_at: datetime = Field(default_factory=utcnow)


class GoalEvent(BaseEvent):
    type: Literal["GOAL"] = "GOAL"
    player_id: str
    player_name: Optional[str] = None  # Snapshot at submission time
    assist_player_id: Optional[str] = None
    assist_player_name: Optional[str] = None


class PlayerEvent(BaseEvent):
    """A non-scoring event credited to one player."""

    type: Literal["ASSIST", "SAVE", "YELLOW_CARD", "RED_CARD", "WOW_MOMENT"]
    player_id: str
    player_name: Optional[str] = None


class WinEvent(BaseEvent):
    """Marker appended to a concluding match by the rotation controller."""

    type: Literal["WIN"] = "WIN"


Event = Annotated[Union[GoalEvent, PlayerEvent, WinEvent], Field(discriminator="type")]

EVENT_ADAPTER: TypeAdapter = TypeAdapter(Event)


class EventDraft(BaseModel):
    """Client submission for a single event, before validation against a match.

    ``event_id`` is fixed when the draft is created and becomes the stored
    event's id, so resubmitting the same draft never logs it twice.
    """

    event_id: str = Field(default_factory=lambda: new_id("evt"))
    type: EventType
    team_id: str
    player_id: Optional[str] = None
    assist_player_id: Optional[str] = None  # Only meaningful on a GOAL
    timestamp: Optional[datetime] = None
