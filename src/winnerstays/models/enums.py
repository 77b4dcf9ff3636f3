from enum import Enum


class EventType(str, Enum):
    GOAL = "GOAL"
    ASSIST = "ASSIST"
    SAVE = "SAVE"
    YELLOW_CARD = "YELLOW_CARD"
    RED_CARD = "RED_CARD"
    WOW_MOMENT = "WOW_MOMENT"
    WIN = "WIN"  # Written only by the rotation controller


class Role(str, Enum):
    HOME = "home"
    AWAY = "away"
    WAITING = "waiting"


class FixtureStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    WAITING_TO_START = "WAITING_TO_START"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FINISHED = "FINISHED"  # Legacy terminal status inferred from history

    @property
    def is_terminal(self) -> bool:
        return self in (FixtureStatus.COMPLETED, FixtureStatus.FINISHED)


class MatchStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ClockDirection(str, Enum):
    DOWN = "down"  # Remaining time shown, counts towards 0:00
    UP = "up"  # Elapsed time shown, counts towards the limit


class Outcome(str, Enum):
    NO_WINNER = "NO_WINNER"
    WINNER = "WINNER"
    TIE = "TIE"  # Clock expired level; needs a manual tie-break


EVENT_EMOJIS = {
    EventType.GOAL: "⚽",
    EventType.SAVE: "🧤",
    EventType.YELLOW_CARD: "🟨",
    EventType.RED_CARD: "🟥",
    EventType.WOW_MOMENT: "✨",
    EventType.ASSIST: "👟",
    EventType.WIN: "🏆",
}

DEFAULT_TEAM_COLORS = {
    Role.HOME: "red",
    Role.AWAY: "blue",
    Role.WAITING: "green",
}
