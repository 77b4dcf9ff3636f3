from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from winnerstays.models.enums import Outcome

from .scoring import Scoreline


class WinDecision(BaseModel):
    """Result of checking a scoreline against the goal threshold and the clock."""

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    winning_team_id: Optional[str] = None
    losing_team_id: Optional[str] = None

    @property
    def has_winner(self) -> bool:
        return self.outcome == Outcome.WINNER

    @property
    def needs_tie_break(self) -> bool:
        return self.outcome == Outcome.TIE


NO_WINNER = WinDecision(outcome=Outcome.NO_WINNER)


def _leader(score: Scoreline) -> WinDecision:
    if score.is_level:
        return WinDecision(outcome=Outcome.TIE)
    if score.home > score.away:
        return WinDecision(
            outcome=Outcome.WINNER,
            winning_team_id=score.home_team_id,
            losing_team_id=score.away_team_id,
        )
    return WinDecision(
        outcome=Outcome.WINNER,
        winning_team_id=score.away_team_id,
        losing_team_id=score.home_team_id,
    )


def evaluate_win_condition(
    score: Scoreline, goals_to_win: int, clock_expired: bool = False
) -> WinDecision:
    """Decide whether the home/away contest is over.

    The waiting team never takes part. Reaching the goal threshold ends the
    contest whatever the clock says; otherwise the contest only ends when the
    clock has expired, and a level score then needs a manual tie-break.

    Args:
        score: Derived goals for the two active teams.
        goals_to_win: Goal threshold from settings.
        clock_expired: Whether the match clock has reached its limit.

    Returns:
        A WinDecision. A TIE is reported but never recorded as an event.
    """
    if score.home >= goals_to_win or score.away >= goals_to_win:
        decision = _leader(score)
        logger.debug(
            f"Threshold {goals_to_win} reached at {score.home}-{score.away}: {decision.outcome.value}"
        )
        return decision

    if not clock_expired:
        return NO_WINNER

    decision = _leader(score)
    logger.debug(f"Clock expired at {score.home}-{score.away}: {decision.outcome.value}")
    return decision
