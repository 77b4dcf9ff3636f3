# src/winnerstays/models/team.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Player(BaseModel):
    """A player as the engine sees it: an identifier and a display name."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str


class Team(BaseModel):
    """Represents a team with its colour and ordered roster."""

    team_id: str
    name: str
    color: Optional[str] = None  # Display only
    players: List[Player] = []

    def has_player(self, player_id: str) -> bool:
        return any(p.player_id == player_id for p in self.players)

    def player_name(self, player_id: str) -> Optional[str]:
        for player in self.players:
            if player.player_id == player_id:
                return player.name
        return None
