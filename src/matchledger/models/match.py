"""Match payloads shared by the service, API and CLI layers."""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from matchledger.config.rules import TEAM_A, TEAM_B, TeamCode


class ScorerEntry(BaseModel):
    player: str
    count: int = Field(default=1, ge=1)

    model_config = ConfigDict(frozen=True)


class MatchInput(BaseModel):
    """Submitted match outcome before any settlement is computed."""

    date: dt.date
    goals_a: int = Field(..., ge=0)
    goals_b: int = Field(..., ge=0)
    scorers_a: List[ScorerEntry] = Field(default_factory=list)
    scorers_b: List[ScorerEntry] = Field(default_factory=list)
    yellow_a: int = Field(default=0, ge=0)
    red_a: int = Field(default=0, ge=0)
    yellow_b: int = Field(default=0, ge=0)
    red_b: int = Field(default=0, ge=0)
    player_of_match: Optional[str] = None
    player_of_match_team: Optional[TeamCode] = None

    model_config = ConfigDict(frozen=True)

    def goals_for(self, team: str) -> int:
        return self.goals_a if team == TEAM_A else self.goals_b

    def scorers_for(self, team: str) -> List[ScorerEntry]:
        return self.scorers_a if team == TEAM_A else self.scorers_b

    def cards_for(self, team: str) -> tuple[int, int]:
        if team == TEAM_A:
            return self.yellow_a, self.red_a
        return self.yellow_b, self.red_b


class MatchRecord(MatchInput):
    """Persisted match row including the prize money it produced."""

    id: int
    team_a: TeamCode = TEAM_A
    team_b: TeamCode = TEAM_B
    prize_a: int = 0
    prize_b: int = 0

    def prize_for(self, team: str) -> int:
        return self.prize_a if team == TEAM_A else self.prize_b

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MatchRecord":
        data = dict(row)
        data["scorers_a"] = data.get("scorers_a") or []
        data["scorers_b"] = data.get("scorers_b") or []
        data["player_of_match"] = data.get("player_of_match") or None
        data["player_of_match_team"] = data.get("player_of_match_team") or None
        for key in ("yellow_a", "red_a", "yellow_b", "red_b", "prize_a", "prize_b"):
            if data.get(key) is None:
                data[key] = 0
        return cls.model_validate(data)
