from __future__ import annotations

import datetime as dt
from typing import List, Literal

from pydantic import BaseModel, Field

from matchledger.models import MatchInput, MatchRecord, ScorerEntry


class ScorerPayload(BaseModel):
    player: str
    count: int = Field(default=1, ge=1)


class MatchRequest(BaseModel):
    date: dt.date
    goals_a: int = Field(..., ge=0)
    goals_b: int = Field(..., ge=0)
    scorers_a: List[ScorerPayload] = Field(default_factory=list)
    scorers_b: List[ScorerPayload] = Field(default_factory=list)
    yellow_a: int = Field(default=0, ge=0)
    red_a: int = Field(default=0, ge=0)
    yellow_b: int = Field(default=0, ge=0)
    red_b: int = Field(default=0, ge=0)
    player_of_match: str | None = None
    player_of_match_team: Literal["AEK", "Real"] | None = None

    def to_input(self) -> MatchInput:
        return MatchInput(
            date=self.date,
            goals_a=self.goals_a,
            goals_b=self.goals_b,
            scorers_a=[ScorerEntry(player=s.player, count=s.count) for s in self.scorers_a if s.player],
            scorers_b=[ScorerEntry(player=s.player, count=s.count) for s in self.scorers_b if s.player],
            yellow_a=self.yellow_a,
            red_a=self.red_a,
            yellow_b=self.yellow_b,
            red_b=self.red_b,
            player_of_match=self.player_of_match or None,
            player_of_match_team=self.player_of_match_team,
        )


class MatchResponse(BaseModel):
    id: int
    number: int | None
    date: dt.date
    team_a: str
    team_b: str
    goals_a: int
    goals_b: int
    scorers_a: List[ScorerPayload]
    scorers_b: List[ScorerPayload]
    yellow_a: int
    red_a: int
    yellow_b: int
    red_b: int
    player_of_match: str | None
    player_of_match_team: str | None
    prize_a: int
    prize_b: int

    @classmethod
    def from_record(cls, record: MatchRecord, number: int | None) -> "MatchResponse":
        payload = record.model_dump()
        payload["number"] = number
        return cls.model_validate(payload)


class MatchDeleteResponse(BaseModel):
    match_id: int
    deleted: bool
