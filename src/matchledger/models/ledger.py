"""Finance, roster and ledger rows mirrored from the table store."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Player(BaseModel):
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    team: str
    goals: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class TeamFinance(BaseModel):
    team: str
    balance: int = Field(default=0, ge=0)
    debt: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class Transaction(BaseModel):
    id: Optional[int] = None
    date: dt.date
    type: str
    team: str
    amount: int
    match_id: Optional[int] = None
    info: str = ""

    model_config = ConfigDict(frozen=True)


class PlayerOfMatchCount(BaseModel):
    id: Optional[int] = None
    name: str
    team: str
    count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class Ban(BaseModel):
    id: Optional[int] = None
    player: str
    team: str
    type: str = ""
    matches_left: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)
