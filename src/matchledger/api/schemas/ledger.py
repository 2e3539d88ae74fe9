from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class FinanceResponse(BaseModel):
    team: str
    balance: int
    debt: int


class TransactionResponse(BaseModel):
    id: int
    date: dt.date
    type: str
    team: str
    amount: int
    match_id: int | None
    info: str


class PlayerRequest(BaseModel):
    name: str = Field(..., min_length=1)
    team: str


class PlayerResponse(BaseModel):
    id: int
    name: str
    team: str
    goals: int


class PlayerOfMatchResponse(BaseModel):
    name: str
    team: str
    count: int
