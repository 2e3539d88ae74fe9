"""Pydantic models for API I/O."""

from .ledger import (
    FinanceResponse,
    PlayerOfMatchResponse,
    PlayerRequest,
    PlayerResponse,
    TransactionResponse,
)
from .match import MatchDeleteResponse, MatchRequest, MatchResponse, ScorerPayload

__all__ = [
    "FinanceResponse",
    "MatchDeleteResponse",
    "MatchRequest",
    "MatchResponse",
    "PlayerOfMatchResponse",
    "PlayerRequest",
    "PlayerResponse",
    "ScorerPayload",
    "TransactionResponse",
]
