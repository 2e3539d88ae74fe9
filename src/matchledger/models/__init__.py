"""Canonical league models shared across the store, service and API layers."""

from .ledger import Ban, Player, PlayerOfMatchCount, TeamFinance, Transaction
from .match import MatchInput, MatchRecord, ScorerEntry

__all__ = [
    "Ban",
    "MatchInput",
    "MatchRecord",
    "Player",
    "PlayerOfMatchCount",
    "ScorerEntry",
    "TeamFinance",
    "Transaction",
]
