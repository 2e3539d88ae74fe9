"""Settlement engine: pure outcome arithmetic and the ledger writer."""

from .ledger import LedgerResult, LedgerWriter, ReversalResult, match_label
from .outcome import (
    DebtSettlement,
    MatchOutcome,
    calculate_outcome,
    determine_result,
    settle_debts,
    settlement_amount,
)

__all__ = [
    "DebtSettlement",
    "LedgerResult",
    "LedgerWriter",
    "MatchOutcome",
    "ReversalResult",
    "calculate_outcome",
    "determine_result",
    "match_label",
    "settle_debts",
    "settlement_amount",
]
