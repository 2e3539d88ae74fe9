"""Apply and reverse match settlements against team finances and the ledger."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from matchledger.config.rules import (
    DEFAULT_RULES,
    TEAMS,
    TRANSACTION_TYPES,
    TX_PRIZE_MONEY,
    TX_SDS_BONUS,
    TX_SETTLEMENT,
    TX_SETTLEMENT_CLEARED,
    SettlementRules,
)
from matchledger.models import MatchRecord, TeamFinance, Transaction
from matchledger.persistence import TableStore

from .outcome import DebtSettlement, MatchOutcome, settle_debts, settlement_amount


logger = logging.getLogger(__name__)


def match_label(match_number: Optional[int]) -> str:
    return f"Match #{match_number}" if match_number is not None else "Match #?"


@dataclass
class LedgerResult:
    """Balances, debts and transactions written while applying one settlement."""

    balances: Dict[str, int] = field(default_factory=dict)
    debts: Dict[str, int] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)
    settlement: Optional[DebtSettlement] = None


@dataclass
class ReversalResult:
    removed_transactions: List[Transaction] = field(default_factory=list)
    balances: Dict[str, int] = field(default_factory=dict)
    debts: Dict[str, int] = field(default_factory=dict)


class LedgerWriter:
    """Sole writer of team balances, debts and match-linked transactions.

    Balances are floored at zero after every step and debts never drop below
    zero. Callers are expected to hold the per-team locks for the duration of
    ``apply`` or ``reverse``; the writer itself reads and writes sequentially.
    """

    def __init__(self, store: TableStore, rules: SettlementRules = DEFAULT_RULES):
        self.store = store
        self.rules = rules

    async def finance(self, team: str) -> TeamFinance:
        rows = await self.store.select("finances", filters={"team": team})
        if not rows:
            logger.warning("No finance row for %s; treating balance and debt as zero", team)
            return TeamFinance(team=team)
        row = rows[0]
        return TeamFinance(
            team=team,
            balance=max(0, int(row.get("balance") or 0)),
            debt=max(0, int(row.get("debt") or 0)),
        )

    async def apply(
        self,
        outcome: MatchOutcome,
        *,
        match_id: int,
        match_number: Optional[int],
        on_date: dt.date,
    ) -> LedgerResult:
        result = LedgerResult()
        info = match_label(match_number)

        for team in TEAMS:
            balance = (await self.finance(team)).balance

            bonus = outcome.bonus_for(team)
            if bonus:
                balance = max(0, balance + bonus)
                result.transactions.append(
                    await self._record(on_date, TX_SDS_BONUS, team, bonus, match_id, info)
                )
                await self._set_balance(team, balance)

            prize = outcome.prize_for(team)
            if prize:
                balance = max(0, balance + prize)
                result.transactions.append(
                    await self._record(on_date, TX_PRIZE_MONEY, team, prize, match_id, info)
                )
                await self._set_balance(team, balance)

            result.balances[team] = balance

        winner, loser = outcome.winner, outcome.loser
        if winner is None or loser is None:
            return result

        amounts = {
            team: settlement_amount(
                result.balances[team],
                outcome.prize_for(team),
                outcome.bonus_for(team) > 0,
                self.rules,
            )
            for team in TEAMS
        }
        winner_finance = await self.finance(winner)
        loser_finance = await self.finance(loser)
        settlement = settle_debts(
            winner,
            winner_finance.debt,
            loser_finance.debt,
            winner_amount=amounts[winner],
            loser_amount=amounts[loser],
        )
        result.settlement = settlement

        await self._set_debt(winner, settlement.winner_debt)
        result.debts[winner] = settlement.winner_debt
        result.debts[loser] = loser_finance.debt

        if settlement.added > 0:
            result.transactions.append(
                await self._record(on_date, TX_SETTLEMENT, loser, settlement.added, match_id, info)
            )
            await self._set_debt(loser, settlement.loser_debt)
            result.debts[loser] = settlement.loser_debt

        if settlement.cleared > 0:
            result.transactions.append(
                await self._record(on_date, TX_SETTLEMENT_CLEARED, winner, -settlement.cleared, match_id, info)
            )

        logger.info(
            "Settled %s: winner=%s cleared=%d, loser=%s added=%d",
            info,
            winner,
            settlement.cleared,
            loser,
            settlement.added,
        )
        return result

    async def linked_transactions(self, match_id: int) -> List[Transaction]:
        rows = await self.store.select(
            "transactions",
            filters={"match_id": match_id},
            order_by=[("id", False)],
        )
        return [Transaction.model_validate(row) for row in rows]

    async def reverse(self, match: MatchRecord, *, legacy_fallback: bool = False) -> ReversalResult:
        """Undo every ledger effect recorded for ``match``.

        Linked transactions are read before they are deleted so bonus and
        settlement amounts can be rolled back from them. With
        ``legacy_fallback`` set, unlinked rows of the match types dated on the
        match day are deleted as well.
        """

        result = ReversalResult()
        linked = await self.linked_transactions(match.id)
        result.removed_transactions.extend(linked)

        await self.store.delete("transactions", {"match_id": match.id})
        if legacy_fallback:
            removed = await self.store.delete(
                "transactions",
                {"match_id": None, "type": TRANSACTION_TYPES, "date": match.date.isoformat()},
            )
            if removed:
                logger.warning(
                    "Deleted %d unlinked transactions dated %s while reversing match %s",
                    removed,
                    match.date,
                    match.id,
                )

        for team in TEAMS:
            prize = match.prize_for(team)
            if prize:
                balance = (await self.finance(team)).balance
                balance = max(0, balance - prize)
                await self._set_balance(team, balance)
                result.balances[team] = balance

        for tx in linked:
            if tx.type != TX_SDS_BONUS:
                continue
            balance = (await self.finance(tx.team)).balance
            balance = max(0, balance - tx.amount)
            await self._set_balance(tx.team, balance)
            result.balances[tx.team] = balance

        for tx in linked:
            if tx.type == TX_SETTLEMENT:
                debt = max(0, (await self.finance(tx.team)).debt - tx.amount)
            elif tx.type == TX_SETTLEMENT_CLEARED:
                debt = (await self.finance(tx.team)).debt + abs(tx.amount)
            else:
                continue
            await self._set_debt(tx.team, debt)
            result.debts[tx.team] = debt

        logger.info(
            "Reversed ledger for match %s (%d transactions removed)",
            match.id,
            len(linked),
        )
        return result

    async def _record(
        self,
        on_date: dt.date,
        tx_type: str,
        team: str,
        amount: int,
        match_id: int,
        info: str,
    ) -> Transaction:
        rows = await self.store.insert(
            "transactions",
            [
                {
                    "date": on_date.isoformat(),
                    "type": tx_type,
                    "team": team,
                    "amount": amount,
                    "match_id": match_id,
                    "info": info,
                }
            ],
        )
        return Transaction.model_validate(rows[0])

    async def _set_balance(self, team: str, balance: int) -> None:
        await self.store.update("finances", {"balance": max(0, balance)}, {"team": team})

    async def _set_debt(self, team: str, debt: int) -> None:
        await self.store.update("finances", {"debt": max(0, debt)}, {"team": team})


__all__ = ["LedgerResult", "LedgerWriter", "ReversalResult", "match_label"]
