"""Pure prize money, bonus and debt settlement arithmetic for a match result."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from matchledger.config.rules import DEFAULT_RULES, TEAM_A, TEAM_B, TEAMS, SettlementRules, opponent
from matchledger.models import MatchInput


@dataclass(frozen=True)
class MatchOutcome:
    """Money consequences of one match, keyed by team code."""

    winner: Optional[str]
    loser: Optional[str]
    prizes: Dict[str, int]
    bonuses: Dict[str, int]

    @property
    def decided(self) -> bool:
        return self.winner is not None

    def prize_for(self, team: str) -> int:
        return self.prizes.get(team, 0)

    def bonus_for(self, team: str) -> int:
        return self.bonuses.get(team, 0)


@dataclass(frozen=True)
class DebtSettlement:
    """Result of offsetting the loser's settlement amount against the winner's debt."""

    winner: str
    loser: str
    winner_amount: int
    loser_amount: int
    cleared: int
    added: int
    winner_debt: int
    loser_debt: int


def determine_result(goals_a: int, goals_b: int) -> Tuple[Optional[str], Optional[str]]:
    if goals_a > goals_b:
        return TEAM_A, TEAM_B
    if goals_b > goals_a:
        return TEAM_B, TEAM_A
    return None, None


def winner_prize(goals_conceded: int, yellow: int, red: int, rules: SettlementRules = DEFAULT_RULES) -> int:
    return (
        rules.win_base
        - rules.win_per_goal_conceded * goals_conceded
        - rules.per_yellow * yellow
        - rules.per_red * red
    )


def loser_prize(goals_conceded: int, yellow: int, red: int, rules: SettlementRules = DEFAULT_RULES) -> int:
    return -(
        rules.loss_base
        + rules.loss_per_goal_conceded * goals_conceded
        + rules.per_yellow * yellow
        + rules.per_red * red
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def settlement_amount(
    balance: int,
    prize: int,
    received_bonus: bool,
    rules: SettlementRules = DEFAULT_RULES,
) -> int:
    """Real-money amount owed for a result, given the balance left to absorb it.

    The bonus is added on top of ``balance`` when the team received it, and
    every full ``settlement_step`` of prize money the balance cannot cover
    adds one unit to the ``settlement_base``.
    """

    effective_balance = balance + (rules.sds_bonus if received_bonus else 0)
    shortfall = max(0.0, (abs(prize) - effective_balance) / rules.settlement_step)
    return rules.settlement_base + _round_half_up(shortfall)


def settle_debts(
    winner: str,
    winner_debt: int,
    loser_debt: int,
    *,
    winner_amount: int,
    loser_amount: int,
) -> DebtSettlement:
    loser = opponent(winner)
    cleared = min(winner_debt, loser_amount)
    remainder = loser_amount - cleared
    added = max(0, remainder)
    return DebtSettlement(
        winner=winner,
        loser=loser,
        winner_amount=winner_amount,
        loser_amount=loser_amount,
        cleared=max(0, cleared),
        added=added,
        winner_debt=max(0, winner_debt - cleared),
        loser_debt=loser_debt + added,
    )


def calculate_outcome(match: MatchInput, rules: SettlementRules = DEFAULT_RULES) -> MatchOutcome:
    """Compute prize money and the player-of-the-match bonus for ``match``.

    ``match.player_of_match_team`` must already be resolved; a player of the
    match without a team earns nobody the bonus.
    """

    winner, loser = determine_result(match.goals_a, match.goals_b)
    prizes = {team: 0 for team in TEAMS}
    if winner is not None and loser is not None:
        winner_yellow, winner_red = match.cards_for(winner)
        loser_yellow, loser_red = match.cards_for(loser)
        prizes[winner] = winner_prize(match.goals_for(loser), winner_yellow, winner_red, rules)
        prizes[loser] = loser_prize(match.goals_for(winner), loser_yellow, loser_red, rules)

    bonuses = {team: 0 for team in TEAMS}
    if match.player_of_match and match.player_of_match_team in bonuses:
        bonuses[match.player_of_match_team] = rules.sds_bonus

    return MatchOutcome(winner=winner, loser=loser, prizes=prizes, bonuses=bonuses)


__all__ = [
    "DebtSettlement",
    "MatchOutcome",
    "calculate_outcome",
    "determine_result",
    "loser_prize",
    "settle_debts",
    "settlement_amount",
    "winner_prize",
]
