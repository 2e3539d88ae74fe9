"""Settlement rules and the fixed vocabulary of the two-team league."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Tuple


TeamCode = Literal["AEK", "Real"]

TEAM_A: TeamCode = "AEK"
TEAM_B: TeamCode = "Real"
TEAMS: Tuple[TeamCode, TeamCode] = (TEAM_A, TEAM_B)

TX_PRIZE_MONEY = "Prize Money"
TX_SDS_BONUS = "SdS Bonus"
TX_SETTLEMENT = "Real-Money Settlement"
TX_SETTLEMENT_CLEARED = "Real-Money Settlement (cleared)"

TRANSACTION_TYPES: Tuple[str, ...] = (
    TX_PRIZE_MONEY,
    TX_SDS_BONUS,
    TX_SETTLEMENT,
    TX_SETTLEMENT_CLEARED,
)


@dataclass(frozen=True)
class SettlementRules:
    win_base: int
    win_per_goal_conceded: int
    loss_base: int
    loss_per_goal_conceded: int
    per_yellow: int
    per_red: int
    sds_bonus: int
    settlement_base: int
    settlement_step: int


DEFAULT_RULES = SettlementRules(
    win_base=1_000_000,
    win_per_goal_conceded=50_000,
    loss_base=500_000,
    loss_per_goal_conceded=50_000,
    per_yellow=20_000,
    per_red=50_000,
    sds_bonus=100_000,
    settlement_base=5,
    settlement_step=100_000,
)


def opponent(team: str) -> TeamCode:
    """Return the other team, raising KeyError for unknown codes."""

    if team == TEAM_A:
        return TEAM_B
    if team == TEAM_B:
        return TEAM_A
    raise KeyError(f"Unknown team {team!r}; expected one of {TEAMS}")


def normalize_team(value: str) -> TeamCode:
    """Resolve a case-insensitive team code to its canonical spelling."""

    lookup: Dict[str, TeamCode] = {team.upper(): team for team in TEAMS}
    key = value.strip().upper()
    if key not in lookup:
        raise KeyError(f"Unknown team {value!r}; expected one of {TEAMS}")
    return lookup[key]
