"""Configuration helpers for league rules and runtime settings."""

from .rules import (
    DEFAULT_RULES,
    TEAM_A,
    TEAM_B,
    TEAMS,
    TRANSACTION_TYPES,
    TX_PRIZE_MONEY,
    TX_SDS_BONUS,
    TX_SETTLEMENT,
    TX_SETTLEMENT_CLEARED,
    SettlementRules,
    TeamCode,
    normalize_team,
    opponent,
)
from .settings import Settings, load_settings

__all__ = [
    "DEFAULT_RULES",
    "TEAM_A",
    "TEAM_B",
    "TEAMS",
    "TRANSACTION_TYPES",
    "TX_PRIZE_MONEY",
    "TX_SDS_BONUS",
    "TX_SETTLEMENT",
    "TX_SETTLEMENT_CLEARED",
    "SettlementRules",
    "Settings",
    "TeamCode",
    "load_settings",
    "normalize_team",
    "opponent",
]
