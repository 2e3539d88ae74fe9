"""Shared builders for league test fixtures."""

from __future__ import annotations

import datetime as dt

from matchledger.models import MatchInput, ScorerEntry
from matchledger.persistence import SqliteTableStore


ROSTERS = {
    "AEK": ["Alice", "Bob", "Chris"],
    "Real": ["Carlos", "Diego", "Emilio"],
}


class BanRecorder:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


async def seed_rosters(store: SqliteTableStore) -> None:
    await store.insert(
        "players",
        [{"name": name, "team": team, "goals": 0} for team, names in ROSTERS.items() for name in names],
    )


async def set_finance(store: SqliteTableStore, team: str, *, balance: int = 0, debt: int = 0) -> None:
    await store.update("finances", {"balance": balance, "debt": debt}, {"team": team})


async def finances(store: SqliteTableStore) -> dict[str, tuple[int, int]]:
    rows = await store.select("finances")
    return {row["team"]: (row["balance"], row["debt"]) for row in rows}


async def goal_tallies(store: SqliteTableStore) -> dict[tuple[str, str], int]:
    rows = await store.select("players")
    return {(row["name"], row["team"]): row["goals"] for row in rows}


async def player_of_match_counts(store: SqliteTableStore) -> dict[tuple[str, str], int]:
    rows = await store.select("spieler_des_spiels")
    return {(row["name"], row["team"]): row["count"] for row in rows}


def make_match(
    goals_a: int,
    goals_b: int,
    *,
    scorers_a: dict[str, int] | None = None,
    scorers_b: dict[str, int] | None = None,
    day: dt.date = dt.date(2024, 5, 4),
    **extra,
) -> MatchInput:
    return MatchInput(
        date=day,
        goals_a=goals_a,
        goals_b=goals_b,
        scorers_a=[ScorerEntry(player=name, count=count) for name, count in (scorers_a or {}).items()],
        scorers_b=[ScorerEntry(player=name, count=count) for name, count in (scorers_b or {}).items()],
        **extra,
    )
