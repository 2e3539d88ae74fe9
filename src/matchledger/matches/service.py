"""Create, edit and delete matches together with all of their derived effects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from matchledger.config.rules import DEFAULT_RULES, TEAM_A, TEAM_B, TEAMS, SettlementRules
from matchledger.models import MatchInput, MatchRecord
from matchledger.persistence import TableStore
from matchledger.settlement import LedgerResult, LedgerWriter, calculate_outcome

from .cache import MatchDataCache
from .cascade import CascadeJournal, KeyedLocks
from .stats import GoalTallyUpdater, PlayerOfMatchCounter


logger = logging.getLogger(__name__)

BanDecrementer = Callable[[], Awaitable[None]]


class MatchValidationError(ValueError):
    """Submitted match data was rejected before anything was written."""


async def skip_ban_decrement() -> None:
    logger.debug("No ban decrementer configured; skipping")


@dataclass
class MatchSubmission:
    """A stored match together with its display ordinal and ledger writes."""

    match: MatchRecord
    number: Optional[int]
    ledger: LedgerResult


def validate_match(match: MatchInput) -> None:
    for team in TEAMS:
        goals = match.goals_for(team)
        if goals <= 0:
            continue
        scored = sum(entry.count for entry in match.scorers_for(team))
        if scored > goals:
            raise MatchValidationError(
                f"Scorer goals for {team} ({scored}) exceed the team's goal count ({goals})"
            )


class MatchService:
    """Runs match cascades against the table store.

    Every cascade holds the lock of both teams for its whole duration, and
    edits and deletes additionally hold the lock of the match they target, so
    no two cascades interleave on the same match or on the same team finances.
    A failed write surfaces as ``CascadeError``; steps that already committed
    stay committed.
    """

    def __init__(
        self,
        store: TableStore,
        cache: MatchDataCache,
        *,
        rules: SettlementRules = DEFAULT_RULES,
        ban_decrementer: BanDecrementer = skip_ban_decrement,
        legacy_transaction_fallback: bool = False,
        locks: Optional[KeyedLocks] = None,
    ):
        self.store = store
        self.cache = cache
        self.rules = rules
        self.ledger = LedgerWriter(store, rules)
        self.goals = GoalTallyUpdater(store)
        self.player_of_match = PlayerOfMatchCounter(store)
        self.ban_decrementer = ban_decrementer
        self.legacy_transaction_fallback = legacy_transaction_fallback
        self.locks = locks or KeyedLocks()

    async def list_matches(self) -> List[MatchRecord]:
        if not self.cache.initialized:
            await self.cache.reload()
        return list(self.cache.matches)

    async def get(self, match_id: int) -> Optional[MatchRecord]:
        rows = await self.store.select("matches", filters={"id": match_id})
        if not rows:
            return None
        return MatchRecord.from_row(rows[0])

    async def match_number(self, match_id: int) -> Optional[int]:
        if self.cache.get_match(match_id) is None:
            await self.cache.reload()
        return self.cache.match_number(match_id)

    async def create(self, match: MatchInput) -> MatchSubmission:
        prepared = await self._prepare(match)
        async with self.locks.hold(*self._team_keys()):
            journal = CascadeJournal("create")
            return await self._create_locked(prepared, journal)

    async def edit(self, match_id: int, match: MatchInput) -> MatchSubmission:
        prepared = await self._prepare(match)
        async with self.locks.hold(f"match:{match_id}", *self._team_keys()):
            journal = CascadeJournal("edit", match_id)
            existing = await journal.run("load existing match", self.get(match_id))
            if existing is None:
                logger.warning("Match %s vanished before edit; storing the submission as new", match_id)
            else:
                await self._reverse_locked(existing, journal)
            return await self._create_locked(prepared, journal)

    async def delete(self, match_id: int) -> bool:
        async with self.locks.hold(f"match:{match_id}", *self._team_keys()):
            journal = CascadeJournal("delete", match_id)
            existing = await journal.run("load existing match", self.get(match_id))
            if existing is None:
                logger.info("Match %s not found; nothing to delete", match_id)
                return False
            await self._reverse_locked(existing, journal)
        logger.info("Deleted match %s", match_id)
        return True

    def _team_keys(self) -> List[str]:
        return [f"team:{team}" for team in TEAMS]

    async def _prepare(self, match: MatchInput) -> MatchInput:
        validate_match(match)
        if not match.player_of_match:
            return match.model_copy(update={"player_of_match": None, "player_of_match_team": None})
        if match.player_of_match_team is not None:
            return match
        team = await self._roster_team(match.player_of_match)
        if team is None:
            raise MatchValidationError(
                f"Player of the match {match.player_of_match!r} is not on the {TEAM_A} or {TEAM_B} roster"
            )
        return match.model_copy(update={"player_of_match_team": team})

    async def _create_locked(self, match: MatchInput, journal: CascadeJournal) -> MatchSubmission:
        outcome = calculate_outcome(match, self.rules)
        row = match.model_dump(mode="json")
        row.update(
            team_a=TEAM_A,
            team_b=TEAM_B,
            prize_a=outcome.prize_for(TEAM_A),
            prize_b=outcome.prize_for(TEAM_B),
        )
        inserted = await journal.run("insert match", self.store.insert("matches", [row]))
        record = MatchRecord.from_row(inserted[0])
        journal.match_id = record.id

        await journal.run("reload cache", self.cache.reload())
        number = self.cache.match_number(record.id)

        ledger = await journal.run(
            "apply ledger",
            self.ledger.apply(outcome, match_id=record.id, match_number=number, on_date=record.date),
        )
        for team in TEAMS:
            if record.goals_for(team) > 0:
                await journal.run(f"add goals {team}", self.goals.apply(record.scorers_for(team), team))
        if record.player_of_match and record.player_of_match_team:
            await journal.run(
                "count player of the match",
                self.player_of_match.increment(record.player_of_match, record.player_of_match_team),
            )
        await journal.run("decrement bans", self.ban_decrementer())

        logger.info(
            "Stored match #%s (%s %d:%d %s) with prizes %d / %d",
            number,
            TEAM_A,
            record.goals_a,
            record.goals_b,
            TEAM_B,
            record.prize_a,
            record.prize_b,
        )
        return MatchSubmission(match=record, number=number, ledger=ledger)

    async def _reverse_locked(self, match: MatchRecord, journal: CascadeJournal) -> None:
        await journal.run(
            "reverse ledger",
            self.ledger.reverse(match, legacy_fallback=self.legacy_transaction_fallback),
        )
        for team in TEAMS:
            await journal.run(f"remove goals {team}", self.goals.revert(match.scorers_for(team), team))

        if match.player_of_match:
            team = await self._player_of_match_team(match)
            if team is None:
                logger.warning(
                    "Cannot resolve the team of player of the match %s for match %s",
                    match.player_of_match,
                    match.id,
                )
            else:
                await journal.run(
                    "uncount player of the match",
                    self.player_of_match.decrement(match.player_of_match, team),
                )

        await journal.run("delete match", self.store.delete("matches", {"id": match.id}))

    async def _player_of_match_team(self, match: MatchRecord) -> Optional[str]:
        if match.player_of_match_team:
            return match.player_of_match_team
        name = match.player_of_match
        for team in TEAMS:
            if any(entry.player == name for entry in match.scorers_for(team)):
                return team
        return await self._roster_team(name)

    async def _roster_team(self, name: str) -> Optional[str]:
        rows = await self.store.select("players", ["team"], {"name": name})
        teams = {row["team"] for row in rows}
        for team in TEAMS:
            if team in teams:
                return team
        return None


__all__ = [
    "BanDecrementer",
    "MatchService",
    "MatchSubmission",
    "MatchValidationError",
    "skip_ban_decrement",
    "validate_match",
]
