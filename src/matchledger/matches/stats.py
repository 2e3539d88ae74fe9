"""Player goal tallies and player-of-the-match counters."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from matchledger.models import PlayerOfMatchCount, ScorerEntry
from matchledger.persistence import TableStore


logger = logging.getLogger(__name__)


class GoalTallyUpdater:
    """Adds or removes scorer goals on the players table."""

    def __init__(self, store: TableStore):
        self.store = store

    async def apply(self, scorers: Iterable[ScorerEntry], team: str) -> None:
        for scorer in scorers:
            await self._adjust(scorer, team, scorer.count)

    async def revert(self, scorers: Iterable[ScorerEntry], team: str) -> None:
        for scorer in scorers:
            await self._adjust(scorer, team, -scorer.count)

    async def _adjust(self, scorer: ScorerEntry, team: str, delta: int) -> None:
        if not scorer.player:
            return
        rows = await self.store.select("players", ["goals"], {"name": scorer.player, "team": team})
        if not rows:
            logger.warning("Scorer %s is not on the %s roster; goal tally skipped", scorer.player, team)
            return
        goals = max(0, int(rows[0].get("goals") or 0) + delta)
        await self.store.update("players", {"goals": goals}, {"name": scorer.player, "team": team})


class PlayerOfMatchCounter:
    """Maintains the per (name, team) player-of-the-match occurrence counter."""

    def __init__(self, store: TableStore):
        self.store = store

    async def get(self, name: str, team: str) -> Optional[PlayerOfMatchCount]:
        rows = await self.store.select("spieler_des_spiels", filters={"name": name, "team": team})
        if not rows:
            return None
        return PlayerOfMatchCount.model_validate(rows[0])

    async def increment(self, name: str, team: str) -> PlayerOfMatchCount:
        existing = await self.get(name, team)
        if existing is None:
            rows = await self.store.insert("spieler_des_spiels", [{"name": name, "team": team, "count": 1}])
            return PlayerOfMatchCount.model_validate(rows[0])
        count = existing.count + 1
        await self.store.update("spieler_des_spiels", {"count": count}, {"id": existing.id})
        return existing.model_copy(update={"count": count})

    async def decrement(self, name: str, team: str) -> Optional[PlayerOfMatchCount]:
        existing = await self.get(name, team)
        if existing is None:
            logger.warning("No player-of-the-match counter for %s (%s) to decrement", name, team)
            return None
        count = max(0, existing.count - 1)
        await self.store.update("spieler_des_spiels", {"count": count}, {"id": existing.id})
        return existing.model_copy(update={"count": count})


__all__ = ["GoalTallyUpdater", "PlayerOfMatchCounter"]
