"""In-memory mirror of the league tables with single-flight, debounced reloads."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from matchledger.config.rules import TEAMS
from matchledger.models import Ban, MatchRecord, Player, PlayerOfMatchCount, TeamFinance, Transaction
from matchledger.persistence import StoreError, Subscription, TableStore


logger = logging.getLogger(__name__)

WATCHED_TABLES: tuple[str, ...] = (
    "matches",
    "spieler_des_spiels",
    "finances",
    "players",
    "transactions",
)

RenderCallback = Callable[[], Any]


class MatchDataCache:
    """Latest snapshot of matches, rosters, bans, finances, counters and transactions.

    ``reload`` is single-flight: while a load is running every caller awaits
    that same load. Change notifications go through ``request_reload`` which
    collapses bursts inside ``debounce`` seconds into one reload followed by
    the render callback.
    """

    def __init__(self, store: TableStore, *, debounce: float = 0.1):
        self.store = store
        self.debounce = debounce
        self._pending: Optional[asyncio.Future] = None
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._background: Set[asyncio.Task] = set()
        self._subscriptions: List[Subscription] = []
        self._render: Optional[RenderCallback] = None
        self.reload_count = 0
        self._clear_state()

    def _clear_state(self) -> None:
        self.matches: List[MatchRecord] = []
        self.rosters: Dict[str, List[Player]] = {team: [] for team in TEAMS}
        self.bans: List[Ban] = []
        self.finances: Dict[str, TeamFinance] = {team: TeamFinance(team=team) for team in TEAMS}
        self.player_of_match_counts: List[PlayerOfMatchCount] = []
        self.transactions: List[Transaction] = []
        self.initialized = False
        self.last_load_time = 0.0

    async def reload(self) -> "MatchDataCache":
        if self._pending is None:
            task = asyncio.ensure_future(self._load())
            self._pending = task
            task.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Future) -> None:
        if self._pending is task:
            self._pending = None

    async def _load(self) -> "MatchDataCache":
        match_rows = await self.store.select("matches", order_by=[("date", True), ("id", True)])
        player_rows = await self.store.select("players", order_by=[("name", False)])
        ban_rows = await self.store.select("bans")
        finance_rows = await self.store.select("finances")
        count_rows = await self.store.select("spieler_des_spiels", order_by=[("count", True), ("name", False)])
        tx_rows = await self.store.select("transactions", order_by=[("date", True), ("id", True)])

        self.matches = [MatchRecord.from_row(row) for row in match_rows]
        rosters: Dict[str, List[Player]] = {team: [] for team in TEAMS}
        for row in player_rows:
            player = Player.model_validate(row)
            rosters.setdefault(player.team, []).append(player)
        self.rosters = rosters
        self.bans = [Ban.model_validate(row) for row in ban_rows]
        finances = {team: TeamFinance(team=team) for team in TEAMS}
        for row in finance_rows:
            finances[row["team"]] = TeamFinance(
                team=row["team"],
                balance=max(0, int(row.get("balance") or 0)),
                debt=max(0, int(row.get("debt") or 0)),
            )
        self.finances = finances
        self.player_of_match_counts = [PlayerOfMatchCount.model_validate(row) for row in count_rows]
        self.transactions = [Transaction.model_validate(row) for row in tx_rows]
        self.initialized = True
        self.last_load_time = time.time()
        self.reload_count += 1
        logger.debug("Loaded %d matches and %d transactions", len(self.matches), len(self.transactions))
        return self

    def request_reload(self, render: Optional[RenderCallback] = None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping debounced reload")
            return
        if render is not None:
            self._render = render
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = loop.call_later(self.debounce, self._fire_debounced)

    def _fire_debounced(self) -> None:
        self._debounce_handle = None
        task = asyncio.ensure_future(self._reload_and_render())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reload_and_render(self) -> None:
        try:
            await self.reload()
        except StoreError as exc:
            logger.warning("Background reload failed: %s", exc)
            return
        render = self._render
        if render is None:
            return
        try:
            result = render()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Render callback failed after reload")

    async def flush(self) -> None:
        """Run any debounced reload now and wait for background reloads to settle."""

        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._fire_debounced()
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def subscribe(self, render: Optional[RenderCallback] = None) -> None:
        if render is not None:
            self._render = render
        if self._subscriptions:
            return
        for table in WATCHED_TABLES:
            self._subscriptions.append(self.store.subscribe(table, self._on_change))

    def _on_change(self, table: str) -> None:
        logger.debug("Change on %s; scheduling reload", table)
        self.request_reload()

    @property
    def subscribed(self) -> bool:
        return bool(self._subscriptions)

    def unsubscribe(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def reset(self) -> None:
        self._clear_state()
        self._render = None
        self.unsubscribe()

    def match_number(self, match_id: Optional[int]) -> Optional[int]:
        """Display ordinal of ``match_id``: 1 for the oldest match, ``len(matches)`` for the newest."""

        if match_id is None or not self.matches:
            return None
        for index, match in enumerate(self.matches):
            if match.id == match_id:
                return len(self.matches) - index
        return None

    def get_match(self, match_id: int) -> Optional[MatchRecord]:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def roster(self, team: str) -> List[Player]:
        return list(self.rosters.get(team, []))

    def team_of(self, player_name: str) -> Optional[str]:
        for team in TEAMS:
            if any(player.name == player_name for player in self.rosters.get(team, [])):
                return team
        return None

    def finance(self, team: str) -> TeamFinance:
        return self.finances.get(team, TeamFinance(team=team))

    def player_of_match_count(self, name: str, team: str) -> int:
        for entry in self.player_of_match_counts:
            if entry.name == name and entry.team == team:
                return entry.count
        return 0


__all__ = ["MatchDataCache", "RenderCallback", "WATCHED_TABLES"]
