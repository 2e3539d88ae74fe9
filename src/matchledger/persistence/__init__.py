"""Table store backing matches, rosters, finances and the transaction ledger."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from matchledger.config.rules import TEAMS


logger = logging.getLogger(__name__)

TABLES: tuple[str, ...] = (
    "matches",
    "players",
    "finances",
    "spieler_des_spiels",
    "transactions",
    "bans",
)

_JSON_COLUMNS: Dict[str, set[str]] = {
    "matches": {"scorers_a", "scorers_b"},
}

Filters = Mapping[str, Any]
ChangeCallback = Callable[[str], None]


class StoreError(RuntimeError):
    """Raised when a read or write against the table store fails."""

    def __init__(self, operation: str, table: str, message: str):
        super().__init__(f"{operation} on {table} failed: {message}")
        self.operation = operation
        self.table = table
        self.message = message


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe`` to stop receiving changes."""

    table: str
    callback: ChangeCallback
    _listeners: Dict[str, List["Subscription"]] = field(repr=False, default_factory=dict)
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        listeners = self._listeners.get(self.table, [])
        if self in listeners:
            listeners.remove(self)
        self.active = False


class TableStore(Protocol):
    async def select(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[tuple[str, bool]]] = None,
    ) -> List[dict]:
        ...

    async def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[dict]:
        ...

    async def update(self, table: str, values: Mapping[str, Any], filters: Filters) -> int:
        ...

    async def delete(self, table: str, filters: Filters) -> int:
        ...

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        ...


def _where_clause(filters: Optional[Filters]) -> tuple[str, list[Any]]:
    if not filters:
        return "", []
    conditions: list[str] = []
    params: list[Any] = []
    for column, value in filters.items():
        _check_identifier(column)
        if value is None:
            conditions.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                conditions.append("0")
                continue
            placeholders = ", ".join("?" for _ in values)
            conditions.append(f"{column} IN ({placeholders})")
            params.extend(values)
        else:
            conditions.append(f"{column} = ?")
            params.append(value)
    return " WHERE " + " AND ".join(conditions), params


def _check_identifier(name: str) -> None:
    if not name.replace("_", "").isalnum():
        raise ValueError(f"Invalid column name {name!r}")


class SqliteTableStore:
    """SQLite-backed implementation of the table store contract.

    Each call opens its own connection, bounded by ``timeout`` seconds of
    lock waiting. Subscribers registered per table are notified after every
    successful insert, update or delete on that table.
    """

    def __init__(self, db_path: Path | str, *, timeout: float = 5.0):
        self._use_uri = isinstance(db_path, str) and db_path.startswith("file:")
        self.db_path: Path | str = db_path if self._use_uri else Path(db_path)
        self.timeout = timeout
        self._listeners: Dict[str, List[Subscription]] = {}
        # Shared-cache in-memory databases vanish once the last connection closes.
        self._keepalive: Optional[sqlite3.Connection] = None
        if self._use_uri:
            self._keepalive = self._connect()
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        else:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        return conn

    def close(self) -> None:
        if self._keepalive is not None:
            self._keepalive.close()
            self._keepalive = None

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            self._create_schema(conn)
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS matches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                team_a TEXT NOT NULL,
                team_b TEXT NOT NULL,
                goals_a INTEGER NOT NULL,
                goals_b INTEGER NOT NULL,
                scorers_a TEXT NOT NULL DEFAULT '[]',
                scorers_b TEXT NOT NULL DEFAULT '[]',
                yellow_a INTEGER NOT NULL DEFAULT 0,
                red_a INTEGER NOT NULL DEFAULT 0,
                yellow_b INTEGER NOT NULL DEFAULT 0,
                red_b INTEGER NOT NULL DEFAULT 0,
                player_of_match TEXT,
                player_of_match_team TEXT,
                prize_a INTEGER NOT NULL DEFAULT 0,
                prize_b INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS players (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                team TEXT NOT NULL,
                goals INTEGER NOT NULL DEFAULT 0,
                UNIQUE (name, team)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS finances (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                team TEXT NOT NULL UNIQUE,
                balance INTEGER NOT NULL DEFAULT 0,
                debt INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS spieler_des_spiels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                team TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                type TEXT NOT NULL,
                team TEXT NOT NULL,
                amount INTEGER NOT NULL,
                match_id INTEGER,
                info TEXT NOT NULL DEFAULT ''
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS bans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                player TEXT NOT NULL,
                team TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT '',
                matches_left INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        match_columns = {row["name"] for row in conn.execute("PRAGMA table_info(matches)")}
        if "player_of_match_team" not in match_columns:
            conn.execute("ALTER TABLE matches ADD COLUMN player_of_match_team TEXT")
        for team in TEAMS:
            conn.execute(
                "INSERT OR IGNORE INTO finances (team, balance, debt) VALUES (?, 0, 0)",
                (team,),
            )
        conn.commit()

    async def select(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[tuple[str, bool]]] = None,
    ) -> List[dict]:
        """Return rows of ``table``; ``order_by`` holds ``(column, descending)`` pairs."""

        self._check_table(table)
        if isinstance(columns, str):
            column_sql = columns
        else:
            for column in columns:
                _check_identifier(column)
            column_sql = ", ".join(columns)
        where, params = _where_clause(filters)
        query = f"SELECT {column_sql} FROM {table}{where}"
        if order_by:
            parts = []
            for column, descending in order_by:
                _check_identifier(column)
                parts.append(f"{column} {'DESC' if descending else 'ASC'}")
            query += " ORDER BY " + ", ".join(parts)
        rows = self._execute("select", table, query, params, fetch=True)
        return [self._decode_row(table, row) for row in rows]

    async def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[dict]:
        self._check_table(table)
        inserted_ids: list[int] = []
        conn = self._connect()
        try:
            with conn:
                for row in rows:
                    payload = self._encode_row(table, row)
                    columns = list(payload)
                    for column in columns:
                        _check_identifier(column)
                    placeholders = ", ".join("?" for _ in columns)
                    cursor = conn.execute(
                        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                        [payload[column] for column in columns],
                    )
                    inserted_ids.append(int(cursor.lastrowid))
        except sqlite3.Error as exc:
            raise StoreError("insert", table, str(exc)) from exc
        finally:
            conn.close()
        if not inserted_ids:
            return []
        inserted = await self.select(table, filters={"id": inserted_ids}, order_by=[("id", False)])
        self._notify(table)
        return inserted

    async def update(self, table: str, values: Mapping[str, Any], filters: Filters) -> int:
        self._check_table(table)
        payload = self._encode_row(table, values)
        if not payload:
            return 0
        for column in payload:
            _check_identifier(column)
        assignments = ", ".join(f"{column} = ?" for column in payload)
        where, params = _where_clause(filters)
        changed = self._execute(
            "update",
            table,
            f"UPDATE {table} SET {assignments}{where}",
            list(payload.values()) + params,
        )
        self._notify(table)
        return changed

    async def delete(self, table: str, filters: Filters) -> int:
        self._check_table(table)
        if not filters:
            raise ValueError("delete requires at least one filter")
        where, params = _where_clause(filters)
        removed = self._execute("delete", table, f"DELETE FROM {table}{where}", params)
        self._notify(table)
        return removed

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        self._check_table(table)
        subscription = Subscription(table=table, callback=callback, _listeners=self._listeners)
        self._listeners.setdefault(table, []).append(subscription)
        return subscription

    def _execute(self, operation: str, table: str, query: str, params: Sequence[Any], *, fetch: bool = False) -> Any:
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(query, tuple(params))
                if fetch:
                    return cursor.fetchall()
                return cursor.rowcount
        except sqlite3.Error as exc:
            raise StoreError(operation, table, str(exc)) from exc
        finally:
            conn.close()

    def _notify(self, table: str) -> None:
        for subscription in list(self._listeners.get(table, [])):
            try:
                subscription.callback(table)
            except Exception:
                logger.exception("Change listener for %s failed", table)

    def _check_table(self, table: str) -> None:
        if table not in TABLES:
            raise KeyError(f"Unknown table {table!r}")

    def _encode_row(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        json_columns = _JSON_COLUMNS.get(table, set())
        encoded: dict[str, Any] = {}
        for key, value in row.items():
            if key in json_columns:
                encoded[key] = json.dumps(value if value is not None else [])
            elif hasattr(value, "isoformat"):
                encoded[key] = value.isoformat()
            else:
                encoded[key] = value
        return encoded

    def _decode_row(self, table: str, row: sqlite3.Row) -> dict:
        json_columns = _JSON_COLUMNS.get(table, set())
        decoded = dict(row)
        for column in json_columns & decoded.keys():
            raw = decoded[column]
            decoded[column] = json.loads(raw) if raw else []
        return decoded


__all__ = [
    "TABLES",
    "ChangeCallback",
    "Filters",
    "SqliteTableStore",
    "StoreError",
    "Subscription",
    "TableStore",
]
