"""Command-line interface for recording matches and inspecting team finances."""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import logging
from typing import Optional

from matchledger.config import TEAMS, Settings, load_settings, normalize_team
from matchledger.matches import CascadeError, MatchDataCache, MatchService, MatchValidationError
from matchledger.models import MatchInput, ScorerEntry
from matchledger.persistence import SqliteTableStore, StoreError


def _add_match_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("score", help="Final score as AEK:Real goals, e.g. 3:1")
    parser.add_argument(
        "--date",
        type=dt.date.fromisoformat,
        default=None,
        help="Match day as YYYY-MM-DD (defaults to today)",
    )
    parser.add_argument(
        "--scorer-a",
        action="append",
        default=[],
        help="AEK scorer as Name=goals (repeatable; goals default to 1)",
    )
    parser.add_argument(
        "--scorer-b",
        action="append",
        default=[],
        help="Real scorer as Name=goals (repeatable; goals default to 1)",
    )
    parser.add_argument("--yellow-a", type=int, default=0, help="Yellow cards for AEK")
    parser.add_argument("--red-a", type=int, default=0, help="Red cards for AEK")
    parser.add_argument("--yellow-b", type=int, default=0, help="Yellow cards for Real")
    parser.add_argument("--red-b", type=int, default=0, help="Red cards for Real")
    parser.add_argument("--player-of-match", default=None, help="Name of the player of the match")
    parser.add_argument(
        "--player-of-match-team",
        default=None,
        help="Team of the player of the match (looked up in the rosters if omitted)",
    )


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record league matches and settle prize money")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides MATCHLEDGER_DB_PATH)")
    parser.add_argument("--verbose", action="store_true", help="Log cascade steps")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Record a new match")
    _add_match_arguments(add)

    edit = commands.add_parser("edit", help="Replace an existing match")
    edit.add_argument("match_id", type=int, help="Identifier of the match to replace")
    _add_match_arguments(edit)

    delete = commands.add_parser("delete", help="Delete a match and reverse its effects")
    delete.add_argument("match_id", type=int, help="Identifier of the match to delete")

    commands.add_parser("list", help="List matches, most recent first")
    commands.add_parser("finances", help="Show balances and debts")

    add_player = commands.add_parser("add-player", help="Add a player to a roster")
    add_player.add_argument("name", help="Player name")
    add_player.add_argument("team", help="Team code (AEK or Real)")

    serve = commands.add_parser("serve", help="Run the REST API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def _parse_score(value: str) -> tuple[int, int]:
    if ":" not in value:
        raise ValueError(f"Invalid score '{value}', expected goals_a:goals_b")
    left, right = value.split(":", 1)
    goals_a, goals_b = int(left.strip()), int(right.strip())
    if goals_a < 0 or goals_b < 0:
        raise ValueError(f"Invalid score '{value}', goals must not be negative")
    return goals_a, goals_b


def _parse_scorers(entries: list[str]) -> list[ScorerEntry]:
    scorers: list[ScorerEntry] = []
    for entry in entries:
        name, _, count = entry.partition("=")
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid scorer entry '{entry}', expected Name=goals")
        scorers.append(ScorerEntry(player=name, count=int(count) if count.strip() else 1))
    return scorers


def _match_input(args: argparse.Namespace) -> MatchInput:
    goals_a, goals_b = _parse_score(args.score)
    team = normalize_team(args.player_of_match_team) if args.player_of_match_team else None
    return MatchInput(
        date=args.date or dt.date.today(),
        goals_a=goals_a,
        goals_b=goals_b,
        scorers_a=_parse_scorers(args.scorer_a),
        scorers_b=_parse_scorers(args.scorer_b),
        yellow_a=args.yellow_a,
        red_a=args.red_a,
        yellow_b=args.yellow_b,
        red_b=args.red_b,
        player_of_match=args.player_of_match or None,
        player_of_match_team=team,
    )


def _format_money(amount: int) -> str:
    return f"{amount:+,}".replace(",", ".")


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    store = SqliteTableStore(settings.db_path, timeout=settings.store_timeout)
    cache = MatchDataCache(store, debounce=settings.reload_debounce)
    service = MatchService(store, cache, legacy_transaction_fallback=settings.legacy_transaction_fallback)

    if args.command in {"add", "edit"}:
        match = _match_input(args)
        if args.command == "add":
            submission = await service.create(match)
        else:
            submission = await service.edit(args.match_id, match)
        record = submission.match
        print(
            f"Match #{submission.number} (id {record.id}): AEK {record.goals_a}:{record.goals_b} Real"
        )
        print(f"Prize money: AEK {_format_money(record.prize_a)}, Real {_format_money(record.prize_b)}")
        for tx in submission.ledger.transactions:
            print(f"  {tx.type:<32} {tx.team:<5} {_format_money(tx.amount)}")
        return 0

    if args.command == "delete":
        if await service.delete(args.match_id):
            print(f"Deleted match {args.match_id}")
            return 0
        print(f"Match {args.match_id} not found")
        return 1

    if args.command == "list":
        await cache.reload()
        for match in cache.matches:
            number = cache.match_number(match.id)
            sds = f"  SdS: {match.player_of_match}" if match.player_of_match else ""
            print(
                f"#{str(number):<4} {match.date.isoformat()}  AEK {match.goals_a}:{match.goals_b} Real"
                f"  ({_format_money(match.prize_a)} / {_format_money(match.prize_b)}){sds}"
            )
        return 0

    if args.command == "finances":
        await cache.reload()
        for team in TEAMS:
            finance = cache.finance(team)
            print(f"{team:<5} balance {finance.balance:>12,}  debt {finance.debt:>4}")
        return 0

    if args.command == "add-player":
        team = normalize_team(args.team)
        await store.insert("players", [{"name": args.name.strip(), "team": team, "goals": 0}])
        print(f"Added {args.name} to {team}")
        return 0

    raise ValueError(f"Unknown command {args.command!r}")


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    settings = load_settings()
    if args.db:
        settings = Settings(
            db_path=args.db,
            reload_debounce=settings.reload_debounce,
            store_timeout=settings.store_timeout,
            legacy_transaction_fallback=settings.legacy_transaction_fallback,
        )

    if args.command == "serve":
        import uvicorn

        from matchledger.api import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0

    try:
        return asyncio.run(_run(args, settings))
    except (MatchValidationError, KeyError, ValueError) as exc:
        print(f"Rejected: {exc}")
        return 2
    except (CascadeError, StoreError) as exc:
        print(f"Failed: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
