"""Lightweight REST client for the matchledger API."""

from __future__ import annotations

import argparse
import json

import httpx


def build_match(payload: str) -> dict:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid match JSON: {exc}") from exc


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the matchledger REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("--list-matches", action="store_true", help="List matches and exit")
    parser.add_argument("--finances", action="store_true", help="Show team balances and debts")
    parser.add_argument("--transactions", metavar="MATCH_ID", type=int, help="List transactions of a match")
    parser.add_argument("--submit", metavar="JSON", help="Submit a match payload")
    parser.add_argument("--edit", metavar="MATCH_ID", type=int, help="Replace the match with --submit payload")
    parser.add_argument("--delete", metavar="MATCH_ID", type=int, help="Delete a match")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url) as client:
        if args.list_matches:
            resp = client.get("/matches")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
        if args.finances:
            resp = client.get("/finances")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
        if args.transactions is not None:
            resp = client.get("/transactions", params={"match_id": args.transactions})
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
        if args.submit:
            payload = build_match(args.submit)
            if args.edit is not None:
                resp = client.put(f"/matches/{args.edit}", json=payload)
            else:
                resp = client.post("/matches", json=payload)
            if resp.status_code in {400, 404, 422, 502}:
                raise SystemExit(f"match rejected: {resp.json().get('detail')}")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
        if args.delete is not None:
            resp = client.delete(f"/matches/{args.delete}")
            if resp.status_code == 404:
                raise SystemExit(f"match {args.delete} not found")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
