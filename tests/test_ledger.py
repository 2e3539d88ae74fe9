import datetime as dt

import pytest

from matchledger.models import MatchRecord
from matchledger.settlement import LedgerWriter, calculate_outcome

from .helpers import finances, make_match, set_finance


DAY = dt.date(2024, 5, 4)


async def _transactions(store) -> list[tuple[str, str, int]]:
    rows = await store.select("transactions", order_by=[("id", False)])
    return [(row["type"], row["team"], row["amount"]) for row in rows]


@pytest.mark.anyio
async def test_apply_books_prize_money_and_settlement(store):
    writer = LedgerWriter(store)
    outcome = calculate_outcome(make_match(3, 1))

    result = await writer.apply(outcome, match_id=11, match_number=1, on_date=DAY)

    # Real's balance cannot absorb -650k, so it is floored and 6.5 rounds up to 7 on top of the base 5.
    assert await finances(store) == {"AEK": (950_000, 0), "Real": (0, 12)}
    assert await _transactions(store) == [
        ("Prize Money", "AEK", 950_000),
        ("Prize Money", "Real", -650_000),
        ("Real-Money Settlement", "Real", 12),
    ]
    assert result.settlement is not None
    assert result.settlement.loser_amount == 12
    assert {tx.info for tx in result.transactions} == {"Match #1"}
    assert {tx.match_id for tx in result.transactions} == {11}


@pytest.mark.anyio
async def test_apply_books_bonus_before_prize(store):
    writer = LedgerWriter(store)
    await set_finance(store, "Real", balance=50_000)
    outcome = calculate_outcome(make_match(0, 1, player_of_match="Diego", player_of_match_team="Real"))

    result = await writer.apply(outcome, match_id=3, match_number=4, on_date=DAY)

    assert result.balances["Real"] == 50_000 + 100_000 + 1_000_000
    types = [tx.type for tx in result.transactions if tx.team == "Real"]
    assert types[:2] == ["SdS Bonus", "Prize Money"]


@pytest.mark.anyio
async def test_apply_offsets_winner_debt(store):
    writer = LedgerWriter(store)
    await set_finance(store, "AEK", debt=8)
    await set_finance(store, "Real", balance=2_000_000)
    outcome = calculate_outcome(make_match(3, 1))

    result = await writer.apply(outcome, match_id=5, match_number=2, on_date=DAY)

    assert await finances(store) == {"AEK": (950_000, 3), "Real": (1_350_000, 0)}
    settlement_rows = [tx for tx in result.transactions if tx.type.startswith("Real-Money")]
    assert [(tx.type, tx.team, tx.amount) for tx in settlement_rows] == [
        ("Real-Money Settlement (cleared)", "AEK", -5),
    ]


@pytest.mark.anyio
async def test_draw_writes_no_settlement(store):
    writer = LedgerWriter(store)

    result = await writer.apply(calculate_outcome(make_match(1, 1)), match_id=1, match_number=1, on_date=DAY)

    assert result.transactions == []
    assert result.settlement is None
    assert await finances(store) == {"AEK": (0, 0), "Real": (0, 0)}


@pytest.mark.anyio
async def test_balances_never_go_negative(store):
    writer = LedgerWriter(store)
    results = [
        make_match(0, 9, yellow_a=5, red_a=3),
        make_match(7, 0, yellow_b=4, red_b=2),
        make_match(1, 8),
        make_match(0, 3, player_of_match="Alice", player_of_match_team="AEK"),
    ]
    for index, match in enumerate(results, start=1):
        await writer.apply(calculate_outcome(match), match_id=index, match_number=index, on_date=DAY)
        for balance, debt in (await finances(store)).values():
            assert balance >= 0
            assert debt >= 0


@pytest.mark.anyio
async def test_reverse_restores_balances_and_debts(store):
    writer = LedgerWriter(store)
    await set_finance(store, "AEK", balance=2_000_000, debt=3)
    await set_finance(store, "Real", balance=2_000_000)
    match = make_match(3, 1, player_of_match="Alice", player_of_match_team="AEK")
    outcome = calculate_outcome(match)
    await writer.apply(outcome, match_id=9, match_number=1, on_date=DAY)
    record = MatchRecord(id=9, prize_a=outcome.prize_for("AEK"), prize_b=outcome.prize_for("Real"), **match.model_dump())

    reversal = await writer.reverse(record)

    assert await finances(store) == {"AEK": (2_000_000, 3), "Real": (2_000_000, 0)}
    assert await _transactions(store) == []
    assert len(reversal.removed_transactions) == 5


@pytest.mark.anyio
async def test_reverse_floors_balance_at_zero(store):
    writer = LedgerWriter(store)
    record = MatchRecord(id=2, date=DAY, goals_a=2, goals_b=0, prize_a=1_000_000, prize_b=-600_000)
    await set_finance(store, "AEK", balance=400_000)

    await writer.reverse(record)

    balances = await finances(store)
    assert balances["AEK"][0] == 0
    assert balances["Real"][0] == 600_000


@pytest.mark.anyio
async def test_reverse_keeps_unlinked_rows_unless_legacy_fallback(store):
    writer = LedgerWriter(store)
    await store.insert(
        "transactions",
        [
            {"date": DAY.isoformat(), "type": "Prize Money", "team": "AEK", "amount": 10, "match_id": None, "info": ""},
            {"date": DAY.isoformat(), "type": "Transfer", "team": "AEK", "amount": -3, "match_id": None, "info": ""},
        ],
    )
    record = MatchRecord(id=1, date=DAY, goals_a=0, goals_b=0)

    await writer.reverse(record)
    assert len(await _transactions(store)) == 2

    await writer.reverse(record, legacy_fallback=True)
    assert await _transactions(store) == [("Transfer", "AEK", -3)]
