import asyncio
import datetime as dt

import pytest

from matchledger.matches import CascadeError, MatchDataCache, MatchService, MatchValidationError
from matchledger.persistence import SqliteTableStore, StoreError

from .helpers import (
    BanRecorder,
    finances,
    goal_tallies,
    make_match,
    player_of_match_counts,
    seed_rosters,
    set_finance,
)


async def _snapshot(store) -> dict:
    transactions = await store.select("transactions", order_by=[("id", False)])
    return {
        "finances": await finances(store),
        "goals": await goal_tallies(store),
        "player_of_match": {key: value for key, value in (await player_of_match_counts(store)).items() if value},
        "transactions": sorted(
            (row["date"], row["type"], row["team"], row["amount"], row["info"]) for row in transactions
        ),
        "matches": len(await store.select("matches")),
    }


async def _prime(store) -> None:
    await seed_rosters(store)
    await set_finance(store, "AEK", balance=2_000_000, debt=3)
    await set_finance(store, "Real", balance=2_000_000)


@pytest.mark.anyio
async def test_create_applies_every_effect(store, service, bans):
    await seed_rosters(store)
    match = make_match(3, 1, scorers_a={"Alice": 2, "Bob": 1}, scorers_b={"Carlos": 1}, player_of_match="Alice")

    submission = await service.create(match)

    record = submission.match
    assert submission.number == 1
    assert (record.prize_a, record.prize_b) == (950_000, -650_000)
    assert record.player_of_match_team == "AEK"
    goals = await goal_tallies(store)
    assert goals[("Alice", "AEK")] == 2
    assert goals[("Bob", "AEK")] == 1
    assert goals[("Carlos", "Real")] == 1
    assert await player_of_match_counts(store) == {("Alice", "AEK"): 1}
    assert (await finances(store))["AEK"] == (1_050_000, 0)
    assert bans.calls == 1
    infos = {row["info"] for row in await store.select("transactions")}
    assert infos == {"Match #1"}


@pytest.mark.anyio
async def test_scorer_sum_over_goals_is_rejected_before_any_write(store, service, bans):
    await seed_rosters(store)
    before = await _snapshot(store)

    with pytest.raises(MatchValidationError):
        await service.create(make_match(2, 0, scorers_a={"Alice": 2, "Bob": 1}))

    assert await _snapshot(store) == before
    assert bans.calls == 0


@pytest.mark.anyio
async def test_unknown_player_of_match_is_rejected(store, service):
    await seed_rosters(store)

    with pytest.raises(MatchValidationError):
        await service.create(make_match(1, 0, player_of_match="Zinedine"))

    assert await store.select("matches") == []


@pytest.mark.anyio
async def test_player_added_after_cache_load_can_be_player_of_match(store, cache, service):
    await seed_rosters(store)
    cache.subscribe()
    await cache.reload()
    await store.insert("players", [{"name": "Zed", "team": "AEK", "goals": 0}])

    submission = await service.create(make_match(1, 0, player_of_match="Zed"))

    assert submission.match.player_of_match_team == "AEK"
    assert await player_of_match_counts(store) == {("Zed", "AEK"): 1}
    cache.unsubscribe()


@pytest.mark.anyio
async def test_blank_scorer_names_still_count_toward_goals(store, service):
    await seed_rosters(store)

    with pytest.raises(MatchValidationError):
        await service.create(make_match(2, 0, scorers_a={"": 3}))

    assert await store.select("matches") == []


@pytest.mark.anyio
async def test_edit_of_vanished_match_stores_submission(store, service):
    await seed_rosters(store)

    submission = await service.edit(77, make_match(2, 1))

    assert submission.number == 1
    assert submission.match.id != 77
    assert len(await store.select("matches")) == 1


@pytest.mark.anyio
async def test_delete_reverses_create(store, service):
    await _prime(store)
    before = await _snapshot(store)
    submission = await service.create(
        make_match(3, 1, scorers_a={"Alice": 2}, scorers_b={"Diego": 1}, player_of_match="Alice", yellow_b=2)
    )
    assert await _snapshot(store) != before

    deleted = await service.delete(submission.match.id)

    assert deleted is True
    assert await _snapshot(store) == before


@pytest.mark.anyio
async def test_delete_missing_match_is_a_noop(store, service):
    await _prime(store)
    before = await _snapshot(store)

    assert await service.delete(404) is False
    assert await _snapshot(store) == before


@pytest.mark.anyio
async def test_edit_matches_delete_then_create(tmp_path):
    old = make_match(2, 1, scorers_a={"Alice": 1, "Bob": 1}, scorers_b={"Carlos": 1}, player_of_match="Bob")
    new = make_match(0, 2, scorers_b={"Diego": 2}, player_of_match="Diego", red_a=1)

    edited_store = SqliteTableStore(tmp_path / "edited.sqlite")
    await _prime(edited_store)
    edited = MatchService(edited_store, MatchDataCache(edited_store))
    first = await edited.create(old)
    replaced = await edited.edit(first.match.id, new)

    replayed_store = SqliteTableStore(tmp_path / "replayed.sqlite")
    await _prime(replayed_store)
    replayed = MatchService(replayed_store, MatchDataCache(replayed_store))
    original = await replayed.create(old)
    await replayed.delete(original.match.id)
    await replayed.create(new)

    assert replaced.number == 1
    assert await edited.get(first.match.id) is None
    assert await _snapshot(edited_store) == await _snapshot(replayed_store)


@pytest.mark.anyio
async def test_draw_produces_no_prize_or_settlement(store, service):
    await seed_rosters(store)

    submission = await service.create(make_match(1, 1, scorers_a={"Chris": 1}, scorers_b={"Emilio": 1}))

    assert (submission.match.prize_a, submission.match.prize_b) == (0, 0)
    assert submission.ledger.settlement is None
    assert await store.select("transactions") == []


@pytest.mark.anyio
async def test_display_number_counts_history(store, service):
    await seed_rosters(store)
    numbers = []
    for offset in range(3):
        submission = await service.create(make_match(1, 0, day=dt.date(2024, 5, 1 + offset)))
        numbers.append(submission.number)

    assert numbers == [1, 2, 3]
    last_rows = await store.select("transactions", filters={"match_id": submission.match.id})
    assert {row["info"] for row in last_rows} == {"Match #3"}


@pytest.mark.anyio
async def test_legacy_match_without_team_uses_scorers_then_roster(store, service):
    await seed_rosters(store)
    await store.insert("spieler_des_spiels", [{"name": "Emilio", "team": "Real", "count": 2}])
    rows = await store.insert(
        "matches",
        [
            {
                "date": "2023-01-01",
                "team_a": "AEK",
                "team_b": "Real",
                "goals_a": 0,
                "goals_b": 1,
                "scorers_a": [],
                "scorers_b": [{"player": "Diego", "count": 1}],
                "player_of_match": "Emilio",
                "player_of_match_team": None,
                "prize_a": -550_000,
                "prize_b": 1_000_000,
            }
        ],
    )

    assert await service.delete(rows[0]["id"]) is True
    assert await player_of_match_counts(store) == {("Emilio", "Real"): 1}


@pytest.mark.anyio
async def test_concurrent_creates_are_serialized(store, service):
    await seed_rosters(store)

    first, second = await asyncio.gather(
        service.create(make_match(1, 0)),
        service.create(make_match(2, 0)),
    )

    assert sorted([first.number, second.number]) == [1, 2]
    balance, _ = (await finances(store))["AEK"]
    assert balance == first.match.prize_a + second.match.prize_a


class _FailingFinanceStore(SqliteTableStore):
    async def update(self, table, values, filters):
        if table == "finances":
            raise StoreError("update", table, "connection reset")
        return await super().update(table, values, filters)


@pytest.mark.anyio
async def test_failed_write_reports_committed_steps(tmp_path):
    store = _FailingFinanceStore(tmp_path / "failing.sqlite")
    bans = BanRecorder()
    service = MatchService(store, MatchDataCache(store), ban_decrementer=bans)

    with pytest.raises(CascadeError) as excinfo:
        await service.create(make_match(1, 0))

    error = excinfo.value
    assert error.step == "apply ledger"
    assert error.completed == ["insert match", "reload cache"]
    assert "connection reset" in str(error)
    # No rollback: the match row stays behind.
    assert len(await store.select("matches")) == 1
    assert bans.calls == 0
