"""REST API for recording matches and inspecting the league ledger."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException

from matchledger.api.schemas import (
    FinanceResponse,
    MatchDeleteResponse,
    MatchRequest,
    MatchResponse,
    PlayerOfMatchResponse,
    PlayerRequest,
    PlayerResponse,
    TransactionResponse,
)
from matchledger.config import TEAMS, Settings, load_settings, normalize_team
from matchledger.matches import (
    BanDecrementer,
    CascadeError,
    MatchDataCache,
    MatchService,
    MatchValidationError,
    skip_ban_decrement,
)
from matchledger.persistence import SqliteTableStore, StoreError, TableStore


logger = logging.getLogger("uvicorn.error")


def _cascade_failure(exc: CascadeError) -> HTTPException:
    detail: dict[str, Any] = {
        "message": exc.message,
        "step": exc.step,
        "completed_steps": exc.completed,
    }
    return HTTPException(status_code=502, detail=detail)


def create_app(
    settings: Settings | None = None,
    *,
    store: TableStore | None = None,
    ban_decrementer: BanDecrementer = skip_ban_decrement,
) -> FastAPI:
    settings = settings or load_settings()
    if store is None:
        store = SqliteTableStore(settings.db_path, timeout=settings.store_timeout)
    cache = MatchDataCache(store, debounce=settings.reload_debounce)
    service = MatchService(
        store,
        cache,
        ban_decrementer=ban_decrementer,
        legacy_transaction_fallback=settings.legacy_transaction_fallback,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        cache.subscribe()
        try:
            await cache.reload()
        except StoreError as exc:
            logger.warning("Initial cache load failed: %s", exc)
        yield
        cache.reset()

    app = FastAPI(title="matchledger", lifespan=lifespan)
    app.state.store = store
    app.state.cache = cache
    app.state.service = service

    async def _match_response(match_id: int) -> MatchResponse:
        record = await service.get(match_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Match not found")
        return MatchResponse.from_record(record, await service.match_number(match_id))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/matches", response_model=list[MatchResponse])
    async def list_matches():
        await cache.reload()
        return [
            MatchResponse.from_record(match, cache.match_number(match.id))
            for match in cache.matches
        ]

    @app.get("/matches/{match_id}", response_model=MatchResponse)
    async def get_match(match_id: int):
        return await _match_response(match_id)

    @app.post("/matches", response_model=MatchResponse)
    async def create_match(payload: MatchRequest):
        try:
            submission = await service.create(payload.to_input())
        except MatchValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CascadeError as exc:
            raise _cascade_failure(exc) from exc
        return MatchResponse.from_record(submission.match, submission.number)

    @app.put("/matches/{match_id}", response_model=MatchResponse)
    async def edit_match(match_id: int, payload: MatchRequest):
        """Replace a stored match; the replacement gets a new id."""

        if await service.get(match_id) is None:
            raise HTTPException(status_code=404, detail="Match not found")
        try:
            submission = await service.edit(match_id, payload.to_input())
        except MatchValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CascadeError as exc:
            raise _cascade_failure(exc) from exc
        return MatchResponse.from_record(submission.match, submission.number)

    @app.delete("/matches/{match_id}", response_model=MatchDeleteResponse)
    async def delete_match(match_id: int):
        try:
            deleted = await service.delete(match_id)
        except CascadeError as exc:
            raise _cascade_failure(exc) from exc
        if not deleted:
            raise HTTPException(status_code=404, detail="Match not found")
        return MatchDeleteResponse(match_id=match_id, deleted=True)

    @app.get("/finances", response_model=list[FinanceResponse])
    async def finances():
        rows = await store.select("finances", filters={"team": list(TEAMS)}, order_by=[("id", False)])
        return [FinanceResponse.model_validate(row) for row in rows]

    @app.get("/transactions", response_model=list[TransactionResponse])
    async def transactions(match_id: int | None = None, team: str | None = None, limit: int = 100):
        filters: dict[str, Any] = {}
        if match_id is not None:
            filters["match_id"] = match_id
        if team:
            try:
                filters["team"] = normalize_team(team)
            except KeyError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        rows = await store.select(
            "transactions",
            filters=filters or None,
            order_by=[("date", True), ("id", True)],
        )
        return [TransactionResponse.model_validate(row) for row in rows[: max(1, limit)]]

    @app.get("/players", response_model=list[PlayerResponse])
    async def players(team: str | None = None):
        filters: dict[str, Any] | None = None
        if team:
            try:
                filters = {"team": normalize_team(team)}
            except KeyError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        rows = await store.select("players", filters=filters, order_by=[("team", False), ("name", False)])
        return [PlayerResponse.model_validate(row) for row in rows]

    @app.post("/players", response_model=PlayerResponse)
    async def add_player(payload: PlayerRequest):
        try:
            team = normalize_team(payload.team)
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        try:
            rows = await store.insert("players", [{"name": payload.name.strip(), "team": team, "goals": 0}])
        except StoreError as exc:
            raise HTTPException(status_code=400, detail=exc.message) from exc
        return PlayerResponse.model_validate(rows[0])

    @app.get("/player-of-match", response_model=list[PlayerOfMatchResponse])
    async def player_of_match():
        rows = await store.select("spieler_des_spiels", order_by=[("count", True), ("name", False)])
        return [PlayerOfMatchResponse.model_validate(row) for row in rows if row.get("count")]

    return app


__all__ = ["create_app"]
