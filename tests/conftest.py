import pytest

from matchledger.matches import MatchDataCache, MatchService
from matchledger.persistence import SqliteTableStore

from .helpers import BanRecorder


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store(tmp_path) -> SqliteTableStore:
    return SqliteTableStore(tmp_path / "league.sqlite")


@pytest.fixture
def cache(store: SqliteTableStore) -> MatchDataCache:
    return MatchDataCache(store, debounce=0.01)


@pytest.fixture
def bans() -> BanRecorder:
    return BanRecorder()


@pytest.fixture
def service(store: SqliteTableStore, cache: MatchDataCache, bans: BanRecorder) -> MatchService:
    return MatchService(store, cache, ban_decrementer=bans)
