"""
共用測試設定。
以 SQLite 記憶體資料庫上的 SqlKeyValueStore 代替外部 key-value store，時鐘可由測試控制。
"""
import pytest
from fastapi.testclient import TestClient

from hideseek.application.services.container import build_services
from hideseek.config.game_config import GameConfig
from hideseek.config.settings import Settings
from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.domain.models.game import HidingSpot
from hideseek.infrastructure.database.kv_store import SqlKeyValueStore
from hideseek.infrastructure.database.session import create_db_engine, create_session_factory
from hideseek.main import create_app

START_MS = 1_750_000_000_000


class FakeClock:
    """
    可手動推進的 epoch 毫秒時鐘。
    """

    def __init__(self, start_ms: int = START_MS):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def seconds(self) -> float:
        return self.now_ms / 1000

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sql_backend(clock):
    engine = create_db_engine("sqlite://")
    store = SqlKeyValueStore(create_session_factory(engine), clock=clock.seconds)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        storage_backend="sql",
        database_url="sqlite://",
        cleanup_enabled=False,
        cleanup_retry_delay_seconds=0,
    )


@pytest.fixture
def test_game_config():
    return GameConfig(guess_success_threshold=0.05, guess_cooldown_ms=2000, max_guesses_per_player=100)


@pytest.fixture
def catalog():
    return MapCatalog()


@pytest.fixture
def services(test_settings, test_game_config, sql_backend, clock, catalog):
    built = build_services(test_settings, test_game_config, backend=sql_backend, clock=clock, catalog=catalog)
    yield built
    built.close()


@pytest.fixture
def adapter(services):
    return services.adapter


@pytest.fixture
def session_store(services):
    return services.sessions


@pytest.fixture
def ledger(services):
    return services.guesses


@pytest.fixture
def player_store(services):
    return services.players


@pytest.fixture
def facade(services):
    return services.facade


@pytest.fixture
def pumpkin_spot():
    return HidingSpot(object_key="pumpkin", rel_x=0.5, rel_y=0.3)


@pytest.fixture
def octmap_game(session_store, pumpkin_spot):
    return session_store.create_session(
        game_id="game1",
        creator="creator1",
        map_key="octmap",
        hiding_spot=pumpkin_spot,
        creator_username="alice",
    )


@pytest.fixture
def client(services):
    app = create_app(services=services, start_cleanup=False)
    with TestClient(app) as test_client:
        yield test_client
