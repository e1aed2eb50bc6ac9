"""
Service construction.
Builds every store and service with its collaborators injected; nothing is a global singleton.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

from hideseek.application.services.cleanup_service import CleanupService
from hideseek.application.services.data_access import DataAccessFacade, GuessPolicy
from hideseek.application.services.expiration_service import ExpirationService
from hideseek.config.game_config import GameConfig
from hideseek.config.settings import Settings
from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.infrastructure.database.kv_store import SqlKeyValueStore
from hideseek.infrastructure.database.session import create_db_engine, create_session_factory
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import epoch_ms
from hideseek.infrastructure.storage.game_session_store import GameSessionStore
from hideseek.infrastructure.storage.guess_ledger import GuessLedger
from hideseek.infrastructure.storage.keys import KeySpace
from hideseek.infrastructure.storage.legacy import LegacyPostMappingReader, LegacySessionReader
from hideseek.infrastructure.storage.player_store import PlayerStore
from hideseek.infrastructure.storage.redis_backend import RedisKeyValueStore
from hideseek.utils.logger import logger


@dataclass
class Services:
    adapter: KeyValueAdapter
    catalog: MapCatalog
    sessions: GameSessionStore
    guesses: GuessLedger
    players: PlayerStore
    expiration: ExpirationService
    cleanup: CleanupService
    facade: DataAccessFacade

    def close(self) -> None:
        if self.cleanup.is_running:
            self.cleanup.stop()
        self.adapter.close()


def build_backend(settings: Settings) -> Any:
    """
    依 STORAGE_BACKEND 建立 store 後端。

    Returns:
        RedisKeyValueStore 或 SqlKeyValueStore
    """
    if settings.storage_backend == "sql":
        store = SqlKeyValueStore(create_session_factory(create_db_engine(settings.database_url)))
        if settings.database_url.startswith("sqlite"):
            # SQLite 開發環境直接建表；其他資料庫請執行 alembic upgrade head
            store.create_schema()
        return store
    return RedisKeyValueStore.from_url(settings.redis_url, socket_timeout=settings.store_timeout_seconds)


def build_services(
    settings: Settings,
    game_config: GameConfig,
    backend: Optional[Any] = None,
    clock: Callable[[], int] = epoch_ms,
    catalog: Optional[MapCatalog] = None,
) -> Services:
    """
    建立完整的服務組合。

    Args:
        settings: 應用程式設定
        game_config: 遊戲平衡參數
        backend: 自訂的 store 後端（測試時使用），未提供則依設定建立
        clock: epoch 毫秒時鐘
        catalog: 地圖目錄，未提供則使用預設目錄

    Returns:
        Services
    """
    backend = backend if backend is not None else build_backend(settings)
    adapter = KeyValueAdapter(backend, timeout=settings.store_timeout_seconds)
    keyspace = KeySpace(settings)
    catalog = catalog or MapCatalog()

    sessions = GameSessionStore(adapter, keyspace, catalog, clock=clock)
    guesses = GuessLedger(adapter, keyspace, threshold=game_config.guess_success_threshold, clock=clock)
    players = PlayerStore(adapter, keyspace, clock=clock)

    expiration = ExpirationService(
        adapter,
        keyspace,
        near_expiry_seconds=settings.cleanup_near_expiry_seconds,
        clock=clock,
    )
    cleanup = CleanupService(
        expiration,
        interval_hours=settings.cleanup_interval_hours,
        retry_attempts=settings.cleanup_retry_attempts,
        retry_delay_seconds=settings.cleanup_retry_delay_seconds,
        history_limit=settings.cleanup_history_limit,
        latency_warning_ms=settings.health_latency_warning_ms,
        clock=clock,
    )

    legacy_sessions = LegacySessionReader(adapter, catalog)
    facade = DataAccessFacade(
        sessions=sessions,
        guesses=guesses,
        players=players,
        adapter=adapter,
        catalog=catalog,
        policy=GuessPolicy(
            cooldown_ms=game_config.guess_cooldown_ms,
            max_guesses_per_player=game_config.max_guesses_per_player,
        ),
        session_readers=[legacy_sessions.get_session],
        session_deleters=[legacy_sessions.delete_session],
        post_mapping_readers=[LegacyPostMappingReader(adapter).get_game_id_for_post],
        cleanup=cleanup,
        leaderboard_size=game_config.leaderboard_size,
        clock=clock,
    )

    logger.info("Services built", extra={"backend": type(backend).__name__})
    return Services(
        adapter=adapter,
        catalog=catalog,
        sessions=sessions,
        guesses=guesses,
        players=players,
        expiration=expiration,
        cleanup=cleanup,
        facade=facade,
    )
