"""
Data access facade.
The single entry point request handlers use. Reads fall back through an ordered list
of strategies (canonical keys first, then the legacy key layout). Missing records are
returned as None; only infrastructure failures raise.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from hideseek.application.services.cleanup_service import CleanupService
from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.domain.logic.rank import calculate_rank_progression, rank_display_info
from hideseek.domain.logic.validation import validate_game_id, validate_post_id
from hideseek.domain.models.game import GameSession, GuessData, GuessStatistics, HidingSpot, VirtualMap
from hideseek.domain.models.player import PlayerProfile, PlayerUpdateResult
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import epoch_ms
from hideseek.infrastructure.storage.game_session_store import GameSessionStore
from hideseek.infrastructure.storage.guess_ledger import GuessLedger
from hideseek.infrastructure.storage.player_store import PlayerStore
from hideseek.utils.exceptions import (
    AuthorizationError,
    BusinessLogicError,
    NotFoundError,
    RateLimitError,
    StorageError,
    ValidationError,
)
from hideseek.utils.logger import logger

SessionReader = Callable[[str], Optional[GameSession]]
PostMappingReader = Callable[[str], Optional[str]]
SessionDeleter = Callable[[str], bool]

_UPDATABLE_FIELDS = {"is_active", "post_id", "post_url", "creator_username"}


@dataclass
class GuessPolicy:
    """
    猜測頻率限制。

    - **cooldown_ms**: 同一玩家在同一局兩次猜測的最短間隔，0 表示不限制
    - **max_guesses_per_player**: 每位玩家每局的猜測上限，0 表示不限制
    """
    cooldown_ms: int = 2000
    max_guesses_per_player: int = 100

    def enforce(self, previous: List[GuessData], now: int) -> None:
        """
        Args:
            previous: 該玩家在這局的既有猜測（最新的在前）
            now: 目前時間（epoch 毫秒）

        Raises:
            RateLimitError: 冷卻中或已達上限
        """
        if self.max_guesses_per_player and len(previous) >= self.max_guesses_per_player:
            raise RateLimitError(f"Guess limit of {self.max_guesses_per_player} per game reached")
        if self.cooldown_ms and previous:
            elapsed = now - previous[0].timestamp
            if elapsed < self.cooldown_ms:
                raise RateLimitError("Guessing too fast", retry_after_ms=self.cooldown_ms - elapsed)


@dataclass
class GuessOutcome:
    guess: GuessData
    rank_update: Optional[PlayerUpdateResult] = None


class DataAccessFacade:
    """
    遊戲資料存取的單一入口。

    用法示例:
    ```python
    facade = DataAccessFacade(sessions, guesses, players, adapter, catalog, policy)
    facade.create_game("g1", "u1", "octmap", HidingSpot("pumpkin", 0.5, 0.3))
    outcome = facade.submit_guess("g1", "u2", "bob", "pumpkin", 0.5, 0.3)
    outcome.guess.is_correct
    ```
    """

    def __init__(
        self,
        sessions: GameSessionStore,
        guesses: GuessLedger,
        players: PlayerStore,
        adapter: KeyValueAdapter,
        catalog: MapCatalog,
        policy: GuessPolicy,
        session_readers: Optional[List[SessionReader]] = None,
        post_mapping_readers: Optional[List[PostMappingReader]] = None,
        session_deleters: Optional[List[SessionDeleter]] = None,
        cleanup: Optional[CleanupService] = None,
        leaderboard_size: int = 10,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.sessions = sessions
        self.guesses = guesses
        self.players = players
        self.adapter = adapter
        self.catalog = catalog
        self.policy = policy
        self.cleanup = cleanup
        self.leaderboard_size = leaderboard_size
        self.clock = clock
        # 讀取策略依序嘗試，第一個非 None 的結果勝出
        self.session_readers: List[SessionReader] = [sessions.get_session] + list(session_readers or [])
        self.post_mapping_readers: List[PostMappingReader] = (
            [sessions.get_game_id_for_post] + list(post_mapping_readers or [])
        )
        # 刪除時每個策略都要執行，避免舊版資料在刪除後又被讀回
        self.session_deleters: List[SessionDeleter] = [sessions.delete_session] + list(session_deleters or [])

    # ========== 遊戲局 ==========

    def create_game(
        self,
        game_id: str,
        creator: str,
        map_key: str,
        hiding_spot: HidingSpot,
        post_id: Optional[str] = None,
        post_url: Optional[str] = None,
        creator_username: Optional[str] = None,
    ) -> GameSession:
        session = self.sessions.create_session(
            game_id=game_id,
            creator=creator,
            map_key=map_key,
            hiding_spot=hiding_spot,
            post_id=post_id,
            post_url=post_url,
            creator_username=creator_username,
        )
        # 建立者第一次出現時一併建立玩家檔案
        self.players.get_or_create_player(creator, creator_username)
        return session

    def get_game(self, game_id: str) -> Optional[GameSession]:
        validate_game_id(game_id)
        for reader in self.session_readers:
            session = reader(game_id)
            if session is not None:
                return session
        return None

    def get_game_by_post_id(self, post_id: str) -> Optional[GameSession]:
        validate_post_id(post_id)
        for reader in self.post_mapping_readers:
            game_id = reader(post_id)
            if game_id is None:
                continue
            session = self.get_game(game_id)
            if session is not None:
                return session
            logger.warning("Post mapping points to a missing game", extra={"post_id": post_id, "game_id": game_id})
        return None

    def attach_post(self, game_id: str, post_id: str, post_url: Optional[str] = None) -> GameSession:
        session = self._require_game(game_id)
        return self.sessions.update_session(replace(session, post_id=post_id, post_url=post_url))

    def update_game(self, game_id: str, **changes: Any) -> Optional[GameSession]:
        """
        更新遊戲局的可變欄位（is_active、post_id、post_url、creator_username）。

        Returns:
            更新後的 GameSession，找不到時為 None
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError("changes", f"fields cannot be updated: {', '.join(sorted(unknown))}")
        session = self.get_game(game_id)
        if session is None:
            return None
        return self.sessions.update_session(replace(session, **changes))

    def delete_game(self, game_id: str) -> bool:
        """
        刪除遊戲局（新舊兩種 key 格式）與其所有猜測。

        Returns:
            是否有任何一種格式的遊戲局被刪除
        """
        validate_game_id(game_id)
        deleted = False
        for deleter in self.session_deleters:
            deleted = deleter(game_id) or deleted
        self.guesses.delete_game_guesses(game_id)
        return deleted

    def is_game_creator(self, game_id: str, user_id: str) -> bool:
        session = self.get_game(game_id)
        return session is not None and session.creator == user_id

    def list_game_ids(self) -> List[str]:
        return self.sessions.list_session_ids()

    def _require_game(self, game_id: str) -> GameSession:
        session = self.get_game(game_id)
        if session is None:
            raise NotFoundError(f"Game {game_id} not found", resource_type="game", resource_id=game_id)
        return session

    # ========== 猜測 ==========

    def submit_guess(
        self,
        game_id: str,
        user_id: str,
        username: Optional[str],
        object_key: str,
        rel_x: float,
        rel_y: float,
    ) -> GuessOutcome:
        """
        提交一次猜測：檢查頻率限制、寫入猜測並更新玩家檔案。

        玩家檔案更新失敗只記錄錯誤，猜測本身仍視為成功。

        Raises:
            NotFoundError: 遊戲局不存在
            BusinessLogicError: 遊戲局已關閉
            RateLimitError: 違反猜測頻率限制
            ValidationError: 輸入不合法
            StorageError: store 操作失敗
        """
        session = self._require_game(game_id)
        if not session.is_active:
            raise BusinessLogicError(f"Game {game_id} is no longer accepting guesses")

        self.policy.enforce(self.guesses.get_player_guesses(game_id, user_id), self.clock())

        guess = self.guesses.record_guess(
            game_id=game_id,
            user_id=user_id,
            username=username,
            object_key=object_key,
            rel_x=rel_x,
            rel_y=rel_y,
            true_hiding_spot=session.hiding_spot,
        )

        rank_update = None
        try:
            rank_update = self.players.update_after_guess(user_id, guess.is_correct, username)
        except StorageError as e:
            logger.error("Player update after guess failed", extra={
                "game_id": game_id,
                "user_id": user_id,
                "error": e.message,
            })
        return GuessOutcome(guess=guess, rank_update=rank_update)

    def get_game_guesses(self, game_id: str, requester_id: str, is_moderator: bool = False) -> List[GuessData]:
        """
        取得某局所有猜測，只有建立者或管理員可以查看。

        Raises:
            AuthorizationError: 呼叫者不是建立者也不是管理員
        """
        session = self.get_game(game_id)
        if session is None:
            return []
        if not is_moderator and session.creator != requester_id:
            raise AuthorizationError("Only the game creator can view guesses", resource_id=game_id)
        return self.guesses.get_game_guesses(game_id)

    def get_guess_statistics(self, game_id: str) -> GuessStatistics:
        return self.guesses.get_guess_statistics(game_id)

    def get_game_leaderboard(self, game_id: str, limit: Optional[int] = None) -> List[GuessData]:
        return self.guesses.get_leaderboard(game_id, limit or self.leaderboard_size)

    # ========== 玩家 ==========

    def get_player(self, user_id: str) -> Optional[PlayerProfile]:
        return self.players.get_player(user_id)

    def get_or_create_player(self, user_id: str, username: Optional[str] = None) -> PlayerProfile:
        return self.players.get_or_create_player(user_id, username)

    def get_player_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        玩家檔案加上等級進度與顯示資訊。
        """
        profile = self.players.get_player(user_id)
        if profile is None:
            return None
        progression = calculate_rank_progression(profile)
        return {
            "profile": profile.to_dict(),
            "rankInfo": rank_display_info(profile.rank),
            "progression": {
                "currentRank": progression.current_rank.value,
                "nextRank": progression.next_rank.value if progression.next_rank else None,
                "progress": progression.progress,
                "requirementsForNext": (
                    progression.requirements_for_next.to_dict() if progression.requirements_for_next else None
                ),
            },
        }

    def get_leaderboard(self, limit: Optional[int] = None) -> List[PlayerProfile]:
        return self.players.get_leaderboard(limit or self.leaderboard_size)

    def get_rank_distribution(self) -> Dict[str, int]:
        return self.players.get_rank_distribution()

    # ========== 地圖 ==========

    def get_map(self, map_key: str) -> Optional[VirtualMap]:
        return self.catalog.get_map(map_key)

    def get_current_map(self, at: Optional[datetime] = None) -> VirtualMap:
        return self.catalog.get_current_map(at)

    # ========== 系統 ==========

    def health_check(self) -> Dict[str, Any]:
        try:
            storage_ok = self.adapter.ping()
        except StorageError as e:
            logger.error("Storage ping failed", extra={"error": e.message})
            storage_ok = False
        return {
            "storage": storage_ok,
            "latency": self.adapter.latency_stats(),
            "cleanup": self.cleanup.get_status()["health"] if self.cleanup else None,
        }

    def get_system_stats(self) -> Dict[str, Any]:
        game_ids = self.sessions.list_session_ids()
        active_games = 0
        total_guesses = 0
        for game_id in game_ids:
            session = self.sessions.get_session(game_id)
            if session is not None and session.is_active:
                active_games += 1
            total_guesses += self.guesses.get_guess_statistics(game_id).total_guesses
        return {
            "totalGames": len(game_ids),
            "activeGames": active_games,
            "totalPlayers": len(self.players.list_players()),
            "totalGuesses": total_guesses,
            "rankDistribution": self.players.get_rank_distribution(),
        }
