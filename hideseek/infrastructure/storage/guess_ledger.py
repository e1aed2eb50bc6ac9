"""
Guess ledger.
Append-only storage of guesses under game:{gameId}:guess:{userId}:{timestamp}.
Statistics are always recomputed from the stored guesses; the snapshot written under
game:{gameId}:stats is for external tooling and is never read back.
"""
from typing import Callable, Dict, List

from hideseek.domain.logic.scoring import score_guess
from hideseek.domain.logic.validation import (
    normalize_username,
    validate_coordinate,
    validate_game_id,
    validate_guess,
    validate_hiding_spot,
    validate_object_key,
    validate_user_id,
)
from hideseek.domain.models.game import GuessData, GuessStatistics, HidingSpot
from hideseek.infrastructure.storage import keys
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import JsonRecordStore, epoch_ms
from hideseek.infrastructure.storage.keys import KeySpace
from hideseek.utils.exceptions import StorageError
from hideseek.utils.logger import logger

# 同一毫秒碰撞時最多往後嘗試的次數
MAX_KEY_ATTEMPTS = 1000


class GuessLedger(JsonRecordStore):
    """
    猜測紀錄的寫入、查詢與統計。

    用法示例:
    ```python
    ledger = GuessLedger(adapter, keyspace, threshold=0.05)
    guess = ledger.record_guess("g1", "u2", "bob", "pumpkin", 0.5, 0.3, session.hiding_spot)
    ledger.get_guess_statistics("g1")
    ```
    """

    def __init__(
        self,
        adapter: KeyValueAdapter,
        keyspace: KeySpace,
        threshold: float = 0.05,
        clock: Callable[[], int] = epoch_ms,
    ):
        super().__init__(adapter, keyspace, clock)
        self.threshold = threshold

    def record_guess(
        self,
        game_id: str,
        user_id: str,
        username: str,
        object_key: str,
        rel_x: float,
        rel_y: float,
        true_hiding_spot: HidingSpot,
    ) -> GuessData:
        """
        計分並寫入一筆猜測。

        以 SET NX 寫入；同一玩家在同一毫秒已有紀錄時，時間戳往後加 1ms 重試。

        Args:
            game_id: 遊戲識別碼
            user_id: 猜測者 user id
            username: 猜測者名稱（空值存為 Anonymous）
            object_key: 猜測的物件
            rel_x: 猜測的 X 座標（0~1）
            rel_y: 猜測的 Y 座標（0~1）
            true_hiding_spot: 正確的藏匿位置

        Returns:
            寫入的 GuessData

        Raises:
            ValidationError: 輸入不合法
            StorageError: store 操作失敗
        """
        validate_game_id(game_id)
        validate_user_id(user_id)
        validate_object_key(object_key)
        validate_coordinate(rel_x, "relX")
        validate_coordinate(rel_y, "relY")
        validate_hiding_spot(true_hiding_spot)

        distance, is_correct = score_guess(object_key, rel_x, rel_y, true_hiding_spot, self.threshold)
        guess = GuessData(
            game_id=game_id,
            user_id=user_id,
            username=normalize_username(username),
            object_key=object_key,
            rel_x=rel_x,
            rel_y=rel_y,
            timestamp=self.clock(),
            distance=distance,
            is_correct=is_correct,
        )
        validate_guess(guess)

        for _ in range(MAX_KEY_ATTEMPTS):
            if self._write(keys.guess_key(game_id, user_id, guess.timestamp), guess.to_dict(), only_if_absent=True):
                break
            guess.timestamp += 1
        else:
            raise StorageError("Could not allocate a unique guess key", operation="set",
                               key=keys.guess_key(game_id, user_id, guess.timestamp))

        logger.info("Guess recorded", extra={
            "game_id": game_id,
            "user_id": user_id,
            "is_correct": is_correct,
            "distance": round(distance, 4),
        })
        self._refresh_snapshot(game_id)
        return guess

    def _refresh_snapshot(self, game_id: str) -> None:
        try:
            self._write(keys.stats_key(game_id), self.get_guess_statistics(game_id).to_dict())
        except StorageError as e:
            # 快照不是權威資料，寫入失敗不影響猜測本身
            logger.warning("Stats snapshot refresh failed", extra={"game_id": game_id, "error": e.message})

    def _load(self, pattern: str) -> List[GuessData]:
        guesses = []
        for key in self.adapter.scan(pattern):
            guess = self._read(key, GuessData.from_dict, validate_guess)
            if guess is not None:
                guesses.append(guess)
        return guesses

    def get_game_guesses(self, game_id: str) -> List[GuessData]:
        """取得某局所有猜測，最新的在前。"""
        validate_game_id(game_id)
        guesses = self._load(keys.guess_pattern(game_id))
        return sorted(guesses, key=lambda g: (g.timestamp, g.user_id), reverse=True)

    def get_player_guesses(self, game_id: str, user_id: str) -> List[GuessData]:
        validate_game_id(game_id)
        validate_user_id(user_id)
        guesses = self._load(keys.guess_pattern(game_id, user_id))
        return sorted(guesses, key=lambda g: g.timestamp, reverse=True)

    def get_unique_guessers(self, game_id: str) -> List[GuessData]:
        """
        每位玩家只取最新一筆猜測。

        排序：猜中的在前（越早猜中越前面），其餘依距離由近到遠。
        """
        latest: Dict[str, GuessData] = {}
        for guess in self.get_game_guesses(game_id):
            if guess.user_id not in latest:
                latest[guess.user_id] = guess

        def sort_key(g: GuessData):
            if g.is_correct:
                return (0, g.timestamp, g.distance)
            return (1, g.distance, g.timestamp)

        return sorted(latest.values(), key=sort_key)

    def get_leaderboard(self, game_id: str, limit: int = 10) -> List[GuessData]:
        return self.get_unique_guessers(game_id)[:max(limit, 0)]

    def has_recent_guess(self, game_id: str, user_id: str, window_ms: int) -> bool:
        cutoff = self.clock() - window_ms
        return any(g.timestamp > cutoff for g in self.get_player_guesses(game_id, user_id))

    def get_guess_statistics(self, game_id: str) -> GuessStatistics:
        """
        由目前的猜測集合重新計算統計，沒有猜測時回傳全為 0 的紀錄。
        """
        guesses = self.get_game_guesses(game_id)
        if not guesses:
            return GuessStatistics()
        return GuessStatistics(
            total_guesses=len(guesses),
            correct_guesses=sum(1 for g in guesses if g.is_correct),
            unique_guessers=len({g.user_id for g in guesses}),
            average_distance=round(sum(g.distance for g in guesses) / len(guesses), 4),
        )

    def delete_game_guesses(self, game_id: str) -> bool:
        """
        刪除某局所有猜測與統計快照。

        Returns:
            至少刪除一個 key 時為 True
        """
        validate_game_id(game_id)
        targets = self.adapter.scan(keys.guess_pattern(game_id)) + [keys.stats_key(game_id)]
        removed = self.adapter.delete(*targets)
        logger.info("Game guesses deleted", extra={"game_id": game_id, "removed": removed})
        return removed > 0
