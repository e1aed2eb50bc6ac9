"""
Player profile store.
Profiles are read-modify-written with last-writer-wins semantics; the rank is
recomputed on every write and validated on every read.
"""
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from hideseek.domain.logic.rank import apply_guess_result, check_profile_integrity, create_new_profile
from hideseek.domain.logic.validation import normalize_username, validate_player_profile, validate_user_id
from hideseek.domain.models.player import RANK_ORDER, PlayerProfile, PlayerUpdateResult
from hideseek.infrastructure.storage import keys
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import JsonRecordStore, epoch_ms
from hideseek.infrastructure.storage.keys import KeySpace
from hideseek.utils.exceptions import NotFoundError
from hideseek.utils.logger import logger


class PlayerStore(JsonRecordStore):
    """
    玩家檔案的持久化存取。

    用法示例:
    ```python
    players = PlayerStore(adapter, keyspace)
    profile = players.get_or_create_player("u1", "alice")
    result = players.update_after_guess("u1", is_correct=True)
    result.rank_changed
    ```
    """

    def __init__(self, adapter: KeyValueAdapter, keyspace: KeySpace, clock: Callable[[], int] = epoch_ms):
        super().__init__(adapter, keyspace, clock)

    def get_player(self, user_id: str) -> Optional[PlayerProfile]:
        validate_user_id(user_id)
        return self._read(keys.player_key(user_id), PlayerProfile.from_dict, validate_player_profile)

    def save_player(self, profile: PlayerProfile) -> PlayerProfile:
        """
        驗證後寫入玩家檔案，並刷新 90 天 TTL。

        Raises:
            ValidationError: 檔案內容不一致（例如 rank 與統計不符）
            StorageError: store 操作失敗
        """
        validate_player_profile(profile)
        self._write(keys.player_key(profile.user_id), profile.to_dict())
        return profile

    def get_or_create_player(self, user_id: str, username: Optional[str] = None) -> PlayerProfile:
        """
        取得玩家檔案，不存在時建立；有傳入非空白名稱且與既有名稱不同時一併更新。
        """
        profile = self.get_player(user_id)
        if profile is not None:
            if username is not None and username.strip() and username != profile.username:
                profile = self.save_player(replace(profile, username=username))
                logger.info("Player username refreshed", extra={"user_id": user_id})
            return profile
        profile = create_new_profile(user_id, normalize_username(username), self.clock())
        self.save_player(profile)
        logger.info("Player profile created", extra={"user_id": user_id})
        return profile

    def update_after_guess(
        self,
        user_id: str,
        is_correct: bool,
        username: Optional[str] = None,
    ) -> PlayerUpdateResult:
        """
        套用一次猜測結果並寫回。

        Args:
            user_id: 玩家 user id
            is_correct: 本次是否猜中
            username: 玩家目前的名稱，建立或更新檔案時使用

        Returns:
            PlayerUpdateResult，rank_changed 為 True 時附上前後等級
        """
        profile = self.get_or_create_player(user_id, username)
        updated = apply_guess_result(profile, is_correct, self.clock())
        self.save_player(updated)

        rank_changed = updated.rank != profile.rank
        if rank_changed:
            logger.info("Player rank changed", extra={
                "user_id": user_id,
                "previous_rank": profile.rank.value,
                "new_rank": updated.rank.value,
            })
            return PlayerUpdateResult(
                updated_profile=updated,
                rank_changed=True,
                previous_rank=profile.rank,
                new_rank=updated.rank,
            )
        return PlayerUpdateResult(updated_profile=updated, rank_changed=False)

    def touch_last_active(self, user_id: str) -> PlayerProfile:
        profile = self.get_player(user_id)
        if profile is None:
            raise NotFoundError(f"Player {user_id} not found", resource_type="player", resource_id=user_id)
        return self.save_player(replace(profile, last_active=max(self.clock(), profile.last_active)))

    def delete_player(self, user_id: str) -> bool:
        validate_user_id(user_id)
        return self.adapter.delete(keys.player_key(user_id)) > 0

    def check_integrity(self, user_id: str) -> List[str]:
        """
        檢查玩家檔案一致性，直接讀原始資料以便回報問題而不是丟棄。
        """
        validate_user_id(user_id)
        profile = self._read(keys.player_key(user_id), PlayerProfile.from_dict)
        if profile is None:
            return ["profile not found"]
        return check_profile_integrity(profile)

    def list_players(self) -> List[PlayerProfile]:
        players = []
        for key in self.adapter.scan(f"{keys.PLAYER_PREFIX}*"):
            profile = self._read(key, PlayerProfile.from_dict, validate_player_profile)
            if profile is not None:
                players.append(profile)
        return players

    def get_leaderboard(self, limit: int = 10) -> List[PlayerProfile]:
        """等級高者在前，其次是猜中次數與成功率。"""
        ranked = sorted(
            self.list_players(),
            key=lambda p: (-p.rank.order, -p.successful_guesses, -p.success_rate, p.user_id),
        )
        return ranked[:max(limit, 0)]

    def get_rank_distribution(self) -> Dict[str, int]:
        distribution = {rank.value: 0 for rank in RANK_ORDER}
        for profile in self.list_players():
            distribution[profile.rank.value] += 1
        return distribution
