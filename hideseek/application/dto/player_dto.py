"""
Player 與維運相關的 DTO。
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from hideseek.application.dto.game_dto import CamelModel
from hideseek.domain.models.maintenance import CleanupResult
from hideseek.domain.models.player import PlayerProfile

# ========== 玩家 ==========

class PlayerProfileResponse(CamelModel):
    """
    玩家檔案回應 DTO
    """
    user_id: str = Field(..., description="玩家 user id")
    username: str = Field(..., description="玩家名稱")
    rank: str = Field(..., description="等級：Tyapu / GuessMaster / Detective / FBI")
    total_guesses: int = Field(..., description="總猜測次數")
    successful_guesses: int = Field(..., description="猜中次數")
    success_rate: float = Field(..., description="成功率（0~1）")
    joined_at: int = Field(..., description="加入時間（epoch 毫秒）")
    last_active: int = Field(..., description="最後活動時間（epoch 毫秒）")

    class Config:
        json_schema_extra = {
            "example": {
                "userId": "u2",
                "username": "bob",
                "rank": "GuessMaster",
                "totalGuesses": 10,
                "successfulGuesses": 9,
                "successRate": 0.9,
                "joinedAt": 1748764800000,
                "lastActive": 1748851200000,
            }
        }

    @classmethod
    def from_domain(cls, profile: PlayerProfile) -> "PlayerProfileResponse":
        return cls.model_validate(profile.to_dict())


class PlayerStatsResponse(CamelModel):
    profile: PlayerProfileResponse = Field(..., description="玩家檔案")
    rank_info: Dict[str, Any] = Field(..., description="等級顯示資訊")
    progression: Dict[str, Any] = Field(..., description="往下一個等級的進度")


class LeaderboardResponse(CamelModel):
    players: List[PlayerProfileResponse] = Field(default_factory=list, description="排行榜，名次高者在前")
    rank_distribution: Dict[str, int] = Field(default_factory=dict, description="各等級人數")

# ========== 維運 ==========

class CleanupResultResponse(CamelModel):
    """
    清理執行紀錄
    """
    timestamp: int = Field(..., description="完成時間（epoch 毫秒）")
    success: bool = Field(..., description="是否成功")
    deleted_keys: int = Field(..., description="刪除的 key 數")
    repaired_keys: int = Field(..., description="補上 TTL 的 key 數")
    purged_keys: int = Field(0, description="後端清除的過期資料筆數")
    scanned_keys: int = Field(..., description="掃描的 key 數")
    errors: int = Field(..., description="錯誤次數")
    duration_ms: int = Field(..., description="耗時（毫秒）")
    attempt: int = Field(..., description="使用的嘗試次數")
    forced: bool = Field(False, description="是否為手動觸發")
    error: Optional[str] = Field(None, description="失敗原因")

    @classmethod
    def from_domain(cls, result: CleanupResult) -> "CleanupResultResponse":
        return cls.model_validate(result.to_dict())
