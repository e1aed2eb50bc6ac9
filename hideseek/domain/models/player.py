"""
Player 模型定義。
包含玩家檔案、等級與升級進度等資料結構。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from hideseek.utils.exceptions import ValidationError


class Rank(str, Enum):
    """
    玩家等級，由低到高排列。
    """
    TYAPU = "Tyapu"
    GUESS_MASTER = "GuessMaster"
    DETECTIVE = "Detective"
    FBI = "FBI"

    @property
    def order(self) -> int:
        return RANK_ORDER.index(self)


RANK_ORDER = [Rank.TYAPU, Rank.GUESS_MASTER, Rank.DETECTIVE, Rank.FBI]


@dataclass(frozen=True)
class RankRequirements:
    """
    升到某一等級所需的門檻。
    - **min_total_finds**: 最少猜中次數
    - **min_success_rate**: 最低成功率（0~1）
    """
    rank: Rank
    min_success_rate: float
    min_total_finds: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank.value,
            "minSuccessRate": self.min_success_rate,
            "minTotalFinds": self.min_total_finds,
            "description": self.description,
        }


@dataclass
class PlayerProfile:
    """
    玩家檔案，本子系統中唯一長期存在且可變的紀錄。
    - **success_rate**: successful_guesses / total_guesses（無猜測時為 0）
    - **rank**: 永遠等於依統計數據計算出的等級
    - **joined_at** / **last_active**: epoch 毫秒
    """
    user_id: str
    username: str
    rank: Rank
    total_guesses: int
    successful_guesses: int
    success_rate: float
    joined_at: int
    last_active: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "username": self.username,
            "rank": self.rank.value,
            "totalGuesses": self.total_guesses,
            "successfulGuesses": self.successful_guesses,
            "successRate": self.success_rate,
            "joinedAt": self.joined_at,
            "lastActive": self.last_active,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PlayerProfile":
        if not isinstance(data, dict):
            raise ValidationError("playerProfile", "must be a JSON object")
        for name in ("userId", "username", "rank", "totalGuesses", "successfulGuesses",
                     "successRate", "joinedAt", "lastActive"):
            if data.get(name) is None:
                raise ValidationError(name, "is required")
        try:
            rank = Rank(data["rank"])
        except ValueError:
            raise ValidationError("rank", f"unknown rank {data['rank']!r}")
        return cls(
            user_id=data["userId"],
            username=data["username"],
            rank=rank,
            total_guesses=data["totalGuesses"],
            successful_guesses=data["successfulGuesses"],
            success_rate=data["successRate"],
            joined_at=data["joinedAt"],
            last_active=data["lastActive"],
        )


@dataclass
class RankProgression:
    current_rank: Rank
    progress: float
    next_rank: Optional[Rank] = None
    requirements_for_next: Optional[RankRequirements] = None


@dataclass
class PlayerUpdateResult:
    """
    猜測後更新玩家檔案的結果。
    """
    updated_profile: PlayerProfile
    rank_changed: bool
    previous_rank: Optional[Rank] = None
    new_rank: Optional[Rank] = None
