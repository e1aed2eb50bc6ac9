"""
Game 相關的 DTO (Data Transfer Objects)。
用於遊戲局建立、猜測提交與統計查詢的資料結構定義。
對外 JSON 一律使用 camelCase 欄位名稱。
"""

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from hideseek.domain.models.game import GameSession, GuessData, GuessStatistics, HidingSpot


class CamelModel(BaseModel):
    """
    以 camelCase 收發 JSON 的基底類別，Python 端仍使用 snake_case。
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True

# ========== 通用資料物件 ==========

class HidingSpotDTO(CamelModel):
    """
    藏匿位置（正規化座標）
    """
    object_key: str = Field(..., description="藏身物件的 key，例如 pumpkin")
    rel_x: float = Field(..., strict=True, description="X 座標（0~1）")
    rel_y: float = Field(..., strict=True, description="Y 座標（0~1）")

    class Config:
        json_schema_extra = {
            "example": {"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3}
        }

    def to_domain(self) -> HidingSpot:
        return HidingSpot(object_key=self.object_key, rel_x=self.rel_x, rel_y=self.rel_y)

# ========== 遊戲局 ==========

class CreateGameRequest(CamelModel):
    """
    建立遊戲局請求 DTO（建立者由 X-User-Id 標頭決定）
    """
    game_id: str = Field(..., description="遊戲識別碼")
    map_key: str = Field(..., description="地圖 key，例如 octmap")
    hiding_spot: HidingSpotDTO = Field(..., description="藏匿位置")
    post_id: Optional[str] = Field(None, description="外部貼文 id（可選）")
    post_url: Optional[str] = Field(None, description="外部貼文網址（可選）")

    class Config:
        json_schema_extra = {
            "example": {
                "gameId": "game_001",
                "mapKey": "octmap",
                "hidingSpot": {"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3},
                "postId": "t3_abc123",
            }
        }


class AttachPostRequest(CamelModel):
    post_id: str = Field(..., description="外部貼文 id")
    post_url: Optional[str] = Field(None, description="外部貼文網址")


class GameSessionResponse(CamelModel):
    """
    遊戲局回應 DTO
    """
    game_id: str = Field(..., description="遊戲識別碼")
    creator: str = Field(..., description="建立者 user id")
    creator_username: Optional[str] = Field(None, description="建立者名稱")
    map_key: str = Field(..., description="地圖 key")
    hiding_spot: HidingSpotDTO = Field(..., description="藏匿位置")
    created_at: int = Field(..., description="建立時間（epoch 毫秒）")
    is_active: bool = Field(True, description="是否仍開放猜測")
    post_id: Optional[str] = Field(None, description="外部貼文 id")
    post_url: Optional[str] = Field(None, description="外部貼文網址")

    @classmethod
    def from_domain(cls, session: GameSession) -> "GameSessionResponse":
        return cls.model_validate(session.to_dict())


class PublicGameResponse(CamelModel):
    """
    給猜測者看的遊戲局資訊（不含藏匿位置）
    """
    game_id: str = Field(..., description="遊戲識別碼")
    creator_username: Optional[str] = Field(None, description="建立者名稱")
    map_key: str = Field(..., description="地圖 key")
    created_at: int = Field(..., description="建立時間（epoch 毫秒）")
    is_active: bool = Field(..., description="是否仍開放猜測")
    post_id: Optional[str] = Field(None, description="外部貼文 id")
    post_url: Optional[str] = Field(None, description="外部貼文網址")

    @classmethod
    def from_domain(cls, session: GameSession) -> "PublicGameResponse":
        data = session.to_dict()
        data.pop("hidingSpot")
        return cls.model_validate(data)

# ========== 猜測 ==========

class GuessRequest(CamelModel):
    """
    提交猜測請求 DTO（猜測者由 X-User-Id / X-Username 標頭決定）
    """
    object_key: str = Field(..., description="猜測的物件 key")
    rel_x: float = Field(..., strict=True, description="猜測的 X 座標（0~1）")
    rel_y: float = Field(..., strict=True, description="猜測的 Y 座標（0~1）")

    class Config:
        json_schema_extra = {
            "example": {"objectKey": "pumpkin", "relX": 0.52, "relY": 0.31}
        }


class GuessResponse(CamelModel):
    game_id: str = Field(..., description="遊戲識別碼")
    user_id: str = Field(..., description="猜測者 user id")
    username: str = Field(..., description="猜測者名稱")
    object_key: str = Field(..., description="猜測的物件 key")
    rel_x: float = Field(..., description="X 座標")
    rel_y: float = Field(..., description="Y 座標")
    timestamp: int = Field(..., description="猜測時間（epoch 毫秒）")
    distance: float = Field(..., description="與正確位置的距離")
    is_correct: bool = Field(..., description="是否猜中")

    @classmethod
    def from_domain(cls, guess: GuessData) -> "GuessResponse":
        return cls.model_validate(guess.to_dict())


class RankChangeDTO(CamelModel):
    previous_rank: Optional[str] = Field(None, description="原本的等級")
    new_rank: Optional[str] = Field(None, description="新的等級")


class GuessOutcomeResponse(CamelModel):
    """
    提交猜測回應 DTO
    """
    guess: GuessResponse = Field(..., description="寫入的猜測")
    rank_changed: bool = Field(False, description="等級是否變動")
    rank_change: Optional[RankChangeDTO] = Field(None, description="等級變動內容")

    class Config:
        json_schema_extra = {
            "example": {
                "guess": {
                    "gameId": "game_001",
                    "userId": "u2",
                    "username": "bob",
                    "objectKey": "pumpkin",
                    "relX": 0.52,
                    "relY": 0.31,
                    "timestamp": 1748764800000,
                    "distance": 0.0224,
                    "isCorrect": True,
                },
                "rankChanged": False,
                "rankChange": None,
            }
        }


class GuessStatisticsResponse(CamelModel):
    total_guesses: int = Field(..., description="總猜測次數")
    correct_guesses: int = Field(..., description="猜中次數")
    unique_guessers: int = Field(..., description="不重複的猜測者人數")
    average_distance: float = Field(..., description="平均距離（四捨五入至小數第 4 位）")

    @classmethod
    def from_domain(cls, stats: GuessStatistics) -> "GuessStatisticsResponse":
        return cls.model_validate(stats.to_dict())


class GuessListResponse(CamelModel):
    game_id: str = Field(..., description="遊戲識別碼")
    guesses: List[GuessResponse] = Field(default_factory=list, description="猜測列表，最新的在前")
