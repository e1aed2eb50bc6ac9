"""
Game 模型定義。
包含遊戲局、藏匿位置、猜測紀錄與統計等資料結構。
Records serialize to flat camelCase JSON objects, which is the wire contract.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hideseek.utils.exceptions import ValidationError


def _require(data: Dict[str, Any], name: str) -> Any:
    if name not in data or data[name] is None:
        raise ValidationError(name, "is required")
    return data[name]


def _ensure_mapping(data: Any, record: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError(record, "must be a JSON object")
    return data


@dataclass
class HidingSpot:
    """
    藏匿位置。
    - **object_key**: 藏身物件的 key（例如 pumpkin）
    - **rel_x** / **rel_y**: 正規化座標，範圍 [0, 1]
    """
    object_key: str
    rel_x: float
    rel_y: float

    def to_dict(self) -> Dict[str, Any]:
        return {"objectKey": self.object_key, "relX": self.rel_x, "relY": self.rel_y}

    @classmethod
    def from_dict(cls, data: Any) -> "HidingSpot":
        data = _ensure_mapping(data, "hidingSpot")
        return cls(
            object_key=_require(data, "objectKey"),
            rel_x=_require(data, "relX"),
            rel_y=_require(data, "relY"),
        )


@dataclass
class GameSession:
    """
    一局捉迷藏挑戰。
    - **game_id**: 遊戲唯一識別碼，建立後不可變
    - **creator**: 建立者的 user id
    - **map_key**: 地圖 key
    - **hiding_spot**: 藏匿位置
    - **created_at**: 建立時間（epoch 毫秒）
    - **is_active**: 是否仍開放猜測
    - **post_id** / **post_url**: 外部貼文參照（發佈後才會有）
    """
    game_id: str
    creator: str
    map_key: str
    hiding_spot: HidingSpot
    created_at: int
    is_active: bool = True
    creator_username: Optional[str] = None
    post_id: Optional[str] = None
    post_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "gameId": self.game_id,
            "creator": self.creator,
            "mapKey": self.map_key,
            "hidingSpot": self.hiding_spot.to_dict(),
            "createdAt": self.created_at,
            "isActive": self.is_active,
        }
        # 選填欄位只在有值時輸出
        if self.creator_username is not None:
            data["creatorUsername"] = self.creator_username
        if self.post_id is not None:
            data["postId"] = self.post_id
        if self.post_url is not None:
            data["postUrl"] = self.post_url
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GameSession":
        data = _ensure_mapping(data, "gameSession")
        return cls(
            game_id=_require(data, "gameId"),
            creator=_require(data, "creator"),
            map_key=_require(data, "mapKey"),
            hiding_spot=HidingSpot.from_dict(_require(data, "hidingSpot")),
            created_at=_require(data, "createdAt"),
            is_active=data.get("isActive", True),
            creator_username=data.get("creatorUsername"),
            post_id=data.get("postId"),
            post_url=data.get("postUrl"),
        )


@dataclass
class GuessData:
    """
    單次猜測紀錄，寫入後不可變。
    - **distance**: 與真實位置的歐氏距離（正規化座標）
    - **is_correct**: 物件相同且距離不超過門檻時為 True
    """
    game_id: str
    user_id: str
    username: str
    object_key: str
    rel_x: float
    rel_y: float
    timestamp: int
    distance: float
    is_correct: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gameId": self.game_id,
            "userId": self.user_id,
            "username": self.username,
            "objectKey": self.object_key,
            "relX": self.rel_x,
            "relY": self.rel_y,
            "timestamp": self.timestamp,
            "distance": self.distance,
            "isCorrect": self.is_correct,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "GuessData":
        data = _ensure_mapping(data, "guess")
        return cls(
            game_id=_require(data, "gameId"),
            user_id=_require(data, "userId"),
            username=_require(data, "username"),
            object_key=_require(data, "objectKey"),
            rel_x=_require(data, "relX"),
            rel_y=_require(data, "relY"),
            timestamp=_require(data, "timestamp"),
            distance=_require(data, "distance"),
            is_correct=_require(data, "isCorrect"),
        )


@dataclass
class GuessStatistics:
    """
    由猜測集合推導出的統計，非權威資料。
    """
    total_guesses: int = 0
    correct_guesses: int = 0
    unique_guessers: int = 0
    average_distance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalGuesses": self.total_guesses,
            "correctGuesses": self.correct_guesses,
            "uniqueGuessers": self.unique_guessers,
            "averageDistance": self.average_distance,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "GuessStatistics":
        data = _ensure_mapping(data, "statistics")
        return cls(
            total_guesses=_require(data, "totalGuesses"),
            correct_guesses=_require(data, "correctGuesses"),
            unique_guessers=_require(data, "uniqueGuessers"),
            average_distance=_require(data, "averageDistance"),
        )


@dataclass
class MapObject:
    key: str
    name: str
    x: float
    y: float
    width: float
    height: float
    interactive: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "interactive": self.interactive,
        }


@dataclass
class VirtualMap:
    """
    可遊玩場景的靜態目錄項目，對本子系統而言是唯讀資料。
    """
    key: str
    name: str
    theme: str
    release_date: int
    background_asset: str
    objects: List[MapObject] = field(default_factory=list)
    difficulty: Optional[str] = None

    @property
    def object_keys(self) -> List[str]:
        return [obj.key for obj in self.objects]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "theme": self.theme,
            "releaseDate": self.release_date,
            "backgroundAsset": self.background_asset,
            "objects": [obj.to_dict() for obj in self.objects],
        }
        if self.difficulty is not None:
            data["difficulty"] = self.difficulty
        return data
