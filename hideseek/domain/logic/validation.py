"""
Record validation.
Every record is validated before it is written and again after it is read.
Validators reject rather than coerce: bad values raise ValidationError(field_name, reason).
"""
import math
import re
from typing import Any, Optional

from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.domain.logic.rank import RATE_TOLERANCE, calculate_rank, calculate_success_rate
from hideseek.domain.models.game import GameSession, GuessData, GuessStatistics, HidingSpot, VirtualMap
from hideseek.domain.models.player import PlayerProfile, Rank
from hideseek.utils.exceptions import ValidationError

OBJECT_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
MAX_ID_LENGTH = 128
MAX_OBJECT_KEY_LENGTH = 50
MAX_POST_ID_LENGTH = 100
MAX_USERNAME_LENGTH = 50
DEFAULT_USERNAME = "Anonymous"

_default_catalog: Optional[MapCatalog] = None


def _catalog(catalog: Optional[MapCatalog]) -> MapCatalog:
    global _default_catalog
    if catalog is not None:
        return catalog
    if _default_catalog is None:
        _default_catalog = MapCatalog()
    return _default_catalog


def _is_number(value: Any) -> bool:
    # bool 是 int 的子類別，必須排除
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")
    if not value:
        raise ValidationError(field_name, "must not be empty")
    return value


# ========== 識別碼 ==========

def validate_identifier(value: Any, field_name: str) -> None:
    """
    驗證會嵌入 key 的識別碼（gameId、userId）。

    Raises:
        ValidationError: 空字串、超過 128 字元、含有 ':' 或空白
    """
    _require_str(value, field_name)
    if len(value) > MAX_ID_LENGTH:
        raise ValidationError(field_name, f"must be at most {MAX_ID_LENGTH} characters")
    if ":" in value or any(ch.isspace() for ch in value):
        raise ValidationError(field_name, "must not contain ':' or whitespace")


def validate_game_id(value: Any) -> None:
    validate_identifier(value, "gameId")


def validate_user_id(value: Any, field_name: str = "userId") -> None:
    validate_identifier(value, field_name)


def validate_post_id(value: Any) -> None:
    _require_str(value, "postId")
    if len(value) > MAX_POST_ID_LENGTH:
        raise ValidationError("postId", f"must be at most {MAX_POST_ID_LENGTH} characters")
    if ":" in value or any(ch.isspace() for ch in value):
        raise ValidationError("postId", "must not contain ':' or whitespace")


def validate_username(value: Any) -> None:
    _require_str(value, "username")
    if len(value) > MAX_USERNAME_LENGTH:
        raise ValidationError("username", f"must be at most {MAX_USERNAME_LENGTH} characters")


def normalize_username(value: Optional[str]) -> str:
    """缺少或空白的使用者名稱以 "Anonymous" 取代。"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_USERNAME
    return value


def validate_map_key(value: Any, catalog: Optional[MapCatalog] = None) -> None:
    _require_str(value, "mapKey")
    if not _catalog(catalog).is_known_map(value):
        raise ValidationError("mapKey", f"unknown map {value!r}")


def validate_object_key(value: Any, map_key: Optional[str] = None, catalog: Optional[MapCatalog] = None) -> None:
    """
    驗證物件 key 的格式；有給 map_key 時另外檢查物件是否屬於該地圖。
    """
    _require_str(value, "objectKey")
    if len(value) > MAX_OBJECT_KEY_LENGTH:
        raise ValidationError("objectKey", f"must be at most {MAX_OBJECT_KEY_LENGTH} characters")
    if not OBJECT_KEY_PATTERN.match(value):
        raise ValidationError("objectKey", "must match ^[A-Za-z0-9_-]+$")
    if map_key is not None and not _catalog(catalog).is_known_object(map_key, value):
        raise ValidationError("objectKey", f"{value!r} is not an object of map {map_key!r}")


def validate_coordinate(value: Any, field_name: str) -> None:
    if not _is_number(value):
        raise ValidationError(field_name, "must be a finite number")
    if value < 0 or value > 1:
        raise ValidationError(field_name, "must be within [0, 1]")


def validate_timestamp(value: Any, field_name: str) -> None:
    if not _is_int(value) or value <= 0:
        raise ValidationError(field_name, "must be a positive integer (epoch ms)")


def _validate_count(value: Any, field_name: str) -> None:
    if not _is_int(value) or value < 0:
        raise ValidationError(field_name, "must be a non-negative integer")


# ========== 紀錄 ==========

def validate_hiding_spot(
    spot: Any,
    map_key: Optional[str] = None,
    catalog: Optional[MapCatalog] = None,
) -> None:
    if not isinstance(spot, HidingSpot):
        raise ValidationError("hidingSpot", "is required")
    validate_object_key(spot.object_key, map_key=map_key, catalog=catalog)
    validate_coordinate(spot.rel_x, "relX")
    validate_coordinate(spot.rel_y, "relY")


def validate_game_session(session: GameSession, catalog: Optional[MapCatalog] = None) -> None:
    """
    驗證遊戲局紀錄。

    Args:
        session: 要驗證的 GameSession
        catalog: 地圖目錄（用來檢查 mapKey 與 objectKey）

    Raises:
        ValidationError: 任一欄位不符合規則
    """
    validate_game_id(session.game_id)
    validate_user_id(session.creator, "creator")
    validate_map_key(session.map_key, catalog)
    validate_hiding_spot(session.hiding_spot, map_key=session.map_key, catalog=catalog)
    validate_timestamp(session.created_at, "createdAt")
    if not isinstance(session.is_active, bool):
        raise ValidationError("isActive", "must be a boolean")
    if session.creator_username is not None:
        validate_username(session.creator_username)
    if session.post_id is not None:
        validate_post_id(session.post_id)
    if session.post_url is not None:
        _require_str(session.post_url, "postUrl")


def validate_guess(guess: GuessData) -> None:
    validate_game_id(guess.game_id)
    validate_user_id(guess.user_id)
    validate_username(guess.username)
    validate_object_key(guess.object_key)
    validate_coordinate(guess.rel_x, "relX")
    validate_coordinate(guess.rel_y, "relY")
    validate_timestamp(guess.timestamp, "timestamp")
    if not _is_number(guess.distance) or guess.distance < 0:
        raise ValidationError("distance", "must be a non-negative number")
    if not isinstance(guess.is_correct, bool):
        raise ValidationError("isCorrect", "must be a boolean")


def validate_guess_statistics(stats: GuessStatistics) -> None:
    _validate_count(stats.total_guesses, "totalGuesses")
    _validate_count(stats.correct_guesses, "correctGuesses")
    _validate_count(stats.unique_guessers, "uniqueGuessers")
    if stats.correct_guesses > stats.total_guesses:
        raise ValidationError("correctGuesses", "must not exceed totalGuesses")
    if stats.unique_guessers > stats.total_guesses:
        raise ValidationError("uniqueGuessers", "must not exceed totalGuesses")
    if not _is_number(stats.average_distance) or stats.average_distance < 0:
        raise ValidationError("averageDistance", "must be a non-negative number")


def validate_player_profile(profile: PlayerProfile) -> None:
    """
    驗證玩家檔案，包含成功率與等級必須和統計數據一致。
    """
    validate_user_id(profile.user_id)
    validate_username(profile.username)
    if not isinstance(profile.rank, Rank):
        raise ValidationError("rank", "must be a known rank")
    _validate_count(profile.total_guesses, "totalGuesses")
    _validate_count(profile.successful_guesses, "successfulGuesses")
    if profile.successful_guesses > profile.total_guesses:
        raise ValidationError("successfulGuesses", "must not exceed totalGuesses")
    if not _is_number(profile.success_rate) or not 0 <= profile.success_rate <= 1:
        raise ValidationError("successRate", "must be within [0, 1]")
    expected_rate = calculate_success_rate(profile.total_guesses, profile.successful_guesses)
    if abs(profile.success_rate - expected_rate) > RATE_TOLERANCE:
        raise ValidationError("successRate", "does not match successfulGuesses / totalGuesses")
    expected_rank = calculate_rank(profile.total_guesses, profile.successful_guesses, expected_rate)
    if profile.rank != expected_rank:
        raise ValidationError("rank", f"expected {expected_rank.value} for current statistics")
    validate_timestamp(profile.joined_at, "joinedAt")
    validate_timestamp(profile.last_active, "lastActive")
    if profile.last_active < profile.joined_at:
        raise ValidationError("lastActive", "must not be before joinedAt")


def validate_virtual_map(virtual_map: VirtualMap) -> None:
    _require_str(virtual_map.key, "key")
    _require_str(virtual_map.name, "name")
    _require_str(virtual_map.theme, "theme")
    validate_timestamp(virtual_map.release_date, "releaseDate")
    if not virtual_map.objects:
        raise ValidationError("objects", "must not be empty")
    seen = set()
    for obj in virtual_map.objects:
        validate_object_key(obj.key)
        if obj.key in seen:
            raise ValidationError("objects", f"duplicate object key {obj.key!r}")
        seen.add(obj.key)
        for name in ("x", "y", "width", "height"):
            if not _is_number(getattr(obj, name)):
                raise ValidationError(name, "must be a finite number")
        if obj.width <= 0 or obj.height <= 0:
            raise ValidationError("objects", f"{obj.key!r} must have a positive size")
