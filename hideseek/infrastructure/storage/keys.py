"""
Key space of the key-value store.
Builds every key the subsystem writes and resolves the TTL a key type should carry.
"""
from typing import Optional

from hideseek.config.settings import Settings

GAME_PREFIX = "game:"
POST_PREFIX = "post:"
PLAYER_PREFIX = "player:"
LEGACY_SESSION_PREFIX = "game_session:"
LEGACY_POST_PREFIX = "post_mapping:"

# 清理服務掃描的 key 模式
SWEEP_PATTERNS = ["game:*", "post:*", "player:*", "game_session:*", "post_mapping:*"]

_GLOB_SPECIALS = set("*?[]\\")


def escape_glob(value: str) -> str:
    """跳脫 glob 特殊字元，讓識別碼可以安全地嵌入 SCAN 模式。"""
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIALS else ch for ch in value)


def game_key(game_id: str) -> str:
    return f"{GAME_PREFIX}{game_id}"


def post_key(post_id: str) -> str:
    return f"{POST_PREFIX}{post_id}"


def guess_key(game_id: str, user_id: str, timestamp: int) -> str:
    return f"{GAME_PREFIX}{game_id}:guess:{user_id}:{timestamp}"


def guess_pattern(game_id: str, user_id: Optional[str] = None) -> str:
    if user_id is None:
        return f"{GAME_PREFIX}{escape_glob(game_id)}:guess:*"
    return f"{GAME_PREFIX}{escape_glob(game_id)}:guess:{escape_glob(user_id)}:*"


def stats_key(game_id: str) -> str:
    return f"{GAME_PREFIX}{game_id}:stats"


def player_key(user_id: str) -> str:
    return f"{PLAYER_PREFIX}{user_id}"


def legacy_session_key(game_id: str) -> str:
    return f"{LEGACY_SESSION_PREFIX}{game_id}"


def legacy_post_key(post_id: str) -> str:
    return f"{LEGACY_POST_PREFIX}{post_id}"


def game_id_from_key(key: str) -> Optional[str]:
    """
    從 game:{gameId} 取出 gameId；guess 或 stats 等子 key 回傳 None。
    """
    if not key.startswith(GAME_PREFIX):
        return None
    rest = key[len(GAME_PREFIX):]
    if not rest or ":" in rest:
        return None
    return rest


def classify_key(key: str) -> str:
    """
    判斷 key 的類型。

    Returns:
        game_session / guess / stats / post_mapping / player / legacy_session /
        legacy_post_mapping / other 其中之一
    """
    if key.startswith(LEGACY_SESSION_PREFIX):
        return "legacy_session"
    if key.startswith(LEGACY_POST_PREFIX):
        return "legacy_post_mapping"
    if key.startswith(PLAYER_PREFIX):
        return "player"
    if key.startswith(POST_PREFIX):
        return "post_mapping"
    if key.startswith(GAME_PREFIX):
        rest = key[len(GAME_PREFIX):]
        if ":guess:" in rest:
            return "guess"
        if rest.endswith(":stats"):
            return "stats"
        if rest and ":" not in rest:
            return "game_session"
    return "other"


class KeySpace:
    """
    依設定決定各類 key 的 TTL。

    用法示例:
    ```python
    keyspace = KeySpace(settings)
    keyspace.ttl_for("player:u1")   # 90 天（秒）
    keyspace.ttl_for("misc:foo")    # 預設 7 天（秒）
    ```
    """

    def __init__(self, settings: Settings):
        self.session_ttl = settings.game_session_ttl_seconds
        self.guess_ttl = settings.guess_ttl_seconds
        self.player_ttl = settings.player_ttl_seconds
        self.default_ttl = settings.default_ttl_seconds

    def ttl_for(self, key: str) -> int:
        kind = classify_key(key)
        if kind in ("game_session", "post_mapping", "legacy_session", "legacy_post_mapping"):
            return self.session_ttl
        if kind in ("guess", "stats"):
            return self.guess_ttl
        if kind == "player":
            return self.player_ttl
        return self.default_ttl
