"""
Gameplay tuning parameters.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GameConfig(BaseSettings):
    """
    遊戲平衡參數，可用 GAME_ 開頭的環境變數覆寫。

    - **guess_success_threshold**: 正規化座標中判定猜中的最大距離
    - **guess_cooldown_ms**: 同一玩家在同一局兩次猜測的最短間隔（0 表示不限制）
    - **max_guesses_per_player**: 每位玩家每局最多猜測次數（0 表示不限制）
    """
    model_config = SettingsConfigDict(env_prefix="GAME_", extra="ignore")

    guess_success_threshold: float = Field(0.05, gt=0, le=1)
    guess_cooldown_ms: int = Field(2000, ge=0)
    max_guesses_per_player: int = Field(100, ge=0)
    leaderboard_size: int = Field(10, gt=0)


game_config = GameConfig()
