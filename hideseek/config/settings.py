"""
Application settings loaded from environment variables (or a .env file).
"""
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DAY_SECONDS = 24 * 60 * 60


class Settings(BaseSettings):
    """
    應用程式設定。

    - **storage_backend**: 使用的 key-value store（redis 或 sql）
    - **store_timeout_seconds**: 每次 store 呼叫的預設逾時
    - **cleanup_***: 排程清理服務的設定
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field("development", description="執行環境")
    app_port: int = Field(8000, description="API 服務埠號")
    log_level: str = Field("INFO", description="日誌等級")

    storage_backend: Literal["redis", "sql"] = Field("redis", description="Key-value store 後端")
    redis_url: str = Field("redis://localhost:6379/0", description="Redis 連線字串")
    database_url: str = Field("sqlite:///./hideseek.db", description="SQL 後端連線字串")
    store_timeout_seconds: float = Field(2.0, gt=0, description="Store 呼叫逾時（秒）")

    game_session_ttl_days: int = Field(30, gt=0)
    guess_ttl_days: int = Field(30, gt=0)
    player_ttl_days: int = Field(90, gt=0)
    default_ttl_days: int = Field(7, gt=0)

    cleanup_enabled: bool = Field(True, description="是否在啟動時開始排程清理")
    cleanup_interval_hours: float = Field(24, gt=0)
    cleanup_retry_attempts: int = Field(3, gt=0)
    cleanup_retry_delay_seconds: float = Field(60, ge=0)
    cleanup_history_limit: int = Field(100, gt=0)
    cleanup_near_expiry_seconds: int = Field(3600, ge=0, description="TTL 低於此值的 key 會被提前刪除")

    health_latency_warning_ms: float = Field(1000, gt=0)

    @property
    def game_session_ttl_seconds(self) -> int:
        return self.game_session_ttl_days * DAY_SECONDS

    @property
    def guess_ttl_seconds(self) -> int:
        return self.guess_ttl_days * DAY_SECONDS

    @property
    def player_ttl_seconds(self) -> int:
        return self.player_ttl_days * DAY_SECONDS

    @property
    def default_ttl_seconds(self) -> int:
        return self.default_ttl_days * DAY_SECONDS


settings = Settings()
