"""
KvEntry 模型定義。
SQL 後端的 key-value 資料表，提供與 Redis 相同的 TTL 語意。
"""

from sqlalchemy import Column, Float, Index, LargeBinary, String
from .base import Base, TimeStampMixin


class KvEntry(Base, TimeStampMixin):
    """
    Key-value 資料表。

    - **key**: 主鍵，完整的 store key（例如 game:abc123）
    - **value**: 原始位元組內容（通常是 JSON）
    - **expires_at**: 到期時間（epoch 秒），NULL 表示永不過期

    範例：
    ```python
    KvEntry(key="game:abc123", value=b'{"gameId": "abc123"}', expires_at=None)
    ```
    """
    __tablename__ = "kv_entries"

    key = Column(
        String(512),
        primary_key=True,
        comment="完整的 store key"
    )

    value = Column(
        LargeBinary,
        nullable=False,
        comment="原始位元組內容"
    )

    expires_at = Column(
        Float,
        nullable=True,
        comment="到期時間（epoch 秒），NULL 表示沒有 TTL"
    )

    __table_args__ = (
        Index("idx_kv_entries_expires_at", "expires_at"),
    )

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self):
        return f"<KvEntry key={self.key}, expires_at={self.expires_at}>"
