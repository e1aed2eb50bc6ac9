"""
Declarative base for all SQLAlchemy models.
Table names are derived from the class name (snake_case, plural) unless a model sets one.
"""
import re
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base, declared_attr


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Base:
    @declared_attr
    def __tablename__(cls) -> str:
        # 例如 GameSetup -> game_setups；不規則複數請在模型上自行指定
        snake = re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower()
        return f"{snake}s"


Base = declarative_base(cls=_Base)


class TimeStampMixin:
    """
    建立時間與更新時間欄位。
    """
    created_at = Column(DateTime(timezone=True), default=_utcnow, comment="建立時間")
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, comment="最後更新時間")
