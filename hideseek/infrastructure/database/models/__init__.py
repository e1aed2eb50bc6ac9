from .base import Base, TimeStampMixin
from .kv_entry import KvEntry

__all__ = ["Base", "TimeStampMixin", "KvEntry"]
