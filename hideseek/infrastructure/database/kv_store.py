"""
SQL-backed key-value store.
Mirrors the Redis commands the adapter relies on (GET/SET/DEL/EXISTS/EXPIRE/TTL/SCAN)
on top of the kv_entries table, including Redis TTL semantics:
SET clears any TTL, TTL returns -2 for a missing key and -1 for a key without expiry,
and expired rows are invisible to readers.
"""
import math
import re
import time
from typing import Callable, List, Optional

from sqlalchemy import delete, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from hideseek.infrastructure.database.base_repo import BaseRepository
from hideseek.infrastructure.database.models.base import Base
from hideseek.infrastructure.database.models.kv_entry import KvEntry
from hideseek.infrastructure.database.utils import with_session
from hideseek.utils.logger import logger

_WILDCARDS = "*?["


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """
    將 Redis 風格的 glob（* ? [...] 以及 \\ 跳脫）轉成正規表示式。
    """
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1:end]
                negate = body.startswith("^")
                if negate:
                    body = body[1:]
                body = body.replace("\\", "\\\\")
                out.append(f"[{'^' if negate else ''}{body}]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.DOTALL)


def literal_prefix(pattern: str) -> str:
    """回傳 glob 中第一個萬用字元之前的字面前綴（已去除跳脫）。"""
    prefix = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            prefix.append(pattern[i + 1])
            i += 2
            continue
        if ch in _WILDCARDS:
            break
        prefix.append(ch)
        i += 1
    return "".join(prefix)


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SqlKeyValueStore(BaseRepository[KvEntry]):
    """
    以 SQL 資料表實作的 key-value store，可直接交給 KeyValueAdapter 使用。

    用法示例:
    ```python
    engine = create_db_engine("sqlite:///./hideseek.db")
    store = SqlKeyValueStore(create_session_factory(engine))
    store.create_schema()

    store.set("game:abc", b"{}")
    store.expire("game:abc", 60)
    store.ttl("game:abc")   # 60
    ```
    """

    model = KvEntry

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], float] = time.time):
        super().__init__(session_factory)
        self.clock = clock

    def create_schema(self) -> None:
        """建立資料表（測試與 SQLite 開發環境使用，正式環境請跑 Alembic migration）。"""
        Base.metadata.create_all(self.session_factory.kw["bind"])

    def _live(self, db: Session, key: str) -> Optional[KvEntry]:
        entry = self.get_by_id(key, db=db)
        if entry is not None and entry.is_expired(self.clock()):
            # 過期資料延遲刪除
            db.delete(entry)
            db.flush()
            return None
        return entry

    @with_session
    def get(self, key: str, db: Optional[Session] = None) -> Optional[bytes]:
        entry = self._live(db, key)
        return None if entry is None else entry.value

    @with_session
    def set(self, key: str, value: bytes, only_if_absent: bool = False, db: Optional[Session] = None) -> bool:
        """
        寫入 key；與 Redis SET 相同，會清除原本的 TTL。

        Args:
            key: 完整 key
            value: 位元組內容
            only_if_absent: 為 True 時等同 SET NX，key 已存在則不寫入

        Returns:
            是否有寫入
        """
        entry = self._live(db, key)
        if entry is not None:
            if only_if_absent:
                return False
            entry.value = value
            entry.expires_at = None
            return True

        db.add(KvEntry(key=key, value=value, expires_at=None))
        try:
            db.flush()
        except IntegrityError:
            # 同時有其他寫入者插入相同 key
            db.rollback()
            if only_if_absent:
                return False
            db.merge(KvEntry(key=key, value=value, expires_at=None))
        return True

    @with_session
    def delete(self, *keys: str, db: Optional[Session] = None) -> int:
        if not keys:
            return 0
        now = self.clock()
        entries = db.execute(select(KvEntry).where(KvEntry.key.in_(keys))).scalars().all()
        removed = sum(1 for entry in entries if not entry.is_expired(now))
        for entry in entries:
            db.delete(entry)
        return removed

    @with_session
    def exists(self, key: str, db: Optional[Session] = None) -> bool:
        return self._live(db, key) is not None

    @with_session
    def expire(self, key: str, seconds: int, db: Optional[Session] = None) -> bool:
        entry = self._live(db, key)
        if entry is None:
            return False
        if seconds <= 0:
            # Redis 對非正數的 EXPIRE 直接刪除 key
            db.delete(entry)
            return True
        entry.expires_at = self.clock() + seconds
        return True

    @with_session
    def ttl(self, key: str, db: Optional[Session] = None) -> int:
        entry = self._live(db, key)
        if entry is None:
            return -2
        if entry.expires_at is None:
            return -1
        return max(int(math.ceil(entry.expires_at - self.clock())), 0)

    @with_session
    def scan(self, pattern: str, db: Optional[Session] = None) -> List[str]:
        """
        列出符合 glob 的所有未過期 key。

        先以字面前綴做 LIKE 篩選，再用正規表示式比對完整 key（SQLite 的 LIKE 不分大小寫）。
        """
        now = self.clock()
        matcher = glob_to_regex(pattern)
        stmt = (
            select(KvEntry.key)
            .where(KvEntry.key.like(_like_prefix(literal_prefix(pattern)), escape="\\"))
            .where((KvEntry.expires_at.is_(None)) | (KvEntry.expires_at > now))
        )
        keys = db.execute(stmt).scalars().all()
        return [key for key in keys if matcher.fullmatch(key)]

    @with_session
    def ping(self, db: Optional[Session] = None) -> bool:
        db.execute(text("SELECT 1"))
        return True

    @with_session
    def purge_expired(self, db: Optional[Session] = None) -> int:
        """
        刪除所有已過期的資料列。

        Returns:
            刪除的筆數
        """
        result = db.execute(
            delete(KvEntry).where(KvEntry.expires_at.is_not(None)).where(KvEntry.expires_at <= self.clock())
        )
        if result.rowcount:
            logger.info("Purged expired kv entries", extra={"count": result.rowcount})
        return result.rowcount or 0
