"""
Base repository class for database operations.
Provides common synchronous lookups shared by entity repositories.
"""
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from hideseek.infrastructure.database.utils import with_session

# Type variable for the entity model
T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    基礎資料庫 Repository 類，提供通用的同步查詢操作。

    用法示例:
    ```python
    class KvEntryRepository(BaseRepository[KvEntry]):
        model = KvEntry

    repo = KvEntryRepository(session_factory)
    entry = repo.get_by_id("game:abc123")
    ```
    """
    # 子類需要覆寫此屬性
    model: Type[Any] = None

    def __init__(self, session_factory: sessionmaker):
        """初始化 repository。"""
        if self.__class__.model is None:
            raise NotImplementedError("Repository class must define 'model' attribute")
        self.session_factory = session_factory

    @with_session
    def get_by_id(self, id: Any, db: Optional[Session] = None) -> Optional[T]:
        """
        根據主鍵取得實體。

        Args:
            id: 主鍵
            db: 資料庫 Session（自動注入）

        Returns:
            實體對象，不存在時為 None
        """
        return db.get(self.model, id)
