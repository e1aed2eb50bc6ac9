"""
資料庫工具函數。
提供資料庫操作的輔助功能。
"""
import functools
from typing import Any, Callable, TypeVar

from hideseek.infrastructure.database.session import session_scope

T = TypeVar('T')


def with_session(func: Callable[..., T]) -> Callable[..., T]:
    """
    裝飾器：自動處理 session 的創建和關閉。

    當方法的 db 參數為 None 時，使用 repository 的 session_factory 創建新的 session，
    執行完畢後提交並關閉（失敗時回滾）；有傳入 db 時直接沿用，交易由呼叫者負責。

    用法：
    ```python
    @with_session
    def get_entry(self, key: str, db: Session = None) -> KvEntry:
        return db.get(KvEntry, key)
    ```

    Args:
        func: 要裝飾的方法，必須有一個名為 db 的關鍵字參數

    Returns:
        裝飾後的方法
    """
    @functools.wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any) -> T:
        if kwargs.get('db') is not None:
            return func(self, *args, **kwargs)

        with session_scope(self.session_factory) as db:
            kwargs['db'] = db
            return func(self, *args, **kwargs)

    return wrapper
