"""
Key-value store adapter.
The only component that talks to a store backend. Every call runs under a timeout,
and backend failures surface as StorageError. No business logic and no TTL defaults.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from hideseek.utils.exceptions import StorageError
from hideseek.utils.logger import logger

BACKEND_ERRORS = (RedisError, SQLAlchemyError, OSError)


class KeyValueAdapter:
    """
    包裝 store 後端（RedisKeyValueStore 或 SqlKeyValueStore）的統一介面。

    - 每次呼叫都有逾時（可逐次指定，否則用預設值）
    - 後端錯誤與逾時一律轉成 StorageError
    - 記錄呼叫延遲，供健康檢查使用

    用法示例:
    ```python
    adapter = KeyValueAdapter(backend, timeout=2.0)
    adapter.set("game:abc", b"{}")
    adapter.set_ttl("game:abc", 2592000)
    adapter.get_ttl("game:abc")
    ```
    """

    def __init__(self, backend: Any, timeout: float = 2.0, max_workers: int = 8):
        self.backend = backend
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kv-store")
        self._lock = threading.Lock()
        self._calls = 0
        self._failures = 0
        self._total_ms = 0.0
        self._max_ms = 0.0
        self._last_ms = 0.0

    def _record(self, elapsed_ms: float, failed: bool) -> None:
        with self._lock:
            self._calls += 1
            self._total_ms += elapsed_ms
            self._max_ms = max(self._max_ms, elapsed_ms)
            self._last_ms = elapsed_ms
            if failed:
                self._failures += 1

    def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        *args: Any,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        limit = self.timeout if timeout is None else timeout
        started = time.perf_counter()
        failed = True
        try:
            future = self._executor.submit(fn, *args)
            result = future.result(timeout=limit)
            failed = False
            return result
        except FuturesTimeoutError:
            # 逾時的呼叫視為失敗，背景執行緒的結果會被丟棄
            future.cancel()
            logger.warning("Store call timed out", extra={"operation": operation, "key": key, "timeout": limit})
            raise StorageError(f"Store {operation} timed out after {limit}s", operation=operation, key=key)
        except BACKEND_ERRORS as e:
            logger.error("Store call failed", extra={"operation": operation, "key": key, "error": str(e)})
            raise StorageError(f"Store {operation} failed: {e}", operation=operation, key=key) from e
        finally:
            self._record((time.perf_counter() - started) * 1000, failed)

    def get(self, key: str, timeout: Optional[float] = None) -> Optional[bytes]:
        return self._call("get", self.backend.get, key, key=key, timeout=timeout)

    def set(self, key: str, value: bytes, only_if_absent: bool = False, timeout: Optional[float] = None) -> bool:
        """
        寫入 key。與 Redis 相同會清除原有 TTL，呼叫端必須自行 set_ttl。

        Args:
            key: 完整 key
            value: 位元組內容
            only_if_absent: 等同 SET NX
            timeout: 本次呼叫的逾時（秒）

        Returns:
            是否有寫入

        Raises:
            StorageError: 後端錯誤或逾時
        """
        return self._call("set", self.backend.set, key, value, only_if_absent, key=key, timeout=timeout)

    def delete(self, *keys: str, timeout: Optional[float] = None) -> int:
        if not keys:
            return 0
        return self._call("delete", self.backend.delete, *keys, key=keys[0], timeout=timeout)

    def exists(self, key: str, timeout: Optional[float] = None) -> bool:
        return self._call("exists", self.backend.exists, key, key=key, timeout=timeout)

    def set_ttl(self, key: str, seconds: int, timeout: Optional[float] = None) -> bool:
        return self._call("expire", self.backend.expire, key, seconds, key=key, timeout=timeout)

    def get_ttl(self, key: str, timeout: Optional[float] = None) -> int:
        """
        Returns:
            -2 表示 key 不存在，-1 表示沒有 TTL，其餘為剩餘秒數
        """
        return self._call("ttl", self.backend.ttl, key, key=key, timeout=timeout)

    def scan(self, pattern: str, timeout: Optional[float] = None) -> List[str]:
        return self._call("scan", self.backend.scan, pattern, key=pattern, timeout=timeout)

    def ping(self, timeout: Optional[float] = None) -> bool:
        return self._call("ping", self.backend.ping, timeout=timeout)

    def purge_expired(self, timeout: Optional[float] = None) -> int:
        """
        清除後端殘留的過期資料。Redis 會自行回收過期 key，沒有此方法的後端回傳 0。

        Returns:
            清除的筆數
        """
        purge = getattr(self.backend, "purge_expired", None)
        if purge is None:
            return 0
        return self._call("purge", purge, timeout=timeout)

    def latency_stats(self) -> Dict[str, Any]:
        with self._lock:
            average = self._total_ms / self._calls if self._calls else 0.0
            return {
                "calls": self._calls,
                "failures": self._failures,
                "averageMs": round(average, 3),
                "maxMs": round(self._max_ms, 3),
                "lastMs": round(self._last_ms, 3),
            }

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()
