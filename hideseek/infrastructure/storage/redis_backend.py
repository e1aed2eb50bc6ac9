"""
Redis backend for the key-value adapter, built on redis-py.
"""
from typing import List, Optional

import redis


class RedisKeyValueStore:
    """
    redis-py 用戶端的薄包裝，提供 KeyValueAdapter 需要的指令。

    redis-py 的 client 自帶連線池且可跨執行緒共用。

    用法示例:
    ```python
    store = RedisKeyValueStore.from_url("redis://localhost:6379/0", socket_timeout=2.0)
    adapter = KeyValueAdapter(store, timeout=2.0)
    ```
    """

    SCAN_COUNT = 500

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: Optional[float] = None) -> "RedisKeyValueStore":
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=False,
        )
        return cls(client)

    def get(self, key: str) -> Optional[bytes]:
        return self.client.get(key)

    def set(self, key: str, value: bytes, only_if_absent: bool = False) -> bool:
        # SET NX 在 key 已存在時回傳 None
        return bool(self.client.set(key, value, nx=only_if_absent))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self.client.delete(*keys))

    def exists(self, key: str) -> bool:
        return int(self.client.exists(key)) > 0

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self.client.expire(key, seconds))

    def ttl(self, key: str) -> int:
        return int(self.client.ttl(key))

    def scan(self, pattern: str) -> List[str]:
        return [
            key.decode("utf-8") if isinstance(key, bytes) else key
            for key in self.client.scan_iter(match=pattern, count=self.SCAN_COUNT)
        ]

    def ping(self) -> bool:
        return bool(self.client.ping())

    def close(self) -> None:
        self.client.close()
