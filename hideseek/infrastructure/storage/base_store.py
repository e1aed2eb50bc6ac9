"""
Base class for stores that keep JSON records in the key-value store.
"""
import json
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.keys import KeySpace
from hideseek.utils.exceptions import ValidationError
from hideseek.utils.logger import logger

T = TypeVar('T')


def epoch_ms() -> int:
    return int(time.time() * 1000)


class JsonRecordStore:
    """
    JSON 紀錄存取的共用邏輯。

    讀取時會解碼並驗證；無法解碼或驗證失敗的紀錄會記錄警告並視為不存在。
    寫入時先 SET 再套用該 key 類型的 TTL。
    """

    def __init__(self, adapter: KeyValueAdapter, keyspace: KeySpace, clock: Callable[[], int] = epoch_ms):
        self.adapter = adapter
        self.keyspace = keyspace
        self.clock = clock

    def _read(
        self,
        key: str,
        decode: Callable[[Any], T],
        validate: Optional[Callable[[T], None]] = None,
    ) -> Optional[T]:
        raw = self.adapter.get(key)
        if raw is None:
            return None
        try:
            record = decode(json.loads(raw))
            if validate is not None:
                validate(record)
        except (ValueError, TypeError) as e:
            logger.warning("Discarding undecodable record", extra={"key": key, "error": str(e)})
            return None
        except ValidationError as e:
            logger.warning("Discarding invalid record", extra={"key": key, "error": e.message})
            return None
        return record

    def _write(self, key: str, data: Dict[str, Any], only_if_absent: bool = False) -> bool:
        payload = json.dumps(data, separators=(",", ":")).encode("utf-8")
        written = self.adapter.set(key, payload, only_if_absent=only_if_absent)
        if written:
            self.adapter.set_ttl(key, self.keyspace.ttl_for(key))
        return written
