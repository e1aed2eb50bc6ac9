"""
Maintenance 模型定義。
清理排程的執行紀錄與狀態。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class CleanupState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class SweepReport:
    """
    單次掃描的結果。
    - **scanned_keys**: 檢查過的 key 數
    - **deleted_keys**: 即將過期而被刪除的 key 數
    - **repaired_keys**: 缺少 TTL 而被補上的 key 數
    - **purged_keys**: 後端清除的過期資料筆數
    - **errors**: 個別 key 處理失敗的次數
    """
    scanned_keys: int = 0
    deleted_keys: int = 0
    repaired_keys: int = 0
    errors: int = 0
    purged_keys: int = 0


@dataclass
class CleanupResult:
    """
    一次清理（含重試）的執行紀錄。
    - **timestamp**: 完成時間（epoch 毫秒）
    - **attempt**: 實際使用的嘗試次數
    - **forced**: 是否為手動觸發
    """
    timestamp: int
    success: bool
    deleted_keys: int
    repaired_keys: int
    scanned_keys: int
    errors: int
    duration_ms: int
    attempt: int
    forced: bool = False
    error: Optional[str] = None
    purged_keys: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "success": self.success,
            "deletedKeys": self.deleted_keys,
            "repairedKeys": self.repaired_keys,
            "purgedKeys": self.purged_keys,
            "scannedKeys": self.scanned_keys,
            "errors": self.errors,
            "durationMs": self.duration_ms,
            "attempt": self.attempt,
            "forced": self.forced,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
