"""
Expiration service.
Sweeps the key space for keys without a TTL (repaired) and keys about to expire
(deleted early), gathers storage statistics, and runs the storage health check.
"""
import time
from typing import Any, Callable, Dict, List

from hideseek.domain.models.maintenance import SweepReport
from hideseek.infrastructure.storage import keys
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import epoch_ms
from hideseek.infrastructure.storage.keys import SWEEP_PATTERNS, KeySpace, classify_key
from hideseek.utils.exceptions import StorageError
from hideseek.utils.logger import logger

HEALTH_CHECK_KEY = "health_check_test_key"
# ensure_game_expiration 會刷新剩餘不到一天的 key
REFRESH_BELOW_SECONDS = 24 * 60 * 60
# 即將過期的 key 超過此數量時在健康檢查中提出建議
EXPIRING_SOON_WARNING = 100


class ExpirationService:
    """
    TTL 維護邏輯，供排程清理服務與維運 API 使用。

    用法示例:
    ```python
    service = ExpirationService(adapter, keyspace, near_expiry_seconds=3600)
    report = service.sweep()
    report.repaired_keys
    ```
    """

    def __init__(
        self,
        adapter: KeyValueAdapter,
        keyspace: KeySpace,
        near_expiry_seconds: int = 3600,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.adapter = adapter
        self.keyspace = keyspace
        self.near_expiry_seconds = near_expiry_seconds
        self.clock = clock

    def _collect_keys(self) -> List[str]:
        found = set()
        for pattern in SWEEP_PATTERNS:
            found.update(self.adapter.scan(pattern))
        return sorted(found)

    def sweep(self) -> SweepReport:
        """
        掃描所有受管理的 key。

        - 先請後端清除殘留的過期資料（SQL 後端）
        - TTL 為 -1：補上該類型的 TTL，不刪除
        - 0 < TTL < near_expiry_seconds：提前刪除
        - 個別 key 失敗只計入 errors

        Returns:
            SweepReport

        Raises:
            StorageError: 無法列出 key（整次掃描失敗）
        """
        report = SweepReport()
        try:
            report.purged_keys = self.adapter.purge_expired()
        except StorageError as e:
            report.errors += 1
            logger.error("Purging expired entries failed", extra={"error": e.message})

        for key in self._collect_keys():
            report.scanned_keys += 1
            try:
                ttl = self.adapter.get_ttl(key)
                if ttl == -1:
                    self.adapter.set_ttl(key, self.keyspace.ttl_for(key))
                    report.repaired_keys += 1
                    logger.warning("Repaired key without expiration", extra={"key": key})
                elif 0 < ttl < self.near_expiry_seconds:
                    report.deleted_keys += self.adapter.delete(key)
            except StorageError as e:
                report.errors += 1
                logger.error("Sweep failed for key", extra={"key": key, "error": e.message})

        logger.info("Sweep completed", extra={
            "scanned": report.scanned_keys,
            "deleted": report.deleted_keys,
            "repaired": report.repaired_keys,
            "purged": report.purged_keys,
            "errors": report.errors,
        })
        return report

    def ensure_game_expiration(self, game_id: str) -> int:
        """
        確保某局所有 key 都有 TTL，並刷新快要過期的 key。

        Returns:
            補上或刷新 TTL 的 key 數
        """
        game_keys = [keys.game_key(game_id), keys.stats_key(game_id)]
        game_keys += self.adapter.scan(keys.guess_pattern(game_id))
        touched = 0
        for key in game_keys:
            ttl = self.adapter.get_ttl(key)
            if ttl == -1 or 0 < ttl < REFRESH_BELOW_SECONDS:
                self.adapter.set_ttl(key, self.keyspace.ttl_for(key))
                touched += 1
        logger.info("Ensured game expiration", extra={"game_id": game_id, "touched": touched})
        return touched

    def get_storage_stats(self) -> Dict[str, Any]:
        """
        統計各類 key 的數量與 TTL 狀態。
        """
        stats = {
            "totalKeys": 0,
            "gameSessionKeys": 0,
            "postMappingKeys": 0,
            "guessKeys": 0,
            "statsKeys": 0,
            "playerKeys": 0,
            "legacyKeys": 0,
            "keysWithoutExpiration": 0,
            "keysExpiringSoon": 0,
        }
        counters = {
            "game_session": "gameSessionKeys",
            "post_mapping": "postMappingKeys",
            "guess": "guessKeys",
            "stats": "statsKeys",
            "player": "playerKeys",
            "legacy_session": "legacyKeys",
            "legacy_post_mapping": "legacyKeys",
        }
        for key in self._collect_keys():
            ttl = self.adapter.get_ttl(key)
            if ttl == -2:
                continue
            stats["totalKeys"] += 1
            counter = counters.get(classify_key(key))
            if counter:
                stats[counter] += 1
            if ttl == -1:
                stats["keysWithoutExpiration"] += 1
            elif 0 <= ttl < self.near_expiry_seconds:
                stats["keysExpiringSoon"] += 1
        return stats

    def health_check(self, latency_warning_ms: float = 1000) -> Dict[str, Any]:
        """
        儲存層健康檢查。

        Returns:
            {status, checks, recommendations}；status 為 healthy / warning / error
        """
        checks: Dict[str, Any] = {
            "connectivity": False,
            "responseTimeMs": None,
            "expirationCompliance": True,
        }
        recommendations: List[str] = []

        started = time.perf_counter()
        try:
            self.adapter.exists(HEALTH_CHECK_KEY)
            checks["connectivity"] = True
        except StorageError as e:
            recommendations.append(f"Store is unreachable: {e.message}")
        checks["responseTimeMs"] = round((time.perf_counter() - started) * 1000, 3)

        if checks["connectivity"]:
            if checks["responseTimeMs"] > latency_warning_ms:
                recommendations.append(
                    f"Store response time {checks['responseTimeMs']}ms exceeds {latency_warning_ms}ms."
                )
            try:
                storage = self.get_storage_stats()
                checks["storage"] = storage
                if storage["keysWithoutExpiration"] > 0:
                    checks["expirationCompliance"] = False
                    recommendations.append(
                        f"{storage['keysWithoutExpiration']} keys found without expiration. Run cleanup."
                    )
                if storage["keysExpiringSoon"] > EXPIRING_SOON_WARNING:
                    recommendations.append(
                        f"{storage['keysExpiringSoon']} keys expiring soon. Consider running cleanup."
                    )
            except StorageError as e:
                recommendations.append(f"Unable to gather storage statistics: {e.message}")

        checks["latency"] = self.adapter.latency_stats()

        if not checks["connectivity"]:
            status = "error"
        elif recommendations:
            status = "warning"
        else:
            status = "healthy"

        logger.info("Storage health check completed", extra={"status": status})
        return {
            "status": status,
            "timestamp": self.clock(),
            "checks": checks,
            "recommendations": recommendations,
        }
