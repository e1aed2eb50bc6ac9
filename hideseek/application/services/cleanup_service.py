"""
Scheduled cleanup service.
Runs the expiration sweep on a background thread at a fixed interval, retries failed
cycles with a fixed delay, and keeps a bounded history of results.
Failures never propagate to callers; they are logged and recorded in the history.
"""
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from hideseek.application.services.expiration_service import ExpirationService
from hideseek.domain.models.maintenance import CleanupResult, CleanupState, SweepReport
from hideseek.infrastructure.storage.base_store import epoch_ms
from hideseek.utils.exceptions import BusinessLogicError, ValidationError
from hideseek.utils.logger import logger

HOUR_SECONDS = 60 * 60
RECENT_WINDOW = 5


class CleanupService:
    """
    排程清理服務。

    狀態機：IDLE -> RUNNING -> SUCCEEDED / FAILED -> IDLE

    用法示例:
    ```python
    cleanup = CleanupService(expiration_service, interval_hours=24)
    cleanup.start()                  # 背景執行緒，預設先跑一次
    result = cleanup.force_cleanup() # 手動執行一次，不會拋出例外
    cleanup.stop()
    ```
    """

    def __init__(
        self,
        expiration: ExpirationService,
        interval_hours: float = 24,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 60,
        history_limit: int = 100,
        latency_warning_ms: float = 1000,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.expiration = expiration
        self.interval_hours = interval_hours
        self.retry_attempts = retry_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.history_limit = history_limit
        self.latency_warning_ms = latency_warning_ms
        self.clock = clock

        self.state = CleanupState.IDLE
        self.last_outcome: Optional[CleanupState] = None
        self._history: List[CleanupResult] = []  # 最新的在前
        self._lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ========== 排程控制 ==========

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_hours: Optional[float] = None, run_immediately: bool = True) -> bool:
        """
        啟動背景排程。

        Args:
            interval_hours: 執行間隔（小時），未指定時沿用目前設定
            run_immediately: 是否在啟動時立即執行一次

        Returns:
            是否有啟動（已在執行時回傳 False）
        """
        if self.is_running:
            logger.warning("Scheduled cleanup is already running")
            return False
        if interval_hours is not None:
            if interval_hours <= 0:
                raise ValidationError("interval_hours", "must be positive")
            self.interval_hours = interval_hours

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(self.interval_hours * HOUR_SECONDS, run_immediately),
            name="cleanup-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("Scheduled cleanup started", extra={"interval_hours": self.interval_hours})
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> bool:
        """
        停止排程，並取消尚未執行的重試。

        Returns:
            是否有停止（原本沒在執行時回傳 False）
        """
        if not self.is_running:
            logger.warning("Scheduled cleanup is not running")
            return False
        self._stop_event.set()
        self._thread.join(timeout)
        if not self._thread.is_alive():
            # 之後手動觸發的 run_cycle 仍需完整重試
            self._stop_event.clear()
        self._thread = None
        logger.info("Scheduled cleanup stopped")
        return True

    def _loop(self, interval_seconds: float, run_immediately: bool) -> None:
        if run_immediately:
            self.run_cycle()
        while not self._stop_event.wait(interval_seconds):
            self.run_cycle()

    def configure(
        self,
        interval_hours: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        """
        調整排程設定，只能在停止狀態下呼叫。

        Raises:
            BusinessLogicError: 服務正在執行
            ValidationError: 設定值不是正數
        """
        if self.is_running:
            raise BusinessLogicError("Cannot configure cleanup while it is running. Stop the service first.")
        options = {
            "interval_hours": interval_hours,
            "retry_attempts": retry_attempts,
            "retry_delay_seconds": retry_delay_seconds,
            "history_limit": history_limit,
        }
        for name, value in options.items():
            if value is not None and value <= 0:
                raise ValidationError(name, "must be positive")
        for name, value in options.items():
            if value is not None:
                setattr(self, name, value)
        with self._lock:
            del self._history[self.history_limit:]
        logger.info("Cleanup service configured", extra={k: v for k, v in options.items() if v is not None})

    # ========== 執行 ==========

    def _attempt(self) -> SweepReport:
        return self.expiration.sweep()

    def _finish(self, result: CleanupResult) -> CleanupResult:
        with self._lock:
            self._history.insert(0, result)
            del self._history[self.history_limit:]
            self.last_outcome = CleanupState.SUCCEEDED if result.success else CleanupState.FAILED
            self.state = self.last_outcome
        logger.info("Cleanup finished", extra={
            "success": result.success,
            "attempt": result.attempt,
            "deleted": result.deleted_keys,
            "repaired": result.repaired_keys,
            "purged": result.purged_keys,
            "forced": result.forced,
        })
        self.state = CleanupState.IDLE
        return result

    def _execute(self, max_attempts: int, forced: bool) -> CleanupResult:
        with self._cycle_lock:
            self.state = CleanupState.RUNNING
            started = time.perf_counter()
            last_error = "Unknown error"
            attempt = 0
            while attempt < max_attempts:
                attempt += 1
                try:
                    report = self._attempt()
                    return self._finish(CleanupResult(
                        timestamp=self.clock(),
                        success=True,
                        deleted_keys=report.deleted_keys,
                        repaired_keys=report.repaired_keys,
                        purged_keys=report.purged_keys,
                        scanned_keys=report.scanned_keys,
                        errors=report.errors,
                        duration_ms=int((time.perf_counter() - started) * 1000),
                        attempt=attempt,
                        forced=forced,
                    ))
                except Exception as e:
                    # 背景清理不可讓例外中斷排程執行緒
                    last_error = str(e)
                    logger.error("Cleanup attempt failed", extra={
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error": last_error,
                    })
                if attempt < max_attempts:
                    logger.info("Retrying cleanup", extra={"delay_seconds": self.retry_delay_seconds})
                    if self._stop_event.wait(self.retry_delay_seconds):
                        logger.info("Pending cleanup retries cancelled")
                        break

            return self._finish(CleanupResult(
                timestamp=self.clock(),
                success=False,
                deleted_keys=0,
                repaired_keys=0,
                scanned_keys=0,
                errors=1,
                duration_ms=int((time.perf_counter() - started) * 1000),
                attempt=attempt,
                forced=forced,
                error=last_error,
            ))

    def run_cycle(self) -> CleanupResult:
        """
        執行一次清理，失敗時以固定間隔重試，最多 retry_attempts 次。
        """
        return self._execute(self.retry_attempts, forced=False)

    def force_cleanup(self) -> CleanupResult:
        """
        立即執行一次清理（單次嘗試），結果會記入歷史，不會拋出例外。
        """
        logger.info("Forcing immediate cleanup")
        return self._execute(1, forced=True)

    # ========== 查詢 ==========

    def get_history(self, limit: Optional[int] = None) -> List[CleanupResult]:
        with self._lock:
            history = list(self._history)
        return history if limit is None else history[:max(limit, 0)]

    def get_statistics(self) -> Dict[str, Any]:
        history = self.get_history()
        if not history:
            return {
                "totalRuns": 0,
                "successfulRuns": 0,
                "failedRuns": 0,
                "successRate": 0,
                "totalKeysDeleted": 0,
                "totalKeysRepaired": 0,
                "totalKeysPurged": 0,
                "totalErrors": 0,
                "averageDuration": 0,
                "lastRun": None,
                "lastSuccessfulRun": None,
            }

        total = len(history)
        successful = sum(1 for r in history if r.success)
        last_success = next((r for r in history if r.success), None)
        return {
            "totalRuns": total,
            "successfulRuns": successful,
            "failedRuns": total - successful,
            "successRate": round(successful / total * 100, 2),
            "totalKeysDeleted": sum(r.deleted_keys for r in history),
            "totalKeysRepaired": sum(r.repaired_keys for r in history),
            "totalKeysPurged": sum(r.purged_keys for r in history),
            "totalErrors": sum(r.errors for r in history),
            "averageDuration": round(sum(r.duration_ms for r in history) / total),
            "lastRun": history[0].to_dict(),
            "lastSuccessfulRun": last_success.to_dict() if last_success else None,
        }

    def get_status(self) -> Dict[str, Any]:
        """
        服務狀態：未執行為 error；最近 5 次有 3 次以上失敗或成功率低於 80% 為 warning。
        """
        stats = self.get_statistics()
        recent_failures = sum(1 for r in self.get_history(RECENT_WINDOW) if not r.success)

        if not self.is_running:
            health = "error"
        elif recent_failures >= 3 or (stats["totalRuns"] and stats["successRate"] < 80):
            health = "warning"
        else:
            health = "healthy"

        next_estimate = None
        if self.is_running and stats["lastRun"] is not None:
            next_estimate = stats["lastRun"]["timestamp"] + int(self.interval_hours * HOUR_SECONDS * 1000)

        return {
            "isRunning": self.is_running,
            "state": self.state.value,
            "lastOutcome": self.last_outcome.value if self.last_outcome else None,
            "health": health,
            "statistics": stats,
            "recentFailures": recent_failures,
            "nextCleanupEstimate": next_estimate,
        }

    def health_check(self) -> Dict[str, Any]:
        return self.expiration.health_check(self.latency_warning_ms)
