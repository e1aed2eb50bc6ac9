import threading
import time
from unittest.mock import MagicMock

import pytest

from hideseek.application.services.cleanup_service import CleanupService
from hideseek.application.services.expiration_service import ExpirationService
from hideseek.domain.models.maintenance import CleanupState, SweepReport
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.utils.exceptions import BusinessLogicError, StorageError, ValidationError

THIRTY_DAYS = 30 * 24 * 60 * 60


@pytest.fixture
def expiration(services):
    return services.expiration


@pytest.fixture
def cleanup(services):
    return services.cleanup


def _failing_expiration(*outcomes):
    expiration = MagicMock(spec=ExpirationService)
    expiration.sweep.side_effect = list(outcomes)
    return expiration


# ========== 掃描 ==========

def test_forced_cleanup_repairs_key_without_ttl(cleanup, adapter):
    adapter.set("game:orphan", b"{}")
    assert adapter.get_ttl("game:orphan") == -1

    result = cleanup.force_cleanup()

    assert result.success is True
    assert result.forced is True
    assert result.repaired_keys == 1
    assert result.deleted_keys == 0
    assert adapter.exists("game:orphan") is True
    assert adapter.get_ttl("game:orphan") == THIRTY_DAYS


def test_sweep_deletes_keys_about_to_expire(expiration, adapter):
    adapter.set("player:u1", b"{}")
    adapter.set_ttl("player:u1", 120)
    adapter.set("player:u2", b"{}")
    adapter.set_ttl("player:u2", 7200)

    report = expiration.sweep()

    assert report.scanned_keys == 2
    assert report.deleted_keys == 1
    assert adapter.exists("player:u1") is False
    assert adapter.exists("player:u2") is True


def test_forced_cleanup_purges_expired_rows(cleanup, adapter, sql_backend, clock):
    for i in range(50):
        adapter.set(f"player:u{i}", b"{}")
        adapter.set_ttl(f"player:u{i}", 60)
    clock.advance(120_000)

    result = cleanup.force_cleanup()

    assert result.success is True
    assert result.purged_keys == 50
    assert result.to_dict()["purgedKeys"] == 50
    assert sql_backend.get_by_id("player:u0") is None
    assert cleanup.get_statistics()["totalKeysPurged"] == 50


def test_sweep_reports_failed_purge_as_error(services, clock):
    backend = MagicMock()
    backend.purge_expired.side_effect = OSError("connection reset")
    backend.scan.return_value = []
    adapter = KeyValueAdapter(backend)
    try:
        expiration = ExpirationService(adapter, services.expiration.keyspace, clock=clock)
        report = expiration.sweep()
    finally:
        adapter.close()

    assert report.errors == 1
    assert report.purged_keys == 0


def test_sweep_ignores_unmanaged_keys(expiration, adapter):
    adapter.set("misc:thing", b"{}")
    report = expiration.sweep()
    assert report.scanned_keys == 0
    assert adapter.get_ttl("misc:thing") == -1


def test_ensure_game_expiration(expiration, adapter, session_store, ledger, octmap_game):
    ledger.record_guess("game1", "u2", "bob", "pumpkin", 0.5, 0.3, octmap_game.hiding_spot)
    # SET 會清掉 TTL
    adapter.set("game:game1", adapter.get("game:game1"))

    assert expiration.ensure_game_expiration("game1") == 1
    assert adapter.get_ttl("game:game1") == THIRTY_DAYS


def test_storage_stats(expiration, adapter, ledger, player_store, octmap_game):
    ledger.record_guess("game1", "u2", "bob", "pumpkin", 0.5, 0.3, octmap_game.hiding_spot)
    player_store.get_or_create_player("u2", "bob")
    adapter.set("game_session:old", b"{}")

    stats = expiration.get_storage_stats()
    assert stats["gameSessionKeys"] == 1
    assert stats["guessKeys"] == 1
    assert stats["statsKeys"] == 1
    assert stats["playerKeys"] == 1
    assert stats["legacyKeys"] == 1
    assert stats["totalKeys"] == 5
    assert stats["keysWithoutExpiration"] == 1


# ========== 重試與歷史 ==========

def test_retry_then_success(clock):
    expiration = _failing_expiration(StorageError("down"), SweepReport(scanned_keys=4, repaired_keys=1))
    cleanup = CleanupService(expiration, retry_attempts=3, retry_delay_seconds=0, clock=clock)

    result = cleanup.run_cycle()

    assert result.success is True
    assert result.attempt == 2
    assert result.scanned_keys == 4
    assert cleanup.last_outcome == CleanupState.SUCCEEDED
    assert cleanup.state == CleanupState.IDLE


def test_all_attempts_fail(clock):
    expiration = _failing_expiration(*[StorageError("down")] * 3)
    cleanup = CleanupService(expiration, retry_attempts=3, retry_delay_seconds=0, clock=clock)

    result = cleanup.run_cycle()

    assert result.success is False
    assert result.attempt == 3
    assert result.error == "down"
    assert expiration.sweep.call_count == 3
    assert cleanup.last_outcome == CleanupState.FAILED
    assert cleanup.get_status()["lastOutcome"] == "FAILED"


def test_forced_cleanup_tries_once_and_never_raises(clock):
    expiration = _failing_expiration(RuntimeError("boom"))
    cleanup = CleanupService(expiration, retry_attempts=3, retry_delay_seconds=0, clock=clock)

    result = cleanup.force_cleanup()

    assert result.success is False
    assert result.attempt == 1
    assert expiration.sweep.call_count == 1


def test_history_is_newest_first_and_capped(clock):
    expiration = MagicMock(spec=ExpirationService)
    expiration.sweep.return_value = SweepReport()
    cleanup = CleanupService(expiration, history_limit=2, clock=clock)

    for _ in range(3):
        cleanup.force_cleanup()
        clock.advance(1000)

    history = cleanup.get_history()
    assert len(history) == 2
    assert history[0].timestamp > history[1].timestamp
    assert len(cleanup.get_history(limit=1)) == 1


def test_statistics(clock):
    expiration = _failing_expiration(
        SweepReport(deleted_keys=2, repaired_keys=1),
        StorageError("down"),
        SweepReport(deleted_keys=3),
    )
    cleanup = CleanupService(expiration, clock=clock)
    for _ in range(3):
        cleanup.force_cleanup()

    stats = cleanup.get_statistics()
    assert stats["totalRuns"] == 3
    assert stats["successfulRuns"] == 2
    assert stats["failedRuns"] == 1
    assert stats["successRate"] == pytest.approx(66.67)
    assert stats["totalKeysDeleted"] == 5
    assert stats["totalKeysRepaired"] == 1
    assert stats["lastSuccessfulRun"]["deletedKeys"] == 3


def test_statistics_without_runs(cleanup):
    stats = cleanup.get_statistics()
    assert stats["totalRuns"] == 0
    assert stats["lastRun"] is None


# ========== 排程 ==========

def test_start_stop_and_configure(cleanup):
    assert cleanup.get_status()["health"] == "error"
    assert cleanup.start(run_immediately=False) is True
    try:
        assert cleanup.is_running is True
        assert cleanup.start() is False
        with pytest.raises(BusinessLogicError):
            cleanup.configure(interval_hours=1)
        assert cleanup.get_status()["isRunning"] is True
    finally:
        assert cleanup.stop() is True
    assert cleanup.is_running is False
    assert cleanup.stop() is False

    cleanup.configure(interval_hours=1, retry_attempts=5)
    assert cleanup.interval_hours == 1
    assert cleanup.retry_attempts == 5


@pytest.mark.parametrize("option", ["interval_hours", "retry_attempts", "retry_delay_seconds", "history_limit"])
def test_configure_rejects_non_positive_values(cleanup, option):
    with pytest.raises(ValidationError):
        cleanup.configure(**{option: 0})


def test_stop_cancels_pending_retries(clock):
    attempted = threading.Event()

    def failing_sweep():
        attempted.set()
        raise StorageError("down")

    expiration = MagicMock(spec=ExpirationService)
    expiration.sweep.side_effect = failing_sweep
    cleanup = CleanupService(expiration, retry_attempts=3, retry_delay_seconds=30, clock=clock)

    cleanup.start(run_immediately=True)
    assert attempted.wait(5)
    started = time.monotonic()
    cleanup.stop(timeout=5)

    assert time.monotonic() - started < 5
    assert expiration.sweep.call_count == 1
    history = cleanup.get_history()
    assert history[0].success is False
    assert history[0].attempt == 1


def test_run_cycle_after_stop_still_retries(clock):
    expiration = _failing_expiration(*[StorageError("down")] * 3)
    cleanup = CleanupService(expiration, retry_attempts=3, retry_delay_seconds=0, clock=clock)

    cleanup.start(run_immediately=False)
    cleanup.stop()
    result = cleanup.run_cycle()

    assert result.attempt == 3
    assert expiration.sweep.call_count == 3


# ========== 健康檢查 ==========

def test_health_check_healthy(cleanup, octmap_game):
    report = cleanup.health_check()
    assert report["status"] == "healthy"
    assert report["checks"]["connectivity"] is True
    assert report["checks"]["expirationCompliance"] is True
    assert report["recommendations"] == []


def test_health_check_warns_about_keys_without_ttl(cleanup, adapter):
    adapter.set("player:u1", b"{}")
    report = cleanup.health_check()
    assert report["status"] == "warning"
    assert report["checks"]["expirationCompliance"] is False
    assert any("without expiration" in r for r in report["recommendations"])


def test_health_check_reports_unreachable_store(services, clock):
    backend = MagicMock()
    backend.exists.side_effect = OSError("connection refused")
    adapter = KeyValueAdapter(backend)
    try:
        expiration = ExpirationService(adapter, services.expiration.keyspace, clock=clock)
        report = expiration.health_check()
    finally:
        adapter.close()

    assert report["status"] == "error"
    assert report["checks"]["connectivity"] is False
    assert report["recommendations"]
