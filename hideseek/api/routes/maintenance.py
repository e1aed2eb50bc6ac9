"""
維運相關的 API 路由。
提供清理排程與儲存層健康檢查的 HTTP 端點，僅限管理員使用。
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from hideseek.api.dependencies import get_cleanup_service, require_moderator
from hideseek.application.dto.player_dto import CleanupResultResponse
from hideseek.application.services.cleanup_service import CleanupService

router = APIRouter(prefix="/maintenance", tags=["maintenance"], dependencies=[Depends(require_moderator)])


@router.post("/cleanup", response_model=CleanupResultResponse)
def force_cleanup(cleanup: CleanupService = Depends(get_cleanup_service)):
    """
    立即執行一次清理。失敗時仍回傳 200，結果中 success 為 false。
    """
    return CleanupResultResponse.from_domain(cleanup.force_cleanup())


@router.get("/history", response_model=List[CleanupResultResponse])
def get_history(
    limit: int = Query(20, ge=1, le=100),
    cleanup: CleanupService = Depends(get_cleanup_service),
):
    return [CleanupResultResponse.from_domain(r) for r in cleanup.get_history(limit)]


@router.get("/statistics")
def get_statistics(cleanup: CleanupService = Depends(get_cleanup_service)) -> Dict[str, Any]:
    return cleanup.get_statistics()


@router.get("/status")
def get_status(cleanup: CleanupService = Depends(get_cleanup_service)) -> Dict[str, Any]:
    return cleanup.get_status()


@router.get("/health")
def get_health(cleanup: CleanupService = Depends(get_cleanup_service)) -> Dict[str, Any]:
    return cleanup.health_check()
