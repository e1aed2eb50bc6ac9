"""
Player 相關的 API 路由。
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hideseek.api.dependencies import Identity, get_facade, get_identity
from hideseek.application.dto.player_dto import LeaderboardResponse, PlayerProfileResponse, PlayerStatsResponse
from hideseek.application.services.data_access import DataAccessFacade
from hideseek.utils.exceptions import NotFoundError

router = APIRouter(prefix="/players", tags=["players"])


@router.get("/me", response_model=PlayerStatsResponse)
def get_me(identity: Identity = Depends(get_identity), facade: DataAccessFacade = Depends(get_facade)):
    """
    取得呼叫者的玩家檔案與等級進度，第一次呼叫時會建立檔案。
    """
    facade.get_or_create_player(identity.user_id, identity.username)
    return facade.get_player_stats(identity.user_id)


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1, le=100),
    facade: DataAccessFacade = Depends(get_facade),
):
    return LeaderboardResponse(
        players=[PlayerProfileResponse.from_domain(p) for p in facade.get_leaderboard(limit)],
        rank_distribution=facade.get_rank_distribution(),
    )


@router.get("/{user_id}", response_model=PlayerStatsResponse)
def get_player(user_id: str, facade: DataAccessFacade = Depends(get_facade)):
    stats = facade.get_player_stats(user_id)
    if stats is None:
        raise NotFoundError(f"Player {user_id} not found", resource_type="player", resource_id=user_id)
    return stats
