"""
Game 相關的 API 路由。
提供遊戲局建立、猜測提交與統計查詢的 HTTP 端點。
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from hideseek.api.dependencies import Identity, get_facade, get_identity
from hideseek.application.dto.game_dto import (
    AttachPostRequest,
    CreateGameRequest,
    GameSessionResponse,
    GuessListResponse,
    GuessOutcomeResponse,
    GuessRequest,
    GuessResponse,
    GuessStatisticsResponse,
    PublicGameResponse,
    RankChangeDTO,
)
from hideseek.application.services.data_access import DataAccessFacade
from hideseek.domain.models.game import GameSession
from hideseek.utils.exceptions import AuthorizationError, NotFoundError

# 建立路由器
router = APIRouter(prefix="/games", tags=["games"])


def _require(session: Optional[GameSession], game_id: str) -> GameSession:
    if session is None:
        raise NotFoundError(f"Game {game_id} not found", resource_type="game", resource_id=game_id)
    return session


@router.post("", response_model=GameSessionResponse, status_code=status.HTTP_201_CREATED)
def create_game(
    request: CreateGameRequest,
    identity: Identity = Depends(get_identity),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    建立新的遊戲局。

    - **gameId**: 遊戲識別碼（不可含 ':' 或空白）
    - **mapKey**: 地圖 key
    - **hidingSpot**: 藏匿位置（objectKey、relX、relY）
    - **postId** / **postUrl**: (可選) 外部貼文
    """
    session = facade.create_game(
        game_id=request.game_id,
        creator=identity.user_id,
        map_key=request.map_key,
        hiding_spot=request.hiding_spot.to_domain(),
        post_id=request.post_id,
        post_url=request.post_url,
        creator_username=identity.username,
    )
    return GameSessionResponse.from_domain(session)


@router.get("/by-post/{post_id}", response_model=PublicGameResponse)
def get_game_by_post(post_id: str, facade: DataAccessFacade = Depends(get_facade)):
    """
    以外部貼文 id 查詢遊戲局。
    """
    session = facade.get_game_by_post_id(post_id)
    return PublicGameResponse.from_domain(_require(session, post_id))


@router.get("/{game_id}", response_model=PublicGameResponse)
def get_game(game_id: str, facade: DataAccessFacade = Depends(get_facade)):
    """
    查詢遊戲局（不含藏匿位置）。
    """
    return PublicGameResponse.from_domain(_require(facade.get_game(game_id), game_id))


@router.post("/{game_id}/post", response_model=GameSessionResponse)
def attach_post(
    game_id: str,
    request: AttachPostRequest,
    identity: Identity = Depends(get_identity),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    將外部貼文附加到遊戲局，只有建立者可以操作。
    """
    session = _require(facade.get_game(game_id), game_id)
    if session.creator != identity.user_id:
        raise AuthorizationError("Only the game creator can attach a post", resource_id=game_id)
    updated = facade.attach_post(game_id, request.post_id, request.post_url)
    return GameSessionResponse.from_domain(updated)


@router.delete("/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_game(
    game_id: str,
    identity: Identity = Depends(get_identity),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    刪除遊戲局與其所有猜測，建立者或管理員可以操作。
    """
    session = _require(facade.get_game(game_id), game_id)
    if session.creator != identity.user_id and not identity.is_moderator:
        raise AuthorizationError("Only the game creator can delete the game", resource_id=game_id)
    facade.delete_game(game_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{game_id}/guesses", response_model=GuessOutcomeResponse, status_code=status.HTTP_201_CREATED)
def submit_guess(
    game_id: str,
    request: GuessRequest,
    identity: Identity = Depends(get_identity),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    提交猜測。

    - **objectKey**: 猜測的物件
    - **relX** / **relY**: 猜測的位置（0~1）
    """
    outcome = facade.submit_guess(
        game_id=game_id,
        user_id=identity.user_id,
        username=identity.username,
        object_key=request.object_key,
        rel_x=request.rel_x,
        rel_y=request.rel_y,
    )
    rank_update = outcome.rank_update
    rank_changed = bool(rank_update and rank_update.rank_changed)
    return GuessOutcomeResponse(
        guess=GuessResponse.from_domain(outcome.guess),
        rank_changed=rank_changed,
        rank_change=RankChangeDTO(
            previous_rank=rank_update.previous_rank.value,
            new_rank=rank_update.new_rank.value,
        ) if rank_changed else None,
    )


@router.get("/{game_id}/guesses", response_model=GuessListResponse)
def list_guesses(
    game_id: str,
    identity: Identity = Depends(get_identity),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    查詢遊戲局的所有猜測，只有建立者或管理員可以查看。
    """
    guesses = facade.get_game_guesses(game_id, identity.user_id, is_moderator=identity.is_moderator)
    return GuessListResponse(game_id=game_id, guesses=[GuessResponse.from_domain(g) for g in guesses])


@router.get("/{game_id}/statistics", response_model=GuessStatisticsResponse)
def get_statistics(game_id: str, facade: DataAccessFacade = Depends(get_facade)):
    return GuessStatisticsResponse.from_domain(facade.get_guess_statistics(game_id))


@router.get("/{game_id}/leaderboard", response_model=List[GuessResponse])
def get_game_leaderboard(
    game_id: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    facade: DataAccessFacade = Depends(get_facade),
):
    """
    遊戲局排行榜：每位玩家取最新一筆，猜中者在前。
    """
    return [GuessResponse.from_domain(g) for g in facade.get_game_leaderboard(game_id, limit)]
