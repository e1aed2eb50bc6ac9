"""
Rank engine.
Pure functions deriving a player's rank and progression from lifetime statistics.
"""
from dataclasses import replace
from typing import Any, Dict, List, Optional

from hideseek.domain.models.player import (
    RANK_ORDER,
    PlayerProfile,
    Rank,
    RankProgression,
    RankRequirements,
)

# 成功率比較容許的浮點誤差
RATE_TOLERANCE = 1e-9

RANK_REQUIREMENTS: Dict[Rank, RankRequirements] = {
    Rank.TYAPU: RankRequirements(
        rank=Rank.TYAPU,
        min_success_rate=0.0,
        min_total_finds=0,
        description="Starting rank for new players",
    ),
    Rank.GUESS_MASTER: RankRequirements(
        rank=Rank.GUESS_MASTER,
        min_success_rate=0.3,
        min_total_finds=5,
        description="Achieved after 5 successful finds with 30% success rate",
    ),
    Rank.DETECTIVE: RankRequirements(
        rank=Rank.DETECTIVE,
        min_success_rate=0.6,
        min_total_finds=15,
        description="Achieved after 15 successful finds with 60% success rate",
    ),
    Rank.FBI: RankRequirements(
        rank=Rank.FBI,
        min_success_rate=0.8,
        min_total_finds=50,
        description="Elite rank requiring 50 successful finds with 80% success rate",
    ),
}

_DISPLAY = {
    Rank.TYAPU: {"name": "Tyapu", "color": "#666666", "icon_type": "circle"},
    Rank.GUESS_MASTER: {"name": "Guess Master", "color": "#4CAF50", "icon_type": "star"},
    Rank.DETECTIVE: {"name": "Detective", "color": "#2196F3", "icon_type": "shield"},
    Rank.FBI: {"name": "FBI Agent", "color": "#FF9800", "icon_type": "crown"},
}


def calculate_success_rate(total_guesses: int, successful_guesses: int) -> float:
    if total_guesses <= 0:
        return 0.0
    return successful_guesses / total_guesses


def calculate_rank(total_guesses: int, successful_guesses: int, success_rate: float) -> Rank:
    """
    依統計數據計算等級：取兩項門檻都達到的最高等級。

    Args:
        total_guesses: 總猜測次數
        successful_guesses: 猜中次數（finds）
        success_rate: 成功率（0~1）

    Returns:
        計算出的 Rank
    """
    for rank in reversed(RANK_ORDER):
        req = RANK_REQUIREMENTS[rank]
        if successful_guesses >= req.min_total_finds and success_rate >= req.min_success_rate:
            return rank
    return Rank.TYAPU


def next_rank(rank: Rank) -> Optional[Rank]:
    index = RANK_ORDER.index(rank)
    if index + 1 >= len(RANK_ORDER):
        return None
    return RANK_ORDER[index + 1]


def calculate_rank_progression(profile: PlayerProfile) -> RankProgression:
    """
    計算玩家往下一個等級的進度。

    進度取成功率比例與猜中次數比例的較小者，上限為 1。
    已是最高等級時 progress 為 1 且沒有下一個等級。
    """
    current = calculate_rank(profile.total_guesses, profile.successful_guesses, profile.success_rate)
    upcoming = next_rank(current)
    if upcoming is None:
        return RankProgression(current_rank=current, progress=1.0)

    req = RANK_REQUIREMENTS[upcoming]
    rate_progress = profile.success_rate / req.min_success_rate if req.min_success_rate > 0 else 1.0
    finds_progress = profile.successful_guesses / req.min_total_finds if req.min_total_finds > 0 else 1.0
    progress = max(0.0, min(rate_progress, finds_progress, 1.0))

    return RankProgression(
        current_rank=current,
        progress=progress,
        next_rank=upcoming,
        requirements_for_next=req,
    )


def create_new_profile(user_id: str, username: str, now: int) -> PlayerProfile:
    return PlayerProfile(
        user_id=user_id,
        username=username,
        rank=Rank.TYAPU,
        total_guesses=0,
        successful_guesses=0,
        success_rate=0.0,
        joined_at=now,
        last_active=now,
    )


def apply_guess_result(profile: PlayerProfile, is_correct: bool, now: int) -> PlayerProfile:
    """
    回傳套用一次猜測結果後的新玩家檔案，不修改原物件。
    """
    total = profile.total_guesses + 1
    successful = profile.successful_guesses + (1 if is_correct else 0)
    rate = calculate_success_rate(total, successful)
    return replace(
        profile,
        total_guesses=total,
        successful_guesses=successful,
        success_rate=rate,
        rank=calculate_rank(total, successful, rate),
        last_active=max(now, profile.last_active),
    )


def check_profile_integrity(profile: PlayerProfile) -> List[str]:
    """
    檢查玩家檔案的一致性。

    Returns:
        問題描述列表，空列表表示檔案一致
    """
    issues: List[str] = []
    if profile.total_guesses < 0:
        issues.append("totalGuesses is negative")
    if profile.successful_guesses < 0:
        issues.append("successfulGuesses is negative")
    if profile.successful_guesses > profile.total_guesses:
        issues.append("successfulGuesses exceeds totalGuesses")

    expected_rate = calculate_success_rate(profile.total_guesses, profile.successful_guesses)
    if abs(profile.success_rate - expected_rate) > RATE_TOLERANCE:
        issues.append(f"successRate {profile.success_rate} does not match {expected_rate}")

    expected_rank = calculate_rank(profile.total_guesses, profile.successful_guesses, expected_rate)
    if profile.rank != expected_rank:
        issues.append(f"rank {profile.rank.value} does not match calculated {expected_rank.value}")

    if profile.joined_at > profile.last_active:
        issues.append("joinedAt is after lastActive")
    return issues


def rank_display_info(rank: Rank) -> Dict[str, Any]:
    display = _DISPLAY[rank]
    return {
        "rank": rank.value,
        "name": display["name"],
        "description": RANK_REQUIREMENTS[rank].description,
        "color": display["color"],
        "iconType": display["icon_type"],
        "order": rank.order,
    }
