import math

import pytest

from hideseek.domain.logic.rank import (
    apply_guess_result,
    calculate_rank,
    calculate_rank_progression,
    calculate_success_rate,
    check_profile_integrity,
    create_new_profile,
    next_rank,
    rank_display_info,
)
from hideseek.domain.logic.scoring import calculate_distance, score_guess
from hideseek.domain.models.game import HidingSpot
from hideseek.domain.models.player import Rank

NOW = 1_750_000_000_000


def test_exact_guess_is_correct():
    distance, is_correct = score_guess("pumpkin", 0.5, 0.3, HidingSpot("pumpkin", 0.5, 0.3), 0.05)
    assert distance == 0.0
    assert is_correct is True


def test_far_guess_is_incorrect():
    distance, is_correct = score_guess("pumpkin", 0.9, 0.9, HidingSpot("pumpkin", 0.5, 0.3), 0.1)
    assert distance == pytest.approx(math.hypot(0.4, 0.6))
    assert is_correct is False


def test_distance_equal_to_threshold_counts_as_correct():
    # 0.0625 可精確表示，避免浮點誤差
    distance, is_correct = score_guess("bush", 0.5, 0.5625, HidingSpot("bush", 0.5, 0.5), 0.0625)
    assert distance == 0.0625
    assert is_correct is True


def test_wrong_object_is_never_correct():
    distance, is_correct = score_guess("bush", 0.5, 0.3, HidingSpot("pumpkin", 0.5, 0.3), 0.05)
    assert distance == 0.0
    assert is_correct is False


def test_calculate_distance_is_symmetric():
    assert calculate_distance(0.1, 0.2, 0.4, 0.6) == pytest.approx(0.5)
    assert calculate_distance(0.4, 0.6, 0.1, 0.2) == pytest.approx(0.5)


def test_success_rate_without_guesses_is_zero():
    assert calculate_success_rate(0, 0) == 0.0
    assert calculate_success_rate(4, 1) == 0.25


@pytest.mark.parametrize("total, successful, expected", [
    (0, 0, Rank.TYAPU),
    (4, 4, Rank.TYAPU),          # 猜中次數不足
    (20, 5, Rank.TYAPU),         # 成功率 0.25 < 0.3
    (10, 9, Rank.GUESS_MASTER),
    (15, 15, Rank.DETECTIVE),
    (25, 15, Rank.DETECTIVE),
    (50, 50, Rank.FBI),
    (100, 50, Rank.GUESS_MASTER),
])
def test_calculate_rank_table(total, successful, expected):
    rate = calculate_success_rate(total, successful)
    assert calculate_rank(total, successful, rate) == expected


def test_next_rank_chain():
    assert next_rank(Rank.TYAPU) == Rank.GUESS_MASTER
    assert next_rank(Rank.DETECTIVE) == Rank.FBI
    assert next_rank(Rank.FBI) is None


def test_nine_of_ten_reaches_guess_master():
    profile = create_new_profile("u1", "alice", NOW)
    for i in range(10):
        profile = apply_guess_result(profile, is_correct=i != 3, now=NOW + i)

    assert profile.total_guesses == 10
    assert profile.successful_guesses == 9
    assert profile.success_rate == pytest.approx(0.9)
    assert profile.rank == Rank.GUESS_MASTER
    assert profile.last_active == NOW + 9


def test_progression_towards_detective():
    profile = create_new_profile("u1", "alice", NOW)
    for i in range(10):
        profile = apply_guess_result(profile, is_correct=i != 3, now=NOW)

    progression = calculate_rank_progression(profile)
    assert progression.current_rank == Rank.GUESS_MASTER
    assert progression.next_rank == Rank.DETECTIVE
    # 成功率已達標（0.9 / 0.6 > 1），猜中次數 9 / 15
    assert progression.progress == pytest.approx(0.6)
    assert progression.requirements_for_next.min_total_finds == 15


def test_progression_at_top_rank():
    profile = create_new_profile("u1", "alice", NOW)
    for _ in range(50):
        profile = apply_guess_result(profile, is_correct=True, now=NOW)

    progression = calculate_rank_progression(profile)
    assert progression.current_rank == Rank.FBI
    assert progression.next_rank is None
    assert progression.progress == 1.0


def test_progression_for_new_player():
    progression = calculate_rank_progression(create_new_profile("u1", "alice", NOW))
    assert progression.current_rank == Rank.TYAPU
    assert progression.next_rank == Rank.GUESS_MASTER
    assert progression.progress == 0.0


def test_apply_guess_result_does_not_mutate_input():
    profile = create_new_profile("u1", "alice", NOW)
    updated = apply_guess_result(profile, is_correct=True, now=NOW + 1)
    assert profile.total_guesses == 0
    assert updated.total_guesses == 1
    assert updated.successful_guesses == 1


def test_last_active_never_moves_backwards():
    profile = create_new_profile("u1", "alice", NOW)
    updated = apply_guess_result(profile, is_correct=False, now=NOW - 1000)
    assert updated.last_active == NOW


def test_integrity_reports_mismatches():
    profile = create_new_profile("u1", "alice", NOW)
    assert check_profile_integrity(profile) == []

    profile.total_guesses = 10
    profile.successful_guesses = 9
    issues = check_profile_integrity(profile)
    assert any("successRate" in issue for issue in issues)
    assert any("rank" in issue for issue in issues)


def test_rank_display_info():
    info = rank_display_info(Rank.DETECTIVE)
    assert info["rank"] == "Detective"
    assert info["order"] == 2
    assert info["iconType"] == "shield"
    assert "15" in info["description"]
