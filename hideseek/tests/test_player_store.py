import json

import pytest

from hideseek.domain.models.player import Rank
from hideseek.utils.exceptions import NotFoundError, ValidationError

NINETY_DAYS = 90 * 24 * 60 * 60


def test_get_or_create_player(player_store, adapter, clock):
    profile = player_store.get_or_create_player("u1", "alice")
    assert profile.rank == Rank.TYAPU
    assert profile.total_guesses == 0
    assert profile.joined_at == clock()
    assert adapter.get_ttl("player:u1") == NINETY_DAYS

    clock.advance(1000)
    again = player_store.get_or_create_player("u1", "alice")
    assert again == profile


def test_existing_player_username_is_refreshed(player_store):
    player_store.get_or_create_player("u1", "alice")

    renamed = player_store.get_or_create_player("u1", "alice_renamed")
    assert renamed.username == "alice_renamed"
    assert player_store.get_player("u1").username == "alice_renamed"

    # 沒有提供名稱時保留原本的名稱
    for missing in (None, "", "   "):
        assert player_store.get_or_create_player("u1", missing).username == "alice_renamed"


def test_guess_carries_the_new_username(player_store):
    for _ in range(4):
        player_store.update_after_guess("u1", is_correct=True, username="alice")

    result = player_store.update_after_guess("u1", is_correct=True, username="alice2")
    assert result.rank_changed is True
    assert result.previous_rank == Rank.TYAPU
    assert result.new_rank == Rank.GUESS_MASTER
    assert result.updated_profile.username == "alice2"
    assert result.updated_profile.successful_guesses == 5
    assert player_store.get_player("u1").username == "alice2"


def test_missing_username_defaults_to_anonymous(player_store):
    assert player_store.get_or_create_player("u1").username == "Anonymous"


def test_nine_of_ten_guesses(player_store, clock):
    for i in range(10):
        clock.advance(1000)
        player_store.update_after_guess("u1", is_correct=i != 0, username="alice")

    profile = player_store.get_player("u1")
    assert profile.total_guesses == 10
    assert profile.successful_guesses == 9
    assert profile.success_rate == pytest.approx(0.9)
    assert profile.rank == Rank.GUESS_MASTER
    assert profile.last_active == clock()


def test_rank_change_is_reported(player_store):
    results = [player_store.update_after_guess("u1", is_correct=True) for _ in range(5)]

    assert [r.rank_changed for r in results] == [False, False, False, False, True]
    assert results[-1].previous_rank == Rank.TYAPU
    assert results[-1].new_rank == Rank.GUESS_MASTER
    assert results[0].previous_rank is None


def test_update_refreshes_ttl(player_store, adapter, clock):
    player_store.get_or_create_player("u1", "alice")
    clock.advance(24 * 60 * 60 * 1000)
    assert adapter.get_ttl("player:u1") == NINETY_DAYS - 24 * 60 * 60
    player_store.update_after_guess("u1", is_correct=False)
    assert adapter.get_ttl("player:u1") == NINETY_DAYS


def test_save_rejects_inconsistent_profile(player_store):
    profile = player_store.get_or_create_player("u1", "alice")
    profile.total_guesses = 10
    profile.successful_guesses = 9
    profile.success_rate = 0.9
    with pytest.raises(ValidationError) as exc:
        player_store.save_player(profile)
    assert exc.value.field_name == "rank"


def test_inconsistent_stored_profile_reads_as_absent(player_store, adapter):
    adapter.set("player:u1", json.dumps({
        "userId": "u1",
        "username": "alice",
        "rank": "FBI",
        "totalGuesses": 1,
        "successfulGuesses": 1,
        "successRate": 1.0,
        "joinedAt": 1,
        "lastActive": 1,
    }).encode("utf-8"))
    assert player_store.get_player("u1") is None
    issues = player_store.check_integrity("u1")
    assert any("rank" in issue for issue in issues)


def test_check_integrity(player_store):
    assert player_store.check_integrity("nobody") == ["profile not found"]
    player_store.update_after_guess("u1", is_correct=True)
    assert player_store.check_integrity("u1") == []


def test_touch_last_active(player_store, clock):
    with pytest.raises(NotFoundError):
        player_store.touch_last_active("u1")

    player_store.get_or_create_player("u1", "alice")
    clock.advance(5000)
    assert player_store.touch_last_active("u1").last_active == clock()


def test_delete_player(player_store):
    player_store.get_or_create_player("u1", "alice")
    assert player_store.delete_player("u1") is True
    assert player_store.get_player("u1") is None
    assert player_store.delete_player("u1") is False


def test_leaderboard_and_distribution(player_store):
    for _ in range(15):
        player_store.update_after_guess("detective", is_correct=True)
    for _ in range(6):
        player_store.update_after_guess("master", is_correct=True)
    for _ in range(5):
        player_store.update_after_guess("master2", is_correct=True)
    player_store.update_after_guess("newbie", is_correct=False)

    leaderboard = player_store.get_leaderboard(limit=3)
    assert [p.user_id for p in leaderboard] == ["detective", "master", "master2"]
    assert player_store.get_rank_distribution() == {
        "Tyapu": 1,
        "GuessMaster": 2,
        "Detective": 1,
        "FBI": 0,
    }


def test_invalid_user_id(player_store):
    with pytest.raises(ValidationError):
        player_store.get_player("bad:id")
