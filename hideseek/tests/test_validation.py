import pytest

from hideseek.domain.logic.validation import (
    normalize_username,
    validate_coordinate,
    validate_game_id,
    validate_game_session,
    validate_guess_statistics,
    validate_hiding_spot,
    validate_object_key,
    validate_player_profile,
    validate_post_id,
    validate_username,
    validate_virtual_map,
)
from hideseek.domain.models.game import GameSession, GuessStatistics, HidingSpot
from hideseek.domain.models.player import PlayerProfile, Rank
from hideseek.utils.exceptions import ValidationError


def _session(**overrides):
    data = dict(
        game_id="g1",
        creator="u1",
        map_key="octmap",
        hiding_spot=HidingSpot("pumpkin", 0.5, 0.3),
        created_at=1_750_000_000_000,
    )
    data.update(overrides)
    return GameSession(**data)


def _profile(**overrides):
    data = dict(
        user_id="u1",
        username="alice",
        rank=Rank.TYAPU,
        total_guesses=0,
        successful_guesses=0,
        success_rate=0.0,
        joined_at=1_750_000_000_000,
        last_active=1_750_000_000_000,
    )
    data.update(overrides)
    return PlayerProfile(**data)


@pytest.mark.parametrize("value", [0.0, 1.0, 0, 1, 0.5])
def test_coordinate_boundaries_accepted(value):
    validate_coordinate(value, "relX")


@pytest.mark.parametrize("value", [-0.0001, 1.0001, float("nan"), float("inf")])
def test_coordinate_out_of_range_rejected(value):
    with pytest.raises(ValidationError) as exc:
        validate_coordinate(value, "relX")
    assert exc.value.field_name == "relX"


@pytest.mark.parametrize("value", [True, False, "0.5", None])
def test_coordinate_non_numbers_rejected(value):
    with pytest.raises(ValidationError):
        validate_coordinate(value, "relY")


@pytest.mark.parametrize("value", ["", "a:b", "has space", "x" * 129, 42])
def test_invalid_game_ids(value):
    with pytest.raises(ValidationError) as exc:
        validate_game_id(value)
    assert exc.value.field_name == "gameId"


def test_game_id_length_limit():
    validate_game_id("x" * 128)


@pytest.mark.parametrize("value", ["pumpkin", "tree-hollow", "big_tree", "A1"])
def test_object_key_format_accepted(value):
    validate_object_key(value)


@pytest.mark.parametrize("value", ["", "pump kin", "pumpkin!", "x" * 51])
def test_object_key_format_rejected(value):
    with pytest.raises(ValidationError):
        validate_object_key(value)


def test_object_key_must_belong_to_map(catalog):
    validate_object_key("bush", map_key="octmap", catalog=catalog)
    with pytest.raises(ValidationError) as exc:
        validate_object_key("fridge", map_key="octmap", catalog=catalog)
    assert exc.value.field_name == "objectKey"


def test_hiding_spot_rejects_out_of_range(catalog):
    with pytest.raises(ValidationError):
        validate_hiding_spot(HidingSpot("pumpkin", 1.0001, 0.5), map_key="octmap", catalog=catalog)


def test_game_session_valid(catalog):
    validate_game_session(_session(post_id="t3_abc", post_url="https://example.com/p"), catalog)


def test_game_session_unknown_map(catalog):
    with pytest.raises(ValidationError) as exc:
        validate_game_session(_session(map_key="moon-base"), catalog)
    assert exc.value.field_name == "mapKey"


def test_game_session_non_positive_created_at(catalog):
    with pytest.raises(ValidationError) as exc:
        validate_game_session(_session(created_at=0), catalog)
    assert exc.value.field_name == "createdAt"


def test_game_session_post_id_limits(catalog):
    with pytest.raises(ValidationError):
        validate_game_session(_session(post_id=""), catalog)
    with pytest.raises(ValidationError):
        validate_post_id("p" * 101)


def test_username_rules():
    validate_username("x" * 50)
    with pytest.raises(ValidationError):
        validate_username("x" * 51)
    assert normalize_username(None) == "Anonymous"
    assert normalize_username("   ") == "Anonymous"
    assert normalize_username("bob") == "bob"


def test_statistics_impossible_counts_rejected():
    validate_guess_statistics(GuessStatistics(3, 1, 3, 0.2))
    with pytest.raises(ValidationError):
        validate_guess_statistics(GuessStatistics(total_guesses=2, correct_guesses=3, unique_guessers=1))
    with pytest.raises(ValidationError):
        validate_guess_statistics(GuessStatistics(total_guesses=2, correct_guesses=0, unique_guessers=3))


def test_player_profile_consistency():
    validate_player_profile(_profile())
    validate_player_profile(_profile(
        total_guesses=10, successful_guesses=9, success_rate=0.9, rank=Rank.GUESS_MASTER,
    ))


def test_player_profile_rejects_successful_above_total():
    with pytest.raises(ValidationError) as exc:
        validate_player_profile(_profile(total_guesses=1, successful_guesses=2, success_rate=2.0))
    assert exc.value.field_name == "successfulGuesses"


def test_player_profile_rejects_wrong_rank():
    with pytest.raises(ValidationError) as exc:
        validate_player_profile(_profile(total_guesses=10, successful_guesses=9, success_rate=0.9))
    assert exc.value.field_name == "rank"


def test_player_profile_rejects_wrong_success_rate():
    with pytest.raises(ValidationError) as exc:
        validate_player_profile(_profile(total_guesses=4, successful_guesses=1, success_rate=0.5))
    assert exc.value.field_name == "successRate"


def test_player_profile_rejects_bool_counts():
    with pytest.raises(ValidationError):
        validate_player_profile(_profile(total_guesses=True))


def test_catalog_maps_are_valid(catalog):
    for virtual_map in catalog.list_maps():
        validate_virtual_map(virtual_map)
