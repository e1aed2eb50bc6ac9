from .game import GameSession, GuessData, GuessStatistics, HidingSpot, MapObject, VirtualMap
from .maintenance import CleanupResult, CleanupState, SweepReport
from .player import (
    RANK_ORDER,
    PlayerProfile,
    PlayerUpdateResult,
    Rank,
    RankProgression,
    RankRequirements,
)

__all__ = [
    "GameSession",
    "GuessData",
    "GuessStatistics",
    "HidingSpot",
    "MapObject",
    "VirtualMap",
    "CleanupResult",
    "CleanupState",
    "SweepReport",
    "RANK_ORDER",
    "PlayerProfile",
    "PlayerUpdateResult",
    "Rank",
    "RankProgression",
    "RankRequirements",
]
