# hideseek/domain/logic/scoring.py

import math
from typing import Tuple

from hideseek.domain.models.game import HidingSpot


def calculate_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    # 正規化座標下的歐氏距離
    return math.hypot(x1 - x2, y1 - y2)


def score_guess(
    object_key: str,
    rel_x: float,
    rel_y: float,
    hiding_spot: HidingSpot,
    threshold: float,
) -> Tuple[float, bool]:
    """
    計算猜測與藏匿位置的距離並判斷是否猜中。

    物件 key 必須相同，且距離小於或等於門檻才算猜中。

    Returns:
        (distance, is_correct)
    """
    distance = calculate_distance(rel_x, rel_y, hiding_spot.rel_x, hiding_spot.rel_y)
    is_correct = object_key == hiding_spot.object_key and distance <= threshold
    return distance, is_correct
