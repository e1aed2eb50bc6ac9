"""
Static catalog of playable maps and the monthly rotation.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from hideseek.domain.models.game import MapObject, VirtualMap


def _month_start(now: datetime, offset: int = 0) -> int:
    """回傳 now 所在月份往後 offset 個月的月初（epoch 毫秒）。"""
    month_index = now.month - 1 + offset
    year = now.year + month_index // 12
    start = datetime(year, month_index % 12 + 1, 1, tzinfo=timezone.utc)
    return int(start.timestamp() * 1000)


def _objects(*rows) -> List[MapObject]:
    return [
        MapObject(key=key, name=name, x=x, y=y, width=w, height=h, interactive=interactive)
        for key, name, x, y, w, h, interactive in rows
    ]


def build_default_maps(now: datetime) -> List[VirtualMap]:
    """
    建立預設地圖清單。

    Args:
        now: 用來計算各地圖上架日期的時間點

    Returns:
        VirtualMap 列表
    """
    return [
        VirtualMap(
            key="cozy-bedroom",
            name="Cozy Bedroom",
            theme="indoor",
            release_date=_month_start(now),
            background_asset="bedroom-bg",
            objects=_objects(
                ("pumpkin", "Pumpkin", 150, 200, 32, 32, True),
                ("wardrobe", "Wardrobe", 300, 150, 64, 128, True),
                ("bed", "Bed", 500, 300, 128, 64, True),
                ("desk", "Desk", 100, 400, 96, 48, True),
                ("lamp", "Lamp", 450, 100, 24, 48, True),
                ("chair", "Chair", 120, 380, 40, 40, False),
                ("window", "Window", 600, 50, 80, 100, False),
            ),
            difficulty="easy",
        ),
        VirtualMap(
            key="modern-kitchen",
            name="Modern Kitchen",
            theme="indoor",
            release_date=_month_start(now, 1),
            background_asset="kitchen-bg",
            objects=_objects(
                ("cup", "Coffee Cup", 200, 150, 24, 32, True),
                ("book", "Recipe Book", 350, 180, 48, 32, True),
                ("fridge", "Refrigerator", 100, 100, 80, 160, True),
                ("stove", "Stove", 400, 200, 96, 64, True),
                ("sink", "Kitchen Sink", 250, 220, 80, 40, True),
                ("microwave", "Microwave", 500, 120, 60, 40, False),
                ("toaster", "Toaster", 320, 200, 40, 24, False),
            ),
            difficulty="medium",
        ),
        VirtualMap(
            key="enchanted-forest",
            name="Enchanted Forest",
            theme="nature",
            release_date=_month_start(now, 2),
            background_asset="forest-bg",
            objects=_objects(
                ("mushroom", "Magic Mushroom", 180, 350, 32, 40, True),
                ("tree-hollow", "Tree Hollow", 120, 200, 48, 64, True),
                ("fairy-ring", "Fairy Ring", 400, 300, 80, 80, True),
                ("crystal", "Crystal", 300, 150, 24, 32, True),
                ("owl", "Wise Owl", 150, 100, 40, 48, True),
                ("big-tree", "Ancient Tree", 100, 50, 120, 200, False),
                ("flowers", "Wild Flowers", 350, 380, 60, 30, False),
            ),
            difficulty="hard",
        ),
        VirtualMap(
            key="octmap",
            name="Demo Map",
            theme="indoor",
            release_date=_month_start(now),
            background_asset="octmap",
            # octmap 的座標已是正規化座標
            objects=_objects(
                ("pumpkin", "Pumpkin", 0.82, 0.75, 32, 32, True),
                ("wardrobe", "Wardrobe", 0.15, 0.63, 64, 128, True),
                ("bush", "Bush", 0.25, 0.8, 32, 32, True),
                ("car", "Car", 0.44, 0.87, 64, 32, True),
                ("truck", "Truck", 0.69, 0.83, 64, 32, True),
                ("guard", "Guard", 0.5, 0.58, 32, 48, True),
            ),
            difficulty="easy",
        ),
    ]


class MapCatalog:
    """
    唯讀地圖目錄，提供地圖查詢與每月輪替。

    用法示例:
    ```python
    catalog = MapCatalog()
    catalog.is_known_object("octmap", "pumpkin")   # True
    catalog.get_current_map().key
    ```
    """

    def __init__(
        self,
        maps: Optional[List[VirtualMap]] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._now = now
        self._maps: Dict[str, VirtualMap] = {m.key: m for m in (maps or build_default_maps(now()))}
        if not self._maps:
            raise ValueError("Map catalog requires at least one map")

    def get_map(self, map_key: str) -> Optional[VirtualMap]:
        return self._maps.get(map_key)

    def list_maps(self) -> List[VirtualMap]:
        return sorted(self._maps.values(), key=lambda m: m.key)

    def is_known_map(self, map_key: str) -> bool:
        return map_key in self._maps

    def is_known_object(self, map_key: str, object_key: str) -> bool:
        virtual_map = self._maps.get(map_key)
        return virtual_map is not None and object_key in virtual_map.object_keys

    def get_current_map(self, at: Optional[datetime] = None) -> VirtualMap:
        """
        取得指定時間點（預設為現在）的本月地圖。

        地圖依 key 排序後，以月份索引循環選出。
        """
        at = at or self._now()
        ordered = self.list_maps()
        return ordered[(at.month - 1) % len(ordered)]

    def get_next_rotation_date(self, at: Optional[datetime] = None) -> int:
        return _month_start(at or self._now(), 1)
