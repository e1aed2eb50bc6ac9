"""
Session store.
Owns GameSession records (game:{gameId}) and post mappings (post:{postId}).
"""
from dataclasses import replace
from typing import Callable, List, Optional

from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.domain.logic.validation import (
    validate_game_id,
    validate_game_session,
    validate_post_id,
    validate_user_id,
)
from hideseek.domain.models.game import GameSession, HidingSpot
from hideseek.infrastructure.storage import keys
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.infrastructure.storage.base_store import JsonRecordStore, epoch_ms
from hideseek.infrastructure.storage.keys import KeySpace
from hideseek.utils.exceptions import NotFoundError, ValidationError
from hideseek.utils.logger import logger


class GameSessionStore(JsonRecordStore):
    """
    遊戲局的持久化存取。

    用法示例:
    ```python
    store = GameSessionStore(adapter, keyspace, catalog)
    session = store.create_session(
        game_id="g1",
        creator="u1",
        map_key="octmap",
        hiding_spot=HidingSpot("pumpkin", 0.5, 0.3),
    )
    store.get_session("g1")
    ```
    """

    def __init__(
        self,
        adapter: KeyValueAdapter,
        keyspace: KeySpace,
        catalog: MapCatalog,
        clock: Callable[[], int] = epoch_ms,
    ):
        super().__init__(adapter, keyspace, clock)
        self.catalog = catalog

    def _validate(self, session: GameSession) -> None:
        validate_game_session(session, self.catalog)

    def create_session(
        self,
        game_id: str,
        creator: str,
        map_key: str,
        hiding_spot: HidingSpot,
        post_id: Optional[str] = None,
        post_url: Optional[str] = None,
        creator_username: Optional[str] = None,
    ) -> GameSession:
        """
        建立新的遊戲局，並在有 post_id 時寫入貼文對應。

        Args:
            game_id: 遊戲識別碼（不可含 ':' 或空白）
            creator: 建立者 user id
            map_key: 地圖 key
            hiding_spot: 藏匿位置
            post_id: 外部貼文 id（可選）
            post_url: 外部貼文網址（可選）
            creator_username: 建立者名稱（可選）

        Returns:
            建立完成的 GameSession

        Raises:
            ValidationError: 輸入不合法或 gameId 已存在
            StorageError: store 操作失敗
        """
        session = GameSession(
            game_id=game_id,
            creator=creator,
            creator_username=creator_username,
            map_key=map_key,
            hiding_spot=hiding_spot,
            created_at=self.clock(),
            is_active=True,
            post_id=post_id,
            post_url=post_url,
        )
        self._validate(session)

        if not self._write(keys.game_key(game_id), session.to_dict(), only_if_absent=True):
            raise ValidationError("gameId", f"game {game_id!r} already exists")
        if post_id is not None:
            self._write_mapping(post_id, game_id)

        logger.info("Game session created", extra={"game_id": game_id, "map_key": map_key, "post_id": post_id})
        return session

    def _write_mapping(self, post_id: str, game_id: str) -> None:
        key = keys.post_key(post_id)
        self.adapter.set(key, game_id.encode("utf-8"))
        self.adapter.set_ttl(key, self.keyspace.ttl_for(key))

    def get_session(self, game_id: str) -> Optional[GameSession]:
        validate_game_id(game_id)
        return self._read(keys.game_key(game_id), GameSession.from_dict, self._validate)

    def get_game_id_for_post(self, post_id: str) -> Optional[str]:
        validate_post_id(post_id)
        raw = self.adapter.get(keys.post_key(post_id))
        if raw is None:
            return None
        try:
            game_id = raw.decode("utf-8")
            validate_game_id(game_id)
        except (UnicodeDecodeError, ValidationError):
            logger.warning("Discarding invalid post mapping", extra={"post_id": post_id})
            return None
        return game_id

    def get_session_by_post_id(self, post_id: str) -> Optional[GameSession]:
        game_id = self.get_game_id_for_post(post_id)
        if game_id is None:
            return None
        # 對應存在但遊戲局已過期或被刪除時回傳 None
        return self.get_session(game_id)

    def update_session(self, session: GameSession) -> GameSession:
        """
        以完整紀錄覆寫遊戲局，重新驗證並套用 TTL。

        Raises:
            ValidationError: 紀錄不合法
            StorageError: store 操作失敗
        """
        self._validate(session)
        self._write(keys.game_key(session.game_id), session.to_dict())
        if session.post_id is not None:
            self._write_mapping(session.post_id, session.game_id)
        return session

    def attach_post(self, game_id: str, post_id: str, post_url: Optional[str] = None) -> GameSession:
        session = self.get_session(game_id)
        if session is None:
            raise NotFoundError(f"Game {game_id} not found", resource_type="game", resource_id=game_id)
        return self.update_session(replace(session, post_id=post_id, post_url=post_url))

    def delete_session(self, game_id: str) -> bool:
        """
        刪除遊戲局與其貼文對應。

        Returns:
            遊戲局 key 是否確實被刪除
        """
        session = self.get_session(game_id)
        targets = [keys.game_key(game_id)]
        if session is not None and session.post_id is not None:
            targets.append(keys.post_key(session.post_id))
        removed = self.adapter.delete(*targets)
        logger.info("Game session deleted", extra={"game_id": game_id, "removed": removed})
        return session is not None or removed > 0

    def is_creator(self, game_id: str, user_id: str) -> bool:
        validate_user_id(user_id)
        session = self.get_session(game_id)
        return session is not None and session.creator == user_id

    def list_session_ids(self) -> List[str]:
        ids = []
        for key in self.adapter.scan(f"{keys.GAME_PREFIX}*"):
            game_id = keys.game_id_from_key(key)
            if game_id is not None:
                ids.append(game_id)
        return sorted(ids)
