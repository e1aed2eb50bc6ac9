"""
Access to records written under the legacy key layout
(game_session:{gameId} and post_mapping:{postId}). Legacy keys are read and deleted, never written.
"""
import json
from typing import Optional

from hideseek.domain.logic.map_catalog import MapCatalog
from hideseek.domain.logic.validation import validate_game_id, validate_game_session, validate_post_id
from hideseek.domain.models.game import GameSession
from hideseek.infrastructure.storage import keys
from hideseek.infrastructure.storage.adapter import KeyValueAdapter
from hideseek.utils.exceptions import ValidationError
from hideseek.utils.logger import logger


class LegacySessionReader:
    """
    讀取舊版 key 格式的遊戲局。舊版紀錄的 JSON 欄位與新版相同。
    """

    def __init__(self, adapter: KeyValueAdapter, catalog: MapCatalog):
        self.adapter = adapter
        self.catalog = catalog

    def get_session(self, game_id: str) -> Optional[GameSession]:
        key = keys.legacy_session_key(game_id)
        raw = self.adapter.get(key)
        if raw is None:
            return None
        try:
            session = GameSession.from_dict(json.loads(raw))
            validate_game_session(session, self.catalog)
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Discarding invalid legacy session", extra={"key": key, "error": str(e)})
            return None
        logger.info("Served game session from legacy key", extra={"game_id": game_id})
        return session

    def delete_session(self, game_id: str) -> bool:
        """
        刪除舊版遊戲局與其 post_mapping。舊版 key 不再寫入，但刪除遊戲局時必須一併清掉，
        否則讀取時會再從舊版 key 取回。

        Returns:
            舊版遊戲局 key 是否確實被刪除
        """
        validate_game_id(game_id)
        session = self.get_session(game_id)
        targets = [keys.legacy_session_key(game_id)]
        if session is not None and session.post_id is not None:
            targets.append(keys.legacy_post_key(session.post_id))
        removed = self.adapter.delete(*targets)
        if removed:
            logger.info("Legacy game session deleted", extra={"game_id": game_id, "removed": removed})
        return session is not None or removed > 0


class LegacyPostMappingReader:
    """
    讀取舊版 post_mapping:{postId}，內容為 gameId 字串（可能帶 JSON 引號）。
    """

    def __init__(self, adapter: KeyValueAdapter):
        self.adapter = adapter

    def get_game_id_for_post(self, post_id: str) -> Optional[str]:
        validate_post_id(post_id)
        key = keys.legacy_post_key(post_id)
        raw = self.adapter.get(key)
        if raw is None:
            return None
        try:
            text = raw.decode("utf-8")
            game_id = json.loads(text) if text.startswith('"') else text
            validate_game_id(game_id)
        except (ValueError, ValidationError) as e:
            logger.warning("Discarding invalid legacy post mapping", extra={"key": key, "error": str(e)})
            return None
        return game_id
