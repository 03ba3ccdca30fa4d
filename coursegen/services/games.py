"""
Game Collection

Mini-games generated as a reward when a module is completed.
The collection is append-only: no dedup, no removal, ordered by
module completion.
"""

import json
from typing import List, Optional

import redis

from coursegen.config import Settings, get_settings
from coursegen.logging_config import get_logger
from coursegen.schemas import Game, GameAdapter
from coursegen.services.llm import ContentProvider
from coursegen.services.session import games_key, get_redis

logger = get_logger(__name__)


class GameCollection:
    """Append-only list of games per session, backed by a Redis list."""

    def __init__(self, client: Optional[redis.Redis] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.redis = client if client is not None else get_redis()
        self.timeout = settings.session_timeout

    def _key(self, session_id: str) -> str:
        return games_key(session_id)

    def append(self, session_id: str, game: Game) -> None:
        key = self._key(session_id)
        self.redis.rpush(key, GameAdapter.dump_json(game, by_alias=True).decode())
        self.redis.expire(key, self.timeout)

    def list(self, session_id: str) -> List[Game]:
        return [
            GameAdapter.validate_python(json.loads(raw))
            for raw in self.redis.lrange(self._key(session_id), 0, -1)
        ]

    def clear(self, session_id: str) -> None:
        """Drop all games; only used when a new course replaces the old one."""
        self.redis.delete(self._key(session_id))


class GameService:
    """Best-effort game generation after a module completes."""

    def __init__(self, provider: ContentProvider, collection: GameCollection):
        self.provider = provider
        self.collection = collection

    async def generate_for_module(self, session_id: str, module_title: str) -> Optional[Game]:
        """
        Generate a game and append it to the session's collection.

        Runs as a background task after progression has been saved.
        Failures are logged and swallowed, never retried.
        """
        try:
            game = await self.provider.generate_game(module_title)
            self.collection.append(session_id, game)
        except Exception:
            logger.exception("Failed to generate game for module %r", module_title)
            return None

        logger.info("Game %r added for module %r", game.title, module_title)
        return game
