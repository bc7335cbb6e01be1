from __future__ import annotations

import threading
import uuid
from typing import Dict, Optional

from ...engine.game import Game


class InMemorySessionStore:
    """Thread-safe map of ``game_id`` to live ``Game``.

    Each game owns its board exclusively; the lock only guards the map so
    that concurrent requests never see a half-registered session.
    """

    def __init__(self, mandatory_capture: bool = False) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self.mandatory_capture = mandatory_capture

    def create(self, game: Optional[Game] = None) -> str:
        gid = uuid.uuid4().hex
        if game is None:
            game = Game.new(mandatory_capture=self.mandatory_capture)
        with self._lock:
            self._games[gid] = game
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def set(self, game_id: str, game: Game) -> None:
        with self._lock:
            if game_id not in self._games:
                raise KeyError(game_id)
            self._games[game_id] = game

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None
