"""
Session Manager - Loads, caches and retires in-memory games.

LIFECYCLE:
1. A game is created and its seed (save_id 0) written
2. Requests find the game by id or by any participant id
3. Each accepted response writes the next version
4. Undo drops recent versions; the game is reloaded from what remains
5. Finalize keeps the seed and the final version and marks it finished

The database is authoritative. A cached session is a convenience and
is dropped whenever the stored versions change underneath it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING
import json
import logging
import time

from ..engine_core.state import Game, GameStatus
from ..errors import PersistenceError
from ..inputs.node import PlayerInput
from .game_loop import GameLoop

if TYPE_CHECKING:
    from ..database.base import Database

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A loaded game and the loop that drives it."""
    loop: GameLoop
    created_at: float = field(default_factory=time.time)
    last_active: float = field(default_factory=time.time)

    @property
    def game(self) -> Game:
        return self.loop.game

    @property
    def game_id(self) -> str:
        return self.loop.game_id

    def is_active(self) -> bool:
        return not self.game.is_finished

    def touch(self) -> None:
        self.last_active = time.time()


def game_from_snapshot(text: str, save_id: int, status: str) -> Game:
    """
    Rebuild a game from a stored blob.

    The next save after loading version ``save_id`` writes ``save_id + 1``.
    """
    try:
        game = Game.from_json(text)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Unreadable game at save_id {save_id}: {e}") from e
    game.last_save_id = save_id + 1
    game.status = GameStatus(status)
    return game


class SessionManager:
    """
    Usage:
        manager = SessionManager(database)
        session = await manager.create_game(["Ada", "Grace"], first_input=tree)
        session = await manager.get_session_for_participant(player_id)
        result = await session.loop.process_input(player_id, response)
    """

    def __init__(self, database: Database, max_idle_seconds: int | None = None):
        self.database = database
        # Sessions idle longer than this are evicted on the next lookup
        self.max_idle_seconds = max_idle_seconds
        self._sessions: dict[str, Session] = {}

    async def create_game(
        self,
        player_names: list[str],
        spectator: bool = True,
        undo_enabled: bool = False,
        first_input: PlayerInput | None = None,
    ) -> Session:
        """Create a game and write its seed version."""
        game = Game.create(player_names, spectator=spectator, undo_enabled=undo_enabled)
        game.pending_input = first_input
        session = Session(loop=GameLoop(game, self.database))
        await session.loop.save()
        self._sessions[game.game_id] = session
        logger.info("Created game %s with %d players", game.game_id, len(game.players))
        return session

    async def get_session(self, game_id: str) -> Session:
        """The cached session, or one loaded from the latest version."""
        if self.max_idle_seconds is not None:
            self.cleanup_stale_sessions(self.max_idle_seconds)
        session = self._sessions.get(game_id)
        if session is None:
            snapshot = await self.database.get_game(game_id)
            game = game_from_snapshot(snapshot.game, snapshot.save_id, snapshot.status)
            session = Session(loop=GameLoop(game, self.database))
            self._sessions[game_id] = session
            logger.debug("Loaded game %s at save_id %d", game_id, snapshot.save_id)
        session.touch()
        return session

    async def get_session_for_participant(self, participant_id: str) -> Session:
        game_id = await self.database.get_game_id_for_participant(participant_id)
        return await self.get_session(game_id)

    async def load_version(self, game_id: str, save_id: int) -> Game:
        """A detached copy of one stored version. The cache is not touched."""
        snapshot = await self.database.restore(game_id, save_id)
        return game_from_snapshot(snapshot.game, snapshot.save_id, snapshot.status)

    async def undo(self, game_id: str, count: int = 1) -> list[int]:
        """
        Drop the ``count`` newest versions and reload from what remains.

        Returns the deleted save_ids.
        """
        session = await self.get_session(game_id)
        deleted = await session.loop.rollback(count)
        self.end_session(game_id)
        await self.get_session(game_id)
        return deleted

    async def finalize(self, game_id: str) -> Session:
        """
        Record results, keep the seed and final version, mark finished.

        Sessions of games purged as stale along the way are dropped.
        """
        session = await self.get_session(game_id)
        game = session.game
        scores = [
            {"playerId": p.player_id, "name": p.name, "score": sum(p.resources.values())}
            for p in game.players
        ]
        purged = await session.loop.finish({
            "players": len(game.players),
            "generations": game.generation,
            "options": {"undoEnabled": game.undo_enabled},
            "scores": scores,
        })
        for purged_id in purged:
            self.end_session(purged_id)
        logger.info("Finished game %s", game_id)
        return session

    def end_session(self, game_id: str) -> None:
        """
        Forget the cached session. Stored versions are untouched.

        The forgotten loop refuses further work, so only the next loaded
        session writes versions of this game.
        """
        session = self._sessions.pop(game_id, None)
        if session is not None:
            session.loop.retired = True

    def list_active_sessions(self) -> list[str]:
        return [gid for gid, session in self._sessions.items() if session.is_active()]

    def cleanup_stale_sessions(self, max_idle_seconds: int = 3600) -> list[str]:
        """Evict sessions idle longer than ``max_idle_seconds``, except busy ones."""
        now = time.time()
        stale = [
            gid for gid, session in self._sessions.items()
            if now - session.last_active > max_idle_seconds and not session.loop.busy
        ]
        for game_id in stale:
            logger.debug("Evicting idle session %s", game_id)
            self.end_session(game_id)
        return stale

    def info(self) -> dict[str, Any]:
        return {"cached": len(self._sessions), "active": len(self.list_active_sessions())}
