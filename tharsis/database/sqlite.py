"""
SQLite Database - The Database contract over a local SQLite file.

Composes the three persistence parts:
- SnapshotStore: rows and ledgers
- SaveCoordinator: versioned, conflict-counting saves
- RollbackManager: restore, undo, finalize, purge

Blocking SQLite calls run in worker threads via anyio, so saves and
reads never stall the event loop serving other games.
"""

from __future__ import annotations
from functools import partial
from pathlib import Path
from typing import Any, Callable, TypeVar, TYPE_CHECKING
import logging

import anyio.to_thread

from ..errors import GameNotFoundError, ParticipantNotFoundError, SnapshotNotFoundError
from ..engine_core.state import PLAYER_PREFIX, SPECTATOR_PREFIX
from .base import Database, DatabaseStatistics, Snapshot
from .coordinator import SaveCoordinator
from .retention import RollbackManager
from .store import SnapshotStore

if TYPE_CHECKING:
    from ..engine_core.state import Game
    from ..settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteDatabase(Database):
    """
    Usage:
        database = SQLiteDatabase("games.db")
        await database.initialize()

        await database.save(game)
        snapshot = await database.get_game(game.game_id)
    """

    def __init__(self, path: str | Path, max_game_days: int | None = None):
        self.store = SnapshotStore(path)
        self.statistics = DatabaseStatistics()
        self.coordinator = SaveCoordinator(self.store, self.statistics)
        self.rollback = RollbackManager(self.store, max_game_days=max_game_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> SQLiteDatabase:
        return cls(settings.database_path, max_game_days=settings.max_game_days)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await anyio.to_thread.run_sync(partial(func, *args))

    async def initialize(self) -> None:
        await self._run(self.store.initialize)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_game_ids(self) -> list[str]:
        return await self._run(self.store.game_ids)

    async def get_game(self, game_id: str) -> Snapshot:
        snapshot = await self._run(self.store.fetch_latest, game_id)
        if snapshot is None:
            raise GameNotFoundError(game_id)
        return snapshot

    async def get_game_version(self, game_id: str, save_id: int) -> Snapshot:
        snapshot = await self._run(self.store.fetch, game_id, save_id)
        if snapshot is None:
            raise SnapshotNotFoundError(game_id, save_id)
        return snapshot

    async def load_seed(self, game_id: str) -> Snapshot:
        return await self.get_game_version(game_id, 0)

    async def get_save_ids(self, game_id: str) -> list[int]:
        return await self._run(self.store.save_ids, game_id)

    async def get_player_count(self, game_id: str) -> int:
        count = await self._run(self.store.player_count, game_id)
        if count is None:
            raise GameNotFoundError(game_id)
        return count

    async def get_cloneable_games(self) -> list[tuple[str, int]]:
        return await self._run(self.store.cloneable_games)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def save(self, game: Game) -> None:
        await self._run(self.coordinator.save, game)

    async def restore(self, game_id: str, save_id: int) -> Snapshot:
        return await self._run(self.rollback.restore, game_id, save_id)

    async def delete_recent_saves(self, game_id: str, count: int) -> list[int]:
        return await self._run(self.rollback.undo, game_id, count)

    async def finalize(self, game_id: str) -> list[str]:
        return await self._run(self.rollback.finalize, game_id)

    async def purge_stale(self, max_age_days: int | None) -> list[str]:
        return await self._run(self.rollback.purge_stale, max_age_days)

    async def save_game_results(
        self,
        game_id: str,
        players: int,
        generations: int,
        options: dict[str, Any],
        scores: list[dict[str, Any]],
    ) -> None:
        await self._run(self.store.insert_game_results, game_id, players, generations, options, scores)

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    async def store_participants(self, game_id: str, participant_ids: list[str]) -> None:
        await self._run(self.store.insert_participants, game_id, participant_ids)

    async def get_participants(self) -> dict[str, set[str]]:
        rows = await self._run(self.store.participants)
        ledger: dict[str, set[str]] = {}
        for game_id, participant in rows:
            ledger.setdefault(game_id, set()).add(participant)
        return ledger

    async def get_game_id_for_participant(self, participant_id: str) -> str:
        if not participant_id.startswith((PLAYER_PREFIX, SPECTATOR_PREFIX)):
            raise ParticipantNotFoundError(
                f"id {participant_id} is neither a player id nor spectator id"
            )
        game_id = await self._run(self.store.game_id_for_participant, participant_id)
        if game_id is None:
            raise ParticipantNotFoundError(f"Game for participant {participant_id} not found")
        return game_id

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    async def stats(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": "SQLite", "path": self.store.path}
        result.update(self.store.connection_stats())
        counters = self.statistics.as_dict()
        result.update({
            "save-count": counters["save_count"],
            "save-error-count": counters["save_error_count"],
            "save-conflict-normal-count": counters["save_conflict_normal_count"],
            "save-conflict-undo-count": counters["save_conflict_undo_count"],
        })
        result.update(await self._run(self.store.size_bytes))
        return result
