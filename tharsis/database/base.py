"""
Database - The persistence contract.

Every change to a game is saved as a new immutable snapshot keyed by
(game_id, save_id). save_id counts up from 0 per game; version 0 is the
seed, kept until the whole game is purged.

All operations are coroutines. Implementations may be shared by several
server processes, and nothing reserves a save_id before writing it (see
SaveCoordinator for the consequences).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from datetime import datetime
from threading import Lock
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine_core.state import Game


@dataclass(frozen=True)
class Snapshot:
    """One saved version of a game."""
    game_id: str
    save_id: int
    game: str  # Serialized game, exactly as written
    players: int
    created_time: datetime
    status: str = "running"

    @property
    def is_seed(self) -> bool:
        return self.save_id == 0


@dataclass
class DatabaseStatistics:
    """
    Process-lifetime save counters.

    Conflicts are split by whether the game has undo enabled: undo games
    save more often and race more.
    """
    save_count: int = 0
    save_error_count: int = 0
    save_conflict_undo_count: int = 0
    save_conflict_normal_count: int = 0

    def __post_init__(self):
        self._lock = Lock()

    def increment(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class Database(ABC):
    """
    Persistence contract consumed by sessions and the API.

    Errors: lookups raise NotFoundError subclasses, store failures raise
    PersistenceError. save() is the exception: it never raises.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Open the store and create the schema. Failure is fatal."""

    @abstractmethod
    async def get_game_ids(self) -> list[str]:
        ...

    @abstractmethod
    async def get_game(self, game_id: str) -> Snapshot:
        """Latest version of a game."""

    @abstractmethod
    async def get_game_version(self, game_id: str, save_id: int) -> Snapshot:
        ...

    @abstractmethod
    async def load_seed(self, game_id: str) -> Snapshot:
        """Version 0, the reference copy used for cloning."""

    @abstractmethod
    async def get_save_ids(self, game_id: str) -> list[int]:
        ...

    @abstractmethod
    async def get_player_count(self, game_id: str) -> int:
        ...

    @abstractmethod
    async def get_cloneable_games(self) -> list[tuple[str, int]]:
        """(game_id, player count) for every game with a seed."""

    @abstractmethod
    async def save(self, game: Game) -> None:
        """Write the game at its last_save_id, then advance it. Never raises."""

    @abstractmethod
    async def restore(self, game_id: str, save_id: int) -> Snapshot:
        ...

    @abstractmethod
    async def delete_recent_saves(self, game_id: str, count: int) -> list[int]:
        """Undo: drop the ``count`` newest non-seed versions."""

    @abstractmethod
    async def finalize(self, game_id: str) -> list[str]:
        """
        Keep only the seed and final version and mark the game finished.

        Returns the ids of stale games purged afterwards.
        """

    @abstractmethod
    async def purge_stale(self, max_age_days: int | None) -> list[str]:
        """Delete unfinished games older than the age. None disables it."""

    @abstractmethod
    async def save_game_results(
        self,
        game_id: str,
        players: int,
        generations: int,
        options: dict[str, Any],
        scores: list[dict[str, Any]],
    ) -> None:
        ...

    @abstractmethod
    async def store_participants(self, game_id: str, participant_ids: list[str]) -> None:
        ...

    @abstractmethod
    async def get_participants(self) -> dict[str, set[str]]:
        ...

    @abstractmethod
    async def get_game_id_for_participant(self, participant_id: str) -> str:
        """Reverse lookup by player or spectator id."""

    @abstractmethod
    async def stats(self) -> dict[str, Any]:
        ...

    async def close(self) -> None:
        return None
