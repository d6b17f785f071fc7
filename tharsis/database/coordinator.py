"""
Save Coordinator - Writes each game change as the next version.

The version written is whatever ``game.last_save_id`` holds; nothing
reserves it first. Two processes serving the same game can therefore
both write version v: one inserts the row, the other silently overwrites
it. The loser is counted as a conflict but the call still succeeds, and
both processes advance their own counter to v + 1. Conflicts are
observable through stats(); they are not prevented.

A failed write never reaches the caller and never rewinds the counter.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

from ..errors import PersistenceError
from ..logging_config import undo_logger
from .base import DatabaseStatistics
from .store import SnapshotStore

if TYPE_CHECKING:
    from ..engine_core.state import Game

logger = logging.getLogger(__name__)


class SaveCoordinator:
    def __init__(self, store: SnapshotStore, statistics: DatabaseStatistics):
        self.store = store
        self.statistics = statistics

    def save(self, game: Game) -> bool | None:
        """
        Save ``game`` at its current last_save_id, then increment it.

        Returns True for a fresh insert, False for a conflict (the version
        already existed and was overwritten), None if the write failed.
        """
        save_id = game.last_save_id
        self.statistics.increment("save_count")
        if game.undo_enabled:
            undo_logger().info("%s start save %d", game.game_id, save_id)

        inserted = None
        try:
            inserted = self.store.upsert(
                game.game_id,
                save_id,
                game.to_json(),
                len(game.players),
            )
            if not inserted:
                if game.undo_enabled:
                    self.statistics.increment("save_conflict_undo_count")
                else:
                    self.statistics.increment("save_conflict_normal_count")
                logger.warning("Save conflict on %s at save_id %d", game.game_id, save_id)

            # The ledger is written once: by whoever actually created the seed
            if inserted and save_id == 0:
                self.store.insert_participants(game.game_id, game.participant_ids())
        except (PersistenceError, TypeError, ValueError):
            # TypeError/ValueError: the game did not serialize
            self.statistics.increment("save_error_count")
            logger.exception("Failed to save %s at save_id %d", game.game_id, save_id)
        finally:
            game.last_save_id = save_id + 1

        if game.undo_enabled:
            undo_logger().info("%s increment save id, now %d", game.game_id, game.last_save_id)
        return inserted
