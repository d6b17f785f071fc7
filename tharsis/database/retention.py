"""
Rollback / Retention - Undo, finalization and purging of saved versions.

- restore: read one exact version, no side effects
- undo: drop the N newest versions (the seed always survives)
- finalize: keep only the seed and the final version, mark finished
- purge_stale: delete old games that were never finalized

Undo activity is traced on the undo logger so a rollback can be audited
after the fact.
"""

from __future__ import annotations
import logging

from ..errors import GameNotFoundError, PersistenceError, SnapshotNotFoundError
from ..logging_config import undo_logger
from .base import Snapshot
from .store import SnapshotStore

logger = logging.getLogger(__name__)


class RollbackManager:
    """
    Version maintenance over a SnapshotStore.

    max_game_days is the purge age applied after each finalize; None
    (the default) disables purging.
    """

    def __init__(self, store: SnapshotStore, max_game_days: int | None = None):
        self.store = store
        self.max_game_days = max_game_days

    def restore(self, game_id: str, save_id: int) -> Snapshot:
        undo_logger().info("%s restore to %d", game_id, save_id)
        snapshot = self.store.fetch(game_id, save_id)
        if snapshot is None:
            raise SnapshotNotFoundError(game_id, save_id)
        return snapshot

    def undo(self, game_id: str, count: int) -> list[int]:
        """
        Delete the ``count`` highest non-seed versions.

        Returns the save_ids that disappeared. Asking for more versions
        than exist removes all of them except the seed.
        """
        if count <= 0:
            logger.error("Invalid rollback count for %s: %d", game_id, count)
            return []

        log = undo_logger()
        log.info("%s deleting %d saves", game_id, count)
        before = self.store.save_ids(game_id)
        deleted_rows = self.store.delete_recent(game_id, count)
        after = self.store.save_ids(game_id)

        difference = [save_id for save_id in before if save_id not in after]
        log.info("%s deleted %d rows, remaining %s", game_id, deleted_rows, after)
        log.info("%s rollback difference %s", game_id, difference)
        return difference

    def finalize(self, game_id: str) -> list[str]:
        max_save_id = self.store.max_save_id(game_id)
        if max_save_id is None:
            raise GameNotFoundError(game_id)

        removed = self.store.delete_intermediate(game_id, max_save_id)
        self.store.mark_finished(game_id)
        logger.info(
            "Finalized %s: kept seed and save_id %d, removed %d versions",
            game_id, max_save_id, removed,
        )
        # After marking finished, so this game is exempt
        return self.purge_stale(self.max_game_days)

    def purge_stale(self, max_age_days: int | None) -> list[str]:
        if max_age_days is None:
            return []
        if max_age_days <= 0:
            logger.warning("Ignoring purge with non-positive age %d", max_age_days)
            return []
        try:
            purged = self.store.purge_unfinished(max_age_days)
        except PersistenceError:
            logger.warning("Purge of games older than %d days failed", max_age_days, exc_info=True)
            return []
        if purged:
            logger.info("Purged %d unfinished games older than %d days", len(purged), max_age_days)
        return purged
