"""
Snapshot Store - SQLite tables behind the Database contract.

Tables:
- games: one row per (game_id, save_id) snapshot
- participants: ledger of player/spectator ids per game, written once
- completed_games: finalization timestamps, exempt from purging
- game_results: final scores of finished games

Every method opens its own connection, so the store can be shared by
threads and by several processes pointing at the same file (which is
also why ":memory:" cannot be used). Blocking; SQLiteDatabase runs these
calls in worker threads.
"""

from __future__ import annotations
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Iterator
import json
import logging
import sqlite3

from ..errors import PersistenceError, StoreInitializationError
from .base import Snapshot

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    game_id TEXT NOT NULL,
    save_id INTEGER NOT NULL,
    game TEXT NOT NULL,
    players INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'running',
    created_time TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (game_id, save_id)
);
CREATE INDEX IF NOT EXISTS ix_games_save_id ON games(save_id);
CREATE INDEX IF NOT EXISTS ix_games_created_time ON games(created_time);
CREATE TABLE IF NOT EXISTS participants (
    game_id TEXT NOT NULL,
    participant TEXT NOT NULL,
    PRIMARY KEY (game_id, participant)
);
CREATE INDEX IF NOT EXISTS ix_participants_participant ON participants(participant);
CREATE TABLE IF NOT EXISTS completed_games (
    game_id TEXT PRIMARY KEY,
    completed_time TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE TABLE IF NOT EXISTS game_results (
    game_id TEXT PRIMARY KEY,
    players INTEGER NOT NULL,
    generations INTEGER NOT NULL,
    game_options TEXT NOT NULL,
    scores TEXT NOT NULL
);
"""

_SNAPSHOT_COLUMNS = "game_id, save_id, game, players, created_time, status"


def _to_snapshot(row: sqlite3.Row) -> Snapshot:
    return Snapshot(
        game_id=row["game_id"],
        save_id=row["save_id"],
        game=row["game"],
        players=row["players"],
        created_time=datetime.fromisoformat(row["created_time"]).replace(tzinfo=timezone.utc),
        status=row["status"],
    )


class SnapshotStore:
    """
    Row-level access to the snapshot tables.

    Raises PersistenceError for any SQLite failure; "missing" is reported
    with None or empty results, never as an error.
    """

    def __init__(self, path: str | Path, timeout: float = 10.0):
        self.path = str(path)
        self.timeout = timeout
        self._active = 0
        self._peak = 0
        self._opened = 0
        self._counter_lock = Lock()

    def initialize(self) -> None:
        try:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            with closing(sqlite3.connect(self.path, timeout=self.timeout)) as conn:
                conn.executescript(_SCHEMA)
                conn.execute("PRAGMA journal_mode=WAL")
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StoreInitializationError(f"Cannot open database {self.path}: {e}") from e
        logger.info("Snapshot store ready at %s", self.path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        with self._counter_lock:
            self._active += 1
            self._opened += 1
            self._peak = max(self._peak, self._active)
        try:
            with closing(sqlite3.connect(self.path, timeout=self.timeout)) as conn:
                conn.row_factory = sqlite3.Row
                yield conn
        except sqlite3.Error as e:
            raise PersistenceError(f"{type(e).__name__}: {e}") from e
        finally:
            with self._counter_lock:
                self._active -= 1

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def upsert(self, game_id: str, save_id: int, game: str, players: int) -> bool:
        """
        Insert the snapshot, or overwrite its blob if the row already exists.

        Returns True only when this call created the row.
        """
        with self.connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO games (game_id, save_id, game, players) "
                "VALUES (?, ?, ?, ?)",
                (game_id, save_id, game, players),
            )
            inserted = cursor.rowcount == 1
            if not inserted:
                conn.execute(
                    "UPDATE games SET game = ? WHERE game_id = ? AND save_id = ?",
                    (game, game_id, save_id),
                )
            conn.commit()
        return inserted

    def fetch(self, game_id: str, save_id: int) -> Snapshot | None:
        with self.connect() as conn:
            row = conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM games WHERE game_id = ? AND save_id = ?",
                (game_id, save_id),
            ).fetchone()
        return _to_snapshot(row) if row else None

    def fetch_latest(self, game_id: str) -> Snapshot | None:
        with self.connect() as conn:
            row = conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM games WHERE game_id = ? "
                "ORDER BY save_id DESC LIMIT 1",
                (game_id,),
            ).fetchone()
        return _to_snapshot(row) if row else None

    def game_ids(self) -> list[str]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT game_id FROM games GROUP BY game_id ORDER BY MIN(created_time) DESC, game_id"
            ).fetchall()
        return [row["game_id"] for row in rows]

    def save_ids(self, game_id: str) -> list[int]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT save_id FROM games WHERE game_id = ? ORDER BY save_id",
                (game_id,),
            ).fetchall()
        return [row["save_id"] for row in rows]

    def max_save_id(self, game_id: str) -> int | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT MAX(save_id) AS save_id FROM games WHERE game_id = ?",
                (game_id,),
            ).fetchone()
        return row["save_id"]

    def player_count(self, game_id: str) -> int | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT players FROM games WHERE game_id = ? AND save_id = 0",
                (game_id,),
            ).fetchone()
        return row["players"] if row else None

    def cloneable_games(self) -> list[tuple[str, int]]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT game_id, players FROM games WHERE save_id = 0 ORDER BY game_id"
            ).fetchall()
        return [(row["game_id"], row["players"]) for row in rows]

    def delete_recent(self, game_id: str, count: int) -> int:
        """Delete the ``count`` newest versions, never the seed."""
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM games WHERE game_id = ? AND save_id IN ("
                "  SELECT save_id FROM games WHERE game_id = ? AND save_id > 0"
                "  ORDER BY save_id DESC LIMIT ?)",
                (game_id, game_id, count),
            )
            conn.commit()
        return cursor.rowcount

    def delete_intermediate(self, game_id: str, max_save_id: int) -> int:
        """Delete every version strictly between the seed and ``max_save_id``."""
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM games WHERE game_id = ? AND save_id > 0 AND save_id < ?",
                (game_id, max_save_id),
            )
            conn.commit()
        return cursor.rowcount

    def mark_finished(self, game_id: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO completed_games (game_id) VALUES (?)",
                (game_id,),
            )
            conn.execute(
                "UPDATE games SET status = 'finished' WHERE game_id = ?",
                (game_id,),
            )
            conn.commit()

    def is_completed(self, game_id: str) -> bool:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM completed_games WHERE game_id = ?",
                (game_id,),
            ).fetchone()
        return row is not None

    def purge_unfinished(self, max_age_days: int) -> list[str]:
        """Delete games created more than ``max_age_days`` ago and never completed."""
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT game_id FROM games "
                "WHERE game_id NOT IN (SELECT game_id FROM completed_games) "
                "GROUP BY game_id "
                "HAVING MIN(created_time) < datetime('now', ?)",
                (f"-{max_age_days} days",),
            ).fetchall()
            game_ids = [row["game_id"] for row in rows]
            conn.executemany("DELETE FROM games WHERE game_id = ?", [(g,) for g in game_ids])
            conn.executemany("DELETE FROM participants WHERE game_id = ?", [(g,) for g in game_ids])
            conn.commit()
        return game_ids

    # -------------------------------------------------------------------------
    # Ledgers
    # -------------------------------------------------------------------------

    def insert_participants(self, game_id: str, participant_ids: list[str]) -> None:
        with self.connect() as conn:
            conn.executemany(
                "INSERT INTO participants (game_id, participant) VALUES (?, ?)",
                [(game_id, participant) for participant in participant_ids],
            )
            conn.commit()

    def participants(self) -> list[tuple[str, str]]:
        with self.connect() as conn:
            rows = conn.execute("SELECT game_id, participant FROM participants").fetchall()
        return [(row["game_id"], row["participant"]) for row in rows]

    def game_id_for_participant(self, participant_id: str) -> str | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT game_id FROM participants WHERE participant = ?",
                (participant_id,),
            ).fetchone()
        return row["game_id"] if row else None

    def insert_game_results(
        self,
        game_id: str,
        players: int,
        generations: int,
        options: dict[str, Any],
        scores: list[dict[str, Any]],
    ) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO game_results (game_id, players, generations, game_options, scores) "
                "VALUES (?, ?, ?, ?, ?)",
                (game_id, players, generations, json.dumps(options), json.dumps(scores)),
            )
            conn.commit()

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def connection_stats(self) -> dict[str, int]:
        with self._counter_lock:
            return {
                "pool-active-count": self._active,
                "pool-peak-count": self._peak,
                "pool-opened-count": self._opened,
            }

    def size_bytes(self) -> dict[str, int]:
        with self.connect() as conn:
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            row_counts = {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ("games", "participants", "completed_games", "game_results")
            }
        sizes = {"size-bytes-database": page_size * page_count}
        sizes.update({f"rows-{table}": count for table, count in row_counts.items()})
        return sizes
