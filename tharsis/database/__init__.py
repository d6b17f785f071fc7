"""
Database - Versioned snapshot persistence.

Every change to a game becomes a numbered, immutable snapshot. The
package provides the contract (Database), a SQLite implementation and
the parts it is built from.
"""

from .base import Database, DatabaseStatistics, Snapshot
from .store import SnapshotStore
from .coordinator import SaveCoordinator
from .retention import RollbackManager
from .sqlite import SQLiteDatabase

__all__ = [
    "Database",
    "DatabaseStatistics",
    "Snapshot",
    "SnapshotStore",
    "SaveCoordinator",
    "RollbackManager",
    "SQLiteDatabase",
]
