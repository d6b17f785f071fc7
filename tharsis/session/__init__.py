"""
Session Module - In-memory games backed by versioned snapshots.

A session represents one loaded game:
- Created with a new game, or loaded from its latest stored version
- Answers what each participant is waiting on
- Resolves responses and saves each change as a new version
- Dropped and reloaded whenever stored versions are undone

The database is the source of truth; sessions are a cache over it.
"""

from .manager import SessionManager, Session, game_from_snapshot
from .game_loop import GameLoop, TurnResult

__all__ = [
    "SessionManager",
    "Session",
    "game_from_snapshot",
    "GameLoop",
    "TurnResult",
]
