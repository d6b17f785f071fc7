"""
Pytest fixtures for Tharsis tests.
"""

import sqlite3
from contextlib import closing

import pytest

from ..database import SnapshotStore, SQLiteDatabase
from ..engine_core.action import Action
from ..engine_core.state import Game
from ..inputs import AndOptions, OrOptions, SelectAmount, SelectOption
from ..session import SessionManager


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingRunner:
    """Action runner that records what it was asked to execute."""

    def __init__(self, follow_ups=None):
        self.calls = []
        self.follow_ups = follow_ups or {}

    def execute(self, action, value=None):
        self.calls.append((action, value))
        return self.follow_ups.get(action.data.get("message"))


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def game() -> Game:
    """A 2-player game with fixed ids."""
    game = Game.create(["Ada", "Grace"], game_id="g1")
    game.players[0].player_id = "p1"
    game.players[1].player_id = "p2"
    game.spectator_id = "s1"
    game.active_player_id = "p1"
    return game


@pytest.fixture
def store(tmp_path) -> SnapshotStore:
    store = SnapshotStore(tmp_path / "store.db")
    store.initialize()
    return store


@pytest.fixture
def database(tmp_path) -> SQLiteDatabase:
    """Initialized database in a temporary directory."""
    database = SQLiteDatabase(tmp_path / "games.db")
    database.store.initialize()
    return database


@pytest.fixture
def manager(database) -> SessionManager:
    return SessionManager(database)


def three_way_choice(player_id: str = "p1") -> OrOptions:
    """Or with an option, an And of two options, and an amount in [0, 10]."""
    return OrOptions.of(
        "Choose an action",
        SelectOption("Pass", action=Action.log("passed")),
        AndOptions.of(
            "Do both",
            SelectOption("First", action=Action.gain(player_id, "steel", 1)),
            SelectOption("Second", action=Action.gain(player_id, "titanium", 1)),
            action=Action.log("did both"),
        ),
        SelectAmount(
            "Take credits",
            action=Action.gain(player_id, "credits"),
            min_amount=0,
            max_amount=10,
        ),
    )


def backdate(path, game_id: str, days: int) -> None:
    """Move a stored game's creation time ``days`` into the past."""
    with closing(sqlite3.connect(path)) as conn:
        conn.execute(
            "UPDATE games SET created_time = datetime('now', ?) WHERE game_id = ?",
            (f"-{days} days", game_id),
        )
        conn.commit()
