"""
Game State - The in-memory game owned by a session.

Design principles:
- One pending root input at a time, answered by ``active_player_id``
- Interrupts preempt the pending input until drained
- ``last_save_id`` is the version the next save will write
- Serializable: the persistence layer only ever sees ``to_json()``

Ids carry a prefix so an id alone tells what it refers to:
``g`` games, ``p`` players, ``s`` spectators.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any
import json
import secrets
import time

from ..inputs.node import PlayerInput
from ..inputs.tree import input_from_dict
from .interrupts import Interrupt, InterruptQueue

GAME_PREFIX = "g"
PLAYER_PREFIX = "p"
SPECTATOR_PREFIX = "s"

# Owner of delegates that belong to no player
NEUTRAL = "NEUTRAL"


def new_id(prefix: str) -> str:
    return prefix + secrets.token_hex(6)


class GameStatus(Enum):
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class Player:
    player_id: str
    name: str
    resources: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.player_id, "name": self.name, "resources": dict(self.resources)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        return cls(
            player_id=data["id"],
            name=data["name"],
            resources=dict(data.get("resources", {})),
        )


@dataclass
class Game:
    """
    Complete state of one game.

    Owned by exactly one GameSession; mutate only through the session
    (resolution) or the ActionExecutor.
    """
    game_id: str
    players: list[Player]
    spectator_id: str | None = None
    undo_enabled: bool = False

    status: GameStatus = GameStatus.RUNNING
    last_save_id: int = 0
    generation: int = 1

    # Decision state
    pending_input: PlayerInput | None = None
    active_player_id: str | None = None
    interrupts: InterruptQueue = field(default_factory=InterruptQueue)

    # World state
    # party -> delegate owners, in arrival order; the first is the party leader
    parties: dict[str, list[str]] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    log: list[str] = field(default_factory=list)

    created_at: float = field(default_factory=time.time)

    @classmethod
    def create(
        cls,
        player_names: list[str],
        spectator: bool = True,
        undo_enabled: bool = False,
        game_id: str | None = None,
    ) -> Game:
        """Factory for a fresh game with generated ids."""
        if not player_names:
            raise ValueError("A game needs at least one player")
        players = [Player(player_id=new_id(PLAYER_PREFIX), name=name) for name in player_names]
        return cls(
            game_id=game_id or new_id(GAME_PREFIX),
            players=players,
            spectator_id=new_id(SPECTATOR_PREFIX) if spectator else None,
            undo_enabled=undo_enabled,
            active_player_id=players[0].player_id,
        )

    @property
    def is_finished(self) -> bool:
        return self.status is GameStatus.FINISHED

    def get_player(self, player_id: str) -> Player | None:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def participant_ids(self) -> list[str]:
        """Players, then the spectator if there is one."""
        ids = [player.player_id for player in self.players]
        if self.spectator_id:
            ids.append(self.spectator_id)
        return ids

    def add_log(self, message: str) -> None:
        self.log.append(message)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.game_id,
            "players": [player.to_dict() for player in self.players],
            "spectatorId": self.spectator_id,
            "undoEnabled": self.undo_enabled,
            "status": self.status.value,
            "lastSaveId": self.last_save_id,
            "generation": self.generation,
            "pendingInput": self.pending_input.to_dict() if self.pending_input else None,
            "activePlayerId": self.active_player_id,
            "interrupts": self.interrupts.to_list(),
            "parties": {party: list(owners) for party, owners in self.parties.items()},
            "variables": dict(self.variables),
            "log": list(self.log),
            "createdAt": self.created_at,
        }

    def to_json(self) -> str:
        """Deterministic JSON: equal games serialize to identical text."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Game:
        pending = data.get("pendingInput")
        return cls(
            game_id=data["id"],
            players=[Player.from_dict(p) for p in data["players"]],
            spectator_id=data.get("spectatorId"),
            undo_enabled=data.get("undoEnabled", False),
            status=GameStatus(data.get("status", GameStatus.RUNNING.value)),
            last_save_id=data.get("lastSaveId", 0),
            generation=data.get("generation", 1),
            pending_input=input_from_dict(pending) if pending else None,
            active_player_id=data.get("activePlayerId"),
            interrupts=InterruptQueue.from_list(data.get("interrupts", [])),
            parties={party: list(owners) for party, owners in data.get("parties", {}).items()},
            variables=dict(data.get("variables", {})),
            log=list(data.get("log", [])),
            created_at=data.get("createdAt", time.time()),
        )

    @classmethod
    def from_json(cls, text: str) -> Game:
        return cls.from_dict(json.loads(text))

    def push_interrupt(self, player_id: str, player_input: PlayerInput) -> None:
        self.interrupts.push(Interrupt(player_id=player_id, player_input=player_input))

    def replace_state(self, other: Game) -> None:
        """Take over every field of ``other``, keeping this object's identity."""
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))

    def parties_with_delegate(self, owner: str) -> list[str]:
        """Parties where ``owner`` has a delegate other than the party leader."""
        return [party for party, owners in self.parties.items() if owner in owners[1:]]
