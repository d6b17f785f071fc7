"""
Game Loop - Turn resolution for one game.

The loop:
1. A participant asks what they are waiting on
2. They submit a response
3. Interrupts are answered first, in order; otherwise the pending input
4. The resolver validates and runs the chosen actions
5. The follow-up (if any) becomes the next thing to answer
6. The game is saved as a new version

Resolution is synchronous; only the save awaits. A lock serializes
responses to the same game so one decision is resolved at a time.
Undo and finalize take the same lock, so no save lands between them
and the versions they rewrite.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING
import logging

import anyio

from ..engine_core.executor import ActionExecutor
from ..engine_core.interrupts import Interrupt
from ..engine_core.state import Game, GameStatus
from ..errors import ActionError, GameStateError, NotYourTurnError, StaleInputError
from ..inputs.node import PlayerInput
from ..inputs.resolver import InputResolver, Resolution
from ..inputs.responses import InputResponse, parse_response

if TYPE_CHECKING:
    from ..database.base import Database

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """
    Result of processing one response.

    save_id is the version the save attempted to write.
    """
    game_id: str
    player_id: str
    resolution: Resolution
    save_id: int
    from_interrupt: bool = False
    log: list[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.resolution.completed


class GameLoop:
    """
    Drives decisions for one in-memory game.

    Usage:
        loop = GameLoop(game, database)
        player_input = loop.waiting_for(player_id)
        result = await loop.process_input(player_id, {"type": "or", ...})
    """

    def __init__(self, game: Game, database: Database):
        self.game = game
        self.database = database
        self.resolver = InputResolver(ActionExecutor(game))
        self._lock = anyio.Lock()
        # Set once this loop stops being the writer for its game
        self.retired = False

    @property
    def game_id(self) -> str:
        return self.game.game_id

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def current(self) -> tuple[PlayerInput | None, str | None, bool]:
        """(input, player expected to answer, whether it is an interrupt)."""
        interrupt = self.game.interrupts.peek()
        if interrupt is not None:
            return interrupt.player_input, interrupt.player_id, True
        return self.game.pending_input, self.game.active_player_id, False

    def waiting_for(self, participant_id: str) -> PlayerInput | None:
        """The input ``participant_id`` should answer now, if any."""
        player_input, player_id, _ = self.current()
        if player_input is None or player_id != participant_id:
            return None
        return player_input

    def prompt(self, player_id: str, player_input: PlayerInput) -> None:
        """Make ``player_input`` the game's pending input, answered by ``player_id``."""
        self._check_running()
        if self.game.get_player(player_id) is None:
            raise GameStateError(f"Player {player_id} not in game {self.game_id}")
        if self.game.pending_input is not None:
            raise GameStateError(f"Game {self.game_id} already has a pending input")
        self.game.pending_input = player_input
        self.game.active_player_id = player_id

    def interrupt(self, player_id: str, player_input: PlayerInput) -> None:
        self._check_running()
        if self.game.get_player(player_id) is None:
            raise GameStateError(f"Player {player_id} not in game {self.game_id}")
        self.game.push_interrupt(player_id, player_input)

    async def process_input(self, player_id: str, response: InputResponse | Any) -> TurnResult:
        """
        Resolve a response from ``player_id`` and save the game.

        ``response`` may be a parsed response or its wire form. Rejected
        responses raise an InputError and leave the game untouched.
        """
        if not hasattr(response, "type"):
            response = parse_response(response)

        async with self._lock:
            self._check_current()
            self._check_running()
            player_input, expected_player, from_interrupt = self.current()
            if player_input is None:
                raise StaleInputError(f"No input pending in game {self.game_id}")
            if expected_player != player_id:
                raise NotYourTurnError(
                    f"Game {self.game_id} is waiting for {expected_player}, not {player_id}"
                )
            input_id = getattr(response, "input_id", None)
            if input_id is not None and input_id != player_input.input_id:
                raise StaleInputError(
                    f"Input {input_id} is no longer pending (current is {player_input.input_id})"
                )

            log_start = len(self.game.log)
            before = self.game.to_dict()
            try:
                resolution = self.resolver.resolve(player_input, response)
            except ActionError:
                self.game.replace_state(Game.from_dict(before))
                logger.warning("Game %s: action failed, restored the game", self.game_id, exc_info=True)
                raise
            self._advance(player_id, resolution, from_interrupt)

            save_id = self.game.last_save_id
            await self.database.save(self.game)

        logger.info(
            "Game %s: %s resolved path %s (completed=%s, save_id=%d)",
            self.game_id, player_id, list(resolution.path), resolution.completed, save_id,
        )
        return TurnResult(
            game_id=self.game_id,
            player_id=player_id,
            resolution=resolution,
            save_id=save_id,
            from_interrupt=from_interrupt,
            log=self.game.log[log_start:],
        )

    async def save(self) -> None:
        async with self._lock:
            self._check_current()
            await self.database.save(self.game)

    async def rollback(self, count: int) -> list[int]:
        """
        Delete the ``count`` newest stored versions.

        The in-memory game no longer matches what is stored, so the loop
        is retired and the game must be reloaded.
        """
        async with self._lock:
            self._check_current()
            if not self.game.undo_enabled:
                raise GameStateError(f"Undo is not enabled for game {self.game_id}")
            self._check_running()
            deleted = await self.database.delete_recent_saves(self.game_id, count)
            self.retired = True
        return deleted

    async def finish(self, results: dict[str, Any]) -> list[str]:
        """
        Record ``results``, keep the seed and final version, mark finished.

        Returns the ids of other games purged as stale afterwards.
        """
        async with self._lock:
            self._check_current()
            if self.game.is_finished:
                raise GameStateError(f"Game {self.game_id} is already finished")
            await self.database.save_game_results(self.game_id, **results)
            purged = await self.database.finalize(self.game_id)
            self.game.status = GameStatus.FINISHED
        return purged

    def _advance(self, player_id: str, resolution: Resolution, from_interrupt: bool) -> None:
        """Replace what was answered with its follow-up."""
        follow_up = resolution.follow_up
        if resolution.completed:
            if from_interrupt:
                self.game.interrupts.pop()
                if follow_up is not None:
                    self.game.interrupts.push_front(Interrupt(player_id, follow_up))
            else:
                self.game.pending_input = follow_up
        elif follow_up is not None:
            # Answer the follow-up before the rest of the unfinished input
            self.game.interrupts.push_front(Interrupt(player_id, follow_up))

    def _check_current(self) -> None:
        if self.retired:
            raise StaleInputError(f"Game {self.game_id} is no longer loaded here; reload it")

    def _check_running(self) -> None:
        if self.game.is_finished:
            raise GameStateError(f"Game {self.game_id} is finished")
