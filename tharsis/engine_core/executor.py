"""
Action Executor - Applies resolved actions to a game.

The executor is the single point where resolving an input mutates game
state. It is bound to one Game and dispatches on ActionType, like a
reducer, but mutates in place: the session owns the game and saves a
snapshot after every resolution.

execute() returns the follow-up input produced by the action, if any. An
action that cannot be applied raises ActionError; the game may then be
partly changed and the caller is expected to roll it back.
"""

from __future__ import annotations
import logging
from typing import Any, Callable

from ..errors import ActionError
from ..inputs.node import PlayerInput
from ..inputs.tree import combine_inputs, input_from_dict
from .action import Action, ActionType
from .state import Game, Player

logger = logging.getLogger(__name__)

Handler = Callable[[Action, Any], "PlayerInput | None"]


class ActionExecutor:
    """
    Interprets actions against one game.

    Usage:
        executor = ActionExecutor(game)
        resolver = InputResolver(executor)
    """

    def __init__(self, game: Game):
        self.game = game
        self._handlers: dict[ActionType, Handler] = {
            ActionType.NOTHING: self._handle_nothing,
            ActionType.GAIN: self._handle_gain,
            ActionType.SEND_DELEGATE: self._handle_send_delegate,
            ActionType.REMOVE_DELEGATE: self._handle_remove_delegate,
            ActionType.SET_VARIABLE: self._handle_set_variable,
            ActionType.LOG: self._handle_log,
            ActionType.CONTINUE: self._handle_continue,
            ActionType.INTERRUPT: self._handle_interrupt,
            ActionType.SEQUENCE: self._handle_sequence,
        }

    def execute(self, action: Action, value: Any = None) -> PlayerInput | None:
        handler = self._handlers.get(action.action_type)
        if handler is None:
            raise ActionError(f"No handler for action type: {action.action_type}")
        logger.debug("game %s: %s %s", self.game.game_id, action.action_type.value, action.data)
        try:
            return handler(action, value)
        except (KeyError, TypeError, ValueError) as e:
            raise ActionError(f"{action.action_type.value} action failed: {e}") from e

    def _player(self, player_id: str) -> Player:
        player = self.game.get_player(player_id)
        if player is None:
            raise ValueError(f"Player {player_id} not in game {self.game.game_id}")
        return player

    def _handle_nothing(self, action: Action, value: Any) -> None:
        return None

    def _handle_gain(self, action: Action, value: Any) -> None:
        player = self._player(action.data["player_id"])
        resource = action.data["resource"]
        amount = action.data.get("amount", value)
        if not isinstance(amount, int):
            raise ValueError(f"Gain of {resource} needs an integer amount, got {amount!r}")
        player.resources[resource] = player.resources.get(resource, 0) + amount
        self.game.add_log(f"{player.name} gained {amount} {resource}")
        return None

    def _handle_send_delegate(self, action: Action, value: Any) -> None:
        player = self._player(action.data["player_id"])
        party = action.data["party"]
        count = action.data.get("count", 1)
        self.game.parties.setdefault(party, []).extend([player.player_id] * count)
        self.game.add_log(f"{player.name} sent {count} delegate(s) to {party}")
        return None

    def _handle_remove_delegate(self, action: Action, value: Any) -> None:
        owner = action.data["owner"]
        party = action.data["party"]
        owners = self.game.parties.get(party, [])
        if owner not in owners:
            raise ActionError(f"{party} has no delegate of {owner}")
        # The newest delegate goes first
        del owners[len(owners) - 1 - owners[::-1].index(owner)]
        self.game.add_log(f"A delegate of {owner} left {party}")
        return None

    def _handle_set_variable(self, action: Action, value: Any) -> None:
        self.game.variables[action.data["key"]] = value
        return None

    def _handle_log(self, action: Action, value: Any) -> None:
        self.game.add_log(action.data["message"].format(value=value))
        return None

    def _handle_continue(self, action: Action, value: Any) -> PlayerInput:
        return input_from_dict(action.data["input"])

    def _handle_interrupt(self, action: Action, value: Any) -> None:
        player = self._player(action.data["player_id"])
        self.game.push_interrupt(player.player_id, input_from_dict(action.data["input"]))
        return None

    def _handle_sequence(self, action: Action, value: Any) -> PlayerInput | None:
        follow_ups = []
        for raw in action.data.get("actions", []):
            produced = self.execute(Action.from_dict(raw), value)
            if produced is not None:
                follow_ups.append(produced)
        return combine_inputs(follow_ups)
