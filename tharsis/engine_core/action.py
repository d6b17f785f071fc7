"""
Action System - What happens when an input is resolved.

Every input node carries an Action instead of a callback. The action is a
plain value (type + data) that the ActionExecutor interprets against the
game, so pending inputs can be saved with the game and replayed later.

Actions receive the resolved value of their node:
- option: None
- amount: the chosen integer
- custom: the submitted payload
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions an input can trigger."""
    NOTHING = "nothing"

    # State changes
    GAIN = "gain"  # Add resources to a player
    SEND_DELEGATE = "send_delegate"  # Place delegates in a party
    REMOVE_DELEGATE = "remove_delegate"  # Take one delegate out of a party
    SET_VARIABLE = "set_variable"  # Record the resolved value
    LOG = "log"

    # Flow
    CONTINUE = "continue"  # Follow-up input for the same player
    INTERRUPT = "interrupt"  # Forced decision queued for a player
    SEQUENCE = "sequence"  # Several actions in order


@dataclass
class Action:
    """
    A serializable resolution callback.

    Use the factory methods rather than building data dicts by hand.
    """
    action_type: ActionType
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.action_type.value, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        return cls(
            action_type=ActionType(data["type"]),
            data=dict(data.get("data") or {}),
        )

    @classmethod
    def nothing(cls) -> Action:
        return cls(action_type=ActionType.NOTHING)

    @classmethod
    def gain(
        cls,
        player_id: str,
        resource: str,
        amount: int | None = None,
    ) -> Action:
        """
        Factory for gaining resources.

        With amount=None the resolved value is used, which is what an
        amount input wants.
        """
        data: dict[str, Any] = {"player_id": player_id, "resource": resource}
        if amount is not None:
            data["amount"] = amount
        return cls(action_type=ActionType.GAIN, data=data)

    @classmethod
    def send_delegate(cls, player_id: str, party: str, count: int = 1) -> Action:
        return cls(
            action_type=ActionType.SEND_DELEGATE,
            data={"player_id": player_id, "party": party, "count": count},
        )

    @classmethod
    def remove_delegate(cls, owner: str, party: str) -> Action:
        """Factory for removing one of ``owner``'s delegates (a player id or NEUTRAL)."""
        return cls(
            action_type=ActionType.REMOVE_DELEGATE,
            data={"owner": owner, "party": party},
        )

    @classmethod
    def set_variable(cls, key: str) -> Action:
        return cls(action_type=ActionType.SET_VARIABLE, data={"key": key})

    @classmethod
    def log(cls, message: str) -> Action:
        """Factory for a log line. ``{value}`` is replaced by the resolved value."""
        return cls(action_type=ActionType.LOG, data={"message": message})

    @classmethod
    def continue_with(cls, player_input: Any) -> Action:
        """Factory for a follow-up input, given as an input object or its dict."""
        if hasattr(player_input, "to_dict"):
            player_input = player_input.to_dict()
        return cls(action_type=ActionType.CONTINUE, data={"input": player_input})

    @classmethod
    def interrupt(cls, player_id: str, player_input: Any) -> Action:
        if hasattr(player_input, "to_dict"):
            player_input = player_input.to_dict()
        return cls(
            action_type=ActionType.INTERRUPT,
            data={"player_id": player_id, "input": player_input},
        )

    @classmethod
    def sequence(cls, *actions: Action) -> Action:
        return cls(
            action_type=ActionType.SEQUENCE,
            data={"actions": [a.to_dict() for a in actions]},
        )
