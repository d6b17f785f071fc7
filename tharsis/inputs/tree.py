"""
Input Trees - Combinators over inputs.

- OrOptions: choose exactly one option. Resolved the moment any one
  option resolves; the other options are discarded.
- AndOptions: resolve every option, in the order presented. Tracks a
  cursor to the next option and runs its own action once complete.

Options are addressed by their 0-based position, which never changes
for the lifetime of the tree.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable

from ..engine_core.action import Action
from .node import (
    InputType,
    PlayerInput,
    SelectAmount,
    SelectCustom,
    SelectOption,
    new_input_id,
)


@dataclass
class OrOptions(PlayerInput):
    """
    Choose one of several options.

    Once a composite option has been partly answered, the choice is locked
    to it until it resolves.
    """
    input_type: ClassVar[InputType] = InputType.OR

    title: str = "Select one option"
    options: list[PlayerInput] = field(default_factory=list)
    selected: int | None = None
    input_id: str = field(default_factory=new_input_id)

    @classmethod
    def of(cls, title: str, *options: PlayerInput) -> OrOptions:
        return cls(title=title, options=list(options))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.input_type.value,
            "input_id": self.input_id,
            "title": self.title,
            "selected": self.selected,
            "options": [option.to_dict() for option in self.options],
        }


@dataclass
class AndOptions(PlayerInput):
    """Resolve every option in sequence, then run ``action``."""
    input_type: ClassVar[InputType] = InputType.AND

    title: str = "Resolve all options"
    options: list[PlayerInput] = field(default_factory=list)
    action: Action | None = None
    cursor: int = 0
    input_id: str = field(default_factory=new_input_id)

    @classmethod
    def of(cls, title: str, *options: PlayerInput, action: Action | None = None) -> AndOptions:
        return cls(title=title, options=list(options), action=action)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.options)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.input_type.value,
            "input_id": self.input_id,
            "title": self.title,
            "cursor": self.cursor,
            "action": self.action.to_dict() if self.action else None,
            "options": [option.to_dict() for option in self.options],
        }


def input_from_dict(data: dict[str, Any]) -> PlayerInput:
    """Rebuild an input (and all its options) from ``to_dict()`` output."""
    input_type = InputType(data["type"])
    input_id = data.get("input_id") or new_input_id()
    title = data.get("title", "")

    if input_type is InputType.OPTION:
        return SelectOption(
            title=title,
            action=_action(data),
            description=data.get("description", ""),
            input_id=input_id,
        )
    if input_type is InputType.AMOUNT:
        return SelectAmount(
            title=title,
            action=_action(data),
            min_amount=data.get("min", 0),
            max_amount=data.get("max", 0),
            input_id=input_id,
        )
    if input_type is InputType.CUSTOM:
        return SelectCustom(
            title=title,
            action=_action(data),
            required_fields=list(data.get("required_fields", [])),
            input_id=input_id,
        )

    options = [input_from_dict(option) for option in data.get("options", [])]
    if input_type is InputType.OR:
        return OrOptions(
            title=title,
            options=options,
            selected=data.get("selected"),
            input_id=input_id,
        )
    return AndOptions(
        title=title,
        options=options,
        action=Action.from_dict(data["action"]) if data.get("action") else None,
        cursor=data.get("cursor", 0),
        input_id=input_id,
    )


def combine_inputs(inputs: Iterable[PlayerInput]) -> PlayerInput | None:
    """Merge follow-up inputs into one: none, the single input, or an And of them."""
    inputs = list(inputs)
    if not inputs:
        return None
    if len(inputs) == 1:
        return inputs[0]
    return AndOptions(title="Resolve the following", options=inputs)


def _action(data: dict[str, Any]) -> Action:
    raw = data.get("action")
    return Action.from_dict(raw) if raw else Action.nothing()
