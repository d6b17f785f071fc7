"""
Input Nodes - The atomic decisions a player can be asked to make.

Three kinds of leaf:
- SelectOption: pick this option (no value)
- SelectAmount: pick an integer within inclusive bounds
- SelectCustom: submit a free-form payload with required fields

Composite inputs (Or/And) live in tree.py. Both share the PlayerInput
base so they can be nested freely.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TYPE_CHECKING
import uuid

from ..engine_core.action import Action
from ..errors import AmountOutOfRangeError, InvalidPayloadError

if TYPE_CHECKING:
    from .responses import InputResponse


class InputType(str, Enum):
    """Kinds of input. Also the ``type`` tag of the matching response."""
    OPTION = "option"
    AMOUNT = "amount"
    CUSTOM = "custom"
    OR = "or"
    AND = "and"


def new_input_id() -> str:
    return uuid.uuid4().hex[:12]


class PlayerInput:
    """Base for every input, leaf or composite."""
    input_type: ClassVar[InputType]
    title: str
    input_id: str

    @property
    def is_leaf(self) -> bool:
        return self.input_type in LEAF_TYPES

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class SelectOption(PlayerInput):
    """Choose this option."""
    input_type: ClassVar[InputType] = InputType.OPTION

    title: str
    action: Action = field(default_factory=Action.nothing)
    description: str = ""
    input_id: str = field(default_factory=new_input_id)

    def parse(self, response: InputResponse) -> None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.input_type.value,
            "input_id": self.input_id,
            "title": self.title,
            "description": self.description,
            "action": self.action.to_dict(),
        }


@dataclass
class SelectAmount(PlayerInput):
    """Choose an integer in [min_amount, max_amount]."""
    input_type: ClassVar[InputType] = InputType.AMOUNT

    title: str
    action: Action = field(default_factory=Action.nothing)
    min_amount: int = 0
    max_amount: int = 0
    input_id: str = field(default_factory=new_input_id)

    def __post_init__(self):
        if self.min_amount > self.max_amount:
            raise ValueError(
                f"min_amount {self.min_amount} exceeds max_amount {self.max_amount}"
            )

    def parse(self, response: InputResponse) -> int:
        amount = response.amount
        if not self.min_amount <= amount <= self.max_amount:
            raise AmountOutOfRangeError(amount, self.min_amount, self.max_amount)
        return amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.input_type.value,
            "input_id": self.input_id,
            "title": self.title,
            "min": self.min_amount,
            "max": self.max_amount,
            "action": self.action.to_dict(),
        }


@dataclass
class SelectCustom(PlayerInput):
    """
    Submit a payload the generic inputs cannot express
    (e.g. a resource split or a board position).

    Only presence of ``required_fields`` is checked here; the action
    interprets the rest.
    """
    input_type: ClassVar[InputType] = InputType.CUSTOM

    title: str
    action: Action = field(default_factory=Action.nothing)
    required_fields: list[str] = field(default_factory=list)
    input_id: str = field(default_factory=new_input_id)

    def parse(self, response: InputResponse) -> dict[str, Any]:
        payload = response.payload
        missing = [name for name in self.required_fields if name not in payload]
        if missing:
            raise InvalidPayloadError(
                f"Payload for '{self.title}' is missing {', '.join(missing)}"
            )
        return dict(payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.input_type.value,
            "input_id": self.input_id,
            "title": self.title,
            "required_fields": list(self.required_fields),
            "action": self.action.to_dict(),
        }


LEAF_TYPES = frozenset({InputType.OPTION, InputType.AMOUNT, InputType.CUSTOM})
