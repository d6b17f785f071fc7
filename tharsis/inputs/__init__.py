"""
Inputs - The decisions a player is waiting on.

A pending decision is a tree: leaves are atomic choices (option, amount,
custom payload) and composites combine them (Or: pick one, And: all in
order). The resolver matches a client response against the tree and runs
the actions attached to what was chosen.
"""

from .node import InputType, PlayerInput, SelectOption, SelectAmount, SelectCustom
from .tree import OrOptions, AndOptions, input_from_dict, combine_inputs
from .responses import (
    InputResponse,
    OptionResponse,
    AmountResponse,
    CustomResponse,
    OrResponse,
    AndResponse,
    parse_response,
    or_response,
    and_response,
)
from .resolver import InputResolver, Resolution, ActionRunner

__all__ = [
    "InputType",
    "PlayerInput",
    "SelectOption",
    "SelectAmount",
    "SelectCustom",
    "OrOptions",
    "AndOptions",
    "input_from_dict",
    "combine_inputs",
    "InputResponse",
    "OptionResponse",
    "AmountResponse",
    "CustomResponse",
    "OrResponse",
    "AndResponse",
    "parse_response",
    "or_response",
    "and_response",
    "InputResolver",
    "Resolution",
    "ActionRunner",
]
