"""
Input Resolver - Matches a response against a pending input tree.

Resolution walks exactly one path from the root to a leaf:
1. At every level the response kind must equal the input kind
2. Composite levels check the index (range, And order, Or lock)
3. The leaf parses its value (bounds, required fields)
4. Only then is anything mutated: the leaf's action runs, And cursors
   advance and completion propagates back up the path

Because the whole path is validated before step 4, a rejected response
leaves the tree exactly as it was and the client can resubmit.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Protocol

from ..engine_core.action import Action
from ..errors import InvalidIndexError, OutOfOrderError, WrongResponseError
from .node import PlayerInput
from .responses import InputResponse
from .tree import AndOptions, OrOptions, combine_inputs


class ActionRunner(Protocol):
    """Anything that can interpret an Action (see engine_core.executor)."""

    def execute(self, action: Action, value: Any) -> PlayerInput | None:
        ...


@dataclass
class Resolution:
    """
    Outcome of resolving one response.

    completed: the root input is fully resolved and no longer pending
    follow_up: input produced by the actions that ran, if any
    path: option indices from the root to the answered leaf
    value: the parsed leaf value handed to the leaf's action
    """
    completed: bool
    follow_up: PlayerInput | None = None
    path: tuple[int, ...] = ()
    value: Any = None


class InputResolver:
    """
    Resolves responses against input trees.

    Stateless apart from the runner; all progress is kept in the trees
    themselves (And cursors, Or locks) so it survives a save/restore.
    """

    def __init__(self, runner: ActionRunner):
        self.runner = runner

    def resolve(self, root: PlayerInput, response: InputResponse) -> Resolution:
        chain, leaf, value = self._validate(root, response)

        follow_ups = []
        produced = self.runner.execute(leaf.action, value)
        if produced is not None:
            follow_ups.append(produced)

        # Propagate completion from the leaf back to the root
        completed = True
        for composite, index in reversed(chain):
            if isinstance(composite, OrOptions):
                composite.selected = None if completed else index
                continue

            if not completed:
                continue
            composite.cursor += 1
            completed = composite.is_complete
            if completed and composite.action is not None:
                produced = self.runner.execute(composite.action, None)
                if produced is not None:
                    follow_ups.append(produced)

        return Resolution(
            completed=completed,
            follow_up=combine_inputs(follow_ups),
            path=tuple(index for _, index in chain),
            value=value,
        )

    def _validate(
        self,
        root: PlayerInput,
        response: InputResponse,
    ) -> tuple[list[tuple[PlayerInput, int]], PlayerInput, Any]:
        """
        Check the full path without touching anything.

        Returns the composites visited (with the chosen index), the target
        leaf and its parsed value.
        """
        chain: list[tuple[PlayerInput, int]] = []
        current, current_response = root, response

        while True:
            expected = current.input_type.value
            if current_response.type != expected:
                raise WrongResponseError(expected, current_response.type)

            if current.is_leaf:
                return chain, current, current.parse(current_response)

            index = current_response.index
            if not 0 <= index < len(current.options):
                raise InvalidIndexError(index, current.title, len(current.options))

            if isinstance(current, AndOptions) and index != current.cursor:
                raise OutOfOrderError(index, current.cursor, current.title)
            if isinstance(current, OrOptions) and current.selected not in (None, index):
                raise OutOfOrderError(index, current.selected, current.title)

            chain.append((current, index))
            current, current_response = current.options[index], current_response.response
