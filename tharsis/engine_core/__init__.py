"""
Engine Core - Game state and the actions that change it.

1. Game / Player hold the in-memory state of one game (state.py)
2. Actions describe what resolving an input does (action.py)
3. The ActionExecutor applies actions to a game (executor.py)
4. The InterruptQueue holds forced decisions (interrupts.py)

Only the action types are re-exported here: inputs depend on them, and
the other modules depend on inputs.
"""

from .action import Action, ActionType

__all__ = [
    "Action",
    "ActionType",
]
