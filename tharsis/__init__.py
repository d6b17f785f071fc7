"""
Tharsis - Turn resolution and snapshot persistence engine.

The core of a multiplayer, turn-based simulation game server:
- Input trees: the typed prompts a player must answer
- Input resolution: matching a response to a pending tree
- Interrupts: forced decisions that preempt normal turn input
- Versioned snapshots: every state change saved as a numbered version
- Rollback, undo, finalization and retention of saved versions
"""

__version__ = "0.1.0"
