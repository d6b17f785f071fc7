"""
Interrupts - Forced decisions that preempt normal turn input.

Game logic pushes an interrupt when something in the world demands an
immediate choice (e.g. "send a delegate"). While any interrupt is queued,
the game's normal pending input is not offered to anyone.

Interrupts are answered in FIFO order. A continuation of the interrupt
being answered goes to the front so it is finished before the next one.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator, TYPE_CHECKING

from ..inputs.node import PlayerInput, SelectOption
from ..inputs.tree import OrOptions, input_from_dict
from .action import Action

if TYPE_CHECKING:
    from .state import Game


@dataclass
class Interrupt:
    """An input that ``player_id`` must resolve before play continues."""
    player_id: str
    player_input: PlayerInput

    def to_dict(self) -> dict[str, Any]:
        return {"player_id": self.player_id, "input": self.player_input.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interrupt:
        return cls(player_id=data["player_id"], player_input=input_from_dict(data["input"]))


class InterruptQueue:
    """FIFO of interrupts."""

    def __init__(self, interrupts: list[Interrupt] | None = None):
        self._queue: deque[Interrupt] = deque(interrupts or [])

    def push(self, interrupt: Interrupt) -> None:
        self._queue.append(interrupt)

    def push_front(self, interrupt: Interrupt) -> None:
        self._queue.appendleft(interrupt)

    def peek(self) -> Interrupt | None:
        return self._queue[0] if self._queue else None

    def pop(self) -> Interrupt:
        if not self._queue:
            raise IndexError("No interrupt queued")
        return self._queue.popleft()

    def for_player(self, player_id: str) -> list[Interrupt]:
        return [i for i in self._queue if i.player_id == player_id]

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __iter__(self) -> Iterator[Interrupt]:
        return iter(self._queue)

    def to_list(self) -> list[dict[str, Any]]:
        return [interrupt.to_dict() for interrupt in self._queue]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> InterruptQueue:
        return cls([Interrupt.from_dict(item) for item in data])


class SelectParty(Interrupt):
    """
    Political interrupt: choose the party that receives ``count`` delegates.

    One option per party; the chosen option sends the delegates, the others
    are discarded with the Or.

    replace: owner (a player id or NEUTRAL) whose delegate each sent
        delegate takes the place of. Use ``for_game`` to offer only the
        parties where that owner has a delegate besides the leader.
    price: credits to pay, asked for as a separate interrupt once a
        party is chosen.
    """

    def __init__(
        self,
        player_id: str,
        parties: list[str],
        title: str = "Select where to send a delegate",
        count: int = 1,
        replace: str | None = None,
        price: int | None = None,
    ):
        if not parties:
            raise ValueError("SelectParty needs at least one party")
        options = [
            SelectOption(
                title=party,
                action=self._send_action(player_id, party, count, replace, price),
            )
            for party in parties
        ]
        super().__init__(player_id=player_id, player_input=OrOptions(title=title, options=options))

    @classmethod
    def for_game(
        cls,
        game: Game,
        player_id: str,
        title: str = "Select where to send a delegate",
        count: int = 1,
        replace: str | None = None,
        price: int | None = None,
    ) -> SelectParty:
        parties = game.parties_with_delegate(replace) if replace else list(game.parties)
        return cls(player_id, parties, title=title, count=count, replace=replace, price=price)

    @staticmethod
    def _send_action(
        player_id: str,
        party: str,
        count: int,
        replace: str | None,
        price: int | None,
    ) -> Action:
        actions = []
        if price:
            payment = SelectOption(
                title=f"Pay {price} credits for send delegate action",
                action=Action.gain(player_id, "credits", -price),
            )
            actions.append(Action.interrupt(player_id, payment))
        for _ in range(count):
            if replace:
                actions.append(Action.remove_delegate(replace, party))
            actions.append(Action.send_delegate(player_id, party))
        return Action.sequence(*actions)
