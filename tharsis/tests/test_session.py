"""
Tests for sessions and the game loop.

Tests:
- End-to-end: create, answer, save, reload
- Stale and out-of-turn responses
- Interrupts preempt the pending input
- Undo and finalize through the session manager
- Undo and finalize wait for an in-flight save
- Idle, purged and rolled back sessions are dropped
"""

import time

import anyio
import pytest

from ..database import SQLiteDatabase

from ..engine_core.action import Action
from ..engine_core.interrupts import SelectParty
from ..errors import (
    ActionError,
    GameNotFoundError,
    GameStateError,
    InvalidIndexError,
    NotYourTurnError,
    StaleInputError,
)
from ..inputs import AndOptions, SelectAmount, SelectOption
from ..session import SessionManager
from .conftest import backdate, three_way_choice

pytestmark = pytest.mark.anyio


def amount_response(amount, index=2, input_id=None):
    response = {"type": "or", "index": index, "response": {"type": "amount", "amount": amount}}
    if input_id:
        response["input_id"] = input_id
    return response


async def new_game(manager, first_input=None, undo_enabled=False):
    session = await manager.create_game(["Ada", "Grace"], undo_enabled=undo_enabled)
    player_id = session.game.players[0].player_id
    session.game.pending_input = first_input or three_way_choice(player_id)
    return session, player_id


class TestGameLoop:
    async def test_choose_amount_end_to_end(self, manager, database):
        """Answering the amount option gains credits and writes version 1."""
        session, player_id = await new_game(manager)
        game_id = session.game_id

        result = await session.loop.process_input(player_id, amount_response(8))

        assert result.completed
        assert result.resolution.value == 8
        assert result.save_id == 1
        assert session.game.get_player(player_id).resources == {"credits": 8}
        assert session.game.pending_input is None
        assert await database.get_save_ids(game_id) == [0, 1]

    async def test_resubmit_is_stale(self, manager):
        session, player_id = await new_game(manager)
        input_id = session.game.pending_input.input_id
        await session.loop.process_input(player_id, amount_response(8, input_id=input_id))

        with pytest.raises(StaleInputError):
            await session.loop.process_input(player_id, amount_response(8, input_id=input_id))

    async def test_wrong_input_id_is_stale(self, manager):
        session, player_id = await new_game(manager)

        with pytest.raises(StaleInputError):
            await session.loop.process_input(player_id, amount_response(3, input_id="old"))

        assert session.game.last_save_id == 1

    async def test_not_your_turn(self, manager):
        session, _ = await new_game(manager)
        other = session.game.players[1].player_id

        with pytest.raises(NotYourTurnError):
            await session.loop.process_input(other, amount_response(3))

        assert session.loop.waiting_for(other) is None

    async def test_rejected_response_changes_nothing(self, manager, database):
        session, player_id = await new_game(manager)
        before = session.game.to_json()

        with pytest.raises(InvalidIndexError):
            await session.loop.process_input(player_id, amount_response(3, index=7))

        assert session.game.to_json() == before
        assert await database.get_save_ids(session.game_id) == [0]

    async def test_partial_and_keeps_pending(self, manager):
        session, player_id = await new_game(manager)
        step = {"type": "or", "index": 1, "response": {"type": "and", "index": 0, "response": {"type": "option"}}}

        result = await session.loop.process_input(player_id, step)

        assert not result.completed
        assert session.game.pending_input.selected == 1
        assert session.game.get_player(player_id).resources == {"steel": 1}

    async def test_follow_up_becomes_pending(self, manager):
        follow = SelectAmount("How many?", action=Action.set_variable("count"), max_amount=3)
        session, player_id = await new_game(
            manager, first_input=SelectOption("Start", action=Action.continue_with(follow))
        )

        await session.loop.process_input(player_id, {"type": "option"})
        assert session.loop.waiting_for(player_id).input_id == follow.input_id

        await session.loop.process_input(player_id, {"type": "amount", "amount": 2})
        assert session.game.variables["count"] == 2
        assert session.game.pending_input is None

    async def test_interrupt_preempts(self, manager):
        """While an interrupt is queued only its player may answer, and only it."""
        session, player_id = await new_game(manager)
        other = session.game.players[1].player_id
        interrupt = SelectParty(other, ["greens", "reds"])
        session.game.interrupts.push(interrupt)

        assert session.loop.waiting_for(player_id) is None
        with pytest.raises(NotYourTurnError):
            await session.loop.process_input(player_id, amount_response(1))

        result = await session.loop.process_input(other, {"type": "or", "index": 0, "response": {"type": "option"}})

        assert result.from_interrupt
        assert session.game.parties == {"greens": [other]}
        assert not session.game.interrupts
        assert session.loop.waiting_for(player_id) is session.game.pending_input

    async def test_partial_input_follow_up_goes_first(self, manager):
        """A follow-up of an unfinished input is answered before the rest of it."""
        follow = SelectOption("Confirm")
        tree = AndOptions.of(
            "Both",
            SelectOption("a", action=Action.continue_with(follow)),
            SelectOption("b"),
        )
        session, player_id = await new_game(manager, first_input=tree)

        await session.loop.process_input(player_id, {"type": "and", "index": 0, "response": {"type": "option"}})

        assert session.loop.waiting_for(player_id).input_id == follow.input_id
        assert session.game.pending_input is tree

    async def test_prompt_rejects_second_input(self, manager):
        session, player_id = await new_game(manager)
        with pytest.raises(GameStateError):
            session.loop.prompt(player_id, SelectOption("again"))


class TestSessionManager:
    async def test_reload_from_database(self, manager, database):
        session, player_id = await new_game(manager)
        await session.loop.process_input(player_id, amount_response(5))
        manager.end_session(session.game_id)

        reloaded = await manager.get_session_for_participant(player_id)

        assert reloaded is not session
        assert reloaded.game.get_player(player_id).resources == {"credits": 5}
        assert reloaded.game.last_save_id == 2

    async def test_load_version(self, manager):
        session, player_id = await new_game(manager)
        await session.loop.process_input(player_id, amount_response(5))

        seed = await manager.load_version(session.game_id, 0)

        assert seed.get_player(player_id).resources == {}
        assert seed.last_save_id == 1

    async def test_undo_reloads(self, manager, database):
        session, player_id = await new_game(manager, undo_enabled=True)
        await session.loop.process_input(player_id, amount_response(5))

        deleted = await manager.undo(session.game_id, 1)

        assert deleted == [1]
        current = await manager.get_session(session.game_id)
        assert current.game.get_player(player_id).resources == {}
        assert current.game.last_save_id == 1

    async def test_undo_requires_option(self, manager):
        session, _ = await new_game(manager)
        with pytest.raises(GameStateError):
            await manager.undo(session.game_id, 1)

    async def test_finalize(self, manager, database):
        session, player_id = await new_game(manager)
        await session.loop.process_input(player_id, amount_response(5))
        session.game.pending_input = three_way_choice(player_id)
        await session.loop.process_input(player_id, amount_response(1))

        await manager.finalize(session.game_id)

        assert await database.get_save_ids(session.game_id) == [0, 2]
        assert session.game.is_finished
        with pytest.raises(GameStateError):
            await session.loop.process_input(player_id, amount_response(1))
        with pytest.raises(GameStateError):
            await manager.finalize(session.game_id)

    async def test_finished_status_survives_reload(self, manager):
        session, _ = await new_game(manager)
        await manager.finalize(session.game_id)
        manager.end_session(session.game_id)

        reloaded = await manager.get_session(session.game_id)

        assert reloaded.game.is_finished
        assert manager.list_active_sessions() == []


def slow_saves(monkeypatch, database, delay=0.2):
    """Make every save of ``database`` take ``delay`` seconds longer."""
    save = database.save

    async def slow_save(game):
        await anyio.sleep(delay)
        await save(game)

    monkeypatch.setattr(database, "save", slow_save)


class TestWriterOrdering:
    async def test_finalize_waits_for_save(self, manager, database, monkeypatch):
        """A save in progress lands before finalize prunes the versions."""
        session, player_id = await new_game(manager)
        await session.loop.process_input(player_id, amount_response(5))
        session.game.pending_input = three_way_choice(player_id)
        slow_saves(monkeypatch, database)

        async with anyio.create_task_group() as tg:
            tg.start_soon(session.loop.process_input, player_id, amount_response(1))
            await anyio.sleep(0.05)
            tg.start_soon(manager.finalize, session.game_id)

        assert await database.get_save_ids(session.game_id) == [0, 2]
        latest = await database.get_game(session.game_id)
        assert latest.save_id == 2
        assert latest.status == "finished"

    async def test_undo_waits_for_save(self, manager, database, monkeypatch):
        session, player_id = await new_game(manager, undo_enabled=True)
        await session.loop.process_input(player_id, amount_response(5))
        session.game.pending_input = three_way_choice(player_id)
        slow_saves(monkeypatch, database)
        deleted = []

        async def undo():
            deleted.extend(await manager.undo(session.game_id, 1))

        async with anyio.create_task_group() as tg:
            tg.start_soon(session.loop.process_input, player_id, amount_response(1))
            await anyio.sleep(0.05)
            tg.start_soon(undo)

        assert deleted == [2]
        assert await database.get_save_ids(session.game_id) == [0, 1]

    async def test_rolled_back_loop_refuses_input(self, manager):
        session, player_id = await new_game(manager, undo_enabled=True)
        await session.loop.process_input(player_id, amount_response(5))

        await manager.undo(session.game_id, 1)

        with pytest.raises(StaleInputError):
            await session.loop.process_input(player_id, amount_response(1))
        current = await manager.get_session(session.game_id)
        assert current is not session
        assert current.game.get_player(player_id).resources == {}


class TestEviction:
    async def test_finalize_drops_purged_sessions(self, tmp_path):
        database = SQLiteDatabase(tmp_path / "purge.db", max_game_days=3)
        await database.initialize()
        manager = SessionManager(database)
        stale, stale_player = await new_game(manager)
        backdate(database.store.path, stale.game_id, 30)
        finished, _ = await new_game(manager)

        await manager.finalize(finished.game_id)

        assert await database.get_game_ids() == [finished.game_id]
        with pytest.raises(GameNotFoundError):
            await manager.get_session(stale.game_id)
        with pytest.raises(StaleInputError):
            await stale.loop.process_input(stale_player, amount_response(1))
        assert await database.get_save_ids(stale.game_id) == []

    async def test_idle_sessions_evicted_on_lookup(self, database):
        manager = SessionManager(database, max_idle_seconds=60)
        idle, _ = await new_game(manager)
        recent, _ = await new_game(manager)
        idle.last_active = time.time() - 120

        await manager.get_session(recent.game_id)

        assert manager.info()["cached"] == 1
        assert idle.loop.retired
        reloaded = await manager.get_session(idle.game_id)
        assert reloaded is not idle

    async def test_busy_sessions_kept(self, manager):
        session, _ = await new_game(manager)
        session.last_active = time.time() - 120

        async with session.loop._lock:
            assert manager.cleanup_stale_sessions(60) == []
        assert manager.cleanup_stale_sessions(60) == [session.game_id]

    async def test_no_idle_limit_keeps_sessions(self, manager):
        session, _ = await new_game(manager)
        session.last_active = 0

        assert await manager.get_session(session.game_id) is session


class TestFailedActions:
    async def test_failed_sequence_restores_game(self, manager, database):
        """An action failing halfway leaves no trace in the game or the store."""
        session, player_id = await new_game(manager)
        session.game.pending_input = SelectOption(
            "Gain and pay",
            action=Action.sequence(
                Action.gain(player_id, "credits", 3),
                Action.gain("p404", "credits", -3),
            ),
        )
        log_size = len(session.game.log)

        with pytest.raises(ActionError):
            await session.loop.process_input(player_id, {"type": "option"})

        assert session.game.get_player(player_id).resources == {}
        assert len(session.game.log) == log_size
        assert session.game.pending_input.title == "Gain and pay"
        assert session.game.last_save_id == 1
        assert await database.get_save_ids(session.game_id) == [0]

    async def test_failed_and_completion_restores_cursor(self, manager):
        tree = AndOptions.of(
            "Both",
            SelectOption("First"),
            action=Action.gain("p404", "credits", 1),
        )
        session, player_id = await new_game(manager, first_input=tree)

        with pytest.raises(ActionError):
            await session.loop.process_input(
                player_id, {"type": "and", "index": 0, "response": {"type": "option"}}
            )

        assert session.game.pending_input.cursor == 0
