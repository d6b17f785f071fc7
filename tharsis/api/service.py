"""
API Service - Business logic layer between API and engine.

The service:
1. Owns the settings, the database and the session manager
2. Translates API requests to session and database calls
3. Formats engine objects as response schemas

This layer is framework-agnostic; app.py only wires it to routes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import json
import logging
import secrets

from ..database import Database, SQLiteDatabase
from ..engine_core.state import Game
from ..errors import GameNotFoundError
from ..inputs import input_from_dict
from ..session import SessionManager
from ..settings import Settings, get_settings
from .schemas import (
    CloneableGame,
    CloneableGameListResponse,
    CreateGameRequest,
    FinalizeResponse,
    GameListResponse,
    GameResponse,
    HistoryResponse,
    InputResultResponse,
    PlayerInfo,
    PurgeResponse,
    SnapshotResponse,
    UndoRequest,
    UndoResponse,
    WaitingForResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Registry of the process-wide components, built once per app.

    Usage:
        service = APIService.from_settings(get_settings())
        await service.startup()
        game = await service.create_game(CreateGameRequest(players=["Ada"]))
    """
    settings: Settings
    database: Database
    session_manager: SessionManager = field(init=False)

    def __post_init__(self):
        self.session_manager = SessionManager(
            self.database, max_idle_seconds=self.settings.session_idle_seconds
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> APIService:
        settings = settings or get_settings()
        return cls(settings=settings, database=SQLiteDatabase.from_settings(settings))

    async def startup(self) -> None:
        """Open the store (fatal on failure) and purge stale games."""
        await self.database.initialize()
        purged = await self.database.purge_stale(self.settings.max_game_days)
        logger.info(
            "Database ready at %s (%d stale games purged)",
            self.settings.database_path, len(purged),
        )

    async def shutdown(self) -> None:
        await self.database.close()

    def is_admin(self, server_id: str | None) -> bool:
        return server_id is not None and secrets.compare_digest(server_id, self.settings.server_id)

    # -------------------------------------------------------------------------
    # Games
    # -------------------------------------------------------------------------

    async def list_games(self) -> GameListResponse:
        games = await self.database.get_game_ids()
        return GameListResponse(games=games, count=len(games))

    async def create_game(self, request: CreateGameRequest) -> GameResponse:
        first_input = None
        if request.first_input is not None:
            try:
                first_input = input_from_dict(request.first_input)
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid first_input: {e}") from e

        session = await self.session_manager.create_game(
            request.players,
            spectator=request.spectator,
            undo_enabled=request.undo_enabled,
            first_input=first_input,
        )
        return game_response(session.game)

    async def get_game(self, game_id: str, save_id: int | None = None) -> SnapshotResponse:
        if save_id is None:
            snapshot = await self.database.get_game(game_id)
        else:
            snapshot = await self.database.get_game_version(game_id, save_id)
        return SnapshotResponse(
            game_id=snapshot.game_id,
            save_id=snapshot.save_id,
            status=snapshot.status,
            players=snapshot.players,
            created_time=snapshot.created_time,
            game=json.loads(snapshot.game),
        )

    async def history(self, game_id: str) -> HistoryResponse:
        save_ids = await self.database.get_save_ids(game_id)
        if not save_ids:
            raise GameNotFoundError(game_id)
        return HistoryResponse(game_id=game_id, save_ids=save_ids)

    async def cloneable_games(self) -> CloneableGameListResponse:
        games = await self.database.get_cloneable_games()
        return CloneableGameListResponse(
            games=[CloneableGame(game_id=gid, player_count=count) for gid, count in games]
        )

    # -------------------------------------------------------------------------
    # Play
    # -------------------------------------------------------------------------

    async def waiting_for(self, participant_id: str) -> WaitingForResponse:
        session = await self.session_manager.get_session_for_participant(participant_id)
        _, _, is_interrupt = session.loop.current()
        mine = session.loop.waiting_for(participant_id)
        return WaitingForResponse(
            participant_id=participant_id,
            game_id=session.game_id,
            waiting=mine is not None,
            is_interrupt=is_interrupt if mine is not None else False,
            input=mine.to_dict() if mine is not None else None,
        )

    async def submit_input(self, player_id: str, body: Any) -> InputResultResponse:
        session = await self.session_manager.get_session_for_participant(player_id)
        result = await session.loop.process_input(player_id, body)
        next_input = session.loop.waiting_for(player_id)
        return InputResultResponse(
            game_id=result.game_id,
            player_id=result.player_id,
            completed=result.completed,
            path=list(result.resolution.path),
            value=result.resolution.value,
            save_id=result.save_id,
            log=result.log,
            waiting_for=next_input.to_dict() if next_input is not None else None,
        )

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    async def undo(self, request: UndoRequest) -> UndoResponse:
        deleted = await self.session_manager.undo(request.game_id, request.count)
        save_ids = await self.database.get_save_ids(request.game_id)
        return UndoResponse(game_id=request.game_id, deleted=deleted, save_ids=save_ids)

    async def finalize(self, game_id: str) -> FinalizeResponse:
        session = await self.session_manager.finalize(game_id)
        save_ids = await self.database.get_save_ids(game_id)
        return FinalizeResponse(game_id=game_id, status=session.game.status.value, save_ids=save_ids)

    async def purge(self, days: int | None = None) -> PurgeResponse:
        purged = await self.database.purge_stale(days if days is not None else self.settings.max_game_days)
        for game_id in purged:
            self.session_manager.end_session(game_id)
        return PurgeResponse(purged=purged, count=len(purged))

    async def stats(self) -> dict[str, Any]:
        result = await self.database.stats()
        result.update({f"sessions-{key}": value for key, value in self.session_manager.info().items()})
        return result


def game_response(game: Game) -> GameResponse:
    return GameResponse(
        game_id=game.game_id,
        status=game.status.value,
        save_id=max(game.last_save_id - 1, 0),
        generation=game.generation,
        players=[
            PlayerInfo(
                player_id=p.player_id,
                name=p.name,
                resources=p.resources,
                is_active=p.player_id == game.active_player_id,
            )
            for p in game.players
        ],
        spectator_id=game.spectator_id,
        active_player_id=game.active_player_id,
        undo_enabled=game.undo_enabled,
        pending_interrupts=len(game.interrupts),
        log=list(game.log),
    )
