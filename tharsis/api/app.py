"""
FastAPI Application - REST API for game clients.

Endpoints:
    GET    /api/games                 List stored game ids (admin)
    POST   /api/game                  Create a game and write its seed
    GET    /api/game?id=&save_id=     Latest (or one exact) stored version
    GET    /api/game/history?id=      Stored save_ids, ascending
    GET    /api/cloneablegame         Games whose seed can be cloned
    GET    /api/waitingfor?id=        Input a participant should answer
    POST   /player/input?id=          Submit a response to that input
    POST   /api/game/undo             Drop the most recent saves
    POST   /api/game/finalize?id=     Keep seed and final version (admin)
    POST   /api/admin/purge           Purge stale unfinished games (admin)
    GET    /api/stats                 Database statistics (admin)
    GET    /api/health                Health check

Admin endpoints require the ``server_id`` query parameter to match the
configured server id.

Run with:
    uvicorn tharsis.api.app:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional
import logging

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import GameStateError, InputError, NotFoundError, TharsisError
from ..logging_config import configure_logging
from ..settings import Settings, get_settings
from .schemas import (
    CloneableGameListResponse,
    CreateGameRequest,
    ErrorCode,
    ErrorResponse,
    FinalizeResponse,
    GameListResponse,
    GameResponse,
    HealthResponse,
    HistoryResponse,
    InputResultResponse,
    PurgeResponse,
    SnapshotResponse,
    UndoRequest,
    UndoResponse,
    WaitingForResponse,
)
from .service import APIService

logger = logging.getLogger(__name__)


# =============================================================================
# Error helpers
# =============================================================================

def make_error_response(
    error_code: ErrorCode,
    message: str,
    status_code: int = 400,
    details: Optional[dict] = None,
) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            error_code=error_code,
            details=details,
        ).model_dump(mode="json"),
    )


def status_for(error: TharsisError) -> int:
    if isinstance(error, InputError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, GameStateError):
        return 409
    return 500


def get_service(request: Request) -> APIService:
    return request.app.state.service


Service = Annotated[APIService, Depends(get_service)]


def create_app(service: APIService | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (built from settings if not provided)
        settings: Optional Settings (loaded from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    settings = settings or (service.settings if service else get_settings())
    configure_logging(settings.log_level)
    api_service = service or APIService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await api_service.startup()
        try:
            yield
        finally:
            await api_service.shutdown()

    app = FastAPI(
        title="Tharsis API",
        description="Turn resolution and versioned snapshot persistence for multiplayer games.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.service = api_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TharsisError)
    async def handle_engine_error(request: Request, exc: TharsisError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return make_error_response(ErrorCode(exc.error_code), str(exc), status_code=status_code)

    def require_admin(svc: APIService, server_id: Optional[str]) -> Optional[JSONResponse]:
        if not svc.is_admin(server_id):
            return make_error_response(ErrorCode.FORBIDDEN, "Not authorized", status_code=403)
        return None

    # =========================================================================
    # Games
    # =========================================================================

    @app.get(
        "/api/games",
        response_model=GameListResponse,
        responses={403: {"model": ErrorResponse}},
        tags=["Games"],
        summary="List stored game ids",
    )
    async def list_games(
        svc: Service,
        server_id: Annotated[Optional[str], Query(alias="serverId")] = None,
    ):
        denied = require_admin(svc, server_id)
        if denied:
            return denied
        return await svc.list_games()

    @app.post(
        "/api/game",
        response_model=GameResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Create a new game",
    )
    async def create_game(svc: Service, body: CreateGameRequest):
        """Create a game and write its seed version (save_id 0)."""
        try:
            return await svc.create_game(body)
        except ValueError as e:
            return make_error_response(ErrorCode.VALIDATION_ERROR, str(e))

    @app.get(
        "/api/game",
        response_model=SnapshotResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get a stored version of a game",
    )
    async def get_game(
        svc: Service,
        game_id: Annotated[str, Query(alias="id")],
        save_id: Annotated[Optional[int], Query(ge=0)] = None,
    ) -> SnapshotResponse:
        """The latest version, or exactly ``save_id`` when given."""
        return await svc.get_game(game_id, save_id)

    @app.get(
        "/api/game/history",
        response_model=HistoryResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
    )
    async def game_history(
        svc: Service,
        game_id: Annotated[str, Query(alias="id")],
    ) -> HistoryResponse:
        return await svc.history(game_id)

    @app.get(
        "/api/cloneablegame",
        response_model=CloneableGameListResponse,
        tags=["Games"],
        summary="List games whose seed can be cloned",
    )
    async def cloneable_games(svc: Service) -> CloneableGameListResponse:
        return await svc.cloneable_games()

    # =========================================================================
    # Play
    # =========================================================================

    @app.get(
        "/api/waitingfor",
        response_model=WaitingForResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Play"],
        summary="What a participant should answer now",
    )
    async def waiting_for(
        svc: Service,
        participant_id: Annotated[str, Query(alias="id")],
    ) -> WaitingForResponse:
        return await svc.waiting_for(participant_id)

    @app.post(
        "/player/input",
        response_model=InputResultResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Response rejected"},
            404: {"model": ErrorResponse, "description": "Unknown player"},
        },
        tags=["Play"],
        summary="Submit a response to the pending input",
    )
    async def player_input(
        svc: Service,
        player_id: Annotated[str, Query(alias="id")],
        body: Annotated[Any, Body()],
    ) -> InputResultResponse:
        """
        Submit a response for the input the player is waiting on.

        **Body examples:**
        ```json
        {"type": "or", "index": 2, "response": {"type": "amount", "amount": 8}}
        {"type": "and", "index": 0, "response": {"type": "option"}}
        ```
        """
        return await svc.submit_input(player_id, body)

    # =========================================================================
    # Versions
    # =========================================================================

    @app.post(
        "/api/game/undo",
        response_model=UndoResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Versions"],
        summary="Drop the most recent saves",
    )
    async def undo(svc: Service, body: UndoRequest) -> UndoResponse:
        return await svc.undo(body)

    @app.post(
        "/api/game/finalize",
        response_model=FinalizeResponse,
        responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Versions"],
        summary="Keep only the seed and final version",
    )
    async def finalize(
        svc: Service,
        game_id: Annotated[str, Query(alias="id")],
        server_id: Annotated[Optional[str], Query(alias="serverId")] = None,
    ):
        denied = require_admin(svc, server_id)
        if denied:
            return denied
        return await svc.finalize(game_id)

    @app.post(
        "/api/admin/purge",
        response_model=PurgeResponse,
        responses={403: {"model": ErrorResponse}},
        tags=["Admin"],
        summary="Purge unfinished games older than the given age",
    )
    async def purge(
        svc: Service,
        server_id: Annotated[Optional[str], Query(alias="serverId")] = None,
        days: Annotated[Optional[int], Query(ge=1)] = None,
    ):
        denied = require_admin(svc, server_id)
        if denied:
            return denied
        return await svc.purge(days)

    @app.get(
        "/api/stats",
        responses={403: {"model": ErrorResponse}},
        tags=["Admin"],
        summary="Database statistics",
    )
    async def stats(
        svc: Service,
        server_id: Annotated[Optional[str], Query(alias="serverId")] = None,
    ):
        denied = require_admin(svc, server_id)
        if denied:
            return denied
        return await svc.stats()

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="tharsis",
            version=__version__,
        )

    return app
