"""
Pydantic Schemas for API - Request/response models for OpenAPI.

Error Codes (see ErrorCode):
- INVALID_INDEX / WRONG_RESPONSE / AMOUNT_OUT_OF_RANGE / ...: a response
  was rejected; the pending input is unchanged
- STALE_INPUT: the response targets an input that is no longer pending
- NOT_YOUR_TURN: another participant is expected to answer
- GAME_NOT_FOUND / SAVE_NOT_FOUND / PARTICIPANT_NOT_FOUND: unknown id
- PERSISTENCE_ERROR: the store failed
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class GameStatusValue(str, Enum):
    RUNNING = "running"
    FINISHED = "finished"


class ErrorCode(str, Enum):
    """Structured error codes. Mirrors ``error_code`` on each engine error."""
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_INDEX = "INVALID_INDEX"
    WRONG_RESPONSE = "WRONG_RESPONSE"
    AMOUNT_OUT_OF_RANGE = "AMOUNT_OUT_OF_RANGE"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    OUT_OF_ORDER = "OUT_OF_ORDER"
    STALE_INPUT = "STALE_INPUT"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    INVALID_STATE = "INVALID_STATE"
    ACTION_FAILED = "ACTION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    SAVE_NOT_FOUND = "SAVE_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    name: str
    resources: dict[str, int] = Field(default_factory=dict)
    is_active: bool = False

    model_config = {"from_attributes": True}


class CloneableGame(BaseModel):
    game_id: str
    player_count: int


# =============================================================================
# Request Models
# =============================================================================

class CreateGameRequest(BaseModel):
    """Request to create a new game."""
    players: list[str] = Field(..., min_length=1, description="Player display names, in turn order")
    spectator: bool = Field(True, description="Also issue a spectator id")
    undo_enabled: bool = Field(False, description="Allow players to undo recent saves")
    first_input: Optional[dict[str, Any]] = Field(
        None, description="Input tree the first player is asked, in to_dict() form"
    )


class UndoRequest(BaseModel):
    game_id: str
    count: int = Field(1, ge=1, description="Number of most recent saves to drop")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameResponse(BaseModel):
    """Current state of a game."""
    game_id: str
    status: GameStatusValue
    save_id: int = Field(..., description="Most recent version written")
    generation: int
    players: list[PlayerInfo]
    spectator_id: Optional[str] = None
    active_player_id: Optional[str] = None
    undo_enabled: bool = False
    pending_interrupts: int = 0
    log: list[str] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """One stored version of a game."""
    game_id: str
    save_id: int
    status: GameStatusValue
    players: int
    created_time: datetime
    game: dict[str, Any]


class WaitingForResponse(BaseModel):
    """What a participant is expected to answer, if anything."""
    participant_id: str
    game_id: str
    waiting: bool
    is_interrupt: bool = False
    input: Optional[dict[str, Any]] = None


class InputResultResponse(BaseModel):
    """Outcome of an accepted response."""
    game_id: str
    player_id: str
    completed: bool
    path: list[int] = Field(default_factory=list, description="Option indices that were followed")
    value: Optional[Any] = None
    save_id: int
    log: list[str] = Field(default_factory=list)
    waiting_for: Optional[dict[str, Any]] = Field(
        None, description="The next input for the same player, if any"
    )


class HistoryResponse(BaseModel):
    game_id: str
    save_ids: list[int]


class UndoResponse(BaseModel):
    game_id: str
    deleted: list[int]
    save_ids: list[int]


class FinalizeResponse(BaseModel):
    game_id: str
    status: GameStatusValue
    save_ids: list[int]


class PurgeResponse(BaseModel):
    purged: list[str]
    count: int


class GameListResponse(BaseModel):
    games: list[str]
    count: int


class CloneableGameListResponse(BaseModel):
    games: list[CloneableGame]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
