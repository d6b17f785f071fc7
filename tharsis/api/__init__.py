"""
API Module - HTTP interface for game clients.

Clients:
1. Create games and receive player and spectator ids
2. Ask what a participant is waiting on
3. Submit responses to pending inputs
4. Browse, undo and finalize stored versions
"""

from .schemas import (
    # Requests
    CreateGameRequest,
    UndoRequest,
    # Responses
    GameResponse,
    SnapshotResponse,
    WaitingForResponse,
    InputResultResponse,
    HistoryResponse,
    UndoResponse,
    FinalizeResponse,
    PurgeResponse,
    ErrorResponse,
    ErrorCode,
    # Shared
    PlayerInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateGameRequest",
    "UndoRequest",
    # Responses
    "GameResponse",
    "SnapshotResponse",
    "WaitingForResponse",
    "InputResultResponse",
    "HistoryResponse",
    "UndoResponse",
    "FinalizeResponse",
    "PurgeResponse",
    "ErrorResponse",
    "ErrorCode",
    # Shared
    "PlayerInfo",
    # Service
    "APIService",
    "create_app",
]
