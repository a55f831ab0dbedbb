"""
API Module - HTTP and WebSocket interface.

Exposes the engine to the host, player and presentation clients:
1. Host creates a session, adds gifts, tunes the rules
2. Players join with the session code
3. Host starts the game; players pick, steal or keep on their turn
4. Every client follows along over the session WebSocket
5. Host exports the results

No accounts: the ids returned by create/join identify the caller.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    JoinRequest,
    AdminRequest,
    StartGameRequest,
    AddGiftsRequest,
    UpdateGiftRequest,
    UpdateConfigRequest,
    GiftActionRequest,
    KeepRequest,
    # Responses
    CreateSessionResponse,
    JoinResponse,
    ActionResponse,
    GameStateResponse,
    LegalMovesResponse,
    HistoryResponse,
    ResultsResponse,
    ErrorResponse,
    # Shared
    GameConfigModel,
    PlayerInfo,
    GiftInfo,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "JoinRequest",
    "AdminRequest",
    "StartGameRequest",
    "AddGiftsRequest",
    "UpdateGiftRequest",
    "UpdateConfigRequest",
    "GiftActionRequest",
    "KeepRequest",
    # Responses
    "CreateSessionResponse",
    "JoinResponse",
    "ActionResponse",
    "GameStateResponse",
    "LegalMovesResponse",
    "HistoryResponse",
    "ResultsResponse",
    "ErrorResponse",
    # Shared
    "GameConfigModel",
    "PlayerInfo",
    "GiftInfo",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
