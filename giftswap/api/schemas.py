"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between clients and the engine.
All responses include explicit types for OpenAPI schema generation.

Error codes mirror the engine's typed errors one to one, so a client can
switch on error_code without parsing messages. HTTP status:
- 400: the game rules rejected the action
- 404: session, player or gift not found
- 409: lost a race with another writer too many times
- 422: the request body or parameters failed validation
- 503: the store is temporarily unavailable
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class GameStatus(str, Enum):
    """Session phase values."""
    SETUP = "setup"
    LOBBY = "lobby"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class GiftStatusValue(str, Enum):
    """Gift visibility values."""
    HIDDEN = "hidden"
    REVEALED = "revealed"
    LOCKED = "locked"


class ErrorCode(str, Enum):
    """Structured error codes."""
    RULE_VIOLATION = "RULE_VIOLATION"
    WRONG_PHASE = "WRONG_PHASE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    TURN_ALREADY_TAKEN = "TURN_ALREADY_TAKEN"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    NOT_FINAL_ROUND = "NOT_FINAL_ROUND"
    GIFT_NOT_HIDDEN = "GIFT_NOT_HIDDEN"
    GIFT_LOCKED = "GIFT_LOCKED"
    GIFT_NOT_STEALABLE = "GIFT_NOT_STEALABLE"
    CANNOT_STEAL_OWN_GIFT = "CANNOT_STEAL_OWN_GIFT"
    STEAL_BACK_FORBIDDEN = "STEAL_BACK_FORBIDDEN"
    NOT_ADMIN = "NOT_ADMIN"
    CANNOT_REMOVE_ADMIN = "CANNOT_REMOVE_ADMIN"
    JOIN_CLOSED = "JOIN_CLOSED"
    DUPLICATE_PLAYER_NAME = "DUPLICATE_PLAYER_NAME"
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_ACTION = "INVALID_ACTION"
    NOT_FOUND = "NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    GIFT_NOT_FOUND = "GIFT_NOT_FOUND"
    STORE_ERROR = "STORE_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class GameConfigModel(BaseModel):
    """Per-session rules."""
    max_steals_per_gift: int = Field(2, ge=1, description="Steals before a gift locks")
    randomize_order: bool = Field(True, description="Shuffle the turn order at start")
    allow_immediate_stealback: bool = Field(
        False, description="Allow taking back a gift the moment it was stolen from you"
    )
    turn_timer_enabled: bool = False
    turn_timer_seconds: int = Field(60, ge=10, le=600)

    model_config = {"from_attributes": True}


class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    display_name: str
    order_index: int
    current_gift_id: Optional[str] = None
    has_completed_turn: bool = False
    is_admin: bool = False
    is_current_turn: bool = False
    avatar_seed: str = ""
    joined_at: float = 0.0

    model_config = {"from_attributes": True}


class GiftInfo(BaseModel):
    """Gift information for display."""
    gift_id: str
    name: str
    image_url: str = ""
    link: Optional[str] = None
    description: Optional[str] = None
    status: GiftStatusValue
    steal_count: int = 0
    steals_remaining: int = 0
    current_owner_id: Optional[str] = None
    position: Optional[int] = None

    model_config = {"from_attributes": True}


class ActionInfo(BaseModel):
    """One pick or steal from the action log."""
    action_id: str
    player_id: str
    action_type: str = Field(description="pick or steal")
    gift_id: str
    previous_owner_id: Optional[str] = None
    sequence: int
    created_at: float
    description: str = ""


class ResultRowInfo(BaseModel):
    """One line of the results report."""
    rank: int
    player_id: str
    player_name: str
    gift_id: Optional[str] = None
    gift_name: str
    gift_image_url: str = ""
    order_index: int
    steal_count: int = 0
    steals_made: int = Field(0, description="Steals this player made")
    times_stolen_from: int = Field(0, description="Times a gift was stolen from this player")


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a new session. The creator becomes the host."""
    admin_name: str = Field(..., min_length=1, max_length=50)
    avatar_seed: Optional[str] = None
    config: Optional[GameConfigModel] = None


class JoinRequest(BaseModel):
    """Request to join a session by its code."""
    session_code: str = Field(..., min_length=1, max_length=16)
    display_name: str = Field(..., min_length=1, max_length=50)
    avatar_seed: Optional[str] = None


class AdminRequest(BaseModel):
    """Any host-only action without parameters."""
    admin_id: str


class StartGameRequest(AdminRequest):
    seed: Optional[int] = Field(None, description="Seed for the order shuffle")


class GiftCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    image_url: str = ""
    link: Optional[str] = None
    description: Optional[str] = None


class AddGiftsRequest(AdminRequest):
    gifts: list[GiftCreate] = Field(..., min_length=1)


class UpdateGiftRequest(AdminRequest):
    """Only the fields that are set are changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    image_url: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    position: Optional[int] = None


class UpdateConfigRequest(AdminRequest):
    """Only the fields that are set are changed."""
    max_steals_per_gift: Optional[int] = Field(None, ge=1)
    randomize_order: Optional[bool] = None
    allow_immediate_stealback: Optional[bool] = None
    turn_timer_enabled: Optional[bool] = None
    turn_timer_seconds: Optional[int] = Field(None, ge=10, le=600)


class GiftActionRequest(BaseModel):
    """Pick or steal."""
    player_id: str
    gift_id: str


class KeepRequest(BaseModel):
    player_id: str


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """Complete session state for display."""
    session_id: str
    session_code: str
    status: GameStatus
    active_player_id: Optional[str] = None
    first_player_id: Optional[str] = None
    round_index: int = 0
    is_final_round: bool = False
    turn_started_at: Optional[float] = None
    turn_deadline: Optional[float] = None
    config: GameConfigModel
    players: list[PlayerInfo] = Field(default_factory=list)
    gifts: list[GiftInfo] = Field(default_factory=list)
    version: int = 0
    created_at: float = 0.0
    api_version: str = "v1"


class CreateSessionResponse(BaseModel):
    admin_id: str = Field(description="Player id of the host; send it with host actions")
    state: GameStateResponse


class JoinResponse(BaseModel):
    player_id: str
    state: GameStateResponse


class ActionResponse(BaseModel):
    """Outcome of a committed action."""
    success: bool = True
    events: list[dict[str, Any]] = Field(default_factory=list)
    changes: list[str] = Field(default_factory=list, description="Human-readable summary")
    gift_ids: list[str] = Field(default_factory=list, description="Ids of gifts just added")
    state: GameStateResponse


class LegalMovesResponse(BaseModel):
    """What a player may do right now."""
    player_id: str
    is_current_turn: bool = False
    pickable: list[str] = Field(default_factory=list)
    stealable: list[str] = Field(default_factory=list)
    can_keep: bool = False


class HistoryResponse(BaseModel):
    session_id: str
    actions: list[ActionInfo] = Field(default_factory=list)


class ResultsResponse(BaseModel):
    session_id: str
    session_code: str
    status: GameStatus
    results: list[ResultRowInfo] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    """Response listing stored sessions."""
    sessions: list[str]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
