"""
FastAPI Application - REST API for hosts, players and the presentation screen.

Endpoints:
    POST   /api/v1/sessions                          Create session (host)
    GET    /api/v1/sessions                          List sessions
    GET    /api/v1/sessions/{id}                     Get session state
    GET    /api/v1/sessions/by-code/{code}           Look a session up by code
    POST   /api/v1/join                              Join by code
    POST   /api/v1/sessions/{id}/gifts               Add gifts (host)
    PATCH  /api/v1/sessions/{id}/gifts/{gift_id}     Edit gift (host)
    DELETE /api/v1/sessions/{id}/gifts/{gift_id}     Remove gift (host)
    PATCH  /api/v1/sessions/{id}/config              Change rules (host)
    POST   /api/v1/sessions/{id}/lobby               Open lobby (host)
    POST   /api/v1/sessions/{id}/start               Start game (host)
    POST   /api/v1/sessions/{id}/pause               Pause (host)
    POST   /api/v1/sessions/{id}/resume              Resume (host)
    POST   /api/v1/sessions/{id}/end                 End game (host)
    DELETE /api/v1/sessions/{id}/players/{player_id} Remove player (host)
    POST   /api/v1/sessions/{id}/pick                Open a hidden gift
    POST   /api/v1/sessions/{id}/steal               Steal a gift
    POST   /api/v1/sessions/{id}/keep                Keep (final round)
    GET    /api/v1/sessions/{id}/players/{player_id}/moves  Legal moves
    GET    /api/v1/sessions/{id}/history             Pick/steal log
    GET    /api/v1/sessions/{id}/results             Results report
    GET    /api/v1/sessions/{id}/results.csv         Results as CSV
    WS     /api/v1/sessions/{id}/ws                  Change notifications

Game endpoints are plain `def` handlers: the session manager may sleep
between store retries, so they run in the thread pool.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional
import asyncio
import json
import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .. import __version__
from ..config import get_settings
from ..engine_core.errors import (
    ConflictError, GiftSwapError, NotFound, RuleViolation, TransientStoreError,
)
from ..session import SessionManager
from .service import APIService
from .schemas import (
    # Request models
    AddGiftsRequest,
    AdminRequest,
    CreateSessionRequest,
    GiftActionRequest,
    JoinRequest,
    KeepRequest,
    StartGameRequest,
    UpdateConfigRequest,
    UpdateGiftRequest,
    # Response models
    ActionResponse,
    CreateSessionResponse,
    ErrorResponse,
    GameStateResponse,
    HealthResponse,
    HistoryResponse,
    JoinResponse,
    LegalMovesResponse,
    ResultsResponse,
    SessionListResponse,
    # Enums
    ErrorCode,
)

logger = logging.getLogger(__name__)

RULE_ERRORS = {400: {"model": ErrorResponse, "description": "Rejected by the game rules"}}
NOT_FOUND_ERRORS = {404: {"model": ErrorResponse, "description": "Session, player or gift not found"}}
ACTION_ERRORS = {**RULE_ERRORS, **NOT_FOUND_ERRORS, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}


def status_for_error(exc: GiftSwapError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, TransientStoreError):
        return 503
    if isinstance(exc, RuleViolation):
        return 400
    return 500


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="GiftSwap API",
        description="""
White Elephant gift exchange - hosts set up gifts, players take turns
opening a hidden gift or stealing one that is already open.

## Turn Flow

1. Each player gets one opening turn, in the order fixed at start
2. A stolen-from player immediately takes a replacement turn
3. After everyone has gone, the first player gets one final turn:
   open a gift (game over), steal (the chain continues), or keep (game over)

## Error Codes

| Code | Description |
|------|-------------|
| `NOT_YOUR_TURN` | Another player is active |
| `GIFT_NOT_HIDDEN` | The gift has already been opened |
| `GIFT_LOCKED` | The gift reached its steal limit |
| `STEAL_BACK_FORBIDDEN` | The gift was just stolen from you |
| `WRONG_PHASE` | Not allowed in the current game phase |
| `SESSION_NOT_FOUND` | Session does not exist |
| `CONFLICT` | Too many concurrent writers, try again |
| `STORE_UNAVAILABLE` | Storage temporarily unavailable |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(session_manager=SessionManager(settings=settings))

    # =========================================================================
    # Error helpers
    # =========================================================================

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

    @app.exception_handler(GiftSwapError)
    async def handle_engine_error(request: Request, exc: GiftSwapError) -> JSONResponse:
        status_code = status_for_error(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return make_error_response(
            ErrorCode(exc.error_code),
            exc.message,
            status_code=status_code,
            details=exc.details or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            status_code=422,
            details={"fields": fields},
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=CreateSessionResponse,
        status_code=201,
        responses=RULE_ERRORS,
        tags=["Sessions"],
        summary="Create a new gift exchange",
    )
    def create_session(request: CreateSessionRequest) -> CreateSessionResponse:
        """
        Create a session in `setup`. The creator joins as the host; keep the
        returned `admin_id` for host-only calls.
        """
        return api_service.create_session(request)

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List sessions",
    )
    def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/by-code/{session_code}",
        response_model=GameStateResponse,
        responses=NOT_FOUND_ERRORS,
        tags=["Sessions"],
        summary="Look a session up by its join code",
    )
    def get_session_by_code(session_code: str) -> GameStateResponse:
        return api_service.get_state_by_code(session_code)

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=GameStateResponse,
        responses=NOT_FOUND_ERRORS,
        tags=["Sessions"],
        summary="Get the current session state",
    )
    def get_session(session_id: str) -> GameStateResponse:
        return api_service.get_state(session_id)

    @app.post(
        "/api/v1/join",
        response_model=JoinResponse,
        responses=ACTION_ERRORS,
        tags=["Sessions"],
        summary="Join a session with its code",
    )
    def join_session(request: JoinRequest) -> JoinResponse:
        """Only possible while the lobby is open. Names are unique per session."""
        return api_service.join(request)

    # =========================================================================
    # Setup Endpoints (host)
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/gifts",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Setup"],
        summary="Add one or more gifts",
    )
    def add_gifts(session_id: str, request: AddGiftsRequest) -> ActionResponse:
        return api_service.add_gifts(session_id, request)

    @app.patch(
        "/api/v1/sessions/{session_id}/gifts/{gift_id}",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Setup"],
        summary="Edit a gift",
    )
    def update_gift(session_id: str, gift_id: str, request: UpdateGiftRequest) -> ActionResponse:
        return api_service.update_gift(session_id, gift_id, request)

    @app.delete(
        "/api/v1/sessions/{session_id}/gifts/{gift_id}",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Setup"],
        summary="Remove a gift",
    )
    def remove_gift(session_id: str, gift_id: str, admin_id: str) -> ActionResponse:
        return api_service.remove_gift(session_id, gift_id, AdminRequest(admin_id=admin_id))

    @app.patch(
        "/api/v1/sessions/{session_id}/config",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Setup"],
        summary="Change the game rules before the start",
    )
    def update_config(session_id: str, request: UpdateConfigRequest) -> ActionResponse:
        return api_service.update_config(session_id, request)

    # =========================================================================
    # Host Controls
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/lobby",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="Open the lobby for players to join",
    )
    def open_lobby(session_id: str, request: AdminRequest) -> ActionResponse:
        return api_service.open_lobby(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/start",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="Start the game",
    )
    def start_game(session_id: str, request: StartGameRequest) -> ActionResponse:
        """Needs at least two players. Fixes the turn order (shuffled if configured)."""
        return api_service.start_game(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/pause",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="Pause the game",
    )
    def pause_game(session_id: str, request: AdminRequest) -> ActionResponse:
        return api_service.pause_game(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/resume",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="Resume a paused game",
    )
    def resume_game(session_id: str, request: AdminRequest) -> ActionResponse:
        return api_service.resume_game(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/end",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="End the game now",
    )
    def end_game(session_id: str, request: AdminRequest) -> ActionResponse:
        return api_service.end_game(session_id, request)

    @app.delete(
        "/api/v1/sessions/{session_id}/players/{player_id}",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Host"],
        summary="Remove a player",
    )
    def remove_player(session_id: str, player_id: str, admin_id: str) -> ActionResponse:
        """Their gift goes back unowned; if it was their turn, the turn moves on."""
        return api_service.remove_player(session_id, player_id, AdminRequest(admin_id=admin_id))

    # =========================================================================
    # Turn Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/pick",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Turns"],
        summary="Open a hidden gift",
    )
    def pick_gift(session_id: str, request: GiftActionRequest) -> ActionResponse:
        return api_service.pick_gift(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/steal",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Turns"],
        summary="Steal an opened gift",
    )
    def steal_gift(session_id: str, request: GiftActionRequest) -> ActionResponse:
        """The player stolen from takes the next turn."""
        return api_service.steal_gift(session_id, request)

    @app.post(
        "/api/v1/sessions/{session_id}/keep",
        response_model=ActionResponse,
        responses=ACTION_ERRORS,
        tags=["Turns"],
        summary="Keep the current gift and end the game",
    )
    def keep_gift(session_id: str, request: KeepRequest) -> ActionResponse:
        return api_service.keep_gift(session_id, request)

    # =========================================================================
    # Query Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/players/{player_id}/moves",
        response_model=LegalMovesResponse,
        responses=NOT_FOUND_ERRORS,
        tags=["Queries"],
        summary="What a player may do right now",
    )
    def legal_moves(session_id: str, player_id: str) -> LegalMovesResponse:
        return api_service.legal_moves(session_id, player_id)

    @app.get(
        "/api/v1/sessions/{session_id}/history",
        response_model=HistoryResponse,
        responses=NOT_FOUND_ERRORS,
        tags=["Queries"],
        summary="Every pick and steal, in order",
    )
    def history(session_id: str) -> HistoryResponse:
        return api_service.history(session_id)

    @app.get(
        "/api/v1/sessions/{session_id}/results",
        response_model=ResultsResponse,
        responses=NOT_FOUND_ERRORS,
        tags=["Queries"],
        summary="Who has which gift",
    )
    def results(session_id: str) -> ResultsResponse:
        return api_service.results(session_id)

    @app.get(
        "/api/v1/sessions/{session_id}/results.csv",
        response_class=Response,
        responses={200: {"content": {"text/csv": {}}}, **NOT_FOUND_ERRORS},
        tags=["Queries"],
        summary="Results report as CSV",
    )
    def results_csv(session_id: str) -> Response:
        filename, content = api_service.results_csv(session_id)
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: a change was committed (events, row changes, state)
        - error: unknown session or invalid message

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()

        # Subscribe before loading so no commit falls between the two
        subscription = api_service.session_manager.subscribe(session_id)
        try:
            state = api_service.session_manager.get_session(session_id)
        except GiftSwapError as e:
            subscription.close()
            await websocket.send_json({"type": "error", "payload": e.to_dict()})
            await websocket.close()
            return

        async def forward_changes():
            async for notification in subscription:
                if notification.version <= state.version:
                    continue
                await websocket.send_json(api_service.notification_message(notification))

        forwarder = None
        try:
            # Send initial state
            await websocket.send_json({
                "type": "state_update",
                "payload": {
                    "version": state.version,
                    "events": [],
                    "changes": [],
                    "state": api_service.build_game_state(state).model_dump(mode="json"),
                },
            })
            forwarder = asyncio.create_task(forward_changes())

            # Listen for messages
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect:
            logger.debug("WebSocket for session %s disconnected", session_id)
        finally:
            subscription.close()
            if forwarder is not None:
                forwarder.cancel()

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Check API health status."""
        return HealthResponse(
            status="healthy",
            service="giftswap",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """API root with links to documentation."""
        return {
            "service": "GiftSwap API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn giftswap.api.app:app
app = create_app()
