"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to session manager calls
2. Formats engine state for clients
3. Lets typed engine errors propagate; the web layer maps them to HTTP

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .schemas import (
    # Requests
    AddGiftsRequest,
    AdminRequest,
    CreateSessionRequest,
    GiftActionRequest,
    JoinRequest,
    KeepRequest,
    StartGameRequest,
    UpdateConfigRequest,
    UpdateGiftRequest,
    # Responses
    ActionInfo,
    ActionResponse,
    CreateSessionResponse,
    GameConfigModel,
    GameStateResponse,
    GiftInfo,
    HistoryResponse,
    JoinResponse,
    LegalMovesResponse,
    PlayerInfo,
    ResultRowInfo,
    ResultsResponse,
    # Enums
    GameStatus,
    GiftStatusValue,
)
from ..engine_core.action import ActionResult
from ..engine_core.history import ActionHistory
from ..engine_core.rules import ledger_for
from ..engine_core.state import GameState
from ..report import build_results, csv_filename, describe_action, to_csv
from ..session import SessionManager
from ..store import ChangeNotification


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Host creates a session and adds gifts
        created = service.create_session(CreateSessionRequest(admin_name="Ann"))
        service.add_gifts(created.state.session_id, AddGiftsRequest(...))

        # Players join by code
        joined = service.join(JoinRequest(session_code=..., display_name="Bob"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> CreateSessionResponse:
        config = request.config.model_dump() if request.config else None
        state = self.session_manager.create_session(
            request.admin_name,
            config=config,
            admin_avatar_seed=request.avatar_seed,
        )
        return CreateSessionResponse(
            admin_id=state.admin.player_id,
            state=self.build_game_state(state),
        )

    def join(self, request: JoinRequest) -> JoinResponse:
        state, player_id = self.session_manager.join_session(
            request.session_code,
            request.display_name,
            avatar_seed=request.avatar_seed,
        )
        return JoinResponse(player_id=player_id, state=self.build_game_state(state))

    def get_state(self, session_id: str) -> GameStateResponse:
        return self.build_game_state(self.session_manager.get_session(session_id))

    def get_state_by_code(self, session_code: str) -> GameStateResponse:
        return self.build_game_state(self.session_manager.find_by_code(session_code))

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_sessions()

    # =========================================================================
    # Setup
    # =========================================================================

    def add_gifts(self, session_id: str, request: AddGiftsRequest) -> ActionResponse:
        result, gift_ids = self.session_manager.add_gifts(
            session_id,
            request.admin_id,
            [gift.model_dump() for gift in request.gifts],
        )
        return self._action_response(result, gift_ids=gift_ids)

    def update_gift(
        self, session_id: str, gift_id: str, request: UpdateGiftRequest
    ) -> ActionResponse:
        updates = request.model_dump(exclude_unset=True, exclude={"admin_id"})
        result = self.session_manager.update_gift(session_id, request.admin_id, gift_id, updates)
        return self._action_response(result)

    def remove_gift(self, session_id: str, gift_id: str, request: AdminRequest) -> ActionResponse:
        result = self.session_manager.remove_gift(session_id, request.admin_id, gift_id)
        return self._action_response(result)

    def update_config(self, session_id: str, request: UpdateConfigRequest) -> ActionResponse:
        updates = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"admin_id"})
        result = self.session_manager.update_config(session_id, request.admin_id, updates)
        return self._action_response(result)

    # =========================================================================
    # Host controls
    # =========================================================================

    def open_lobby(self, session_id: str, request: AdminRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.open_lobby(session_id, request.admin_id)
        )

    def start_game(self, session_id: str, request: StartGameRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.start_game(session_id, request.admin_id, seed=request.seed)
        )

    def pause_game(self, session_id: str, request: AdminRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.pause_game(session_id, request.admin_id)
        )

    def resume_game(self, session_id: str, request: AdminRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.resume_game(session_id, request.admin_id)
        )

    def end_game(self, session_id: str, request: AdminRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.end_game(session_id, request.admin_id)
        )

    def remove_player(
        self, session_id: str, player_id: str, request: AdminRequest
    ) -> ActionResponse:
        return self._action_response(
            self.session_manager.remove_player(session_id, request.admin_id, player_id)
        )

    # =========================================================================
    # Turns
    # =========================================================================

    def pick_gift(self, session_id: str, request: GiftActionRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.pick_gift(session_id, request.player_id, request.gift_id)
        )

    def steal_gift(self, session_id: str, request: GiftActionRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.steal_gift(session_id, request.player_id, request.gift_id)
        )

    def keep_gift(self, session_id: str, request: KeepRequest) -> ActionResponse:
        return self._action_response(
            self.session_manager.keep_gift(session_id, request.player_id)
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def legal_moves(self, session_id: str, player_id: str) -> LegalMovesResponse:
        state = self.session_manager.get_session(session_id)
        moves = self.session_manager.legal_moves(session_id, player_id)
        return LegalMovesResponse(
            player_id=player_id,
            is_current_turn=state.active_player_id == player_id,
            pickable=moves.pickable,
            stealable=moves.stealable,
            can_keep=moves.can_keep,
        )

    def history(self, session_id: str) -> HistoryResponse:
        state = self.session_manager.get_session(session_id)
        return HistoryResponse(
            session_id=session_id,
            actions=[
                ActionInfo(
                    action_id=record.action_id,
                    player_id=record.player_id,
                    action_type=record.action_type.value,
                    gift_id=record.gift_id,
                    previous_owner_id=record.previous_owner_id,
                    sequence=record.sequence,
                    created_at=record.created_at,
                    description=describe_action(state, record),
                )
                for record in ActionHistory.of(state).records
            ],
        )

    def results(self, session_id: str) -> ResultsResponse:
        state = self.session_manager.get_session(session_id)
        return ResultsResponse(
            session_id=state.session_id,
            session_code=state.session_code,
            status=GameStatus(state.phase.value),
            results=[
                ResultRowInfo(
                    rank=row.rank,
                    player_id=row.player_id,
                    player_name=row.player_name,
                    gift_id=row.gift_id,
                    gift_name=row.gift_name,
                    gift_image_url=row.gift_image_url,
                    order_index=row.order_index,
                    steal_count=row.steal_count,
                    steals_made=row.steals_made,
                    times_stolen_from=row.times_stolen_from,
                )
                for row in build_results(state)
            ],
        )

    def results_csv(self, session_id: str) -> tuple[str, str]:
        """Returns (filename, csv text)."""
        state = self.session_manager.get_session(session_id)
        return csv_filename(state), to_csv(state)

    # =========================================================================
    # Formatting
    # =========================================================================

    def build_game_state(self, state: GameState) -> GameStateResponse:
        """Convert engine state to the API shape."""
        ledger = ledger_for(state)
        return GameStateResponse(
            session_id=state.session_id,
            session_code=state.session_code,
            status=GameStatus(state.phase.value),
            active_player_id=state.active_player_id,
            first_player_id=state.first_player_id,
            round_index=state.round_index,
            is_final_round=state.is_final_round,
            turn_started_at=state.turn_started_at,
            turn_deadline=state.turn_deadline,
            config=GameConfigModel(**state.config.to_dict()),
            players=[
                PlayerInfo(
                    player_id=p.player_id,
                    display_name=p.display_name,
                    order_index=p.order_index,
                    current_gift_id=p.current_gift_id,
                    has_completed_turn=p.has_completed_turn,
                    is_admin=p.is_admin,
                    is_current_turn=p.player_id == state.active_player_id,
                    avatar_seed=p.avatar_seed,
                    joined_at=p.joined_at,
                )
                for p in state.players_in_order
            ],
            gifts=[
                GiftInfo(
                    gift_id=g.gift_id,
                    name=g.name,
                    image_url=g.image_url,
                    link=g.link,
                    description=g.description,
                    status=GiftStatusValue(g.status.value),
                    steal_count=g.steal_count,
                    steals_remaining=ledger.steals_remaining(g),
                    current_owner_id=g.current_owner_id,
                    position=g.position,
                )
                for g in state.gifts_in_order
            ],
            version=state.version,
            created_at=state.created_at,
        )

    def notification_message(self, notification: ChangeNotification) -> dict[str, Any]:
        """WebSocket message for one committed change."""
        state = GameState.from_dict(notification.state)
        return {
            "type": "state_update",
            "payload": {
                "version": notification.version,
                "events": notification.events,
                "changes": [c.to_dict() for c in notification.changes],
                "state": self.build_game_state(state).model_dump(mode="json"),
            },
        }

    def _action_response(
        self, result: ActionResult, gift_ids: list[str] | None = None
    ) -> ActionResponse:
        return ActionResponse(
            success=result.success,
            events=[e.to_dict() for e in result.events],
            changes=result.state_changes,
            gift_ids=gift_ids or [],
            state=self.build_game_state(result.new_state),
        )
