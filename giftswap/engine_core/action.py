"""
Action System - Actions, payloads, and results.

Actions represent:
1. Player actions (pick, steal, keep)
2. Admin actions (lobby, start, pause, resume, end, remove player,
   gift and config management)
3. Lobby actions (join)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import GiftSwapError


class ActionType(Enum):
    """Types of actions in the system."""
    # Player actions
    PICK_GIFT = "pick_gift"
    STEAL_GIFT = "steal_gift"
    KEEP_GIFT = "keep_gift"

    # Lobby
    JOIN_SESSION = "join_session"

    # Admin: session lifecycle
    OPEN_LOBBY = "open_lobby"
    START_GAME = "start_game"
    PAUSE_GAME = "pause_game"
    RESUME_GAME = "resume_game"
    END_GAME = "end_game"
    REMOVE_PLAYER = "remove_player"

    # Admin: setup
    ADD_GIFTS = "add_gifts"
    UPDATE_GIFT = "update_gift"
    REMOVE_GIFT = "remove_gift"
    UPDATE_CONFIG = "update_config"


PLAYER_ACTIONS = frozenset({
    ActionType.PICK_GIFT,
    ActionType.STEAL_GIFT,
    ActionType.KEEP_GIFT,
})


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types have different payload shapes.
    This is a generic container; validation happens in the reducer.
    """
    # The acting player (admin for admin actions)
    player_id: str | None = None
    gift_id: str | None = None
    target_player_id: str | None = None

    # Generic params (gift fields, config updates, seed, display name...)
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    - Stamped with an id and timestamp by the session layer
    """
    action_type: ActionType
    payload: ActionPayload
    timestamp: float | None = None
    action_id: str | None = None

    @classmethod
    def pick(cls, player_id: str, gift_id: str) -> Action:
        """Factory for picking a hidden gift."""
        return cls(
            action_type=ActionType.PICK_GIFT,
            payload=ActionPayload(player_id=player_id, gift_id=gift_id),
        )

    @classmethod
    def steal(cls, player_id: str, gift_id: str) -> Action:
        """Factory for stealing a revealed gift."""
        return cls(
            action_type=ActionType.STEAL_GIFT,
            payload=ActionPayload(player_id=player_id, gift_id=gift_id),
        )

    @classmethod
    def keep(cls, player_id: str) -> Action:
        """Factory for keeping the current gift in the final round."""
        return cls(
            action_type=ActionType.KEEP_GIFT,
            payload=ActionPayload(player_id=player_id),
        )

    @classmethod
    def join(
        cls,
        player_id: str,
        display_name: str,
        avatar_seed: str | None = None,
    ) -> Action:
        return cls(
            action_type=ActionType.JOIN_SESSION,
            payload=ActionPayload(
                player_id=player_id,
                params={"display_name": display_name, "avatar_seed": avatar_seed},
            ),
        )

    @classmethod
    def open_lobby(cls, admin_id: str) -> Action:
        return cls(ActionType.OPEN_LOBBY, ActionPayload(player_id=admin_id))

    @classmethod
    def start_game(cls, admin_id: str, seed: int | None = None) -> Action:
        """Factory for starting the game. The seed drives order shuffling."""
        return cls(
            action_type=ActionType.START_GAME,
            payload=ActionPayload(player_id=admin_id, params={"seed": seed}),
        )

    @classmethod
    def pause(cls, admin_id: str) -> Action:
        return cls(ActionType.PAUSE_GAME, ActionPayload(player_id=admin_id))

    @classmethod
    def resume(cls, admin_id: str) -> Action:
        return cls(ActionType.RESUME_GAME, ActionPayload(player_id=admin_id))

    @classmethod
    def end_game(cls, admin_id: str) -> Action:
        return cls(ActionType.END_GAME, ActionPayload(player_id=admin_id))

    @classmethod
    def remove_player(cls, admin_id: str, target_player_id: str) -> Action:
        return cls(
            action_type=ActionType.REMOVE_PLAYER,
            payload=ActionPayload(player_id=admin_id, target_player_id=target_player_id),
        )

    @classmethod
    def add_gifts(cls, admin_id: str, gifts: list[dict[str, Any]]) -> Action:
        """
        Factory for adding gifts.

        Each gift dict needs gift_id and name; image_url, link and
        description are optional.
        """
        return cls(
            action_type=ActionType.ADD_GIFTS,
            payload=ActionPayload(player_id=admin_id, params={"gifts": gifts}),
        )

    @classmethod
    def update_gift(cls, admin_id: str, gift_id: str, updates: dict[str, Any]) -> Action:
        return cls(
            action_type=ActionType.UPDATE_GIFT,
            payload=ActionPayload(player_id=admin_id, gift_id=gift_id, params=updates),
        )

    @classmethod
    def remove_gift(cls, admin_id: str, gift_id: str) -> Action:
        return cls(
            action_type=ActionType.REMOVE_GIFT,
            payload=ActionPayload(player_id=admin_id, gift_id=gift_id),
        )

    @classmethod
    def update_config(cls, admin_id: str, updates: dict[str, Any]) -> Action:
        return cls(
            action_type=ActionType.UPDATE_CONFIG,
            payload=ActionPayload(player_id=admin_id, params=updates),
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - The typed error (if failed)
    - Domain events for subscribers (sound, animation, logging)
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None
    exception: GiftSwapError | None = None

    events: list[Any] = field(default_factory=list)  # DomainEvent
    state_changes: list[str] = field(default_factory=list)  # Human-readable changes

    @classmethod
    def failure(cls, exc: GiftSwapError) -> ActionResult:
        """Create a failure result from a typed error."""
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
            exception=exc,
        )

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        events: list[Any] | None = None,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            events=events or [],
            state_changes=changes or [],
        )

    def raise_for_error(self) -> ActionResult:
        """Re-raise the typed error of a failed result; return self otherwise."""
        if not self.success and self.exception is not None:
            raise self.exception
        return self
