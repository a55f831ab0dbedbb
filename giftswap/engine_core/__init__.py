"""
Engine Core - Deterministic gift-exchange state management.

The engine is the runtime that:
1. Manages GameState (players, gifts, action log)
2. Enforces the rules (phases, turns, steal limits, steal-back)
3. Generates legal moves
4. Applies actions via the reducer
"""

from .state import (
    ActionKind, ActionRecord, GameConfig, GamePhase, GameState, GiftState,
    GiftStatus, PlayerState,
)
from .action import Action, ActionType, ActionPayload, ActionResult
from .reducer import Reducer, apply_action
from .action_generator import ActionGenerator, LegalMoves, legal_actions, legal_moves
from .history import ActionHistory
from .errors import GiftSwapError

__all__ = [
    "ActionKind",
    "ActionRecord",
    "GameConfig",
    "GamePhase",
    "GameState",
    "GiftState",
    "GiftStatus",
    "PlayerState",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "Reducer",
    "apply_action",
    "ActionGenerator",
    "LegalMoves",
    "legal_actions",
    "legal_moves",
    "ActionHistory",
    "GiftSwapError",
]
