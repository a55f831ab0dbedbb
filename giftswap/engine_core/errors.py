"""
Errors - Typed failures raised by the rule engine and the store.

Taxonomy:
- RuleViolation: a precondition failed (wrong phase, wrong actor, gift in
  the wrong status, steal-back forbidden, ...). Never retried.
- NotFound: the session, player or gift referenced does not exist.
  Never retried; the caller must re-join or re-create.
- StoreError: the ledger store failed. TransientStoreError is retried a
  bounded number of times; ConflictError means another writer committed
  first and the action must be re-validated against fresh state.

Every error carries a machine-readable error_code (UPPER_SNAKE_CASE) that
the API surfaces unchanged.
"""

from __future__ import annotations
from typing import Any


class GiftSwapError(Exception):
    """Base class for all engine errors."""
    error_code: str = "INTERNAL_ERROR"
    retriable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details or None,
        }


# =============================================================================
# Precondition violations
# =============================================================================

class RuleViolation(GiftSwapError):
    """An action was rejected by the game rules. No state was changed."""
    error_code = "RULE_VIOLATION"


class WrongPhase(RuleViolation):
    error_code = "WRONG_PHASE"


class InvalidTransition(RuleViolation):
    error_code = "INVALID_TRANSITION"


class NotYourTurn(RuleViolation):
    error_code = "NOT_YOUR_TURN"


class TurnAlreadyTaken(RuleViolation):
    error_code = "TURN_ALREADY_TAKEN"


class NotEnoughPlayers(RuleViolation):
    error_code = "NOT_ENOUGH_PLAYERS"


class NotFinalRound(RuleViolation):
    error_code = "NOT_FINAL_ROUND"


class GiftNotHidden(RuleViolation):
    """The gift has already been revealed, so it cannot be picked."""
    error_code = "GIFT_NOT_HIDDEN"


# Name used when a pick loses a race for the same gift
AlreadyOwned = GiftNotHidden


class GiftLocked(RuleViolation):
    error_code = "GIFT_LOCKED"


class GiftNotStealable(RuleViolation):
    error_code = "GIFT_NOT_STEALABLE"


class CannotStealOwnGift(RuleViolation):
    error_code = "CANNOT_STEAL_OWN_GIFT"


class StealBackForbidden(RuleViolation):
    error_code = "STEAL_BACK_FORBIDDEN"


class NotAdmin(RuleViolation):
    error_code = "NOT_ADMIN"


class CannotRemoveAdmin(RuleViolation):
    error_code = "CANNOT_REMOVE_ADMIN"


class JoinClosed(RuleViolation):
    error_code = "JOIN_CLOSED"


class DuplicatePlayerName(RuleViolation):
    error_code = "DUPLICATE_PLAYER_NAME"


class InvalidConfig(RuleViolation):
    error_code = "INVALID_CONFIG"


class InvalidAction(RuleViolation):
    error_code = "INVALID_ACTION"


# =============================================================================
# Not found / stale references
# =============================================================================

class NotFound(GiftSwapError):
    error_code = "NOT_FOUND"


class SessionNotFound(NotFound):
    error_code = "SESSION_NOT_FOUND"


class PlayerNotFound(NotFound):
    error_code = "PLAYER_NOT_FOUND"


class GiftNotFound(NotFound):
    error_code = "GIFT_NOT_FOUND"


# =============================================================================
# Store failures
# =============================================================================

class StoreError(GiftSwapError):
    error_code = "STORE_ERROR"


class TransientStoreError(StoreError):
    """Store temporarily unavailable. Safe to retry."""
    error_code = "STORE_UNAVAILABLE"
    retriable = True


class ConflictError(StoreError):
    """Another writer committed first (version mismatch or duplicate key)."""
    error_code = "CONFLICT"
