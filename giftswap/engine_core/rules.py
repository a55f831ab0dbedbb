"""
Rules - Precondition checks shared by the reducer and the action generator.

Each check raises a RuleViolation (or NotFound) and never mutates state.
"""

from __future__ import annotations

from .state import GameState, GamePhase, GiftState, PlayerState
from .errors import (
    CannotStealOwnGift,
    GiftLocked,
    NotAdmin,
    NotFinalRound,
    NotYourTurn,
    StealBackForbidden,
    TurnAlreadyTaken,
    WrongPhase,
)
from .history import ActionHistory
from .ledger import GiftLedger


def ledger_for(state: GameState) -> GiftLedger:
    return GiftLedger(max_steals_per_gift=state.config.max_steals_per_gift)


def require_phase(state: GameState, *phases: GamePhase) -> None:
    if state.phase not in phases:
        allowed = ", ".join(p.value for p in phases)
        raise WrongPhase(
            f"Not allowed while the game is {state.phase.value} (needs {allowed})",
            phase=state.phase.value,
        )


def require_admin(state: GameState, player_id: str | None) -> PlayerState:
    player = state.require_player(player_id)
    if not player.is_admin:
        raise NotAdmin(f"{player.display_name} is not the host", player_id=player_id)
    return player


def require_turn(state: GameState, player_id: str | None) -> PlayerState:
    """
    The actor must be the active player of an active game, and must not
    have used their turn already (unless in the final round).
    """
    require_phase(state, GamePhase.ACTIVE)
    actor = state.require_player(player_id)
    if state.active_player_id != actor.player_id:
        raise NotYourTurn(
            f"It is not {actor.display_name}'s turn",
            player_id=actor.player_id,
            active_player_id=state.active_player_id,
        )
    if actor.has_completed_turn and not state.is_final_round:
        raise TurnAlreadyTaken(
            f"{actor.display_name} has already taken a turn this round",
            player_id=actor.player_id,
        )
    return actor


def check_can_give_up(state: GameState, actor: PlayerState) -> None:
    """
    A player already holding a gift (final round only) gives it up when
    they pick or steal. A locked gift is frozen to its owner.
    """
    if actor.current_gift_id is None:
        return
    held = state.get_gift(actor.current_gift_id)
    if held is not None and held.is_locked:
        raise GiftLocked(
            f"{actor.display_name}'s gift {held.name} is locked to them",
            gift_id=held.gift_id,
        )


def check_pick(state: GameState, actor: PlayerState, gift: GiftState) -> None:
    ledger_for(state).check_revealable(gift)
    check_can_give_up(state, actor)


def check_steal(state: GameState, actor: PlayerState, gift: GiftState) -> None:
    ledger = ledger_for(state)
    ledger.check_transferable(gift)
    if gift.current_owner_id == actor.player_id:
        raise CannotStealOwnGift(
            f"{actor.display_name} already holds {gift.name}",
            gift_id=gift.gift_id,
        )
    if not state.config.allow_immediate_stealback:
        if ActionHistory.of(state).was_just_stolen_from(gift.gift_id, actor.player_id):
            raise StealBackForbidden(
                f"{gift.name} was just stolen from {actor.display_name}",
                gift_id=gift.gift_id,
            )
    check_can_give_up(state, actor)


def check_keep(state: GameState, actor: PlayerState) -> None:
    if not state.is_final_round:
        raise NotFinalRound("Gifts can only be kept in the final round")
