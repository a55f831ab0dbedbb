"""
Action Generator - Enumerates the legal moves of the active player.

The action generator is used by:
1. The reducer, to detect a player who has nothing left to do
2. UI to show which gifts can be picked or stolen
3. The simulator to choose random moves

Design: Generates Action objects, not just gift ids.
This ensures all generated actions are fully specified.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import GameState, GamePhase
from .action import Action
from .errors import GiftSwapError
from . import rules


@dataclass
class LegalMoves:
    """What one player may do right now."""
    player_id: str
    pickable: list[str] = field(default_factory=list)  # gift ids
    stealable: list[str] = field(default_factory=list)  # gift ids
    can_keep: bool = False

    @property
    def has_any(self) -> bool:
        return bool(self.pickable or self.stealable or self.can_keep)

    def to_actions(self) -> list[Action]:
        actions = [Action.pick(self.player_id, g) for g in self.pickable]
        actions.extend(Action.steal(self.player_id, g) for g in self.stealable)
        if self.can_keep:
            actions.append(Action.keep(self.player_id))
        return actions


@dataclass
class ActionGenerator:
    """Generates legal actions for the current game state."""

    def moves_for(self, state: GameState, player_id: str) -> LegalMoves:
        moves = LegalMoves(player_id=player_id)
        if state.phase != GamePhase.ACTIVE:
            return moves
        try:
            actor = rules.require_turn(state, player_id)
        except GiftSwapError:
            return moves

        for gift in state.gifts_in_order:
            try:
                rules.check_pick(state, actor, gift)
                moves.pickable.append(gift.gift_id)
                continue
            except GiftSwapError:
                pass
            try:
                rules.check_steal(state, actor, gift)
                moves.stealable.append(gift.gift_id)
            except GiftSwapError:
                pass

        try:
            rules.check_keep(state, actor)
            moves.can_keep = True
        except GiftSwapError:
            pass
        return moves

    def generate(self, state: GameState) -> list[Action]:
        """Generate all legal actions for the active player."""
        if state.active_player_id is None:
            return []
        return self.moves_for(state, state.active_player_id).to_actions()


def legal_moves(state: GameState, player_id: str) -> LegalMoves:
    """Convenience function for one player's legal moves."""
    return ActionGenerator().moves_for(state, player_id)


def legal_actions(state: GameState) -> list[Action]:
    """Convenience function to generate legal actions for the active player."""
    return ActionGenerator().generate(state)
