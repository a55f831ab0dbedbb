"""
Turn Sequencer - Decides which player acts next.

Opening round: players go in order_index order. After an ordinary action
the turn goes to the first player after the current one (wrapping) whose
has_completed_turn flag is still False. When nobody is left, the opening
round is over and the first player gets the decisive final turn.

Order is assigned once at game start, either join order or a uniform
Fisher-Yates shuffle, and never changes afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import random

from .state import GameState, PlayerState


@dataclass(frozen=True)
class TurnSequencer:
    """Stateless; all turn state lives in GameState."""

    def assign_order(
        self,
        players: list[PlayerState],
        randomize: bool,
        rng: random.Random,
    ) -> list[PlayerState]:
        """Return players renumbered 1..n in their playing order."""
        ordered = sorted(players, key=lambda p: p.order_index)
        if randomize:
            # Fisher-Yates
            for i in range(len(ordered) - 1, 0, -1):
                j = rng.randint(0, i)
                ordered[i], ordered[j] = ordered[j], ordered[i]
        return [
            replace(p, order_index=i + 1, has_completed_turn=False, current_gift_id=None)
            for i, p in enumerate(ordered)
        ]

    def first_in_order(self, state: GameState) -> str | None:
        ordered = state.players_in_order
        return ordered[0].player_id if ordered else None

    def waiting_after(
        self,
        state: GameState,
        after_order_index: int,
    ) -> list[PlayerState]:
        """
        Players who have not yet completed a turn, in the order they are
        due, starting just after after_order_index and wrapping around.
        """
        ordered = state.players_in_order
        if not ordered:
            return []
        start = 0
        for i, player in enumerate(ordered):
            if player.order_index > after_order_index:
                start = i
                break
        rotated = ordered[start:] + ordered[:start]
        return [p for p in rotated if not p.has_completed_turn]

    def next_player_id(
        self,
        state: GameState,
        after_order_index: int,
    ) -> str | None:
        """
        First player after after_order_index (wrapping) who has not yet
        completed a turn, or None if everyone has.
        """
        waiting = self.waiting_after(state, after_order_index)
        return waiting[0].player_id if waiting else None

    def round_complete(self, state: GameState) -> bool:
        return all(p.has_completed_turn for p in state.players)
