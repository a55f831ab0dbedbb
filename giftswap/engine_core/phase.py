"""
Session State Machine - The only code that changes GameState.phase.

    setup -> lobby -> active -> ended
                        ^  |
                        |  v
                       paused

is_final_round is a sub-state of ACTIVE and is also managed here.
"""

from __future__ import annotations
from dataclasses import dataclass
import random

from .state import GameState, GamePhase
from .errors import InvalidTransition, NotEnoughPlayers
from .sequencer import TurnSequencer


MIN_PLAYERS = 2

_TRANSITIONS: dict[GamePhase, frozenset[GamePhase]] = {
    GamePhase.SETUP: frozenset({GamePhase.LOBBY}),
    GamePhase.LOBBY: frozenset({GamePhase.ACTIVE}),
    GamePhase.ACTIVE: frozenset({GamePhase.PAUSED, GamePhase.ENDED}),
    GamePhase.PAUSED: frozenset({GamePhase.ACTIVE, GamePhase.ENDED}),
    GamePhase.ENDED: frozenset(),
}


@dataclass(frozen=True)
class SessionStateMachine:
    sequencer: TurnSequencer = TurnSequencer()

    def can_transition(self, current: GamePhase, target: GamePhase) -> bool:
        return target in _TRANSITIONS[current]

    def transition(self, state: GameState, target: GamePhase) -> GameState:
        if not self.can_transition(state.phase, target):
            raise InvalidTransition(
                f"Cannot go from {state.phase.value} to {target.value}",
                current=state.phase.value,
                target=target.value,
            )
        return state._copy_with(phase=target)

    def open_lobby(self, state: GameState) -> GameState:
        return self.transition(state, GamePhase.LOBBY)

    def start(self, state: GameState, rng: random.Random) -> GameState:
        """
        Start the game: fix the turn order and hand the first turn out.

        Precondition: at least two players.
        """
        if state.phase != GamePhase.LOBBY:
            # Report the phase problem before the player count
            self.transition(state, GamePhase.ACTIVE)
        if state.num_players < MIN_PLAYERS:
            raise NotEnoughPlayers(
                f"Need at least {MIN_PLAYERS} players to start",
                players=state.num_players,
            )
        players = self.sequencer.assign_order(
            state.players, state.config.randomize_order, rng
        )
        state = self.transition(state._copy_with(players=players), GamePhase.ACTIVE)
        first = self.sequencer.first_in_order(state)
        return state._copy_with(
            active_player_id=first,
            first_player_id=first,
            round_index=0,
            is_final_round=False,
        )

    def pause(self, state: GameState) -> GameState:
        return self.transition(state, GamePhase.PAUSED)

    def resume(self, state: GameState) -> GameState:
        return self.transition(state, GamePhase.ACTIVE)

    def begin_final_round(self, state: GameState) -> GameState:
        """Everyone has had an opening turn: the first player goes again."""
        return state._copy_with(
            is_final_round=True,
            round_index=state.round_index + 1,
            active_player_id=state.first_player_id,
        )

    def end(self, state: GameState) -> GameState:
        state = self.transition(state, GamePhase.ENDED)
        return state._copy_with(active_player_id=None, is_final_round=False)
