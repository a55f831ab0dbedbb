"""
Tests for the session state machine.
"""

import random

import pytest

from ..engine_core.errors import InvalidTransition, NotEnoughPlayers
from ..engine_core.phase import SessionStateMachine
from ..engine_core.state import GamePhase
from .builders import build_lobby, new_session


@pytest.fixture
def machine():
    return SessionStateMachine()


class TestTransitions:

    @pytest.mark.parametrize("current,target,allowed", [
        (GamePhase.SETUP, GamePhase.LOBBY, True),
        (GamePhase.SETUP, GamePhase.ACTIVE, False),
        (GamePhase.LOBBY, GamePhase.ACTIVE, True),
        (GamePhase.LOBBY, GamePhase.ENDED, False),
        (GamePhase.ACTIVE, GamePhase.PAUSED, True),
        (GamePhase.ACTIVE, GamePhase.ENDED, True),
        (GamePhase.PAUSED, GamePhase.ACTIVE, True),
        (GamePhase.PAUSED, GamePhase.ENDED, True),
        (GamePhase.ENDED, GamePhase.ACTIVE, False),
        (GamePhase.ENDED, GamePhase.LOBBY, False),
    ])
    def test_allowed_transitions(self, machine, current, target, allowed):
        assert machine.can_transition(current, target) is allowed

    def test_invalid_transition_raises(self, machine):
        with pytest.raises(InvalidTransition):
            machine.pause(new_session())


class TestStart:

    def test_start_sets_turn_state(self, machine):
        state = machine.start(build_lobby(3, 3), random.Random(0))

        assert state.phase == GamePhase.ACTIVE
        assert state.active_player_id == "p1"
        assert state.first_player_id == "p1"
        assert not state.is_final_round
        assert state.round_index == 0

    def test_start_needs_two_players(self, machine):
        with pytest.raises(NotEnoughPlayers):
            machine.start(build_lobby(1, 3), random.Random(0))

    def test_start_from_setup_is_a_phase_error(self, machine):
        with pytest.raises(InvalidTransition):
            machine.start(new_session(), random.Random(0))

    def test_shuffled_first_player_is_first_in_order(self, machine):
        state = build_lobby(5, 5, randomize_order=True)
        state = machine.start(state, random.Random(11))
        first = state.players_in_order[0]
        assert first.order_index == 1
        assert state.first_player_id == first.player_id
        assert state.active_player_id == first.player_id


def test_final_round_and_end(machine):
    state = machine.start(build_lobby(3, 3), random.Random(0))
    state = state._copy_with(active_player_id="p3")

    state = machine.begin_final_round(state)
    assert state.is_final_round
    assert state.active_player_id == "p1"
    assert state.round_index == 1

    state = machine.end(state)
    assert state.phase == GamePhase.ENDED
    assert state.active_player_id is None
    assert not state.is_final_round
