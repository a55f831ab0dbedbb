"""
Tests for the turn sequencer.
"""

import random
from dataclasses import replace

from ..engine_core.sequencer import TurnSequencer
from ..engine_core.state import PlayerState
from .builders import build_lobby


def _mark_done(state, *player_ids):
    for pid in player_ids:
        state = state.with_player(replace(state.get_player(pid), has_completed_turn=True))
    return state


class TestAssignOrder:

    def test_join_order_kept_without_shuffle(self):
        players = [
            PlayerState("b", "B", order_index=2),
            PlayerState("a", "A", order_index=1),
            PlayerState("c", "C", order_index=5),
        ]
        ordered = TurnSequencer().assign_order(players, randomize=False, rng=random.Random(0))

        assert [p.player_id for p in ordered] == ["a", "b", "c"]
        assert [p.order_index for p in ordered] == [1, 2, 3]

    def test_shuffle_is_a_permutation(self):
        players = [PlayerState(f"p{i}", f"P{i}", order_index=i) for i in range(1, 9)]
        ordered = TurnSequencer().assign_order(players, randomize=True, rng=random.Random(42))

        assert sorted(p.player_id for p in ordered) == sorted(p.player_id for p in players)
        assert [p.order_index for p in ordered] == list(range(1, 9))

    def test_shuffle_is_deterministic_per_seed(self):
        players = [PlayerState(f"p{i}", f"P{i}", order_index=i) for i in range(1, 9)]
        seq = TurnSequencer()
        first = seq.assign_order(players, True, random.Random(3))
        second = seq.assign_order(players, True, random.Random(3))
        assert [p.player_id for p in first] == [p.player_id for p in second]

    def test_shuffle_reaches_every_first_player(self):
        players = [PlayerState(f"p{i}", f"P{i}", order_index=i) for i in range(1, 4)]
        seq = TurnSequencer()
        firsts = {
            seq.assign_order(players, True, random.Random(seed))[0].player_id
            for seed in range(200)
        }
        assert firsts == {"p1", "p2", "p3"}

    def test_turn_flags_reset(self):
        players = [PlayerState("a", "A", order_index=1, has_completed_turn=True,
                               current_gift_id="g1")]
        ordered = TurnSequencer().assign_order(players, False, random.Random(0))
        assert not ordered[0].has_completed_turn
        assert ordered[0].current_gift_id is None


class TestNextPlayer:

    def test_next_after_current(self):
        state = _mark_done(build_lobby(4, 0), "p1")
        assert TurnSequencer().next_player_id(state, after_order_index=1) == "p2"

    def test_skips_players_who_went(self):
        state = _mark_done(build_lobby(4, 0), "p1", "p2")
        assert TurnSequencer().next_player_id(state, after_order_index=1) == "p3"

    def test_wraps_around(self):
        state = _mark_done(build_lobby(4, 0), "p3", "p4")
        assert TurnSequencer().next_player_id(state, after_order_index=4) == "p1"

    def test_includes_current_player_last(self):
        # A victim who got their turn back is found again after wrapping
        state = _mark_done(build_lobby(3, 0), "p2", "p3")
        assert TurnSequencer().next_player_id(state, after_order_index=1) == "p1"

    def test_none_when_everyone_went(self):
        state = _mark_done(build_lobby(3, 0), "p1", "p2", "p3")
        seq = TurnSequencer()
        assert seq.next_player_id(state, after_order_index=2) is None
        assert seq.round_complete(state)

    def test_gaps_in_order_after_removal(self):
        state = build_lobby(4, 0).without_player("p3")
        state = _mark_done(state, "p1", "p2")
        assert TurnSequencer().next_player_id(state, after_order_index=3) == "p4"

    def test_waiting_after_order(self):
        state = _mark_done(build_lobby(5, 0), "p3")
        waiting = TurnSequencer().waiting_after(state, after_order_index=3)
        assert [p.player_id for p in waiting] == ["p4", "p5", "p1", "p2"]
