"""
Tests for the reducer (state transitions).

Tests:
- Pick, steal and keep
- Turn passing, the final round and game end
- Lobby and host actions
- Validation leaves state untouched
"""

import pytest

from ..engine_core.action import Action
from ..engine_core.action_generator import legal_moves
from ..engine_core.errors import TurnAlreadyTaken
from ..engine_core.events import (
    FinalRoundStarted, GameEnded, GameStarted, GiftPicked, GiftStolen,
    PhaseChanged, PlayerRemoved, TurnChanged,
)
from ..engine_core.reducer import Reducer, apply_action
from ..engine_core.rules import require_turn
from ..engine_core.state import ActionKind, GamePhase, GameState, GiftStatus
from .builders import apply_err, apply_ok, build_lobby, build_started, new_session


def _events(state, action, kind):
    result = Reducer().apply(state, action)
    assert result.success, result.error
    return [e for e in result.events if isinstance(e, kind)]


class TestPickAction:

    def test_pick_reveals_and_assigns(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))

        gift = state.get_gift("g1")
        assert gift.status == GiftStatus.REVEALED
        assert gift.current_owner_id == "p1"
        assert gift.steal_count == 0

        p1 = state.get_player("p1")
        assert p1.current_gift_id == "g1"
        assert p1.has_completed_turn
        assert state.active_player_id == "p2"

    def test_pick_appends_action_and_bumps_version(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))

        assert state.version == active_state.version + 1
        assert len(state.actions) == 1
        record = state.actions[0]
        assert record.action_type == ActionKind.PICK
        assert record.player_id == "p1"
        assert record.gift_id == "g1"
        assert record.previous_owner_id is None
        assert record.sequence == 1

    def test_pick_emits_events(self, active_state):
        result = apply_action(active_state, Action.pick("p1", "g1"))

        picked = [e for e in result.events if isinstance(e, GiftPicked)]
        turns = [e for e in result.events if isinstance(e, TurnChanged)]
        assert picked[0].gift_id == "g1"
        assert turns[0].player_id == "p2"
        assert turns[0].previous_player_id == "p1"

    def test_pick_wrong_player_fails(self, active_state):
        assert apply_err(active_state, Action.pick("p2", "g1")) == "NOT_YOUR_TURN"

    def test_pick_opened_gift_fails(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        assert apply_err(state, Action.pick("p2", "g1")) == "GIFT_NOT_HIDDEN"

    def test_pick_unknown_gift_fails(self, active_state):
        assert apply_err(active_state, Action.pick("p1", "nope")) == "GIFT_NOT_FOUND"

    def test_pick_unknown_player_fails(self, active_state):
        assert apply_err(active_state, Action.pick("ghost", "g1")) == "PLAYER_NOT_FOUND"

    def test_pick_before_start_fails(self, lobby_state):
        assert apply_err(lobby_state, Action.pick("p1", "g1")) == "WRONG_PHASE"

    def test_failure_leaves_state_untouched(self, active_state):
        before = active_state.to_dict()
        result = apply_action(active_state, Action.pick("p2", "g1"))

        assert not result.success
        assert result.new_state is None
        assert result.exception is not None
        assert active_state.to_dict() == before

    def test_turn_already_taken(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        # Force the turn back to a player who already went
        state = state._copy_with(active_player_id="p1")
        with pytest.raises(TurnAlreadyTaken):
            require_turn(state, "p1")


class TestStealAction:

    def test_steal_moves_gift_and_passes_turn_to_victim(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))

        gift = state.get_gift("g1")
        assert gift.current_owner_id == "p2"
        assert gift.steal_count == 1
        assert gift.status == GiftStatus.REVEALED

        victim = state.get_player("p1")
        assert victim.current_gift_id is None
        assert not victim.has_completed_turn
        assert state.get_player("p2").has_completed_turn
        assert state.active_player_id == "p1"

    def test_steal_records_previous_owner(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))

        record = state.actions[-1]
        assert record.action_type == ActionKind.STEAL
        assert record.previous_owner_id == "p1"
        assert record.sequence == 2

    def test_steal_event(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        stolen = _events(state, Action.steal("p2", "g1"), GiftStolen)[0]

        assert stolen.victim_id == "p1"
        assert stolen.steal_count == 1
        assert stolen.steals_remaining == 1
        assert not stolen.is_locked

    def test_steal_hidden_gift_fails(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        assert apply_err(state, Action.steal("p2", "g2")) == "GIFT_NOT_STEALABLE"

    def test_steal_own_gift_fails(self):
        state = build_started(2, 2)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))

        assert state.is_final_round
        assert apply_err(state, Action.steal("p1", "g1")) == "CANNOT_STEAL_OWN_GIFT"


class TestScenarioOneGiftTwoPlayers:
    """Two players, one gift: pick, forced steal, final round, keep."""

    def test_full_game(self):
        state = build_started(2, 1)
        assert state.active_player_id == "p1"

        state = apply_ok(state, Action.pick("p1", "g1"))
        assert state.get_gift("g1").current_owner_id == "p1"
        assert state.get_player("p1").has_completed_turn
        assert state.active_player_id == "p2"

        assert apply_err(state, Action.pick("p2", "g1")) == "GIFT_NOT_HIDDEN"

        result = apply_action(state, Action.steal("p2", "g1"))
        assert result.success
        state = result.new_state
        gift = state.get_gift("g1")
        assert gift.current_owner_id == "p2"
        assert gift.steal_count == 1

        # p1 cannot take it straight back, so the final round starts with p1
        assert state.is_final_round
        assert state.active_player_id == "p1"
        assert any(isinstance(e, FinalRoundStarted) for e in result.events)

        state = apply_ok(state, Action.keep("p1"))
        assert state.phase == GamePhase.ENDED
        assert state.active_player_id is None
        assert state.get_gift("g1").current_owner_id == "p2"


class TestScenarioStealLimit:
    """A gift stolen max_steals_per_gift times is locked for good."""

    @pytest.fixture
    def locked_state(self):
        state = build_started(4, 4, max_steals_per_gift=2)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))
        state = apply_ok(state, Action.pick("p1", "g2"))
        assert state.active_player_id == "p3"
        state = apply_ok(state, Action.steal("p3", "g1"))
        return state

    def test_second_steal_locks(self, locked_state):
        gift = locked_state.get_gift("g1")
        assert gift.steal_count == 2
        assert gift.status == GiftStatus.LOCKED
        assert gift.current_owner_id == "p3"
        assert locked_state.active_player_id == "p2"

    def test_third_steal_fails(self, locked_state):
        assert apply_err(locked_state, Action.steal("p2", "g1")) == "GIFT_LOCKED"

    def test_locked_for_any_actor(self, locked_state):
        state = locked_state._copy_with(active_player_id="p4")
        assert apply_err(state, Action.steal("p4", "g1")) == "GIFT_LOCKED"

    def test_locked_gift_not_offered(self, locked_state):
        moves = legal_moves(locked_state, "p2")
        assert "g1" not in moves.stealable
        assert moves.stealable == ["g2"]
        assert moves.pickable == ["g3", "g4"]

    def test_lock_reported_on_event(self):
        state = build_started(3, 3, max_steals_per_gift=1)
        state = apply_ok(state, Action.pick("p1", "g1"))
        stolen = _events(state, Action.steal("p2", "g1"), GiftStolen)[0]
        assert stolen.is_locked
        assert stolen.steals_remaining == 0


class TestScenarioStealBack:

    def test_immediate_steal_back_forbidden(self):
        state = build_started(3, 3)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))
        assert state.active_player_id == "p1"

        assert apply_err(state, Action.steal("p1", "g1")) == "STEAL_BACK_FORBIDDEN"

        state = apply_ok(state, Action.pick("p1", "g2"))
        assert state.get_gift("g2").current_owner_id == "p1"
        assert state.active_player_id == "p3"

    def test_steal_back_allowed_when_configured(self):
        state = build_started(3, 3, allow_immediate_stealback=True)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))
        state = apply_ok(state, Action.steal("p1", "g1"))

        assert state.get_gift("g1").current_owner_id == "p1"
        assert state.active_player_id == "p2"

    def test_only_latest_steal_counts(self):
        state = build_started(3, 3, max_steals_per_gift=3)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))   # from p1
        state = apply_ok(state, Action.pick("p1", "g2"))
        state = apply_ok(state, Action.steal("p3", "g1"))   # from p2
        assert apply_err(state, Action.steal("p2", "g1")) == "STEAL_BACK_FORBIDDEN"
        state = apply_ok(state, Action.pick("p2", "g3"))

        assert state.is_final_round
        assert state.active_player_id == "p1"
        # p1 lost g1 earlier, but the latest steal took it from p2
        state = apply_ok(state, Action.steal("p1", "g1"))
        assert state.get_gift("g1").current_owner_id == "p1"


class TestFinalRound:

    @pytest.fixture
    def final_state(self):
        state = build_started(3, 4)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        result = apply_action(state, Action.pick("p3", "g3"))
        assert any(isinstance(e, FinalRoundStarted) for e in result.events)
        return result.new_state

    def test_first_player_gets_final_turn(self, final_state):
        assert final_state.is_final_round
        assert final_state.active_player_id == "p1"
        assert final_state.round_index == 1

    def test_keep_ends_game(self, final_state):
        result = apply_action(final_state, Action.keep("p1"))
        assert result.new_state.phase == GamePhase.ENDED
        ended = [e for e in result.events if isinstance(e, GameEnded)]
        assert ended[0].reason == "kept"

    def test_pick_ends_game(self, final_state):
        result = apply_action(final_state, Action.pick("p1", "g4"))
        state = result.new_state

        assert state.phase == GamePhase.ENDED
        assert state.get_gift("g4").current_owner_id == "p1"
        assert state.get_player("p1").current_gift_id == "g4"
        released = state.get_gift("g1")
        assert released.current_owner_id is None
        assert released.status == GiftStatus.REVEALED
        picked = [e for e in result.events if isinstance(e, GiftPicked)][0]
        assert picked.released_gift_id == "g1"

    def test_steal_swaps_and_chains(self, final_state):
        state = apply_ok(final_state, Action.steal("p1", "g2"))

        assert state.phase == GamePhase.ACTIVE
        assert state.get_gift("g2").current_owner_id == "p1"
        assert state.get_gift("g1").current_owner_id == "p2"
        assert state.get_player("p2").current_gift_id == "g1"
        assert state.active_player_id == "p2"
        assert state.is_final_round

        # Chain continues with the victim, who may keep what they were handed
        state = apply_ok(state, Action.keep("p2"))
        assert state.phase == GamePhase.ENDED

    def test_swapped_gift_keeps_its_steal_count(self, final_state):
        state = apply_ok(final_state, Action.steal("p1", "g2"))
        assert state.get_gift("g1").steal_count == 0
        assert state.get_gift("g2").steal_count == 1

    def test_keep_before_final_round_fails(self, active_state):
        assert apply_err(active_state, Action.keep("p1")) == "NOT_FINAL_ROUND"

    def test_keep_by_other_player_fails(self, final_state):
        assert apply_err(final_state, Action.keep("p2")) == "NOT_YOUR_TURN"

    def test_locked_holder_can_only_keep(self):
        state = build_started(3, 3, max_steals_per_gift=1)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        state = apply_ok(state, Action.steal("p3", "g1"))
        state = apply_ok(state, Action.steal("p1", "g2"))   # locks g2 on p1
        state = apply_ok(state, Action.pick("p2", "g3"))
        assert state.is_final_round
        assert state.active_player_id == "p1"
        assert state.get_gift("g2").is_locked

        assert apply_err(state, Action.steal("p1", "g3")) == "GIFT_LOCKED"
        moves = legal_moves(state, "p1")
        assert moves.pickable == [] and moves.stealable == []
        assert moves.can_keep

    def test_full_chain_example(self):
        state = build_started(3, 3, max_steals_per_gift=3)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))
        state = apply_ok(state, Action.pick("p1", "g2"))
        state = apply_ok(state, Action.steal("p3", "g1"))
        state = apply_ok(state, Action.pick("p2", "g3"))
        state = apply_ok(state, Action.steal("p1", "g1"))

        assert state.get_gift("g1").is_locked
        assert state.get_gift("g2").current_owner_id == "p3"
        assert state.active_player_id == "p3"

        state = apply_ok(state, Action.keep("p3"))
        owners = {g.gift_id: g.current_owner_id for g in state.gifts}
        assert owners == {"g1": "p1", "g2": "p3", "g3": "p2"}


class TestPassingOver:
    """A player with nothing to pick or steal is skipped."""

    def test_victim_without_moves_is_skipped(self):
        state = build_started(3, 1)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))

        # p1 cannot steal back and nothing is hidden; p3 is still owed a turn
        assert not state.is_final_round
        assert state.active_player_id == "p3"
        assert state.get_player("p1").current_gift_id is None
        assert not state.get_player("p1").has_completed_turn

    def test_everyone_stuck_starts_final_round(self):
        state = build_started(3, 1)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.steal("p2", "g1"))
        state = apply_ok(state, Action.steal("p3", "g1"))

        assert state.get_gift("g1").is_locked
        assert state.is_final_round
        assert state.active_player_id == "p1"
        assert legal_moves(state, "p1").can_keep

    def test_no_gifts_goes_straight_to_final_round(self):
        state = build_started(2, 0)
        assert state.is_final_round
        assert state.active_player_id == "p1"
        state = apply_ok(state, Action.keep("p1"))
        assert state.phase == GamePhase.ENDED


class TestRemovePlayer:

    def test_remove_active_player_advances(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        assert state.active_player_id == "p2"

        result = apply_action(state, Action.remove_player("p1", "p2"))
        state = result.new_state

        assert state.get_player("p2") is None
        assert state.active_player_id == "p3"
        assert any(isinstance(e, PlayerRemoved) for e in result.events)

    def test_remove_releases_gift(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        state = apply_ok(state, Action.remove_player("p1", "p2"))

        gift = state.get_gift("g2")
        assert gift.current_owner_id is None
        assert gift.status == GiftStatus.REVEALED
        assert state.active_player_id == "p3"

    def test_remove_active_gift_holder_in_final_round(self):
        state = build_started(3, 3)
        state = apply_ok(state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        state = apply_ok(state, Action.pick("p3", "g3"))
        state = apply_ok(state, Action.steal("p1", "g2"))
        assert state.active_player_id == "p2"
        assert state.get_gift("g1").current_owner_id == "p2"

        state = apply_ok(state, Action.remove_player("p1", "p2"))

        released = state.get_gift("g1")
        assert released.current_owner_id is None
        assert released.status == GiftStatus.REVEALED
        assert state.active_player_id == "p1"

    def test_remove_last_waiting_player_starts_final_round(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        state = apply_ok(state, Action.remove_player("p1", "p3"))

        assert state.is_final_round
        assert state.active_player_id == "p1"

    def test_remove_while_paused(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pause("p1"))
        state = apply_ok(state, Action.remove_player("p1", "p2"))

        assert state.phase == GamePhase.PAUSED
        assert state.active_player_id == "p3"

    def test_released_gift_can_be_claimed(self, active_state):
        state = apply_ok(active_state, Action.pick("p1", "g1"))
        state = apply_ok(state, Action.pick("p2", "g2"))
        state = apply_ok(state, Action.remove_player("p1", "p2"))

        state = apply_ok(state, Action.steal("p3", "g2"))
        assert state.get_gift("g2").current_owner_id == "p3"
        assert state.actions[-1].previous_owner_id is None
        assert state.is_final_round
        assert state.active_player_id == "p1"

    def test_cannot_remove_host(self, active_state):
        assert apply_err(active_state, Action.remove_player("p1", "p1")) == "CANNOT_REMOVE_ADMIN"

    def test_only_host_removes(self, active_state):
        assert apply_err(active_state, Action.remove_player("p2", "p3")) == "NOT_ADMIN"

    def test_remove_in_lobby(self, lobby_state):
        state = apply_ok(lobby_state, Action.remove_player("p1", "p3"))
        assert [p.player_id for p in state.players_in_order] == ["p1", "p2"]


class TestLobby:

    def test_join_assigns_next_order_index(self, lobby_state):
        state = apply_ok(lobby_state, Action.join("p9", "Zed"))
        player = state.get_player("p9")

        assert player.order_index == 4
        assert not player.is_admin
        assert player.avatar_seed

    def test_join_outside_lobby_fails(self, setup_state, active_state):
        assert apply_err(setup_state, Action.join("px", "X")) == "JOIN_CLOSED"
        assert apply_err(active_state, Action.join("px", "X")) == "JOIN_CLOSED"

    def test_duplicate_name_rejected(self, lobby_state):
        assert apply_err(lobby_state, Action.join("px", "p2")) == "DUPLICATE_PLAYER_NAME"

    def test_blank_name_rejected(self, lobby_state):
        assert apply_err(lobby_state, Action.join("px", "   ")) == "INVALID_ACTION"

    def test_exactly_one_admin(self, lobby_state):
        assert [p.player_id for p in lobby_state.players if p.is_admin] == ["p1"]


class TestHostActions:

    def test_start_events(self, lobby_state):
        result = apply_action(lobby_state, Action.start_game("p1", 7))

        kinds = [type(e) for e in result.events]
        assert GameStarted in kinds
        assert PhaseChanged in kinds
        assert TurnChanged in kinds
        started = [e for e in result.events if isinstance(e, GameStarted)][0]
        assert started.turn_order == ("p1", "p2", "p3")
        assert result.new_state.random_seed == 7

    def test_start_requires_host(self, lobby_state):
        assert apply_err(lobby_state, Action.start_game("p2")) == "NOT_ADMIN"

    def test_start_requires_two_players(self):
        assert apply_err(build_lobby(1, 1), Action.start_game("p1")) == "NOT_ENOUGH_PLAYERS"

    def test_start_twice_fails(self, active_state):
        assert apply_err(active_state, Action.start_game("p1")) == "INVALID_TRANSITION"

    def test_shuffled_start_is_reproducible(self):
        lobby = build_lobby(6, 6, randomize_order=True)
        a = apply_ok(lobby, Action.start_game("p1", 99))
        b = apply_ok(lobby, Action.start_game("p1", 99))
        assert [p.player_id for p in a.players_in_order] == [p.player_id for p in b.players_in_order]
        assert a.active_player_id == a.players_in_order[0].player_id

    def test_pause_blocks_turns(self, active_state):
        state = apply_ok(active_state, Action.pause("p1"))
        assert state.phase == GamePhase.PAUSED
        assert apply_err(state, Action.pick("p1", "g1")) == "WRONG_PHASE"

        state = apply_ok(state, Action.resume("p1"))
        state = apply_ok(state, Action.pick("p1", "g1"))
        assert state.active_player_id == "p2"

    def test_end_by_host(self, active_state):
        result = apply_action(active_state, Action.end_game("p1"))
        state = result.new_state

        assert state.phase == GamePhase.ENDED
        assert state.active_player_id is None
        assert [e.reason for e in result.events if isinstance(e, GameEnded)] == ["ended_by_host"]
        assert apply_err(state, Action.end_game("p1")) == "INVALID_TRANSITION"
        assert apply_err(state, Action.pick("p1", "g1")) == "WRONG_PHASE"

    def test_gift_catalog_edits(self, setup_state):
        state = apply_ok(setup_state, Action.add_gifts("p1", [
            {"gift_id": "a", "name": "Mug"},
            {"gift_id": "b", "name": "Scarf", "link": "https://example.com/scarf"},
        ]))
        assert [g.position for g in state.gifts_in_order] == [1, 2]
        assert all(g.is_hidden and g.steal_count == 0 for g in state.gifts)

        state = apply_ok(state, Action.update_gift("p1", "a", {"name": "Big Mug"}))
        assert state.get_gift("a").name == "Big Mug"
        assert apply_err(state, Action.update_gift("p1", "a", {"status": "locked"})) == "INVALID_ACTION"

        state = apply_ok(state, Action.remove_gift("p1", "b"))
        assert state.get_gift("b") is None

    def test_gifts_frozen_once_started(self, active_state):
        action = Action.add_gifts("p1", [{"gift_id": "x", "name": "Late"}])
        assert apply_err(active_state, action) == "WRONG_PHASE"
        assert apply_err(active_state, Action.remove_gift("p1", "g1")) == "WRONG_PHASE"

    def test_update_config(self, lobby_state):
        state = apply_ok(lobby_state, Action.update_config("p1", {"max_steals_per_gift": 3}))
        assert state.config.max_steals_per_gift == 3
        assert not state.config.randomize_order

        assert apply_err(state, Action.update_config("p1", {"max_steals_per_gift": 0})) == "INVALID_CONFIG"
        assert apply_err(state, Action.update_config("p1", {"bogus": 1})) == "INVALID_CONFIG"
        assert apply_err(state, Action.update_config("p1", {"max_steals_per_gift": "3"})) == "INVALID_CONFIG"
        assert apply_err(state, Action.update_config("p1", {"turn_timer_enabled": 1})) == "INVALID_CONFIG"
        assert apply_err(state, Action.update_config("p2", {"randomize_order": True})) == "NOT_ADMIN"

    def test_config_frozen_once_started(self, active_state):
        action = Action.update_config("p1", {"max_steals_per_gift": 5})
        assert apply_err(active_state, action) == "WRONG_PHASE"


class TestTurnTimer:

    def test_deadline_follows_turn(self):
        lobby = build_lobby(2, 2, turn_timer_enabled=True, turn_timer_seconds=30)
        start = Action.start_game("p1", 1)
        start.timestamp = 100.0
        state = apply_ok(lobby, start)

        assert state.turn_started_at == 100.0
        assert state.turn_deadline == 130.0

        pick = Action.pick("p1", "g1")
        pick.timestamp = 150.0
        state = apply_ok(state, pick)
        assert state.turn_started_at == 150.0
        assert state.turn_deadline == 180.0

    def test_no_deadline_when_disabled(self, active_state):
        assert active_state.turn_deadline is None


def test_state_serializes_mid_game(active_state):
    state = apply_ok(active_state, Action.pick("p1", "g1"))
    state = apply_ok(state, Action.steal("p2", "g1"))

    assert GameState.from_dict(state.to_dict()) == state


def test_versions_increase_by_one():
    state = new_session()
    versions = [state.version]
    for action in (
        Action.add_gifts("p1", [{"gift_id": "g1", "name": "Gift"}]),
        Action.open_lobby("p1"),
        Action.join("p2", "P2"),
        Action.start_game("p1", 1),
        Action.pick("p1", "g1"),
    ):
        state = apply_ok(state, action)
        versions.append(state.version)
    assert versions == [0, 1, 2, 3, 4, 5]
