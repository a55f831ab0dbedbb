"""
Tests for the session manager and the client-side session view.

Tests:
- Session creation, code allocation and joining
- Full game through the manager
- Transient store failures: fixed retries with a fixed delay
- Commit races: reload and re-validate
- Idempotent notification handling in SessionView
"""

import random

import pytest

from ..engine_core.errors import (
    ConflictError, DuplicatePlayerName, InvalidAction, InvalidConfig, JoinClosed, NotYourTurn,
    SessionNotFound, TransientStoreError,
)
from ..engine_core.state import GameConfig, GamePhase, GameState
from ..session import SessionManager, SessionView, generate_session_code
from ..store import InMemoryLedgerStore


class FlakyStore(InMemoryLedgerStore):
    """Fails the next N commits with a transient error."""

    def __init__(self):
        super().__init__()
        self.commit_failures = 0
        self.commit_calls = 0

    def commit(self, new_state, expected_version, events=None):
        self.commit_calls += 1
        if self.commit_failures:
            self.commit_failures -= 1
            raise TransientStoreError("store timed out")
        return super().commit(new_state, expected_version, events)


class RacingStore(InMemoryLedgerStore):
    """Runs another writer just before the next commit."""

    def __init__(self):
        super().__init__()
        self.interloper = None
        self.commit_calls = 0

    def commit(self, new_state, expected_version, events=None):
        self.commit_calls += 1
        if self.interloper is not None:
            interloper, self.interloper = self.interloper, None
            interloper()
        return super().commit(new_state, expected_version, events)


class AlwaysConflictStore(InMemoryLedgerStore):

    def __init__(self):
        super().__init__()
        self.commit_calls = 0

    def commit(self, new_state, expected_version, events=None):
        self.commit_calls += 1
        raise ConflictError("someone else wrote first")


def make_manager(store, settings, sleeps):
    return SessionManager(store=store, settings=settings, sleep=sleeps.append,
                          rng=random.Random(99))


def started_game(manager, num_players=3, num_gifts=3):
    """Host plus joined players, game started in join order."""
    state = manager.create_session("Host")
    admin_id = state.admin.player_id
    _, gift_ids = manager.add_gifts(
        state.session_id, admin_id,
        [{"name": f"Gift {i}"} for i in range(1, num_gifts + 1)],
    )
    manager.open_lobby(state.session_id, admin_id)
    player_ids = [admin_id]
    for i in range(2, num_players + 1):
        _, player_id = manager.join_session(state.session_code, f"Player {i}")
        player_ids.append(player_id)
    manager.start_game(state.session_id, admin_id, seed=1)
    return state.session_id, player_ids, gift_ids


# =============================================================================
# Sessions
# =============================================================================

class TestCreateAndJoin:

    def test_create_session(self, manager, store):
        state = manager.create_session("Host")

        assert state.phase == GamePhase.SETUP
        assert len(state.session_code) == 8
        assert state.admin.display_name == "Host"
        assert store.load(state.session_id) == state

    def test_create_with_config(self, manager):
        state = manager.create_session("Host", config={"max_steals_per_gift": 3})
        assert state.config.max_steals_per_gift == 3
        assert state.config.randomize_order is False  # from settings

    def test_create_rejects_mistyped_config(self, manager, store):
        with pytest.raises(InvalidConfig):
            manager.create_session("Host", config={"max_steals_per_gift": "3"})
        with pytest.raises(InvalidConfig):
            manager.create_session("Host", config={"randomize_order": "yes"})
        assert store.list_sessions() == []

    def test_create_requires_name(self, manager):
        with pytest.raises(InvalidAction):
            manager.create_session("   ")

    def test_code_collision_is_retried(self, store, settings, sleeps):
        taken = generate_session_code(random.Random(99))
        store.create(GameState.create(
            session_id="existing", session_code=taken, admin_id="a", admin_name="A",
        ))

        state = make_manager(store, settings, sleeps).create_session("Host")

        assert state.session_code != taken
        assert len(store.list_sessions()) == 2

    def test_gives_up_on_codes(self, settings, sleeps):
        class NoRoom(InMemoryLedgerStore):
            def create(self, state):
                raise ConflictError("code taken")

        with pytest.raises(ConflictError):
            make_manager(NoRoom(), settings, sleeps).create_session("Host")

    def test_join_by_code(self, manager):
        state = manager.create_session("Host")
        manager.open_lobby(state.session_id, state.admin.player_id)

        joined, player_id = manager.join_session(state.session_code.lower(), "Bob", "seed-b")

        bob = joined.get_player(player_id)
        assert bob.display_name == "Bob"
        assert bob.avatar_seed == "seed-b"
        assert bob.order_index == 2

    def test_join_rejections(self, manager):
        state = manager.create_session("Host")
        with pytest.raises(JoinClosed):
            manager.join_session(state.session_code, "Bob")

        manager.open_lobby(state.session_id, state.admin.player_id)
        with pytest.raises(DuplicatePlayerName):
            manager.join_session(state.session_code, "host")
        with pytest.raises(SessionNotFound):
            manager.join_session("NOPE2345", "Bob")

    def test_rejected_action_writes_nothing(self, manager, store):
        state = manager.create_session("Host")
        with pytest.raises(JoinClosed):
            manager.join_session(state.session_code, "Bob")
        assert store.load(state.session_id).version == state.version


class TestGameThroughManager:

    def test_full_game(self, manager):
        session_id, (p1, p2, p3), (g1, g2, g3) = started_game(manager)

        manager.pick_gift(session_id, p1, g1)
        manager.steal_gift(session_id, p2, g1)          # p1 goes again
        manager.pick_gift(session_id, p1, g2)
        manager.pick_gift(session_id, p3, g3)           # final round, p1 to play
        state = manager.get_session(session_id)
        assert state.is_final_round
        assert state.active_player_id == p1

        result = manager.keep_gift(session_id, p1)

        assert result.new_state.phase == GamePhase.ENDED
        assert [r.gift_id for r in manager.history(session_id)] == [g1, g1, g2, g3]

    def test_legal_moves(self, manager):
        session_id, (p1, p2, _), (g1, g2, g3) = started_game(manager)

        assert sorted(manager.legal_moves(session_id, p1).pickable) == sorted([g1, g2, g3])
        assert not manager.legal_moves(session_id, p2).has_any

    def test_start_seed_defaults_from_rng(self, manager):
        state = manager.create_session("Host")
        admin = state.admin.player_id
        manager.open_lobby(state.session_id, admin)
        manager.join_session(state.session_code, "Bob")

        result = manager.start_game(state.session_id, admin)

        assert result.new_state.random_seed is not None

    def test_add_gift_returns_id(self, manager):
        state = manager.create_session("Host")
        result, gift_id = manager.add_gift(
            state.session_id, state.admin.player_id, "Mug", link="https://example.com/mug",
        )
        assert result.new_state.get_gift(gift_id).name == "Mug"


# =============================================================================
# Store failures
# =============================================================================

class TestTransientFailures:

    def test_retried_with_fixed_delay(self, settings, sleeps):
        store = FlakyStore()
        manager = make_manager(store, settings, sleeps)
        state = manager.create_session("Host")

        store.commit_failures = 2
        result = manager.open_lobby(state.session_id, state.admin.player_id)

        assert result.new_state.phase == GamePhase.LOBBY
        assert store.commit_calls == 3
        assert sleeps == [1.0, 1.0]

    def test_surfaces_after_retries(self, settings, sleeps):
        store = FlakyStore()
        manager = make_manager(store, settings, sleeps)
        state = manager.create_session("Host")

        store.commit_failures = 3
        with pytest.raises(TransientStoreError):
            manager.open_lobby(state.session_id, state.admin.player_id)

        assert store.commit_calls == 3
        assert sleeps == [1.0, 1.0]
        assert store.load(state.session_id).phase == GamePhase.SETUP


class TestCommitRaces:

    def test_loser_sees_real_reason(self, settings, sleeps):
        store = RacingStore()
        manager = make_manager(store, settings, sleeps)
        session_id, (p1, p2, p3), (g1, g2, g3) = started_game(manager)
        manager.pick_gift(session_id, p1, g1)

        # A second request from p2 lands first
        store.interloper = lambda: manager.pick_gift(session_id, p2, g2)
        with pytest.raises(NotYourTurn):
            manager.pick_gift(session_id, p2, g3)

        state = manager.get_session(session_id)
        assert state.get_player(p2).current_gift_id == g2
        assert state.get_gift(g3).is_hidden
        assert state.active_player_id == p3

    def test_gift_taken_by_race_winner(self, settings, sleeps):
        store = RacingStore()
        manager = make_manager(store, settings, sleeps)
        session_id, (p1, p2, _), (g1, _, _) = started_game(manager)
        manager.pick_gift(session_id, p1, g1)

        store.interloper = lambda: manager.steal_gift(session_id, p2, g1)
        with pytest.raises(NotYourTurn):
            manager.steal_gift(session_id, p2, g1)

        assert manager.get_session(session_id).get_gift(g1).steal_count == 1

    def test_gives_up_after_repeated_conflicts(self, settings, sleeps):
        store = AlwaysConflictStore()
        manager = make_manager(store, settings, sleeps)
        state = manager.create_session("Host")

        with pytest.raises(ConflictError):
            manager.open_lobby(state.session_id, state.admin.player_id)

        assert store.commit_calls == settings.conflict_retry_attempts + 1
        assert sleeps == []


# =============================================================================
# Session view
# =============================================================================

class TestSessionView:

    def test_follows_commits(self, manager):
        state = manager.create_session("Host")
        view = SessionView(state.session_id, state)
        subscription = manager.subscribe(state.session_id)

        manager.open_lobby(state.session_id, state.admin.player_id)
        manager.join_session(state.session_code, "Bob")

        assert view.catch_up(subscription) == 2
        assert view.state == manager.get_session(state.session_id)
        assert [e["event_type"] for e in view.events] == ["phase_changed", "player_joined"]

    def test_duplicates_and_stale_notifications_ignored(self, manager):
        state = manager.create_session("Host")
        subscription = manager.subscribe(state.session_id)
        manager.open_lobby(state.session_id, state.admin.player_id)
        manager.join_session(state.session_code, "Bob")
        first, second = subscription.drain()

        view = SessionView(state.session_id)
        assert view.apply(second)
        assert not view.apply(second)
        assert not view.apply(first)
        assert view.version == second.version
        assert view.state.num_players == 2

    def test_foreign_session_ignored(self, manager):
        state = manager.create_session("Host")
        other = manager.create_session("Other")
        subscription = manager.subscribe(other.session_id)
        manager.open_lobby(other.session_id, other.admin.player_id)

        view = SessionView(state.session_id, state)
        [notification] = subscription.drain()
        assert not view.apply(notification)
        assert view.state == state
