"""
Session Manager - Creates sessions and runs actions against the store.

LIFECYCLE:
1. Host creates a session -> unique code, host joins as the admin player
2. Host adds gifts and tunes the config (setup / lobby)
3. Host opens the lobby, players join with the code
4. Host starts the game -> turn order fixed, first player active
5. Players pick / steal / keep until the game ends

EVERY ACTION:
- load the authoritative state from the store
- validate and apply it with the reducer (pure)
- commit the new state against the version it was computed from
- the store publishes a change notification to subscribers

CONCURRENCY:
- Losing a commit race (ConflictError) reloads and re-validates, so the
  caller sees the real reason (gift already taken, no longer their turn)
- Transient store failures are retried a fixed number of times with a
  fixed delay, then surfaced
"""

from __future__ import annotations
from typing import Any, Callable, TypeVar
import logging
import random
import time
import uuid

from ..config import Settings, get_settings
from ..engine_core.action import Action, ActionResult
from ..engine_core.action_generator import LegalMoves, legal_moves
from ..engine_core.errors import (
    ConflictError, InvalidAction, TransientStoreError,
)
from ..engine_core.history import ActionHistory
from ..engine_core.reducer import Reducer
from ..engine_core.state import (
    ActionRecord, GameState, SESSION_CODE_ALPHABET, SESSION_CODE_LENGTH,
)
from ..store import InMemoryLedgerStore, LedgerStore, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


def generate_session_code(rng: random.Random) -> str:
    """Random join code, avoiding look-alike characters (no I, O, 0, 1)."""
    return "".join(rng.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))


class SessionManager:
    """
    Entry point for every session operation.

    Responsibilities:
    - Create sessions and allocate join codes
    - Stamp, apply and commit actions
    - Retry transient store failures and re-validate after conflicts
    - Hand out change-stream subscriptions
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        settings: Settings | None = None,
        reducer: Reducer | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or InMemoryLedgerStore()
        self.reducer = reducer or Reducer()
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.SystemRandom()

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(
        self,
        admin_name: str,
        config: dict[str, Any] | None = None,
        admin_avatar_seed: str | None = None,
    ) -> GameState:
        """
        Create a session in SETUP with the host as its admin player.

        Args:
            admin_name: Display name of the host
            config: Optional partial game config overriding the defaults
            admin_avatar_seed: Optional avatar seed for the host

        Returns:
            The stored initial state
        """
        admin_name = (admin_name or "").strip()
        if not admin_name:
            raise InvalidAction("Display name is required")
        game_config = self.settings.default_game_config()
        if config:
            game_config = game_config.merged(config)

        for attempt in range(self.settings.session_code_attempts):
            state = GameState.create(
                session_id=str(uuid.uuid4()),
                session_code=generate_session_code(self._rng),
                admin_id=str(uuid.uuid4()),
                admin_name=admin_name,
                config=game_config,
                created_at=self._clock(),
                admin_avatar_seed=admin_avatar_seed,
            )
            try:
                self._with_retries("create", lambda: self.store.create(state))
            except ConflictError:
                logger.warning(
                    "Session code %s already in use (attempt %d)",
                    state.session_code, attempt + 1,
                )
                continue
            logger.info("Created session %s with code %s", state.session_id, state.session_code)
            return state

        raise ConflictError(
            "Could not allocate a unique session code",
            attempts=self.settings.session_code_attempts,
        )

    def get_session(self, session_id: str) -> GameState:
        return self._with_retries("load", lambda: self.store.load(session_id))

    def find_by_code(self, session_code: str) -> GameState:
        return self._with_retries("lookup", lambda: self.store.find_by_code(session_code))

    def list_sessions(self) -> list[str]:
        return self._with_retries("list", self.store.list_sessions)

    def subscribe(self, session_id: str) -> Subscription:
        """Stream of change notifications for one session."""
        return self.store.bus.subscribe(session_id)

    # =========================================================================
    # Action pipeline
    # =========================================================================

    def dispatch(self, session_id: str, action: Action) -> ActionResult:
        """
        Validate, apply and commit one action.

        Raises the typed engine error when the action is rejected; nothing
        is written in that case.
        """
        if action.action_id is None:
            action.action_id = str(uuid.uuid4())
        if action.timestamp is None:
            action.timestamp = self._clock()

        conflicts = 0
        while True:
            state = self.get_session(session_id)
            result = self.reducer.apply(state, action)
            if not result.success:
                logger.info(
                    "Rejected %s in session %s: %s",
                    action.action_type.value, session_id, result.error_code,
                )
                result.raise_for_error()

            try:
                self._with_retries(
                    "commit",
                    lambda: self.store.commit(result.new_state, state.version, result.events),
                )
            except ConflictError:
                conflicts += 1
                if conflicts > self.settings.conflict_retry_attempts:
                    logger.error(
                        "Giving up on %s in session %s after %d conflicts",
                        action.action_type.value, session_id, conflicts,
                    )
                    raise
                logger.warning(
                    "Commit race lost for %s in session %s, re-validating",
                    action.action_type.value, session_id,
                )
                continue

            logger.info(
                "Session %s v%d: %s",
                session_id, result.new_state.version, "; ".join(result.state_changes)
                or action.action_type.value,
            )
            return result

    def _with_retries(self, what: str, operation: Callable[[], T]) -> T:
        attempts = self.settings.store_retry_attempts
        delay = self.settings.store_retry_delay_seconds
        for attempt in range(attempts + 1):
            try:
                return operation()
            except TransientStoreError as e:
                if attempt >= attempts:
                    logger.error("Store %s failed after %d attempts: %s", what, attempt + 1, e)
                    raise
                logger.warning(
                    "Store %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    what, attempt + 1, attempts + 1, delay, e,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")

    # =========================================================================
    # Lobby
    # =========================================================================

    def join_session(
        self,
        session_code: str,
        display_name: str,
        avatar_seed: str | None = None,
    ) -> tuple[GameState, str]:
        """Join by code. Returns the new state and the new player's id."""
        session = self.find_by_code(session_code)
        player_id = str(uuid.uuid4())
        result = self.dispatch(
            session.session_id,
            Action.join(player_id, display_name, avatar_seed),
        )
        return result.new_state, player_id

    # =========================================================================
    # Admin
    # =========================================================================

    def open_lobby(self, session_id: str, admin_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.open_lobby(admin_id))

    def start_game(self, session_id: str, admin_id: str, seed: int | None = None) -> ActionResult:
        if seed is None:
            seed = self._rng.randrange(2**31)
        return self.dispatch(session_id, Action.start_game(admin_id, seed))

    def pause_game(self, session_id: str, admin_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.pause(admin_id))

    def resume_game(self, session_id: str, admin_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.resume(admin_id))

    def end_game(self, session_id: str, admin_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.end_game(admin_id))

    def remove_player(self, session_id: str, admin_id: str, player_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.remove_player(admin_id, player_id))

    def add_gifts(
        self,
        session_id: str,
        admin_id: str,
        gifts: list[dict[str, Any]],
    ) -> tuple[ActionResult, list[str]]:
        """Add a batch of gifts. Returns the result and the new gift ids."""
        entries = [{**gift, "gift_id": gift.get("gift_id") or str(uuid.uuid4())} for gift in gifts]
        result = self.dispatch(session_id, Action.add_gifts(admin_id, entries))
        return result, [entry["gift_id"] for entry in entries]

    def add_gift(
        self,
        session_id: str,
        admin_id: str,
        name: str,
        image_url: str = "",
        link: str | None = None,
        description: str | None = None,
    ) -> tuple[ActionResult, str]:
        result, ids = self.add_gifts(session_id, admin_id, [{
            "name": name,
            "image_url": image_url,
            "link": link,
            "description": description,
        }])
        return result, ids[0]

    def update_gift(
        self,
        session_id: str,
        admin_id: str,
        gift_id: str,
        updates: dict[str, Any],
    ) -> ActionResult:
        return self.dispatch(session_id, Action.update_gift(admin_id, gift_id, updates))

    def remove_gift(self, session_id: str, admin_id: str, gift_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.remove_gift(admin_id, gift_id))

    def update_config(
        self,
        session_id: str,
        admin_id: str,
        updates: dict[str, Any],
    ) -> ActionResult:
        return self.dispatch(session_id, Action.update_config(admin_id, updates))

    # =========================================================================
    # Turns
    # =========================================================================

    def pick_gift(self, session_id: str, player_id: str, gift_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.pick(player_id, gift_id))

    def steal_gift(self, session_id: str, player_id: str, gift_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.steal(player_id, gift_id))

    def keep_gift(self, session_id: str, player_id: str) -> ActionResult:
        return self.dispatch(session_id, Action.keep(player_id))

    # =========================================================================
    # Queries
    # =========================================================================

    def legal_moves(self, session_id: str, player_id: str) -> LegalMoves:
        state = self.get_session(session_id)
        state.require_player(player_id)
        return legal_moves(state, player_id)

    def history(self, session_id: str) -> list[ActionRecord]:
        return list(ActionHistory.of(self.get_session(session_id)).records)

