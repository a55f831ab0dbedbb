"""
In-memory Ledger Store.

Snapshots are kept as plain dicts (the persisted row shape) so that no
caller can mutate committed state through a shared reference. Every
successful write is published to the event bus while the lock is
still held, so notifications for a session go out in version order.
"""

from __future__ import annotations
import logging
import threading

from ..engine_core.errors import ConflictError, SessionNotFound
from ..engine_core.events import DomainEvent
from ..engine_core.state import GameState
from .base import LedgerStore
from .bus import EventBus, InMemoryEventBus
from .changes import ChangeNotification, diff_states

logger = logging.getLogger(__name__)


class InMemoryLedgerStore(LedgerStore):

    def __init__(self, bus: EventBus | None = None):
        self.bus = bus or InMemoryEventBus()
        self._lock = threading.RLock()
        self._snapshots: dict[str, dict] = {}
        self._codes: dict[str, str] = {}

    def create(self, state: GameState) -> ChangeNotification:
        code = state.session_code.upper()
        with self._lock:
            if state.session_id in self._snapshots:
                raise ConflictError(
                    f"Session {state.session_id} already exists",
                    session_id=state.session_id,
                )
            if code in self._codes:
                raise ConflictError(
                    f"Session code {code} is taken",
                    session_code=code,
                )
            self._snapshots[state.session_id] = state.to_dict()
            self._codes[code] = state.session_id
            notification = ChangeNotification(
                session_id=state.session_id,
                version=state.version,
                changes=diff_states(None, state),
                state=state.to_dict(),
            )
            self.bus.publish(state.session_id, notification)
        logger.info("Stored new session %s (%s)", state.session_id, code)
        return notification

    def load(self, session_id: str) -> GameState:
        with self._lock:
            data = self._snapshots.get(session_id)
        if data is None:
            raise SessionNotFound(f"Session {session_id} not found", session_id=session_id)
        return GameState.from_dict(data)

    def find_by_code(self, session_code: str) -> GameState:
        code = (session_code or "").strip().upper()
        with self._lock:
            session_id = self._codes.get(code)
        if session_id is None:
            raise SessionNotFound(f"No session with code {code}", session_code=code)
        return self.load(session_id)

    def commit(
        self,
        new_state: GameState,
        expected_version: int,
        events: list[DomainEvent] | None = None,
    ) -> ChangeNotification:
        with self._lock:
            current = self._snapshots.get(new_state.session_id)
            if current is None:
                raise SessionNotFound(
                    f"Session {new_state.session_id} not found",
                    session_id=new_state.session_id,
                )
            stored_version = current["session"]["version"]
            if stored_version != expected_version:
                raise ConflictError(
                    f"Session {new_state.session_id} is at version {stored_version}, "
                    f"expected {expected_version}",
                    session_id=new_state.session_id,
                    stored_version=stored_version,
                    expected_version=expected_version,
                )
            old_state = GameState.from_dict(current)
            self._snapshots[new_state.session_id] = new_state.to_dict()
            notification = ChangeNotification(
                session_id=new_state.session_id,
                version=new_state.version,
                changes=diff_states(old_state, new_state),
                events=[e.to_dict() for e in events or []],
                state=new_state.to_dict(),
            )
            self.bus.publish(new_state.session_id, notification)
        return notification

    def list_sessions(self) -> list[str]:
        with self._lock:
            return list(self._snapshots)
