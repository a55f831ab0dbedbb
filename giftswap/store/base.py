"""
Ledger Store - The authoritative record of every session.

The store owns persistence; the engine only proposes new snapshots.
commit() is all-or-nothing: the whole new state is written only if the
stored version still equals the version the caller computed from, and
the stored version then equals new_state.version.

Errors:
- SessionNotFound: unknown session id or code
- ConflictError: version mismatch, or a duplicate session code on create
- TransientStoreError: temporary failure, safe to retry
"""

from __future__ import annotations
from abc import ABC, abstractmethod

from ..engine_core.events import DomainEvent
from ..engine_core.state import GameState
from .changes import ChangeNotification


class LedgerStore(ABC):

    @abstractmethod
    def create(self, state: GameState) -> ChangeNotification:
        """Insert a new session. Its session_code must be unused."""

    @abstractmethod
    def load(self, session_id: str) -> GameState:
        """Return the latest committed snapshot."""

    @abstractmethod
    def find_by_code(self, session_code: str) -> GameState:
        """Look a session up by its join code (case-insensitive)."""

    @abstractmethod
    def commit(
        self,
        new_state: GameState,
        expected_version: int,
        events: list[DomainEvent] | None = None,
    ) -> ChangeNotification:
        """Atomically replace the session if it is still at expected_version."""

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Ids of every stored session."""
