"""
Pytest fixtures for GiftSwap tests.
"""

import random

import pytest

from ..config import Settings
from ..engine_core.state import GameState
from ..session import SessionManager
from ..store import InMemoryLedgerStore
from .builders import build_lobby, build_started, new_session


@pytest.fixture
def setup_state() -> GameState:
    """Fresh session in SETUP with only the host."""
    return new_session()


@pytest.fixture
def lobby_state() -> GameState:
    """Three players and three gifts, lobby open."""
    return build_lobby(3, 3)


@pytest.fixture
def active_state() -> GameState:
    """Three players and three gifts, p1 to play."""
    return build_started(3, 3)


@pytest.fixture
def settings() -> Settings:
    """Settings that never really sleep or read the environment's defaults."""
    return Settings(
        _env_file=None,
        store_retry_attempts=2,
        store_retry_delay_seconds=1.0,
        default_randomize_order=False,
    )


@pytest.fixture
def sleeps() -> list:
    """Collects the delays the session manager asked to sleep for."""
    return []


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def manager(store, settings, sleeps) -> SessionManager:
    return SessionManager(
        store=store,
        settings=settings,
        sleep=sleeps.append,
        rng=random.Random(1234),
    )
