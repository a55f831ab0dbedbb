"""
Simulator - Plays whole games with random legal moves.

Used by the CLI to demo the rules and by the tests to exercise the
engine over many seeded games.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import random

from .engine_core.action import ActionResult
from .engine_core.action_generator import legal_actions
from .engine_core.state import GamePhase, GameState
from .session import SessionManager


@dataclass
class SimulationResult:
    state: GameState
    results: list[ActionResult] = field(default_factory=list)

    @property
    def events(self) -> list[Any]:
        return [e for r in self.results for e in r.events]


def play_random_game(
    num_players: int,
    num_gifts: int,
    seed: int | None = None,
    config: dict[str, Any] | None = None,
    manager: SessionManager | None = None,
    max_steps: int = 10_000,
) -> SimulationResult:
    """
    Set up a session, start it and play random legal moves until it ends.

    Raises RuntimeError if the game has not ended after max_steps moves.
    """
    rng = random.Random(seed)
    manager = manager or SessionManager(rng=random.Random(seed))

    state = manager.create_session("Player 1", config=config)
    session_id = state.session_id
    admin_id = state.admin.player_id
    run = SimulationResult(state=state)

    if num_gifts:
        result, _ = manager.add_gifts(
            session_id, admin_id,
            [{"name": f"Gift {i + 1}"} for i in range(num_gifts)],
        )
        run.results.append(result)
    run.results.append(manager.open_lobby(session_id, admin_id))
    for i in range(1, num_players):
        manager.join_session(state.session_code, f"Player {i + 1}")
    run.results.append(manager.start_game(session_id, admin_id, seed=rng.randrange(2**31)))

    for _ in range(max_steps):
        state = manager.get_session(session_id)
        if state.phase == GamePhase.ENDED:
            run.state = state
            return run
        choices = legal_actions(state)
        if not choices:
            raise RuntimeError(f"No legal move for active player {state.active_player_id}")
        run.results.append(manager.dispatch(session_id, rng.choice(choices)))

    raise RuntimeError(f"Game did not finish within {max_steps} moves")
