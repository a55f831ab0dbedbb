"""
Action History - Queries over the append-only pick/steal log.

The log is the sole source of truth for the steal-back rule and for the
results report. Records are never updated or deleted, and they keep
referencing players that have since been removed.
"""

from __future__ import annotations
from dataclasses import dataclass
from collections import Counter

from .state import ActionKind, ActionRecord, GameState


@dataclass(frozen=True)
class ActionHistory:
    records: tuple[ActionRecord, ...]

    @classmethod
    def of(cls, state: GameState) -> ActionHistory:
        return cls(records=tuple(sorted(state.actions, key=lambda r: r.sequence)))

    @property
    def next_sequence(self) -> int:
        return self.records[-1].sequence + 1 if self.records else 1

    def steals(self) -> list[ActionRecord]:
        return [r for r in self.records if r.action_type == ActionKind.STEAL]

    def last_steal(self, gift_id: str) -> ActionRecord | None:
        """Most recent steal of the gift, if any."""
        for record in reversed(self.records):
            if record.gift_id == gift_id and record.action_type == ActionKind.STEAL:
                return record
        return None

    def was_just_stolen_from(self, gift_id: str, candidate_actor_id: str) -> bool:
        """
        True iff the most recent steal of this gift took it from the
        candidate. Older steals of the same gift are ignored.
        """
        last = self.last_steal(gift_id)
        return last is not None and last.previous_owner_id == candidate_actor_id

    def steal_counts_by_player(self) -> dict[str, int]:
        return dict(Counter(r.player_id for r in self.steals()))

    def times_stolen_from(self) -> dict[str, int]:
        return dict(Counter(
            r.previous_owner_id for r in self.steals() if r.previous_owner_id
        ))
