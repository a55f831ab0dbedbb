"""
Change Notifications - What the store publishes after every commit.

A notification lists the row-level changes (per table, keyed by row id)
between the previous and the committed snapshot, the domain events of the
action, and the full committed state. Consumers apply notifications by
version, so redelivery is harmless.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import uuid

from ..engine_core.state import GameState


SESSIONS_TABLE = "game_sessions"
PLAYERS_TABLE = "players"
GIFTS_TABLE = "gifts"
ACTIONS_TABLE = "game_actions"


class ChangeOp(Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RecordChange:
    """One row changed in one table."""
    table: str
    op: ChangeOp
    old: dict[str, Any] | None = None
    new: dict[str, Any] | None = None

    @property
    def row_id(self) -> str | None:
        row = self.new or self.old
        return row.get("id") if row else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "op": self.op.value,
            "old": self.old,
            "new": self.new,
        }


@dataclass
class ChangeNotification:
    """Everything a subscriber learns about one committed action."""
    session_id: str
    version: int
    changes: list[RecordChange] = field(default_factory=list)
    events: list[dict[str, Any]] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)
    notification_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_id": self.notification_id,
            "session_id": self.session_id,
            "version": self.version,
            "changes": [c.to_dict() for c in self.changes],
            "events": list(self.events),
            "state": self.state,
        }


def _diff_rows(
    table: str,
    old_rows: list[dict[str, Any]],
    new_rows: list[dict[str, Any]],
) -> list[RecordChange]:
    before = {row["id"]: row for row in old_rows}
    after = {row["id"]: row for row in new_rows}
    changes = []
    for row_id, row in after.items():
        if row_id not in before:
            changes.append(RecordChange(table, ChangeOp.INSERT, new=row))
        elif before[row_id] != row:
            changes.append(RecordChange(table, ChangeOp.UPDATE, old=before[row_id], new=row))
    for row_id, row in before.items():
        if row_id not in after:
            changes.append(RecordChange(table, ChangeOp.DELETE, old=row))
    return changes


def diff_states(old: GameState | None, new: GameState) -> list[RecordChange]:
    """Row-level changes that turn old into new (old=None for a new session)."""
    new_data = new.to_dict()
    if old is None:
        old_data = {"session": None, "players": [], "gifts": [], "actions": []}
    else:
        old_data = old.to_dict()

    changes: list[RecordChange] = []
    if old_data["session"] is None:
        changes.append(RecordChange(SESSIONS_TABLE, ChangeOp.INSERT, new=new_data["session"]))
    elif old_data["session"] != new_data["session"]:
        changes.append(RecordChange(
            SESSIONS_TABLE, ChangeOp.UPDATE,
            old=old_data["session"], new=new_data["session"],
        ))
    changes.extend(_diff_rows(PLAYERS_TABLE, old_data["players"], new_data["players"]))
    changes.extend(_diff_rows(GIFTS_TABLE, old_data["gifts"], new_data["gifts"]))
    changes.extend(_diff_rows(ACTIONS_TABLE, old_data["actions"], new_data["actions"]))
    return changes
