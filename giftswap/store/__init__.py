"""
Store Module - Persistence boundary of the engine.

The ledger store holds the authoritative session records and publishes a
change notification for every commit. The in-memory implementation backs
the API, the CLI simulator and the tests.
"""

from .base import LedgerStore
from .bus import EventBus, InMemoryEventBus, Subscription
from .changes import ChangeNotification, ChangeOp, RecordChange, diff_states
from .memory import InMemoryLedgerStore

__all__ = [
    "LedgerStore",
    "EventBus",
    "InMemoryEventBus",
    "Subscription",
    "ChangeNotification",
    "ChangeOp",
    "RecordChange",
    "diff_states",
    "InMemoryLedgerStore",
]
