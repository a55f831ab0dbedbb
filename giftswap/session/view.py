"""
Session View - A client-side replica kept current from change notifications.

Notifications are delivered at least once and may repeat; the view keeps
the highest version it has applied and ignores anything not newer.
"""

from __future__ import annotations
import logging

from ..engine_core.state import GameState
from ..store import ChangeNotification, Subscription

logger = logging.getLogger(__name__)


class SessionView:

    def __init__(self, session_id: str, state: GameState | None = None):
        self.session_id = session_id
        self.state = state
        self.events: list[dict] = []

    @property
    def version(self) -> int:
        return self.state.version if self.state is not None else -1

    def apply(self, notification: ChangeNotification) -> bool:
        """Apply one notification. Returns False when it was stale or foreign."""
        if notification.session_id != self.session_id:
            return False
        if notification.version <= self.version:
            logger.debug(
                "Skipping duplicate v%d for session %s (at v%d)",
                notification.version, self.session_id, self.version,
            )
            return False
        self.state = GameState.from_dict(notification.state)
        self.events.extend(notification.events)
        return True

    def catch_up(self, subscription: Subscription) -> int:
        """Apply everything queued on a subscription; returns how many were new."""
        return sum(1 for n in subscription.drain() if self.apply(n))
