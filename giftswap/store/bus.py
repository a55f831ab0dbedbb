"""
Event Bus - Fan-out of change notifications to subscribers.

Delivery is at-least-once and per-session ordered: stores publish while
holding their write lock, so versions arrive in commit order. Publishers
may run on any thread (sync request handlers run in a thread pool); each subscription
hands items to the event loop it was created on, or queues them directly
when there is none (scripts and tests).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import asyncio
import logging
import threading

from .changes import ChangeNotification

logger = logging.getLogger(__name__)


class Subscription:
    """A stream of notifications for one session."""

    def __init__(self, bus: EventBus, session_id: str):
        self.bus = bus
        self.session_id = session_id
        self.closed = False
        self._queue: asyncio.Queue[ChangeNotification] = asyncio.Queue()
        try:
            self._loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def deliver(self, notification: ChangeNotification) -> None:
        if self.closed:
            return
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._queue.put_nowait, notification)
        else:
            self._queue.put_nowait(notification)

    async def get(self) -> ChangeNotification:
        return await self._queue.get()

    def drain(self) -> list[ChangeNotification]:
        """Everything delivered so far, without waiting."""
        items = []
        while not self._queue.empty():
            items.append(self._queue.get_nowait())
        return items

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.bus.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeNotification:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()


class EventBus(ABC):
    """Publish/subscribe keyed by session id."""

    @abstractmethod
    def publish(self, session_id: str, notification: ChangeNotification) -> None:
        ...

    @abstractmethod
    def subscribe(self, session_id: str) -> Subscription:
        ...

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        ...


class InMemoryEventBus(EventBus):
    """Process-local bus."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = {}

    def publish(self, session_id: str, notification: ChangeNotification) -> None:
        with self._lock:
            targets = list(self._subscribers.get(session_id, []))
        for subscription in targets:
            subscription.deliver(notification)
        logger.debug(
            "Published v%d of session %s to %d subscriber(s)",
            notification.version, session_id, len(targets),
        )

    def subscribe(self, session_id: str) -> Subscription:
        subscription = Subscription(self, session_id)
        with self._lock:
            self._subscribers.setdefault(session_id, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(subscription.session_id, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscribers.pop(subscription.session_id, None)

    def subscriber_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(session_id, []))
