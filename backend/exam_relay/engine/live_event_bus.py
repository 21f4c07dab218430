"""Live event bus for SSE-based real-time leaderboard streaming."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from exam_relay.engine.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

Row = dict[str, str]
Snapshot = list[Row]

_CLOSE = object()


class SubscriptionClosed(Exception):
    """Raised by :meth:`Subscription.receive` once the bus has closed the subscription."""


class Subscription:
    """One live viewer of a room, backed by a bounded asyncio.Queue.

    Only the latest snapshot of a room matters to a viewer, so when the
    queue is full the oldest pending snapshot is dropped to make room for
    the newest one.
    """

    def __init__(self, room: str, maxsize: int, loop: asyncio.AbstractEventLoop):
        self.room = room
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = loop

    def __repr__(self) -> str:
        return f"<Subscription room={self.room!r} closed={self.closed}>"

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, snapshot: Snapshot) -> bool:
        """Hand a snapshot to this subscription. Returns False if it is closed."""
        if self.closed:
            return False
        self._dispatch(snapshot)
        return True

    async def receive(self, timeout: float | None = None) -> Snapshot | None:
        """Wait for the next snapshot.

        Returns None when ``timeout`` elapses first. Raises
        :class:`SubscriptionClosed` once the bus shuts the subscription down.
        """
        try:
            if timeout:
                item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
            else:
                item = await self._queue.get()
        except asyncio.TimeoutError:
            return None
        if item is _CLOSE:
            raise SubscriptionClosed(self.room)
        return item

    def _signal_close(self):
        self.closed = True
        self._dispatch(_CLOSE)

    def _dispatch(self, item: Any):
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(item)
        else:
            # Published from another thread (or outside any loop)
            self._loop.call_soon_threadsafe(self._put, item)

    def _put(self, item: Any):
        if self.closed and item is not _CLOSE:
            return
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                logger.warning(f"Queue full for room {self.room}, dropped oldest snapshot")


class LiveEventBus:
    """Room-scoped pub/sub for leaderboard snapshots.

    Delivery is synchronous: :meth:`publish` puts the snapshot on every
    subscription queue of the room before returning, so subscribers of a
    room observe publishes in the order the calls complete.
    """

    def __init__(self, queue_size: int = 16, registry: RoomRegistry | None = None):
        self._queue_size = queue_size
        self._registry = registry or RoomRegistry()

    def subscribe(self, room: str, loop: asyncio.AbstractEventLoop | None = None) -> Subscription:
        subscription = Subscription(room, self._queue_size, loop or asyncio.get_running_loop())
        total = self._registry.add(subscription)
        logger.info(f"Live subscriber added for room {room!r} (total: {total})")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        subscription.closed = True
        if self._registry.remove(subscription):
            logger.info(
                f"Live subscriber removed for room {subscription.room!r} "
                f"(remaining: {self._registry.subscriber_count(subscription.room)})"
            )

    def publish(self, room: str, snapshot: Snapshot) -> int:
        """Fan a snapshot out to the room's current subscribers.

        Returns how many subscriptions accepted it. A failing subscription is
        logged and skipped; this method never raises.
        """
        subscribers = self._registry.snapshot(room)
        if not subscribers:
            logger.debug(f"No subscribers for room {room!r}, snapshot discarded")
            return 0

        delivered = 0
        for subscription in subscribers:
            try:
                if subscription.deliver(snapshot):
                    delivered += 1
            except Exception:
                logger.exception(f"Failed to deliver snapshot to {subscription!r}")
        return delivered

    def viewer_count(self, room: str) -> int:
        return self._registry.subscriber_count(room)

    def rooms(self) -> dict[str, int]:
        return self._registry.rooms()

    def close(self):
        """Close every subscription so open streams finish."""
        subscriptions = self._registry.clear()
        for subscription in subscriptions:
            try:
                subscription._signal_close()
            except Exception:
                logger.exception(f"Failed to close {subscription!r}")
        if subscriptions:
            logger.info(f"Live event bus closed {len(subscriptions)} subscription(s)")
