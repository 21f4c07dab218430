"""Room registry: maps room id -> set of active live subscriptions."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exam_relay.engine.live_event_bus import Subscription

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Thread-safe in-memory room table.

    Rooms are never declared up front. A room appears with its first
    subscription and is dropped as soon as its last subscription leaves.
    The lock only guards the table itself; callers iterate over the tuple
    returned by :meth:`snapshot` without holding it.
    """

    def __init__(self):
        self._rooms: dict[str, set[Subscription]] = {}
        self._lock = threading.Lock()

    def add(self, subscription: Subscription) -> int:
        with self._lock:
            members = self._rooms.setdefault(subscription.room, set())
            members.add(subscription)
            return len(members)

    def remove(self, subscription: Subscription) -> bool:
        with self._lock:
            members = self._rooms.get(subscription.room)
            if members is None or subscription not in members:
                return False
            members.discard(subscription)
            if not members:
                del self._rooms[subscription.room]
            return True

    def snapshot(self, room: str) -> tuple[Subscription, ...]:
        with self._lock:
            return tuple(self._rooms.get(room, ()))

    def subscriber_count(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def rooms(self) -> dict[str, int]:
        with self._lock:
            return {room: len(members) for room, members in self._rooms.items()}

    def clear(self) -> list[Subscription]:
        """Empty the registry and return every subscription that was in it."""
        with self._lock:
            removed = [sub for members in self._rooms.values() for sub in members]
            self._rooms.clear()
        return removed
