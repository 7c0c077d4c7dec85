# barber_calendar/realtime.py
"""
"Something changed, refetch" notifications keyed by date range, and the
availability cache they invalidate.
"""

import logging
import threading
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Subscription:
    def __init__(self, feed: "ChangeFeed", start: date, end: date, callback: Callable[[Optional[date]], None]):
        self.feed = feed
        self.start = start
        self.end = end
        self.callback = callback

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end

    def unsubscribe(self) -> None:
        self.feed.remove(self)


class ChangeFeed:
    """In-process fan-out of changed dates to range subscribers. No payload diff is delivered."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, start: date, end: date, callback: Callable[[Optional[date]], None]) -> Subscription:
        subscription = Subscription(self, start, end, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, *days: date) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)

        for day in set(days):
            for subscription in subscriptions:
                if not subscription.covers(day):
                    continue
                try:
                    subscription.callback(day)
                except Exception:
                    # one broken listener must not starve the others
                    logger.exception(f"Change listener failed for {day}")

    def publish_all(self) -> None:
        """Signal a change that is not bound to particular dates (hours, settings, series rules)."""
        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            try:
                subscription.callback(None)
            except Exception:
                logger.exception("Change listener failed for full refresh")


class AvailabilityCache:
    """
    Slot lists per (staff, date, booking horizon), dropped whenever the feed
    reports the date.

    The horizon moves with the calendar day without any change event, so it
    is part of the key: an entry computed under yesterday's horizon is never
    served today. Entries are only hints: callers recompute from storage on
    a miss.
    """

    def __init__(self, feed: ChangeFeed):
        self._entries: Dict[Tuple[int, date, Optional[date]], List[str]] = {}
        self._lock = threading.Lock()
        self._subscription = feed.subscribe(date.min, date.max, self.invalidate)

    def get(self, staff_id: int, day: date, horizon: Optional[date] = None) -> Optional[List[str]]:
        with self._lock:
            slots = self._entries.get((staff_id, day, horizon))
        return list(slots) if slots is not None else None

    def put(self, staff_id: int, day: date, slots: List[str], horizon: Optional[date] = None) -> None:
        with self._lock:
            # entries from an older horizon can never be hit again
            for key in [k for k in self._entries if k[2] != horizon]:
                del self._entries[key]
            self._entries[(staff_id, day, horizon)] = list(slots)

    def invalidate(self, day: Optional[date]) -> None:
        # None drops everything
        with self._lock:
            for key in [k for k in self._entries if day is None or k[1] == day]:
                del self._entries[key]
        logger.debug(f"Availability cache invalidated for {day}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def close(self) -> None:
        self._subscription.unsubscribe()


change_feed = ChangeFeed()
