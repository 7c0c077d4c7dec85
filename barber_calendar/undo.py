# barber_calendar/undo.py
"""
Short-lived undo of destructive operations.

A manager holds at most one pending deletion. It ends either through
``undo()`` or through ``expire()`` (fired by a timer after the window), and
whichever comes first wins: the other finds nothing pending.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .config import UNDO_WINDOW_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class PendingDeletion:
    token: int
    appointments: List[dict]
    series_cancellation_ids: List[int]


@dataclass
class UndoResult:
    restored: List[object] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)
    exceptions_removed: int = 0


class UndoManager:
    def __init__(self, window_seconds: float = UNDO_WINDOW_SECONDS, timer_factory: Callable = threading.Timer):
        self.window_seconds = window_seconds
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: Optional[PendingDeletion] = None
        self._timer = None
        self._token = 0

    @property
    def pending(self) -> Optional[PendingDeletion]:
        with self._lock:
            return self._pending

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def record_deletion(self, appointments: Iterable[dict], series_cancellation_ids: Iterable[int] = ()) -> None:
        """Replace whatever is pending with this deletion and restart the window."""
        with self._lock:
            self._stop_timer()
            self._token += 1
            self._pending = PendingDeletion(
                token=self._token,
                appointments=[dict(a) for a in appointments],
                series_cancellation_ids=list(series_cancellation_ids),
            )
            self._timer = self.timer_factory(self.window_seconds, self.expire, args=(self._token,))
            self._timer.daemon = True
            self._timer.start()

    def expire(self, token: Optional[int] = None) -> bool:
        """Make the pending deletion permanent. A stale timer token is ignored."""
        with self._lock:
            if self._pending is None or (token is not None and token != self._pending.token):
                return False
            self._stop_timer()
            self._pending = None
        logger.debug("Undo window expired")
        return True

    def undo(self, store) -> Optional[UndoResult]:
        """Recreate the deleted appointments and drop the exception rows; None if nothing is pending."""
        with self._lock:
            pending = self._pending
            if pending is None:
                return None
            self._stop_timer()
            self._pending = None

        result = UndoResult()
        for exception_id in pending.series_cancellation_ids:
            if store.delete_appointment(exception_id):
                result.exceptions_removed += 1

        for snapshot in pending.appointments:
            created = store.create_appointment(snapshot)
            if created.success:
                result.restored.append(created.appointment)
            else:
                logger.error(
                    f"Undo could not recreate appointment {snapshot['barber_id']}/{snapshot['date']}/"
                    f"{snapshot['time_slot']}: {created.error}"
                )
                result.failed.append(snapshot)
        return result


class UndoRegistry:
    """One undo manager per signed-in user."""

    def __init__(self, window_seconds: float = UNDO_WINDOW_SECONDS, timer_factory: Callable = threading.Timer):
        self.window_seconds = window_seconds
        self.timer_factory = timer_factory
        self._managers: Dict[int, UndoManager] = {}
        self._lock = threading.Lock()

    def for_user(self, user_id: int) -> UndoManager:
        with self._lock:
            if user_id not in self._managers:
                self._managers[user_id] = UndoManager(self.window_seconds, self.timer_factory)
            return self._managers[user_id]
