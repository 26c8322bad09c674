"""
Module: storage.scheduler

Purpose:
    Debounced background execution: a callback runs once after a quiet
    period, however many times it was requested during that period.

Key Classes:
    - DebouncedTask: arm / flush / cancel around a threading.Timer

Dependencies:
    - threading (std)

Used By:
    - storage.stats_store.StatsStore: coalesces statistics writes
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebouncedTask:
    """
    Run ``action`` once, ``delay`` seconds after the last ``arm()``.

    Re-arming while pending resets the deadline. Each arm bumps a
    generation counter; a timer whose generation is stale does nothing,
    so a cancelled timer that already started cannot run the action.

    Usage:
        task = DebouncedTask(0.35, store.save)
        task.arm()      # schedule
        task.arm()      # reschedule, still one run
        task.flush()    # run now if pending

    Attributes:
        delay: Quiet period in seconds
    """

    def __init__(self, delay: float, action: Callable[[], None], name: str = "debounced-task"):
        self.delay = delay
        self._action = action
        self._name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self) -> None:
        """Schedule the action, replacing any pending deadline."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            timer.name = self._name
            self._timer = timer
            timer.start()

    def cancel(self) -> bool:
        """
        Drop the pending deadline without running the action.

        Returns:
            True if something was pending.
        """
        with self._lock:
            return self._disarm()

    def flush(self) -> bool:
        """
        Run the action now if it is pending.

        Exceptions from the action propagate to the caller.

        Returns:
            True if the action ran.
        """
        with self._lock:
            was_pending = self._disarm()
        if was_pending:
            self._action()
        return was_pending

    def _disarm(self) -> bool:
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        self._generation += 1
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"{self._name}: stale timer ignored")
                return
            self._timer = None
        try:
            self._action()
        except Exception as e:
            logger.error(f"{self._name} failed: {e}")
