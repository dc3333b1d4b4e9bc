"""Timer scheduling with explicit cancellation handles."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation token returned by :meth:`Scheduler.call_later`.

    Once ``cancel()`` returns, the callback will not start again. A run
    that already started on the timer thread is allowed to finish.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._timer: threading.Timer | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _arm(self, timer: threading.Timer) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._timer = timer
            timer.start()


class Scheduler:
    """Runs callbacks after a delay, once or repeatedly, on daemon timer threads.

    Repeating callbacks are re-armed after each run completes, so a slow
    callback delays its next run instead of overlapping with it.
    """

    def __init__(self, name: str = "vpnwatch-timer") -> None:
        self._name = name

    def call_later(
        self,
        delay: float,
        callback: Callable[[], None],
        *,
        repeat: bool = False,
    ) -> TimerHandle:
        handle = TimerHandle()
        self._arm(handle, delay, callback, repeat)
        return handle

    def _arm(
        self,
        handle: TimerHandle,
        delay: float,
        callback: Callable[[], None],
        repeat: bool,
    ) -> None:
        timer = threading.Timer(delay, self._fire, args=(handle, delay, callback, repeat))
        timer.daemon = True
        timer.name = self._name
        handle._arm(timer)

    def _fire(
        self,
        handle: TimerHandle,
        delay: float,
        callback: Callable[[], None],
        repeat: bool,
    ) -> None:
        if handle.cancelled:
            return
        try:
            callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", callback)
        finally:
            if repeat and not handle.cancelled:
                self._arm(handle, delay, callback, repeat)
