"""
Scheduler Layer - Coalesce bursts of change events into commit triggers.

A single worker thread owns the debounce timer. Event producers never
touch the timer directly, they only post signals to the worker's queue,
so cancellation and expiry cannot race: the worker sees either the new
signal before the deadline (restart) or the deadline before the signal
(fire, then restart on the next loop).
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional


logger = logging.getLogger(__name__)

_CHANGE = "change"
_CANCEL = "cancel"
_STOP = "stop"


class DebounceScheduler:
    """Fire ``callback`` once per burst, after ``delay`` seconds of quiet.

    The callback always runs on the worker thread, so two callbacks never
    run concurrently. Events that arrive while the callback is running are
    picked up afterwards and start a fresh timer.
    """

    def __init__(self, delay: float, callback: Callable[[], None],
                 name: str = "gitwatch-debounce"):
        if delay < 0:
            raise ValueError(f"delay must be non-negative: {delay}")
        self.delay = delay
        self._callback = callback
        self._name = name
        self._signals: "queue.Queue[str]" = queue.Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self._deadline: Optional[float] = None
        self.fired = 0

    @property
    def pending(self) -> bool:
        """Whether a debounce timer is currently counting down."""
        return self._deadline is not None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread. Calling it twice is harmless."""
        with self._lock:
            if self._closed:
                raise RuntimeError("scheduler is closed")
            if self._thread is not None:
                return
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def on_event(self) -> None:
        """Record that the watched target changed.

        Safe to call from any thread. A pending timer is superseded and
        the quiet period starts again from zero.
        """
        if self._closed:
            return
        self._signals.put(_CHANGE)

    def cancel(self) -> None:
        """Drop the pending timer, if any. A no-op once it has fired."""
        if self._closed:
            return
        self._signals.put(_CANCEL)

    def close(self, timeout: Optional[float] = None) -> None:
        """Cancel any pending timer and stop the worker.

        A commit that is already running is allowed to finish (up to
        ``timeout`` seconds); a timer that has not fired yet is discarded.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
        self._signals.put(_STOP)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._deadline = None

    def _run(self) -> None:
        while True:
            deadline = self._deadline
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                signal = self._signals.get(timeout=timeout)
            except queue.Empty:
                self._deadline = None
                self._fire()
                continue

            if signal == _STOP:
                if self._deadline is not None:
                    logger.debug("Discarding pending debounce timer on shutdown")
                self._deadline = None
                return
            if signal == _CANCEL:
                self._deadline = None
                continue

            if self._deadline is not None:
                logger.debug("Change during quiet period, restarting %.2fs timer", self.delay)
            self._deadline = time.monotonic() + self.delay

    def _fire(self) -> None:
        self.fired += 1
        try:
            self._callback()
        except Exception:
            # A failed commit must not wedge the watch loop
            logger.exception("Commit trigger failed")
