# backend/fintrack/services/scheduler.py
"""
Periodic refresh scheduler.

A daemon thread fires every `interval` seconds and calls whatever handler
the HandlerSlot holds at that moment. Swapping the handler never restarts
the timer, so the next tick still happens on the original phase.

Usage:
    scheduler = RefreshScheduler(60.0, state.refresh_holdings)
    scheduler.start()
    scheduler.set_handler(other_state.refresh_holdings)
    scheduler.stop()
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Handler = Callable[[], object]


class HandlerSlot:
    """A handler reference that can be swapped from any thread."""

    def __init__(self, handler: Handler | None = None) -> None:
        self._lock = threading.Lock()
        self._handler = handler

    def get(self) -> Handler | None:
        with self._lock:
            return self._handler

    def set(self, handler: Handler | None) -> None:
        with self._lock:
            self._handler = handler


class RefreshScheduler:
    """
    Args:
        interval: Seconds between ticks
        handler: Initial handler, may be set later
        name: Thread name
    """

    def __init__(self, interval: float, handler: Handler | None = None, name: str = "fintrack-refresh") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self.slot = HandlerSlot(handler)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler '{self.name}' started (every {self.interval}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.info(f"Scheduler '{self.name}' stopped")

    def set_handler(self, handler: Handler | None) -> None:
        self.slot.set(handler)

    def tick(self) -> bool:
        """
        Run the current handler once.

        A failing handler is logged; the schedule keeps going.

        Returns:
            False when no handler is set
        """
        handler = self.slot.get()
        if handler is None:
            return False
        try:
            handler()
        except Exception:
            logger.exception(f"Scheduler '{self.name}' handler failed")
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()
