"""Background sweep that lapses expired subscriptions on a fixed interval."""
from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SubscriptionExpiryJob:
    def __init__(self, sweep: Callable[[], int], interval_seconds: float):
        self._sweep = sweep
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self._sweep()
            except Exception:
                logger.exception("Subscription expiry sweep failed")
            self._stop.wait(self._interval)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="subscription-expiry", daemon=True)
        self._thread.start()
        logger.info("Subscription expiry sweep started (every %ss)", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
