"""Idle auto-close timer for the interface adapter."""

import logging
import threading
from collections.abc import Callable

from sugo_serialport.config import timeout_seconds

logger = logging.getLogger(__name__)


class IdleTimer:
    """Single-shot timer that calls on_idle after timeout_ms without re-arming.

    A timeout of None or inf disables the timer entirely. arm() cancels any
    pending timer before starting a new one.
    """

    def __init__(self, timeout_ms: float | None, on_idle: Callable[[], None]) -> None:
        self._timeout_s = timeout_seconds(timeout_ms)
        self._on_idle = on_idle
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._timeout_s is not None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None and self._timer.is_alive()

    def arm(self) -> None:
        """(Re)start the countdown."""
        if self._timeout_s is None:
            return
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._timeout_s, self._fire)
            self._timer.daemon = True
            self._timer.start()
        logger.debug(f"Idle timer armed for {self._timeout_s:.3f}s")

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                # Re-armed after this timer was already running
                return
            self._timer = None
        logger.info(f"Idle for {self._timeout_s:.3f}s, closing")
        self._on_idle()
