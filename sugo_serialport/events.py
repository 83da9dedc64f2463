"""Event surface used by drivers, adapters and interface pipes.

Contains:
- Listener: callable receiving one event payload
- EventPipe: minimal thread-safe emitter (on/once/off/emit)
- relay_events: forward a set of events from one emitter to another
"""

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from sugo_serialport.protocol import TRACE

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Emitter(Protocol):
    """Protocol for objects that publish and accept named events."""

    def on(self, event: str, listener: Listener) -> Any: ...
    def emit(self, event: str, data: Any = ...) -> bool: ...


class EventPipe:
    """Named-event emitter.

    Listeners are called synchronously in registration order on the thread
    that calls emit(). A listener that raises stops delivery of that event
    and the exception propagates to the emitter.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}
        self._lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> "EventPipe":
        """Register a listener for every emission of event."""
        with self._lock:
            self._listeners.setdefault(event, []).append((listener, False))
        return self

    def once(self, event: str, listener: Listener) -> "EventPipe":
        """Register a listener removed after its first call."""
        with self._lock:
            self._listeners.setdefault(event, []).append((listener, True))
        return self

    def off(self, event: str, listener: Listener | None = None) -> "EventPipe":
        """Remove one listener, or all listeners of event when none given."""
        with self._lock:
            if listener is None:
                self._listeners.pop(event, None)
            else:
                self._listeners[event] = [
                    entry for entry in self._listeners.get(event, []) if entry[0] is not listener
                ]
        return self

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, data: Any = None) -> bool:
        """Call listeners of event with data. Returns True if any were called."""
        with self._lock:
            entries = list(self._listeners.get(event, []))
            if any(once for _, once in entries):
                self._listeners[event] = [e for e in entries if not e[1]]
        logger.log(TRACE, f"emit {event} to {len(entries)} listener(s)")
        for listener, _ in entries:
            listener(data)
        return bool(entries)


def relay_events(source: Emitter, target: Emitter, events: Iterable[str]) -> None:
    """Forward each named event from source to target with the same payload."""
    for event in events:
        logger.debug(f"Relaying event: {event}")
        source.on(event, lambda data, _event=event: target.emit(_event, data))
