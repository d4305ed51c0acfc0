"""Typed synchronous observer lists.

A ``Signal`` delivers each payload to its listeners in registration order.
Listener failures are isolated: an exception raised by one listener is
logged and the remaining listeners still run.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from pageperf.logging import get_logger

LOG = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Signal(Generic[T]):
    """An observer list for one payload type.

    Args:
        name: Name used in diagnostics when a listener fails.
    """

    __slots__ = ("_listeners", "_name")

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Listener[T]] = []

    @property
    def name(self) -> str:
        """Signal name."""
        return self._name

    def connect(self, listener: Listener[T]) -> Callable[[], None]:
        """Register *listener* and return a callable that unregisters it."""
        self._listeners.append(listener)

        def _disconnect() -> None:
            self.disconnect(listener)

        return _disconnect

    def disconnect(self, listener: Listener[T]) -> bool:
        """Unregister *listener*. Returns False if it was not registered."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def emit(self, payload: T) -> int:
        """Deliver *payload* to every listener.

        Returns:
            Number of listeners that raised.
        """
        failures = 0
        # Copy so listeners may (dis)connect during delivery
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                failures += 1
                LOG.exception(
                    "signal_listener_failed",
                    signal=self._name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                )
        return failures

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
