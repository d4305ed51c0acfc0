"""Explicit registry of monitors, one per consumer key.

The registry is an ordinary object owned by the host's composition root and
passed to whatever needs a monitor. Monitors are created lazily on first
lookup and live as long as the registry; there is no removal. Instances
never share state, so clearing one key's monitor leaves the others alone.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from pageperf.logging import get_logger
from pageperf.models import Framework
from pageperf.monitor import MonitorSources, PerformanceMonitor

LOG = get_logger(__name__)


class MonitorRegistry:
    """Lazily-populated mapping of consumer key to ``PerformanceMonitor``.

    Args:
        factory: Builds a monitor from the keyword arguments of the first
            ``get()`` for a key. Defaults to ``PerformanceMonitor``.
    """

    def __init__(self, factory: Callable[..., PerformanceMonitor] = PerformanceMonitor) -> None:
        self._factory = factory
        self._monitors: dict[str, PerformanceMonitor] = {}

    def get(self, key: str, **kwargs: Any) -> PerformanceMonitor:
        """Return the monitor for *key*, creating it on first lookup.

        Keyword arguments are passed to the factory on creation and ignored
        afterwards.
        """
        monitor = self._monitors.get(key)
        if monitor is None:
            monitor = self._factory(**kwargs)
            self._monitors[key] = monitor
            LOG.debug("monitor_created", key=key, session_id=monitor.session_id)
        elif kwargs:
            LOG.debug("monitor_options_ignored", key=key, options=sorted(kwargs))
        return monitor

    def keys(self) -> list[str]:
        """Registered keys in creation order."""
        return list(self._monitors)

    def __contains__(self, key: object) -> bool:
        return key in self._monitors

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._monitors)


def initialize_monitoring(
    registry: MonitorRegistry,
    key: str | None = None,
    framework: Framework | str = Framework.OTHER,
    sources: MonitorSources | None = None,
    **kwargs: Any,
) -> PerformanceMonitor:
    """Get (or create) the monitor for *key* and initialize it.

    Args:
        registry: Registry owning the monitor.
        key: Consumer key; the framework name when None.
        framework: Framework of a newly created monitor.
        sources: Observation sources passed to ``initialize``.
        **kwargs: Extra ``PerformanceMonitor`` arguments (url, user_agent, clock).
    """
    monitor = registry.get(key or str(framework).lower(), framework=framework, **kwargs)
    monitor.initialize(sources)
    return monitor
