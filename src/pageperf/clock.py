"""Session time base.

Every instant the engine compares (record starts, arrival instants,
hydration marks, paint and interaction instants) is expressed in
milliseconds on a single session clock.
"""

import time
from collections.abc import Callable

Clock = Callable[[], float]


def monotonic_clock() -> Clock:
    """Return a clock reading milliseconds elapsed since this call."""
    origin = time.perf_counter()

    def _now() -> float:
        return (time.perf_counter() - origin) * 1000.0

    return _now


def epoch_ms() -> float:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0
