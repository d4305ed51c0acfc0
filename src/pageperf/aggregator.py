"""Session statistics.

Pure functions over the current log contents. Nothing is cached: every call
recomputes from the records it is given, so results always reflect the logs
at call time.

Top-k selections are descending by the requested field with ties kept in
log order (``sorted`` is stable, including with ``reverse=True``).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

from pageperf.models import (
    APICall,
    FetchStatus,
    LongFrame,
    PerformanceSummary,
    QueryCacheEntry,
    QueryCacheStats,
    QueryFrequency,
    QueryStatus,
    ResourceTiming,
    ScriptCost,
)

T = TypeVar("T")

DEFAULT_TOP_K = 10

# Main-thread work beyond this floor counts towards total blocking time
LONG_FRAME_THRESHOLD_MS = 50.0

UNKNOWN_SCRIPT_URL = "unknown"


def top_k(records: Iterable[T], key: Callable[[T], Any], k: int = DEFAULT_TOP_K) -> list[T]:
    """Return at most *k* records sorted descending by *key*.

    Ties keep their original order. A *k* larger than the input returns the
    whole input, still sorted; a non-positive *k* returns an empty list.
    """
    if k <= 0:
        return []
    return sorted(records, key=key, reverse=True)[:k]


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


def blocking_resources(resources: Iterable[ResourceTiming]) -> list[ResourceTiming]:
    """Resources classified as render-blocking, in log order."""
    return [r for r in resources if r.is_blocking]


def total_transfer_size(resources: Iterable[ResourceTiming]) -> int:
    """Sum of transfer sizes."""
    return sum(r.transfer_size for r in resources)


def average_compression_ratio(resources: Iterable[ResourceTiming]) -> float:
    """Mean compression ratio over resources where the ratio is defined.

    Resources with a zero encoded size have no ratio and are excluded from
    both the numerator and the denominator.
    """
    return mean([r.compression_ratio for r in resources if r.compression_ratio is not None])


# ---------------------------------------------------------------------------
# API calls
# ---------------------------------------------------------------------------


def average_latency(calls: Sequence[APICall]) -> float:
    """Mean duration across all calls."""
    return mean([c.duration for c in calls])


def lcp_blocking_calls(calls: Iterable[APICall]) -> list[APICall]:
    """Calls whose span contained the largest-paint instant."""
    return [c for c in calls if c.blocked_lcp]


def inp_blocking_calls(calls: Iterable[APICall]) -> list[APICall]:
    """Calls whose span contained an interaction instant."""
    return [c for c in calls if c.blocked_inp]


# ---------------------------------------------------------------------------
# Long frames
# ---------------------------------------------------------------------------


def frame_blocking_time(frame: LongFrame) -> float:
    """Blocking portion of one frame: ``max(0, duration - 50)``."""
    return max(0.0, frame.duration - LONG_FRAME_THRESHOLD_MS)


def total_blocking_time(frames: Iterable[LongFrame]) -> float:
    """Sum of blocking portions, ignoring platform-reported blocking durations."""
    return sum(frame_blocking_time(f) for f in frames)


def worst_scripts(frames: Iterable[LongFrame], k: int = DEFAULT_TOP_K) -> list[ScriptCost]:
    """Rank script URLs by total execution time across all frames."""
    totals: dict[str, list[float]] = {}
    for frame in frames:
        for script in frame.scripts:
            url = script.source_url or UNKNOWN_SCRIPT_URL
            entry = totals.setdefault(url, [0.0, 0])
            entry[0] += script.duration
            entry[1] += 1

    costs = [
        ScriptCost(url=url, total_duration=duration, count=int(count))
        for url, (duration, count) in totals.items()
    ]
    return top_k(costs, key=lambda c: c.total_duration, k=k)


# ---------------------------------------------------------------------------
# Query cache
# ---------------------------------------------------------------------------


def is_stale(entry: QueryCacheEntry, now: float) -> bool:
    """True when the entry has data older than its staleness window."""
    return entry.data_updated_at > 0 and (now - entry.data_updated_at) > entry.stale_time


def cache_hit_rate(total_records: int, executions: Mapping[str, int]) -> float:
    """``(executions - records) / executions``, 0.0 when nothing was executed.

    Executions are counted per update event, so this measures how many update
    events did not grow the log rather than fetches served from cache. The
    value can be negative when snapshot records outnumber update events.
    """
    total_executions = sum(executions.values())
    if total_executions <= 0:
        return 0.0
    return (total_executions - total_records) / total_executions


def query_cache_stats(
    entries: Sequence[QueryCacheEntry],
    executions: Mapping[str, int],
    now: float,
    k: int = DEFAULT_TOP_K,
) -> QueryCacheStats:
    """Compute query-cache statistics.

    Args:
        entries: Query-cache log, in log order.
        executions: Update-event count per serialized query key, in
            first-seen order.
        now: Current instant on the session clock, used for staleness.
        k: Size of the slowest / most-frequent selections.
    """
    timed = [e for e in entries if e.fetch_duration is not None]
    frequencies = [QueryFrequency(query_key=key, count=count) for key, count in executions.items()]

    return QueryCacheStats(
        total_queries=len(entries),
        active_queries=sum(1 for e in entries if e.fetch_status == FetchStatus.FETCHING),
        stale_queries=sum(1 for e in entries if is_stale(e, now)),
        errored_queries=sum(1 for e in entries if e.status == QueryStatus.ERROR),
        average_fetch_duration=mean([e.fetch_duration or 0.0 for e in timed]),
        cache_hit_rate=cache_hit_rate(len(entries), executions),
        slowest_queries=tuple(top_k(timed, key=lambda e: e.fetch_duration or 0.0, k=k)),
        most_frequent_queries=tuple(top_k(frequencies, key=lambda f: f.count, k=k)),
    )


# ---------------------------------------------------------------------------
# Session summary
# ---------------------------------------------------------------------------


def summarize(
    resources: Sequence[ResourceTiming],
    api_calls: Sequence[APICall],
    long_frames: Sequence[LongFrame],
    query_stats: QueryCacheStats | None = None,
) -> PerformanceSummary:
    """Roll the logs up into a ``PerformanceSummary``."""
    return PerformanceSummary(
        total_resources=len(resources),
        blocking_resources=len(blocking_resources(resources)),
        total_transfer_size=total_transfer_size(resources),
        average_compression_ratio=average_compression_ratio(resources),
        api_call_count=len(api_calls),
        average_api_latency=average_latency(api_calls),
        long_frame_count=len(long_frames),
        total_blocking_time=total_blocking_time(long_frames),
        query_count=query_stats.total_queries if query_stats else None,
        query_cache_hit_rate=query_stats.cache_hit_rate if query_stats else None,
        average_query_duration=query_stats.average_fetch_duration if query_stats else None,
    )
