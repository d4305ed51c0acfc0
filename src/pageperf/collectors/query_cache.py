"""Data-fetch cache activity.

Works with any cache exposing ``subscribe(callback) -> unsubscribe`` and
``get_all()`` (a TanStack-style query cache, or a client whose
``get_query_cache()`` returns one). Cache events look like::

    {"type": "updated", "query": {"queryKey": [...], "state": {...}, "options": {...}}}

Only ``updated`` events are state transitions; every other event type is
ignored. Each update bumps a per-key execution counter, which drives the
cache-hit-rate statistic.
"""

from __future__ import annotations

import json
from typing import Any

from pageperf import aggregator
from pageperf.collectors.base import IntervalCollector
from pageperf.config import get_settings
from pageperf.fields import get_field, get_number, get_optional_number, get_str, get_window
from pageperf.logging import get_logger
from pageperf.models import FetchStatus, QueryCacheEntry, QueryCacheStats, QueryStatus

LOG = get_logger(__name__)

UPDATED_EVENT = "updated"


def serialize_query_key(query_key: Any) -> str:
    """Serialize a cache key: strings as-is, lists as compact JSON."""
    if query_key is None:
        return ""
    if isinstance(query_key, str):
        return query_key
    if isinstance(query_key, (list, tuple)):
        return json.dumps(list(query_key), separators=(",", ":"), default=str)
    return str(query_key)


class QueryCacheCollector(IntervalCollector[QueryCacheEntry]):
    """Collects query-cache state transitions."""

    name = "query_cache"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # dict keeps first-seen key order for stable most-frequent ranking
        self._executions: dict[str, int] = {}

    @property
    def executions(self) -> dict[str, int]:
        """Update-event count per serialized query key."""
        return dict(self._executions)

    def attach(self, cache: Any) -> bool:
        """Subscribe to *cache* and snapshot the queries it already holds.

        Args:
            cache: A query cache, or a client exposing ``get_query_cache()``.

        Returns:
            True if the collector became active by this call.
        """
        get_query_cache = getattr(cache, "get_query_cache", None)
        if callable(get_query_cache):
            cache = get_query_cache()

        if not self.initialize(cache):
            return False

        get_all = getattr(cache, "get_all", None)
        snapshot = get_all() if callable(get_all) else []
        for query in snapshot:
            self._admit(self._entry(query, timed=False))
        LOG.info("query_cache_attached", snapshot=len(snapshot))
        return True

    def record(self, raw: Any) -> QueryCacheEntry | None:
        """Ingest one cache event. Non-update events are ignored."""
        if not self._accepting():
            return None
        entry = self._normalize(raw)
        if entry is None:
            return None
        self._executions[entry.query_key] = self._executions.get(entry.query_key, 0) + 1
        return self._admit(entry)

    def stats(self, now: float | None = None, k: int = aggregator.DEFAULT_TOP_K) -> QueryCacheStats:
        """Statistics over the current log; *now* defaults to the session clock."""
        return aggregator.query_cache_stats(
            self.records(),
            self._executions,
            self._clock() if now is None else now,
            k,
        )

    def clear(self) -> None:
        super().clear()
        self._executions.clear()

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _normalize(self, raw: Any) -> QueryCacheEntry | None:
        event_type = get_str(raw, "type", default=UPDATED_EVENT)
        if event_type != UPDATED_EVENT:
            LOG.debug("query_event_ignored", event_type=event_type)
            return None
        query = get_field(raw, "query", default=raw)
        return self._entry(query, timed=True)

    def _entry(self, query: Any, timed: bool) -> QueryCacheEntry:
        state = get_field(query, "state", default=query)
        options = get_field(query, "options")
        now = self._clock()

        data_updated_at = get_number(state, "data_updated_at")
        fetch_start = get_optional_number(query, "fetch_start_time", "_fetch_start_time")

        duration: float | None = None
        if timed:
            duration = get_optional_number(query, "fetch_duration")
            if duration is None and fetch_start is not None and data_updated_at > 0:
                duration = now - fetch_start
            if duration is not None:
                duration = max(0.0, duration)

        if fetch_start is not None:
            start_time = fetch_start
        elif duration is not None and data_updated_at > 0:
            start_time = data_updated_at - duration
        else:
            start_time = now

        return QueryCacheEntry(
            query_key=serialize_query_key(get_field(query, "query_key")),
            status=get_str(state, "status", default=QueryStatus.PENDING),
            fetch_status=get_str(state, "fetch_status", default=FetchStatus.IDLE),
            data_updated_at=data_updated_at,
            error_updated_at=get_number(state, "error_updated_at"),
            cache_time=get_window(query, "cache_time", "gc_time") or get_settings().default_cache_time_ms,
            stale_time=get_window(options, "stale_time"),
            start_time=start_time,
            fetch_duration=duration,
        )

    def _after_record(self, record: QueryCacheEntry) -> None:
        duration = record.fetch_duration
        if duration is not None and duration > get_settings().slow_query_ms:
            LOG.warning(
                "slow_query",
                query_key=record.query_key,
                duration_ms=round(duration, 2),
                status=record.status,
                blocked_lcp=record.blocked_lcp,
                blocked_inp=record.blocked_inp,
            )
        if record.blocked_lcp or record.blocked_inp:
            LOG.info(
                "performance_impacting_query",
                query_key=record.query_key,
                blocked_lcp=record.blocked_lcp,
                blocked_inp=record.blocked_inp,
            )
