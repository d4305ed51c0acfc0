"""Tests for the query cache collector."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import pytest

from pageperf.collectors import QueryCacheCollector, serialize_query_key


class FakeQueryCache:
    """In-memory query cache exposing the subscribe / get_all protocol."""

    def __init__(self, queries: list[dict] | None = None) -> None:
        self.queries = queries or []
        self.listener: Callable[[Any], Any] | None = None

    def subscribe(self, callback: Callable[[Any], Any]) -> Callable[[], None]:
        self.listener = callback

        def _unsubscribe() -> None:
            self.listener = None

        return _unsubscribe

    def get_all(self) -> list[dict]:
        return list(self.queries)

    def notify(self, event: dict) -> Any:
        assert self.listener is not None
        return self.listener(event)


class FakeQueryClient:
    def __init__(self, cache: FakeQueryCache) -> None:
        self._cache = cache

    def get_query_cache(self) -> FakeQueryCache:
        return self._cache


def _query(key: Any, status: str = "success", data_updated_at: float = 0, **extra: Any) -> dict:
    query = {
        "queryKey": key,
        "state": {"status": status, "fetchStatus": "idle", "dataUpdatedAt": data_updated_at},
        "options": {"staleTime": 1000},
    }
    query.update(extra)
    return query


@pytest.fixture
def cache() -> FakeQueryCache:
    return FakeQueryCache([_query(["todos"], data_updated_at=50), _query("user")])


@pytest.fixture
def queries(clock) -> QueryCacheCollector:
    return QueryCacheCollector(clock)


class TestSerializeQueryKey:
    """Tests for serialize_query_key."""

    def test_string(self) -> None:
        assert serialize_query_key("user") == "user"

    def test_list_is_compact_json(self) -> None:
        assert serialize_query_key(["todos", {"page": 1}]) == '["todos",{"page":1}]'

    def test_none(self) -> None:
        assert serialize_query_key(None) == ""


class TestAttach:
    """Tests for attaching to a cache."""

    def test_snapshots_existing_queries(self, queries, cache) -> None:
        assert queries.attach(cache) is True
        assert [e.query_key for e in queries.records()] == ['["todos"]', "user"]
        # Snapshots are not executions
        assert queries.executions == {}
        assert all(e.fetch_duration is None for e in queries.records())

    def test_accepts_client(self, queries, cache) -> None:
        assert queries.attach(FakeQueryClient(cache)) is True
        assert cache.listener is not None
        assert len(queries) == 2

    def test_double_attach(self, queries, cache) -> None:
        queries.attach(cache)
        with patch("pageperf.collectors.base.LOG"):
            assert queries.attach(cache) is False
        assert len(queries) == 2

    def test_snapshot_defaults(self, queries) -> None:
        queries.attach(FakeQueryCache([{"queryKey": "bare"}]))
        entry = queries.records()[0]
        assert entry.status == "pending"
        assert entry.fetch_status == "idle"
        assert entry.cache_time == 300_000
        assert entry.stale_time == 0


class TestUpdates:
    """Tests for cache update events."""

    def test_updated_event_is_timed(self, queries, cache, clock) -> None:
        queries.attach(cache)
        clock.advance(400)
        entry = cache.notify(
            {
                "type": "updated",
                "query": _query(["todos"], data_updated_at=395, fetchStartTime=100, gcTime=60_000),
            }
        )
        assert entry.fetch_duration == 300
        assert entry.start_time == 100
        assert entry.cache_time == 60_000
        assert queries.executions == {'["todos"]': 1}

    def test_explicit_fetch_duration(self, queries, cache) -> None:
        queries.attach(cache)
        entry = cache.notify({"type": "updated", "query": _query("user", data_updated_at=900, fetchDuration=250)})
        assert entry.fetch_duration == 250
        assert entry.start_time == 650

    def test_other_events_are_ignored(self, queries, cache) -> None:
        queries.attach(cache)
        with patch("pageperf.collectors.query_cache.LOG") as mock_log:
            assert cache.notify({"type": "added", "query": _query("user")}) is None
            assert mock_log.debug.call_args[0][0] == "query_event_ignored"
        assert len(queries) == 2
        assert queries.executions == {}

    def test_counts_executions_per_key(self, queries, cache) -> None:
        queries.attach(cache)
        for key in ("user", ["todos"], "user"):
            cache.notify({"type": "updated", "query": _query(key)})
        assert queries.executions == {"user": 2, '["todos"]': 1}
        assert len(queries) == 5

    def test_inactive_collector_ignores_events(self, queries) -> None:
        assert queries.record({"type": "updated", "query": _query("user")}) is None
        assert queries.executions == {}

    def test_slow_query_logged(self, queries, cache) -> None:
        queries.attach(cache)
        queries.correlation.set_largest_paint_instant(500)
        with patch("pageperf.collectors.query_cache.LOG") as mock_log:
            cache.notify(
                {
                    "type": "updated",
                    "query": _query("report", data_updated_at=2000, fetchStartTime=0, fetchDuration=1800),
                }
            )
            assert mock_log.warning.call_args[0][0] == "slow_query"
            assert mock_log.info.call_args[0][0] == "performance_impacting_query"


class TestStats:
    """Tests for stats and clear."""

    def test_stats(self, queries, cache, clock) -> None:
        queries.attach(cache)
        cache.notify({"type": "updated", "query": _query("user", data_updated_at=10, fetchDuration=40)})
        cache.notify({"type": "updated", "query": _query("user", status="error", fetchDuration=60)})
        clock.advance(5000)

        stats = queries.stats()
        assert stats.total_queries == 4
        assert stats.errored_queries == 1
        # ["todos"] at 50 and user at 10 are older than their 1000ms stale time
        assert stats.stale_queries == 2
        assert stats.average_fetch_duration == 50
        assert stats.cache_hit_rate == pytest.approx((2 - 4) / 2)
        assert [e.fetch_duration for e in stats.slowest_queries] == [60, 40]
        assert [(f.query_key, f.count) for f in stats.most_frequent_queries] == [("user", 2)]

    def test_infinite_stale_time_is_never_stale(self, queries, clock) -> None:
        queries.attach(FakeQueryCache())
        clock.advance(10_000)
        entry = queries.record(
            {
                "type": "updated",
                "query": _query("config", data_updated_at=5000, options={"staleTime": math.inf}),
            }
        )
        assert entry.stale_time == math.inf
        assert queries.stats().stale_queries == 0

    def test_invalid_stale_time_falls_back_to_zero(self, queries, clock) -> None:
        queries.attach(FakeQueryCache())
        clock.advance(10_000)
        entry = queries.record(
            {
                "type": "updated",
                "query": _query("config", data_updated_at=5000, options={"staleTime": float("nan")}),
            }
        )
        assert entry.stale_time == 0
        assert queries.stats().stale_queries == 1

    def test_clear_resets_executions(self, queries, cache) -> None:
        queries.attach(cache)
        cache.notify({"type": "updated", "query": _query("user")})
        queries.clear()
        assert len(queries) == 0
        assert queries.executions == {}
        assert queries.initialized
