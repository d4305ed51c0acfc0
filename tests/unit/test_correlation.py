"""Tests for the interval arena and correlation index."""

from __future__ import annotations

import itertools
from dataclasses import replace
from unittest.mock import patch

import pytest

from pageperf.correlation import Anchor, CorrelationIndex, IntervalArena, overlaps
from pageperf.models import APICall, QueryCacheEntry


def _call(start: float, duration: float, url: str = "/api") -> APICall:
    return APICall(url=url, method="GET", start_time=start, duration=duration, ttfb=duration, status=200, size=0)


def _query(start: float, duration: float | None) -> QueryCacheEntry:
    return QueryCacheEntry(
        query_key="key",
        status="success",
        fetch_status="idle",
        data_updated_at=0.0,
        error_updated_at=0.0,
        cache_time=300000.0,
        stale_time=0.0,
        start_time=start,
        fetch_duration=duration,
    )


def _admit(index: CorrelationIndex, arena: IntervalArena, record) -> int:
    position = arena.append(record)
    index.evaluate(arena, position)
    return position


class TestOverlaps:
    """Tests for the strict overlap predicate."""

    def test_instant_inside_span(self) -> None:
        assert overlaps(100.0, 300.0, 250.0)

    def test_instant_at_start_does_not_overlap(self) -> None:
        assert not overlaps(100.0, 300.0, 100.0)

    def test_instant_at_end_does_not_overlap(self) -> None:
        assert not overlaps(100.0, 300.0, 400.0)

    def test_zero_duration_never_overlaps(self) -> None:
        assert not overlaps(100.0, 0.0, 100.0)


class TestIntervalArena:
    """Tests for IntervalArena ownership and views."""

    def test_append_returns_stable_indices(self) -> None:
        arena: IntervalArena[APICall] = IntervalArena("api")
        assert arena.append(_call(0, 10)) == 0
        assert arena.append(_call(5, 10)) == 1
        assert len(arena) == 2

    def test_views_are_detached_copies(self) -> None:
        """Mutating a view never changes the stored record."""
        arena: IntervalArena[APICall] = IntervalArena("api")
        arena.append(_call(0, 10))
        view = arena.view(0)
        view.blocked_lcp = True
        assert arena.view(0).blocked_lcp is False

    def test_mark_upgrades_once(self) -> None:
        arena: IntervalArena[APICall] = IntervalArena("api")
        arena.append(_call(0, 10))
        assert arena.mark(0, Anchor.LARGEST_PAINT) is True
        assert arena.mark(0, Anchor.LARGEST_PAINT) is False
        assert arena.is_marked(0, Anchor.LARGEST_PAINT)
        assert not arena.is_marked(0, Anchor.INTERACTION)

    def test_query_span_uses_fetch_duration(self) -> None:
        arena: IntervalArena[QueryCacheEntry] = IntervalArena("queries")
        arena.append(_query(10.0, None))
        arena.append(_query(10.0, 40.0))
        assert arena.span(0) == (10.0, 0.0)
        assert arena.span(1) == (10.0, 40.0)

    def test_clear(self) -> None:
        arena: IntervalArena[APICall] = IntervalArena("api")
        arena.append(_call(0, 10))
        arena.clear()
        assert len(arena) == 0
        assert arena.views() == []


class TestLargestPaintCorrelation:
    """Tests for set_largest_paint_instant."""

    def test_call_spanning_paint_becomes_blocking_after_paint(self) -> None:
        """A call from 100ms to 400ms blocks a paint at 250ms only once the paint is known."""
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)

        _admit(index, arena, _call(100, 300))
        assert arena.view(0).blocked_lcp is False

        assert index.set_largest_paint_instant(250) == 1
        assert arena.view(0).blocked_lcp is True

    def test_call_after_paint_never_blocks(self) -> None:
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)

        _admit(index, arena, _call(500, 50))
        index.set_largest_paint_instant(250)
        assert arena.view(0).blocked_lcp is False

    def test_record_admitted_after_paint_is_checked_immediately(self) -> None:
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)
        index.set_largest_paint_instant(250)

        _admit(index, arena, _call(100, 300))
        _admit(index, arena, _call(500, 50))
        assert arena.view(0).blocked_lcp is True
        assert arena.view(1).blocked_lcp is False

    def test_resetting_paint_never_downgrades(self) -> None:
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)
        _admit(index, arena, _call(100, 300))

        index.set_largest_paint_instant(250)
        index.set_largest_paint_instant(900)
        assert arena.view(0).blocked_lcp is True
        assert index.largest_paint_instant == 900

    def test_covers_every_registered_arena(self) -> None:
        index = CorrelationIndex()
        calls: IntervalArena[APICall] = IntervalArena("api")
        queries: IntervalArena[QueryCacheEntry] = IntervalArena("queries")
        index.register(calls)
        index.register(queries)
        _admit(index, calls, _call(100, 300))
        _admit(index, queries, _query(200, 100))

        assert index.set_largest_paint_instant(250) == 2
        assert calls.view(0).blocked_lcp
        assert queries.view(0).blocked_lcp

    def test_query_without_duration_never_blocks(self) -> None:
        index = CorrelationIndex()
        queries: IntervalArena[QueryCacheEntry] = IntervalArena("queries")
        index.register(queries)
        _admit(index, queries, _query(200, None))
        index.set_largest_paint_instant(200)
        assert queries.view(0).blocked_lcp is False

    def test_invalid_instant_is_ignored(self) -> None:
        index = CorrelationIndex()
        with patch("pageperf.correlation.LOG") as mock_log:
            assert index.set_largest_paint_instant(float("nan")) == 0
            mock_log.warning.assert_called_once()
            assert mock_log.warning.call_args[0][0] == "invalid_paint_instant_ignored"
        assert index.largest_paint_instant is None


class TestInteractionCorrelation:
    """Tests for record_interaction_instant."""

    def test_checks_all_known_instants(self) -> None:
        """A record overlapping only an earlier instant is still flagged by the full re-scan."""
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)

        index.record_interaction_instant(1000)
        _admit(index, arena, _call(100, 300))
        assert arena.view(0).blocked_inp is False

        index.record_interaction_instant(200)
        assert arena.view(0).blocked_inp is True

    def test_new_record_checked_against_every_instant(self) -> None:
        index = CorrelationIndex()
        arena: IntervalArena[APICall] = IntervalArena("api")
        index.register(arena)
        index.record_interaction_instant(50)
        index.record_interaction_instant(700)

        _admit(index, arena, _call(600, 200))
        assert arena.view(0).blocked_inp is True

    def test_duplicate_instants_are_ignored(self) -> None:
        index = CorrelationIndex()
        index.record_interaction_instant(300)
        assert index.record_interaction_instant(300) == 0
        assert index.interaction_instants == (300.0,)

    def test_reset_forgets_instants(self) -> None:
        index = CorrelationIndex()
        index.set_largest_paint_instant(10)
        index.record_interaction_instant(20)
        index.reset()
        assert index.largest_paint_instant is None
        assert index.interaction_instants == ()


class TestOrderIndependence:
    """Every interleaving of records and anchors ends with the same flags."""

    RECORDS = [
        ("api", _call(100, 300)),  # spans paint 250 and interaction 350
        ("api", _call(500, 50)),  # spans nothing
        ("api", _call(1100, 200)),  # spans interaction 1200
        ("query", _query(200, 100)),  # spans paint 250
        ("query", _query(340, None)),  # no duration, never blocks
    ]
    ANCHORS = [("paint", 250.0), ("interaction", 350.0), ("interaction", 1200.0)]
    EXPECTED = [(True, True), (False, False), (False, True), (True, False), (False, False)]

    def _run(self, order: tuple[int, ...]) -> list[tuple[bool, bool]]:
        index = CorrelationIndex()
        arenas = {"api": IntervalArena("api"), "query": IntervalArena("query")}
        for arena in arenas.values():
            index.register(arena)

        positions: dict[int, tuple[str, int]] = {}
        seen: dict[int, tuple[bool, bool]] = {}
        events = [("record", i) for i in range(len(self.RECORDS))]
        events += [("anchor", i) for i in range(len(self.ANCHORS))]

        for step in order:
            kind, i = events[step]
            if kind == "record":
                arena_name, record = self.RECORDS[i]
                positions[i] = (arena_name, _admit(index, arenas[arena_name], replace(record)))
            else:
                anchor, instant = self.ANCHORS[i]
                if anchor == "paint":
                    index.set_largest_paint_instant(instant)
                else:
                    index.record_interaction_instant(instant)

            # Monotonicity: a flag seen True is never observed False afterwards
            for record_id, (arena_name, position) in positions.items():
                view = arenas[arena_name].view(position)
                flags = (view.blocked_lcp, view.blocked_inp)
                before = seen.get(record_id, (False, False))
                assert flags[0] or not before[0]
                assert flags[1] or not before[1]
                seen[record_id] = flags

        return [
            (arenas[name].view(pos).blocked_lcp, arenas[name].view(pos).blocked_inp)
            for name, pos in (positions[i] for i in range(len(self.RECORDS)))
        ]

    def test_all_interleavings_agree(self) -> None:
        total = len(self.RECORDS) + len(self.ANCHORS)
        # Sample every 37th of the 8! orderings
        for n, order in enumerate(itertools.permutations(range(total))):
            if n % 37:
                continue
            assert self._run(order) == self.EXPECTED, order

    @pytest.mark.parametrize("anchors_first", [True, False])
    def test_anchors_before_or_after_records(self, anchors_first: bool) -> None:
        records = list(range(len(self.RECORDS)))
        anchors = list(range(len(self.RECORDS), len(self.RECORDS) + len(self.ANCHORS)))
        order = tuple(anchors + records) if anchors_first else tuple(records + anchors)
        assert self._run(order) == self.EXPECTED
