"""Tests for the collector lifecycle shared by every collector."""

from __future__ import annotations

from unittest.mock import patch

from pageperf.collectors import ResourceCollector


class TestLifecycle:
    """Tests for initialize / disconnect."""

    def test_push_mode(self) -> None:
        collector = ResourceCollector()
        assert collector.initialize() is True
        assert collector.initialized

    def test_records_dropped_before_initialize(self) -> None:
        collector = ResourceCollector()
        assert collector.record({"name": "a.js"}) is None
        assert len(collector) == 0

    def test_double_initialize_warns(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        with patch("pageperf.collectors.base.LOG") as mock_log:
            assert collector.initialize() is False
            mock_log.warning.assert_called_once()
            assert mock_log.warning.call_args[0][0] == "collector_already_initialized"

    def test_subscribes_to_source(self, source) -> None:
        collector = ResourceCollector()
        collector.initialize(source)

        source.push({"name": "a.js", "initiatorType": "script"})
        assert [r.name for r in collector.records()] == ["a.js"]

    def test_unavailable_source_leaves_collector_inactive(self, unavailable_source) -> None:
        collector = ResourceCollector()
        with patch("pageperf.collectors.base.LOG") as mock_log:
            assert collector.initialize(unavailable_source) is False
            assert mock_log.warning.call_args[0][0] == "capture_unavailable"
            assert mock_log.warning.call_args[1]["source"] == "long-animation-frame"
        assert not collector.initialized
        assert collector.record({"name": "a.js"}) is None

    def test_disconnect_keeps_log(self, source) -> None:
        collector = ResourceCollector()
        collector.initialize(source)
        source.push({"name": "a.js"})

        collector.disconnect()
        assert source.unsubscribed
        assert not collector.initialized
        assert len(collector) == 1
        assert collector.record({"name": "b.js"}) is None

    def test_can_reinitialize_after_disconnect(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        collector.disconnect()
        assert collector.initialize() is True


class TestObservers:
    """Tests for record notifications."""

    def test_observers_see_new_records_in_order(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        seen: list[str] = []
        collector.on_record(lambda r: seen.append(r.name))

        collector.record({"name": "a.js"})
        collector.record({"name": "b.js"})
        assert seen == ["a.js", "b.js"]

    def test_failing_observer_does_not_block_ingestion(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        seen: list[str] = []

        def _boom(record) -> None:
            raise ValueError("observer bug")

        collector.on_record(_boom)
        collector.on_record(lambda r: seen.append(r.name))

        with patch("pageperf.signals.LOG"):
            record = collector.record({"name": "a.js"})
        assert record is not None
        assert seen == ["a.js"]
        assert len(collector) == 1

    def test_unsubscribe(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        seen: list[str] = []
        unsubscribe = collector.on_record(lambda r: seen.append(r.name))
        unsubscribe()
        collector.record({"name": "a.js"})
        assert seen == []


class TestReadSide:
    """Tests for records / query / top_k / clear."""

    def test_records_returns_copy_of_log(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        collector.record({"name": "a.js"})
        collector.records().clear()
        assert len(collector) == 1

    def test_query(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        collector.record({"name": "a.js", "duration": 5})
        collector.record({"name": "b.js", "duration": 50})
        assert [r.name for r in collector.query(lambda r: r.duration > 10)] == ["b.js"]

    def test_top_k_none_sorts_last(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        collector.record({"name": "plain.js", "encodedBodySize": 0})
        collector.record({"name": "gz.js", "encodedBodySize": 10, "decodedBodySize": 30})
        result = collector.top_k("compression_ratio", 2)
        assert [r.name for r in result] == ["gz.js", "plain.js"]

    def test_clear(self) -> None:
        collector = ResourceCollector()
        collector.initialize()
        collector.record({"name": "a.js"})
        collector.clear()
        assert collector.records() == []
        assert collector.initialized
