"""The performance monitor: one engine per page session.

A ``PerformanceMonitor`` owns the five collectors, the correlation index
shared by the API-call and query-cache logs, the navigation and hydration
records, and the session identity. It wires largest-paint and interaction
revisions from the vitals collector into the correlation index, and builds
immutable ``PerformanceSession`` snapshots on demand.

Example:
    >>> monitor = PerformanceMonitor(Framework.REACT, url="https://shop.example")
    >>> monitor.initialize()
    True
    >>> metric = monitor.vitals.record({"name": "LCP", "value": 1200.0, "rating": "good"})
    >>> report = monitor.generate_report()
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console

from pageperf import aggregator, delivery
from pageperf.clock import Clock, epoch_ms, monotonic_clock
from pageperf.collectors import (
    ApiCallCollector,
    Collector,
    LongFrameCollector,
    ObservationSource,
    QueryCacheCollector,
    ResourceCollector,
    VitalsCollector,
)
from pageperf.collectors.vitals import interaction_instant, paint_instant
from pageperf.console import print_summary
from pageperf.correlation import CorrelationIndex
from pageperf.fields import get_number, get_str
from pageperf.logging import get_logger, session_context
from pageperf.models import (
    Framework,
    HydrationMetric,
    LCPAttribution,
    MetricName,
    NavigationMetric,
    PerformanceSession,
    VitalsMetric,
)
from pageperf.report.markdown import MarkdownReporter, ReportOptions

LOG = get_logger(__name__)


@dataclass
class MonitorSources:
    """Observation sources handed to ``PerformanceMonitor.initialize``.

    A source left as None puts its collector in push mode: the caller feeds
    raw events to the collector's ``record`` directly.

    Attributes:
        vitals: Paint / shift / responsiveness metric source.
        resources: Resource-timing source.
        long_frames: Long-animation-frame source.
        long_tasks: Long-task source, used when *long_frames* is missing or unavailable.
        navigation: Navigation-timing entry recorded at initialization.
    """

    vitals: ObservationSource | None = None
    resources: ObservationSource | None = None
    long_frames: ObservationSource | None = None
    long_tasks: ObservationSource | None = None
    navigation: Any = None


def generate_session_id() -> str:
    """``session_<epoch ms>_<9 hex chars>``."""
    return f"session_{int(epoch_ms())}_{uuid.uuid4().hex[:9]}"


def coerce_framework(value: Framework | str) -> Framework:
    """Map *value* onto ``Framework``; unknown names become ``OTHER``."""
    try:
        return Framework(str(value).lower())
    except ValueError:
        LOG.warning("unknown_framework", framework=str(value))
        return Framework.OTHER


def navigation_metric(entry: Any) -> NavigationMetric:
    """Normalize a navigation-timing entry and derive its phase durations."""

    def n(name: str) -> float:
        return get_number(entry, name)

    return NavigationMetric(
        navigation_type=get_str(entry, "navigation_type", "type", default="navigate"),
        domain_lookup_start=n("domain_lookup_start"),
        domain_lookup_end=n("domain_lookup_end"),
        connect_start=n("connect_start"),
        connect_end=n("connect_end"),
        request_start=n("request_start"),
        response_start=n("response_start"),
        response_end=n("response_end"),
        dom_interactive=n("dom_interactive"),
        dom_content_loaded_event_start=n("dom_content_loaded_event_start"),
        dom_content_loaded_event_end=n("dom_content_loaded_event_end"),
        dom_complete=n("dom_complete"),
        load_event_start=n("load_event_start"),
        load_event_end=n("load_event_end"),
        dns_time=n("domain_lookup_end") - n("domain_lookup_start"),
        tcp_time=n("connect_end") - n("connect_start"),
        ttfb=n("response_start") - n("request_start"),
        download_time=n("response_end") - n("response_start"),
        dom_processing_time=n("dom_complete") - n("dom_interactive"),
        page_load_time=n("load_event_end") - n("fetch_start"),
    )


class PerformanceMonitor:
    """Correlation and aggregation engine for one page session.

    Args:
        framework: UI framework hosting the page.
        url: Page URL recorded on the session and on each vitals revision.
        user_agent: User agent recorded likewise.
        clock: Session clock in ms; defaults to a monotonic clock started now.
    """

    def __init__(
        self,
        framework: Framework | str = Framework.OTHER,
        *,
        url: str = "",
        user_agent: str = "",
        clock: Clock | None = None,
    ) -> None:
        self.framework = coerce_framework(framework)
        self.url = url
        self.user_agent = user_agent
        self.session_id = generate_session_id()
        self.created_at = epoch_ms()
        self._clock: Clock = clock or monotonic_clock()

        self.correlation = CorrelationIndex()
        self.vitals = VitalsCollector(self._clock, url=url, user_agent=user_agent)
        self.resources = ResourceCollector(self._clock)
        self.long_frames = LongFrameCollector(self._clock)
        self.api_calls = ApiCallCollector(self._clock, self.correlation)
        self.query_cache = QueryCacheCollector(self._clock, self.correlation)
        self.reporter = MarkdownReporter()

        self.navigation: NavigationMetric | None = None
        self.hydration: HydrationMetric | None = None
        self._hydration_start: float | None = None
        self._initialized = False
        self._query_cache_attached = False

        self.vitals.on_record(self._correlate_vitals)

    @property
    def collectors(self) -> tuple[Collector[Any], ...]:
        return (self.vitals, self.resources, self.long_frames, self.api_calls, self.query_cache)

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, sources: MonitorSources | None = None) -> bool:
        """Start the vitals, resource, long-frame and API-call collectors.

        A collector whose source is unavailable stays inactive; the others
        start regardless.

        Returns:
            True if the monitor was initialized by this call.
        """
        if self._initialized:
            LOG.warning("monitor_already_initialized", session_id=self.session_id)
            return False

        sources = sources or MonitorSources()
        with session_context(self.session_id):
            self.vitals.initialize(sources.vitals)
            self.resources.initialize(sources.resources)
            self.long_frames.initialize(sources.long_frames, fallback=sources.long_tasks)
            self.api_calls.initialize()
        if sources.navigation is not None:
            self.record_navigation(sources.navigation)

        self._initialized = True
        LOG.info(
            "monitor_initialized",
            session_id=self.session_id,
            framework=str(self.framework),
            active=[c.name for c in self.collectors if c.initialized],
        )
        return True

    def initialize_query_client(self, client: Any) -> bool:
        """Attach the query-cache collector to *client* (a cache or a query client)."""
        if self._query_cache_attached:
            LOG.warning("query_client_already_initialized", session_id=self.session_id)
            return False
        with session_context(self.session_id):
            if not self.query_cache.attach(client):
                return False
        self._query_cache_attached = True
        return True

    def disconnect(self) -> None:
        """Stop every collector. Recorded data is kept."""
        for collector in self.collectors:
            collector.disconnect()
        self._initialized = False
        LOG.info("monitor_disconnected", session_id=self.session_id)

    def clear(self) -> None:
        """Drop all recorded data and correlation instants."""
        for collector in self.collectors:
            collector.clear()
        self.correlation.reset()
        self.navigation = None
        self.hydration = None
        self._hydration_start = None
        LOG.info("monitor_cleared", session_id=self.session_id)

    # ------------------------------------------------------------------
    # Navigation and hydration
    # ------------------------------------------------------------------

    def record_navigation(self, entry: Any) -> NavigationMetric:
        """Store the page's navigation timing."""
        self.navigation = navigation_metric(entry)
        return self.navigation

    def mark_hydration_start(self) -> float:
        """Capture the hydration start instant."""
        self._hydration_start = self._clock()
        LOG.info("hydration_started", framework=str(self.framework), at=self._hydration_start)
        return self._hydration_start

    def mark_hydration_end(self, components_hydrated: int = 0) -> HydrationMetric | None:
        """Close the hydration window.

        The latest LCP revision is reported as "before" hydration when it
        arrived before the end instant and as "after" otherwise.

        Returns:
            The hydration record, or None if no start was marked.
        """
        if self._hydration_start is None:
            LOG.warning("hydration_end_without_start", session_id=self.session_id)
            return None

        end = self._clock()
        lcp = self.vitals.latest(MetricName.LCP)
        element = None
        if lcp is not None and isinstance(lcp.attribution, LCPAttribution):
            element = lcp.attribution.element

        self.hydration = HydrationMetric(
            start_time=self._hydration_start,
            end_time=end,
            duration=end - self._hydration_start,
            components_hydrated=components_hydrated,
            framework=self.framework,
            lcp_before_hydration=lcp.value if lcp is not None and lcp.timestamp < end else None,
            lcp_after_hydration=lcp.value if lcp is not None and lcp.timestamp >= end else None,
            lcp_element=element,
        )
        LOG.info(
            "hydration_completed",
            framework=str(self.framework),
            duration_ms=round(self.hydration.duration, 2),
            components=components_hydrated,
        )
        return self.hydration

    # ------------------------------------------------------------------
    # Snapshot and outputs
    # ------------------------------------------------------------------

    def get_performance_session(self) -> PerformanceSession:
        """Build an immutable snapshot of everything recorded so far."""
        resources = self.resources.records()
        api_calls = self.api_calls.records()
        long_frames = self.long_frames.records()
        query_stats = self.query_cache.stats() if self._query_cache_attached else None

        return PerformanceSession(
            session_id=self.session_id,
            url=self.url,
            timestamp=self.created_at,
            user_agent=self.user_agent,
            framework=self.framework,
            web_vitals=tuple(self.vitals.records()),
            navigation=self.navigation,
            hydration=self.hydration,
            resources=tuple(resources),
            long_frames=tuple(long_frames),
            api_calls=tuple(api_calls),
            queries=tuple(self.query_cache.records()),
            query_cache=query_stats,
            summary=aggregator.summarize(resources, api_calls, long_frames, query_stats),
        )

    def generate_report(self, options: ReportOptions | None = None) -> str:
        """Render the current session as Markdown; empty before initialization."""
        if not any(c.initialized for c in self.collectors):
            LOG.warning("report_before_initialize", session_id=self.session_id)
            return ""
        return self.reporter.generate_report(self.get_performance_session(), options)

    def save_report(self, options: ReportOptions | None = None, directory: Path | None = None) -> Path | None:
        """Render and write the report; returns the file path, or None."""
        report = self.generate_report(options)
        if not report:
            return None
        with session_context(self.session_id):
            return delivery.save_report(report, directory)

    def send_to_analytics(self, endpoint: str, **kwargs: Any) -> bool:
        """Best-effort POST of the session snapshot to *endpoint*."""
        return delivery.send_session(self.get_performance_session(), endpoint, **kwargs)

    def print_summary(self, console: Console | None = None) -> None:
        print_summary(self.get_performance_session(), console=console)

    # ------------------------------------------------------------------
    # Correlation wiring
    # ------------------------------------------------------------------

    def _correlate_vitals(self, metric: VitalsMetric) -> None:
        paint = paint_instant(metric)
        if paint is not None:
            self.correlation.set_largest_paint_instant(paint)
        interaction = interaction_instant(metric)
        if interaction is not None:
            self.correlation.record_interaction_instant(interaction)
