"""Session data model.

Every record produced by a collector is a dataclass defined here. Records are
immutable once appended, with one exception: the interval-bearing records
(``APICall`` and ``QueryCacheEntry``) carry two blocking flags that the
correlation index upgrades in place. Those records are owned by an
``IntervalArena`` and readers only ever receive copies.

All instants are milliseconds on the session clock (see ``pageperf.clock``).
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class Framework(StrEnum):
    """UI framework hosting the observed page."""

    REACT = "react"
    VUE = "vue"
    OTHER = "other"


class MetricName(StrEnum):
    """The five paint/responsiveness metrics."""

    LCP = "LCP"  # Largest Contentful Paint (ms)
    CLS = "CLS"  # Cumulative Layout Shift (unitless)
    INP = "INP"  # Interaction to Next Paint (ms)
    FCP = "FCP"  # First Contentful Paint (ms)
    TTFB = "TTFB"  # Time to First Byte (ms)


class Rating(StrEnum):
    """Qualitative rating assigned to a metric value by the capture layer."""

    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"
    UNKNOWN = "unknown"


class RenderBlockingStatus(StrEnum):
    """Render-blocking classification of a resource."""

    BLOCKING = "blocking"
    NON_BLOCKING = "non-blocking"


class QueryStatus(StrEnum):
    """Data status of a cached query."""

    PENDING = "pending"
    ERROR = "error"
    SUCCESS = "success"


class FetchStatus(StrEnum):
    """Network status of a cached query."""

    FETCHING = "fetching"
    PAUSED = "paused"
    IDLE = "idle"


# ---------------------------------------------------------------------------
# Vitals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LCPAttribution:
    """Breakdown of the largest-paint metric."""

    element: str | None = None
    url: str | None = None
    time_to_first_byte: float = 0.0
    resource_load_delay: float = 0.0
    resource_load_duration: float = 0.0
    element_render_delay: float = 0.0


@dataclass(frozen=True)
class CLSAttribution:
    """Largest layout shift contributing to the layout-shift metric."""

    largest_shift_target: str | None = None
    largest_shift_value: float = 0.0
    largest_shift_time: float = 0.0
    load_state: str | None = None


@dataclass(frozen=True)
class INPAttribution:
    """Phase breakdown of the slowest interaction."""

    interaction_target: str | None = None
    event_target: str | None = None
    interaction_type: str | None = None
    event_type: str | None = None
    interaction_time: float | None = None
    event_time: float | None = None
    input_delay: float | None = None
    processing_start: float | None = None
    processing_duration: float | None = None
    processing_end: float | None = None
    presentation_delay: float | None = None
    presentation_time: float | None = None


Attribution = LCPAttribution | CLSAttribution | INPAttribution


@dataclass(frozen=True)
class VitalsMetric:
    """One revision of a paint/responsiveness metric.

    Attributes:
        name: Metric name (normally one of ``MetricName``).
        value: Metric value (ms, or unitless for CLS).
        rating: Qualitative rating.
        delta: Change since the previous revision of the same metric.
        id: Capture-layer identifier of the metric instance.
        navigation_type: Navigation that produced the page (navigate, reload, ...).
        timestamp: Arrival instant on the session clock.
        url: Page URL at arrival.
        user_agent: User agent of the session.
        attribution: Metric-specific breakdown, if supplied.
    """

    name: str
    value: float
    rating: str
    delta: float
    id: str
    navigation_type: str
    timestamp: float
    url: str = ""
    user_agent: str = ""
    attribution: Attribution | None = None


# ---------------------------------------------------------------------------
# Navigation and hydration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NavigationMetric:
    """Navigation timing of the page load plus derived phase durations."""

    navigation_type: str
    domain_lookup_start: float
    domain_lookup_end: float
    connect_start: float
    connect_end: float
    request_start: float
    response_start: float
    response_end: float
    dom_interactive: float
    dom_content_loaded_event_start: float
    dom_content_loaded_event_end: float
    dom_complete: float
    load_event_start: float
    load_event_end: float

    dns_time: float
    tcp_time: float
    ttfb: float
    download_time: float
    dom_processing_time: float
    page_load_time: float


@dataclass(frozen=True)
class HydrationMetric:
    """The hydration window of the hosting framework (at most one per session)."""

    start_time: float
    end_time: float
    duration: float
    components_hydrated: int
    framework: Framework
    lcp_before_hydration: float | None = None
    lcp_after_hydration: float | None = None
    lcp_element: str | None = None


# ---------------------------------------------------------------------------
# Resources and long frames
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceTiming:
    """One completed network-resource load."""

    name: str
    initiator_type: str
    start_time: float
    duration: float
    transfer_size: int
    encoded_body_size: int
    decoded_body_size: int
    render_blocking_status: RenderBlockingStatus
    compression_ratio: float | None = None
    entry_type: str = "resource"
    next_hop_protocol: str = ""

    fetch_start: float = 0.0
    domain_lookup_start: float = 0.0
    domain_lookup_end: float = 0.0
    connect_start: float = 0.0
    connect_end: float = 0.0
    secure_connection_start: float = 0.0
    request_start: float = 0.0
    response_start: float = 0.0
    response_end: float = 0.0

    @property
    def is_blocking(self) -> bool:
        """True when the resource is classified as render-blocking."""
        return self.render_blocking_status == RenderBlockingStatus.BLOCKING


@dataclass(frozen=True)
class ScriptAttribution:
    """A script segment executed during a long frame."""

    source_url: str
    source_function_name: str
    execution_start: float
    duration: float
    forced_style_and_layout_duration: float = 0.0
    invoker: str = "unknown"
    invoker_type: str = "unknown"
    source_char_position: int = 0


@dataclass(frozen=True)
class LongFrame:
    """A main-thread stall.

    ``blocking_duration`` is what the platform reported (or, on the long-task
    fallback path, ``max(0, duration - 50)``). Aggregate statistics never use
    it and recompute the blocking portion from ``duration``.
    """

    start_time: float
    duration: float
    blocking_duration: float
    scripts: tuple[ScriptAttribution, ...] = ()
    name: str = "long-animation-frame"
    entry_type: str = "long-animation-frame"
    render_start: float = 0.0
    style_and_layout_start: float = 0.0
    first_ui_event_timestamp: float = 0.0


@dataclass(frozen=True)
class ScriptCost:
    """Accumulated long-frame time attributed to one script URL."""

    url: str
    total_duration: float
    count: int


# ---------------------------------------------------------------------------
# Interval-bearing records (blocking flags upgraded by correlation)
# ---------------------------------------------------------------------------


@dataclass
class APICall:
    """One outbound request.

    ``status`` 0 signals a network-level failure. ``ttfb`` equals
    ``duration`` when headers-received timing was unavailable.
    """

    url: str
    method: str
    start_time: float
    duration: float
    ttfb: float
    status: int
    size: int
    blocked_lcp: bool = False
    blocked_inp: bool = False

    @property
    def interval_duration(self) -> float:
        """Length of the active interval checked by correlation."""
        return self.duration


@dataclass
class QueryCacheEntry:
    """One observed state transition of a cached query."""

    query_key: str
    status: str
    fetch_status: str
    data_updated_at: float
    error_updated_at: float
    cache_time: float
    stale_time: float
    start_time: float
    fetch_duration: float | None = None
    blocked_lcp: bool = False
    blocked_inp: bool = False

    @property
    def interval_duration(self) -> float:
        """Length of the active interval; entries without a fetch never block."""
        return self.fetch_duration or 0.0


# ---------------------------------------------------------------------------
# Aggregates and session snapshot
# ---------------------------------------------------------------------------


def _json_dict(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {
        key: None if isinstance(value, float) and not math.isfinite(value) else value
        for key, value in items
    }


@dataclass(frozen=True)
class QueryFrequency:
    """Number of update events observed for one query key."""

    query_key: str
    count: int


@dataclass(frozen=True)
class QueryCacheStats:
    """Statistics over the query-cache log."""

    total_queries: int = 0
    active_queries: int = 0
    stale_queries: int = 0
    errored_queries: int = 0
    average_fetch_duration: float = 0.0
    cache_hit_rate: float = 0.0
    slowest_queries: tuple[QueryCacheEntry, ...] = ()
    most_frequent_queries: tuple[QueryFrequency, ...] = ()


@dataclass(frozen=True)
class PerformanceSummary:
    """Session-wide roll-up. Query fields are None unless a cache is attached."""

    total_resources: int = 0
    blocking_resources: int = 0
    total_transfer_size: int = 0
    average_compression_ratio: float = 0.0
    api_call_count: int = 0
    average_api_latency: float = 0.0
    long_frame_count: int = 0
    total_blocking_time: float = 0.0
    query_count: int | None = None
    query_cache_hit_rate: float | None = None
    average_query_duration: float | None = None


@dataclass(frozen=True)
class PerformanceSession:
    """Immutable snapshot of everything observed in one page session."""

    session_id: str
    url: str
    timestamp: float
    user_agent: str
    framework: Framework
    web_vitals: tuple[VitalsMetric, ...] = ()
    navigation: NavigationMetric | None = None
    hydration: HydrationMetric | None = None
    resources: tuple[ResourceTiming, ...] = ()
    long_frames: tuple[LongFrame, ...] = ()
    api_calls: tuple[APICall, ...] = ()
    queries: tuple[QueryCacheEntry, ...] = ()
    query_cache: QueryCacheStats | None = None
    summary: PerformanceSummary = field(default_factory=PerformanceSummary)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Non-finite numbers (an infinite staleness window, say) become None.
        """
        return asdict(self, dict_factory=_json_dict)
