"""pageperf - Client-side performance sessions, correlated and reported.

Collects paint and responsiveness metrics, resource timings, long frames,
outbound API calls and data-fetch cache activity for one page session, flags
the requests and fetches that overlapped the largest paint or a user
interaction, and renders the result as a Markdown report.

This package provides:
- Five event collectors with a shared observer contract
- A correlation index with monotonic blocking flags
- Deterministic session statistics and top-k rankings
- A Markdown report compiler and a rich terminal summary
- Best-effort delivery of session snapshots

Example:
    >>> from pageperf import MonitorRegistry, initialize_monitoring
    >>> registry = MonitorRegistry()
    >>> monitor = initialize_monitoring(registry, framework="react")
    >>> call = monitor.api_calls.record({"url": "/api/cart", "start_time": 100, "duration": 300})
    >>> lcp = monitor.vitals.record({"name": "LCP", "value": 250, "rating": "good"})
    >>> monitor.api_calls.lcp_blocking()[0].url
    '/api/cart'
"""

from pageperf.collectors import (
    ApiCallCollector,
    LongFrameCollector,
    MonitoredSession,
    QueryCacheCollector,
    ResourceCollector,
    VitalsCollector,
)
from pageperf.config import PagePerfSettings, get_settings
from pageperf.correlation import Anchor, CorrelationIndex, IntervalArena
from pageperf.delivery import save_report, send_session
from pageperf.exceptions import CaptureUnavailableError, DeliveryError, PagePerfError
from pageperf.logging import configure_logging, get_logger
from pageperf.models import (
    APICall,
    Framework,
    HydrationMetric,
    LongFrame,
    MetricName,
    NavigationMetric,
    PerformanceSession,
    PerformanceSummary,
    QueryCacheEntry,
    QueryCacheStats,
    Rating,
    ResourceTiming,
    VitalsMetric,
)
from pageperf.monitor import MonitorSources, PerformanceMonitor
from pageperf.registry import MonitorRegistry, initialize_monitoring
from pageperf.report import MarkdownReporter, ReportOptions, generate_report
from pageperf.signals import Signal

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Engine
    "PerformanceMonitor",
    "MonitorSources",
    "MonitorRegistry",
    "initialize_monitoring",
    # Collectors
    "VitalsCollector",
    "ResourceCollector",
    "LongFrameCollector",
    "ApiCallCollector",
    "MonitoredSession",
    "QueryCacheCollector",
    # Correlation
    "Anchor",
    "CorrelationIndex",
    "IntervalArena",
    "Signal",
    # Models
    "APICall",
    "Framework",
    "HydrationMetric",
    "LongFrame",
    "MetricName",
    "NavigationMetric",
    "PerformanceSession",
    "PerformanceSummary",
    "QueryCacheEntry",
    "QueryCacheStats",
    "Rating",
    "ResourceTiming",
    "VitalsMetric",
    # Reports and delivery
    "MarkdownReporter",
    "ReportOptions",
    "generate_report",
    "save_report",
    "send_session",
    # Configuration
    "PagePerfSettings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    # Exceptions
    "PagePerfError",
    "CaptureUnavailableError",
    "DeliveryError",
]
