"""Event collectors for pageperf.

One collector per source type:
- VitalsCollector: paint, layout-shift and responsiveness metrics
- ResourceCollector: network resource timings
- LongFrameCollector: main-thread stalls (long-animation-frame or long-task)
- ApiCallCollector: outbound requests, correlated with paint and interaction
- QueryCacheCollector: data-fetch cache transitions, correlated likewise
"""

from pageperf.collectors.api_calls import ApiCallCollector, MonitoredSession, PendingRequest
from pageperf.collectors.base import Collector, IntervalCollector, ObservationSource
from pageperf.collectors.frames import LongFrameCollector
from pageperf.collectors.query_cache import QueryCacheCollector, serialize_query_key
from pageperf.collectors.resources import ResourceCollector
from pageperf.collectors.vitals import VitalsCollector

__all__ = [
    "Collector",
    "IntervalCollector",
    "ObservationSource",
    "VitalsCollector",
    "ResourceCollector",
    "LongFrameCollector",
    "ApiCallCollector",
    "MonitoredSession",
    "PendingRequest",
    "QueryCacheCollector",
    "serialize_query_key",
]
