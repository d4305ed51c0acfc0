"""Network resource timings."""

from __future__ import annotations

import re
from typing import Any

from pageperf import aggregator
from pageperf.collectors.base import Collector
from pageperf.fields import get_field, get_int, get_number, get_str
from pageperf.models import RenderBlockingStatus, ResourceTiming

# Resources starting before this instant count as early page loads
EARLY_LOAD_THRESHOLD_MS = 1000.0

_FONT_RE = re.compile(r"\.(woff2?|ttf|otf|eot)$")


def compression_ratio(decoded_size: int, encoded_size: int) -> float | None:
    """``decoded / encoded``, undefined (None) when nothing was encoded."""
    if encoded_size <= 0:
        return None
    return decoded_size / encoded_size


def classify_render_blocking(raw: Any, name: str, initiator_type: str, start_time: float) -> RenderBlockingStatus:
    """Classify a resource as render-blocking.

    A platform-supplied ``renderBlockingStatus`` is authoritative. Without it
    an early-loaded stylesheet, a non-deferred script or a font is assumed to
    block rendering.
    """
    reported = get_field(raw, "render_blocking_status")
    if reported is not None:
        if str(reported) == RenderBlockingStatus.BLOCKING:
            return RenderBlockingStatus.BLOCKING
        return RenderBlockingStatus.NON_BLOCKING

    is_stylesheet = initiator_type == "link" and ".css" in name
    is_blocking_script = initiator_type == "script" and "async" not in name and "defer" not in name
    is_font = initiator_type == "css" or _FONT_RE.search(name) is not None

    if (is_stylesheet or is_blocking_script or is_font) and start_time < EARLY_LOAD_THRESHOLD_MS:
        return RenderBlockingStatus.BLOCKING
    return RenderBlockingStatus.NON_BLOCKING


class ResourceCollector(Collector[ResourceTiming]):
    """Collects completed resource loads."""

    name = "resources"

    def by_type(self, initiator_type: str) -> list[ResourceTiming]:
        """Resources started by *initiator_type* (script, link, img, fetch, ...)."""
        return self.query(lambda r: r.initiator_type == initiator_type)

    def blocking(self) -> list[ResourceTiming]:
        """Render-blocking resources."""
        return aggregator.blocking_resources(self._log)

    def largest(self, k: int = aggregator.DEFAULT_TOP_K) -> list[ResourceTiming]:
        """The *k* resources with the largest transfer size."""
        return self.top_k("transfer_size", k)

    def slowest(self, k: int = aggregator.DEFAULT_TOP_K) -> list[ResourceTiming]:
        """The *k* resources with the longest duration."""
        return self.top_k("duration", k)

    def total_transfer_size(self) -> int:
        return aggregator.total_transfer_size(self._log)

    def average_compression_ratio(self) -> float:
        return aggregator.average_compression_ratio(self._log)

    def _normalize(self, raw: Any) -> ResourceTiming:
        name = get_str(raw, "name")
        initiator_type = get_str(raw, "initiator_type", default="other")
        start_time = get_number(raw, "start_time")
        encoded = get_int(raw, "encoded_body_size")
        decoded = get_int(raw, "decoded_body_size")

        return ResourceTiming(
            name=name,
            initiator_type=initiator_type,
            start_time=start_time,
            duration=get_number(raw, "duration"),
            transfer_size=get_int(raw, "transfer_size"),
            encoded_body_size=encoded,
            decoded_body_size=decoded,
            render_blocking_status=classify_render_blocking(raw, name, initiator_type, start_time),
            compression_ratio=compression_ratio(decoded, encoded),
            entry_type=get_str(raw, "entry_type", default="resource"),
            next_hop_protocol=get_str(raw, "next_hop_protocol"),
            fetch_start=get_number(raw, "fetch_start"),
            domain_lookup_start=get_number(raw, "domain_lookup_start"),
            domain_lookup_end=get_number(raw, "domain_lookup_end"),
            connect_start=get_number(raw, "connect_start"),
            connect_end=get_number(raw, "connect_end"),
            secure_connection_start=get_number(raw, "secure_connection_start"),
            request_start=get_number(raw, "request_start"),
            response_start=get_number(raw, "response_start"),
            response_end=get_number(raw, "response_end"),
        )
