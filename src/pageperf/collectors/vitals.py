"""Paint, layout-shift and responsiveness metrics."""

from __future__ import annotations

from typing import Any

from pageperf.clock import Clock
from pageperf.collectors.base import Collector
from pageperf.fields import (
    element_selector,
    get_field,
    get_number,
    get_optional_number,
    get_optional_str,
    get_str,
)
from pageperf.logging import get_logger
from pageperf.models import (
    Attribution,
    CLSAttribution,
    INPAttribution,
    LCPAttribution,
    MetricName,
    Rating,
    VitalsMetric,
)

LOG = get_logger(__name__)

_RATINGS = frozenset(r.value for r in Rating)


class VitalsCollector(Collector[VitalsMetric]):
    """Collects every revision of the five paint/responsiveness metrics.

    Args:
        clock: Session clock; revisions are stamped with their arrival instant.
        url: Page URL stamped on each revision.
        user_agent: User agent stamped on each revision.
    """

    name = "vitals"

    def __init__(self, clock: Clock | None = None, url: str = "", user_agent: str = "") -> None:
        super().__init__(clock)
        self.url = url
        self.user_agent = user_agent

    def latest(self, name: str) -> VitalsMetric | None:
        """Return the last-appended revision of metric *name*."""
        for metric in reversed(self._log):
            if metric.name == name:
                return metric
        return None

    def latest_by_name(self) -> dict[str, VitalsMetric]:
        """Latest revision of each metric, keyed by name in first-seen order."""
        latest: dict[str, VitalsMetric] = {}
        for metric in self._log:
            latest[metric.name] = metric
        return latest

    def _normalize(self, raw: Any) -> VitalsMetric:
        name = get_str(raw, "name").upper()
        rating = get_str(raw, "rating", default=Rating.UNKNOWN).lower()
        if rating not in _RATINGS:
            rating = Rating.UNKNOWN

        return VitalsMetric(
            name=name,
            value=get_number(raw, "value"),
            rating=rating,
            delta=get_number(raw, "delta"),
            id=get_str(raw, "id"),
            navigation_type=get_str(raw, "navigation_type", default="navigate"),
            timestamp=self._clock(),
            url=self.url,
            user_agent=self.user_agent,
            attribution=normalize_attribution(name, get_field(raw, "attribution")),
        )

    def _after_record(self, record: VitalsMetric) -> None:
        LOG.debug(
            "vitals_metric_recorded",
            metric=record.name,
            value=record.value,
            rating=record.rating,
        )


# ---------------------------------------------------------------------------
# Attribution
# ---------------------------------------------------------------------------


def normalize_attribution(name: str, raw: Any) -> Attribution | None:
    """Build the attribution payload matching metric *name*.

    FCP and TTFB carry no attribution; an unknown metric name yields None.
    """
    if raw is None:
        return None
    if name == MetricName.LCP:
        return _lcp_attribution(raw)
    if name == MetricName.CLS:
        return _cls_attribution(raw)
    if name == MetricName.INP:
        return _inp_attribution(raw)
    return None


def _lcp_attribution(raw: Any) -> LCPAttribution:
    return LCPAttribution(
        element=element_selector(get_field(raw, "element")),
        url=get_optional_str(raw, "url"),
        time_to_first_byte=get_number(raw, "time_to_first_byte"),
        resource_load_delay=get_number(raw, "resource_load_delay"),
        # older capture layers call this resourceLoadTime
        resource_load_duration=get_number(raw, "resource_load_duration", "resource_load_time"),
        element_render_delay=get_number(raw, "element_render_delay"),
    )


def _cls_attribution(raw: Any) -> CLSAttribution:
    return CLSAttribution(
        largest_shift_target=element_selector(get_field(raw, "largest_shift_target")),
        largest_shift_value=get_number(raw, "largest_shift_value"),
        largest_shift_time=get_number(raw, "largest_shift_time"),
        load_state=get_optional_str(raw, "load_state"),
    )


def _inp_attribution(raw: Any) -> INPAttribution:
    return INPAttribution(
        interaction_target=element_selector(get_field(raw, "interaction_target")),
        event_target=element_selector(get_field(raw, "event_target")),
        interaction_type=get_optional_str(raw, "interaction_type"),
        event_type=get_optional_str(raw, "event_type"),
        interaction_time=get_optional_number(raw, "interaction_time"),
        event_time=get_optional_number(raw, "event_time"),
        input_delay=get_optional_number(raw, "input_delay"),
        processing_start=get_optional_number(raw, "processing_start"),
        processing_duration=get_optional_number(raw, "processing_duration"),
        processing_end=get_optional_number(raw, "processing_end"),
        presentation_delay=get_optional_number(raw, "presentation_delay"),
        presentation_time=get_optional_number(raw, "presentation_time"),
    )


# ---------------------------------------------------------------------------
# Correlation anchors
# ---------------------------------------------------------------------------


def paint_instant(metric: VitalsMetric) -> float | None:
    """Largest-paint instant carried by an LCP revision, else None."""
    if metric.name != MetricName.LCP:
        return None
    return metric.value


def interaction_instant(metric: VitalsMetric) -> float | None:
    """Interaction instant carried by an INP revision, else None.

    Uses the presentation time when attributed, then interaction time plus
    the metric value, then the bare metric value.
    """
    if metric.name != MetricName.INP:
        return None
    attribution = metric.attribution
    if isinstance(attribution, INPAttribution):
        if attribution.presentation_time is not None:
            return attribution.presentation_time
        if attribution.interaction_time is not None:
            return attribution.interaction_time + metric.value
    return metric.value
