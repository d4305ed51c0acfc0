"""Main-thread stalls.

Two ingestion paths feed the same log. The precise path takes
long-animation-frame entries with per-script attribution. The fallback path
takes coarser long-task entries, which carry no attribution, and
synthesizes one script entry per frame.
"""

from __future__ import annotations

from typing import Any

from pageperf import aggregator
from pageperf.collectors.base import Collector, ObservationSource
from pageperf.config import get_settings
from pageperf.fields import get_field, get_int, get_number, get_str
from pageperf.logging import get_logger
from pageperf.models import LongFrame, ScriptAttribution, ScriptCost

LOG = get_logger(__name__)

LONG_TASK_FALLBACK_URL = "unknown (longtask fallback)"


class LongFrameCollector(Collector[LongFrame]):
    """Collects long animation frames, or long tasks when frames are unavailable."""

    name = "long_frames"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fallback_active = False

    def initialize(
        self,
        source: ObservationSource | None = None,
        fallback: ObservationSource | None = None,
    ) -> bool:
        """Start accepting events.

        Args:
            source: Long-animation-frame source.
            fallback: Long-task source subscribed when *source* is missing or
                unavailable.
        """
        if self._initialized or fallback is None:
            return super().initialize(source)

        if source is not None and self._subscribe(source, self.record):
            self._initialized = True
            LOG.info("collector_initialized", collector=self.name, push_mode=False)
            return True

        if not self._subscribe(fallback, self.record_long_task):
            return False
        self._initialized = True
        self.fallback_active = True
        LOG.info("collector_initialized", collector=self.name, fallback="longtask")
        return True

    def record_long_task(self, raw: Any) -> LongFrame | None:
        """Ingest a long-task entry through the fallback path."""
        if not self._accepting():
            return None
        return self._admit(_long_task_frame(raw))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def above_threshold(self, threshold_ms: float = aggregator.LONG_FRAME_THRESHOLD_MS) -> list[LongFrame]:
        """Frames lasting at least *threshold_ms*."""
        return self.query(lambda f: f.duration >= threshold_ms)

    def by_script(self, url_fragment: str) -> list[LongFrame]:
        """Frames with at least one script whose URL contains *url_fragment*."""
        return self.query(lambda f: any(url_fragment in s.source_url for s in f.scripts))

    def worst_scripts(self, k: int = aggregator.DEFAULT_TOP_K) -> list[ScriptCost]:
        return aggregator.worst_scripts(self._log, k)

    def total_blocking_time(self) -> float:
        return aggregator.total_blocking_time(self._log)

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _normalize(self, raw: Any) -> LongFrame:
        raw_scripts = get_field(raw, "scripts")
        scripts: tuple[ScriptAttribution, ...] = ()
        if isinstance(raw_scripts, (list, tuple)):
            scripts = tuple(_script(s) for s in raw_scripts)

        return LongFrame(
            start_time=get_number(raw, "start_time"),
            duration=get_number(raw, "duration"),
            blocking_duration=get_number(raw, "blocking_duration"),
            scripts=scripts,
            name=get_str(raw, "name", default="long-animation-frame"),
            render_start=get_number(raw, "render_start"),
            style_and_layout_start=get_number(raw, "style_and_layout_start"),
            first_ui_event_timestamp=get_number(raw, "first_ui_event_timestamp"),
        )

    def _after_record(self, record: LongFrame) -> None:
        if record.duration > get_settings().long_frame_warn_ms:
            LOG.warning(
                "long_frame_detected",
                duration_ms=round(record.duration, 2),
                blocking_ms=round(record.blocking_duration, 2),
                scripts=[s.source_url for s in record.scripts],
            )


def _script(raw: Any) -> ScriptAttribution:
    return ScriptAttribution(
        source_url=get_str(raw, "source_url", "sourceURL", "source_location", default="unknown"),
        source_function_name=get_str(raw, "source_function_name", default="anonymous"),
        execution_start=get_number(raw, "execution_start"),
        duration=get_number(raw, "duration"),
        forced_style_and_layout_duration=get_number(raw, "forced_style_and_layout_duration"),
        invoker=get_str(raw, "invoker", default="unknown"),
        invoker_type=get_str(raw, "invoker_type", default="unknown"),
        source_char_position=get_int(raw, "source_char_position"),
    )


def _long_task_frame(raw: Any) -> LongFrame:
    start = get_number(raw, "start_time")
    duration = get_number(raw, "duration")
    synthetic = ScriptAttribution(
        source_url=LONG_TASK_FALLBACK_URL,
        source_function_name="unknown",
        execution_start=start,
        duration=duration,
    )
    return LongFrame(
        start_time=start,
        duration=duration,
        blocking_duration=max(0.0, duration - aggregator.LONG_FRAME_THRESHOLD_MS),
        scripts=(synthetic,),
        name=get_str(raw, "name", default="self"),
    )
