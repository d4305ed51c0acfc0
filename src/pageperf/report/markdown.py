"""Markdown report compiler.

Renders a ``PerformanceSession`` into one Markdown document with a fixed
section order::

    header, summary, web vitals (+ attribution), navigation timing,
    hydration, resources, long frames, API calls, query cache, footer

Navigation and hydration appear only when the session has them. The four
table sections can each be switched off through ``ReportOptions``; dropping
one leaves the order of the others unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import UTC, datetime

from pageperf import aggregator
from pageperf.logging import get_logger
from pageperf.models import (
    APICall,
    Attribution,
    CLSAttribution,
    HydrationMetric,
    LongFrame,
    NavigationMetric,
    PerformanceSession,
    QueryCacheStats,
    ResourceTiming,
    VitalsMetric,
)
from pageperf.report.formatting import (
    format_bytes,
    format_metric_value,
    format_ms,
    format_percent,
    format_ratio,
    rating_marker,
    snake_to_title,
    truncate_identifier,
    yes_no,
)

LOG = get_logger(__name__)

DEFAULT_TITLE = "Performance Report"

# Identifier widths per table column
_RESOURCE_NAME_WIDTH = 50
_BLOCKING_RESOURCE_WIDTH = 60
_FRAME_SCRIPT_WIDTH = 30
_WORST_SCRIPT_WIDTH = 60
_API_URL_WIDTH = 40
_BLOCKING_CALL_WIDTH = 50
_QUERY_KEY_WIDTH = 40
_FREQUENT_QUERY_WIDTH = 50


@dataclass(frozen=True)
class ReportOptions:
    """Which sections to render and how many rows each may hold.

    Args:
        include_resources: Render the resource section.
        include_long_frames: Render the long-frame section.
        include_api_calls: Render the API-call section.
        include_query_cache: Render the query-cache section (when a cache was attached).
        max_resources: Row cap of the resource table.
        max_long_frames: Row cap of the long-frame table.
        max_api_calls: Row cap of the API-call table.
        max_queries: Row cap of the slowest and most-frequent query lists.
        max_scripts: Row cap of the worst-script ranking.
        custom_title: Replaces the default report title.
    """

    include_resources: bool = True
    include_long_frames: bool = True
    include_api_calls: bool = True
    include_query_cache: bool = True
    max_resources: int = 20
    max_long_frames: int = 10
    max_api_calls: int = 20
    max_queries: int = 5
    max_scripts: int = 5
    custom_title: str | None = None

    def __post_init__(self) -> None:
        for name in ("max_resources", "max_long_frames", "max_api_calls", "max_queries", "max_scripts"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


def _table(headers: list[str], rows: list[list[str]]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)


def _iso(epoch_ms: float) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=UTC).isoformat()


class MarkdownReporter:
    """Compiles sessions into Markdown.

    Args:
        options: Default options used when ``generate_report`` gets none.
    """

    def __init__(self, options: ReportOptions | None = None) -> None:
        self.options = options or ReportOptions()

    def generate_report(
        self,
        session: PerformanceSession,
        options: ReportOptions | None = None,
        generated_at: datetime | None = None,
    ) -> str:
        """Render *session* as a Markdown document.

        Args:
            session: Snapshot to render.
            options: Section switches and row caps; the reporter defaults when None.
            generated_at: Footer timestamp; now (UTC) when None.
        """
        opts = options or self.options
        sections = [
            self._header(session, opts.custom_title),
            self._summary(session),
            self._web_vitals(session.web_vitals),
        ]

        if session.navigation is not None:
            sections.append(self._navigation(session.navigation))
        if session.hydration is not None:
            sections.append(self._hydration(session.hydration))
        if opts.include_resources and session.resources:
            sections.append(self._resources(session.resources, opts.max_resources))
        if opts.include_long_frames and session.long_frames:
            sections.append(self._long_frames(session.long_frames, opts.max_long_frames, opts.max_scripts))
        if opts.include_api_calls and session.api_calls:
            sections.append(self._api_calls(session.api_calls, opts.max_api_calls))
        if opts.include_query_cache and session.query_cache is not None:
            sections.append(self._query_cache(session.query_cache, opts.max_queries))

        sections.append(self._footer(generated_at or datetime.now(tz=UTC)))
        LOG.debug("report_generated", session_id=session.session_id, sections=len(sections))
        return "\n\n".join(sections)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _header(self, session: PerformanceSession, custom_title: str | None) -> str:
        return "\n".join(
            [
                f"# {custom_title or DEFAULT_TITLE}",
                "",
                f"**URL:** {session.url}  ",
                f"**Date:** {_iso(session.timestamp)}  ",
                f"**Session ID:** {session.session_id}  ",
                f"**Framework:** {session.framework}  ",
                f"**User Agent:** {session.user_agent}",
            ]
        )

    def _summary(self, session: PerformanceSession) -> str:
        s = session.summary
        rows = [
            ["Total Resources", str(s.total_resources)],
            ["Blocking Resources", str(s.blocking_resources)],
            ["Total Transfer Size", format_bytes(s.total_transfer_size)],
            ["Avg Compression Ratio", format_ratio(s.average_compression_ratio)],
            ["API Call Count", str(s.api_call_count)],
            ["Avg API Latency", format_ms(s.average_api_latency)],
            ["Long Frames", str(s.long_frame_count)],
            ["Total Blocking Time", format_ms(s.total_blocking_time)],
        ]
        if s.query_count is not None:
            rows += [
                ["Query Count", str(s.query_count)],
                ["Cache Hit Rate", format_percent(s.query_cache_hit_rate or 0.0)],
                ["Avg Query Duration", format_ms(s.average_query_duration or 0.0)],
            ]
        return "## Summary\n\n" + _table(["Metric", "Value"], rows)

    def _web_vitals(self, metrics: tuple[VitalsMetric, ...]) -> str:
        if not metrics:
            return "## Core Web Vitals\n\n_No Web Vitals data collected yet._"

        latest: dict[str, VitalsMetric] = {}
        for metric in metrics:
            latest[metric.name] = metric

        rows = [
            [
                name,
                format_metric_value(name, metric.value),
                f"{rating_marker(metric.rating)} {metric.rating}",
                f"{metric.delta:.2f}",
            ]
            for name, metric in latest.items()
        ]
        parts = ["## Core Web Vitals", _table(["Metric", "Value", "Rating", "Delta"], rows)]

        for name, metric in latest.items():
            if metric.attribution is None:
                continue
            block = _attribution_lines(metric.attribution)
            if block:
                parts.append(f"### {name} Attribution\n\n" + "\n".join(block))
        return "\n\n".join(parts)

    def _navigation(self, nav: NavigationMetric) -> str:
        rows = [
            ["DNS Lookup", format_ms(nav.dns_time)],
            ["TCP Connection", format_ms(nav.tcp_time)],
            ["Time to First Byte", format_ms(nav.ttfb)],
            ["Content Download", format_ms(nav.download_time)],
            ["DOM Processing", format_ms(nav.dom_processing_time)],
            ["**Page Load Time**", f"**{format_ms(nav.page_load_time)}**"],
        ]
        details = "\n".join(
            [
                "### Detailed Timings",
                "",
                f"- **DOM Interactive:** {format_ms(nav.dom_interactive)}",
                f"- **DOM Content Loaded:** {format_ms(nav.dom_content_loaded_event_end)}",
                f"- **DOM Complete:** {format_ms(nav.dom_complete)}",
            ]
        )
        return "## Navigation Timing\n\n" + _table(["Phase", "Duration"], rows) + "\n\n" + details

    def _hydration(self, hydration: HydrationMetric) -> str:
        rows = [
            ["Framework", str(hydration.framework)],
            ["Duration", format_ms(hydration.duration)],
            ["Components Hydrated", str(hydration.components_hydrated)],
            ["Start Time", format_ms(hydration.start_time)],
            ["End Time", format_ms(hydration.end_time)],
        ]
        if hydration.lcp_before_hydration is not None:
            rows.append(["LCP Before Hydration", format_ms(hydration.lcp_before_hydration)])
        if hydration.lcp_after_hydration is not None:
            rows.append(["LCP After Hydration", format_ms(hydration.lcp_after_hydration)])
        if hydration.lcp_element:
            rows.append(["LCP Element", f"`{hydration.lcp_element}`"])
        return "## Framework Hydration\n\n" + _table(["Metric", "Value"], rows)

    def _resources(self, resources: tuple[ResourceTiming, ...], limit: int) -> str:
        largest = aggregator.top_k(resources, key=lambda r: r.transfer_size, k=limit)
        rows = [
            [
                truncate_identifier(r.name, _RESOURCE_NAME_WIDTH),
                r.initiator_type,
                format_bytes(r.transfer_size),
                format_ms(r.duration),
                yes_no(r.is_blocking),
            ]
            for r in largest
        ]
        content = f"## Resource Timing (Top {limit})\n\n" + _table(
            ["Resource", "Type", "Size", "Duration", "Blocking"], rows
        )

        blocking = aggregator.blocking_resources(resources)
        if blocking:
            items = "\n".join(
                f"- `{truncate_identifier(r.name, _BLOCKING_RESOURCE_WIDTH)}` ({format_bytes(r.transfer_size)})"
                for r in blocking
            )
            content += f"\n\n### Render-Blocking Resources ({len(blocking)})\n\n{items}"
        return content

    def _long_frames(self, frames: tuple[LongFrame, ...], limit: int, script_limit: int) -> str:
        longest = aggregator.top_k(frames, key=lambda f: f.duration, k=limit)
        rows = []
        for f in longest:
            scripts = (
                ", ".join(truncate_identifier(s.source_url, _FRAME_SCRIPT_WIDTH) for s in f.scripts)
                if f.scripts
                else "unknown"
            )
            rows.append(
                [format_ms(f.duration), format_ms(f.blocking_duration), format_ms(f.render_start), scripts]
            )
        content = f"## Long Animation Frames (Top {limit})\n\n" + _table(
            ["Duration", "Blocking", "Render Start", "Scripts"], rows
        )

        worst = aggregator.worst_scripts(frames, script_limit)
        if worst:
            items = "\n".join(
                f"- `{truncate_identifier(c.url, _WORST_SCRIPT_WIDTH)}` - "
                f"{format_ms(c.total_duration)} total ({c.count} occurrences)"
                for c in worst
            )
            content += f"\n\n### Worst Offending Scripts\n\n{items}"
        return content

    def _api_calls(self, calls: tuple[APICall, ...], limit: int) -> str:
        slowest = aggregator.top_k(calls, key=lambda c: c.duration, k=limit)
        rows = [
            [
                truncate_identifier(c.url, _API_URL_WIDTH),
                c.method,
                str(c.status),
                format_ms(c.duration),
                format_ms(c.ttfb),
                yes_no(c.blocked_lcp),
                yes_no(c.blocked_inp),
            ]
            for c in slowest
        ]
        content = f"## API Calls (Top {limit})\n\n" + _table(
            ["Endpoint", "Method", "Status", "Duration", "TTFB", "Blocked LCP", "Blocked INP"], rows
        )

        lcp_blocking = aggregator.lcp_blocking_calls(calls)
        inp_blocking = aggregator.inp_blocking_calls(calls)
        if lcp_blocking or inp_blocking:
            blocks = []
            if lcp_blocking:
                blocks.append(_call_list("LCP Blocking", lcp_blocking))
            if inp_blocking:
                blocks.append(_call_list("INP Blocking", inp_blocking))
            content += "\n\n### Performance-Impacting API Calls\n\n" + "\n\n".join(blocks)
        return content

    def _query_cache(self, stats: QueryCacheStats, limit: int) -> str:
        rows = [
            ["Total Queries", str(stats.total_queries)],
            ["Active Queries", str(stats.active_queries)],
            ["Stale Queries", str(stats.stale_queries)],
            ["Errored Queries", str(stats.errored_queries)],
            ["Cache Hit Rate", format_percent(stats.cache_hit_rate)],
            ["Avg Fetch Duration", format_ms(stats.average_fetch_duration)],
        ]
        content = "## Query Cache\n\n" + _table(["Metric", "Value"], rows)

        slowest = stats.slowest_queries[:limit]
        if slowest:
            query_rows = [
                [
                    truncate_identifier(q.query_key, _QUERY_KEY_WIDTH),
                    format_ms(q.fetch_duration) if q.fetch_duration is not None else "N/A",
                    q.status,
                    yes_no(q.blocked_lcp),
                    yes_no(q.blocked_inp),
                ]
                for q in slowest
            ]
            content += "\n\n### Slowest Queries\n\n" + _table(
                ["Query Key", "Duration", "Status", "Blocked LCP", "Blocked INP"], query_rows
            )

        frequent = stats.most_frequent_queries[:limit]
        if frequent:
            items = "\n".join(
                f"- `{truncate_identifier(q.query_key, _FREQUENT_QUERY_WIDTH)}` - {q.count} executions"
                for q in frequent
            )
            content += f"\n\n### Most Frequent Queries\n\n{items}"
        return content

    def _footer(self, generated_at: datetime) -> str:
        return (
            "---\n\n"
            "*Generated by pageperf*  \n"
            f"*Report generated at: {generated_at.isoformat()}*"
        )


def _call_list(title: str, calls: list[APICall]) -> str:
    lines = [f"**{title} ({len(calls)}):**"]
    lines.extend(
        f"- `{c.method} {truncate_identifier(c.url, _BLOCKING_CALL_WIDTH)}` ({format_ms(c.duration)})"
        for c in calls
    )
    return "\n".join(lines)


def _attribution_lines(attribution: Attribution) -> list[str]:
    """One bullet per populated attribution field; zero and empty values are skipped."""
    lines = []
    for f in fields(attribution):
        value = getattr(attribution, f.name)
        if value is None or value == "" or value == 0:
            continue
        label = snake_to_title(f.name)
        if isinstance(value, float):
            if isinstance(attribution, CLSAttribution) and f.name == "largest_shift_value":
                rendered = f"{value:.3f}"
            else:
                rendered = format_ms(value)
        else:
            rendered = str(value)
        lines.append(f"- **{label}:** {rendered}")
    return lines


def generate_report(
    session: PerformanceSession,
    options: ReportOptions | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Render *session* with a default ``MarkdownReporter``."""
    return MarkdownReporter().generate_report(session, options, generated_at)
