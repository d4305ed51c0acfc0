"""Terminal output for pageperf sessions (rich tables on stdout)."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from pageperf.models import PerformanceSession
from pageperf.report.formatting import (
    format_bytes,
    format_metric_value,
    format_ms,
    format_percent,
    format_ratio,
    rating_marker,
)

# stdout console for data output (tables)
out_console = Console()


def print_summary(session: PerformanceSession, *, console: Console | None = None) -> None:
    """Print the session summary and latest web vitals as tables to stdout."""
    c = console or out_console
    s = session.summary

    table = Table(
        title=f"Performance Summary ({session.session_id})",
        title_style="bold",
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Total Resources", str(s.total_resources))
    table.add_row("Blocking Resources", str(s.blocking_resources))
    table.add_row("Total Transfer Size", format_bytes(s.total_transfer_size))
    table.add_row("Avg Compression Ratio", format_ratio(s.average_compression_ratio))
    table.add_row("API Call Count", str(s.api_call_count))
    table.add_row("Avg API Latency", format_ms(s.average_api_latency))
    table.add_row("Long Frames", str(s.long_frame_count))
    table.add_row("Total Blocking Time", format_ms(s.total_blocking_time))
    if s.query_count is not None:
        table.add_row("Query Count", str(s.query_count))
        table.add_row("Cache Hit Rate", format_percent(s.query_cache_hit_rate or 0.0))
        table.add_row("Avg Query Duration", format_ms(s.average_query_duration or 0.0))
    c.print(table)

    latest = {m.name: m for m in session.web_vitals}
    if not latest:
        c.print("[dim]No web vitals collected yet[/dim]")
        return

    vitals = Table(title="Web Vitals", title_style="bold", header_style="bold cyan", border_style="dim")
    vitals.add_column("Metric", style="cyan", no_wrap=True)
    vitals.add_column("Value", justify="right")
    vitals.add_column("Rating")
    for name, metric in latest.items():
        vitals.add_row(
            name,
            format_metric_value(name, metric.value),
            f"{rating_marker(metric.rating)} {metric.rating}",
        )
    c.print(vitals)
