"""Fixed formatting rules for report values.

Each metric family has one rendering: byte counts in binary units with two
decimals, durations in milliseconds with two decimals, the layout-shift
metric with three decimals and no unit, rates as percentages with one
decimal. Compression ratios are multipliers (decoded over encoded size) and
render as ``2.00x``.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from pageperf.models import MetricName, Rating

_BYTE_UNITS = ("B", "KB", "MB", "GB")

_RATING_MARKERS = {
    Rating.GOOD: "🟢",
    Rating.NEEDS_IMPROVEMENT: "🟡",
    Rating.POOR: "🔴",
}
_UNKNOWN_RATING_MARKER = "⚪"

_TIMED_METRICS = frozenset({MetricName.LCP, MetricName.FCP, MetricName.TTFB, MetricName.INP})

ELLIPSIS = "..."


def format_bytes(size: float) -> str:
    """Human-readable byte count: ``1536`` -> ``"1.50 KB"``."""
    if size <= 0:
        return "0 B"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(_BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{value:.2f} {_BYTE_UNITS[exponent]}"


def format_ms(value: float) -> str:
    return f"{value:.2f}ms"


def format_metric_value(name: str, value: float) -> str:
    """Render a metric value: CLS unitless with three decimals, timings in ms."""
    if name == MetricName.CLS:
        return f"{value:.3f}"
    if name in _TIMED_METRICS:
        return format_ms(value)
    return f"{value:.2f}"


def format_percent(rate: float) -> str:
    """Render a 0..1 rate as a percentage with one decimal."""
    return f"{rate * 100:.1f}%"


def format_ratio(ratio: float) -> str:
    return f"{ratio:.2f}x"


def rating_marker(rating: str) -> str:
    """Colored marker for a qualitative rating."""
    return _RATING_MARKERS.get(rating, _UNKNOWN_RATING_MARKER)


def yes_no(flag: bool) -> str:
    return "⚠️ Yes" if flag else "No"


def truncate_identifier(text: str, max_length: int) -> str:
    """Shorten a URL or cache key to at most *max_length* characters.

    For URLs the path and query are kept in preference to the origin; the
    result is then cut with a trailing ``...`` if still too long.
    """
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]

    parts = urlsplit(text)
    if parts.scheme and parts.netloc:
        path = parts.path + (f"?{parts.query}" if parts.query else "")
        if len(path) <= max_length:
            return path
        text = path
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def snake_to_title(name: str) -> str:
    """``time_to_first_byte`` -> ``Time To First Byte``."""
    return " ".join(word.capitalize() for word in name.split("_") if word)
