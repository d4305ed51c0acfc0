"""Lenient field access for raw platform events.

Raw events arrive either as mappings (decoded JSON) or as attribute-bearing
objects, and their field names may be camelCase (as emitted by browsers) or
snake_case. These helpers read a field under any of those spellings and
fall back to a default instead of raising.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

_SNAKE_SEGMENT_RE = re.compile(r"_([a-z0-9])")

# Maximum length of a condensed element selector
MAX_SELECTOR_LENGTH = 100


def _camel(name: str) -> str:
    return _SNAKE_SEGMENT_RE.sub(lambda m: m.group(1).upper(), name)


def _spellings(names: tuple[str, ...]) -> list[str]:
    spellings: list[str] = []
    for name in names:
        for variant in (name, _camel(name)):
            if variant not in spellings:
                spellings.append(variant)
    return spellings


def get_field(raw: Any, *names: str, default: Any = None) -> Any:
    """Return the first non-None value found under any of *names*.

    Each name is tried as given and in its camelCase form.

    Args:
        raw: Mapping or object to read from. ``None`` yields *default*.
        *names: Candidate field names, snake_case preferred.
        default: Value returned when no candidate is present.
    """
    if raw is None:
        return default
    for name in _spellings(names):
        if isinstance(raw, Mapping):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value is not None:
            return value
    return default


def get_optional_number(raw: Any, *names: str) -> float | None:
    """Read a numeric field, coercing strings and rejecting non-finite values."""
    value = get_field(raw, *names)
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def get_window(raw: Any, *names: str, default: float = 0.0) -> float:
    """Read a retention or staleness window, where ``inf`` means "never expires".

    Unlike ``get_number``, positive infinity is kept. NaN, negative
    infinity and unparseable values fall back to *default*.
    """
    value = get_field(raw, *names)
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or number == -math.inf:
        return default
    return number


def get_number(raw: Any, *names: str, default: float = 0.0) -> float:
    """Read a numeric field, falling back to *default* when missing or invalid."""
    number = get_optional_number(raw, *names)
    return default if number is None else number


def get_int(raw: Any, *names: str, default: int = 0) -> int:
    """Read an integer field; fractional values are truncated."""
    number = get_optional_number(raw, *names)
    return default if number is None else int(number)


def get_str(raw: Any, *names: str, default: str = "") -> str:
    """Read a string field; non-string scalars are converted with ``str()``."""
    value = get_field(raw, *names)
    if value is None:
        return default
    text = value if isinstance(value, str) else str(value)
    return text or default


def get_optional_str(raw: Any, *names: str) -> str | None:
    """Read a string field, returning None when missing or empty."""
    value = get_str(raw, *names)
    return value or None


def element_selector(element: Any) -> str | None:
    """Condense an element reference into a ``tag#id.class`` selector.

    Strings are taken to be selectors already. Element-like objects are read
    for ``tag_name``/``tagName``, ``id`` and ``class_name``/``className``.
    """
    if element is None:
        return None
    if isinstance(element, str):
        return element[:MAX_SELECTOR_LENGTH] or None

    tag = get_str(element, "tag_name", "tag").lower()
    if not tag:
        return None
    element_id = get_str(element, "id")
    class_name = get_str(element, "class_name")
    selector = tag
    if element_id:
        selector += f"#{element_id}"
    if class_name:
        selector += "." + ".".join(class_name.split())
    return selector[:MAX_SELECTOR_LENGTH]
