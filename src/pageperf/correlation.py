"""Correlation of interval records against regression anchors.

Two kinds of anchor instants are discovered asynchronously while the page
runs: the largest-paint instant (one, re-settable) and interaction instants
(append-only, de-duplicated). An interval record "blocks" an anchor when its
active span strictly contains the anchor instant::

    start < instant < start + duration

Anchors may be learned before or after the records they must be checked
against, so the index works in two directions:

- a record admitted to an arena is checked immediately against every anchor
  already known;
- learning a new anchor re-checks every stored record whose flag is still
  false. For interactions the re-check covers *all* known interaction
  instants, not just the new one.

Flags are only ever upgraded from False to True, so once every anchor is
known each truly-overlapping record carries its flag regardless of the order
in which records and anchors arrived.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import replace
from enum import StrEnum
from typing import Generic, Protocol, TypeVar

from pageperf.logging import get_logger

LOG = get_logger(__name__)


class Anchor(StrEnum):
    """Regression anchors an interval can block."""

    LARGEST_PAINT = "largest_paint"
    INTERACTION = "interaction"


_FLAG_BY_ANCHOR: dict[Anchor, str] = {
    Anchor.LARGEST_PAINT: "blocked_lcp",
    Anchor.INTERACTION: "blocked_inp",
}


class IntervalRecord(Protocol):
    """A record with an active span and two upgradeable blocking flags."""

    start_time: float
    blocked_lcp: bool
    blocked_inp: bool

    @property
    def interval_duration(self) -> float: ...


R = TypeVar("R", bound=IntervalRecord)


def overlaps(start: float, duration: float, instant: float) -> bool:
    """Return True when *instant* falls strictly inside ``[start, start + duration]``."""
    return start < instant < start + duration


class IntervalArena(Generic[R]):
    """Owning, indexable store of interval records.

    Records keep a stable index for their lifetime in the arena. The arena is
    the only holder of the live record objects: the correlation index upgrades
    flags through ``mark()`` and every reader receives a copy from ``view()``.

    Args:
        name: Name used in diagnostics.
    """

    __slots__ = ("_name", "_records")

    def __init__(self, name: str) -> None:
        self._name = name
        self._records: list[R] = []

    @property
    def name(self) -> str:
        """Arena name."""
        return self._name

    def append(self, record: R) -> int:
        """Take ownership of *record* and return its stable index."""
        self._records.append(record)
        return len(self._records) - 1

    def view(self, index: int) -> R:
        """Return a detached copy of the record at *index*."""
        return replace(self._records[index])

    def views(self) -> list[R]:
        """Return detached copies of all records, in log order."""
        return [replace(record) for record in self._records]

    def is_marked(self, index: int, anchor: Anchor) -> bool:
        """Return the current flag value of the record at *index* for *anchor*."""
        return bool(getattr(self._records[index], _FLAG_BY_ANCHOR[anchor]))

    def mark(self, index: int, anchor: Anchor) -> bool:
        """Upgrade the flag for *anchor* to True.

        Returns:
            True if the flag changed, False if it was already set.
        """
        record = self._records[index]
        flag = _FLAG_BY_ANCHOR[anchor]
        if getattr(record, flag):
            return False
        setattr(record, flag, True)
        return True

    def span(self, index: int) -> tuple[float, float]:
        """Return ``(start, duration)`` of the record at *index*."""
        record = self._records[index]
        return record.start_time, record.interval_duration

    def spans(self) -> Iterator[tuple[int, float, float]]:
        """Yield ``(index, start, duration)`` for every record."""
        for index, record in enumerate(self._records):
            yield index, record.start_time, record.interval_duration

    def clear(self) -> None:
        """Drop every record."""
        self._records.clear()

    def __iter__(self) -> Iterator[R]:
        return iter(self.views())

    def __len__(self) -> int:
        return len(self._records)


class CorrelationIndex:
    """Largest-paint and interaction instants plus the arenas checked against them."""

    __slots__ = ("_arenas", "_interactions", "_largest_paint")

    def __init__(self) -> None:
        self._largest_paint: float | None = None
        # dict as an insertion-ordered set
        self._interactions: dict[float, None] = {}
        self._arenas: list[IntervalArena] = []

    @property
    def largest_paint_instant(self) -> float | None:
        """The current largest-paint instant, if one has been observed."""
        return self._largest_paint

    @property
    def interaction_instants(self) -> tuple[float, ...]:
        """All interaction instants observed so far, in arrival order."""
        return tuple(self._interactions)

    def register(self, arena: IntervalArena) -> None:
        """Include *arena* in every future correlation pass."""
        if arena not in self._arenas:
            self._arenas.append(arena)

    def blocks(self, start: float, duration: float, anchor: Anchor) -> bool:
        """Check a span against every known instant of *anchor*."""
        if anchor is Anchor.LARGEST_PAINT:
            return self._largest_paint is not None and overlaps(
                start, duration, self._largest_paint
            )
        return any(overlaps(start, duration, instant) for instant in self._interactions)

    def evaluate(self, arena: IntervalArena, index: int) -> None:
        """Check a newly admitted record against the anchors known right now."""
        start, duration = arena.span(index)
        for anchor in Anchor:
            if not arena.is_marked(index, anchor) and self.blocks(start, duration, anchor):
                arena.mark(index, anchor)

    def set_largest_paint_instant(self, instant: float) -> int:
        """Store the largest-paint instant and re-check unflagged records.

        Returns:
            Number of records whose flag was upgraded by this pass.
        """
        value = _coerce_instant(instant)
        if value is None:
            LOG.warning("invalid_paint_instant_ignored", instant=repr(instant))
            return 0
        self._largest_paint = value
        upgraded = self._correlate(Anchor.LARGEST_PAINT)
        LOG.debug("largest_paint_correlated", instant=value, upgraded=upgraded)
        return upgraded

    def record_interaction_instant(self, instant: float) -> int:
        """Add an interaction instant and re-check unflagged records.

        Returns:
            Number of records whose flag was upgraded by this pass.
        """
        value = _coerce_instant(instant)
        if value is None:
            LOG.warning("invalid_interaction_instant_ignored", instant=repr(instant))
            return 0
        if value in self._interactions:
            return 0
        self._interactions[value] = None
        upgraded = self._correlate(Anchor.INTERACTION)
        LOG.debug(
            "interaction_correlated",
            instant=value,
            known=len(self._interactions),
            upgraded=upgraded,
        )
        return upgraded

    def reset(self) -> None:
        """Forget every known instant. Registered arenas stay registered."""
        self._largest_paint = None
        self._interactions.clear()

    def _correlate(self, anchor: Anchor) -> int:
        upgraded = 0
        for arena in self._arenas:
            for index, start, duration in arena.spans():
                if arena.is_marked(index, anchor):
                    continue
                if self.blocks(start, duration, anchor) and arena.mark(index, anchor):
                    upgraded += 1
        return upgraded


def _coerce_instant(instant: float) -> float | None:
    try:
        value = float(instant)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value
