"""Base class shared by every event collector.

A collector translates one kind of raw platform event into a typed record,
appends it to its own ordered log and notifies observers. Raw events are
never rejected: missing numeric fields become 0 and missing attribution
becomes None.

Collectors ingest only while active. A collector becomes active through
``initialize()``, either in push mode (no source, the caller feeds
``record()`` directly) or by subscribing to an ``ObservationSource``.
``disconnect()`` stops ingestion and keeps the log.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar, Generic, Protocol, TypeVar

from pageperf import aggregator
from pageperf.clock import Clock, monotonic_clock
from pageperf.correlation import CorrelationIndex, IntervalArena
from pageperf.exceptions import CaptureUnavailableError
from pageperf.logging import get_logger
from pageperf.signals import Listener, Signal

LOG = get_logger(__name__)

R = TypeVar("R")


class ObservationSource(Protocol):
    """A platform event source a collector can subscribe to.

    ``subscribe`` raises ``CaptureUnavailableError`` when the platform does
    not support the source, and otherwise returns a callable that stops
    delivery.
    """

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]: ...


class Collector(Generic[R]):
    """Append-only log of normalized records for one source type.

    Subclasses set ``name`` and implement ``_normalize``.

    Args:
        clock: Session clock; defaults to a monotonic clock started now.
    """

    name: ClassVar[str] = "collector"

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or monotonic_clock()
        self._log: list[R] = []
        self._initialized = False
        self._unsubscribe: Callable[[], None] | None = None
        self.recorded: Signal[R] = Signal(f"{self.name}.recorded")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        """True while the collector is accepting events."""
        return self._initialized

    def initialize(self, source: ObservationSource | None = None) -> bool:
        """Start accepting events.

        Args:
            source: Optional source to subscribe ``record`` to. Without one
                the collector runs in push mode.

        Returns:
            True if the collector became active by this call.
        """
        if self._initialized:
            LOG.warning("collector_already_initialized", collector=self.name)
            return False

        if source is not None and not self._subscribe(source, self.record):
            return False

        self._initialized = True
        LOG.info("collector_initialized", collector=self.name, push_mode=source is None)
        return True

    def disconnect(self) -> None:
        """Stop ingestion. The existing log is left intact."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._initialized:
            LOG.info("collector_disconnected", collector=self.name, records=len(self))
        self._initialized = False

    def _subscribe(self, source: ObservationSource, callback: Callable[[Any], None]) -> bool:
        try:
            self._unsubscribe = source.subscribe(callback)
        except CaptureUnavailableError as exc:
            LOG.warning(
                "capture_unavailable",
                collector=self.name,
                source=exc.source,
                error=str(exc),
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def on_record(self, listener: Listener[R]) -> Callable[[], None]:
        """Register an observer for new records. Returns an unsubscribe callable."""
        return self.recorded.connect(listener)

    def record(self, raw: Any) -> R | None:
        """Normalize *raw* and append it to the log.

        Returns:
            The appended record, or None if the collector is inactive or the
            event is not one this collector tracks.
        """
        if not self._accepting():
            return None
        normalized = self._normalize(raw)
        if normalized is None:
            return None
        return self._admit(normalized)

    def _accepting(self) -> bool:
        if not self._initialized:
            LOG.debug("record_dropped_inactive", collector=self.name)
        return self._initialized

    def _admit(self, record: R) -> R:
        stored = self._store(record)
        self.recorded.emit(stored)
        self._after_record(stored)
        return stored

    def _normalize(self, raw: Any) -> R | None:
        raise NotImplementedError

    def _store(self, record: R) -> R:
        self._log.append(record)
        return record

    def _after_record(self, record: R) -> None:
        """Hook for per-record diagnostics."""

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def records(self) -> list[R]:
        """All records, in log order."""
        return list(self._log)

    def query(self, predicate: Callable[[R], bool]) -> list[R]:
        """Records matching *predicate*, in log order."""
        return [r for r in self.records() if predicate(r)]

    def top_k(self, field: str, k: int = aggregator.DEFAULT_TOP_K) -> list[R]:
        """The *k* records with the largest *field*; None values sort last."""

        def _key(record: R) -> tuple[bool, Any]:
            value = getattr(record, field)
            return (value is not None, value if value is not None else 0)

        return aggregator.top_k(self.records(), key=_key, k=k)

    def clear(self) -> None:
        """Empty this collector's log."""
        self._log.clear()

    def __len__(self) -> int:
        return len(self._log)


class IntervalCollector(Collector[R]):
    """Collector whose records carry blocking flags upgraded by correlation.

    Records live in an ``IntervalArena`` registered with a shared
    ``CorrelationIndex``. Each admitted record is checked against the
    anchors already known; later anchors upgrade it through the arena.

    Args:
        clock: Session clock.
        correlation: Index shared with the other interval collectors of the
            same engine. A private one is created when omitted.
    """

    def __init__(self, clock: Clock | None = None, correlation: CorrelationIndex | None = None) -> None:
        super().__init__(clock)
        self._arena: IntervalArena[Any] = IntervalArena(self.name)
        self.correlation = correlation if correlation is not None else CorrelationIndex()
        self.correlation.register(self._arena)

    def _store(self, record: R) -> R:
        index = self._arena.append(record)
        self.correlation.evaluate(self._arena, index)
        return self._arena.view(index)

    def records(self) -> list[R]:
        return self._arena.views()

    def clear(self) -> None:
        self._arena.clear()

    def __len__(self) -> int:
        return len(self._arena)
