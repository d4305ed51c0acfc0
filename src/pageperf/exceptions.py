"""Custom exceptions for the pageperf package."""


class PagePerfError(Exception):
    """Base exception class for all pageperf errors."""


class CaptureUnavailableError(PagePerfError):
    """Raised by an observation source that cannot deliver events.

    Collectors catch this during initialization, emit a diagnostic and stay
    un-initialized. It never escapes a collector.

    Attributes:
        source: Name of the unavailable source (e.g. 'long-animation-frame').
    """

    def __init__(self, source: str, message: str | None = None) -> None:
        self.source = source
        super().__init__(message or f"Observation source {source!r} is not available")


class DeliveryError(PagePerfError):
    """Raised when a session snapshot cannot be delivered to an external sink."""
