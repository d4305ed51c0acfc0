"""Shared test helpers for unit tests."""

from collections.abc import Callable
from typing import Any

import pytest

from pageperf.exceptions import CaptureUnavailableError


class FakeClock:
    """Manually advanced session clock (milliseconds)."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class FakeSource:
    """Observation source that keeps its subscriber and can push events to it.

    Args:
        unavailable: When set, ``subscribe`` raises ``CaptureUnavailableError``
            naming this source.
    """

    def __init__(self, unavailable: str | None = None) -> None:
        self.unavailable = unavailable
        self.callback: Callable[[Any], Any] | None = None
        self.unsubscribed = False

    def subscribe(self, callback: Callable[[Any], Any]) -> Callable[[], None]:
        if self.unavailable:
            raise CaptureUnavailableError(self.unavailable)
        self.callback = callback

        def _unsubscribe() -> None:
            self.unsubscribed = True
            self.callback = None

        return _unsubscribe

    def push(self, event: Any) -> Any:
        assert self.callback is not None, "no subscriber"
        return self.callback(event)


@pytest.fixture
def clock() -> FakeClock:
    """A session clock starting at 0ms."""
    return FakeClock()


@pytest.fixture
def source() -> FakeSource:
    """An available observation source."""
    return FakeSource()


@pytest.fixture
def unavailable_source() -> FakeSource:
    """An observation source the platform does not support."""
    return FakeSource(unavailable="long-animation-frame")


@pytest.fixture
def make_source() -> type[FakeSource]:
    """Factory for additional observation sources within one test."""
    return FakeSource
