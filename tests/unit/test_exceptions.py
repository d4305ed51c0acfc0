"""Tests for pageperf.exceptions module."""

from __future__ import annotations

import pytest

from pageperf.exceptions import CaptureUnavailableError, DeliveryError, PagePerfError


class TestCaptureUnavailableError:
    """Tests for CaptureUnavailableError exception."""

    def test_inherits_from_pageperf_error(self) -> None:
        """CaptureUnavailableError is a subclass of PagePerfError."""
        assert issubclass(CaptureUnavailableError, PagePerfError)

    def test_source_stored(self) -> None:
        """CaptureUnavailableError stores the source name."""
        err = CaptureUnavailableError("layout-shift")
        assert err.source == "layout-shift"

    def test_default_message(self) -> None:
        """The default message names the source."""
        assert str(CaptureUnavailableError("layout-shift")) == (
            "Observation source 'layout-shift' is not available"
        )

    def test_custom_message(self) -> None:
        err = CaptureUnavailableError("event", "PerformanceObserver missing")
        assert str(err) == "PerformanceObserver missing"


class TestDeliveryError:
    """Tests for DeliveryError exception."""

    def test_catchable_as_pageperf_error(self) -> None:
        """DeliveryError can be caught as PagePerfError."""
        with pytest.raises(PagePerfError):
            raise DeliveryError("endpoint returned 500")
