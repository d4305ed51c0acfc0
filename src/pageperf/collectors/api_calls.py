"""Outbound API calls and their correlation with paint and interaction.

Interception is opt-in. Callers route requests through one of two surfaces,
both of which normalize into ``APICall``:

- ``ApiCallCollector.wrap_fetch`` decorates any callable that performs a
  request and returns a response (sync or async). Headers-received timing is
  not observable from outside the call, so TTFB equals the total duration and
  the size is the length of the response body.
- ``MonitoredSession`` is a ``requests.Session`` whose requests are recorded
  with TTFB taken from ``response.elapsed`` and the size from the
  ``Content-Length`` header.

Example::

    collector = ApiCallCollector()
    collector.initialize()

    @collector.wrap_fetch
    def fetch(url, method="GET"):
        return requests.request(method, url)

    session = MonitoredSession(collector)
    session.get("https://api.example.com/items")
"""

from __future__ import annotations

import functools
import inspect
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from pageperf import aggregator
from pageperf.clock import epoch_ms
from pageperf.collectors.base import IntervalCollector
from pageperf.config import get_settings
from pageperf.fields import get_field, get_int, get_number, get_optional_number, get_str
from pageperf.logging import get_logger
from pageperf.models import APICall

LOG = get_logger(__name__)

# HTTP status recorded when a request fails below the HTTP layer
NETWORK_ERROR_STATUS = 0


@dataclass(frozen=True)
class PendingRequest:
    """A request that has started but not completed."""

    request_id: str
    url: str
    method: str
    start_time: float


class ApiCallCollector(IntervalCollector[APICall]):
    """Collects outbound requests and flags those overlapping paint or interaction."""

    name = "api_calls"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._pending: dict[str, PendingRequest] = {}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def lcp_blocking(self) -> list[APICall]:
        """Calls whose span contained the largest-paint instant."""
        return aggregator.lcp_blocking_calls(self.records())

    def inp_blocking(self) -> list[APICall]:
        """Calls whose span contained an interaction instant."""
        return aggregator.inp_blocking_calls(self.records())

    def average_latency(self) -> float:
        return aggregator.average_latency(self.records())

    def slowest(self, k: int = aggregator.DEFAULT_TOP_K) -> list[APICall]:
        return self.top_k("duration", k)

    def pending(self) -> list[PendingRequest]:
        """Requests started through an interception surface and not yet finished."""
        return list(self._pending.values())

    def clear(self) -> None:
        super().clear()
        self._pending.clear()

    # ------------------------------------------------------------------
    # In-flight bookkeeping
    # ------------------------------------------------------------------

    def begin_request(self, url: str, method: str = "GET") -> str:
        """Register an in-flight request and return its id."""
        request_id = f"req_{int(epoch_ms())}_{uuid.uuid4().hex[:9]}"
        self._pending[request_id] = PendingRequest(
            request_id=request_id,
            url=url,
            method=method.upper(),
            start_time=self._clock(),
        )
        return request_id

    def end_request(
        self,
        request_id: str,
        status: int,
        size: int = 0,
        ttfb: float | None = None,
    ) -> APICall | None:
        """Complete an in-flight request and record it.

        Args:
            request_id: Id returned by ``begin_request``.
            status: HTTP status, or 0 for a network-level failure.
            size: Response size in bytes.
            ttfb: Time to first byte in ms; the total duration when None.
        """
        pending = self._pending.pop(request_id, None)
        if pending is None:
            LOG.warning("unknown_request_completed", request_id=request_id)
            return None
        if not self._accepting():
            return None

        duration = max(0.0, self._clock() - pending.start_time)
        call = APICall(
            url=pending.url,
            method=pending.method,
            start_time=pending.start_time,
            duration=duration,
            ttfb=duration if ttfb is None else ttfb,
            status=status,
            size=size,
        )
        return self._admit(call)

    # ------------------------------------------------------------------
    # Fetch-style interception
    # ------------------------------------------------------------------

    def wrap_fetch(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Decorate a request function so every call is recorded.

        The URL is the first positional argument (or ``url=``; an object with a
        ``url`` attribute is accepted) and the method is ``method=`` (GET when
        absent). Exceptions raised by *fn* are recorded as status 0 and
        re-raised unchanged.
        """
        if inspect.iscoroutinefunction(fn):
            return self._make_async_wrapper(fn)
        return self._make_wrapper(fn)

    def _make_wrapper(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            request_id = self.begin_request(*_request_target(args, kwargs))
            try:
                response = fn(*args, **kwargs)
            except Exception:
                self.end_request(request_id, NETWORK_ERROR_STATUS)
                raise
            self.end_request(request_id, _response_status(response), _body_size(response))
            return response

        return wrapper

    def _make_async_wrapper(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request_id = self.begin_request(*_request_target(args, kwargs))
            try:
                response = await fn(*args, **kwargs)
            except Exception:
                self.end_request(request_id, NETWORK_ERROR_STATUS)
                raise
            self.end_request(request_id, _response_status(response), _body_size(response))
            return response

        return wrapper

    # ------------------------------------------------------------------
    # Normalization and diagnostics
    # ------------------------------------------------------------------

    def _normalize(self, raw: Any) -> APICall:
        duration = get_number(raw, "duration")
        ttfb = get_optional_number(raw, "ttfb")
        return APICall(
            url=get_str(raw, "url"),
            method=get_str(raw, "method", default="GET").upper(),
            start_time=get_number(raw, "start_time"),
            duration=duration,
            ttfb=duration if ttfb is None else ttfb,
            status=get_int(raw, "status", default=NETWORK_ERROR_STATUS),
            size=get_int(raw, "size"),
        )

    def _after_record(self, record: APICall) -> None:
        if record.duration > get_settings().slow_api_call_ms:
            LOG.warning(
                "slow_api_call",
                url=record.url,
                duration_ms=round(record.duration, 2),
                ttfb_ms=round(record.ttfb, 2),
                blocked_lcp=record.blocked_lcp,
                blocked_inp=record.blocked_inp,
            )


# ---------------------------------------------------------------------------
# requests integration
# ---------------------------------------------------------------------------


class MonitoredSession(requests.Session):
    """``requests.Session`` that records every request on an ``ApiCallCollector``.

    Args:
        collector: Collector receiving the calls.
    """

    def __init__(self, collector: ApiCallCollector) -> None:
        super().__init__()
        self.collector = collector

    def request(self, method: str | bytes, url: str | bytes, *args: Any, **kwargs: Any) -> requests.Response:
        method_name = method.decode() if isinstance(method, bytes) else method
        url_text = url.decode() if isinstance(url, bytes) else url
        request_id = self.collector.begin_request(url_text, method_name)
        try:
            response = super().request(method, url, *args, **kwargs)
        except requests.RequestException:
            self.collector.end_request(request_id, NETWORK_ERROR_STATUS)
            raise

        self.collector.end_request(
            request_id,
            response.status_code,
            _content_length(response),
            ttfb=response.elapsed.total_seconds() * 1000.0,
        )
        return response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request_target(args: tuple[Any, ...], kwargs: dict[str, Any]) -> tuple[str, str]:
    target = args[0] if args else kwargs.get("url", "")
    if isinstance(target, str):
        return target, str(kwargs.get("method") or "GET")
    # Request-like object
    url = get_str(target, "url", default=str(target))
    method = kwargs.get("method") or get_field(target, "method") or "GET"
    return url, str(method)


def _response_status(response: Any) -> int:
    return get_int(response, "status_code", "status")


def _body_size(response: Any) -> int:
    for attr in ("content", "body", "text"):
        body = getattr(response, attr, None)
        if isinstance(body, (bytes, bytearray)):
            return len(body)
        if isinstance(body, str):
            return len(body.encode())
    return 0


def _content_length(response: requests.Response) -> int:
    try:
        return int(response.headers.get("Content-Length") or 0)
    except ValueError:
        return 0
