"""Best-effort delivery of sessions and reports.

Nothing here raises: failures are logged and reported to the caller as a
``False``/``None`` result, and the session itself is never modified.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import requests

from pageperf.config import get_settings
from pageperf.exceptions import DeliveryError
from pageperf.logging import get_logger
from pageperf.models import PerformanceSession

LOG = get_logger(__name__)

_FILENAME_UNSAFE_RE = re.compile(r"[:.+]")


def session_payload(session: PerformanceSession) -> dict[str, Any]:
    """Structured form of *session* suitable for JSON encoding."""
    return session.to_dict()


def send_session(
    session: PerformanceSession,
    endpoint: str,
    *,
    timeout: float | None = None,
    http: requests.Session | None = None,
) -> bool:
    """POST *session* as JSON to *endpoint*.

    Args:
        session: Snapshot to deliver.
        endpoint: Destination URL.
        timeout: Request timeout in seconds; ``PAGEPERF_DELIVERY_TIMEOUT`` when None.
        http: Session used to send; a plain ``requests.post`` when None.

    Returns:
        True if the endpoint accepted the payload, False otherwise.
    """
    sender = http.post if http is not None else requests.post
    effective_timeout = timeout if timeout is not None else get_settings().delivery_timeout
    try:
        response = sender(endpoint, json=session_payload(session), timeout=effective_timeout)
        if not response.ok:
            raise DeliveryError(f"Endpoint responded with HTTP {response.status_code}")
    except (requests.RequestException, DeliveryError) as exc:
        LOG.warning(
            "session_delivery_failed",
            endpoint=endpoint,
            session_id=session.session_id,
            error=str(exc),
        )
        return False

    LOG.info("session_delivered", endpoint=endpoint, session_id=session.session_id)
    return True


def report_filename(generated_at: datetime | None = None) -> str:
    """``performance-report-<timestamp>.md`` with filesystem-safe separators."""
    stamp = (generated_at or datetime.now(tz=UTC)).isoformat()
    return f"performance-report-{_FILENAME_UNSAFE_RE.sub('-', stamp)}.md"


def save_report(
    report: str,
    directory: Path | None = None,
    generated_at: datetime | None = None,
) -> Path | None:
    """Write a rendered report to *directory* (``PAGEPERF_REPORTS_DIR`` by default).

    Returns:
        Path of the written file, or None if it could not be written.
    """
    target_dir = directory or get_settings().reports_dir
    path = target_dir / report_filename(generated_at)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(report, encoding="utf-8")
    except OSError as exc:
        LOG.warning("report_save_failed", path=str(path), error=str(exc))
        return None

    LOG.info("report_saved", path=str(path), size=len(report))
    return path
