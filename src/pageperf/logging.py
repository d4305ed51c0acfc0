"""Structured diagnostics for pageperf.

Nothing pageperf logs is fatal: collectors report unavailable capture
sources, dropped events and slow operations, the correlation index reports
ignored instants, and delivery reports failed sends. Every event name is a
snake_case string and carries a ``component`` key (``collectors.vitals``,
``correlation``, ...) so a host can route or filter diagnostics per part of
the engine. Events emitted inside :func:`session_context` also carry the
session id.

A host application that already configures structlog can skip
:func:`configure_logging`; the component and session keys still appear.
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

_PACKAGE_PREFIX = "pageperf."


def add_log_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the log level to the event dict."""
    if method_name == "warn":
        # Translate "warn" to "warning"
        event_dict["level"] = "warning"
    else:
        event_dict["level"] = method_name
    return event_dict


def component_name(module: str | None) -> str | None:
    """Strip the package prefix: ``pageperf.collectors.vitals`` -> ``collectors.vitals``."""
    if not module:
        return None
    if module.startswith(_PACKAGE_PREFIX):
        return module[len(_PACKAGE_PREFIX) :]
    return module


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
) -> None:
    """Route pageperf diagnostics to stderr.

    The default level hides the per-collector ``collector_initialized`` and
    ``record_dropped_inactive`` chatter and keeps capture and delivery
    warnings visible.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit one JSON object per line instead of the colored
            console format.
    """
    import logging as stdlib_logging

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(stdlib_logging, level.upper(), stdlib_logging.WARNING)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def configure_from_settings() -> None:
    """Configure logging from ``PAGEPERF_LOG_LEVEL`` / ``PAGEPERF_LOG_FORMAT``."""
    from pageperf.config import get_settings

    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_output=settings.log_format == "json",
    )


@contextmanager
def session_context(session_id: str, **extra: Any) -> Iterator[None]:
    """Tag every event logged inside the block with *session_id*.

    Collectors do not know which session they belong to; the monitor wraps
    its lifecycle calls in this so their diagnostics can be told apart when
    one process hosts several sessions.
    """
    with structlog.contextvars.bound_contextvars(session_id=session_id, **extra):
        yield


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger whose events carry the pageperf component they came from.

    Args:
        name: Module name, usually ``__name__``.
    """
    component = component_name(name)
    if component is None:
        return structlog.get_logger()
    return structlog.get_logger(component=component)
