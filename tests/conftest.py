"""Pytest configuration for pageperf tests."""

import sys
from pathlib import Path

import pytest
import structlog
from structlog._config import BoundLoggerLazyProxy

# Add src directory to sys.path for test imports
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate each test with its own reports directory.

    This fixture:
    - Creates a temporary reports directory for each test
    - Sets PAGEPERF_REPORTS_DIR to the temp directory
    - Resets the global settings instance before each test
    """
    reports_dir = tmp_path / "reports"
    monkeypatch.setenv("PAGEPERF_REPORTS_DIR", str(reports_dir))

    from pageperf.config import reset_settings

    reset_settings()

    return reports_dir


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Reset structlog after each test so configure_logging() calls do not leak."""
    yield
    structlog.reset_defaults()
    for module in list(sys.modules.values()):
        for attr in getattr(module, "__dict__", {}).values():
            if isinstance(attr, BoundLoggerLazyProxy):
                attr.__dict__.pop("bind", None)
