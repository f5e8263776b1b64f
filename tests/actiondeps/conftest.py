"""Shared fixtures for actiondeps tests (no network or GitHub access needed)."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import structlog


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session", autouse=True)
def _route_structlog_to_stdlib():
    """Send structlog events through stdlib logging so stdout stays clean."""
    structlog.configure(
        processors=[structlog.stdlib.render_to_log_kwargs],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_file(tmp_path):
    """Write dedented text to a path relative to ``tmp_path``."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip())
        return path

    return _write
