"""
Pytest configuration and fixtures.
"""

import logging
from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture
def write_ncl(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory writing NCL sources below tmp_path."""

    def _write(name: str, source: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def env() -> dict[str, str]:
    """Isolated environment for %env() lookups."""
    return {
        "PORT": "3000",
        "SERVER_NAME": "example.com",
        "API_PATH": "/api",
    }


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging() during a test."""
    yield
    logger = logging.getLogger("ncl_gen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
