"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from globwatch.emitter import EventEmitter  # noqa: E402


@pytest.fixture
def sink():
    """Event surface standing in for a watcher."""
    return EventEmitter()


@pytest.fixture
def watchers():
    """Collects watchers and closes them after the test."""
    started = []
    yield started
    for watcher in started:
        watcher.close()


@pytest.fixture
def write_config(tmp_path):
    """Write a TOML config into tmp_path and return its path."""

    def write(text: str, name: str = "globwatch.toml") -> Path:
        path = tmp_path / name
        path.write_text(text)
        return path

    return write
