"""Shared data models for globwatch."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from globwatch.coordinator import RunState
from globwatch.watch import DEFAULT_EVENTS


@dataclass
class WatchConfig:
    """One ``[[watch]]`` table from the config file."""

    name: str
    """Display name, unique within a config."""

    patterns: list[str]
    """Globs, ``!`` negating."""

    command: str
    """Shell command run on change."""

    cwd: Path
    """Base directory for globs and for the command."""

    delay: int = 200
    """Debounce window in milliseconds."""

    events: list[str] = field(default_factory=lambda: list(DEFAULT_EVENTS))
    """Watcher events that trigger the command."""

    ignored: list[str] = field(default_factory=list)
    """Extra globs to ignore."""

    ignore_initial: bool = True
    """Whether files present at startup are not reported."""

    queue: bool = True
    """Remember one run requested during a run."""


@dataclass
class RunRecord:
    """A single run of a watch's command."""

    started: datetime
    """When the run started."""

    finished: datetime | None = None
    """When the run finished (None while running)."""

    error: object | None = None
    """Failure value, if the run failed."""

    @property
    def succeeded(self) -> bool:
        return self.finished is not None and self.error is None

    @property
    def duration_str(self) -> str:
        if self.finished is None:
            return "running"
        seconds = (self.finished - self.started).total_seconds()
        if seconds < 1:
            return f"{seconds * 1000:.0f}ms"
        return f"{seconds:.1f}s"


def map_run_state_to_icon(state: RunState, last_run: RunRecord | None = None) -> str:
    """Map a coordinator state (and last result when idle) to an icon.

    Args:
        state: Current RunState
        last_run: Most recent finished run, if any

    Returns:
        Unicode icon string
    """
    if state == RunState.RUNNING_WITH_QUEUED:
        return "⏭"
    elif state == RunState.RUNNING:
        return "⏳"
    elif last_run is None or last_run.finished is None:
        return "◯"
    elif last_run.succeeded:
        return "✅"
    else:
        return "❌"
