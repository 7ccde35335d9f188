"""``watch()``: run a task whenever files matching a set of globs change."""

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace

from globwatch.completion import Task
from globwatch.coordinator import DEFAULT_DELAY_MS, RunCoordinator
from globwatch.errors import NothingToWatchError
from globwatch.file_watcher import GlobWatcher, IgnoreEntry
from globwatch.patterns import build_ignore_predicate, classify

logger = logging.getLogger(__name__)

DEFAULT_EVENTS = ("add", "change", "unlink")


@dataclass(frozen=True)
class WatchOptions:
    """Options accepted by ``watch()``."""

    delay: float = DEFAULT_DELAY_MS
    """Debounce window in milliseconds."""

    events: tuple[str, ...] = DEFAULT_EVENTS
    """Watcher events that trigger the task."""

    ignored: tuple[IgnoreEntry, ...] = ()
    """Globs or predicates for paths to ignore, in addition to negated globs."""

    ignore_initial: bool = True
    """Whether files found by the initial scan are not reported."""

    queue: bool = True
    """Remember one run requested while a run is in progress."""

    cwd: str | os.PathLike | None = None
    """Base directory for relative globs."""


_DEFAULTS = WatchOptions()
_OPTION_NAMES = {f.name for f in fields(WatchOptions)}


def _as_tuple(value) -> tuple:
    if isinstance(value, (str, bytes)) or callable(value):
        return (value,)
    return tuple(value)


def resolve_options(options: WatchOptions | Mapping | None = None, **overrides) -> WatchOptions:
    """Merge options over the defaults.

    ``None`` values fall back to the default, so ``ignore_initial=None``
    keeps the default of True.

    Raises:
        TypeError: On an unknown option name
    """
    if isinstance(options, WatchOptions):
        values = {f.name: getattr(options, f.name) for f in fields(WatchOptions)}
    else:
        values = dict(options or {})
    values.update(overrides)

    unknown = set(values) - _OPTION_NAMES
    if unknown:
        raise TypeError(f"Unknown watch option(s): {', '.join(sorted(unknown))}")

    merged = {name: value for name, value in values.items() if value is not None}
    if "events" in merged:
        merged["events"] = _as_tuple(merged["events"])
    if "ignored" in merged:
        merged["ignored"] = _as_tuple(merged["ignored"])
    if merged.get("delay", 0) < 0:
        raise ValueError(f"delay must be non-negative, got {merged['delay']}")

    return replace(_DEFAULTS, **merged)


def watch(
    globs: str | Iterable[str],
    task: Task | None = None,
    options: WatchOptions | Mapping | None = None,
    **overrides,
) -> GlobWatcher:
    """Watch files matching ``globs`` and run ``task`` when they change.

    Globs prefixed with ``!`` exclude paths; a later glob overrides an
    earlier one for the paths they both match. The task runs at most once
    at a time; see ``globwatch.completion`` for how it signals completion.

    Must be called with a running asyncio loop.

    Args:
        globs: A glob or ordered iterable of globs
        task: Optional task to run on change
        options: WatchOptions or mapping of option names
        **overrides: Individual options, applied over ``options``

    Returns:
        The started GlobWatcher

    Raises:
        NothingToWatchError: If no positive glob is given
    """
    opts = resolve_options(options, **overrides)
    classified = classify(globs)

    watch_set = classified.watch_set
    if not watch_set:
        raise NothingToWatchError(tuple(p.raw for p in classified.patterns))

    ignored = opts.ignored
    if classified.has_negations:
        base = os.path.abspath(opts.cwd if opts.cwd is not None else os.getcwd())
        ignored = (*ignored, build_ignore_predicate(base, classified))

    watcher = GlobWatcher(watch_set, ignored=ignored, cwd=opts.cwd, ignore_initial=opts.ignore_initial)

    if task is not None:
        coordinator = RunCoordinator(task, watcher, delay=opts.delay, queue=opts.queue)
        for event_name in opts.events:
            watcher.on(event_name, coordinator.handle)
        watcher.on("close", coordinator.cancel)
        watcher.coordinator = coordinator
        logger.debug(f"Task subscribed to {', '.join(opts.events)} (delay: {opts.delay}ms, queue: {opts.queue})")

    watcher.start()
    return watcher
