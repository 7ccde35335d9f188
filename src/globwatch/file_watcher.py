"""Glob-filtered file watcher built on watchdog."""

import asyncio
import logging
import os
import posixpath
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from globwatch.emitter import EventEmitter
from globwatch.patterns import GlobMatcher, compile_glob, join_base, normalize_path

logger = logging.getLogger(__name__)

FILE_EVENTS = ("add", "change", "unlink", "add_dir", "unlink_dir")

_GLOB_CHARS = re.compile(r"[*?\[\]{}!()]")

IgnoreEntry = str | Callable[[str], bool]


def static_prefix(pattern: str) -> str:
    """Leading path segments of ``pattern`` that contain no glob syntax."""
    segments = pattern.split("/")
    static: list[str] = []
    for segment in segments:
        if _GLOB_CHARS.search(segment):
            break
        static.append(segment)

    if len(static) == len(segments):
        # A literal path: watch its directory.
        static = static[:-1]
    prefix = "/".join(static)
    if not prefix and pattern.startswith("/"):
        return "/"
    return prefix


def _is_within(path: str, base: str) -> bool:
    return path == base or path.startswith(base.rstrip("/") + "/")


def watch_roots(patterns: Iterable[str], base: str | None = None) -> list[str]:
    """Directories to observe so that every pattern is covered.

    A missing static prefix falls back to its nearest existing ancestor,
    but never above ``base``. Prefixes outside ``base`` are kept as they
    are, so a missing one fails when scheduled instead of widening the
    watch. Roots nested inside another root are dropped.
    """
    candidates = set()
    for pattern in patterns:
        prefix = normalize_path(static_prefix(pattern) or base or ".")
        root = Path(prefix)
        stop = Path(base) if base is not None and _is_within(prefix, base) else root
        while root != stop and not root.is_dir():
            root = root.parent
        candidates.add(normalize_path(str(root)))

    roots: list[str] = []
    for root in sorted(candidates, key=len):
        if not any(root == r or root.startswith(r.rstrip("/") + "/") for r in roots):
            roots.append(root)
    return roots


class _DispatchHandler(FileSystemEventHandler):
    """Forward watchdog events from the observer thread to the watcher."""

    def __init__(self, watcher: "GlobWatcher"):
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher._post("add_dir" if event.is_directory else "add", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.watcher._post("change", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher._post("unlink_dir" if event.is_directory else "unlink", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self.watcher._post("unlink_dir", event.src_path)
            self.watcher._post("add_dir", event.dest_path)
        else:
            self.watcher._post("unlink", event.src_path)
            self.watcher._post("add", event.dest_path)


class GlobWatcher(EventEmitter):
    """Watch the files matched by a set of globs.

    Emits ``add``, ``change``, ``unlink``, ``add_dir`` and ``unlink_dir``
    with the path, ``all`` with ``(event, path)``, ``ready`` once the
    initial scan is done, ``error`` for watcher failures and ``close``.

    Listeners always run on the asyncio loop the watcher was started on.
    """

    def __init__(
        self,
        patterns: Iterable[str],
        *,
        ignored: Iterable[IgnoreEntry] = (),
        cwd: str | os.PathLike | None = None,
        ignore_initial: bool = True,
    ):
        """Initialize watcher (not started yet).

        Args:
            patterns: Positive globs to watch
            ignored: Globs or predicates for paths to suppress
            cwd: Base directory for relative globs; paths are reported relative to it
            ignore_initial: If False, existing files are reported as ``add`` before ``ready``
        """
        super().__init__()
        self.cwd = cwd
        self.ignore_initial = ignore_initial
        self.coordinator = None

        self._base = normalize_path(os.path.abspath(cwd if cwd is not None else os.getcwd()))
        self.patterns = [join_base(self._base, p) for p in patterns]
        self._watch_matcher = compile_glob(*self.patterns)

        self.ignored = tuple(ignored)
        self._ignored_matchers: list[GlobMatcher] = []
        self._ignored_predicates: list[Callable[[str], bool]] = []
        for entry in self.ignored:
            if callable(entry):
                self._ignored_predicates.append(entry)
            else:
                self._ignored_matchers.append(compile_glob(join_base(self._base, entry)))

        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer = None
        self._startup_task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def roots(self) -> list[str]:
        return watch_roots(self.patterns, self._base)

    def start(self) -> None:
        """Start observing.

        Raises:
            RuntimeError: If already started or no event loop is running
        """
        if self._observer is not None:
            raise RuntimeError("GlobWatcher is already started")

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                "GlobWatcher must be started from a running event loop. "
                "Call watch() from async code."
            ) from None

        self._observer = Observer()
        handler = _DispatchHandler(self)
        roots = self.roots
        try:
            for root in roots:
                self._observer.schedule(handler, root, recursive=True)
            self._observer.start()
            logger.info(f"Watching {len(self.patterns)} glob(s) under {len(roots)} root(s)")
        except OSError as e:
            logger.error(f"Failed to start file watcher: {e}")
            self._loop.call_soon(self.emit, "error", e)

        self._startup_task = self._loop.create_task(self._initial_scan())

    async def _initial_scan(self) -> None:
        if not self.ignore_initial:
            found = await self._loop.run_in_executor(None, self._scan)
            for event_name, path in found:
                self._dispatch(event_name, path)
        if not self._closed:
            self.emit("ready")

    def _scan(self) -> list[tuple[str, str]]:
        found = []
        for root in self.roots:
            for dirpath, dirnames, filenames in os.walk(root):
                for name in sorted(dirnames):
                    found.append(("add_dir", normalize_path(os.path.join(dirpath, name))))
                for name in sorted(filenames):
                    found.append(("add", normalize_path(os.path.join(dirpath, name))))
        return found

    def close(self) -> None:
        """Stop observing. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()

        if self._observer is not None and self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=2.0)
            logger.info("Stopped file watcher")

        self.emit("close")

    def matches(self, path: str) -> bool:
        """Whether an absolute path is watched and not ignored."""
        if not self._watch_matcher.match(path):
            return False
        return not self.is_ignored(path)

    def is_ignored(self, path: str) -> bool:
        if any(matcher.match(path) for matcher in self._ignored_matchers):
            return True
        return any(predicate(path) for predicate in self._ignored_predicates)

    def _post(self, event_name: str, src_path: str | bytes) -> None:
        """Hand an observer-thread event to the loop."""
        if isinstance(src_path, bytes):
            src_path = os.fsdecode(src_path)
        path = normalize_path(os.path.abspath(src_path))
        try:
            self._loop.call_soon_threadsafe(self._dispatch, event_name, path)
        except RuntimeError as e:
            logger.debug(f"Dropped '{event_name}' for {path}: {e}")

    def _dispatch(self, event_name: str, path: str) -> None:
        if self._closed or not self.matches(path):
            return

        reported = self._report_path(path)
        logger.debug(f"{event_name}: {reported}")
        self.emit(event_name, reported)
        self.emit("all", event_name, reported)

    def _report_path(self, path: str) -> str:
        if self.cwd is None:
            return path
        return posixpath.relpath(path, self._base)
