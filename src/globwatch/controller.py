"""Frontend-agnostic controller running the watches of a config file.

Provides a clean interface for any frontend (TUI, headless, embedding):
- Loading the configuration
- Starting and stopping one watcher per ``[[watch]]`` table
- Manual run requests
- Run lifecycle callbacks and status queries

Usage (Embedded):
    controller = WatchController(config_path)
    controller.on_run_finished = lambda name, error: ...
    controller.attach(asyncio.get_running_loop())
    ...
    controller.detach()
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from globwatch.commands import shell_task
from globwatch.config import load_watch_config
from globwatch.coordinator import RunState
from globwatch.file_watcher import FILE_EVENTS, GlobWatcher
from globwatch.models import RunRecord, WatchConfig
from globwatch.notifier import NoOpNotifier, Notifier
from globwatch.watch import watch

logger = logging.getLogger(__name__)

# Finished runs kept per watch
HISTORY_LIMIT = 20


class WatchController:
    """Runs the configured watches on an asyncio loop.

    Stable methods: attach(), detach(), request_run(), get_watch_names(),
    get_state(), get_run_count(), get_history().
    """

    def __init__(
        self,
        config_path: str | Path,
        notifier: Notifier | None = None,
        enable_watchers: bool = True,
    ):
        """Initialize controller.

        Args:
            config_path: Path to TOML config
            notifier: Optional notification handler (defaults to NoOpNotifier - silent)
            enable_watchers: If True, watchers start on attach(). If False, host controls lifecycle.
        """
        self.config_path = Path(config_path)
        self.notifier = notifier or NoOpNotifier()
        self.enable_watchers = enable_watchers
        self._loop: asyncio.AbstractEventLoop | None = None

        try:
            self.watch_configs: list[WatchConfig] = load_watch_config(self.config_path)
        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

        self._watchers: dict[str, GlobWatcher] = {}
        self._history: dict[str, list[RunRecord]] = {cfg.name: [] for cfg in self.watch_configs}

        # Outbound events (host wires these)
        self.on_run_started: Callable[[str], None] | None = None
        self.on_run_finished: Callable[[str, object | None], None] | None = None
        self.on_file_event: Callable[[str, str, str], None] | None = None

    @property
    def is_attached(self) -> bool:
        return self._loop is not None

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach to a running event loop and start watchers if enabled.

        Idempotent. Must be called from within the loop (e.g. on_mount()).

        Raises:
            RuntimeError: If the loop is not running
        """
        if self._loop is not None:
            return

        if not loop.is_running():
            raise RuntimeError(
                "Event loop must be running before attach(). "
                "Call attach() from within on_mount() or after loop started."
            )

        self._loop = loop

        if self.enable_watchers:
            for cfg in self.watch_configs:
                try:
                    self._watchers[cfg.name] = self._start_watch(cfg)
                except Exception as e:
                    logger.error(f"Failed to start watch '{cfg.name}': {e}")
                    self.notifier.error(f"Watch '{cfg.name}' failed to start: {e}")
            self.notifier.info(f"Watching {len(self._watchers)} of {len(self.watch_configs)} configured watch(es)")

        logger.debug("Controller attached to event loop")

    def detach(self) -> None:
        """Close all watchers and forget the loop."""
        for name, watcher in self._watchers.items():
            try:
                watcher.close()
            except Exception as e:
                logger.error(f"Error closing watch '{name}': {e}")
        if self._watchers:
            self.notifier.info("File watchers stopped")
        self._watchers.clear()
        self._loop = None
        logger.debug("Controller detached from event loop")

    def _start_watch(self, cfg: WatchConfig) -> GlobWatcher:
        watcher = watch(
            cfg.patterns,
            shell_task(cfg.command, cwd=cfg.cwd),
            delay=cfg.delay,
            events=cfg.events,
            ignored=cfg.ignored,
            ignore_initial=cfg.ignore_initial,
            queue=cfg.queue,
            cwd=cfg.cwd,
        )

        # Listening on "error" makes failed runs observable.
        watcher.on("error", lambda error: self._on_error(cfg.name, error))
        watcher.on("all", lambda event, path: self._on_file_event(cfg.name, event, path))

        coordinator = watcher.coordinator
        coordinator.on_run_started = lambda: self._on_run_started(cfg.name)
        coordinator.on_run_finished = lambda error: self._on_run_finished(cfg.name, error)

        logger.info(f"Watching {cfg.patterns} for '{cfg.name}' (delay: {cfg.delay}ms)")
        return watcher

    # ========================================================================
    # Run requests
    # ========================================================================

    def request_run(self, name: str) -> None:
        """Request a run of a watch's command, subject to debounce and queueing.

        Raises:
            RuntimeError: If not attached
            KeyError: If no such watch is running
        """
        if self._loop is None:
            raise RuntimeError("Controller not attached to event loop. Call attach() first.")
        if name not in self._watchers:
            raise KeyError(f"Unknown or inactive watch: {name}")

        coordinator = self._watchers[name].coordinator
        self._loop.call_soon_threadsafe(coordinator.trigger)

    def request_run_all(self) -> None:
        for name in self._watchers:
            self.request_run(name)

    # ========================================================================
    # Callbacks from watchers
    # ========================================================================

    def _on_run_started(self, name: str) -> None:
        self._history[name].append(RunRecord(started=datetime.now()))
        self.notifier.info(f"▶ {name}")
        if self.on_run_started:
            self.on_run_started(name)

    def _on_run_finished(self, name: str, error: object | None) -> None:
        history = self._history[name]
        if history and history[-1].finished is None:
            history[-1].finished = datetime.now()
            history[-1].error = error
        del history[:-HISTORY_LIMIT]

        if error is None:
            self.notifier.info(f"✓ {name}")
        if self.on_run_finished:
            self.on_run_finished(name, error)

    def _on_error(self, name: str, error: object) -> None:
        self.notifier.error(f"✗ {name}: {error}")

    def _on_file_event(self, name: str, event: str, path: str) -> None:
        if event not in FILE_EVENTS:
            return
        if self.on_file_event:
            self.on_file_event(name, event, path)

    # ========================================================================
    # Queries
    # ========================================================================

    def get_watch_names(self) -> list[str]:
        """Watch names in config order."""
        return [cfg.name for cfg in self.watch_configs]

    def get_config(self, name: str) -> WatchConfig:
        for cfg in self.watch_configs:
            if cfg.name == name:
                return cfg
        raise KeyError(name)

    def get_state(self, name: str) -> RunState:
        watcher = self._watchers.get(name)
        if watcher is None or watcher.coordinator is None:
            return RunState.IDLE
        return watcher.coordinator.state

    def get_run_count(self, name: str) -> int:
        watcher = self._watchers.get(name)
        if watcher is None or watcher.coordinator is None:
            return 0
        return watcher.coordinator.run_count

    def get_history(self, name: str) -> list[RunRecord]:
        return list(self._history.get(name, []))

    def get_last_finished(self, name: str) -> RunRecord | None:
        for record in reversed(self._history.get(name, [])):
            if record.finished is not None:
                return record
        return None
