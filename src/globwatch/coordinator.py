"""Debounced, serialized invocation of a user task.

Bursts of change events collapse into one run, at most one run is in flight
at a time, and (when queueing is enabled) one more run is remembered while
a run is in progress.

Every transition happens on the asyncio loop thread: event delivery,
debounce timer firing and task completion are all loop callbacks, so the
state needs no locking.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from globwatch.completion import Task, invoke

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 200


class RunState(Enum):
    """Run states of a coordinator."""

    IDLE = "idle"
    RUNNING = "running"
    RUNNING_WITH_QUEUED = "running_with_queued"


class RunStateMachine:
    """Idle / Running / RunningWithQueued transitions."""

    def __init__(self, queue_enabled: bool = True):
        self.queue_enabled = queue_enabled
        self.state = RunState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state is not RunState.IDLE

    @property
    def is_queued(self) -> bool:
        return self.state is RunState.RUNNING_WITH_QUEUED

    def request(self) -> bool:
        """Record a run request.

        Returns:
            True if a run should start now
        """
        if self.state is RunState.IDLE:
            self.state = RunState.RUNNING
            return True

        if self.queue_enabled:
            self.state = RunState.RUNNING_WITH_QUEUED
        return False

    def complete(self) -> bool:
        """Record that the in-flight run finished.

        Returns:
            True if the queued run should start now
        """
        if self.state is RunState.RUNNING_WITH_QUEUED:
            self.state = RunState.RUNNING
            return True

        self.state = RunState.IDLE
        return False


class Debouncer:
    """Trailing-edge debounce on the running event loop.

    Each call re-arms the timer; ``func`` runs once ``delay_ms`` has passed
    without another call, with the arguments of the last call.
    """

    def __init__(self, func: Callable, delay_ms: float = DEFAULT_DELAY_MS):
        if delay_ms < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay_ms}")
        self.func = func
        self.delay_ms = delay_ms
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000.0, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple) -> None:
        self._handle = None
        self.func(*args)


class ErrorSink(Protocol):
    """Event surface that task failures are reported on."""

    def emit(self, event: str, *args) -> bool: ...

    def listener_count(self, event: str) -> int: ...


def has_error_listener(sink: ErrorSink) -> bool:
    return sink.listener_count("error") != 0


class RunCoordinator:
    """Run ``task`` in response to change events.

    Usage:
        coordinator = RunCoordinator(task, watcher, delay=200, queue=True)
        watcher.on("change", coordinator.handle)

    A failed run is emitted as ``error`` on ``error_sink`` only if something
    is listening there; otherwise it is logged at debug level and dropped.
    Failed runs are not retried.
    """

    def __init__(
        self,
        task: Task,
        error_sink: ErrorSink,
        delay: float = DEFAULT_DELAY_MS,
        queue: bool = True,
    ):
        """Initialize coordinator.

        Args:
            task: User task (see ``globwatch.completion``)
            error_sink: Where failures are emitted
            delay: Debounce window in milliseconds
            queue: Remember one run requested while a run is in progress
        """
        self.task = task
        self.error_sink = error_sink
        self.delay = delay
        self.queue = queue
        self.run_count = 0
        self._state = RunStateMachine(queue_enabled=queue)
        self._debounced = Debouncer(self._on_change, delay)

        # Outbound hooks (host wires these)
        self.on_run_started: Callable[[], None] | None = None
        self.on_run_finished: Callable[[object | None], None] | None = None

    @property
    def state(self) -> RunState:
        return self._state.state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def is_queued(self) -> bool:
        return self._state.is_queued

    def handle(self, *args) -> None:
        """Event handler subscribed to every watched event name."""
        self._debounced(*args)

    def trigger(self) -> None:
        """Request a run as if a change event had arrived."""
        self._debounced()

    def cancel(self) -> None:
        """Drop a pending debounced trigger. An in-flight run is unaffected."""
        self._debounced.cancel()

    def _on_change(self, *args) -> None:
        if not self._state.request():
            if self._state.is_queued:
                logger.debug("Run in progress, queued one more")
            else:
                logger.debug("Run in progress, change dropped (queue disabled)")
            return
        self._start_run()

    def _start_run(self) -> None:
        self.run_count += 1
        logger.debug(f"Starting run #{self.run_count}")
        self._call_hook(self.on_run_started)
        outcome = invoke(self.task)
        outcome.add_done_callback(self._run_complete)

    def _run_complete(self, outcome: asyncio.Future) -> None:
        error = outcome.result()

        if error is not None:
            if has_error_listener(self.error_sink):
                self.error_sink.emit("error", error)
            else:
                logger.debug(f"Run #{self.run_count} failed with no error listener: {error!r}")

        self._call_hook(self.on_run_finished, error)

        if self._state.complete():
            logger.debug("Starting queued run")
            self._start_run()

    def _call_hook(self, hook: Callable | None, *args) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            logger.exception(f"Error in run hook: {e}")
