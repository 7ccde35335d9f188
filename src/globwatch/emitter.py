"""Named-event callback registry used as the watcher's event surface."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class EventEmitter:
    """Minimal event emitter.

    Listeners are plain callables registered per event name and called in
    registration order. A listener that raises is logged and skipped; the
    remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {}

    def on(self, event: str, listener: Callable) -> "EventEmitter":
        """Register ``listener`` for ``event``."""
        if event not in self._listeners:
            self._listeners[event] = []
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Callable) -> "EventEmitter":
        """Register ``listener`` for the next ``event`` only."""

        def wrapper(*args):
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        return self.on(event, wrapper)

    def off(self, event: str, listener: Callable) -> "EventEmitter":
        """Remove one registration of ``listener`` (or its ``once`` wrapper)."""
        listeners = self._listeners.get(event, [])
        for registered in listeners:
            if registered is listener or getattr(registered, "listener", None) is listener:
                listeners.remove(registered)
                break
        return self

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args) -> bool:
        """Call every listener of ``event`` with ``args``.

        Returns:
            True if at least one listener was registered
        """
        listeners = list(self._listeners.get(event, []))
        if not listeners:
            if event == "error":
                error = args[0] if args else None
                logger.error(f"Unhandled error event: {error!r}")
            return False

        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                logger.exception(f"Error in '{event}' listener: {e}")
        return True
