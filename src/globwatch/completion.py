"""Normalize the ways a task can signal that it has finished.

A task may finish by:

- calling the ``done`` callback it is given, optionally with an error,
- returning an awaitable (coroutine, asyncio future/task, or a
  ``concurrent.futures.Future``),
- returning an ``asyncio.subprocess.Process``, which finishes when it exits,
- returning a stream-like object exposing ``once(event, handler)`` that
  emits ``end``/``finish``/``close`` or ``error``.

An awaitable that resolves to a process, future or stream is followed in
turn, so ``return await asyncio.create_subprocess_shell(...)`` finishes
when the process exits.

``invoke()`` folds all of these into one asyncio future that resolves to the
failure value, or ``None`` on success. The first signal wins.
"""

import asyncio
import concurrent.futures
import inspect
import logging
from collections.abc import Callable
from typing import Any

from globwatch.errors import ProcessExitError

logger = logging.getLogger(__name__)

Task = Callable[..., Any]

STREAM_END_EVENTS = ("end", "finish", "close")


def accepts_callback(task: Task) -> bool:
    """Whether ``task`` can be called with one positional argument."""
    try:
        signature = inspect.signature(task)
    except (TypeError, ValueError):
        return True

    for param in signature.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
            return True
    return False


def is_stream_like(value: object) -> bool:
    return callable(getattr(value, "once", None))


def invoke(task: Task) -> asyncio.Future:
    """Start ``task`` and return a future for its completion.

    Must be called from the event loop thread.

    Returns:
        Future resolving to the failure value, or None on success
    """
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future = loop.create_future()

    def settle(error: object) -> None:
        if not outcome.done():
            outcome.set_result(error)

    def done(error: object = None, *_results) -> None:
        # Tasks may signal from worker threads.
        loop.call_soon_threadsafe(settle, error)

    with_callback = accepts_callback(task)
    try:
        result = task(done) if with_callback else task()
    except Exception as e:
        logger.debug(f"Task raised synchronously: {e!r}")
        done(e)
        return outcome

    if result is None:
        if not with_callback:
            done()
        return outcome

    _follow_result(result, done, plain_is_done=not with_callback)
    return outcome


def _follow_result(result: object, done: Callable, plain_is_done: bool) -> None:
    """Wait on whatever ``result`` represents; plain values finish the run if ``plain_is_done``."""
    if isinstance(result, asyncio.subprocess.Process):
        _follow_process(result, done)
    elif isinstance(result, concurrent.futures.Future):
        _follow_awaitable(asyncio.wrap_future(result), done)
    elif inspect.isawaitable(result):
        _follow_awaitable(result, done)
    elif is_stream_like(result):
        _follow_stream(result, done)
    elif plain_is_done:
        done()


def _follow_awaitable(awaitable, done: Callable) -> None:
    future = asyncio.ensure_future(awaitable)

    def on_settled(fut: asyncio.Future) -> None:
        if fut.cancelled():
            done(asyncio.CancelledError())
        elif fut.exception() is not None:
            done(fut.exception())
        else:
            # An awaited process or stream finishes the run only when it ends.
            _follow_result(fut.result(), done, plain_is_done=True)

    future.add_done_callback(on_settled)


def _follow_process(process: asyncio.subprocess.Process, done: Callable) -> None:
    async def wait() -> None:
        returncode = await process.wait()
        if returncode != 0:
            raise ProcessExitError(returncode)

    _follow_awaitable(wait(), done)


def _follow_stream(stream, done: Callable) -> None:
    for event in STREAM_END_EVENTS:
        stream.once(event, lambda *args: done())

    def on_error(error: object = None, *_args) -> None:
        done(error if error is not None else RuntimeError("Stream emitted an error"))

    stream.once("error", on_error)
