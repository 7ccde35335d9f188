#!/usr/bin/env python3
"""
Example: Rebuild on change with watch()

Watches a source tree, ignores generated output except one hand-maintained
file, and runs an async build step whenever something relevant changes.

This example demonstrates:
- Negated globs and later-pattern-wins re-inclusion
- Debounced, serialized task runs
- Listening for task failures on the watcher

Run from a project directory, then edit files under src/.
"""

import asyncio
import logging

from globwatch import watch

GLOBS = ["src/**", "!src/generated/**", "src/generated/keep.js"]


async def build() -> None:
    """Pretend build step; raises to simulate a failure."""
    process = await asyncio.create_subprocess_shell("echo building && sleep 1")
    if await process.wait() != 0:
        raise RuntimeError("build failed")


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s")

    watcher = watch(GLOBS, build, delay=300)
    watcher.on("all", lambda event, path: print(f"  {event}: {path}"))
    watcher.on("error", lambda error: print(f"❌ {error}"))
    watcher.once("ready", lambda: print(f"Watching {', '.join(GLOBS)} (Ctrl+C to stop)"))

    try:
        await asyncio.Event().wait()
    finally:
        watcher.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
