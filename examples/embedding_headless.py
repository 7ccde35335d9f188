#!/usr/bin/env python3
"""
Example: Headless WatchController
Shows how to run a globwatch.toml without any UI and react to run results.

This example demonstrates:
- Using WatchController without GlobWatchApp
- Manual run requests next to file-triggered runs
- Run lifecycle callbacks
"""

import asyncio
import sys
from pathlib import Path

from globwatch.controller import WatchController


class RunReporter:
    """Print a summary line per finished run and count failures."""

    def __init__(self, controller: WatchController):
        self.controller = controller
        self.failures = 0
        controller.on_run_started = self._on_started
        controller.on_run_finished = self._on_finished

    def _on_started(self, name: str) -> None:
        print(f"▶ {name}")

    def _on_finished(self, name: str, error: object | None) -> None:
        if error is None:
            print(f"✅ {name}")
        else:
            self.failures += 1
            print(f"❌ {name}: {error}")


async def main(config_path: str) -> None:
    controller = WatchController(Path(config_path))
    reporter = RunReporter(controller)
    controller.attach(asyncio.get_running_loop())

    # Run everything once up front, then keep watching.
    controller.request_run_all()
    try:
        await asyncio.Event().wait()
    finally:
        controller.detach()
        print(f"{reporter.failures} failed run(s)")


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "globwatch.toml"))
    except KeyboardInterrupt:
        pass
