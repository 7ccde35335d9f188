"""Shell commands as watch tasks."""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable

from globwatch.errors import CommandFailedError

logger = logging.getLogger(__name__)

# Lines of output kept on a failure
OUTPUT_TAIL_LINES = 20


def shell_task(command: str, cwd: str | os.PathLike | None = None) -> Callable[[], Awaitable[None]]:
    """Build a task that runs ``command`` through the shell.

    Args:
        command: Shell command line
        cwd: Working directory for the command

    Returns:
        Async task raising CommandFailedError on a non-zero exit
    """

    async def run() -> None:
        logger.debug(f"Running: {command}")
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        stdout, _ = await process.communicate()
        output = stdout.decode(errors="replace") if stdout else ""

        for line in output.splitlines():
            logger.debug(f"[{command}] {line}")

        if process.returncode != 0:
            tail = "\n".join(output.splitlines()[-OUTPUT_TAIL_LINES:])
            raise CommandFailedError(command, process.returncode, tail)

    run.command = command  # type: ignore[attr-defined]
    return run
