"""Exception types raised by globwatch."""


class GlobWatchError(Exception):
    """Base class for globwatch errors."""


class NothingToWatchError(GlobWatchError, ValueError):
    """Raised when a pattern set resolves to an empty watch-set."""

    def __init__(self, patterns: tuple[str, ...]):
        self.patterns = patterns
        super().__init__(f"Nothing to watch: no positive glob in {list(patterns)!r}")


class ProcessExitError(GlobWatchError):
    """A subprocess returned by a task exited with a non-zero status."""

    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"Process exited with status {returncode}")


class CommandFailedError(GlobWatchError):
    """A shell command run for a watch exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command '{command}' failed with exit code {returncode}")
