"""globwatch: run a task when files matching a set of globs change."""

__version__ = "0.1.0"

from globwatch.coordinator import RunCoordinator, RunState, RunStateMachine
from globwatch.errors import CommandFailedError, GlobWatchError, NothingToWatchError, ProcessExitError
from globwatch.file_watcher import GlobWatcher
from globwatch.patterns import ClassifiedPatterns, Pattern, build_ignore_predicate, classify
from globwatch.watch import WatchOptions, watch

__all__ = [
    "__version__",
    # Entry point
    "watch",
    "WatchOptions",
    "GlobWatcher",
    # Patterns
    "Pattern",
    "ClassifiedPatterns",
    "classify",
    "build_ignore_predicate",
    # Runs
    "RunCoordinator",
    "RunState",
    "RunStateMachine",
    # Errors
    "GlobWatchError",
    "NothingToWatchError",
    "CommandFailedError",
    "ProcessExitError",
]
