"""textual-globwatch: TUI frontend for globwatch."""

from globwatch import __version__
from globwatch.controller import WatchController
from textual_globwatch.app import GlobWatchApp

__all__ = [
    "__version__",
    # Primary components
    "GlobWatchApp",
    "WatchController",
]
