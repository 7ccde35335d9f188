"""Textual dashboard for globwatch.

One status row per configured watch plus a log pane with file events and
run results.
"""

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Log, Static

from globwatch.controller import WatchController
from globwatch.coordinator import RunState
from globwatch.models import RunRecord, WatchConfig, map_run_state_to_icon

logger = logging.getLogger(__name__)


def sanitize_id(name: str) -> str:
    """Turn a watch name into a valid widget id."""
    return "watch-" + re.sub(r"[^a-zA-Z0-9_-]", "-", name)


class HelpScreen(ModalScreen):
    """Modal help screen showing keyboard shortcuts."""

    BINDINGS = [("escape", "dismiss", "Close")]

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("# Keyboard Shortcuts", classes="help-header")
            yield Static("")
            yield Static(escape("  [r] - Run every watch now"))
            yield Static(escape("  [c] - Clear the log"))
            yield Static(escape("  [h] - Show this help"))
            yield Static(escape("  [q] - Quit application"))
            yield Static("")
            yield Static("Press ESC to close", classes="help-footer")


class WatchStatus(Static):
    """Status line for one watch."""

    def __init__(self, config: WatchConfig, **kwargs):
        super().__init__(**kwargs)
        self.config = config

    def on_mount(self) -> None:
        self.render_status(RunState.IDLE, None, 0)

    def render_status(self, state: RunState, last_run: RunRecord | None, run_count: int) -> None:
        """Render the row for the given state."""
        icon = map_run_state_to_icon(state, last_run)
        patterns = escape(" ".join(self.config.patterns))
        line = f"{icon} {escape(self.config.name)}  [dim]{patterns}[/dim]  runs: {run_count}"
        if last_run is not None and last_run.finished is not None:
            line += f"  last: {last_run.duration_str}"
        self.update(line)


class LogNotifier:
    """Notifier writing timestamped lines to a Log widget."""

    def __init__(self, log: Log):
        self.log = log

    def _write(self, prefix: str, msg: str) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        self.log.write_line(f"{stamp} {prefix}{msg}")

    def info(self, msg: str) -> None:
        self._write("", msg)

    def warning(self, msg: str) -> None:
        self._write("⚠️ ", msg)

    def error(self, msg: str) -> None:
        self._write("❌ ", msg)


class GlobWatchApp(App):
    """TUI shell around WatchController."""

    TITLE = "globwatch"
    BINDINGS = [
        Binding("r", "run_all", "Run all"),
        Binding("c", "clear_log", "Clear log"),
        Binding("h", "show_help", "Help"),
        Binding("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }

    #watch-list {
        height: auto;
        max-height: 50%;
        border: solid $accent;
    }

    WatchStatus {
        width: 100%;
    }

    #event-log {
        height: 1fr;
        border: solid $accent;
    }

    HelpScreen {
        align: center middle;
    }

    HelpScreen > Vertical {
        width: 50;
        height: auto;
        background: $panel;
        border: solid $accent;
        padding: 2;
    }

    .help-header {
        text-style: bold;
        color: $accent;
    }

    .help-footer {
        text-style: italic;
        color: $text-muted;
    }
    """

    def __init__(self, config_path: str | Path = "globwatch.toml", **kwargs):
        """Initialize app.

        Args:
            config_path: Path to TOML config file
        """
        super().__init__(**kwargs)
        self.config_path = Path(config_path)
        self.controller: WatchController | None = None
        self.event_log: Log | None = None
        self.rows: dict[str, WatchStatus] = {}

    def compose(self) -> ComposeResult:
        yield Header()

        try:
            self.controller = WatchController(self.config_path)

            with VerticalScroll(id="watch-list"):
                for cfg in self.controller.watch_configs:
                    row = WatchStatus(cfg, id=sanitize_id(cfg.name))
                    self.rows[cfg.name] = row
                    yield row

            self.event_log = Log(id="event-log")
            yield self.event_log

        except Exception as e:
            # Fatal config error
            logger.error(f"Failed to initialize app: {e}")
            yield Static(f"❌ Configuration Error: {e}")

        yield Footer()

    async def on_mount(self) -> None:
        """Wire callbacks and attach the controller to the event loop."""
        if not self.controller:
            logger.error("Controller not initialized")
            return

        if self.event_log is not None:
            self.controller.notifier = LogNotifier(self.event_log)
        self.controller.on_run_started = self._on_run_started
        self.controller.on_run_finished = self._on_run_finished
        self.controller.on_file_event = self._on_file_event

        try:
            self.controller.attach(asyncio.get_running_loop())
        except Exception as e:
            logger.error(f"Failed to mount app: {e}", exc_info=True)
            self.exit(message=f"Error: {e}")

    async def on_unmount(self) -> None:
        if self.controller:
            self.controller.detach()

    def _refresh_row(self, name: str) -> None:
        row = self.rows.get(name)
        if row is None or self.controller is None:
            return
        row.render_status(
            self.controller.get_state(name),
            self.controller.get_last_finished(name),
            self.controller.get_run_count(name),
        )

    def _on_run_started(self, name: str) -> None:
        self._refresh_row(name)

    def _on_run_finished(self, name: str, error: object | None) -> None:
        # The coordinator has not left the running state yet; refresh after it does.
        self.call_later(self._refresh_row, name)

    def _on_file_event(self, name: str, event: str, path: str) -> None:
        if self.event_log is not None:
            self.event_log.write_line(f"  {name}: {event} {path}")

    def action_run_all(self) -> None:
        if self.controller and self.controller.is_attached:
            self.controller.request_run_all()

    def action_clear_log(self) -> None:
        if self.event_log is not None:
            self.event_log.clear()

    def action_show_help(self) -> None:
        self.push_screen(HelpScreen())
