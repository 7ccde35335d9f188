"""CLI entry point for globwatch-tui: auto-generates a default config and launches the TUI."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from globwatch import __version__
from globwatch.controller import WatchController
from globwatch.notifier import LoggingNotifier

logger = logging.getLogger(__name__)

# Default config template for Python development workflows
DEFAULT_CONFIG_TEMPLATE = """\
# Auto-generated globwatch.toml for globwatch-tui
#
# Each [[watch]] runs its command when a file matching its patterns
# changes. Patterns starting with "!" exclude paths; a later pattern
# overrides an earlier one.

[[watch]]
name = "Lint"
patterns = ["**/*.py", "!.venv/**", "!venv/**"]
command = "ruff check ."
delay = 200
events = ["add", "change", "unlink"]
queue = true

[[watch]]
name = "Tests"
patterns = ["src/**/*.py", "tests/**/*.py"]
command = "pytest -q"
delay = 500
ignored = ["**/__pycache__/**"]
"""


def create_default_config(config_path: Path) -> bool:
    """
    Create a default globwatch.toml if it doesn't exist.

    Args:
        config_path: Path where config should be created

    Returns:
        True if config was created, False if it already exists

    Raises:
        PermissionError: If unable to write to the directory
        OSError: If other file system errors occur
    """
    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return True


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="globwatch-tui",
        description="Run commands when files matching glob patterns change.",
        epilog="Examples:\n"
        "  globwatch-tui                        # Auto-create globwatch.toml and launch\n"
        "  globwatch-tui --config ci.toml       # Use custom config\n"
        "  globwatch-tui --headless -v          # No UI, log to stderr\n"
        "  globwatch-tui --version              # Show version",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="globwatch.toml",
        help="Path to config file (default: globwatch.toml)",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without the TUI, logging activity to stderr",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log file events and command output (headless mode)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


async def run_headless(config_path: Path, stop: asyncio.Event | None = None) -> None:
    """Run every configured watch until ``stop`` is set (or forever).

    Args:
        config_path: Path to TOML config
        stop: Optional event ending the run
    """
    controller = WatchController(config_path, notifier=LoggingNotifier())
    controller.on_file_event = lambda name, event, path: logger.debug(f"{name}: {event} {path}")
    controller.attach(asyncio.get_running_loop())
    try:
        await (stop or asyncio.Event()).wait()
    finally:
        controller.detach()


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for globwatch-tui CLI.

    Handles:
    - Argument parsing
    - Auto-creation of globwatch.toml
    - Launching GlobWatchApp, or the headless runner
    - Error handling and exit codes
    """
    args = parse_args(argv)

    config_path = Path(args.config).resolve()

    try:
        if create_default_config(config_path):
            print(f"Created default config at: {config_path}")

        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)

        if args.headless:
            logging.basicConfig(
                level=logging.DEBUG if args.verbose else logging.INFO,
                format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            )
            asyncio.run(run_headless(config_path))
        else:
            from textual_globwatch.app import GlobWatchApp

            app = GlobWatchApp(config_path=config_path)
            app.run()

    except KeyboardInterrupt:
        sys.exit(130)
    except (PermissionError, OSError) as e:
        print(f"Error: Failed to create config: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
