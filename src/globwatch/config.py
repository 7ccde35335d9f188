"""Configuration parsing for globwatch."""

import logging
import tomllib
from pathlib import Path

from globwatch.models import WatchConfig

logger = logging.getLogger(__name__)


def _parse_watch(raw: dict, index: int, base_dir: Path) -> WatchConfig:
    for key in ("patterns", "command"):
        if key not in raw:
            raise ValueError(f"[[watch]] #{index + 1} is missing '{key}'")

    patterns = raw["patterns"]
    if isinstance(patterns, str):
        patterns = [patterns]

    events = raw.get("events", ["add", "change", "unlink"])
    if isinstance(events, str):
        events = [events]

    delay = raw.get("delay", 200)
    if not isinstance(delay, int) or delay < 0:
        raise ValueError(f"[[watch]] #{index + 1}: 'delay' must be a non-negative integer (ms)")

    return WatchConfig(
        name=raw.get("name", f"watch-{index + 1}"),
        patterns=list(patterns),
        command=raw["command"],
        cwd=(base_dir / raw.get("cwd", ".")).resolve(),
        delay=delay,
        events=list(events),
        ignored=list(raw.get("ignored", [])),
        ignore_initial=raw.get("ignore_initial", True),
        queue=raw.get("queue", True),
    )


def load_watch_config(path: str | Path) -> list[WatchConfig]:
    """Load ``[[watch]]`` tables from a TOML file.

    Args:
        path: Path to TOML config file

    Returns:
        Watch configs in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid TOML or a table is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\nRun 'globwatch-tui' without arguments to auto-create a default config."
        )

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e

    watches = [_parse_watch(w, i, path.parent) for i, w in enumerate(raw.get("watch", []))]

    seen: set[str] = set()
    for watch_config in watches:
        if watch_config.name in seen:
            raise ValueError(f"Duplicate watch name '{watch_config.name}' in {path}")
        seen.add(watch_config.name)

    if not watches:
        logger.warning(f"No [[watch]] tables in {path}")

    return watches
