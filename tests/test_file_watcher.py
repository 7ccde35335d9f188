"""Tests for GlobWatcher and watch() against a real file system."""

import asyncio
from pathlib import Path

import pytest

from globwatch.file_watcher import GlobWatcher, static_prefix, watch_roots
from globwatch.watch import watch

EVENT_TIMEOUT = 5.0


class TestStaticPrefix:
    """Tests for static_prefix and watch_roots."""

    @pytest.mark.parametrize(
        "pattern, expected",
        [
            ("/project/src/**/*.js", "/project/src"),
            ("/project/*.py", "/project"),
            ("/project/src/main.py", "/project/src"),
            ("/**/*.py", "/"),
            ("src/{a,b}/*.js", "src"),
            ("*.js", ""),
        ],
    )
    def test_static_prefix(self, pattern, expected):
        """Test the glob-free prefix of a pattern."""
        assert static_prefix(pattern) == expected

    def test_missing_directory_falls_back_to_existing_parent(self, tmp_path):
        """Test a missing prefix inside the base walks up to an existing directory."""
        roots = watch_roots([f"{tmp_path}/not/there/yet/**"], base=str(tmp_path))
        assert roots == [str(tmp_path)]

    def test_walk_stops_at_missing_base(self, tmp_path):
        """Test the walk up never passes the base, even when the base is missing."""
        base = f"{tmp_path}/missing"
        roots = watch_roots([f"{base}/src/**/*.js", "*.js"], base=base)
        assert roots == [base]

    def test_missing_prefix_outside_base_is_kept(self, tmp_path):
        """Test a missing prefix outside the base is not widened."""
        roots = watch_roots([f"{tmp_path}/elsewhere/**"], base=f"{tmp_path}/project")
        assert roots == [f"{tmp_path}/elsewhere"]

    def test_missing_prefix_without_base_is_kept(self, tmp_path):
        """Test that without a base a missing prefix is returned as is."""
        assert watch_roots([f"{tmp_path}/not/there/**"]) == [f"{tmp_path}/not/there"]

    def test_nested_roots_collapse(self, tmp_path):
        """Test roots inside another root are dropped."""
        (tmp_path / "src" / "lib").mkdir(parents=True)
        roots = watch_roots([f"{tmp_path}/src/lib/*.js", f"{tmp_path}/src/**", f"{tmp_path}/src/lib/x.js"])
        assert roots == [f"{tmp_path}/src"]

    def test_sibling_roots_kept(self, tmp_path):
        """Test sibling roots sharing a name prefix are both kept."""
        (tmp_path / "a").mkdir()
        (tmp_path / "ab").mkdir()
        roots = watch_roots([f"{tmp_path}/a/**", f"{tmp_path}/ab/**"])
        assert roots == [f"{tmp_path}/a", f"{tmp_path}/ab"]


def collect(watcher, *event_names) -> asyncio.Queue:
    """Queue receiving (event, path) for the given events."""
    queue: asyncio.Queue = asyncio.Queue()
    for event_name in event_names:
        watcher.on(event_name, lambda path, e=event_name: queue.put_nowait((e, path)))
    return queue


async def wait_ready(watcher) -> None:
    ready = asyncio.Event()
    watcher.once("ready", ready.set)
    await asyncio.wait_for(ready.wait(), EVENT_TIMEOUT)


class TestGlobWatcher:
    """Tests for GlobWatcher."""

    def test_start_without_loop_raises(self, tmp_path):
        """Test start() outside an event loop raises."""
        watcher = GlobWatcher(["**/*.js"], cwd=tmp_path)
        with pytest.raises(RuntimeError, match="running event loop"):
            watcher.start()

    def test_patterns_joined_under_cwd(self, tmp_path):
        """Test relative patterns are joined under cwd."""
        watcher = GlobWatcher(["src/**/*.js", "/abs/*.js"], cwd=tmp_path)
        assert watcher.patterns == [f"{tmp_path}/src/**/*.js", "/abs/*.js"]

    def test_matches_and_ignored_globs(self, tmp_path):
        """Test watched and ignored globs together."""
        watcher = GlobWatcher(["src/**"], ignored=["src/**/*.tmp"], cwd=tmp_path)
        assert watcher.matches(f"{tmp_path}/src/a.js") is True
        assert watcher.matches(f"{tmp_path}/src/a.tmp") is False
        assert watcher.matches(f"{tmp_path}/lib/a.js") is False

    def test_brace_globs(self, tmp_path):
        """Test brace alternatives in a watched glob."""
        watcher = GlobWatcher(["src/*.{js,ts}"], cwd=tmp_path)
        assert watcher.matches(f"{tmp_path}/src/a.js") is True
        assert watcher.matches(f"{tmp_path}/src/a.ts") is True
        assert watcher.matches(f"{tmp_path}/src/a.css") is False

    def test_extglob(self, tmp_path):
        """Test an extglob group that excludes one directory."""
        watcher = GlobWatcher(["!(vendor)/*.js"], cwd=tmp_path)
        assert watcher.matches(f"{tmp_path}/lib/a.js") is True
        assert watcher.matches(f"{tmp_path}/vendor/a.js") is False

    def test_dotfiles_not_matched_by_wildcards(self, tmp_path):
        """Test that hidden files and directories are not matched by wildcards."""
        watcher = GlobWatcher(["**/*.js"], cwd=tmp_path)
        assert watcher.matches(f"{tmp_path}/src/a.js") is True
        assert watcher.matches(f"{tmp_path}/.cache/a.js") is False
        assert watcher.matches(f"{tmp_path}/src/.a.js") is False

    @pytest.mark.asyncio
    async def test_ready_and_change_events(self, tmp_path, watchers):
        """Test ready, then a change event relative to cwd."""
        target = tmp_path / "app.js"
        target.write_text("one")

        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        events = collect(watcher, "change")
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        target.write_text("two")
        event_name, path = await asyncio.wait_for(events.get(), EVENT_TIMEOUT)

        assert event_name == "change"
        assert path == "app.js"

    @pytest.mark.asyncio
    async def test_absolute_paths_without_cwd(self, tmp_path, watchers):
        """Test paths are absolute when no cwd is given."""
        watcher = GlobWatcher([f"{tmp_path}/*.txt"])
        events = collect(watcher, "add")
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        (tmp_path / "notes.txt").write_text("x")
        _, path = await asyncio.wait_for(events.get(), EVENT_TIMEOUT)

        assert path == f"{tmp_path}/notes.txt"

    @pytest.mark.asyncio
    async def test_unmatched_files_are_not_reported(self, tmp_path, watchers):
        """Test files outside the globs are not reported."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        events = collect(watcher, "add", "change")
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        (tmp_path / "readme.md").write_text("x")
        (tmp_path / "main.js").write_text("x")

        _, path = await asyncio.wait_for(events.get(), EVENT_TIMEOUT)
        assert path == "main.js"

    @pytest.mark.asyncio
    async def test_unlink_event(self, tmp_path, watchers):
        """Test deleting a file emits unlink."""
        target = tmp_path / "gone.js"
        target.write_text("x")

        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        events = collect(watcher, "unlink")
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        target.unlink()
        assert await asyncio.wait_for(events.get(), EVENT_TIMEOUT) == ("unlink", "gone.js")

    @pytest.mark.asyncio
    async def test_initial_files_reported_when_not_ignored(self, tmp_path, watchers):
        """Test existing files are reported when ignore_initial is off."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "a.js").write_text("x")
        (tmp_path / "src" / "b.css").write_text("x")

        watcher = GlobWatcher(["src/*.js"], cwd=tmp_path, ignore_initial=False)
        added = []
        watcher.on("add", added.append)
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        assert added == ["src/a.js"]

    @pytest.mark.asyncio
    async def test_initial_files_suppressed_by_default(self, tmp_path, watchers):
        """Test existing files are not reported by default."""
        (tmp_path / "a.js").write_text("x")

        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        added = []
        watcher.on("add", added.append)
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        assert added == []

    @pytest.mark.asyncio
    async def test_all_event_carries_name(self, tmp_path, watchers):
        """Test the all event carries the event name."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        seen: asyncio.Queue = asyncio.Queue()
        watcher.on("all", lambda event, path: seen.put_nowait((event, path)))
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        (tmp_path / "new.js").write_text("x")
        assert await asyncio.wait_for(seen.get(), EVENT_TIMEOUT) == ("add", "new.js")

    @pytest.mark.asyncio
    async def test_start_twice_raises(self, tmp_path, watchers):
        """Test starting a watcher twice raises."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        watcher.start()
        watchers.append(watcher)
        await wait_ready(watcher)

        with pytest.raises(RuntimeError, match="already started"):
            watcher.start()

    @pytest.mark.asyncio
    async def test_missing_cwd_emits_error(self, tmp_path, watchers):
        """Test a missing cwd is reported as an error instead of widening the watch."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path / "missing")
        assert watcher.roots == [f"{tmp_path}/missing"]

        errors: asyncio.Queue = asyncio.Queue()
        watcher.on("error", errors.put_nowait)
        watcher.start()
        watchers.append(watcher)

        error = await asyncio.wait_for(errors.get(), EVENT_TIMEOUT)
        assert isinstance(error, OSError)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, tmp_path):
        """Test close() emits close only once."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        closes = []
        watcher.on("close", lambda: closes.append(1))
        watcher.start()

        watcher.close()
        watcher.close()

        assert watcher.closed is True
        assert closes == [1]

    @pytest.mark.asyncio
    async def test_no_events_after_close(self, tmp_path):
        """Test no events are emitted after close()."""
        watcher = GlobWatcher(["*.js"], cwd=tmp_path)
        events = collect(watcher, "add", "change")
        watcher.start()
        await wait_ready(watcher)
        watcher.close()

        (tmp_path / "late.js").write_text("x")
        await asyncio.sleep(0.3)

        assert events.empty()


class TestWatchEndToEnd:
    """watch() with negations and tasks on a real directory."""

    @pytest.mark.asyncio
    async def test_reincluded_file_reported_excluded_sibling_not(self, tmp_path, watchers):
        """Test a re-included file is reported and its excluded sibling is not."""
        generated = tmp_path / "src" / "generated"
        generated.mkdir(parents=True)
        (generated / "other.js").write_text("old")
        (generated / "keep.js").write_text("old")

        watcher = watch(
            ["src/**", "!src/generated/**", "src/generated/keep.js"],
            cwd=tmp_path,
        )
        watchers.append(watcher)
        events = collect(watcher, "change")
        await wait_ready(watcher)

        (generated / "other.js").write_text("new")
        await asyncio.sleep(0.2)
        (generated / "keep.js").write_text("new")

        assert await asyncio.wait_for(events.get(), EVENT_TIMEOUT) == ("change", "src/generated/keep.js")

    @pytest.mark.asyncio
    async def test_user_ignored_option(self, tmp_path, watchers):
        """Test a user ignored predicate suppresses matches."""
        watcher = watch("**/*.js", cwd=tmp_path, ignored=lambda path: path.endswith(".min.js"))
        watchers.append(watcher)
        events = collect(watcher, "add")
        await wait_ready(watcher)

        (tmp_path / "bundle.min.js").write_text("x")
        await asyncio.sleep(0.2)
        (tmp_path / "bundle.js").write_text("x")

        assert await asyncio.wait_for(events.get(), EVENT_TIMEOUT) == ("add", "bundle.js")

    @pytest.mark.asyncio
    async def test_task_runs_once_for_burst(self, tmp_path, watchers):
        """Test a burst of new files runs the task once."""
        runs: asyncio.Queue = asyncio.Queue()

        async def task():
            runs.put_nowait(1)

        watcher = watch("*.txt", task, cwd=tmp_path, delay=150)
        watchers.append(watcher)
        await wait_ready(watcher)

        for i in range(5):
            Path(tmp_path / f"f{i}.txt").write_text("x")

        await asyncio.wait_for(runs.get(), EVENT_TIMEOUT)
        await asyncio.sleep(0.5)

        assert runs.empty()
        assert watcher.coordinator.run_count == 1

    @pytest.mark.asyncio
    async def test_task_failure_reaches_error_listener(self, tmp_path, watchers):
        """Test a task failure reaches the error listener."""
        failures: asyncio.Queue = asyncio.Queue()

        def task(done):
            done(RuntimeError("build failed"))

        watcher = watch("*.txt", task, cwd=tmp_path, delay=20)
        watchers.append(watcher)
        watcher.on("error", failures.put_nowait)
        await wait_ready(watcher)

        (tmp_path / "a.txt").write_text("x")
        error = await asyncio.wait_for(failures.get(), EVENT_TIMEOUT)

        assert str(error) == "build failed"

    @pytest.mark.asyncio
    async def test_close_cancels_pending_run(self, tmp_path):
        """Test close() cancels a debounced run."""
        runs = []
        watcher = watch("*.txt", lambda: runs.append(1), cwd=tmp_path, delay=300)
        await wait_ready(watcher)

        (tmp_path / "a.txt").write_text("x")
        await asyncio.sleep(0.15)
        watcher.close()
        await asyncio.sleep(0.4)

        assert runs == []
