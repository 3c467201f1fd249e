"""Subprocess test runner and stale-file tracking.

``CommandRunner`` executes the configured test command in the foreground,
passing the file selection derived from the session Config. Exit codes are
classified into a normal run, the recoverable "no tests matched" outcome,
or a fatal ``TestRunError``.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from .exceptions import NoMatchingFilesError, RunnerNotFoundError, TestRunError
from .models import Config, Settings

logger = logging.getLogger(__name__)

DEFAULT_STALE_PATTERNS = ("test_*.py", "*_test.py")
IGNORED_DIRS = frozenset({"__pycache__", "node_modules", "build", "dist"})


@dataclass
class StaleTracker:
    """Tracks which test files changed since the last passing run.

    A snapshot of file modification times is kept in a JSON manifest. A file
    is stale when it is missing from the snapshot or newer than its entry.
    """

    root: Path
    manifest_path: Path
    patterns: Sequence[str] = DEFAULT_STALE_PATTERNS

    def scan(self) -> dict[str, float]:
        """Return current mtimes of all test files under root, keyed by relative path."""
        found: dict[str, float] = {}
        for pattern in self.patterns:
            for path in self.root.rglob(pattern):
                rel = path.relative_to(self.root)
                if any(part.startswith(".") or part in IGNORED_DIRS for part in rel.parts[:-1]):
                    continue
                if path.is_file():
                    found[rel.as_posix()] = path.stat().st_mtime
        return found

    def load_snapshot(self) -> dict[str, float]:
        if not self.manifest_path.exists():
            return {}
        try:
            with open(self.manifest_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable stale manifest %s: %s", self.manifest_path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed stale manifest %s", self.manifest_path)
            return {}
        snapshot: dict[str, float] = {}
        for path, mtime in data.items():
            try:
                snapshot[str(path)] = float(mtime)
            except (TypeError, ValueError):
                logger.warning(
                    "Ignoring malformed stale manifest entry %r in %s", path, self.manifest_path
                )
        return snapshot

    def stale_files(self) -> list[str]:
        snapshot = self.load_snapshot()
        current = self.scan()
        stale = [
            path for path, mtime in current.items()
            if path not in snapshot or mtime > snapshot[path]
        ]
        return sorted(stale)

    def record(self, files: Iterable[str] | None = None) -> None:
        """Mark files as fresh; with no argument, mark every test file."""
        current = self.scan()
        snapshot = self.load_snapshot()
        if files is None:
            snapshot = current
        else:
            for name in files:
                key = self._key(name)
                if key in current:
                    snapshot[key] = current[key]

        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        logger.debug("Recorded %d entries in %s", len(snapshot), self.manifest_path)

    def _key(self, name: str) -> str:
        path = Path(name)
        if path.is_absolute():
            try:
                path = path.relative_to(self.root)
            except ValueError:
                return path.as_posix()
        return path.as_posix()


@dataclass
class CommandRunner:
    """Runs the test command synchronously with no timeout.

    Attributes:
        test_command: Shell-style command line, split with shlex.
        cwd: Directory the command runs in.
        no_tests_exit_codes: Exit codes meaning nothing was collected.
        ok_exit_codes: Exit codes meaning the run completed (passing or failing).
        stale_tracker: Source of the stale-only selection.
    """

    test_command: str
    cwd: Path = field(default_factory=Path.cwd)
    no_tests_exit_codes: Sequence[int] = (5,)
    ok_exit_codes: Sequence[int] = (0, 1)
    stale_tracker: StaleTracker | None = None

    @classmethod
    def from_settings(cls, settings: Settings, test_command: str, cwd: Path) -> CommandRunner:
        tracker = StaleTracker(
            root=cwd,
            manifest_path=cwd / settings.stale_manifest,
            patterns=tuple(settings.stale_patterns),
        )
        return cls(
            test_command=test_command,
            cwd=cwd,
            no_tests_exit_codes=tuple(settings.no_tests_exit_codes),
            ok_exit_codes=tuple(settings.ok_exit_codes),
            stale_tracker=tracker,
        )

    def build_argv(self, files: Sequence[str]) -> list[str]:
        return [*shlex.split(self.test_command), *files]

    def select_files(self, config: Config) -> list[str] | None:
        """Return the explicit file selection, or None to run everything.

        Raises:
            NoMatchingFilesError: If the selection is empty.
        """
        if config.file_filter is not None:
            if not config.file_filter:
                raise NoMatchingFilesError(files=())
            return sorted(config.file_filter)

        if config.stale_only:
            stale = self.stale_tracker.stale_files() if self.stale_tracker else []
            if not stale:
                raise NoMatchingFilesError("No stale test files")
            logger.debug("Stale files: %s", stale)
            return stale

        return None

    def run(self, config: Config) -> None:
        """Run the tests selected by ``config``.

        Raises:
            NoMatchingFilesError: If nothing was selected or collected.
            RunnerNotFoundError: If the command executable does not exist.
            TestRunError: If the command exits with an unexpected code.
        """
        files = self.select_files(config)
        argv = self.build_argv(files or [])
        command_line = shlex.join(argv)
        logger.info("Running %s in %s", command_line, self.cwd)

        try:
            result = subprocess.run(argv, cwd=self.cwd, check=False)
        except FileNotFoundError as e:
            raise RunnerNotFoundError(argv[0], cause=e) from e

        exit_code = result.returncode
        logger.info("Test command exited with %d", exit_code)

        if exit_code in self.no_tests_exit_codes:
            raise NoMatchingFilesError(files=files)
        if exit_code not in self.ok_exit_codes:
            raise TestRunError(
                f"Test command exited with unexpected status {exit_code}",
                command=command_line,
                exit_code=exit_code,
            )
        if exit_code == 0 and self.stale_tracker is not None:
            self.stale_tracker.record(files)
