"""Core dataclasses for the session Config and the persisted Settings.

Config is the immutable run-mode snapshot owned by the session. Settings is
the JSON-backed tool configuration, loaded with dacite.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable

import dacite


# =============================================================================
# Session Config
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Snapshot of which tests the next run should cover.

    Instances are never mutated; every transition returns a replacement.
    ``file_filter`` and ``stale_only`` are mutually exclusive.
    """

    watching: bool = True  # Display-only: whether a file watcher is active
    file_filter: frozenset[str] | None = None  # Restrict run to these files
    stale_only: bool = False  # Restrict run to stale files

    @classmethod
    def from_args(
        cls,
        *,
        files: Iterable[str] = (),
        stale: bool = False,
        watching: bool = True,
    ) -> Config:
        """Build the initial snapshot from startup arguments.

        Explicit files win over ``stale`` so the result stays consistent.
        """
        config = cls(watching=watching)
        files = list(files)
        if files:
            return config.only_files(files)
        if stale:
            return config.only_stale()
        return config

    def clear_flags(self) -> Config:
        """Run everything: drop the file filter and stale-only mode."""
        return replace(self, file_filter=None, stale_only=False)

    def clear_filters(self) -> Config:
        return replace(self, file_filter=None)

    def only_files(self, files: Iterable[str]) -> Config:
        return replace(self, file_filter=frozenset(files), stale_only=False)

    def only_stale(self) -> Config:
        return replace(self, file_filter=None, stale_only=True)

    def summary(self) -> str:
        """One-line description of what the last run covered."""
        if self.stale_only:
            return "Ran only stale tests"
        if self.file_filter is not None:
            if not self.file_filter:
                return "Ran with an empty file filter"
            return f"Ran all test files matching {', '.join(sorted(self.file_filter))}"
        return "Ran all tests"


# =============================================================================
# Persisted Settings
# =============================================================================


@dataclass
class Settings:
    """Tool settings merged from the global and project config files."""

    test_command: str = ""  # Empty means auto-detect
    watch: bool = True
    no_tests_exit_codes: list[int] = field(default_factory=lambda: [5])
    ok_exit_codes: list[int] = field(default_factory=lambda: [0, 1])
    stale_patterns: list[str] = field(
        default_factory=lambda: ["test_*.py", "*_test.py"]
    )
    stale_manifest: str = ".testloop/stale.json"  # Relative to project root


# =============================================================================
# Serialization Helpers
# =============================================================================


def settings_from_dict(data: dict) -> Settings:
    """Load Settings from a dictionary (parsed JSON)."""
    return dacite.from_dict(
        data_class=Settings,
        data=data,
        config=dacite.Config(strict=True),
    )
