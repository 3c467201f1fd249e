"""Custom exception hierarchy for testloop.

This module provides a structured exception hierarchy that enables:
- Telling the one recoverable runner outcome apart from fatal ones
- Rich error context for debugging
- User-friendly error messages
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable


class TestloopError(Exception):
    """Base exception for all testloop errors.

    Attributes:
        message: Human-readable error description.
        context: Additional context for debugging.
        timestamp: When the error occurred.
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now()
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(TestloopError):
    """Base class for configuration-related errors."""

    pass


class ConfigLoadError(ConfigError):
    """Raised when a settings file fails to load."""

    def __init__(
        self,
        message: str = "Failed to load configuration",
        *,
        file_path: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


class ConfigValidationError(ConfigError):
    """Raised when settings validation fails."""

    def __init__(
        self,
        message: str = "Configuration validation failed",
        *,
        field: str | None = None,
        value: Any = None,
        expected: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = str(value)[:100]  # Truncate long values
        if expected:
            ctx["expected"] = expected
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Runner Errors
# =============================================================================


class RunnerError(TestloopError):
    """Base class for errors reported by the test runner."""

    pass


class NoMatchingFilesError(RunnerError):
    """Raised when the current filter selects no tests.

    This is the only runner outcome the session recovers from.
    """

    def __init__(
        self,
        message: str = "No matching tests found",
        *,
        files: Iterable[str] | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if files is not None:
            ctx["files"] = ", ".join(sorted(files)) or "<none>"
        super().__init__(message, context=ctx, cause=cause)


class TestRunError(RunnerError):
    """Raised when the test command fails in a way the runner cannot classify."""

    def __init__(
        self,
        message: str = "Test run failed",
        *,
        command: str | None = None,
        exit_code: int | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if command:
            ctx["command"] = command
        if exit_code is not None:
            ctx["exit_code"] = exit_code
        super().__init__(message, context=ctx, cause=cause)


class RunnerNotFoundError(RunnerError):
    """Raised when the test command executable cannot be found."""

    def __init__(
        self,
        command: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        ctx["command"] = command
        super().__init__(
            f"Test command not found: {command}", context=ctx, cause=cause
        )

