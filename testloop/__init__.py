"""Interactive test runner.

Reads one-letter commands from the terminal, narrows or widens the set of
tests to run, and re-runs them after each command.

Programmatic usage:
    from testloop import CommandRunner, Config, Session

    runner = CommandRunner("pytest -q")
    session = Session(Config(), runner)
    session.start()
    session.process_command("p tests/test_models.py")
"""

__version__ = "0.1.0"

from testloop.command_processor import CommandOutcome, OutcomeKind, classify, usage
from testloop.exceptions import (
    NoMatchingFilesError,
    RunnerError,
    TestloopError,
    TestRunError,
)
from testloop.models import Config, Settings
from testloop.runner import CommandRunner, StaleTracker
from testloop.session import Session

__all__ = [
    "CommandOutcome",
    "CommandRunner",
    "Config",
    "NoMatchingFilesError",
    "OutcomeKind",
    "RunnerError",
    "Session",
    "Settings",
    "StaleTracker",
    "TestRunError",
    "TestloopError",
    "classify",
    "usage",
]
