"""Command grammar for the interactive session.

Maps one line of operator input and the current Config to a CommandOutcome.
Classification is pure and total: unrecognized input becomes
``OutcomeKind.UNKNOWN`` rather than an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .models import Config

logger = logging.getLogger(__name__)

HELP_COMMAND = "?"

USAGE = """\
Usage
› p <files> to run only the specified test files.
› c to clear any file filters.
› s to run only stale files.
› a to run all files.
› Enter to trigger a test run.
› q to quit."""


class OutcomeKind(Enum):
    """What the session should do after a command is classified."""

    RUN = "run"  # Adopt config, then run tests
    SKIP = "skip"  # Adopt config, print the usage prompt, no run
    SHOW_HELP = "show_help"
    UNKNOWN = "unknown"
    QUIT = "quit"


@dataclass(frozen=True)
class CommandOutcome:
    """Result of classifying one input line.

    ``config`` is set for RUN and SKIP and is None otherwise.
    """

    kind: OutcomeKind
    config: Config | None = None

    @classmethod
    def run(cls, config: Config) -> CommandOutcome:
        return cls(OutcomeKind.RUN, config)

    @classmethod
    def skip(cls, config: Config) -> CommandOutcome:
        return cls(OutcomeKind.SKIP, config)

    @classmethod
    def show_help(cls) -> CommandOutcome:
        return cls(OutcomeKind.SHOW_HELP)

    @classmethod
    def unknown(cls) -> CommandOutcome:
        return cls(OutcomeKind.UNKNOWN)

    @classmethod
    def quit(cls) -> CommandOutcome:
        return cls(OutcomeKind.QUIT)


def classify(line: str | None, config: Config) -> CommandOutcome:
    """Classify a line of input against the current config.

    Args:
        line: The raw input line, or None at end of input.
        config: The session's current Config.

    Returns:
        The CommandOutcome describing the transition to apply.
    """
    if line is None:
        return CommandOutcome.quit()

    tokens = line.split()
    if not tokens:
        return CommandOutcome.run(config)

    command, args = tokens[0], tokens[1:]
    outcome = _process_command(command, args, config)
    logger.debug("Classified %r as %s", command, outcome.kind.value)
    return outcome


def _process_command(command: str, args: list[str], config: Config) -> CommandOutcome:
    if command == "a":
        return CommandOutcome.run(config.clear_flags())
    if command == "c":
        return CommandOutcome.run(config.clear_filters())
    if command == "p":
        return CommandOutcome.run(config.only_files(args))
    if command == "s":
        return CommandOutcome.run(config.only_stale())
    if command == "q":
        return CommandOutcome.quit()
    if command == HELP_COMMAND:
        return CommandOutcome.show_help()
    return CommandOutcome.unknown()


def usage() -> str:
    """Return the help text listing every command."""
    return USAGE
