"""Interactive session controller.

Repeatedly reads commands from the operator, classifies them, optionally
runs the tests, and then prints summary and usage information. Exactly one
command is handled, and its run completed, before the next line is read.
"""

from __future__ import annotations

import logging
from typing import Callable

from rich.console import Console

from .command_processor import CommandOutcome, OutcomeKind, classify, usage
from .exceptions import NoMatchingFilesError
from .models import Config
from .ports import RunnerProtocol

logger = logging.getLogger(__name__)

Processor = Callable[[str | None, Config], CommandOutcome]
LineReader = Callable[[], str | None]


class Session:
    """Owns the current Config and sequences command and run cycles.

    Runner failures other than ``NoMatchingFilesError`` are not handled here;
    they propagate to the caller, which is expected to exit abnormally.
    """

    def __init__(
        self,
        config: Config,
        runner: RunnerProtocol,
        *,
        console: Console | None = None,
        processor: Processor = classify,
    ) -> None:
        self._config = config
        self._runner = runner
        self._console = console or Console(highlight=False, soft_wrap=True, emoji=False)
        self._processor = processor

    @property
    def config(self) -> Config:
        """The current Config."""
        return self._config

    def start(self) -> None:
        """Run the tests once for the initial Config."""
        logger.info("Starting session with %s", self._config)
        self.run_tests()

    def loop(self, read_line: LineReader) -> None:
        """Read and process commands until quit or end of input.

        Args:
            read_line: Blocking reader returning one line, or None at EOF.
        """
        while self.process_command(read_line()):
            pass
        logger.info("Session terminated")

    def process_command(self, line: str | None) -> bool:
        """Apply one line of input.

        Returns:
            False if the session should terminate, True otherwise.
        """
        outcome = self._processor(line, self._config)
        kind = outcome.kind

        if kind is OutcomeKind.QUIT:
            return False
        if kind is OutcomeKind.UNKNOWN:
            logger.debug("Ignoring unknown command %r", line)
        elif kind is OutcomeKind.SHOW_HELP:
            self._show_help()
        elif kind is OutcomeKind.RUN:
            self._adopt(outcome)
            self.run_tests()
        elif kind is OutcomeKind.SKIP:
            self._adopt(outcome)
            self._show_usage_prompt()
        return True

    def run_tests(self) -> None:
        """Run the tests synchronously, then print the summary and usage prompt."""
        self._do_run_tests()
        self._show_summary()
        self._show_usage_prompt()

    def _adopt(self, outcome: CommandOutcome) -> None:
        if outcome.config is None:
            raise ValueError(f"{outcome.kind.value} outcome carries no config")
        if outcome.config != self._config:
            logger.debug("Config changed: %s -> %s", self._config, outcome.config)
        self._config = outcome.config

    def _do_run_tests(self) -> None:
        try:
            self._runner.run(self._config)
        except NoMatchingFilesError as e:
            logger.warning("Recovered from runner outcome: %s", e)
            self._print_line("No matching tests found", style="red")

    def _show_summary(self) -> None:
        self._console.print()
        self._print_line(self._config.summary())

    def _show_usage_prompt(self) -> None:
        self._console.print()
        if self._config.watching:
            self._print_line("Watching for file changes...")
        else:
            self._print_line("Ignoring file changes")
        self._console.print()
        self._console.print("[bold]Usage: ?[/bold] to show more", soft_wrap=True)

    def _show_help(self) -> None:
        self._console.print()
        self._print_line(usage())
        self._console.print()

    def _print_line(self, text: str, style: str | None = None) -> None:
        # File names are operator input: no markup, no emoji codes, no wrapping.
        self._console.print(text, style=style, markup=False, emoji=False, soft_wrap=True)
