"""Tests for the interactive session controller."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from testloop.command_processor import CommandOutcome, classify
from testloop.exceptions import NoMatchingFilesError, TestRunError
from testloop.models import Config
from testloop.ports import RunnerProtocol
from testloop.session import Session

FOOTER_WATCHING = "\nWatching for file changes...\n\nUsage: ? to show more\n"
FOOTER_IGNORING = "\nIgnoring file changes\n\nUsage: ? to show more\n"


class FakeRunner:
    """Records every config it is asked to run and optionally fails."""

    def __init__(self, error: Exception | None = None, events: list | None = None):
        self.error = error
        self.configs: list[Config] = []
        self.events = events if events is not None else []

    def run(self, config: Config) -> None:
        self.configs.append(config)
        self.events.append(("run", config))
        if self.error is not None:
            raise self.error


def make_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, highlight=False)
    return console, buffer


def make_session(config: Config | None = None, runner: FakeRunner | None = None, **kwargs):
    console, buffer = make_console()
    runner = runner or FakeRunner()
    session = Session(config or Config(), runner, console=console, **kwargs)
    return session, runner, buffer


class TestSessionStart:
    """Test the initial run."""

    def test_fake_runner_satisfies_protocol(self):
        assert isinstance(FakeRunner(), RunnerProtocol)

    def test_start_runs_initial_config(self):
        """start runs once with the seeded config and prints the footer."""
        initial = Config().only_files(["t.py"])
        session, runner, buffer = make_session(initial)

        session.start()

        assert runner.configs == [initial]
        assert buffer.getvalue() == "\nRan all test files matching t.py\n" + FOOTER_WATCHING

    def test_ignoring_file_changes(self):
        session, _, buffer = make_session(Config(watching=False))
        session.start()
        assert buffer.getvalue().endswith(FOOTER_IGNORING)


class TestProcessCommand:
    """Test per-outcome behaviour of process_command."""

    def test_run_adopts_config_and_runs(self):
        """p updates the config and runs with it."""
        session, runner, buffer = make_session()

        assert session.process_command("p foo_test foo_test2") is True

        expected = Config(file_filter=frozenset({"foo_test", "foo_test2"}))
        assert session.config == expected
        assert runner.configs == [expected]
        assert "Ran all test files matching foo_test, foo_test2" in buffer.getvalue()

    def test_stale_command(self):
        session, runner, buffer = make_session(Config().only_files(["x"]))
        session.process_command("s")
        assert session.config == Config(stale_only=True)
        assert "Ran only stale tests" in buffer.getvalue()

    def test_enter_reruns_unchanged(self):
        initial = Config().only_stale()
        session, runner, _ = make_session(initial)
        session.process_command("")
        assert session.config == initial
        assert runner.configs == [initial]

    def test_unknown_has_no_effect(self):
        """Unknown commands produce no output, no run and no change."""
        initial = Config().only_files(["x"])
        session, runner, buffer = make_session(initial)

        assert session.process_command("xyz") is True

        assert session.config == initial
        assert runner.configs == []
        assert buffer.getvalue() == ""

    def test_help_prints_usage_without_running(self):
        session, runner, buffer = make_session()

        assert session.process_command("?") is True

        assert runner.configs == []
        output = buffer.getvalue()
        assert output.startswith("\nUsage\n")
        assert output.endswith("q to quit.\n\n")

    def test_quit(self):
        session, runner, buffer = make_session()
        assert session.process_command("q") is False
        assert session.process_command(None) is False
        assert runner.configs == []
        assert buffer.getvalue() == ""

    def test_skip_adopts_config_and_prints_footer_only(self):
        """A SKIP outcome changes config and prints the usage prompt without a run."""
        new_config = Config(watching=False, stale_only=True)
        session, runner, buffer = make_session(
            processor=lambda line, config: CommandOutcome.skip(new_config)
        )

        assert session.process_command("anything") is True

        assert session.config == new_config
        assert runner.configs == []
        assert buffer.getvalue() == FOOTER_IGNORING


class TestOutputRendering:
    """Test that operator-supplied text is printed verbatim."""

    LONG_FILTER = [f"tests/unit/test_module_{i}.py" for i in range(4)]

    def test_long_summary_not_wrapped_at_default_width(self):
        """A summary wider than 80 columns stays on one line."""
        buffer = io.StringIO()
        console = Console(file=buffer, width=80, color_system=None, highlight=False)
        initial = Config().only_files(self.LONG_FILTER)
        session = Session(initial, FakeRunner(), console=console)

        session.start()

        summary = initial.summary()
        assert len(summary) > 80
        assert f"\n{summary}\n" in buffer.getvalue()

    def test_default_console_does_not_wrap(self, monkeypatch):
        monkeypatch.delenv("COLUMNS", raising=False)
        initial = Config().only_files(self.LONG_FILTER)
        session = Session(initial, FakeRunner())
        buffer = io.StringIO()
        session._console.file = buffer

        session.start()

        assert f"\n{initial.summary()}\n" in buffer.getvalue()

    def test_emoji_codes_in_file_names_are_kept(self):
        """Names like :smile: are not replaced with emoji."""
        session, _, buffer = make_session(Config().only_files(["tests/a:smile:_test.py"]))

        session.start()

        assert "\nRan all test files matching tests/a:smile:_test.py\n" in buffer.getvalue()

    def test_default_console_keeps_emoji_codes(self):
        session = Session(Config().only_files(["tests/a:smile:_test.py"]), FakeRunner())
        buffer = io.StringIO()
        session._console.file = buffer

        session.start()

        assert "a:smile:_test.py" in buffer.getvalue()

    def test_markup_in_file_names_is_kept(self):
        session, _, buffer = make_session(Config().only_files(["[bold]x.py"]))
        session.start()
        assert "matching [bold]x.py\n" in buffer.getvalue()


class TestRunFailures:
    """Test recovery from runner outcomes."""

    def test_no_matching_files_is_recovered(self):
        """The no-match outcome prints a message and the session continues."""
        runner = FakeRunner(error=NoMatchingFilesError(files=["missing.py"]))
        session, _, buffer = make_session(runner=runner)

        assert session.process_command("p missing.py") is True

        assert buffer.getvalue() == (
            "No matching tests found\n"
            "\nRan all test files matching missing.py\n" + FOOTER_WATCHING
        )
        assert session.config.file_filter == frozenset({"missing.py"})

    def test_no_matching_files_then_next_command(self):
        runner = FakeRunner(error=NoMatchingFilesError())
        session, _, _ = make_session(runner=runner)
        session.process_command("")
        runner.error = None
        session.process_command("a")
        assert len(runner.configs) == 2

    def test_unrecognized_failure_propagates(self):
        """Any other runner failure aborts instead of continuing."""
        error = TestRunError(exit_code=3)
        session, _, buffer = make_session(runner=FakeRunner(error=error))

        with pytest.raises(TestRunError) as exc_info:
            session.process_command("a")

        assert exc_info.value is error
        assert "Ran all tests" not in buffer.getvalue()

    def test_arbitrary_exception_propagates(self):
        session, _, _ = make_session(runner=FakeRunner(error=RuntimeError("boom")))
        with pytest.raises(RuntimeError, match="boom"):
            session.start()

    def test_loop_stops_on_unrecognized_failure(self):
        """The loop does not read further input after a fatal failure."""
        lines = iter(["a", "c", "q"])
        reads: list[str] = []

        def read_line():
            line = next(lines)
            reads.append(line)
            return line

        session, _, _ = make_session(runner=FakeRunner(error=TestRunError()))
        with pytest.raises(TestRunError):
            session.loop(read_line)
        assert reads == ["a"]


class TestLoop:
    """Test the read loop and its ordering."""

    def test_loop_until_quit(self):
        lines = iter(["p a.py", "xyz", "?", "s", "q", "a"])
        session, runner, _ = make_session()

        session.loop(lambda: next(lines))

        assert [c.summary() for c in runner.configs] == [
            "Ran all test files matching a.py",
            "Ran only stale tests",
        ]
        assert next(lines) == "a"

    def test_loop_until_end_of_input(self):
        lines = iter(["a", None])
        session, runner, _ = make_session()
        session.loop(lambda: next(lines))
        assert len(runner.configs) == 1

    def test_each_run_completes_before_next_read(self):
        """Reads and runs strictly alternate for run commands."""
        events: list = []
        lines = iter(["a", "s", "c", None])

        def read_line():
            events.append(("read", None))
            return next(lines)

        runner = FakeRunner(events=events)
        session, _, _ = make_session(runner=runner)
        session.start()
        session.loop(read_line)

        assert [kind for kind, _ in events] == [
            "run", "read", "run", "read", "run", "read", "run", "read",
        ]

    def test_config_accessor_between_commands(self):
        lines = iter(["p one.py", "s"])
        session, _, _ = make_session()
        session.process_command(next(lines))
        assert session.config.file_filter == frozenset({"one.py"})
        session.process_command(next(lines))
        assert session.config.stale_only is True

    def test_default_processor_is_classify(self):
        session, _, _ = make_session()
        assert session._processor is classify
