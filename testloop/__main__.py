"""Entry point for python -m testloop.

Usage:
    # Run all tests, then wait for commands
    python -m testloop

    # Start with a file filter, or with only stale files
    python -m testloop tests/test_models.py
    python -m testloop --stale

    # Use a custom test command
    python -m testloop --command "pytest -x -q"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from rich.console import Console

from testloop.command_detector import CommandDetector
from testloop.config import load_merged_settings
from testloop.exceptions import ConfigError, TestloopError
from testloop.logging_config import log_exception, setup_logging
from testloop.models import Config
from testloop.runner import CommandRunner
from testloop.session import Session

logger = logging.getLogger("testloop.main")


def _setup_logging(args: argparse.Namespace) -> None:
    """Configure logging based on command-line arguments."""
    if args.debug:
        setup_logging(
            level="DEBUG",
            log_to_console=True,
            log_to_file=not args.no_log_file,
        )
    else:
        setup_logging(
            level=args.log_level,
            log_to_console=False,
            log_to_file=not args.no_log_file,
        )


def _line_reader(stream: TextIO):
    """Return a blocking reader yielding one line per call, or None at EOF."""

    def read_line() -> str | None:
        line = stream.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    return read_line


def _create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="testloop",
        description="Interactive test runner - type commands to choose which tests to run",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands (once running):
  p <files>  run only the specified test files
  c          clear any file filters
  s          run only stale files
  a          run all files
  Enter      trigger a test run
  ?          show help
  q          quit
""",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Test files to run initially (default: all)",
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path.cwd(),
        help="Project root to run tests in (default: current directory)",
    )
    parser.add_argument(
        "--command",
        help="Test command to run (default: from settings or auto-detected)",
    )
    parser.add_argument(
        "--stale",
        action="store_true",
        help="Start with only stale test files selected",
    )
    parser.add_argument(
        "--no-watch",
        dest="watching",
        action="store_false",
        help="Report that file changes are ignored",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to console",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Disable logging to file",
    )
    return parser


def build_session(args: argparse.Namespace, console: Console) -> Session:
    """Load settings and construct the single session for this process.

    Raises:
        ConfigError: If the settings files are invalid.
    """
    project = args.project.resolve()
    settings = load_merged_settings(project)
    detected = CommandDetector(project).detect(args.command or settings.test_command)
    logger.info("Using test command %r (from %s)", detected.command, detected.source)

    runner = CommandRunner.from_settings(settings, detected.command, project)
    watching = args.watching and settings.watch
    config = Config.from_args(files=args.files, stale=args.stale, watching=watching)
    return Session(config, runner, console=console)


def main(argv: list[str] | None = None, stdin: TextIO | None = None) -> int:
    """Main entry point for testloop."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _setup_logging(args)
    console = Console(highlight=False, soft_wrap=True, emoji=False)

    try:
        session = build_session(args, console)
        session.start()
        session.loop(_line_reader(stdin or sys.stdin))
    except KeyboardInterrupt:
        return 130
    except ConfigError as e:
        log_exception(logger, e, "Invalid configuration", include_traceback=False)
        print(f"testloop: error: {e}", file=sys.stderr)
        return 1
    except TestloopError as e:
        log_exception(logger, e, "Test run aborted")
        print(f"testloop: error: {e}", file=sys.stderr)
        return 1
    except Exception as e:  # noqa: BLE001
        log_exception(logger, e, "Unexpected error")
        print(f"testloop: error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
