"""Test command detection for different project types.

Picks the command the runner invokes, based on settings and on the project
files present in the project root. Every detected command accepts test file
paths as trailing arguments.
"""

from __future__ import annotations

import configparser
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "python -m pytest"


@dataclass
class DetectedCommand:
    """Detected or configured test command."""

    command: str = DEFAULT_COMMAND
    source: str = "default"  # How the command was determined (e.g., "settings", "pytest.ini")


class CommandDetector:
    """Detects the test command for a project.

    Detection order:
    1. Explicit test_command from settings
    2. pytest.ini -> pytest
    3. pyproject.toml -> pytest (if a [tool.pytest] section or pytest dependency exists)
    4. setup.cfg -> pytest (if a [tool:pytest] section exists)
    5. tox.ini -> pytest (if a [pytest] section exists)
    6. package.json -> npm test -- (if a real "test" script exists)
    7. Fallback to python -m pytest

    A pytest command is run through the environment manager whose lockfile
    sits in the project root (uv, poetry or pipenv).
    """

    # Maps filename to the command it implies
    DETECTION_ORDER = [
        ("pytest.ini", "pytest"),
        ("pyproject.toml", "pytest"),  # Requires [tool.pytest] or a pytest dependency
        ("setup.cfg", "pytest"),  # Requires [tool:pytest]
        ("tox.ini", "pytest"),  # Requires [pytest]
        ("package.json", "npm test --"),  # Requires "test" script
    ]

    # Lockfile -> prefix that runs a command inside the project environment
    ENVIRONMENT_RUNNERS = [
        ("uv.lock", "uv run"),
        ("poetry.lock", "poetry run"),
        ("Pipfile.lock", "pipenv run"),
    ]

    def __init__(self, project_path: str | Path):
        self.project_path = Path(project_path)

    def detect(self, configured_command: str = "") -> DetectedCommand:
        """Detect the test command for the project.

        Args:
            configured_command: test_command from settings; wins when non-empty.

        Returns:
            DetectedCommand with the command and where it came from.
        """
        if configured_command.strip():
            logger.debug("Using configured test_command: %s", configured_command)
            return DetectedCommand(command=configured_command, source="settings")

        for filename, command in self.DETECTION_ORDER:
            file_path = self.project_path / filename
            if not file_path.exists():
                continue
            if self._file_supports_tests(file_path, filename):
                if command == "pytest":
                    command = self._in_environment(command)
                logger.debug("Detected test command from %s: %s", filename, command)
                return DetectedCommand(command=command, source=filename)

        command = self._in_environment(DEFAULT_COMMAND)
        logger.debug("No test configuration found, falling back to %s", command)
        return DetectedCommand(command=command)

    def _in_environment(self, command: str) -> str:
        for lockfile, prefix in self.ENVIRONMENT_RUNNERS:
            if (self.project_path / lockfile).exists():
                return f"{prefix} {command}"
        return command

    def _file_supports_tests(self, file_path: Path, filename: str) -> bool:
        if filename == "pytest.ini":
            return True

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to read %s: %s", file_path, e)
            return False

        if filename == "pyproject.toml":
            return self._pyproject_has_pytest(content)
        if filename == "package.json":
            return self._package_json_has_test_script(content)
        section = "tool:pytest" if filename == "setup.cfg" else "pytest"
        return self._ini_has_section(content, section)

    def _pyproject_has_pytest(self, content: str) -> bool:
        """Matches [tool.pytest] / [tool.pytest.ini_options] or a pytest dependency."""
        if re.search(r"\[tool\.pytest", content):
            return True
        return bool(re.search(r'["\'](pytest|pytest-[a-zA-Z]+)["\'>=<~ ]', content))

    def _ini_has_section(self, content: str, section: str) -> bool:
        parser = configparser.ConfigParser()
        try:
            parser.read_string(content)
        except configparser.Error as e:
            logger.warning("Failed to parse ini content: %s", e)
            return False
        return parser.has_section(section)

    def _package_json_has_test_script(self, content: str) -> bool:
        """True when package.json defines a test script other than the npm placeholder."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse package.json: %s", e)
            return False
        if not isinstance(data, dict):
            return False
        scripts = data.get("scripts")
        if not isinstance(scripts, dict):
            return False
        test_script = scripts.get("test", "")
        return bool(test_script) and "no test specified" not in str(test_script).lower()
