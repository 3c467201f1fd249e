"""Settings loading, merging, paths.

Provides settings management with global defaults and project-local overrides.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

import dacite

from .exceptions import ConfigLoadError, ConfigValidationError
from .models import Settings, settings_from_dict

logger = logging.getLogger(__name__)

# Settings file locations
CONFIG_DIR = Path.home() / ".config" / "testloop"
GLOBAL_CONFIG_PATH = CONFIG_DIR / "config.json"
PROJECT_CONFIG_FILENAME = ".testloop.json"


def merge_configs(global_config: dict, project_config: dict) -> dict:
    """
    Merge project settings into global settings.

    Rules:
    - Scalars: project overrides global
    - Lists: project replaces global (no merge)
    - Dicts: recursive merge
    - None in project: removes key from global

    Args:
        global_config: The base settings dictionary
        project_config: The override settings dictionary

    Returns:
        Merged settings dictionary
    """
    result = copy.deepcopy(global_config)

    for key, value in project_config.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _read_json(path: Path, label: str) -> dict:
    """Read a JSON object from ``path``, or ``{}`` when the file is absent.

    Raises:
        ConfigLoadError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        logger.debug("No %s found at %s", label, path)
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded %s from %s", label, path)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", label, e)
        raise ConfigLoadError(
            f"Invalid JSON in {label} at line {e.lineno}",
            file_path=str(path),
            context={"line": e.lineno, "column": e.colno},
            cause=e,
        ) from e
    except OSError as e:
        logger.error("Failed to read %s: %s", label, e)
        raise ConfigLoadError(
            f"Failed to read {label}",
            file_path=str(path),
            cause=e,
        ) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"{label.capitalize()} must be a JSON object",
            value=type(data).__name__,
            expected="object",
            context={"file_path": str(path)},
        )
    return data


def _to_settings(data: dict, source: str) -> Settings:
    try:
        return settings_from_dict(data)
    except dacite.DaciteError as e:
        logger.error("Settings schema validation failed: %s", e)
        raise ConfigValidationError(
            f"Settings schema validation failed: {e}",
            context={"source": source},
            cause=e,
        ) from e


def load_project_settings(project_path: str | Path) -> dict:
    """
    Load project-local settings overrides.

    Args:
        project_path: Path to the project root directory

    Returns:
        Dictionary of project-local overrides, or empty dict if no file exists

    Raises:
        ConfigLoadError: If the file exists but cannot be parsed.
    """
    return _read_json(Path(project_path) / PROJECT_CONFIG_FILENAME, "project config")


def load_merged_settings(project_path: str | Path | None = None) -> Settings:
    """
    Load settings with project-local overrides merged.

    Args:
        project_path: Optional path to project for local overrides

    Returns:
        Settings with merged configuration

    Raises:
        ConfigLoadError: If settings files cannot be read.
        ConfigValidationError: If the merged settings are invalid.
    """
    global_data = _read_json(GLOBAL_CONFIG_PATH, "global config")

    if project_path is not None:
        project_data = load_project_settings(project_path)
        merged_data = merge_configs(global_data, project_data)
        logger.debug("Merged project config from %s", project_path)
    else:
        merged_data = global_data

    return _to_settings(merged_data, "merged")
