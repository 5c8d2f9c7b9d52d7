# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML configuration file loader utilities.

Used to read versioned memory-model weight tables such as
``config/memory_model/fsrs-5.yaml``, and to layer a partial table
over the built-in defaults.

Example:
    >>> from pathlib import Path
    >>> from examrecall.core.config.yaml_loader import load_yaml
    >>> table = load_yaml(Path("config/memory_model/fsrs-5.yaml"))
    >>> len(table["weights"])
    19
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping.

    Args:
        path: Path to the YAML file to load.

    Returns:
        Parsed mapping, or an empty dict for an empty file.

    Raises:
        YAMLLoadError: If the file is missing, unreadable, not valid YAML,
            or its root is not a mapping.
    """
    if not path.is_file():
        raise YAMLLoadError(path, "File does not exist")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_yaml_directory(path: Path) -> dict[str, dict[str, Any]]:
    """Load every ``*.yaml`` / ``*.yml`` file of a directory keyed by stem.

    A directory of weight tables ("fsrs-5.yaml", "custom.yaml") becomes
    ``{"fsrs-5": {...}, "custom": {...}}``.

    Raises:
        YAMLLoadError: If the path is not a directory or any file fails.
    """
    if not path.is_dir():
        raise YAMLLoadError(path, "Path is not a directory")

    result: dict[str, dict[str, Any]] = {}
    for yaml_file in sorted(path.glob("*.yaml")) + sorted(path.glob("*.yml")):
        if yaml_file.is_file():
            result[yaml_file.stem] = load_yaml(yaml_file)

    return result


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Nested dictionaries are merged recursively; other values are replaced.
    Neither input is modified.

    Example:
        >>> deep_merge({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"c": 10}})
        {'a': 1, 'b': {'c': 10, 'd': 3}}
    """
    result: dict[str, Any] = base.copy()

    for key, override_value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(current, override_value)
        else:
            result[key] = override_value

    return result
