# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for examrecall.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading versioned weight tables

Example:
    >>> from examrecall.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.memory_model.desired_retention
    0.92
"""

from examrecall.core.config.settings import (
    LoadBalancingSettings,
    MemoryModelSettings,
    ReviewSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from examrecall.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    load_yaml,
    load_yaml_directory,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "MemoryModelSettings",
    "ReviewSettings",
    "LoadBalancingSettings",
    # YAML utilities
    "load_yaml",
    "load_yaml_directory",
    "deep_merge",
    "YAMLLoadError",
]
