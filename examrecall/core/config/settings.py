# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Engine configuration settings using Pydantic Settings.

This module provides centralized configuration management for examrecall.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A cached instance is provided via get_settings(). The scheduling functions
never read it implicitly: callers turn settings into explicit configuration
values (MemoryModelConfig, LoadBalanceConfig, ReviewPolicy) and pass them in.

Example:
    >>> from examrecall.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.review.leech_threshold
    6
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MemoryModelSettings(BaseSettings):
    """Memory-model (FSRS) configuration.

    Attributes:
        desired_retention: Target probability of recall at the due date.
        maximum_interval: Longest interval the model may schedule, in days.
        enable_fuzz: Apply triangular fuzz to review-state intervals.
        weights_file: Optional YAML weight table overriding the built-in one.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAMRECALL_MODEL_",
        extra="ignore",
    )

    desired_retention: float = Field(default=0.92, gt=0.0, lt=1.0)
    maximum_interval: int = Field(default=365, ge=1)
    enable_fuzz: bool = False
    weights_file: Path | None = None


class ReviewSettings(BaseSettings):
    """Rating-handler and due-selection behaviour.

    Attributes:
        leech_threshold: Card is flagged as a leech when lapses reach this.
        auto_suspend_leeches: Suspend leeches instead of only flagging them.
        test_day_lockout_enabled: Hide Test-Prep decks on their test day.
        missing_test_date_fallback_days: Assumed days to the test when a
            Test-Prep card arrives without a test date.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAMRECALL_REVIEW_",
        extra="ignore",
    )

    leech_threshold: int = Field(default=6, ge=1)
    auto_suspend_leeches: bool = False
    test_day_lockout_enabled: bool = True
    missing_test_date_fallback_days: int = Field(default=30, ge=1)


class LoadBalancingSettings(BaseSettings):
    """Workload smoothing defaults.

    Attributes:
        default_max_per_day: Daily card cap (0 = unlimited).
        new_cards_per_day: Daily new-card limit.
        reviews_per_day: Daily limit on already-reviewed cards (0 = unlimited).
        enable_balancing: Whether balance_workload moves cards at all.
        search_window_days: How far ahead an excess card may be moved.
        forecast_days: Horizon used when balancing.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAMRECALL_LOAD_",
        extra="ignore",
    )

    default_max_per_day: int = Field(default=100, ge=0)
    new_cards_per_day: int = Field(default=20, ge=0)
    reviews_per_day: int = Field(default=200, ge=0)
    enable_balancing: bool = True
    search_window_days: int = Field(default=7, ge=1)
    forecast_days: int = Field(default=60, ge=1)


class Settings(BaseSettings):
    """Top-level settings aggregating all subsettings."""

    model_config = SettingsConfigDict(
        env_prefix="EXAMRECALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "test", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    memory_model: MemoryModelSettings = Field(default_factory=MemoryModelSettings)
    review: ReviewSettings = Field(default_factory=ReviewSettings)
    load_balancing: LoadBalancingSettings = Field(default_factory=LoadBalancingSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
