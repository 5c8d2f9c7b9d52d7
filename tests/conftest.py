# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Every test runs against a fixed clock so results never depend on the
wall clock. Card and deck factories build valid models with sensible
defaults that each test overrides.
"""

import random
from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pytest

from examrecall.core.config.settings import clear_settings_cache
from examrecall.core.scheduling.models import Deck, DeckMode, LongTermCard, TestPrepCard

# Wednesday
FIXED_NOW = datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )


# =============================================================================
# Clock and Randomness
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Provide the fixed review time used across tests."""
    return FIXED_NOW


@pytest.fixture
def today(now: datetime) -> date:
    """Provide the calendar day of the fixed review time."""
    return now.date()


@pytest.fixture
def rng() -> random.Random:
    """Provide a seeded random source."""
    return random.Random(1234)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Make sure cached settings never leak between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_test_prep_card(now: datetime) -> Callable[..., TestPrepCard]:
    """Factory for Test-Prep cards due today with a test in 10 days."""
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> TestPrepCard:
        number = next(counter)
        data: dict[str, Any] = {
            "id": f"tp-{number}",
            "deck_id": "deck-tp",
            "created_at": now - timedelta(days=5, minutes=number),
            "next_review_at": now,
            "test_date": now.date() + timedelta(days=10),
        }
        data.update(overrides)
        return TestPrepCard(**data)

    return factory


@pytest.fixture
def make_long_term_card(now: datetime) -> Callable[..., LongTermCard]:
    """Factory for new Long-Term cards due now."""
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> LongTermCard:
        number = next(counter)
        data: dict[str, Any] = {
            "id": f"lt-{number}",
            "deck_id": "deck-lt",
            "created_at": now - timedelta(days=5, minutes=number),
            "next_review_at": now,
        }
        data.update(overrides)
        return LongTermCard(**data)

    return factory


@pytest.fixture
def make_deck(now: datetime) -> Callable[..., Deck]:
    """Factory for decks; Test-Prep with a test in 10 days by default."""

    def factory(**overrides: Any) -> Deck:
        data: dict[str, Any] = {
            "id": "deck-tp",
            "name": "Biology final",
            "mode": DeckMode.TEST_PREP,
            "test_date": now.date() + timedelta(days=10),
        }
        data.update(overrides)
        return Deck(**data)

    return factory
