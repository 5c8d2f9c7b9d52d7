# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for schedule health checks."""

from datetime import date, datetime, timedelta, timezone

import pytest

from examrecall.core.scheduling.health import check_schedule_health
from examrecall.core.scheduling.models import DeckMode, WarningType


def midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


@pytest.mark.unit
class TestCheckScheduleHealth:
    """Tests for check_schedule_health."""

    def test_healthy_schedule(self, make_deck, make_test_prep_card, now: datetime) -> None:
        """Test that a clean schedule has no warnings."""
        cards = [make_test_prep_card(), make_test_prep_card()]

        assert check_schedule_health(cards, [make_deck()], now) == []

    def test_cards_on_or_after_test_date(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that Test-Prep cards at or past the test date are flagged."""
        deck = make_deck(test_date=today + timedelta(days=5))
        cards = [
            make_test_prep_card(next_review_at=midnight(today + timedelta(days=5))),
            make_test_prep_card(next_review_at=midnight(today + timedelta(days=8))),
            make_test_prep_card(next_review_at=midnight(today + timedelta(days=4))),
        ]

        warnings = check_schedule_health(cards, [deck], now)

        assert [w.type for w in warnings] == [WarningType.CARDS_PAST_TEST]
        assert warnings[0].count == 2
        assert warnings[0].recommendation == (
            "2 cards are scheduled on or after the test date. Review them before the test."
        )

    def test_long_term_decks_have_no_deadline(self, make_deck, make_long_term_card, now: datetime) -> None:
        """Test that Long-Term decks are never checked against a test date."""
        deck = make_deck(id="deck-lt", mode=DeckMode.LONG_TERM)
        cards = [make_long_term_card(next_review_at=now + timedelta(days=90))]

        assert check_schedule_health(cards, [deck], now) == []

    def test_unsuspended_leeches(self, make_deck, make_long_term_card, now: datetime) -> None:
        """Test that only leeches still in rotation are reported."""
        cards = [
            make_long_term_card(is_leech=True),
            make_long_term_card(is_leech=True, leech_suspended=True),
        ]

        warnings = check_schedule_health(cards, [make_deck(id="deck-lt", mode=DeckMode.LONG_TERM)], now)

        assert [w.type for w in warnings] == [WarningType.LEECH_DETECTED]
        assert warnings[0].count == 1
        assert warnings[0].recommendation == "1 cards keep failing. Rewrite, split or suspend them."

    def test_overdue_cards(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that cards due before today are reported with backlog advice."""
        cards = [
            make_test_prep_card(next_review_at=midnight(today - timedelta(days=1))),
            make_test_prep_card(next_review_at=midnight(today)),
        ]

        warnings = check_schedule_health(cards, [make_deck()], now)

        assert [w.type for w in warnings] == [WarningType.OVERDUE_CARDS]
        assert warnings[0].count == 1
        assert warnings[0].recommendation == "Manageable backlog. Clear it in one session."

    def test_warning_order(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that all three categories are reported in a fixed order."""
        deck = make_deck(test_date=today + timedelta(days=3))
        cards = [
            make_test_prep_card(next_review_at=midnight(today - timedelta(days=2)), is_leech=True),
            make_test_prep_card(next_review_at=midnight(today + timedelta(days=3))),
        ]

        warnings = check_schedule_health(cards, [deck], now)

        assert [w.type for w in warnings] == [
            WarningType.CARDS_PAST_TEST,
            WarningType.LEECH_DETECTED,
            WarningType.OVERDUE_CARDS,
        ]
