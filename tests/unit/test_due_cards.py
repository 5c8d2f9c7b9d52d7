# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the due-card selector."""

from datetime import date, datetime, timedelta, timezone

import pytest

from examrecall.core.scheduling.due_cards import get_due_cards, is_final_review_day, is_test_day
from examrecall.core.scheduling.models import DeckMode, MasteryLevel


def at(day: date, hour: int) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


@pytest.mark.unit
class TestLongTermDue:
    """Tests for Long-Term decks."""

    def test_exact_timestamp(self, make_deck, make_long_term_card, now: datetime) -> None:
        """Test that Long-Term cards are due at their exact timestamp."""
        deck = make_deck(id="deck-lt", mode=DeckMode.LONG_TERM, test_date=None)
        due_now = make_long_term_card(next_review_at=now)
        overdue = make_long_term_card(next_review_at=now - timedelta(days=2))
        later_today = make_long_term_card(next_review_at=now + timedelta(minutes=1))

        assert get_due_cards([due_now, overdue, later_today], [deck], now) == [due_now, overdue]


@pytest.mark.unit
class TestTestPrepDue:
    """Tests for Test-Prep decks."""

    def test_calendar_day_comparison(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that anything due today, even tonight, is due now."""
        deck = make_deck()
        tonight = make_test_prep_card(next_review_at=at(today, 23))
        missed = make_test_prep_card(
            next_review_at=at(today - timedelta(days=5), 0), last_review_at=now - timedelta(days=9)
        )
        tomorrow = make_test_prep_card(next_review_at=at(today + timedelta(days=1), 0))

        assert get_due_cards([tonight, missed, tomorrow], [deck], now) == [tonight, missed]

    def test_test_day_lockout(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that no cards are due on the test day."""
        deck = make_deck(test_date=today)
        cards = [make_test_prep_card(test_date=today, next_review_at=at(today, 0))]

        assert get_due_cards(cards, [deck], now) == []
        assert get_due_cards(cards, [deck], now, lockout_enabled=False) == cards

    def test_final_review_day_returns_everything(
        self, make_deck, make_test_prep_card, now: datetime, today: date
    ) -> None:
        """Test the day before the test: all cards, struggling first."""
        test_date = today + timedelta(days=1)
        deck = make_deck(test_date=test_date)
        mastered = make_test_prep_card(test_date=test_date, mastery=MasteryLevel.MASTERED)
        learning_a = make_test_prep_card(test_date=test_date, next_review_at=at(today + timedelta(days=5), 0))
        struggling = make_test_prep_card(test_date=test_date, mastery=MasteryLevel.STRUGGLING)
        learning_b = make_test_prep_card(test_date=test_date)

        result = get_due_cards([mastered, learning_a, struggling, learning_b], [deck], now)

        assert result == [struggling, learning_a, learning_b, mastered]

    def test_deck_without_test_date(self, make_deck, make_test_prep_card, now: datetime, today: date) -> None:
        """Test that a deck without a test date uses the calendar-day rule."""
        deck = make_deck(test_date=None)
        due = make_test_prep_card(test_date=None, next_review_at=at(today, 22))
        later = make_test_prep_card(test_date=None, next_review_at=at(today + timedelta(days=2), 0))

        assert get_due_cards([due, later], [deck], now) == [due]


@pytest.mark.unit
class TestDueCardsAcrossDecks:
    """Tests for selection across decks."""

    def test_grouped_in_deck_order_and_unknown_decks_skipped(
        self, make_deck, make_test_prep_card, make_long_term_card, now: datetime
    ) -> None:
        """Test deck grouping and that orphaned cards are ignored."""
        long_term = make_deck(id="deck-lt", mode=DeckMode.LONG_TERM, test_date=None)
        test_prep = make_deck()
        lt_card = make_long_term_card()
        tp_card = make_test_prep_card()
        orphan = make_test_prep_card(deck_id="deleted")

        result = get_due_cards([tp_card, orphan, lt_card], [long_term, test_prep], now)

        assert result == [lt_card, tp_card]

    def test_accepts_naive_now(self, make_deck, make_test_prep_card) -> None:
        """Test that a naive simulated time is read as UTC."""
        deck = make_deck(test_date=date(2025, 6, 1))
        card = make_test_prep_card(next_review_at="2025-05-20T00:00:00Z", test_date="2025-06-01")

        assert get_due_cards([card], [deck], datetime(2025, 5, 20, 6, 0)) == [card]


@pytest.mark.unit
class TestDayHelpers:
    """Tests for test-day helpers."""

    def test_is_test_day(self, now: datetime, today: date) -> None:
        """Test the lockout day check."""
        assert is_test_day(today, now) is True
        assert is_test_day(today + timedelta(days=1), now) is False

    def test_is_final_review_day(self, now: datetime, today: date) -> None:
        """Test the final review day check, including ISO strings."""
        assert is_final_review_day(today + timedelta(days=1), now) is True
        assert is_final_review_day((today + timedelta(days=1)).isoformat(), now) is True
        assert is_final_review_day(today, now) is False
