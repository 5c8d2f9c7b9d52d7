# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Due-card selector.

``get_due_cards`` is evaluated fresh on every call:

1. Cards are grouped by deck.
2. LONG_TERM decks: due when ``next_review_at <= now`` (exact timestamp,
   the memory model schedules sub-day intervals).
3. TEST_PREP decks without a test date: calendar-day comparison.
4. TEST_PREP decks with a test date:
   - test day: no cards at all (lockout)
   - day before the test: every card, STRUGGLING then LEARNING then
     MASTERED
   - otherwise: calendar-day comparison; the last review time is never
     consulted, so missed days do not shrink the backlog.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from examrecall.core.scheduling.models import CardBase, Deck, DeckMode, MasteryLevel
from examrecall.utils.datetime import resolve_now, to_calendar_date

MASTERY_REVIEW_ORDER: dict[MasteryLevel, int] = {
    MasteryLevel.STRUGGLING: 0,
    MasteryLevel.LEARNING: 1,
    MasteryLevel.MASTERED: 2,
}


def is_test_day(test_date: date | datetime | str, now: datetime | None = None) -> bool:
    """Whether today is the test day (lockout)."""
    return resolve_now(now).date() == to_calendar_date(test_date)


def is_final_review_day(test_date: date | datetime | str, now: datetime | None = None) -> bool:
    """Whether today is the day before the test."""
    return resolve_now(now).date() == to_calendar_date(test_date) - timedelta(days=1)


def _due_by_day(cards: Iterable[CardBase], today: date) -> list[CardBase]:
    return [card for card in cards if card.next_review_at.date() <= today]


def _test_prep_due(
    cards: list[CardBase], deck: Deck, now: datetime, lockout_enabled: bool
) -> list[CardBase]:
    today = now.date()
    if deck.test_date is None:
        return _due_by_day(cards, today)

    if is_test_day(deck.test_date, now):
        if lockout_enabled:
            return []
        return _due_by_day(cards, today)

    if is_final_review_day(deck.test_date, now):
        return sorted(cards, key=lambda card: MASTERY_REVIEW_ORDER[card.mastery])

    return _due_by_day(cards, today)


def get_due_cards(
    cards: Iterable[CardBase],
    decks: Iterable[Deck],
    now: datetime | None = None,
    *,
    lockout_enabled: bool = True,
) -> list[CardBase]:
    """Select the cards to review now across all decks.

    Args:
        cards: All cards.
        decks: All decks; cards of unknown decks are never returned.
        now: Current time; defaults to the wall clock.
        lockout_enabled: Hide Test-Prep decks on their test day.

    Returns:
        Due cards, grouped in deck order.
    """
    now = resolve_now(now)
    by_deck: dict[str, list[CardBase]] = defaultdict(list)
    for card in cards:
        by_deck[card.deck_id].append(card)

    due: list[CardBase] = []
    for deck in decks:
        deck_cards = by_deck.get(deck.id, [])
        if deck.mode == DeckMode.LONG_TERM:
            due.extend(card for card in deck_cards if card.next_review_at <= now)
        else:
            due.extend(_test_prep_due(deck_cards, deck, now, lockout_enabled))
    return due
