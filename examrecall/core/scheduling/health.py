# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schedule health checks surfaced to the learner."""

from collections.abc import Iterable, Sequence
from datetime import datetime

from examrecall.core.scheduling.load_balancer import backlog_recommendation
from examrecall.core.scheduling.models import (
    CardBase,
    Deck,
    DeckMode,
    ScheduleWarning,
    TestPrepCard,
    WarningType,
)
from examrecall.utils.datetime import resolve_now


def check_schedule_health(
    cards: Sequence[CardBase],
    decks: Iterable[Deck],
    now: datetime | None = None,
) -> list[ScheduleWarning]:
    """Collect warnings about the current schedule.

    - CARDS_PAST_TEST: Test-Prep cards due on or after their deck's test date
    - LEECH_DETECTED: leeches that have not been suspended
    - OVERDUE_CARDS: cards due before today

    Returns:
        One warning per category with a non-zero count, in that order.
    """
    today = resolve_now(now).date()
    test_dates = {
        deck.id: deck.test_date
        for deck in decks
        if deck.mode == DeckMode.TEST_PREP and deck.test_date is not None
    }

    past_test = sum(
        1
        for card in cards
        if isinstance(card, TestPrepCard)
        and card.deck_id in test_dates
        and card.next_review_at.date() >= test_dates[card.deck_id]
    )
    leeches = sum(1 for card in cards if card.is_leech and not card.leech_suspended)
    overdue = sum(1 for card in cards if card.next_review_at.date() < today)

    warnings: list[ScheduleWarning] = []
    if past_test:
        warnings.append(
            ScheduleWarning(
                type=WarningType.CARDS_PAST_TEST,
                count=past_test,
                recommendation=f"{past_test} cards are scheduled on or after the test date. Review them before the test.",
            )
        )
    if leeches:
        warnings.append(
            ScheduleWarning(
                type=WarningType.LEECH_DETECTED,
                count=leeches,
                recommendation=f"{leeches} cards keep failing. Rewrite, split or suspend them.",
            )
        )
    if overdue:
        warnings.append(
            ScheduleWarning(
                type=WarningType.OVERDUE_CARDS,
                count=overdue,
                recommendation=backlog_recommendation(overdue),
            )
        )
    return warnings
