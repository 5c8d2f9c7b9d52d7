# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Retrievability engine.

Retrievability (R) is the probability of successfully recalling a card.
It decays with time according to a power law:

    R(t) = (1 + f * t / S) ^ (-p)

where S is the card's stability in days, t the days elapsed since the last
review, and f = p = 0.5. R is 1.0 whenever S <= 0 or t <= 0, so degenerate
inputs never produce NaN.

The module also provides urgency ordering for cards and the triangular
fuzz used to spread intervals across neighbouring days.
"""

import random
from collections.abc import Iterable
from datetime import date, datetime
from typing import TypeVar

from examrecall.core.scheduling.models import CardBase
from examrecall.utils.datetime import to_datetime

DECAY_FACTOR = 0.5
DECAY_POWER = 0.5

# Projected R reported for a card that has never been reviewed
UNKNOWN_PROJECTED_R = 0.5

_SECONDS_PER_DAY = 86400.0

C = TypeVar("C", bound=CardBase)


def calculate_retrievability(stability: float | None, elapsed_days: float) -> float:
    """Calculate recall probability after ``elapsed_days``.

    Args:
        stability: Card stability in days.
        elapsed_days: Days since the last review (fractional).

    Returns:
        Retrievability between 0 and 1.
    """
    if not stability or stability <= 0:
        return 1.0
    if elapsed_days <= 0:
        return 1.0
    return (1 + DECAY_FACTOR * elapsed_days / stability) ** (-DECAY_POWER)


def days_between(start: datetime | date | str, end: datetime | date | str) -> float:
    """Fractional days from ``start`` to ``end`` (negative if end is earlier)."""
    delta = to_datetime(end) - to_datetime(start)
    return delta.total_seconds() / _SECONDS_PER_DAY


def _card_stability(card: CardBase) -> float | None:
    return getattr(card, "stability", None)


def get_card_retrievability(card: CardBase, now: datetime) -> float:
    """Current R of a card; 1.0 when it has no review or no stability."""
    stability = _card_stability(card)
    if card.last_review_at is None or not stability:
        return 1.0
    return calculate_retrievability(stability, days_between(card.last_review_at, now))


def project_retrievability_at(card: CardBase, target: datetime | date | str) -> float:
    """Project a card's R to an arbitrary date, e.g. the exam day.

    A calendar date is read as midnight UTC of that day.

    Returns:
        Projected R, or 0.5 when the card has no review or no stability.
    """
    stability = _card_stability(card)
    if card.last_review_at is None or not stability:
        return UNKNOWN_PROJECTED_R
    return calculate_retrievability(stability, days_between(card.last_review_at, target))


def days_until_drop(stability: float, threshold: float = 0.9) -> float:
    """Days after a review until R falls to ``threshold``.

    Closed-form inverse of the decay curve:
    ``t = S * (threshold ^ (-1/p) - 1) / f``.
    """
    if stability <= 0:
        return 0.0
    if threshold <= 0 or threshold >= 1:
        return 0.0
    t = stability * (threshold ** (-1 / DECAY_POWER) - 1) / DECAY_FACTOR
    return max(0.0, t)


def calculate_optimal_review_time(stability: float, target_r: float = 0.9) -> float:
    """Days from the last review to the point where R reaches ``target_r``."""
    return days_until_drop(stability, target_r)


def sort_by_retrievability(cards: Iterable[C], now: datetime) -> list[C]:
    """Sort cards by current R, most forgettable first (stable)."""
    return sorted(cards, key=lambda card: get_card_retrievability(card, now))


def sort_by_r_at_exam(cards: Iterable[C], exam_date: datetime | date | str) -> list[C]:
    """Sort cards by projected R at the exam, weakest first (stable)."""
    return sorted(cards, key=lambda card: project_retrievability_at(card, exam_date))


def triangular_random(low: float, mode: float, high: float, rng: random.Random) -> float:
    """Draw from a triangular distribution.

    Args:
        low: Lower bound.
        mode: Most likely value, clamped into [low, high].
        high: Upper bound.
        rng: Random source; seed it for reproducible draws.
    """
    if low >= high:
        return mode
    mode = min(max(mode, low), high)
    return rng.triangular(low, high, mode)


def fuzz_band(interval: float) -> float:
    """Relative fuzz applied to an interval of the given length."""
    if interval < 2:
        return 0.0
    if interval < 7:
        return 0.25
    if interval < 30:
        return 0.15
    return 0.05


def apply_triangular_fuzz(interval: float, rng: random.Random) -> float:
    """Spread an interval so cards do not cluster on the same day.

    No fuzz under 2 days; otherwise a triangular draw centred on the
    interval, rounded to whole days and clamped to at least 1.
    """
    band = fuzz_band(interval)
    if band == 0.0:
        return interval
    low = interval * (1 - band)
    high = interval * (1 + band)
    return max(1, round(triangular_random(low, interval, high, rng)))


def get_cards_below_retrievability(
    cards: Iterable[C], threshold: float, now: datetime
) -> list[C]:
    """Cards with R < threshold, lowest R first."""
    scored = [(get_card_retrievability(card, now), card) for card in cards]
    below = [(r, card) for r, card in scored if r < threshold]
    below.sort(key=lambda pair: pair[0])
    return [card for _, card in below]


def get_overdue_cards_by_urgency(cards: Iterable[C], now: datetime) -> list[C]:
    """Cards due strictly before ``now``, lowest R first."""
    overdue = [card for card in cards if card.next_review_at < now]
    return sort_by_retrievability(overdue, now)


def get_average_retrievability(cards: Iterable[CardBase], now: datetime) -> float:
    """Mean current R, 0.0 for no cards."""
    values = [get_card_retrievability(card, now) for card in cards]
    if not values:
        return 0.0
    return sum(values) / len(values)


def get_retrievability_distribution(cards: Iterable[CardBase], now: datetime) -> dict[str, int]:
    """Count cards per R bracket.

    Brackets: excellent >= 0.95, good >= 0.85, fair >= 0.70,
    poor >= 0.50, critical below that.
    """
    distribution = {"excellent": 0, "good": 0, "fair": 0, "poor": 0, "critical": 0}
    for card in cards:
        r = get_card_retrievability(card, now)
        if r >= 0.95:
            distribution["excellent"] += 1
        elif r >= 0.85:
            distribution["good"] += 1
        elif r >= 0.70:
            distribution["fair"] += 1
        elif r >= 0.50:
            distribution["poor"] += 1
        else:
            distribution["critical"] += 1
    return distribution


def get_average_r_at_exam(cards: Iterable[CardBase], exam_date: datetime | date | str) -> float:
    """Mean projected R at the exam, 0.0 for no cards."""
    values = [project_retrievability_at(card, exam_date) for card in cards]
    if not values:
        return 0.0
    return sum(values) / len(values)
