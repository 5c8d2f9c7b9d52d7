# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rating dispatch and interval previews.

``handle_review`` routes a rating to the scheduler of the card's mode.
``get_interval_previews`` labels the four rating buttons by running the
real handlers on the unmodified card, so a preview always matches what
pressing the button would do.
"""

import random
from datetime import datetime

from pydantic import BaseModel

from examrecall.core.scheduling.long_term import (
    LongTermReviewResult,
    LongTermScheduler,
    MemoryModelConfig,
)
from examrecall.core.scheduling.models import (
    CardBase,
    LongTermCard,
    ReviewPolicy,
    ReviewRating,
    TestPrepCard,
)
from examrecall.core.scheduling.test_prep import TestPrepReviewResult, calculate_test_prep_review
from examrecall.utils.datetime import resolve_now

NOW_LABEL = "Now"

_SECONDS_PER_DAY = 86400.0


class IntervalPreview(BaseModel):
    """Human-readable next-review interval per rating button."""

    again: str
    hard: str
    good: str
    easy: str


def handle_review(
    card: CardBase,
    rating: ReviewRating | int | str,
    now: datetime | None = None,
    *,
    model: MemoryModelConfig | None = None,
    policy: ReviewPolicy | None = None,
    rng: random.Random | None = None,
) -> TestPrepReviewResult | LongTermReviewResult:
    """Apply a rating using the scheduler of the card's mode.

    Args:
        card: TestPrepCard or LongTermCard.
        rating: AGAIN/HARD/GOOD/EASY.
        now: Review time; defaults to the wall clock.
        model: Memory-model config for Long-Term cards.
        policy: Test-Prep fallback behaviour.
        rng: Random source for Long-Term interval fuzz.

    Raises:
        InvalidRatingError: If the rating is not one of the four ratings.
    """
    if isinstance(card, LongTermCard):
        return LongTermScheduler(model).review(card, rating, now, rng=rng)
    return calculate_test_prep_review(card, rating, now, policy=policy)


def format_interval(days: float) -> str:
    """Format an interval in days for a rating button.

    Example:
        >>> format_interval(10 / 1440), format_interval(3), format_interval(45)
        ('10m', '3d', '2mo')
    """
    if days < 1:
        minutes = round(days * 1440)
        if minutes < 60:
            return f"{minutes}m"
        return f"{round(days * 24)}h"
    if days < 7:
        return f"{round(days)}d"
    if days < 30:
        return f"{round(days / 7)}w"
    if days < 365:
        return f"{round(days / 30)}mo"
    return f"{round(days / 365)}y"


def _clone_rng(rng: random.Random | None) -> random.Random | None:
    if rng is None:
        return None
    clone = random.Random()
    clone.setstate(rng.getstate())
    return clone


def _label_test_prep(card: TestPrepCard, rating: ReviewRating, now: datetime, policy: ReviewPolicy | None) -> str:
    result = calculate_test_prep_review(card, rating, now, policy=policy)
    if result.action is not None or result.interval <= 0:
        return NOW_LABEL
    return format_interval(result.interval)


def _label_long_term(
    scheduler: LongTermScheduler,
    card: LongTermCard,
    rating: ReviewRating,
    now: datetime,
    rng: random.Random | None,
) -> str:
    result = scheduler.review(card, rating, now, rng=_clone_rng(rng))
    days = result.interval.total_seconds() / _SECONDS_PER_DAY
    if days <= 0:
        return NOW_LABEL
    return format_interval(days)


def get_interval_previews(
    card: CardBase,
    now: datetime | None = None,
    *,
    model: MemoryModelConfig | None = None,
    policy: ReviewPolicy | None = None,
    rng: random.Random | None = None,
) -> IntervalPreview:
    """Preview the next interval of every rating without changing the card.

    ``rng`` is only read through copies of its state, so a later real
    review with the same generator draws the same fuzz as its preview.
    """
    now = resolve_now(now)

    if isinstance(card, LongTermCard):
        scheduler = LongTermScheduler(model)
        labels = {
            rating: _label_long_term(scheduler, card, rating, now, rng) for rating in ReviewRating
        }
    else:
        labels = {rating: _label_test_prep(card, rating, now, policy) for rating in ReviewRating}

    return IntervalPreview(
        again=labels[ReviewRating.AGAIN],
        hard=labels[ReviewRating.HARD],
        good=labels[ReviewRating.GOOD],
        easy=labels[ReviewRating.EASY],
    )
