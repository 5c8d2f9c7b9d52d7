# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Card state machine for the learning phase.

Both scheduling modes walk new and failed cards through short intra-day
steps before they graduate:

    LEARNING   --GOOD past last step / EASY-->  GRADUATED
    GRADUATED  --AGAIN-->                       RELEARNING (step 0)
    RELEARNING --GOOD past last step / EASY-->  GRADUATED

AGAIN inside a learning phase restarts at step 0 and HARD repeats the
current step.

The card type decides how due detection compares times: an INTRADAY card
is due at its exact timestamp, an INTERDAY card on its calendar day.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from examrecall.core.scheduling.models import (
    CardBase,
    LearningCardType,
    LearningState,
    MemoryState,
    ReviewRating,
)

LEARNING_STEPS: tuple[timedelta, ...] = (timedelta(minutes=15), timedelta(hours=1))
RELEARNING_STEPS: tuple[timedelta, ...] = (timedelta(minutes=10),)


class LearningTransition(BaseModel):
    """Learning fields after one rating."""

    model_config = ConfigDict(frozen=True)

    learning_state: LearningState
    learning_step: int = Field(ge=0)
    learning_card_type: LearningCardType


def steps_for(learning_state: LearningState) -> tuple[timedelta, ...]:
    """Step durations of a learning phase (empty once graduated)."""
    if learning_state == LearningState.LEARNING:
        return LEARNING_STEPS
    if learning_state == LearningState.RELEARNING:
        return RELEARNING_STEPS
    return ()


def classify_card_type(now: datetime, next_review_at: datetime) -> LearningCardType:
    """INTRADAY when the next review lands on today's calendar day."""
    if next_review_at.date() == now.date():
        return LearningCardType.INTRADAY
    return LearningCardType.INTERDAY


def advance_learning(
    learning_state: LearningState,
    learning_step: int,
    rating: ReviewRating,
    *,
    now: datetime | None = None,
    next_review_at: datetime | None = None,
) -> LearningTransition:
    """Apply a rating to the learning-phase fields.

    Args:
        learning_state: Current learning phase.
        learning_step: Current 0-based step index.
        rating: The rating pressed.
        now: Review time; with ``next_review_at`` it classifies the card type.
        next_review_at: Scheduled next review, if already known.

    Returns:
        The resulting learning state, step and card type. Without both
        timestamps the card type is INTRADAY while in steps, INTERDAY once
        graduated.
    """
    rating = ReviewRating.parse(rating)

    if learning_state == LearningState.GRADUATED:
        if rating == ReviewRating.AGAIN:
            state, step = LearningState.RELEARNING, 0
        else:
            state, step = LearningState.GRADUATED, 0
    else:
        steps = steps_for(learning_state)
        if rating == ReviewRating.AGAIN:
            state, step = learning_state, 0
        elif rating == ReviewRating.HARD:
            state, step = learning_state, learning_step
        elif rating == ReviewRating.GOOD and learning_step + 1 < len(steps):
            state, step = learning_state, learning_step + 1
        else:
            state, step = LearningState.GRADUATED, 0

    if now is not None and next_review_at is not None:
        card_type = classify_card_type(now, next_review_at)
    elif state == LearningState.GRADUATED:
        card_type = LearningCardType.INTERDAY
    else:
        card_type = LearningCardType.INTRADAY

    return LearningTransition(
        learning_state=state,
        learning_step=step,
        learning_card_type=card_type,
    )


def learning_state_for(memory_state: MemoryState) -> LearningState:
    """Map a memory-model state onto the learning phase."""
    if memory_state == MemoryState.REVIEW:
        return LearningState.GRADUATED
    if memory_state == MemoryState.RELEARNING:
        return LearningState.RELEARNING
    return LearningState.LEARNING


def is_due(card: CardBase, now: datetime) -> bool:
    """Whether a card is due, honouring its learning card type."""
    if card.learning_card_type == LearningCardType.INTRADAY:
        return card.next_review_at <= now
    return card.next_review_at.date() <= now.date()
