# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Long-Term scheduler: adaptive memory model.

The memory-model update is delegated to the fsrs library. The engine uses
the FSRS-5 weight table (19 values, reproduced exactly) and extends it to
the library's FSRS-6 parameterisation with ``w19 = 0.0`` and
``w20 = 0.5``, which reduces the FSRS-6 formulas to FSRS-5.

On top of the model call this module applies:
- per-rating minimum-interval floors (AGAIN 0, HARD 5 min, GOOD 10 min,
  EASY 0)
- optional triangular fuzz on review intervals, drawn from an injected RNG
- leech detection once lapses reach the configured threshold
- mastery derivation, the single source of truth for MASTERED/STRUGGLING

The model configuration is an explicit value passed into every call.
"""

import logging
import math
import random
from collections.abc import Iterable
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fsrs import Card as FsrsCard
from fsrs import Rating, Scheduler, State
from pydantic import BaseModel, ConfigDict, Field, field_validator

from examrecall.core.config.yaml_loader import deep_merge, load_yaml, load_yaml_directory
from examrecall.core.scheduling.exceptions import InvalidModelConfigError, ModeConversionError
from examrecall.core.scheduling.learning import (
    LEARNING_STEPS,
    RELEARNING_STEPS,
    classify_card_type,
    learning_state_for,
)
from examrecall.core.scheduling.models import (
    CardBase,
    CardUpdate,
    DeckMode,
    LongTermCard,
    MasteryLevel,
    MemoryState,
    ReviewHistoryEntry,
    ReviewRating,
    TestPrepCard,
)
from examrecall.core.scheduling.retrievability import apply_triangular_fuzz
from examrecall.utils.datetime import resolve_now

if TYPE_CHECKING:
    from examrecall.core.config.settings import Settings

logger = logging.getLogger(__name__)

# FSRS-5 weights, version "fsrs-5"
DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.4072,  # w0:  initial stability for Again
    1.1829,  # w1:  initial stability for Hard
    3.1262,  # w2:  initial stability for Good
    15.4722,  # w3:  initial stability for Easy
    7.2102,  # w4:  initial difficulty
    0.5316,  # w5
    1.0651,  # w6
    0.0234,  # w7
    1.616,  # w8
    0.1544,  # w9
    1.0824,  # w10
    1.9813,  # w11
    0.0953,  # w12
    0.2975,  # w13
    2.2042,  # w14
    0.2407,  # w15
    2.9466,  # w16
    0.5034,  # w17
    0.6567,  # w18
)

# FSRS-6 extension that leaves the FSRS-5 formulas unchanged
FSRS6_IDENTITY_EXTENSION: tuple[float, float] = (0.0, 0.5)

MIN_INTERVAL_FLOORS: dict[ReviewRating, timedelta] = {
    ReviewRating.AGAIN: timedelta(0),
    ReviewRating.HARD: timedelta(minutes=5),
    ReviewRating.GOOD: timedelta(minutes=10),
    ReviewRating.EASY: timedelta(0),
}

MASTERED_STABILITY_DAYS = 21.0
STRUGGLING_LAPSES = 2

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# (state, stability, difficulty) seeded from Test-Prep mastery on conversion
CONVERSION_SEEDS: dict[MasteryLevel, tuple[MemoryState, float, float]] = {
    MasteryLevel.MASTERED: (MemoryState.REVIEW, 21.0, 5.0),
    MasteryLevel.LEARNING: (MemoryState.LEARNING, 3.0, 5.0),
    MasteryLevel.STRUGGLING: (MemoryState.NEW, 0.0, 7.0),
}

_STATE_TO_FSRS = {
    MemoryState.LEARNING: State.Learning,
    MemoryState.REVIEW: State.Review,
    MemoryState.RELEARNING: State.Relearning,
}

_SECONDS_PER_DAY = 86400.0


class MemoryModelConfig(BaseModel):
    """Memory-model configuration injected into every long-term call.

    Attributes:
        version: Name of the weight table.
        weights: FSRS-5 (19) or FSRS-6 (21) weights.
        desired_retention: Target recall probability at the due date.
        maximum_interval: Longest interval in days.
        learning_steps: Intra-day steps for new cards.
        relearning_steps: Intra-day steps after a lapse.
        enable_fuzz: Fuzz review intervals with the injected RNG.
        leech_threshold: Lapses at which a card becomes a leech.
        auto_suspend_leeches: Suspend a card when it becomes a leech.
    """

    model_config = ConfigDict(frozen=True)

    version: str = "fsrs-5"
    weights: tuple[float, ...] = DEFAULT_WEIGHTS
    desired_retention: float = Field(default=0.92, gt=0.0, lt=1.0)
    maximum_interval: int = Field(default=365, ge=1)
    learning_steps: tuple[timedelta, ...] = LEARNING_STEPS
    relearning_steps: tuple[timedelta, ...] = RELEARNING_STEPS
    enable_fuzz: bool = False
    leech_threshold: int = Field(default=6, ge=1)
    auto_suspend_leeches: bool = False

    @field_validator("weights", mode="before")
    @classmethod
    def _check_weights(cls, value: Any) -> Any:
        values = tuple(value)
        if len(values) not in (19, 21):
            raise InvalidModelConfigError(
                "Weight table must hold 19 or 21 values",
                details={"length": len(values)},
            )
        if not all(isinstance(w, (int, float)) and math.isfinite(w) for w in values):
            raise InvalidModelConfigError(
                "Weight table contains non-finite values",
                details={"weights": list(values)},
            )
        return tuple(float(w) for w in values)

    def fsrs_parameters(self) -> tuple[float, ...]:
        """Weights in the library's 21-value FSRS-6 layout."""
        if len(self.weights) == 21:
            return self.weights
        return self.weights + FSRS6_IDENTITY_EXTENSION

    @classmethod
    def from_yaml(cls, path: Path, **overrides: Any) -> "MemoryModelConfig":
        """Load a versioned weight table from YAML.

        Keys missing from the file keep their defaults; ``overrides``
        take precedence over both.
        """
        table = load_yaml(path)
        defaults = {"version": path.stem}
        merged = deep_merge(deep_merge(defaults, table), overrides)
        fields = {key: value for key, value in merged.items() if key in cls.model_fields}
        return cls(**fields)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "MemoryModelConfig":
        """Build the model config from application settings."""
        overrides: dict[str, Any] = {
            "desired_retention": settings.memory_model.desired_retention,
            "maximum_interval": settings.memory_model.maximum_interval,
            "enable_fuzz": settings.memory_model.enable_fuzz,
            "leech_threshold": settings.review.leech_threshold,
            "auto_suspend_leeches": settings.review.auto_suspend_leeches,
        }
        if settings.memory_model.weights_file is not None:
            return cls.from_yaml(settings.memory_model.weights_file, **overrides)
        return cls(**overrides)


def load_weight_tables(directory: Path) -> dict[str, MemoryModelConfig]:
    """Load every weight table of a directory keyed by file stem."""
    return {
        name: MemoryModelConfig(**{"version": name, **table})
        for name, table in load_yaml_directory(directory).items()
    }


@lru_cache(maxsize=16)
def _build_scheduler(config: MemoryModelConfig) -> Scheduler:
    try:
        return Scheduler(
            parameters=config.fsrs_parameters(),
            desired_retention=config.desired_retention,
            learning_steps=config.learning_steps,
            relearning_steps=config.relearning_steps,
            maximum_interval=config.maximum_interval,
            enable_fuzzing=False,
        )
    except ValueError as e:
        raise InvalidModelConfigError(
            "Memory model rejected the weight table",
            details={"version": config.version, "error": str(e)},
        ) from e


class LongTermReviewResult(BaseModel):
    """Outcome of rating a Long-Term card."""

    update: CardUpdate
    review_log: ReviewHistoryEntry
    leech_escalated: bool = Field(
        default=False,
        description="True when this review made the card a leech",
    )
    interval: timedelta = Field(description="Time until the next review")


def derive_mastery(state: MemoryState, stability: float | None, lapses: int) -> MasteryLevel:
    """Derive mastery from memory-model state.

    STRUGGLING when relearning or after two lapses, MASTERED once in
    review with at least 21 days of stability, LEARNING otherwise.
    """
    if state == MemoryState.RELEARNING or lapses >= STRUGGLING_LAPSES:
        return MasteryLevel.STRUGGLING
    if state == MemoryState.REVIEW and (stability or 0.0) >= MASTERED_STABILITY_DAYS:
        return MasteryLevel.MASTERED
    return MasteryLevel.LEARNING


def get_mastery(card: CardBase) -> MasteryLevel:
    """Mastery of any card; Test-Prep cards report their ladder mastery."""
    if isinstance(card, LongTermCard):
        return derive_mastery(card.state, card.stability, card.lapses)
    return card.mastery


class LongTermScheduler:
    """Memory-model scheduler bound to one model configuration."""

    def __init__(self, model: MemoryModelConfig | None = None) -> None:
        self.model = model or MemoryModelConfig()
        self._scheduler = _build_scheduler(self.model)

    def _to_fsrs_card(self, card: LongTermCard) -> FsrsCard:
        """Translate a card into the library's card, normalising bad inputs."""
        state = card.state
        stability = card.stability

        if state != MemoryState.NEW and not (math.isfinite(stability) and stability > 0):
            if state in (MemoryState.REVIEW, MemoryState.RELEARNING):
                logger.warning(
                    "Card %s in state %s has stability %s, rescheduling as new",
                    card.id,
                    state.name,
                    stability,
                )
            state = MemoryState.NEW

        if state == MemoryState.NEW:
            return FsrsCard(card_id=0, state=State.Learning, step=0, due=card.next_review_at)

        difficulty = card.difficulty
        if not math.isfinite(difficulty):
            logger.warning("Card %s has difficulty %s, using 5.0", card.id, difficulty)
            difficulty = 5.0
        elif not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
            logger.warning("Card %s has difficulty %s outside 1-10, clamping", card.id, difficulty)
            difficulty = min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)

        # No review on record: anchor one stability before the due date
        last_review = card.last_review_at
        if last_review is None:
            last_review = card.next_review_at - timedelta(days=stability)

        if state == MemoryState.LEARNING:
            step = min(card.learning_step, max(len(self.model.learning_steps) - 1, 0))
        elif state == MemoryState.RELEARNING:
            step = min(card.learning_step, max(len(self.model.relearning_steps) - 1, 0))
        else:
            step = None

        return FsrsCard(
            card_id=0,
            state=_STATE_TO_FSRS[state],
            step=step,
            stability=stability,
            difficulty=difficulty,
            due=card.next_review_at,
            last_review=last_review,
        )

    def review(
        self,
        card: LongTermCard,
        rating: ReviewRating | int | str,
        now: datetime | None = None,
        *,
        rng: random.Random | None = None,
    ) -> LongTermReviewResult:
        """Apply a rating to a Long-Term card.

        Args:
            card: Card to rate; it is not modified.
            rating: AGAIN/HARD/GOOD/EASY.
            now: Review time; defaults to the wall clock.
            rng: Random source for interval fuzz.

        Returns:
            The diff, the review history entry and the leech flag.

        Raises:
            InvalidRatingError: If the rating is not one of the four ratings.
        """
        rating = ReviewRating.parse(rating)
        now = resolve_now(now)

        fsrs_card = self._to_fsrs_card(card)
        result, _ = self._scheduler.review_card(fsrs_card, Rating(int(rating)), now)

        new_state = MemoryState(int(result.state))
        interval = result.due - now

        if self.model.enable_fuzz and new_state == MemoryState.REVIEW:
            base_days = interval.total_seconds() / _SECONDS_PER_DAY
            fuzzed = apply_triangular_fuzz(base_days, rng or random.Random())
            interval = timedelta(days=min(fuzzed, self.model.maximum_interval))

        interval = max(interval, MIN_INTERVAL_FLOORS[rating])
        next_review_at = now + interval

        lapses = card.lapses
        if rating == ReviewRating.AGAIN and card.state == MemoryState.REVIEW:
            lapses += 1

        is_leech = card.is_leech or lapses >= self.model.leech_threshold
        leech_escalated = is_leech and not card.is_leech
        leech_suspended = card.leech_suspended or (leech_escalated and self.model.auto_suspend_leeches)
        if leech_escalated:
            logger.info("Card %s became a leech after %d lapses", card.id, lapses)

        stability = float(result.stability)
        difficulty = float(result.difficulty)

        update = CardUpdate(
            state=new_state,
            stability=stability,
            difficulty=difficulty,
            reps=card.reps + 1,
            lapses=lapses,
            last_review_at=now,
            next_review_at=next_review_at,
            last_response=rating,
            mastery=derive_mastery(new_state, stability, lapses),
            learning_state=learning_state_for(new_state),
            learning_step=result.step or 0,
            learning_card_type=classify_card_type(now, next_review_at),
            is_leech=is_leech,
            leech_suspended=leech_suspended,
        )

        elapsed_days = 0
        if card.last_review_at is not None and now > card.last_review_at:
            elapsed_days = (now - card.last_review_at).days

        review_log = ReviewHistoryEntry(
            card_id=card.id,
            rating=rating,
            reviewed_at=now,
            elapsed_days=elapsed_days,
            scheduled_days=interval.days,
            state=new_state,
            stability=stability,
            difficulty=difficulty,
        )

        return LongTermReviewResult(
            update=update,
            review_log=review_log,
            leech_escalated=leech_escalated,
            interval=interval,
        )


def calculate_long_term_review(
    card: LongTermCard,
    rating: ReviewRating | int | str,
    now: datetime | None = None,
    *,
    model: MemoryModelConfig | None = None,
    rng: random.Random | None = None,
) -> LongTermReviewResult:
    """Apply a rating to a Long-Term card with the given model config."""
    return LongTermScheduler(model).review(card, rating, now, rng=rng)


def convert_card_to_long_term(card: CardBase, now: datetime | None = None) -> CardUpdate:
    """Convert a Test-Prep card to Long-Term mode (one-way).

    The memory-model state is seeded from the card's ladder mastery and
    all Test-Prep fields are cleared.

    Raises:
        ModeConversionError: If the card is already in Long-Term mode.
    """
    if not isinstance(card, TestPrepCard):
        raise ModeConversionError(
            "Card is already in Long-Term mode",
            details={"card_id": card.id},
        )

    now = resolve_now(now)
    state, stability, difficulty = CONVERSION_SEEDS[card.mastery]
    next_review_at = now + timedelta(days=stability) if stability > 0 else now

    logger.debug("Converting card %s (%s) to Long-Term", card.id, card.mastery.value)

    changes = {
        "mode": DeckMode.LONG_TERM,
        "state": state,
        "stability": stability,
        "difficulty": difficulty,
        "next_review_at": next_review_at,
        "mastery": derive_mastery(state, stability, card.lapses),
        "learning_state": learning_state_for(state),
        "learning_step": 0,
        "learning_card_type": classify_card_type(now, next_review_at),
        "test_date": None,
        "schedule": None,
        "current_step": None,
    }
    if state != MemoryState.NEW:
        # Seeded stability is measured from the conversion
        changes["last_review_at"] = now

    return CardUpdate(**changes)


def convert_deck_to_long_term(
    cards: Iterable[CardBase], deck_id: str, now: datetime | None = None
) -> dict[str, CardUpdate]:
    """Convert every Test-Prep card of a deck.

    Returns:
        Updates keyed by card id. Cards already in Long-Term mode are skipped.
    """
    now = resolve_now(now)
    return {
        card.id: convert_card_to_long_term(card, now)
        for card in cards
        if card.deck_id == deck_id and isinstance(card, TestPrepCard)
    }
