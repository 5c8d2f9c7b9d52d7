# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the scheduling engine.

Cards are a tagged variant discriminated by ``mode``: ``TestPrepCard``
carries the ladder fields, ``LongTermCard`` carries the memory-model
fields, and both share ``CardBase``. Scheduling functions never mutate
cards; they return ``CardUpdate`` diffs for the store to apply.

Dates may arrive from storage as native objects or ISO 8601 strings.
Timestamps are normalised to timezone-aware UTC and test dates to
calendar dates on validation.
"""

from datetime import date, datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from examrecall.core.scheduling.exceptions import InvalidRatingError
from examrecall.utils.datetime import to_calendar_date, to_datetime

if TYPE_CHECKING:
    from examrecall.core.config.settings import Settings


class DeckMode(str, Enum):
    """Scheduling regime of a deck and its cards."""

    TEST_PREP = "TEST_PREP"
    LONG_TERM = "LONG_TERM"


class LearningState(str, Enum):
    """Learning phase of a card.

    - LEARNING: New card going through the initial learning steps
    - RELEARNING: Graduated card that was failed
    - GRADUATED: Completed learning, in the normal review cycle
    """

    LEARNING = "LEARNING"
    RELEARNING = "RELEARNING"
    GRADUATED = "GRADUATED"


class LearningCardType(str, Enum):
    """Governs how due detection compares the next review time."""

    INTRADAY = "INTRADAY"
    INTERDAY = "INTERDAY"


class MemoryState(IntEnum):
    """Memory-model card state."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class MasteryLevel(str, Enum):
    """User-facing mastery, always derived."""

    LEARNING = "LEARNING"
    STRUGGLING = "STRUGGLING"
    MASTERED = "MASTERED"


class ReviewRating(IntEnum):
    """Review quality ratings.

    1 = Again (forgot), 2 = Hard, 3 = Good, 4 = Easy.
    """

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: "ReviewRating | int | str") -> "ReviewRating":
        """Coerce a rating from its enum, int value or name.

        Args:
            value: ReviewRating, 1-4, or "AGAIN"/"HARD"/"GOOD"/"EASY"
                (case-insensitive).

        Returns:
            The matching ReviewRating.

        Raises:
            InvalidRatingError: If the value is not one of the four ratings.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRatingError(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRatingError(value) from None
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        raise InvalidRatingError(value)


class InsertionOrder(str, Enum):
    """Order in which new cards are introduced."""

    SEQUENTIAL = "SEQUENTIAL"
    RANDOM = "RANDOM"


class ExamPhase(str, Enum):
    """Temporal phase of a Test-Prep deck relative to its test date."""

    MAINTENANCE = "MAINTENANCE"
    CONSOLIDATION = "CONSOLIDATION"
    CRAM = "CRAM"
    EXAM_DAY = "EXAM_DAY"
    POST_EXAM = "POST_EXAM"


class ReviewAction(str, Enum):
    """Session action requested by a rating handler."""

    REQUEUE = "REQUEUE"


class PostExamAction(str, Enum):
    """What to do with a Test-Prep deck after its exam."""

    CONVERT = "CONVERT"
    ARCHIVE = "ARCHIVE"
    KEEP = "KEEP"


class WarningType(str, Enum):
    """Schedule health warning categories."""

    CARDS_PAST_TEST = "CARDS_PAST_TEST"
    LEECH_DETECTED = "LEECH_DETECTED"
    OVERDUE_CARDS = "OVERDUE_CARDS"


class ReassignmentReason(str, Enum):
    """Why the load balancer moved a card."""

    OVERLOAD = "OVERLOAD"
    EASY_DAY = "EASY_DAY"


CalendarDate = date

_TIMESTAMP_FIELDS = ("created_at", "last_review_at", "next_review_at", "original_due_at")


class CardBase(BaseModel):
    """Fields shared by both card variants."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Card identifier")
    deck_id: str = Field(description="Owning deck identifier")
    created_at: datetime = Field(description="Creation time, orders SEQUENTIAL new cards")

    learning_state: LearningState = LearningState.LEARNING
    learning_step: int = Field(default=0, ge=0, description="Index into the learning steps")
    learning_card_type: LearningCardType = LearningCardType.INTRADAY

    mastery: MasteryLevel = MasteryLevel.LEARNING
    reps: int = Field(default=0, ge=0)
    lapses: int = Field(default=0, ge=0)
    last_review_at: datetime | None = None
    next_review_at: datetime = Field(description="Authoritative due timestamp")
    original_due_at: datetime | None = Field(
        default=None,
        description="Due timestamp before load balancing moved the card",
    )
    last_response: ReviewRating | None = None

    is_leech: bool = False
    leech_suspended: bool = False
    again_count: int = Field(default=0, ge=0, description="AGAIN presses within Test-Prep sessions")

    @field_validator(*_TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        if isinstance(value, (str, date)):
            return to_datetime(value)
        return value

    @field_validator(*_TIMESTAMP_FIELDS)
    @classmethod
    def _normalise_utc(cls, value: datetime | None) -> datetime | None:
        return to_datetime(value)

    @property
    def has_been_reviewed(self) -> bool:
        """Whether the card has ever been rated."""
        return self.reps > 0 or self.last_review_at is not None


class TestPrepCard(CardBase):
    """Card scheduled on the fixed exam ladder."""

    __test__ = False

    mode: Literal["TEST_PREP"] = DeckMode.TEST_PREP.value
    test_date: date | None = Field(default=None, description="Exam calendar date")
    schedule: list[int] = Field(default_factory=list, description="Ladder of day offsets")
    current_step: int = Field(default=0, ge=0, description="Index into schedule")
    stability: float | None = Field(
        default=None,
        description="Frozen stability estimate, used when switching modes",
    )

    @field_validator("test_date", mode="before")
    @classmethod
    def _coerce_test_date(cls, value: Any) -> Any:
        return to_calendar_date(value)


class LongTermCard(CardBase):
    """Card scheduled by the adaptive memory model."""

    mode: Literal["LONG_TERM"] = DeckMode.LONG_TERM.value
    state: MemoryState = MemoryState.NEW
    stability: float = Field(default=0.0, description="Days until recall decays to ~90%")
    difficulty: float = Field(default=5.0, description="Intrinsic hardness, 1-10")


Card = Annotated[TestPrepCard | LongTermCard, Field(discriminator="mode")]

_card_adapter: TypeAdapter[TestPrepCard | LongTermCard] = TypeAdapter(Card)


def parse_card(data: dict[str, Any] | TestPrepCard | LongTermCard) -> TestPrepCard | LongTermCard:
    """Validate a raw store payload into the matching card variant.

    Args:
        data: Mapping with a ``mode`` key, or an already-built card.

    Returns:
        TestPrepCard or LongTermCard.
    """
    if isinstance(data, CardBase):
        return data
    return _card_adapter.validate_python(data)


class EasyDay(BaseModel):
    """Day-of-week or specific-date override capping daily card volume."""

    day_of_week: int | None = Field(
        default=None, ge=0, le=6, description="0=Sunday .. 6=Saturday"
    )
    date: CalendarDate | None = None
    max_cards: int = Field(ge=0, description="Cap for the matching day")

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return to_calendar_date(value)

    @model_validator(mode="after")
    def _require_target(self) -> "EasyDay":
        if self.day_of_week is None and self.date is None:
            raise ValueError("EasyDay needs day_of_week or date")
        return self


class Deck(BaseModel):
    """A collection of cards sharing a mode and an optional deadline."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    mode: DeckMode = DeckMode.TEST_PREP
    test_date: date | None = None
    exam_phase: ExamPhase | None = None
    desired_retention: float | None = Field(default=None, gt=0.0, lt=1.0)
    max_cards_per_day: int = Field(default=100, ge=0, description="0 = unlimited")
    new_cards_per_day: int = Field(default=20, ge=0)
    easy_days: list[EasyDay] = Field(default_factory=list)
    insertion_order: InsertionOrder = InsertionOrder.SEQUENTIAL

    @field_validator("test_date", mode="before")
    @classmethod
    def _coerce_test_date(cls, value: Any) -> Any:
        return to_calendar_date(value)


class ReviewHistoryEntry(BaseModel):
    """Immutable record of one long-term rating event."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    rating: ReviewRating
    reviewed_at: datetime
    elapsed_days: int = Field(ge=0, description="Whole days since the previous review")
    scheduled_days: int = Field(ge=0, description="Whole days until the next review")
    state: MemoryState
    stability: float
    difficulty: float
    review_time_ms: int | None = None


class CardUpdate(BaseModel):
    """Partial card update returned by the scheduling functions.

    Only fields that were explicitly set are part of the diff.
    """

    model_config = ConfigDict(extra="forbid")

    mode: DeckMode | None = None
    learning_state: LearningState | None = None
    learning_step: int | None = None
    learning_card_type: LearningCardType | None = None
    mastery: MasteryLevel | None = None
    reps: int | None = None
    lapses: int | None = None
    last_review_at: datetime | None = None
    next_review_at: datetime | None = None
    original_due_at: datetime | None = None
    last_response: ReviewRating | None = None
    is_leech: bool | None = None
    leech_suspended: bool | None = None
    again_count: int | None = None

    test_date: date | None = None
    schedule: list[int] | None = None
    current_step: int | None = None

    state: MemoryState | None = None
    stability: float | None = None
    difficulty: float | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly set fields."""
        return self.model_dump(exclude_unset=True)


def apply_update(
    card: TestPrepCard | LongTermCard, update: CardUpdate
) -> TestPrepCard | LongTermCard:
    """Return a new card with the diff applied.

    A ``mode`` change rebuilds the card as the other variant; fields the
    target variant does not have are dropped.
    """
    data = card.model_dump()
    data.update(update.changes())
    if data.get("schedule") is None:
        data.pop("schedule", None)
    if data.get("current_step") is None:
        data.pop("current_step", None)
    if isinstance(data.get("mode"), DeckMode):
        data["mode"] = data["mode"].value
    return parse_card(data)


class ReviewPolicy(BaseModel):
    """Rating and due-selection behaviour passed explicitly into the engine."""

    model_config = ConfigDict(frozen=True)

    missing_test_date_fallback_days: int = Field(default=30, ge=1)
    test_day_lockout_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ReviewPolicy":
        """Build the policy from application settings."""
        return cls(
            missing_test_date_fallback_days=settings.review.missing_test_date_fallback_days,
            test_day_lockout_enabled=settings.review.test_day_lockout_enabled,
        )


class ScheduleWarning(BaseModel):
    """Schedule health warning for the caller to surface."""

    type: WarningType
    count: int = Field(ge=0)
    recommendation: str
