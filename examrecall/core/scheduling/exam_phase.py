# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam-phase controller.

A finite-horizon overlay on the memory model that optimises recall on a
specific exam date. A Test-Prep deck is classified by calendar days left
until its test date:

| Phase         | Days left | Target retention            |
|---------------|-----------|-----------------------------|
| MAINTENANCE   | > 30      | 0.75                        |
| CONSOLIDATION | 8-30      | 0.75 -> 0.95 (linear)       |
| CRAM          | 1-7       | 0.95 -> 0.99 (linear)       |
| EXAM_DAY      | 0         | 1.0                         |
| POST_EXAM     | < 0       | 0.90                        |

Each phase prioritises cards differently, and the preparedness summary
projects every card's retrievability to the exam day.
"""

import math
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from examrecall.core.scheduling.models import (
    CalendarDate,
    CardBase,
    Deck,
    DeckMode,
    ExamPhase,
    MasteryLevel,
    PostExamAction,
)
from examrecall.core.scheduling.retrievability import (
    get_card_retrievability,
    project_retrievability_at,
    sort_by_r_at_exam,
    sort_by_retrievability,
)
from examrecall.utils.datetime import days_until, resolve_now, to_calendar_date

CONSOLIDATION_START_DAYS = 30
CRAM_START_DAYS = 7
CONSOLIDATION_SPAN_DAYS = CONSOLIDATION_START_DAYS - CRAM_START_DAYS

MAINTENANCE_RETENTION = 0.75
CONSOLIDATION_PEAK_RETENTION = 0.95
CRAM_PEAK_RETENTION = 0.99
EXAM_DAY_RETENTION = 1.0
POST_EXAM_RETENTION = 0.90

READY_THRESHOLD = 0.90
AT_RISK_THRESHOLD = 0.70
COMPRESSION_THRESHOLD = 0.85

# Assumed projected R of a card once it has been reviewed
REVIEWED_CARD_R = 0.95

CONVERT_WINDOW_DAYS = 7

PHASE_STRATEGIES: dict[ExamPhase, str] = {
    ExamPhase.MAINTENANCE: "Minimum effort, allow R to drop to 75%",
    ExamPhase.CONSOLIDATION: "Gradually tighten intervals, build stability",
    ExamPhase.CRAM: "Maximize R at exam time, sort by R_exam",
    ExamPhase.EXAM_DAY: "Emergency review of struggling cards only",
    ExamPhase.POST_EXAM: "Convert to LONG_TERM mode or archive",
}

PHASE_TRANSITION_MESSAGES: dict[ExamPhase, str] = {
    ExamPhase.MAINTENANCE: "You're in maintenance mode. Light studying to keep memories fresh.",
    ExamPhase.CONSOLIDATION: "Consolidation phase! Time to strengthen weak memories.",
    ExamPhase.CRAM: "Cram time! Focus on cards you're most likely to forget on exam day.",
    ExamPhase.EXAM_DAY: "It's exam day! Only reviewing struggling cards. You've got this!",
    ExamPhase.POST_EXAM: "Exam complete! Consider converting to Long-Term mode or archiving.",
}


class ExamPhaseConfig(BaseModel):
    """Phase of a deck and its target retention."""

    phase: ExamPhase
    days_left: int = Field(description="Calendar days until the test, negative once past")
    target_retention: float
    strategy: str


class ExamPreparedness(BaseModel):
    """Projected readiness of a deck on exam day."""

    phase: ExamPhase
    days_left: int
    total_cards: int
    ready_cards: int = Field(description="Projected R at exam >= 0.90")
    at_risk_cards: int = Field(description="Projected R at exam in [0.70, 0.90)")
    critical_cards: int = Field(description="Projected R at exam < 0.70")
    average_r_at_exam: float
    estimated_score: int = Field(description="Percentage of cards expected to be recalled")
    recommendation: str
    daily_cards_needed: int


class DailyProjection(BaseModel):
    """One day of a preparedness projection."""

    date: CalendarDate
    average_r: float
    ready_percent: int
    cards_reviewed: int
    cards_remaining: int


class CardRAtExam(BaseModel):
    """A card paired with its projected R on exam day."""

    card: CardBase
    r_at_exam: float


class PostExamRecommendation(BaseModel):
    """Suggested follow-up for a deck after its exam."""

    action: PostExamAction
    message: str


def get_exam_phase(test_date: date | datetime | str, now: datetime | None = None) -> ExamPhaseConfig:
    """Classify a test date into an exam phase.

    Days are counted midnight to midnight, not in 24h windows.

    Example:
        >>> from datetime import datetime, timezone
        >>> now = datetime(2025, 3, 1, 9, tzinfo=timezone.utc)
        >>> get_exam_phase("2025-03-08", now).phase
        <ExamPhase.CRAM: 'CRAM'>
    """
    now = resolve_now(now)
    days_left = days_until(to_calendar_date(test_date), now)

    if days_left < 0:
        phase, target = ExamPhase.POST_EXAM, POST_EXAM_RETENTION
    elif days_left == 0:
        phase, target = ExamPhase.EXAM_DAY, EXAM_DAY_RETENTION
    elif days_left <= CRAM_START_DAYS:
        phase = ExamPhase.CRAM
        progress = (CRAM_START_DAYS - days_left) / CRAM_START_DAYS
        target = CONSOLIDATION_PEAK_RETENTION + (CRAM_PEAK_RETENTION - CONSOLIDATION_PEAK_RETENTION) * progress
    elif days_left <= CONSOLIDATION_START_DAYS:
        phase = ExamPhase.CONSOLIDATION
        progress = (CONSOLIDATION_START_DAYS - days_left) / CONSOLIDATION_SPAN_DAYS
        target = MAINTENANCE_RETENTION + (CONSOLIDATION_PEAK_RETENTION - MAINTENANCE_RETENTION) * progress
    else:
        phase, target = ExamPhase.MAINTENANCE, MAINTENANCE_RETENTION

    return ExamPhaseConfig(
        phase=phase,
        days_left=days_left,
        target_retention=target,
        strategy=PHASE_STRATEGIES[phase],
    )


def update_deck_exam_phase(deck: Deck, now: datetime | None = None) -> ExamPhase | None:
    """Current phase of a Test-Prep deck, None for other decks or no test date."""
    if deck.mode != DeckMode.TEST_PREP or deck.test_date is None:
        return None
    return get_exam_phase(deck.test_date, now).phase


def _below_target(cards: Sequence[CardBase], target: float, now: datetime) -> list[CardBase]:
    below = [card for card in cards if get_card_retrievability(card, now) < target]
    return sort_by_retrievability(below, now)


def get_exam_phase_cards(
    cards: Sequence[CardBase], deck: Deck, now: datetime | None = None
) -> list[CardBase]:
    """Cards prioritised for the deck's current phase.

    MAINTENANCE/CONSOLIDATION return cards below the target retention,
    lowest R first. CRAM returns every card, weakest at exam first.
    EXAM_DAY returns only STRUGGLING cards and POST_EXAM none.
    """
    if deck.test_date is None:
        return list(cards)

    now = resolve_now(now)
    config = get_exam_phase(deck.test_date, now)

    if config.phase in (ExamPhase.MAINTENANCE, ExamPhase.CONSOLIDATION):
        return _below_target(cards, config.target_retention, now)
    if config.phase == ExamPhase.CRAM:
        return sort_by_r_at_exam(cards, deck.test_date)
    if config.phase == ExamPhase.EXAM_DAY:
        return [card for card in cards if card.mastery == MasteryLevel.STRUGGLING]
    return []


def get_cards_needing_review(
    cards: Sequence[CardBase], deck: Deck, now: datetime | None = None
) -> list[CardBase]:
    """Cards whose current R is below the phase target (input order kept)."""
    if deck.test_date is None:
        return list(cards)
    now = resolve_now(now)
    target = get_exam_phase(deck.test_date, now).target_retention
    return [card for card in cards if get_card_retrievability(card, now) < target]


def _preparedness_message(average_r: float, at_risk: int, critical: int, daily: int) -> str:
    if average_r >= 0.90:
        return "Excellent! You're well prepared. Light review recommended."
    if average_r >= 0.80:
        return f"Good progress. Focus on the {at_risk + critical} cards at risk."
    if average_r >= 0.70:
        return f"More study needed. Review ~{daily} cards/day to be ready."
    return f"Significant work required. Prioritize the {critical} critical cards."


def get_exam_preparedness(
    cards: Sequence[CardBase],
    exam_date: date | datetime | str,
    now: datetime | None = None,
) -> ExamPreparedness:
    """Summarise how ready a deck is for its exam.

    Args:
        cards: Cards of the deck.
        exam_date: The exam date.
        now: Current time; defaults to the wall clock.

    Returns:
        Bucket counts, estimated score and a deterministic recommendation.
    """
    now = resolve_now(now)
    exam_day = to_calendar_date(exam_date)
    config = get_exam_phase(exam_day, now)

    ready = at_risk = critical = 0
    total_r = 0.0
    for card in cards:
        r_exam = project_retrievability_at(card, exam_day)
        total_r += r_exam
        if r_exam >= READY_THRESHOLD:
            ready += 1
        elif r_exam >= AT_RISK_THRESHOLD:
            at_risk += 1
        else:
            critical += 1

    average_r = total_r / len(cards) if cards else 0.0
    needing_work = at_risk + critical
    if config.days_left > 0:
        daily = math.ceil(needing_work / config.days_left)
    else:
        daily = needing_work

    return ExamPreparedness(
        phase=config.phase,
        days_left=config.days_left,
        total_cards=len(cards),
        ready_cards=ready,
        at_risk_cards=at_risk,
        critical_cards=critical,
        average_r_at_exam=average_r,
        estimated_score=round(average_r * 100),
        recommendation=_preparedness_message(average_r, at_risk, critical, daily),
        daily_cards_needed=daily,
    )


def project_preparedness(
    cards: Sequence[CardBase],
    exam_date: date | datetime | str,
    daily_review_rate: int = 20,
    now: datetime | None = None,
) -> list[DailyProjection]:
    """Project readiness day by day until the exam.

    Cards are reviewed in urgency order at ``daily_review_rate`` per day;
    a reviewed card is assumed to reach R = 0.95 at the exam.
    """
    now = resolve_now(now)
    exam_day = to_calendar_date(exam_date)
    days_left = get_exam_phase(exam_day, now).days_left
    if days_left <= 0:
        return []

    ordered = sort_by_retrievability(cards, now)
    projected = [project_retrievability_at(card, exam_day) for card in ordered]
    total = len(ordered)

    projections: list[DailyProjection] = []
    reviewed = 0
    for day in range(days_left + 1):
        reviewed += min(daily_review_rate, total - reviewed)
        total_r = REVIEWED_CARD_R * reviewed + sum(projected[reviewed:])
        projections.append(
            DailyProjection(
                date=now.date() + timedelta(days=day),
                average_r=total_r / total if total else 0.0,
                ready_percent=round(reviewed / total * 100) if total else 0,
                cards_reviewed=reviewed,
                cards_remaining=total - reviewed,
            )
        )
    return projections


def get_cards_with_r_at_exam(
    cards: Sequence[CardBase], exam_date: date | datetime | str
) -> list[CardRAtExam]:
    """Cards with their projected R at the exam, weakest first."""
    exam_day = to_calendar_date(exam_date)
    scored = [CardRAtExam(card=card, r_at_exam=project_retrievability_at(card, exam_day)) for card in cards]
    return sorted(scored, key=lambda item: item.r_at_exam)


def should_compress_interval(
    card: CardBase,
    exam_date: date | datetime | str,
    threshold: float = COMPRESSION_THRESHOLD,
) -> bool:
    """Whether a card should be reviewed early to hold up until the exam."""
    return project_retrievability_at(card, to_calendar_date(exam_date)) < threshold


def get_post_exam_recommendation(deck: Deck, now: datetime | None = None) -> PostExamRecommendation:
    """Recommend converting or archiving a deck after its exam."""
    if deck.test_date is None:
        return PostExamRecommendation(action=PostExamAction.KEEP, message="Deck has no test date")

    config = get_exam_phase(deck.test_date, now)
    if config.phase != ExamPhase.POST_EXAM:
        return PostExamRecommendation(action=PostExamAction.KEEP, message="Exam has not passed yet")

    if abs(config.days_left) <= CONVERT_WINDOW_DAYS:
        return PostExamRecommendation(
            action=PostExamAction.CONVERT,
            message="Convert to Long-Term mode to continue learning",
        )
    return PostExamRecommendation(
        action=PostExamAction.ARCHIVE,
        message="Archive this deck or delete if no longer needed",
    )


def has_phase_changed(
    deck: Deck, previous_phase: ExamPhase | None, now: datetime | None = None
) -> bool:
    """True when a known previous phase differs from the current one."""
    if deck.test_date is None or previous_phase is None:
        return False
    return get_exam_phase(deck.test_date, now).phase != previous_phase


def get_phase_transition_message(phase: ExamPhase) -> str:
    """User-facing message shown when a deck enters ``phase``."""
    return PHASE_TRANSITION_MESSAGES.get(phase, "")
