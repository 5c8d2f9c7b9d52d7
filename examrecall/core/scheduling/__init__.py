# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduling engine.

Pure, synchronous functions mapping ``(cards, decks, now)`` to results:
- retrievability: Power-law recall decay, urgency ordering, fuzz
- learning: Learning-phase state machine
- test_prep: Fixed exam ladder with the day-before-test cap
- long_term: Adaptive memory model (fsrs) with interval floors
- review: Rating dispatch and interval previews
- exam_phase: Finite-horizon phases and preparedness
- load_balancer: Workload forecast, balancing and catch-up
- due_cards: The due-card query across all decks
- health: Schedule warnings

Rating handlers return CardUpdate diffs; the caller's store applies them.
"""

from examrecall.core.scheduling.due_cards import get_due_cards, is_final_review_day, is_test_day
from examrecall.core.scheduling.exam_phase import (
    ExamPhaseConfig,
    ExamPreparedness,
    get_exam_phase,
    get_exam_phase_cards,
    get_exam_preparedness,
    get_post_exam_recommendation,
    project_preparedness,
    should_compress_interval,
    update_deck_exam_phase,
)
from examrecall.core.scheduling.exceptions import (
    InvalidModelConfigError,
    InvalidRatingError,
    ModeConversionError,
    SchedulingError,
)
from examrecall.core.scheduling.health import check_schedule_health
from examrecall.core.scheduling.load_balancer import (
    BalanceResult,
    DailyWorkload,
    LoadBalanceConfig,
    apply_reassignments,
    balance_workload,
    balance_workload_by_deck,
    get_catch_up_schedule,
    get_new_cards_for_today,
    get_overdue_summary,
    get_workload_forecast,
)
from examrecall.core.scheduling.long_term import (
    DEFAULT_WEIGHTS,
    LongTermReviewResult,
    LongTermScheduler,
    MemoryModelConfig,
    calculate_long_term_review,
    convert_card_to_long_term,
    convert_deck_to_long_term,
    derive_mastery,
    get_mastery,
)
from examrecall.core.scheduling.models import (
    Card,
    CardUpdate,
    Deck,
    DeckMode,
    EasyDay,
    ExamPhase,
    LongTermCard,
    MasteryLevel,
    MemoryState,
    ReviewHistoryEntry,
    ReviewPolicy,
    ReviewRating,
    TestPrepCard,
    apply_update,
    parse_card,
)
from examrecall.core.scheduling.retrievability import (
    calculate_retrievability,
    get_card_retrievability,
    project_retrievability_at,
)
from examrecall.core.scheduling.review import (
    IntervalPreview,
    format_interval,
    get_interval_previews,
    handle_review,
)
from examrecall.core.scheduling.test_prep import (
    TestPrepReviewResult,
    calculate_test_prep_review,
    generate_schedule,
)

__all__ = [
    # Models
    "Card",
    "CardUpdate",
    "Deck",
    "DeckMode",
    "EasyDay",
    "ExamPhase",
    "LongTermCard",
    "MasteryLevel",
    "MemoryState",
    "ReviewHistoryEntry",
    "ReviewPolicy",
    "ReviewRating",
    "TestPrepCard",
    "apply_update",
    "parse_card",
    # Exceptions
    "SchedulingError",
    "InvalidRatingError",
    "ModeConversionError",
    "InvalidModelConfigError",
    # Retrievability
    "calculate_retrievability",
    "get_card_retrievability",
    "project_retrievability_at",
    # Test-Prep
    "TestPrepReviewResult",
    "calculate_test_prep_review",
    "generate_schedule",
    # Long-Term
    "DEFAULT_WEIGHTS",
    "LongTermReviewResult",
    "LongTermScheduler",
    "MemoryModelConfig",
    "calculate_long_term_review",
    "convert_card_to_long_term",
    "convert_deck_to_long_term",
    "derive_mastery",
    "get_mastery",
    # Review
    "IntervalPreview",
    "format_interval",
    "get_interval_previews",
    "handle_review",
    # Exam phase
    "ExamPhaseConfig",
    "ExamPreparedness",
    "get_exam_phase",
    "get_exam_phase_cards",
    "get_exam_preparedness",
    "get_post_exam_recommendation",
    "project_preparedness",
    "should_compress_interval",
    "update_deck_exam_phase",
    # Load balancing
    "BalanceResult",
    "DailyWorkload",
    "LoadBalanceConfig",
    "apply_reassignments",
    "balance_workload",
    "balance_workload_by_deck",
    "get_catch_up_schedule",
    "get_new_cards_for_today",
    "get_overdue_summary",
    "get_workload_forecast",
    # Due cards
    "get_due_cards",
    "is_final_review_day",
    "is_test_day",
    # Health
    "check_schedule_health",
]
