# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the retrievability engine."""

import math
import random
from datetime import datetime, timedelta

import pytest

from examrecall.core.scheduling.retrievability import (
    UNKNOWN_PROJECTED_R,
    apply_triangular_fuzz,
    calculate_optimal_review_time,
    calculate_retrievability,
    days_between,
    days_until_drop,
    get_average_retrievability,
    get_card_retrievability,
    get_cards_below_retrievability,
    get_overdue_cards_by_urgency,
    get_retrievability_distribution,
    project_retrievability_at,
    sort_by_retrievability,
    triangular_random,
)


@pytest.mark.unit
class TestCalculateRetrievability:
    """Tests for the power-law decay curve."""

    def test_known_value(self) -> None:
        """Test R after 10 days with stability 10."""
        expected = (1 + 0.5 * 10 / 10) ** -0.5

        assert calculate_retrievability(10.0, 10.0) == pytest.approx(expected)
        assert calculate_retrievability(10.0, 10.0) == pytest.approx(0.8165, abs=1e-4)

    @pytest.mark.parametrize(
        ("stability", "elapsed"),
        [(0.0, 5.0), (-3.0, 5.0), (None, 5.0), (10.0, 0.0), (10.0, -2.0)],
    )
    def test_degenerate_inputs_give_full_recall(self, stability: float | None, elapsed: float) -> None:
        """Test that S <= 0 or t <= 0 yields exactly 1.0."""
        assert calculate_retrievability(stability, elapsed) == 1.0

    def test_monotone_decay(self) -> None:
        """Test that R strictly decreases with elapsed time."""
        values = [calculate_retrievability(5.0, t) for t in (1, 2, 5, 10, 50, 500)]

        assert all(a > b for a, b in zip(values, values[1:]))
        assert all(0.0 < r <= 1.0 for r in values)

    def test_days_until_drop_inverts_the_curve(self) -> None:
        """Test that R at the computed drop time equals the threshold."""
        t = days_until_drop(20.0, 0.9)

        assert calculate_retrievability(20.0, t) == pytest.approx(0.9)
        assert calculate_optimal_review_time(20.0, 0.9) == pytest.approx(t)
        assert days_until_drop(0.0) == 0.0

    def test_days_between_is_fractional(self, now: datetime) -> None:
        """Test fractional day differences."""
        assert days_between(now, now + timedelta(hours=36)) == pytest.approx(1.5)
        assert days_between(now, now - timedelta(days=2)) == pytest.approx(-2.0)


@pytest.mark.unit
class TestCardRetrievability:
    """Tests for card-level retrievability."""

    def test_unreviewed_card_is_fully_recalled(self, make_long_term_card, now: datetime) -> None:
        """Test that a card never reviewed reports R = 1.0."""
        card = make_long_term_card(stability=10.0)

        assert get_card_retrievability(card, now) == 1.0

    def test_test_prep_card_without_stability(self, make_test_prep_card, now: datetime) -> None:
        """Test that a Test-Prep card without stability reports R = 1.0."""
        card = make_test_prep_card(last_review_at=now - timedelta(days=3))

        assert get_card_retrievability(card, now) == 1.0

    def test_reviewed_card_decays(self, make_long_term_card, now: datetime) -> None:
        """Test R from the last review time and stability."""
        card = make_long_term_card(stability=10.0, last_review_at=now - timedelta(days=10), reps=3)

        assert get_card_retrievability(card, now) == pytest.approx(math.sqrt(2 / 3))

    def test_projection_to_exam(self, make_long_term_card, now: datetime) -> None:
        """Test projecting R to a future calendar date."""
        card = make_long_term_card(stability=4.0, last_review_at=now, reps=1)
        exam_day = (now + timedelta(days=8)).date()
        elapsed = days_between(now, exam_day)

        assert project_retrievability_at(card, exam_day) == pytest.approx(
            calculate_retrievability(4.0, elapsed)
        )

    def test_projection_unknown_for_unreviewed_card(self, make_long_term_card, now: datetime) -> None:
        """Test that an unreviewed card projects to 0.5."""
        card = make_long_term_card()

        assert project_retrievability_at(card, now + timedelta(days=5)) == UNKNOWN_PROJECTED_R


@pytest.mark.unit
class TestUrgencyOrdering:
    """Tests for sorting and filtering by R."""

    def test_sort_lowest_r_first(self, make_long_term_card, now: datetime) -> None:
        """Test that the most forgettable card comes first."""
        weak = make_long_term_card(stability=1.0, last_review_at=now - timedelta(days=10), reps=1)
        strong = make_long_term_card(stability=100.0, last_review_at=now - timedelta(days=10), reps=1)
        fresh = make_long_term_card()

        ordered = sort_by_retrievability([fresh, strong, weak], now)

        assert [card.id for card in ordered] == [weak.id, strong.id, fresh.id]

    def test_below_threshold(self, make_long_term_card, now: datetime) -> None:
        """Test filtering cards below an R threshold."""
        weak = make_long_term_card(stability=1.0, last_review_at=now - timedelta(days=10), reps=1)
        strong = make_long_term_card(stability=100.0, last_review_at=now - timedelta(days=1), reps=1)

        assert get_cards_below_retrievability([strong, weak], 0.9, now) == [weak]

    def test_overdue_by_urgency(self, make_long_term_card, now: datetime) -> None:
        """Test that only cards due strictly before now are overdue."""
        due_now = make_long_term_card(next_review_at=now)
        overdue = make_long_term_card(next_review_at=now - timedelta(days=2))

        assert get_overdue_cards_by_urgency([due_now, overdue], now) == [overdue]

    def test_average_and_distribution(self, make_long_term_card, now: datetime) -> None:
        """Test the average and R brackets."""
        fresh = make_long_term_card()
        critical = make_long_term_card(stability=1.0, last_review_at=now - timedelta(days=30), reps=1)

        distribution = get_retrievability_distribution([fresh, critical], now)

        assert distribution == {"excellent": 1, "good": 0, "fair": 0, "poor": 0, "critical": 1}
        assert get_average_retrievability([], now) == 0.0
        assert 0.5 < get_average_retrievability([fresh, critical], now) < 1.0


@pytest.mark.unit
class TestTriangularFuzz:
    """Tests for triangular fuzz."""

    def test_short_intervals_not_fuzzed(self) -> None:
        """Test that intervals under 2 days are returned unchanged."""
        assert apply_triangular_fuzz(1.5, random.Random(1)) == 1.5

    def test_fuzz_stays_in_band(self) -> None:
        """Test that fuzzed intervals are whole days within 15% of 20."""
        rng = random.Random(7)

        values = [apply_triangular_fuzz(20.0, rng) for _ in range(200)]

        assert all(isinstance(v, int) for v in values)
        assert all(17 <= v <= 23 for v in values)
        assert len(set(values)) > 1

    def test_seeded_draws_are_reproducible(self) -> None:
        """Test that the same seed gives the same draws."""
        first = [apply_triangular_fuzz(45.0, random.Random(99)) for _ in range(3)]
        second = [apply_triangular_fuzz(45.0, random.Random(99)) for _ in range(3)]

        assert first == second

    def test_triangular_random_degenerate_range(self) -> None:
        """Test that an empty range returns the mode."""
        assert triangular_random(3.0, 3.0, 3.0, random.Random(0)) == 3.0
