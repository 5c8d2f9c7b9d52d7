# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Load balancer: workload smoothing and easy days.

Prevents review spikes by:
- forecasting the daily review volume per calendar day
- capping volume on easy days (weekdays or specific dates)
- moving the excess of an overloaded day to the nearest later day with
  spare capacity
- spreading a backlog of overdue cards over several catch-up days

Cards are never created or destroyed. A card that cannot be moved within
the search window stays where it is and is reported as unresolved.
"""

import logging
import math
import random
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from examrecall.core.scheduling.models import (
    CalendarDate,
    CardBase,
    CardUpdate,
    Deck,
    EasyDay,
    InsertionOrder,
    LearningState,
    ReassignmentReason,
)
from examrecall.core.scheduling.retrievability import get_card_retrievability, sort_by_retrievability
from examrecall.utils.datetime import at_hour, format_date_key, resolve_now, to_calendar_date

if TYPE_CHECKING:
    from examrecall.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Reassigned cards become due at this hour (UTC) of their new day
REASSIGNMENT_HOUR = 4

URGENT_R_THRESHOLD = 0.5
CATCH_UP_CARDS_PER_DAY = 30


class LoadBalanceConfig(BaseModel):
    """Load-balancing knobs.

    Attributes:
        default_max_per_day: Daily cap; 0 means unlimited.
        easy_days: Weekday or date overrides of the daily cap.
        enable_balancing: Whether balance_workload moves cards at all.
        new_cards_per_day: Daily new-card limit.
        reviews_per_day: Daily limit on already-reviewed cards; 0 means unlimited.
        search_window_days: Furthest a card may be moved forward.
        forecast_days: Horizon considered when balancing.
    """

    model_config = ConfigDict(frozen=True)

    default_max_per_day: int = Field(default=100, ge=0)
    easy_days: tuple[EasyDay, ...] = ()
    enable_balancing: bool = True
    new_cards_per_day: int = Field(default=20, ge=0)
    reviews_per_day: int = Field(default=200, ge=0)
    search_window_days: int = Field(default=7, ge=1)
    forecast_days: int = Field(default=60, ge=1)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "LoadBalanceConfig":
        """Build the config from application settings."""
        load = settings.load_balancing
        return cls(
            default_max_per_day=load.default_max_per_day,
            enable_balancing=load.enable_balancing,
            new_cards_per_day=load.new_cards_per_day,
            reviews_per_day=load.reviews_per_day,
            search_window_days=load.search_window_days,
            forecast_days=load.forecast_days,
        )

    @classmethod
    def from_deck(cls, deck: Deck, base: "LoadBalanceConfig | None" = None) -> "LoadBalanceConfig":
        """Apply a deck's knobs on top of ``base`` (defaults when omitted)."""
        base = base or cls()
        return base.model_copy(
            update={
                "default_max_per_day": deck.max_cards_per_day,
                "new_cards_per_day": deck.new_cards_per_day,
                "easy_days": tuple(deck.easy_days),
            }
        )


class DailyWorkload(BaseModel):
    """Forecast volume of one calendar day."""

    date: CalendarDate
    date_key: str
    scheduled_cards: int
    new_cards: int
    review_cards: int
    max_cards: int | None = Field(description="Daily capacity, None when unlimited")
    max_reviews: int | None = Field(
        default=None, description="Daily limit on already-reviewed cards, None when unlimited"
    )
    is_overloaded: bool
    is_easy_day: bool
    load_percent: int


class WorkloadStats(BaseModel):
    """Summary of a forecast."""

    total_cards: int
    average_per_day: int
    peak_day: DailyWorkload | None
    overloaded_days: int
    easy_days: int


class CardReassignment(BaseModel):
    """A card moved from one day to another."""

    card_id: str
    original_date: CalendarDate
    new_date: CalendarDate
    reason: ReassignmentReason = ReassignmentReason.OVERLOAD


class BalanceResult(BaseModel):
    """Outcome of balancing.

    Attributes:
        reassignments: Cards moved to a later day.
        unresolved: Ids of cards left on a day that is still overloaded.
    """

    reassignments: list[CardReassignment] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    @property
    def is_fully_balanced(self) -> bool:
        """True when every excess card found a new day."""
        return not self.unresolved


class CatchUpDay(BaseModel):
    """One bucket of a catch-up schedule."""

    date: CalendarDate
    date_key: str
    cards: list[CardBase] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.cards)


class OverdueSummary(BaseModel):
    """Backlog overview."""

    count: int
    urgent_count: int = Field(description="Overdue cards with R < 0.5")
    oldest_days_overdue: int
    average_r: float
    recommendation: str


def _day_of_week(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def is_easy_day(day: date | datetime, easy_days: Iterable[EasyDay]) -> EasyDay | None:
    """Find the easy-day override matching a day.

    A specific-date entry takes precedence over a weekday entry.
    """
    day = to_calendar_date(day)
    easy_days = list(easy_days)
    for easy_day in easy_days:
        if easy_day.date == day:
            return easy_day
    weekday = _day_of_week(day)
    for easy_day in easy_days:
        if easy_day.day_of_week == weekday:
            return easy_day
    return None


def get_max_cards_for_date(day: date | datetime, config: LoadBalanceConfig) -> int | None:
    """Capacity of a day; None when unlimited."""
    easy_day = is_easy_day(day, config.easy_days)
    if easy_day is not None:
        return easy_day.max_cards
    return config.default_max_per_day or None


def get_max_reviews(config: LoadBalanceConfig) -> int | None:
    """Daily limit on already-reviewed cards; None when unlimited."""
    return config.reviews_per_day or None


def _has_room(used: int, capacity: int | None) -> bool:
    return capacity is None or used < capacity


def _group_by_day(cards: Iterable[CardBase]) -> dict[date, list[CardBase]]:
    grouped: dict[date, list[CardBase]] = defaultdict(list)
    for card in cards:
        grouped[card.next_review_at.date()].append(card)
    return grouped


def get_workload_forecast(
    cards: Iterable[CardBase],
    days: int = 14,
    config: LoadBalanceConfig | None = None,
    now: datetime | None = None,
) -> list[DailyWorkload]:
    """Forecast review volume for the next ``days`` calendar days.

    A card counts as new until it has been reviewed once.
    """
    config = config or LoadBalanceConfig()
    today = resolve_now(now).date()
    grouped = _group_by_day(cards)
    review_limit = get_max_reviews(config)

    forecast: list[DailyWorkload] = []
    for offset in range(days):
        day = today + timedelta(days=offset)
        day_cards = grouped.get(day, [])
        new_count = sum(1 for card in day_cards if not card.has_been_reviewed)
        capacity = get_max_cards_for_date(day, config)
        scheduled = len(day_cards)
        review_count = scheduled - new_count
        forecast.append(
            DailyWorkload(
                date=day,
                date_key=format_date_key(day),
                scheduled_cards=scheduled,
                new_cards=new_count,
                review_cards=review_count,
                max_cards=capacity,
                max_reviews=review_limit,
                is_overloaded=(capacity is not None and scheduled > capacity)
                or (review_limit is not None and review_count > review_limit),
                is_easy_day=is_easy_day(day, config.easy_days) is not None,
                load_percent=round(scheduled / capacity * 100) if capacity else 0,
            )
        )
    return forecast


def get_workload_stats(forecast: Sequence[DailyWorkload]) -> WorkloadStats:
    """Totals, average, peak day and overloaded/easy day counts."""
    total = sum(day.scheduled_cards for day in forecast)
    peak: DailyWorkload | None = None
    for day in forecast:
        if day.scheduled_cards > (peak.scheduled_cards if peak else 0):
            peak = day
    return WorkloadStats(
        total_cards=total,
        average_per_day=round(total / len(forecast)) if forecast else 0,
        peak_day=peak,
        overloaded_days=sum(1 for day in forecast if day.is_overloaded),
        easy_days=sum(1 for day in forecast if day.is_easy_day),
    )


def _stability(card: CardBase) -> float:
    return getattr(card, "stability", None) or 0.0


def balance_workload(
    cards: Sequence[CardBase],
    config: LoadBalanceConfig | None = None,
    now: datetime | None = None,
) -> BalanceResult:
    """Redistribute the excess of overloaded days.

    For each overloaded day in the forecast horizon, the ``excess`` cards
    with the highest stability move to the nearest later day within the
    search window that still has room. A day over the review limit moves
    reviewed cards first, and a reviewed card only lands on a day below
    that limit. Cards that find no room stay put and are listed as
    unresolved.
    """
    config = config or LoadBalanceConfig()
    if not config.enable_balancing:
        return BalanceResult()

    forecast = get_workload_forecast(cards, config.forecast_days, config, now)
    capacity = {day.date: day.max_cards for day in forecast}
    used = {day.date: day.scheduled_cards for day in forecast}
    reviews_used = {day.date: day.review_cards for day in forecast}
    review_limit = get_max_reviews(config)
    grouped = _group_by_day(cards)

    result = BalanceResult()
    for day in forecast:
        limit = day.max_cards
        excess = 0 if limit is None else used[day.date] - limit
        review_excess = 0 if review_limit is None else reviews_used[day.date] - review_limit
        if excess <= 0 and review_excess <= 0:
            continue

        candidates = sorted(grouped.get(day.date, []), key=lambda card: (-_stability(card), card.id))
        # Reviewed cards cover the review excess first, then anything covers the rest
        moving = [card for card in candidates if card.has_been_reviewed][: max(review_excess, 0)]
        moving_ids = {card.id for card in moving}
        remaining = max(excess - len(moving), 0)
        moving += [card for card in candidates if card.id not in moving_ids][:remaining]

        for card in moving:
            is_review = card.has_been_reviewed
            target = None
            for offset in range(1, config.search_window_days + 1):
                candidate_day = day.date + timedelta(days=offset)
                if candidate_day not in capacity:
                    break
                if not _has_room(used[candidate_day], capacity[candidate_day]):
                    continue
                if is_review and not _has_room(reviews_used[candidate_day], review_limit):
                    continue
                target = candidate_day
                break

            if target is None:
                result.unresolved.append(card.id)
                continue

            used[target] += 1
            used[day.date] -= 1
            if is_review:
                reviews_used[target] += 1
                reviews_used[day.date] -= 1
            result.reassignments.append(
                CardReassignment(
                    card_id=card.id,
                    original_date=day.date,
                    new_date=target,
                    reason=ReassignmentReason.EASY_DAY if day.is_easy_day else ReassignmentReason.OVERLOAD,
                )
            )

    if result.unresolved:
        logger.info(
            "%d cards could not be moved within %d days and remain overloaded",
            len(result.unresolved),
            config.search_window_days,
        )
    return result


def apply_reassignments(
    cards: Iterable[CardBase], reassignments: Iterable[CardReassignment]
) -> dict[str, CardUpdate]:
    """Turn reassignments into card updates.

    The new due time is 04:00 UTC of the new day and ``original_due_at``
    keeps the first pre-balancing due time.
    """
    by_card = {reassignment.card_id: reassignment for reassignment in reassignments}
    updates: dict[str, CardUpdate] = {}
    for card in cards:
        reassignment = by_card.get(card.id)
        if reassignment is None:
            continue
        updates[card.id] = CardUpdate(
            next_review_at=at_hour(reassignment.new_date, REASSIGNMENT_HOUR),
            original_due_at=card.original_due_at or card.next_review_at,
        )
    return updates


def balance_workload_by_deck(
    cards: Iterable[CardBase],
    decks: Iterable[Deck],
    now: datetime | None = None,
    base_config: LoadBalanceConfig | None = None,
) -> dict[str, BalanceResult]:
    """Balance each deck independently with its own knobs."""
    now = resolve_now(now)
    grouped: dict[str, list[CardBase]] = defaultdict(list)
    for card in cards:
        grouped[card.deck_id].append(card)
    return {
        deck.id: balance_workload(grouped.get(deck.id, []), LoadBalanceConfig.from_deck(deck, base_config), now)
        for deck in decks
    }


def get_catch_up_schedule(
    overdue_cards: Sequence[CardBase],
    catch_up_days: int = 7,
    max_per_day: int = 50,
    now: datetime | None = None,
) -> list[CatchUpDay]:
    """Spread a backlog over ``catch_up_days`` buckets, most urgent first.

    Cards beyond ``catch_up_days * max_per_day`` are left out; the caller
    iterates again once the backlog shrinks.
    """
    now = resolve_now(now)
    today = now.date()
    schedule = [
        CatchUpDay(date=today + timedelta(days=i), date_key=format_date_key(today + timedelta(days=i)))
        for i in range(catch_up_days)
    ]
    if max_per_day <= 0:
        return schedule

    for index, card in enumerate(sort_by_retrievability(overdue_cards, now)):
        bucket = index // max_per_day
        if bucket >= catch_up_days:
            break
        schedule[bucket].cards.append(card)
    return schedule


def backlog_recommendation(count: int) -> str:
    """Deterministic advice for a backlog of ``count`` overdue cards."""
    if count <= 20:
        return "Manageable backlog. Clear it in one session."
    if count <= 100:
        return f"Spread over {math.ceil(count / CATCH_UP_CARDS_PER_DAY)} days for best retention."
    return "Large backlog. Use catch-up mode to avoid burnout."


def get_overdue_summary(cards: Iterable[CardBase], now: datetime | None = None) -> OverdueSummary:
    """Count and characterise cards due before ``now``."""
    now = resolve_now(now)
    overdue = [card for card in cards if card.next_review_at < now]
    if not overdue:
        return OverdueSummary(
            count=0,
            urgent_count=0,
            oldest_days_overdue=0,
            average_r=1.0,
            recommendation="All caught up!",
        )

    r_values = [get_card_retrievability(card, now) for card in overdue]
    return OverdueSummary(
        count=len(overdue),
        urgent_count=sum(1 for r in r_values if r < URGENT_R_THRESHOLD),
        oldest_days_overdue=max((now - card.next_review_at).days for card in overdue),
        average_r=sum(r_values) / len(r_values),
        recommendation=backlog_recommendation(len(overdue)),
    )


def get_new_cards_for_today(
    cards: Iterable[CardBase],
    deck_id: str,
    limit: int = 20,
    order: InsertionOrder = InsertionOrder.SEQUENTIAL,
    rng: random.Random | None = None,
) -> list[CardBase]:
    """Unreviewed cards of a deck to introduce today.

    SEQUENTIAL keeps creation order; RANDOM shuffles with ``rng``.
    """
    new_cards = [
        card
        for card in cards
        if card.deck_id == deck_id and card.learning_state == LearningState.LEARNING and card.reps == 0
    ]
    new_cards.sort(key=lambda card: card.created_at)
    if order == InsertionOrder.RANDOM:
        (rng or random.Random()).shuffle(new_cards)
    return new_cards[: max(limit, 0)]


def create_weekend_easy_days(max_cards: int = 10) -> list[EasyDay]:
    """Easy days for Sunday and Saturday."""
    return [
        EasyDay(day_of_week=0, max_cards=max_cards),
        EasyDay(day_of_week=6, max_cards=max_cards),
    ]


def create_holiday_easy_day(day: date | datetime | str, max_cards: int = 0) -> EasyDay:
    """Easy day for one specific date."""
    return EasyDay(date=to_calendar_date(day), max_cards=max_cards)
