# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for examrecall.

This module provides standardized datetime operations to ensure consistency
across the scheduling engine. All datetime operations should use these utilities.

Design Decisions:
-----------------
1. All timestamps are timezone-aware UTC (naive values are assumed UTC)
2. Calendar-day comparisons use the UTC calendar date
3. Values read from storage may be ISO 8601 strings and are parsed here
4. The wall clock is only read at the public API boundary (resolve_now)

Usage:
------
    from examrecall.utils.datetime import resolve_now, start_of_day

    now = resolve_now(None)          # wall clock
    now = resolve_now(simulated_now)  # time travel for simulation/tests
    today = start_of_day(now)
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def resolve_now(now: datetime | None) -> datetime:
    """Resolve the injectable clock value used by every scheduling call.

    Args:
        now: Explicit time (simulation/testing) or None for the wall clock.

    Returns:
        Timezone-aware UTC datetime.
    """
    if now is None:
        return utc_now()
    return ensure_utc(now)


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string. A bare date ("2025-01-31")
            is read as midnight UTC.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.strip().replace("Z", "+00:00"))
    return ensure_utc(dt)


def to_datetime(value: datetime | date | str | None) -> datetime | None:
    """Coerce a stored date value into a UTC datetime.

    Accepts native datetimes, dates (read as midnight UTC) and ISO strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return parse_iso(value)
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def to_calendar_date(value: datetime | date | str | None) -> date | None:
    """Reduce a stored date value to its UTC calendar date."""
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_datetime(value).date()


def start_of_day(value: datetime | date) -> datetime:
    """Get midnight UTC of the calendar day containing ``value``."""
    day = to_calendar_date(value)
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def at_hour(day: date, hour: int) -> datetime:
    """Get a UTC datetime at the given hour of a calendar day."""
    return datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)


def days_until(target: datetime | date, now: datetime) -> int:
    """Count calendar days from ``now`` to ``target`` (midnight to midnight).

    Returns:
        Whole days; negative when target is in the past.
    """
    return (to_calendar_date(target) - to_calendar_date(now)).days


def format_date_key(value: datetime | date) -> str:
    """Format a calendar day as ``YYYY-MM-DD`` (bucketing key)."""
    return to_calendar_date(value).isoformat()

