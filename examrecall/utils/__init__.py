# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for examrecall.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime and calendar-day operations
"""

from examrecall.utils.datetime import (
    at_hour,
    days_until,
    ensure_utc,
    format_date_key,
    parse_iso,
    resolve_now,
    start_of_day,
    to_calendar_date,
    to_datetime,
    utc_now,
)
from examrecall.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "resolve_now",
    "parse_iso",
    "to_datetime",
    "to_calendar_date",
    "start_of_day",
    "at_hour",
    "days_until",
    "format_date_key",
]
