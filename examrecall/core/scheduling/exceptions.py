# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the scheduling engine.

This module defines the exception hierarchy for scheduling operations:
- SchedulingError: Base exception for all scheduling errors
- InvalidRatingError: Rating outside the four-valued scale
- ModeConversionError: Card cannot be converted to Long-Term mode
- InvalidModelConfigError: Memory-model weight table is unusable

Recoverable conditions (a Test-Prep card without a test date, a card that
cannot be moved by the load balancer, leech escalation) are not exceptions.
They are logged or reported in results instead.
"""


class SchedulingError(Exception):
    """Base exception for all scheduling errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize scheduling error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class InvalidRatingError(SchedulingError, ValueError):
    """Rating value outside AGAIN/HARD/GOOD/EASY.

    This is a contract violation by the caller and is never recovered.

    Attributes:
        value: The rejected rating value.
    """

    def __init__(self, value: object):
        """Initialize invalid rating error.

        Args:
            value: The rejected rating value.
        """
        self.value = value
        super().__init__(
            f"Invalid review rating: {value!r}",
            details={"allowed": ["AGAIN", "HARD", "GOOD", "EASY", 1, 2, 3, 4]},
        )


class ModeConversionError(SchedulingError):
    """Raised when a card cannot be converted to Long-Term mode."""


class InvalidModelConfigError(SchedulingError):
    """Raised when a memory-model weight table is malformed."""
