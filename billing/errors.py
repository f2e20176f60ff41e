#!/usr/bin/env python3
"""
Exceptions raised by the billing engine.

Only invalid stay ranges are hard failures of the calculations themselves;
the remaining exceptions guard configuration (rate schedules), the booking
workflow (conflicts) and payment status changes.
"""

from typing import Any, List, Optional


class BillingError(Exception):
    """Base class for billing engine errors."""


class InvalidRangeError(BillingError, ValueError):
    """Check-out is not after check-in, so the stay has no billable nights."""

    def __init__(self, nights: int, check_in: Any = None, check_out: Any = None):
        self.nights = nights
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"Check-out must be after check-in (check_in={check_in}, "
            f"check_out={check_out}, nights={nights})"
        )


class BookingConflictError(BillingError):
    """The requested dates overlap an existing reservation."""

    def __init__(self, conflicts: List[Any], check_in: Any = None, check_out: Any = None):
        self.conflicts = conflicts
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"Requested stay {check_in} to {check_out} overlaps "
            f"{len(conflicts)} existing booking(s)"
        )


class RateScheduleError(BillingError, ValueError):
    """A short-stay rate schedule does not describe genuine discounts."""


class InvalidStatusTransitionError(BillingError):
    """A payment cannot move from its current status to the requested one."""

    def __init__(self, current: str, requested: str, reference: Optional[str] = None):
        self.current = current
        self.requested = requested
        self.reference = reference
        label = f" for payment {reference}" if reference else ""
        super().__init__(f"Cannot change status from '{current}' to '{requested}'{label}")
