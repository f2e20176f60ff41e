#!/usr/bin/env python3
"""
Short-Stay Rate Module

This module prices short-stay bookings under a unit's nightly, weekly and
monthly rate tiers, and checks requested dates against existing bookings.

Tier selection by stay length:
- 30 nights or more with a monthly rate: whole months at the monthly rate
- 7 nights or more with a weekly rate: whole weeks at the weekly rate
- otherwise every night at the nightly rate
Remaining nights are always charged at the nightly rate. A unit without the
longer tiers is simply priced nightly.
"""

import math
import logging
import datetime
from typing import Any, Dict, Iterable, List, Optional

from billing.errors import BookingConflictError, InvalidRangeError
from billing.models import NIGHTS_PER_MONTH, NIGHTS_PER_WEEK, Booking, RateSchedule, normalize_bookings
from billing.settings_loader import get_setting
from billing.utils.helpers import DateLike, parse_date, parse_datetime, quantize_money

# Configure logging
logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def count_nights(check_in: DateLike, check_out: DateLike) -> int:
    """
    Count the nights between check-in and check-out.

    Partial days round up, so a late check-out counts as another night.

    Args:
        check_in: Check-in date or timestamp
        check_out: Check-out date or timestamp

    Returns:
        Number of nights, zero or negative when check-out is not after check-in
    """
    start = parse_datetime(check_in)
    end = parse_datetime(check_out)
    if start is None or end is None:
        raise ValueError(f"Invalid stay dates: check_in={check_in!r}, check_out={check_out!r}")

    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def quote_stay(
    check_in: DateLike,
    check_out: DateLike,
    rates: Any,
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Price a stay under the unit's rate tiers.

    Args:
        check_in: Check-in date or timestamp
        check_out: Check-out date or timestamp
        rates: RateSchedule or unit record with nightly/weekly/monthly rates
        settings: Optional merged settings dictionary

    Returns:
        Dictionary with 'nights', 'total_amount', 'applied_tier' and the
        breakdown of the price

    Raises:
        InvalidRangeError: If check-out is not after check-in
        RateScheduleError: If the unit's rates are inconsistent
    """
    schedule = RateSchedule.from_record(rates)
    nights = count_nights(check_in, check_out)

    if nights <= 0:
        raise InvalidRangeError(nights, check_in, check_out)

    nightly = schedule.nightly_rate
    base_amount = nightly * nights
    months = weeks = 0
    remaining = nights

    if nights >= NIGHTS_PER_MONTH and schedule.monthly_rate is not None:
        months, remaining = divmod(nights, NIGHTS_PER_MONTH)
        total = months * schedule.monthly_rate + remaining * nightly
        tier = 'monthly'
    elif nights >= NIGHTS_PER_WEEK and schedule.weekly_rate is not None:
        weeks, remaining = divmod(nights, NIGHTS_PER_WEEK)
        total = weeks * schedule.weekly_rate + remaining * nightly
        tier = 'weekly'
    else:
        if nights >= NIGHTS_PER_WEEK:
            logger.debug(f"No discount tier for a {nights}-night stay, pricing nightly")
        total = base_amount
        tier = 'nightly'

    logger.info(f"Quoted {nights} nights from {check_in} at the {tier} tier: {quantize_money(total)}")

    return {
        'nights': nights,
        'total_amount': quantize_money(total),
        'applied_tier': tier,
        'nightly_rate': quantize_money(nightly),
        'base_amount': quantize_money(base_amount),
        'discount_amount': quantize_money(base_amount - total),
        'months': months,
        'weeks': weeks,
        'remaining_nights': remaining,
        'meets_minimum_stay': nights >= schedule.minimum_stay
    }


def _active_bookings(bookings: Optional[Iterable[Any]], settings: Optional[Dict[str, Any]]) -> List[Booking]:
    ignored = {str(status).lower() for status in get_setting(settings, "short_stay", "ignored_booking_statuses")}
    return [booking for booking in normalize_bookings(bookings) if booking.status not in ignored]


def is_date_booked(
    day: DateLike,
    bookings: Optional[Iterable[Any]],
    settings: Optional[Dict[str, Any]] = None
) -> bool:
    """Check whether a night is taken by an existing booking."""
    night = parse_date(day)
    if night is None:
        return False
    return any(b.start_date <= night < b.end_date for b in _active_bookings(bookings, settings))


def find_booking_conflicts(
    check_in: DateLike,
    check_out: DateLike,
    bookings: Optional[Iterable[Any]],
    settings: Optional[Dict[str, Any]] = None
) -> List[Booking]:
    """
    Find existing bookings that overlap a requested stay.

    Args:
        check_in: Requested check-in date
        check_out: Requested check-out date
        bookings: Existing booking records or Booking instances
        settings: Optional merged settings dictionary

    Returns:
        List of overlapping bookings, empty when the dates are free
    """
    start = parse_date(check_in)
    end = parse_date(check_out)
    if start is None or end is None:
        raise ValueError(f"Invalid stay dates: check_in={check_in!r}, check_out={check_out!r}")

    return [
        booking for booking in _active_bookings(bookings, settings)
        if start < booking.end_date and booking.start_date < end
    ]


def ensure_available(
    check_in: DateLike,
    check_out: DateLike,
    bookings: Optional[Iterable[Any]],
    settings: Optional[Dict[str, Any]] = None
) -> None:
    """
    Raise if a requested stay overlaps an existing booking.

    Raises:
        BookingConflictError: If any active booking overlaps the stay
    """
    conflicts = find_booking_conflicts(check_in, check_out, bookings, settings)
    if conflicts:
        logger.warning(f"Stay {check_in} to {check_out} conflicts with {len(conflicts)} booking(s)")
        raise BookingConflictError(conflicts, check_in, check_out)


if __name__ == "__main__":
    # Example usage
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    unit = {'nightlyRate': 1000, 'weeklyRate': 6000, 'monthlyRate': 25000}
    check_in = datetime.date(2024, 6, 1)

    for length in (3, 7, 10, 35):
        quote = quote_stay(check_in, check_in + datetime.timedelta(days=length), unit)
        print(f"{quote['nights']} nights: {quote['total_amount']} ({quote['applied_tier']})")
