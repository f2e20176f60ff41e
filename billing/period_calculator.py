#!/usr/bin/env python3
"""
Period Calculator Module

This module resolves the billing period a reference date falls into for a
lease's monthly due day, and the reporting windows used by the ledger
summaries (today, week, month, quarter, year or a custom range).

All intervals are half-open: start is inclusive, end is exclusive.
"""

import logging
import datetime
from typing import Any, Dict, Optional, Tuple
from dateutil.relativedelta import relativedelta

from billing.settings_loader import get_setting
from billing.utils.helpers import DateLike, format_period, parse_date, resolve_reference_date

# Configure logging
logger = logging.getLogger(__name__)

WINDOWS = ('all', 'today', 'week', 'month', 'quarter', 'year', 'custom')

Window = Tuple[Optional[datetime.date], Optional[datetime.date]]


def normalize_due_day(due_day: Any, settings: Optional[Dict[str, Any]] = None) -> int:
    """
    Coerce a lease's payment due day into the supported range.

    Days above the configured maximum (28 by default) are clamped so that
    every month has the due date.

    Args:
        due_day: Day of month from the lease, possibly missing or malformed
        settings: Optional merged settings dictionary

    Returns:
        Due day between 1 and the configured maximum
    """
    default_day = int(get_setting(settings, "default_due_day"))
    max_day = int(get_setting(settings, "max_due_day"))

    try:
        day = int(due_day)
    except (TypeError, ValueError):
        if due_day is not None:
            logger.warning(f"Invalid payment due day: {due_day!r}, using {default_day}")
        day = default_day

    if day < 1:
        logger.warning(f"Payment due day {day} below 1, using {default_day}")
        day = default_day

    if day > max_day:
        logger.debug(f"Clamping payment due day {day} to {max_day}")
        day = max_day

    return day


def days_until(target: DateLike, reference_date: DateLike = None) -> int:
    """Signed number of days from the reference date to the target."""
    ref = resolve_reference_date(reference_date)
    target_date = parse_date(target)
    if target_date is None:
        raise ValueError(f"Invalid target date: {target!r}")
    return (target_date - ref).days


def resolve_billing_period(
    due_day: Any,
    reference_date: DateLike = None,
    grace_period_days: int = 0,
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Resolve the monthly billing period containing the reference date.

    The due dates of the previous, reference and next month are computed. If
    the reference date is before this month's due date the active period runs
    from the previous due date, otherwise from this month's due date; either
    way it lasts one calendar month and its rent falls due on its start.

    Args:
        due_day: Day of month rent is due
        reference_date: Date the period is evaluated at (default: today)
        grace_period_days: Days after the due date before the period counts as overdue
        settings: Optional merged settings dictionary

    Returns:
        Dictionary with 'start', 'end', 'due_date', 'current_due_date',
        'next_due_date', 'is_overdue', 'is_current_period', 'days_until_due'
        and 'period'
    """
    ref = resolve_reference_date(reference_date)
    day = normalize_due_day(due_day, settings)

    current_due = ref.replace(day=day)
    previous_due = current_due - relativedelta(months=1)
    next_due = current_due + relativedelta(months=1)

    if ref < current_due:
        start, end = previous_due, current_due
    else:
        start, end = current_due, next_due

    grace = datetime.timedelta(days=max(0, int(grace_period_days or 0)))

    period = {
        'start': start,
        'end': end,
        'due_date': start,
        'current_due_date': current_due,
        'next_due_date': end,
        'is_overdue': start + grace < ref < end,
        'is_current_period': start <= ref < end,
        'days_until_due': (end - ref).days,
        'period': format_period(start)
    }

    logger.debug(f"Billing period for due day {day} at {ref}: {start} to {end}")
    return period


def _start_of_week(value: datetime.date) -> datetime.date:
    # Weeks start on Sunday
    return value - datetime.timedelta(days=(value.weekday() + 1) % 7)


def get_time_window(
    window: str,
    reference_date: DateLike = None,
    custom_start: DateLike = None,
    custom_end: DateLike = None
) -> Window:
    """
    Get the half-open date range of a reporting window.

    Args:
        window: One of 'all', 'today', 'week', 'month', 'quarter', 'year', 'custom'
        reference_date: Date the window is anchored on (default: today)
        custom_start: First day of a custom range
        custom_end: Last day of a custom range (inclusive)

    Returns:
        (start, end) tuple, or (None, None) for an unbounded window
    """
    ref = resolve_reference_date(reference_date)
    window = (window or 'all').lower()

    if window == 'today':
        return ref, ref + datetime.timedelta(days=1)

    if window == 'week':
        start = _start_of_week(ref)
        return start, start + datetime.timedelta(days=7)

    if window == 'month':
        start = ref.replace(day=1)
        return start, start + relativedelta(months=1)

    if window == 'quarter':
        start = datetime.date(ref.year, (ref.month - 1) // 3 * 3 + 1, 1)
        return start, start + relativedelta(months=3)

    if window == 'year':
        return datetime.date(ref.year, 1, 1), datetime.date(ref.year + 1, 1, 1)

    if window == 'custom':
        start = parse_date(custom_start)
        end = parse_date(custom_end)
        if start is None or end is None:
            logger.warning("Custom window needs both a start and an end date, using all dates")
            return None, None
        return start, end + datetime.timedelta(days=1)

    if window != 'all':
        logger.warning(f"Unknown window '{window}', using all dates")

    return None, None


def previous_window(window: str, reference_date: DateLike = None) -> Window:
    """
    Get the window of the same length immediately before the current one.

    Args:
        window: One of 'today', 'week', 'month', 'quarter', 'year'
        reference_date: Date the current window is anchored on

    Returns:
        (start, end) tuple, or (None, None) when the window has no predecessor
    """
    start, end = get_time_window(window, reference_date)
    if start is None:
        return None, None

    window = window.lower()
    if window in ('today', 'week'):
        length = end - start
        return start - length, start

    months = {'month': 1, 'quarter': 3, 'year': 12}[window]
    return start - relativedelta(months=months), start


def in_window(value: Optional[datetime.date], start: Optional[datetime.date], end: Optional[datetime.date]) -> bool:
    """Check whether a date lies in [start, end); an unbounded window holds every date."""
    if start is None and end is None:
        return True
    if value is None:
        return False
    if start is not None and value < start:
        return False
    if end is not None and value >= end:
        return False
    return True


if __name__ == "__main__":
    # Example usage
    import sys

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    due_day = sys.argv[1] if len(sys.argv) > 1 else 5
    reference = sys.argv[2] if len(sys.argv) > 2 else None

    period = resolve_billing_period(due_day, reference)

    print("\nBilling Period:")
    print(f"Start: {period['start']}")
    print(f"End: {period['end']}")
    print(f"Overdue: {period['is_overdue']}")
    print(f"Days until next due date: {period['days_until_due']}")

    for name in ('today', 'week', 'month', 'quarter', 'year'):
        start, end = get_time_window(name, reference)
        print(f"{name}: {start} to {end}")
