#!/usr/bin/env python3
"""
Helper utilities for the tenant billing engine.

This module contains the common conversions used throughout the billing
calculations: money and percentage handling, date parsing, billing period
labels and JSON file access for the command-line boundary.
"""

import os
import json
import logging
import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

# Configure logging
logger = logging.getLogger(__name__)

MONEY_QUANTIZE = Decimal('0.01')  # Round to 2 decimal places
PCT_QUANTIZE = Decimal('0.01')    # Round percentages to 2 decimal places
ZERO = Decimal('0')
HUNDRED = Decimal('100')

DateLike = Union[str, datetime.date, datetime.datetime, None]


def load_json(file_path: str) -> Any:
    """
    Load a JSON file and return its contents.

    Args:
        file_path: Path to the JSON file

    Returns:
        Parsed JSON contents

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        raise
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in file: {file_path}")
        raise


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def save_json(file_path: str, data: Any, indent: int = 2) -> bool:
    """
    Save data to a JSON file. Decimals are written as numbers and dates
    as ISO-8601 strings.

    Args:
        file_path: Path where to save the JSON file
        data: Data to save
        indent: Number of spaces for indentation (default: 2)

    Returns:
        True if successful, False otherwise
    """
    try:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, default=_json_default)
        return True
    except (OSError, TypeError) as e:
        logger.error(f"Error saving JSON file {file_path}: {str(e)}")
        return False


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a loosely typed amount to Decimal.

    Missing values, blanks, NaN and anything unparseable become the default
    instead of propagating through the money arithmetic.

    Args:
        value: Number, numeric string, Decimal or None
        default: Value used when conversion is not possible

    Returns:
        Decimal value
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, str):
        value = value.strip().replace(',', '')
        if value == '':
            return default

    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Invalid amount: {value!r}, using {default}")
        return default

    if result.is_nan() or result.is_infinite():
        return default

    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Round an amount to cents."""
    return amount.quantize(MONEY_QUANTIZE, rounding=ROUND_HALF_UP)


def to_money(value: Any) -> Decimal:
    """Convert a value to Decimal and round it to cents."""
    return quantize_money(to_decimal(value))


def calculate_percentage(part: Decimal, whole: Decimal) -> Decimal:
    """
    Calculate part / whole as a percentage.

    Args:
        part: Numerator
        whole: Denominator

    Returns:
        Percentage rounded to 2 decimal places, 0 when whole is 0
    """
    if whole == ZERO:
        return Decimal('0')

    return (part / whole * HUNDRED).quantize(PCT_QUANTIZE, rounding=ROUND_HALF_UP)


def parse_datetime(value: DateLike) -> Optional[datetime.datetime]:
    """
    Parse a date or timestamp in the formats found in tenant and payment
    records.

    Args:
        value: ISO-8601 string (with or without time and zone),
            MM/DD/YYYY string, date or datetime

    Returns:
        Naive datetime.datetime or None if parsing fails
    """
    if value is None or value == "":
        return None

    # pandas.Timestamp is a datetime subclass
    if isinstance(value, datetime.datetime):
        return value.replace(tzinfo=None)

    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)

    text = str(value).strip()

    try:
        return datetime.datetime.fromisoformat(text.replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        pass

    formats = [
        "%m/%d/%Y",             # MM/DD/YYYY
        "%Y-%m-%d",             # YYYY-MM-DD
        "%m/%d/%Y %I:%M:%S %p"  # MM/DD/YYYY HH:MM:SS AM/PM
    ]

    for fmt in formats:
        try:
            return datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue

    logger.warning(f"Could not parse date: {value}")
    return None


def parse_date(value: DateLike) -> Optional[datetime.date]:
    """
    Parse a date, truncating any time of day.

    Args:
        value: Anything accepted by parse_datetime

    Returns:
        datetime.date object or None if parsing fails
    """
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def resolve_reference_date(reference_date: DateLike = None) -> datetime.date:
    """
    Resolve the "now" of a calculation.

    Every time-dependent calculation takes an explicit reference date; only
    when the caller leaves it out is the system clock consulted, once.

    Args:
        reference_date: Explicit reference date, or None for today

    Returns:
        Reference date
    """
    if reference_date is None:
        return datetime.date.today()

    parsed = parse_date(reference_date)
    if parsed is None:
        raise ValueError(f"Invalid reference date: {reference_date!r}")
    return parsed


def format_period(value: datetime.date) -> str:
    """Return the YYYYMM period label of a date."""
    return value.strftime("%Y%m")


def parse_period(period_str: str) -> Optional[datetime.date]:
    """
    Parse a period string in YYYYMM format.

    Args:
        period_str: Period string in YYYYMM format

    Returns:
        datetime.date object with day set to 1, or None if parsing fails
    """
    try:
        if len(period_str) != 6:
            logger.error(f"Invalid period format (expected YYYYMM): {period_str}")
            return None

        year = int(period_str[:4])
        month = int(period_str[4:6])

        if not (1 <= month <= 12):
            logger.error(f"Invalid month in period: {period_str}")
            return None

        return datetime.date(year, month, 1)
    except ValueError:
        logger.error(f"Could not parse period: {period_str}")
        return None


def get_month_name(month: int) -> str:
    """
    Get month name from month number.

    Args:
        month: Month number (1-12)

    Returns:
        Month name
    """
    months = [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December"
    ]

    if 1 <= month <= 12:
        return months[month - 1]
    else:
        logger.error(f"Invalid month number: {month}")
        return ""


def format_currency(amount: Any, currency: str = "KES") -> str:
    """
    Format a number as currency.

    Args:
        amount: Amount to format
        currency: Currency code prefix

    Returns:
        Formatted currency string
    """
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency} {abs(value):,.2f}"

