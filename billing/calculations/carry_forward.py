#!/usr/bin/env python3
"""
Carry-Forward Calculation Module

This module works out how much a tenant overpaid or underpaid in earlier
billing periods, so the difference can be applied to the current period.

Only collected payments (completed or partial) count. Payments dated in the
reference month form the current bucket and payments dated before the first
of the reference month form the prior bucket.
"""

import math
import logging
import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from billing.models import normalize_payments
from billing.settings_loader import get_setting
from billing.utils.helpers import DateLike, ZERO, quantize_money, resolve_reference_date, to_decimal

# Configure logging
logger = logging.getLogger(__name__)


def estimate_prior_periods(prior_payments: list, settings: Optional[Dict[str, Any]] = None) -> int:
    """
    Estimate how many billing periods the prior payments cover.

    The default 'payment_pairs' estimate assumes a fixed number of payments
    per period (two by default). 'distinct_months' counts the calendar months
    the payments fall in instead.

    Args:
        prior_payments: Collected payments dated before the reference month
        settings: Optional merged settings dictionary

    Returns:
        Number of expected prior periods
    """
    if not prior_payments:
        return 0

    estimate = str(get_setting(settings, "carry_forward", "period_estimate")).lower()

    if estimate == "distinct_months":
        months = {(p.payment_date.year, p.payment_date.month) for p in prior_payments}
        return len(months)

    if estimate != "payment_pairs":
        logger.warning(f"Unknown carry-forward period estimate '{estimate}', using payment_pairs")

    try:
        per_period = int(get_setting(settings, "carry_forward", "payments_per_period"))
    except (TypeError, ValueError):
        per_period = 2
    if per_period < 1:
        logger.warning(f"Invalid payments_per_period {per_period}, using 1")
        per_period = 1

    return math.ceil(len(prior_payments) / per_period)


def calculate_carry_forward(
    payments: Optional[Iterable[Any]],
    rent_amount: Any,
    reference_date: DateLike = None,
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Calculate the carry-forward from a tenant's payment history.

    Args:
        payments: Payment records or Payment instances
        rent_amount: Monthly rent
        reference_date: Date the calculation is evaluated at (default: today)
        settings: Optional merged settings dictionary

    Returns:
        Dictionary with the signed 'carry_forward_amount' (positive = credit),
        its 'carry_forward_type' and the bucket totals behind it
    """
    ref = resolve_reference_date(reference_date)
    rent = to_decimal(rent_amount)
    month_start = ref.replace(day=1)

    current_total = ZERO
    current_count = 0
    prior = []

    for payment in normalize_payments(payments):
        if not payment.is_collected or payment.payment_date is None:
            continue

        if payment.payment_date > ref:
            logger.debug(f"Ignoring future-dated payment of {payment.amount_paid} on {payment.payment_date}")
            continue

        if payment.payment_date >= month_start:
            current_total += payment.amount_paid
            current_count += 1
        else:
            prior.append(payment)

    previous_total = sum((p.amount_paid for p in prior), ZERO)
    expected_periods = estimate_prior_periods(prior, settings)
    expected_total = rent * expected_periods

    carry_forward = quantize_money(previous_total - expected_total) if prior else ZERO

    if carry_forward > ZERO:
        carry_forward_type = 'credit'
    elif carry_forward < ZERO:
        carry_forward_type = 'debit'
    else:
        carry_forward_type = 'none'

    logger.debug(
        f"Carry-forward at {ref}: paid {previous_total} over {len(prior)} prior payments, "
        f"expected {expected_total} for {expected_periods} periods -> {carry_forward}"
    )

    return {
        'carry_forward_amount': carry_forward,
        'carry_forward_type': carry_forward_type,
        'current_period_total': quantize_money(current_total),
        'previous_period_total': quantize_money(previous_total),
        'expected_previous_period_total': quantize_money(expected_total),
        'expected_previous_periods': expected_periods,
        'current_period_count': current_count,
        'previous_period_count': len(prior),
        'has_overpayment': carry_forward > ZERO,
        'has_underpayment': carry_forward < ZERO
    }


def carry_forward_from_balance(current_balance: Any) -> Decimal:
    """Convert a tenant's running balance (negative = credit) into a carry-forward (positive = credit)."""
    return quantize_money(ZERO - to_decimal(current_balance))


if __name__ == "__main__":
    # Example usage
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    history = [
        {'amount': 25000, 'paymentDate': '2024-01-05', 'status': 'completed'},
        {'amount': 20000, 'paymentDate': '2024-02-05', 'status': 'completed'},
        {'amount': 20000, 'paymentDate': '2024-03-05', 'status': 'completed'},
    ]

    result = calculate_carry_forward(history, 20000, datetime.date(2024, 3, 10))
    for key, value in result.items():
        print(f"{key}: {value}")
