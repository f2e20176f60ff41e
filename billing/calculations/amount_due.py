#!/usr/bin/env python3
"""
Amount Due Calculation Module

This module calculates what a tenant owes for the billing period containing
the reference date: the lease rent adjusted by any carry-forward from earlier
periods, less what has already been collected in the period.
"""

import logging
import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from billing.models import Tenant
from billing.period_calculator import resolve_billing_period
from billing.calculations.carry_forward import calculate_carry_forward, carry_forward_from_balance
from billing.utils.helpers import DateLike, ZERO, quantize_money, resolve_reference_date

# Configure logging
logger = logging.getLogger(__name__)


def apply_carry_forward(rent: Decimal, carry_forward: Decimal) -> Decimal:
    """
    Adjust the rent for a carry-forward (positive = credit).

    A credit reduces the rent but never below zero; a debit is added in full.

    Args:
        rent: Base rent for the period
        carry_forward: Signed carry-forward amount

    Returns:
        Adjusted amount, never negative
    """
    if carry_forward > ZERO:
        return max(ZERO, rent - carry_forward)
    return rent + abs(carry_forward)


def _no_lease_result(tenant: Tenant) -> Dict[str, Any]:
    logger.info(f"Tenant {tenant.tenant_id or tenant.name} has no lease details, nothing due")
    return {
        'amount_due': ZERO,
        'base_rent_amount': ZERO,
        'due_date': None,
        'next_due_date': None,
        'is_overdue': False,
        'days_until_due': None,
        'current_period_payments': ZERO,
        'carry_forward_amount': ZERO,
        'carry_forward_type': 'none',
        'carry_forward_source': 'none',
        'has_carry_forward': False,
        'late_fee': ZERO,
        'billing_period': None
    }


def calculate_amount_due(
    tenant: Any,
    reference_date: DateLike = None,
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Calculate the amount a tenant owes for the current billing period.

    A non-zero running balance on the tenant is taken as the carry-forward,
    as it stood before this period's payments were posted; otherwise the
    carry-forward is reconstructed from the payment history.

    Args:
        tenant: Tenant instance or raw tenant record
        reference_date: Date the calculation is evaluated at (default: today)
        settings: Optional merged settings dictionary

    Returns:
        Dictionary with 'amount_due', the billing period dates, overdue flag
        and carry-forward details
    """
    tenant = Tenant.from_record(tenant)
    ref = resolve_reference_date(reference_date)

    lease = tenant.lease_details
    if lease is None:
        return _no_lease_result(tenant)

    rent = lease.rent_amount
    period = resolve_billing_period(lease.payment_due_day, ref, lease.grace_period_days, settings)

    in_period = [
        payment for payment in tenant.payment_history
        if payment.is_collected
        and payment.payment_date is not None
        and period['start'] <= payment.payment_date < period['end']
    ]
    paid_in_period = sum((payment.amount_paid for payment in in_period), ZERO)

    # Balance as it stood before this period's payments were posted
    opening_balance = tenant.current_balance + sum((payment.payment_variance for payment in in_period), ZERO)

    if tenant.current_balance != ZERO or opening_balance != ZERO:
        carry_forward = carry_forward_from_balance(opening_balance)
        source = 'balance'
    else:
        carry_forward = calculate_carry_forward(tenant.payment_history, rent, ref, settings)['carry_forward_amount']
        source = 'history'

    amount_due = max(ZERO, apply_carry_forward(rent, carry_forward) - paid_in_period)
    is_overdue = period['is_overdue'] and amount_due > ZERO

    if carry_forward > ZERO:
        carry_forward_type = 'credit'
    elif carry_forward < ZERO:
        carry_forward_type = 'debit'
    else:
        carry_forward_type = 'none'

    logger.info(
        f"Tenant {tenant.tenant_id or tenant.name}: rent {rent}, carry-forward {carry_forward} ({source}), "
        f"paid {paid_in_period} in period {period['period']}, due {amount_due}"
    )

    return {
        'amount_due': quantize_money(amount_due),
        'base_rent_amount': quantize_money(rent),
        'due_date': period['due_date'],
        'next_due_date': period['next_due_date'],
        'is_overdue': is_overdue,
        'days_until_due': period['days_until_due'],
        'current_period_payments': quantize_money(paid_in_period),
        'carry_forward_amount': carry_forward,
        'carry_forward_type': carry_forward_type,
        'carry_forward_source': source,
        'has_carry_forward': carry_forward != ZERO,
        'late_fee': quantize_money(lease.late_fee) if is_overdue else ZERO,
        'billing_period': period
    }


def months_elapsed(start: datetime.date, until: datetime.date) -> int:
    """
    Count lease months started by a date, including the first.

    A month counts once the start day's anniversary is reached.
    """
    if until < start:
        return 0
    months = (until.year - start.year) * 12 + (until.month - start.month)
    if until.day >= start.day:
        months += 1
    return months


def calculate_lease_totals(tenant: Any, reference_date: DateLike = None) -> Dict[str, Any]:
    """
    Calculate the rent accrued over a lease against what has been collected.

    Args:
        tenant: Tenant instance or raw tenant record
        reference_date: Date the totals are evaluated at (default: today)

    Returns:
        Dictionary with 'months', 'total_due', 'total_paid' and 'outstanding'
    """
    tenant = Tenant.from_record(tenant)
    ref = resolve_reference_date(reference_date)

    total_paid = sum((p.amount_paid for p in tenant.payment_history if p.is_collected), ZERO)

    lease = tenant.lease_details
    months = 0
    if lease is not None and lease.start_date is not None and lease.rent_amount > ZERO:
        until = ref
        if lease.end_date is not None and lease.end_date < ref:
            until = lease.end_date
        months = months_elapsed(lease.start_date, until)

    total_due = lease.rent_amount * months if months else ZERO

    return {
        'months': months,
        'total_due': quantize_money(total_due),
        'total_paid': quantize_money(total_paid),
        'outstanding': quantize_money(total_due - total_paid)
    }
