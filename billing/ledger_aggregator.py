#!/usr/bin/env python3
"""
Ledger Aggregator Module

This module rolls a payment ledger up into the figures shown on the property
and portfolio dashboards: revenue for a reporting window against the
previous window, pending and overdue amounts, collection rate, tenant
balances, fees and expenses. It also produces the month-by-month breakdown
and the landlord payout statement.

Inputs are never modified; running a summary twice gives the same result.
"""

import logging
import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from billing.models import Payment, normalize_expenses, normalize_payments, normalize_tenants
from billing.period_calculator import get_time_window, in_window, previous_window
from billing.settings_loader import get_critical_threshold
from billing.utils.helpers import (
    DateLike, ZERO, calculate_percentage, format_period, get_month_name,
    parse_date, parse_period, quantize_money, resolve_reference_date
)

# Configure logging
logger = logging.getLogger(__name__)


def calculate_growth_rate(current: Decimal, previous: Decimal) -> Dict[str, Any]:
    """
    Calculate period-over-period growth.

    Args:
        current: Total for the current period
        previous: Total for the previous period

    Returns:
        Dictionary with 'difference', 'growth_rate' (0 when previous is 0)
        and 'change_type'
    """
    difference = current - previous

    if previous == ZERO:
        growth_rate = Decimal('0')
        change_type = "no_change" if current == ZERO else "first_period"
    else:
        growth_rate = calculate_percentage(difference, previous)
        if growth_rate > ZERO:
            change_type = "increase"
        elif growth_rate < ZERO:
            change_type = "decrease"
        else:
            change_type = "no_change"

    return {
        "difference": quantize_money(difference),
        "growth_rate": growth_rate,
        "change_type": change_type
    }


def _total(values: Iterable[Decimal]) -> Decimal:
    return quantize_money(sum(values, ZERO))


def _reporting_date(payment: Payment) -> Optional[datetime.date]:
    # Pending entries often carry only a due date
    return payment.payment_date or payment.due_date


def _is_overdue(payment: Payment, ref: datetime.date) -> bool:
    return payment.status == 'pending' and payment.due_date is not None and payment.due_date < ref


def summarize_ledger(
    payments: Optional[Iterable[Any]],
    tenants: Optional[Iterable[Any]] = None,
    expenses: Optional[Iterable[Any]] = None,
    reference_date: DateLike = None,
    window: str = "month",
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Summarize a payment ledger for a reporting window.

    Revenue counts collected payments (completed or partial) dated inside
    the window. Pending and overdue totals cover the whole ledger, since an
    unpaid entry stays outstanding whatever window is being viewed.

    Args:
        payments: Payment records or Payment instances
        tenants: Optional tenant records, for balance totals
        expenses: Optional expense records, for net income
        reference_date: Date the summary is evaluated at (default: today)
        window: Reporting window name (see period_calculator.get_time_window)
        settings: Optional merged settings dictionary

    Returns:
        Dictionary of summary figures
    """
    ref = resolve_reference_date(reference_date)
    ledger = normalize_payments(payments)
    tenant_list = normalize_tenants(tenants)
    expense_list = normalize_expenses(expenses)

    start, end = get_time_window(window, ref)
    prev_start, prev_end = previous_window(window, ref)
    has_previous = prev_start is not None

    collected = [p for p in ledger if p.is_collected]
    current = [p for p in collected if in_window(p.payment_date, start, end)]
    previous = [p for p in collected if has_previous and in_window(p.payment_date, prev_start, prev_end)]

    monthly_total = _total(p.amount_paid for p in current)
    last_month_revenue = _total(p.amount_paid for p in previous)
    growth = calculate_growth_rate(monthly_total, last_month_revenue)

    pending = [p for p in ledger if p.status == 'pending']
    overdue = [p for p in pending if _is_overdue(p, ref)]

    in_period = [p for p in ledger if p.status != 'failed' and in_window(_reporting_date(p), start, end)]
    due_this_period = _total(p.effective_amount_due for p in in_period)
    paid_this_period = _total(p.amount_paid for p in in_period if p.is_collected)

    threshold = get_critical_threshold(settings)
    critical = [t for t in tenant_list if t.current_balance > threshold]

    window_expenses = [e for e in expense_list if in_window(e.date, start, end)]
    total_expenses = _total(e.amount for e in window_expenses)

    variance_total = _total(p.payment_variance for p in collected)

    summary = {
        'window': window,
        'period_start': start,
        'period_end': end,
        'monthly_total': monthly_total,
        'last_month_revenue': last_month_revenue,
        'growth_rate': growth['growth_rate'],
        'pending_total': _total(p.effective_amount_due for p in pending),
        'pending_count': len(pending),
        'overdue_total': _total(p.effective_amount_due for p in overdue),
        'overdue_count': len(overdue),
        'due_this_period': due_this_period,
        'paid_this_period': paid_this_period,
        'collection_rate': calculate_percentage(paid_this_period, due_this_period),
        'variance_total': variance_total,
        'net_balance': variance_total,
        'tenant_balance_total': _total(t.current_balance for t in tenant_list),
        'critical_accounts': len(critical),
        'agency_fees': _total(p.agency_fee for p in current),
        'tax_deductions': _total(p.tax_deduction for p in current),
        'total_expenses': total_expenses,
        'net_income': monthly_total - total_expenses,
        'payment_count': len(current)
    }

    logger.info(
        f"Ledger summary ({window} at {ref}): revenue {monthly_total}, "
        f"previous {last_month_revenue}, pending {summary['pending_total']}, "
        f"overdue {summary['overdue_total']}, collection rate {summary['collection_rate']}%"
    )

    return summary


def monthly_breakdown(
    payments: Optional[Iterable[Any]],
    reference_date: DateLike = None
) -> List[Dict[str, Any]]:
    """
    Group a payment ledger by calendar month.

    Args:
        payments: Payment records or Payment instances
        reference_date: Date used to decide which pending entries are overdue

    Returns:
        List of per-month dictionaries, newest month first
    """
    ref = resolve_reference_date(reference_date)
    months: Dict[str, Dict[str, Any]] = {}

    for payment in normalize_payments(payments):
        if payment.payment_date is None:
            logger.debug(f"Skipping payment without a date: {payment.reference}")
            continue

        period = format_period(payment.payment_date)
        if period not in months:
            months[period] = {
                'period': period,
                'month_name': f"{get_month_name(payment.payment_date.month)} {payment.payment_date.year}",
                'revenue': ZERO,
                'pending': ZERO,
                'overdue': ZERO,
                'payment_count': 0,
                'total_due': ZERO,
                'total_paid': ZERO
            }

        entry = months[period]
        entry['payment_count'] += 1
        entry['total_due'] += payment.effective_amount_due

        if payment.is_collected:
            entry['revenue'] += payment.amount_paid
            entry['total_paid'] += payment.amount_paid
        elif payment.status == 'pending':
            entry['pending'] += payment.effective_amount_due
            if _is_overdue(payment, ref):
                entry['overdue'] += payment.effective_amount_due

    result = []
    for period in sorted(months, reverse=True):
        entry = months[period]
        for key in ('revenue', 'pending', 'overdue', 'total_due', 'total_paid'):
            entry[key] = quantize_money(entry[key])
        entry['collection_rate'] = calculate_percentage(entry['total_paid'], entry['total_due'])
        entry['first_day'] = parse_period(period)
        result.append(entry)

    return result


def calculate_landlord_payout(
    payments: Optional[Iterable[Any]],
    expenses: Optional[Iterable[Any]] = None,
    start: DateLike = None,
    end: DateLike = None
) -> Dict[str, Any]:
    """
    Calculate what is owed to the landlord for a date range.

    Collected payments are reduced by their agency fees and tax deductions,
    and paid expenses dated in the range are subtracted.

    Args:
        payments: Payment records or Payment instances
        expenses: Optional expense records
        start: First day of the range (inclusive), None for unbounded
        end: Last day of the range (exclusive), None for unbounded

    Returns:
        Dictionary with payout totals and per-payment lines
    """
    range_start = parse_date(start)
    range_end = parse_date(end)

    lines = []
    for payment in normalize_payments(payments):
        if not payment.is_collected or not in_window(payment.payment_date, range_start, range_end):
            continue
        lines.append({
            'reference': payment.reference,
            'tenant_id': payment.tenant_id,
            'payment_date': payment.payment_date,
            'amount_paid': quantize_money(payment.amount_paid),
            'agency_fee': quantize_money(payment.agency_fee),
            'tax_deduction': quantize_money(payment.tax_deduction),
            'landlord_amount': quantize_money(payment.amount_paid - payment.agency_fee - payment.tax_deduction)
        })

    paid_expenses = [
        e for e in normalize_expenses(expenses)
        if e.payment_status == 'paid' and in_window(e.date, range_start, range_end)
    ]

    total_collected = _total(line['amount_paid'] for line in lines)
    agency_fees = _total(line['agency_fee'] for line in lines)
    tax_deductions = _total(line['tax_deduction'] for line in lines)
    total_expenses = _total(e.amount for e in paid_expenses)

    landlord_amount = total_collected - agency_fees - tax_deductions - total_expenses

    logger.info(
        f"Landlord payout: collected {total_collected}, fees {agency_fees}, "
        f"tax {tax_deductions}, expenses {total_expenses}, payout {landlord_amount}"
    )

    return {
        'start': range_start,
        'end': range_end,
        'total_collected': total_collected,
        'agency_fees': agency_fees,
        'tax_deductions': tax_deductions,
        'total_expenses': total_expenses,
        'landlord_amount': landlord_amount,
        'payment_count': len(lines),
        'lines': lines
    }
