#!/usr/bin/env python3
"""
Payment Tracker Module

This module records payments against a tenant's account. Posting a payment
classifies it against the amount due and produces the updated tenant in the
same step, so the caller can persist the payment and the new balance
together. It also builds the pending rent charges of a billing period and
lists the pending payments that have fallen overdue.

Tenant balances use the account convention (negative = credit, positive =
amount owed). A collected payment moves the balance by its variance:
new balance = current balance - (amount paid - amount due).
"""

import logging
import dataclasses
from typing import Any, Dict, Iterable, List, Optional, Tuple

from billing.errors import InvalidStatusTransitionError
from billing.models import COLLECTED_STATUSES, PAYMENT_STATUSES, Payment, Tenant, normalize_payments, normalize_tenants
from billing.period_calculator import resolve_billing_period
from billing.calculations.variance import classify_payment
from billing.utils.helpers import DateLike, ZERO, get_month_name, quantize_money, resolve_reference_date

# Configure logging
logger = logging.getLogger(__name__)

# Allowed status changes; completed and failed are final
STATUS_TRANSITIONS = {
    'pending': ('completed', 'partial', 'failed'),
    'partial': ('completed',),
    'completed': (),
    'failed': ()
}


def _append_history(history: Tuple[Payment, ...], payment: Payment) -> Tuple[Payment, ...]:
    """Add a payment to the history, replacing an earlier entry with the same reference."""
    if payment.reference is not None:
        for index, entry in enumerate(history):
            if entry.reference == payment.reference:
                return history[:index] + (payment,) + history[index + 1:]
    return history + (payment,)


def post_payment(
    tenant: Any,
    payment: Any,
    reference_date: DateLike = None,
    agency_fee_percentage: Any = None,
    tax_deduction_percentage: Any = None
) -> Dict[str, Any]:
    """
    Record a payment against a tenant's account.

    A payment without an amount due is treated as due in full, and one
    without dates is dated on the reference date. Only completed and partial
    payments change the tenant's balance and payment history.

    Args:
        tenant: Tenant instance or raw tenant record
        payment: Payment instance or raw payment record
        reference_date: Date used for missing payment dates (default: today)
        agency_fee_percentage: Optional agency fee percentage of the amount paid
        tax_deduction_percentage: Optional tax deduction percentage of the amount paid

    Returns:
        Dictionary with the recorded 'payment', the updated 'tenant' and the
        'classification' of the payment. The inputs are left untouched.
    """
    tenant = Tenant.from_record(tenant)
    payment = Payment.from_record(payment)
    ref = resolve_reference_date(reference_date)

    previous_balance = tenant.current_balance

    # The classifier works on standings, where positive means credit
    classification = classify_payment(
        payment.amount_paid,
        payment.amount_due,
        -previous_balance,
        agency_fee_percentage,
        tax_deduction_percentage
    )

    variance = classification['payment_variance']
    collected = payment.status in COLLECTED_STATUSES
    new_balance = quantize_money(previous_balance - variance) if collected else previous_balance

    changes = {
        'amount_due': classification['amount_due'],
        'payment_variance': variance,
        'previous_balance': previous_balance,
        'new_balance': new_balance,
        'payment_date': payment.payment_date or ref,
        'due_date': payment.due_date or ref,
        'tenant_id': payment.tenant_id or tenant.tenant_id
    }
    if agency_fee_percentage is not None:
        changes['agency_fee'] = classification['agency_fee']
    if tax_deduction_percentage is not None:
        changes['tax_deduction'] = classification['tax_deduction']

    recorded = dataclasses.replace(payment, **changes)

    if collected:
        updated_tenant = dataclasses.replace(
            tenant,
            current_balance=new_balance,
            payment_history=_append_history(tenant.payment_history, recorded)
        )
        logger.info(
            f"Posted {recorded.status} payment of {recorded.amount_paid} for tenant "
            f"{tenant.tenant_id or tenant.name}: balance {previous_balance} -> {new_balance}"
        )
    else:
        updated_tenant = tenant
        logger.info(
            f"Recorded {recorded.status} payment of {recorded.amount_paid} for tenant "
            f"{tenant.tenant_id or tenant.name}, balance unchanged at {previous_balance}"
        )

    return {
        'payment': recorded,
        'tenant': updated_tenant,
        'classification': classification
    }


def can_transition(current: str, requested: str) -> bool:
    return requested in STATUS_TRANSITIONS.get(current, ())


def transition_payment_status(tenant: Any, payment: Any, new_status: str) -> Dict[str, Any]:
    """
    Move a recorded payment to a new status.

    A payment entering a collected status for the first time moves the
    tenant's balance; a partial payment completing does not move it again.

    Args:
        tenant: Tenant instance or raw tenant record
        payment: Payment instance or raw payment record
        new_status: Requested status

    Returns:
        Dictionary with the updated 'payment' and 'tenant'

    Raises:
        InvalidStatusTransitionError: If the change is not allowed
    """
    tenant = Tenant.from_record(tenant)
    payment = Payment.from_record(payment)
    new_status = str(new_status).strip().lower()

    if new_status not in PAYMENT_STATUSES or not can_transition(payment.status, new_status):
        raise InvalidStatusTransitionError(payment.status, new_status, payment.reference)

    was_collected = payment.status in COLLECTED_STATUSES

    if new_status in COLLECTED_STATUSES and not was_collected:
        # Balance change is applied now, against the tenant's current balance
        result = post_payment(tenant, dataclasses.replace(payment, status=new_status))
        logger.info(f"Payment {payment.reference} moved from {payment.status} to {new_status}")
        return {'payment': result['payment'], 'tenant': result['tenant']}

    updated_payment = dataclasses.replace(payment, status=new_status)
    updated_tenant = tenant
    if was_collected:
        updated_tenant = dataclasses.replace(
            tenant,
            payment_history=_append_history(tenant.payment_history, updated_payment)
        )

    logger.info(f"Payment {payment.reference} moved from {payment.status} to {new_status}")
    return {'payment': updated_payment, 'tenant': updated_tenant}


def summarize_account(tenant: Any) -> Dict[str, Any]:
    """
    Describe a tenant's balance in words for statements.

    Returns:
        Dictionary with 'balance', 'balance_type' ('credit', 'owing' or
        'settled') and 'amount' (magnitude)
    """
    tenant = Tenant.from_record(tenant)
    balance = quantize_money(tenant.current_balance)

    if balance < ZERO:
        balance_type = 'credit'
    elif balance > ZERO:
        balance_type = 'owing'
    else:
        balance_type = 'settled'

    return {
        'tenant_id': tenant.tenant_id,
        'name': tenant.name,
        'balance': balance,
        'balance_type': balance_type,
        'amount': abs(balance)
    }


def _is_charged(tenant: Tenant, ledger: List[Payment], period: Dict[str, Any]) -> bool:
    """Check for a rent record of the tenant already due in the period."""
    for payment in ledger:
        if payment.type != 'rent' or payment.due_date is None:
            continue
        if payment.tenant_id is not None and payment.tenant_id != tenant.tenant_id:
            continue
        if period['start'] <= payment.due_date < period['end']:
            return True
    return False


def generate_period_charges(
    tenants: Optional[Iterable[Any]],
    payments: Optional[Iterable[Any]] = None,
    reference_date: DateLike = None,
    settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the pending rent charges for the billing period of each active tenant.

    A tenant is charged when their lease has a rent, has started and has not
    ended by the reference date, and no rent record is already due in the
    period, either in the given payments or in the tenant's history.

    Args:
        tenants: Tenant instances or raw tenant records
        payments: Existing payment records, optional
        reference_date: Date the charges are generated at (default: today)
        settings: Optional merged settings dictionary

    Returns:
        Dictionary with the new pending 'charges', the 'skipped' tenants with
        a reason, and the 'processed_count', 'skipped_count' and 'total_charged'
    """
    ref = resolve_reference_date(reference_date)
    existing = normalize_payments(payments)

    charges = []
    skipped = []

    for tenant in normalize_tenants(tenants):
        label = tenant.tenant_id or tenant.name
        lease = tenant.lease_details

        if lease is None or lease.rent_amount <= ZERO:
            reason = 'no rent'
        elif lease.start_date is not None and lease.start_date > ref:
            reason = 'lease not started'
        elif lease.end_date is not None and lease.end_date < ref:
            reason = 'lease ended'
        else:
            reason = None

        if reason is None:
            period = resolve_billing_period(lease.payment_due_day, ref, lease.grace_period_days, settings)
            if _is_charged(tenant, existing + list(tenant.payment_history), period):
                reason = 'already charged'

        if reason is not None:
            logger.debug(f"Skipping rent charge for tenant {label}: {reason}")
            skipped.append({'tenant_id': tenant.tenant_id, 'name': tenant.name, 'reason': reason})
            continue

        due_date = period['due_date']
        charge = Payment(
            amount_paid=ZERO,
            amount_due=quantize_money(lease.rent_amount),
            payment_date=None,
            due_date=due_date,
            status='pending',
            type='rent',
            tenant_id=tenant.tenant_id,
            reference=f"RENT-{tenant.tenant_id or tenant.name}-{period['period']}",
            description=f"Rent for {get_month_name(due_date.month)} {due_date.year}"
        )
        charges.append(charge)
        logger.info(f"Generated rent charge of {charge.amount_due} for tenant {label}, due {due_date}")

    total = quantize_money(sum((charge.amount_due for charge in charges), ZERO))
    logger.info(f"Rent generation at {ref}: {len(charges)} charged, {len(skipped)} skipped, total {total}")

    return {
        'charges': charges,
        'skipped': skipped,
        'processed_count': len(charges),
        'skipped_count': len(skipped),
        'total_charged': total
    }


def list_overdue_payments(payments: Optional[Iterable[Any]], reference_date: DateLike = None) -> List[Dict[str, Any]]:
    """
    List pending payments whose due date has passed, most overdue first.

    Returns:
        List of dictionaries with the 'payment', its 'tenant_id',
        'amount_due' and 'days_overdue'
    """
    ref = resolve_reference_date(reference_date)

    overdue = []
    for payment in normalize_payments(payments):
        if payment.status != 'pending' or payment.due_date is None or payment.due_date >= ref:
            continue
        overdue.append({
            'payment': payment,
            'tenant_id': payment.tenant_id,
            'amount_due': quantize_money(payment.effective_amount_due),
            'days_overdue': (ref - payment.due_date).days
        })

    overdue.sort(key=lambda entry: entry['days_overdue'], reverse=True)
    logger.info(f"Found {len(overdue)} overdue payments at {ref}")
    return overdue
