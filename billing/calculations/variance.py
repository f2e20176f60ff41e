#!/usr/bin/env python3
"""
Payment Variance Module

Classifies a payment against the amount that was due: the variance, the
resulting standing, and the split of the amount paid between agency fee,
tax deduction and landlord share.
"""

import logging
from decimal import Decimal
from typing import Any, Dict

from billing.utils.helpers import HUNDRED, ZERO, quantize_money, to_decimal, to_money

# Configure logging
logger = logging.getLogger(__name__)


def _percentage_of(amount: Decimal, percentage: Any) -> Decimal:
    if percentage is None:
        return ZERO
    return quantize_money(amount * to_decimal(percentage) / HUNDRED)


def classify_payment(
    amount_paid: Any,
    amount_due: Any = None,
    previous_balance: Any = 0,
    agency_fee_percentage: Any = None,
    tax_deduction_percentage: Any = None
) -> Dict[str, Any]:
    """
    Classify a payment as an overpayment, underpayment or exact payment.

    A missing amount due means the payment was due in full. An explicit zero
    is kept, so a payment made when nothing was due is all overpayment.
    Balances here are standings: positive means the tenant is in credit, so
    new_balance = previous_balance + payment_variance.

    Args:
        amount_paid: Amount received
        amount_due: Amount that was due, optional
        previous_balance: Standing before this payment
        agency_fee_percentage: Optional agency fee as a percentage of the amount paid
        tax_deduction_percentage: Optional tax deduction as a percentage of the amount paid

    Returns:
        Dictionary with the variance, new balance, over/underpayment
        magnitudes and the fee split
    """
    paid = to_money(amount_paid)
    due = to_decimal(amount_due, default=None)
    due = paid if due is None else quantize_money(due)

    previous = to_money(previous_balance)
    variance = paid - due

    agency_fee = _percentage_of(paid, agency_fee_percentage)
    tax_deduction = _percentage_of(paid, tax_deduction_percentage)

    if variance > ZERO:
        carry_forward_type = 'credit'
    elif variance < ZERO:
        carry_forward_type = 'debit'
    else:
        carry_forward_type = 'none'

    logger.debug(f"Payment {paid} against {due}: variance {variance}")

    return {
        'amount_paid': paid,
        'amount_due': due,
        'payment_variance': variance,
        'previous_balance': previous,
        'new_balance': previous + variance,
        'is_overpayment': variance > ZERO,
        'is_underpayment': variance < ZERO,
        'overpayment': variance if variance > ZERO else ZERO,
        'underpayment': -variance if variance < ZERO else ZERO,
        'carry_forward': variance != ZERO,
        'carry_forward_type': carry_forward_type,
        'agency_fee': agency_fee,
        'tax_deduction': tax_deduction,
        'landlord_amount': paid - agency_fee - tax_deduction
    }
