#!/usr/bin/env python3
"""
Tests for the amount_due calculation module.
"""

import os
import unittest
import datetime
from decimal import Decimal

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from billing.calculations.amount_due import (
    apply_carry_forward,
    calculate_amount_due,
    calculate_lease_totals,
    months_elapsed
)
from billing.models import Tenant
from billing.payment_tracker import post_payment

REFERENCE = datetime.date(2024, 3, 10)


def make_tenant(balance=0, history=None, due_day=1, rent=20000, grace=0, late_fee=0, **lease):
    lease_details = {
        'rentAmount': rent,
        'paymentDueDay': due_day,
        'gracePeriod': grace,
        'lateFee': late_fee,
    }
    lease_details.update(lease)
    return {
        '_id': 't-1',
        'firstName': 'Amina',
        'lastName': 'Otieno',
        'currentBalance': balance,
        'leaseDetails': lease_details,
        'paymentHistory': history or []
    }


class TestAmountDue(unittest.TestCase):
    """Test cases for calculate_amount_due."""

    def test_full_rent_due(self):
        result = calculate_amount_due(make_tenant(), REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('20000.00'))
        self.assertEqual(result['base_rent_amount'], Decimal('20000.00'))
        self.assertEqual(result['due_date'], datetime.date(2024, 3, 1))
        self.assertEqual(result['next_due_date'], datetime.date(2024, 4, 1))
        self.assertTrue(result['is_overdue'])
        self.assertFalse(result['has_carry_forward'])
        self.assertEqual(result['carry_forward_source'], 'history')

    def test_credit_balance_reduces_rent(self):
        """A credit balance of 5000 against rent of 20000 leaves 15000."""
        result = calculate_amount_due(make_tenant(balance=-5000), REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('15000.00'))
        self.assertEqual(result['carry_forward_amount'], Decimal('5000.00'))
        self.assertEqual(result['carry_forward_type'], 'credit')
        self.assertEqual(result['carry_forward_source'], 'balance')
        self.assertTrue(result['has_carry_forward'])

    def test_debit_balance_adds_to_rent(self):
        result = calculate_amount_due(make_tenant(balance=3000), REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('23000.00'))
        self.assertEqual(result['carry_forward_type'], 'debit')

    def test_credit_larger_than_rent(self):
        """A credit above the rent floors the amount due at zero."""
        result = calculate_amount_due(make_tenant(balance=-50000), REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('0.00'))
        self.assertFalse(result['is_overdue'])

    def test_payments_in_period_reduce_due(self):
        history = [
            {'amount': 12000, 'date': '2024-03-02', 'status': 'completed'},
            {'amount': 3000, 'date': '2024-03-05', 'status': 'pending'},
        ]

        result = calculate_amount_due(make_tenant(history=history), REFERENCE)

        self.assertEqual(result['current_period_payments'], Decimal('12000.00'))
        self.assertEqual(result['amount_due'], Decimal('8000.00'))

    def test_paid_in_full_not_overdue(self):
        history = [{'amount': 20000, 'date': '2024-03-01', 'status': 'completed'}]

        result = calculate_amount_due(make_tenant(history=history), REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('0.00'))
        self.assertFalse(result['is_overdue'])
        self.assertEqual(result['late_fee'], Decimal('0'))

    def test_history_carry_forward(self):
        """Without a running balance the carry-forward comes from history."""
        history = [{'amount': 25000, 'date': '2024-02-01', 'status': 'completed'}]

        result = calculate_amount_due(make_tenant(history=history), REFERENCE)

        self.assertEqual(result['carry_forward_source'], 'history')
        self.assertEqual(result['carry_forward_amount'], Decimal('5000.00'))
        self.assertEqual(result['amount_due'], Decimal('15000.00'))

    def test_posted_payment_counted_once(self):
        """A partial payment already in the balance is not subtracted twice."""
        posted = post_payment(make_tenant(), {'amount': 15000, 'dueAmount': 20000, 'status': 'partial',
                                              'paymentDate': '2024-03-05'}, REFERENCE)
        self.assertEqual(posted['tenant'].current_balance, Decimal('5000.00'))

        result = calculate_amount_due(posted['tenant'], REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('5000.00'))
        self.assertEqual(result['current_period_payments'], Decimal('15000.00'))
        self.assertEqual(result['carry_forward_source'], 'balance')
        self.assertFalse(result['has_carry_forward'])

        # The shortfall is carried into the next period
        next_period = calculate_amount_due(posted['tenant'], datetime.date(2024, 4, 10))
        self.assertEqual(next_period['carry_forward_amount'], Decimal('-5000.00'))
        self.assertEqual(next_period['amount_due'], Decimal('25000.00'))

    def test_grace_period_and_late_fee(self):
        tenant = make_tenant(grace=14, late_fee=1500)

        within_grace = calculate_amount_due(tenant, datetime.date(2024, 3, 10))
        self.assertFalse(within_grace['is_overdue'])
        self.assertEqual(within_grace['late_fee'], Decimal('0'))

        after_grace = calculate_amount_due(tenant, datetime.date(2024, 3, 20))
        self.assertTrue(after_grace['is_overdue'])
        self.assertEqual(after_grace['late_fee'], Decimal('1500.00'))
        # The late fee is reported, not added
        self.assertEqual(after_grace['amount_due'], Decimal('20000.00'))

    def test_no_lease_details(self):
        """A tenant without a lease owes nothing and is never overdue."""
        result = calculate_amount_due({'firstName': 'No', 'lastName': 'Lease', 'currentBalance': 4000}, REFERENCE)

        self.assertEqual(result['amount_due'], Decimal('0'))
        self.assertFalse(result['is_overdue'])
        self.assertIsNone(result['billing_period'])

    def test_accepts_tenant_instance(self):
        tenant = Tenant.from_record(make_tenant(balance=-5000))
        self.assertEqual(calculate_amount_due(tenant, REFERENCE)['amount_due'], Decimal('15000.00'))

    def test_apply_carry_forward(self):
        self.assertEqual(apply_carry_forward(Decimal('20000'), Decimal('5000')), Decimal('15000'))
        self.assertEqual(apply_carry_forward(Decimal('20000'), Decimal('-5000')), Decimal('25000'))
        self.assertEqual(apply_carry_forward(Decimal('20000'), Decimal('30000')), Decimal('0'))


class TestLeaseTotals(unittest.TestCase):
    """Test cases for calculate_lease_totals."""

    def test_months_elapsed(self):
        start = datetime.date(2024, 1, 15)
        self.assertEqual(months_elapsed(start, datetime.date(2024, 1, 14)), 0)
        self.assertEqual(months_elapsed(start, datetime.date(2024, 1, 15)), 1)
        self.assertEqual(months_elapsed(start, datetime.date(2024, 3, 14)), 2)
        self.assertEqual(months_elapsed(start, datetime.date(2024, 3, 15)), 3)

    def test_active_lease(self):
        history = [
            {'amount': 20000, 'date': '2024-01-15', 'status': 'completed'},
            {'amount': 10000, 'date': '2024-02-15', 'status': 'partial'},
            {'amount': 20000, 'date': '2024-02-16', 'status': 'failed'},
        ]
        tenant = make_tenant(history=history, startDate='2024-01-15', endDate='2024-12-31')

        totals = calculate_lease_totals(tenant, datetime.date(2024, 3, 20))

        self.assertEqual(totals['months'], 3)
        self.assertEqual(totals['total_due'], Decimal('60000.00'))
        self.assertEqual(totals['total_paid'], Decimal('30000.00'))
        self.assertEqual(totals['outstanding'], Decimal('30000.00'))

    def test_ended_lease_is_capped(self):
        tenant = make_tenant(startDate='2023-01-01', endDate='2023-06-30')

        totals = calculate_lease_totals(tenant, datetime.date(2024, 3, 20))

        self.assertEqual(totals['months'], 6)
        self.assertEqual(totals['total_due'], Decimal('120000.00'))

    def test_lease_not_started(self):
        tenant = make_tenant(startDate='2024-06-01', endDate='2025-05-31')

        totals = calculate_lease_totals(tenant, REFERENCE)

        self.assertEqual(totals['months'], 0)
        self.assertEqual(totals['total_due'], Decimal('0'))


if __name__ == '__main__':
    unittest.main()
