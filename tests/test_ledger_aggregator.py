#!/usr/bin/env python3
"""
Tests for the ledger_aggregator module.
"""

import os
import copy
import unittest
import datetime
from decimal import Decimal

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from billing.ledger_aggregator import (
    calculate_growth_rate,
    calculate_landlord_payout,
    monthly_breakdown,
    summarize_ledger
)

REFERENCE = datetime.date(2024, 3, 15)


def sample_payments():
    return [
        # March
        {'amount': 20000, 'dueAmount': 20000, 'paymentDate': '2024-03-01', 'dueDate': '2024-03-01',
         'status': 'completed', 'paymentVariance': 0, 'agencyFee': 2000, 'taxDeduction': 500},
        {'amount': 10000, 'dueAmount': 15000, 'paymentDate': '2024-03-05', 'dueDate': '2024-03-05',
         'status': 'partial', 'paymentVariance': -5000},
        {'amount': 18000, 'dueAmount': 18000, 'paymentDate': '2024-03-10', 'dueDate': '2024-03-10',
         'status': 'pending'},
        {'amount': 12000, 'paymentDate': '2024-03-20', 'dueDate': '2024-03-20', 'status': 'pending'},
        {'amount': 9000, 'dueAmount': 9000, 'paymentDate': '2024-03-06', 'status': 'failed'},
        # February
        {'amount': 25000, 'dueAmount': 20000, 'paymentDate': '2024-02-02', 'dueDate': '2024-02-01',
         'status': 'completed', 'paymentVariance': 5000},
    ]


def sample_tenants():
    return [
        {'_id': 't1', 'currentBalance': -5000},
        {'_id': 't2', 'currentBalance': 150000},
        {'_id': 't3', 'currentBalance': 100000},
    ]


def sample_expenses():
    return [
        {'amount': 4000, 'date': '2024-03-03', 'category': 'maintenance', 'paymentStatus': 'paid'},
        {'amount': 1000, 'date': '2024-03-12', 'category': 'utilities', 'paymentStatus': 'pending'},
        {'amount': 7000, 'date': '2024-02-12', 'category': 'repairs', 'paymentStatus': 'paid'},
    ]


class TestGrowthRate(unittest.TestCase):
    """Test cases for calculate_growth_rate."""

    def test_zero_previous(self):
        """Growth from nothing is zero, never a division error."""
        result = calculate_growth_rate(Decimal('5000'), Decimal('0'))
        self.assertEqual(result['growth_rate'], Decimal('0'))
        self.assertEqual(result['change_type'], 'first_period')

        self.assertEqual(calculate_growth_rate(Decimal('0'), Decimal('0'))['change_type'], 'no_change')

    def test_increase_and_decrease(self):
        self.assertEqual(calculate_growth_rate(Decimal('30000'), Decimal('25000'))['growth_rate'], Decimal('20.00'))
        result = calculate_growth_rate(Decimal('15000'), Decimal('20000'))
        self.assertEqual(result['growth_rate'], Decimal('-25.00'))
        self.assertEqual(result['change_type'], 'decrease')


class TestSummarizeLedger(unittest.TestCase):
    """Test cases for summarize_ledger."""

    def test_month_summary(self):
        summary = summarize_ledger(sample_payments(), sample_tenants(), sample_expenses(), REFERENCE)

        self.assertEqual(summary['period_start'], datetime.date(2024, 3, 1))
        self.assertEqual(summary['period_end'], datetime.date(2024, 4, 1))
        self.assertEqual(summary['monthly_total'], Decimal('30000.00'))
        self.assertEqual(summary['last_month_revenue'], Decimal('25000.00'))
        self.assertEqual(summary['growth_rate'], Decimal('20.00'))
        self.assertEqual(summary['payment_count'], 2)

    def test_pending_and_overdue(self):
        summary = summarize_ledger(sample_payments(), reference_date=REFERENCE)

        # Missing due amount falls back to the amount
        self.assertEqual(summary['pending_total'], Decimal('30000.00'))
        self.assertEqual(summary['pending_count'], 2)
        self.assertEqual(summary['overdue_total'], Decimal('18000.00'))
        self.assertEqual(summary['overdue_count'], 1)

    def test_collection_rate(self):
        summary = summarize_ledger(sample_payments(), reference_date=REFERENCE)

        # Due: 20000 + 15000 + 18000 + 12000; failed entries excluded
        self.assertEqual(summary['due_this_period'], Decimal('65000.00'))
        self.assertEqual(summary['paid_this_period'], Decimal('30000.00'))
        self.assertEqual(summary['collection_rate'], Decimal('46.15'))

    def test_balances_and_fees(self):
        summary = summarize_ledger(sample_payments(), sample_tenants(), sample_expenses(), REFERENCE)

        self.assertEqual(summary['variance_total'], Decimal('0.00'))
        self.assertEqual(summary['net_balance'], summary['variance_total'])
        self.assertEqual(summary['tenant_balance_total'], Decimal('245000.00'))
        # Strictly above the threshold
        self.assertEqual(summary['critical_accounts'], 1)
        self.assertEqual(summary['agency_fees'], Decimal('2000.00'))
        self.assertEqual(summary['tax_deductions'], Decimal('500.00'))
        self.assertEqual(summary['total_expenses'], Decimal('5000.00'))
        self.assertEqual(summary['net_income'], Decimal('25000.00'))

    def test_critical_threshold_setting(self):
        settings = {"settings": {"critical_balance_threshold": 90000}}
        summary = summarize_ledger([], sample_tenants(), reference_date=REFERENCE, settings=settings)
        self.assertEqual(summary['critical_accounts'], 2)

    def test_empty_ledger(self):
        summary = summarize_ledger([], reference_date=REFERENCE)

        self.assertEqual(summary['monthly_total'], Decimal('0'))
        self.assertEqual(summary['growth_rate'], Decimal('0'))
        self.assertEqual(summary['collection_rate'], Decimal('0'))
        self.assertEqual(summary['pending_total'], Decimal('0'))

    def test_missing_numbers_are_zero(self):
        payments = [{'amount': None, 'paymentDate': '2024-03-02', 'status': 'completed'},
                    {'amount': 'abc', 'paymentDate': '2024-03-03', 'status': 'completed'}]
        summary = summarize_ledger(payments, reference_date=REFERENCE)
        self.assertEqual(summary['monthly_total'], Decimal('0.00'))
        self.assertEqual(summary['payment_count'], 2)

    def test_all_window(self):
        summary = summarize_ledger(sample_payments(), reference_date=REFERENCE, window='all')

        self.assertIsNone(summary['period_start'])
        self.assertEqual(summary['monthly_total'], Decimal('55000.00'))
        self.assertEqual(summary['last_month_revenue'], Decimal('0'))
        self.assertEqual(summary['growth_rate'], Decimal('0'))

    def test_idempotent_and_non_mutating(self):
        payments = sample_payments()
        tenants = sample_tenants()
        before = copy.deepcopy(payments)

        first = summarize_ledger(payments, tenants, reference_date=REFERENCE)
        second = summarize_ledger(payments, tenants, reference_date=REFERENCE)

        self.assertEqual(first, second)
        self.assertEqual(payments, before)


class TestMonthlyBreakdown(unittest.TestCase):
    """Test cases for monthly_breakdown."""

    def test_breakdown(self):
        months = monthly_breakdown(sample_payments(), REFERENCE)

        self.assertEqual([m['period'] for m in months], ['202403', '202402'])

        march = months[0]
        self.assertEqual(march['month_name'], 'March 2024')
        self.assertEqual(march['revenue'], Decimal('30000.00'))
        self.assertEqual(march['pending'], Decimal('30000.00'))
        self.assertEqual(march['overdue'], Decimal('18000.00'))
        self.assertEqual(march['payment_count'], 5)
        self.assertEqual(march['first_day'], datetime.date(2024, 3, 1))

        february = months[1]
        self.assertEqual(february['revenue'], Decimal('25000.00'))
        self.assertEqual(february['total_due'], Decimal('20000.00'))
        self.assertEqual(february['collection_rate'], Decimal('125.00'))

    def test_payments_without_dates_skipped(self):
        self.assertEqual(monthly_breakdown([{'amount': 100, 'status': 'completed'}], REFERENCE), [])


class TestLandlordPayout(unittest.TestCase):
    """Test cases for calculate_landlord_payout."""

    def test_payout_for_month(self):
        payout = calculate_landlord_payout(
            sample_payments(), sample_expenses(), datetime.date(2024, 3, 1), datetime.date(2024, 4, 1)
        )

        self.assertEqual(payout['total_collected'], Decimal('30000.00'))
        self.assertEqual(payout['agency_fees'], Decimal('2000.00'))
        self.assertEqual(payout['tax_deductions'], Decimal('500.00'))
        # Pending expenses are not deducted
        self.assertEqual(payout['total_expenses'], Decimal('4000.00'))
        self.assertEqual(payout['landlord_amount'], Decimal('23500.00'))
        self.assertEqual(payout['payment_count'], 2)
        self.assertEqual(payout['lines'][0]['landlord_amount'], Decimal('17500.00'))

    def test_unbounded_payout(self):
        payout = calculate_landlord_payout(sample_payments(), sample_expenses())

        self.assertEqual(payout['total_collected'], Decimal('55000.00'))
        self.assertEqual(payout['total_expenses'], Decimal('11000.00'))

    def test_percentage_fees(self):
        payments = [{'amount': 10000, 'paymentDate': '2024-03-02', 'status': 'completed',
                     'agencyFee': {'percentage': 10}, 'taxDeduction': {'amount': 300}}]

        payout = calculate_landlord_payout(payments)

        self.assertEqual(payout['agency_fees'], Decimal('1000.00'))
        self.assertEqual(payout['tax_deductions'], Decimal('300.00'))
        self.assertEqual(payout['landlord_amount'], Decimal('8700.00'))


if __name__ == '__main__':
    unittest.main()
