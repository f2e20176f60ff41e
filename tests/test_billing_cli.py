#!/usr/bin/env python3
"""
Tests for the command-line entry point.
"""

import os
import json
import shutil
import tempfile
import unittest
import datetime
from decimal import Decimal

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from billing.billing import parse_arguments, run_breakdown, run_due, run_payout, run_quote, run_summary
from billing.errors import BookingConflictError
from billing.settings_loader import get_default_settings

REFERENCE = datetime.date(2024, 3, 15)


class TestBillingCli(unittest.TestCase):
    """Test cases for the CLI commands."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.settings = get_default_settings()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def write_json(self, name, data):
        path = os.path.join(self.test_dir, name)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        return path

    def test_required_options(self):
        with self.assertRaises(SystemExit):
            parse_arguments(['quote', '--unit', 'unit.json'])

        args = parse_arguments(['summary', '--payments', 'p.csv', '--window', 'quarter'])
        self.assertEqual(args.command, 'summary')
        self.assertEqual(args.window, 'quarter')

    def test_due(self):
        tenants = self.write_json('tenants.json', [
            {'_id': 't1', 'name': 'Amina', 'currentBalance': -5000,
             'leaseDetails': {'rentAmount': 20000, 'paymentDueDay': 1}},
            {'_id': 't2', 'name': 'Brian', 'currentBalance': 0,
             'leaseDetails': {'rentAmount': 30000, 'paymentDueDay': 1}},
        ])

        args = parse_arguments(['due', '--tenants', tenants, '--tenant', 't1'])
        results = run_due(args, self.settings, REFERENCE)

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['amount_due']['amount_due'], Decimal('15000.00'))
        self.assertEqual(results[0]['account']['balance_type'], 'credit')

    def test_quote_with_bookings(self):
        unit = self.write_json('unit.json', {'nightlyRate': 1000, 'weeklyRate': 6000})
        bookings = self.write_json('bookings.json', [{'checkIn': '2024-06-05', 'checkOut': '2024-06-08'}])

        args = parse_arguments(['quote', '--unit', unit, '--check_in', '2024-06-10', '--check_out', '2024-06-20',
                                '--bookings', bookings])
        quote = run_quote(args, self.settings)
        self.assertEqual(quote['total_amount'], Decimal('9000.00'))

        args = parse_arguments(['quote', '--unit', unit, '--check_in', '2024-06-01', '--check_out', '2024-06-06',
                                '--bookings', bookings])
        with self.assertRaises(BookingConflictError):
            run_quote(args, self.settings)

    def test_summary_and_payout(self):
        payments = self.write_json('payments.json', [
            {'amount': 20000, 'paymentDate': '2024-03-02', 'status': 'completed', 'agencyFee': 1000},
            {'amount': 16000, 'paymentDate': '2024-02-02', 'status': 'completed'},
        ])

        args = parse_arguments(['summary', '--payments', payments])
        summary = run_summary(args, self.settings, REFERENCE)
        self.assertEqual(summary['monthly_total'], Decimal('20000.00'))
        self.assertEqual(summary['growth_rate'], Decimal('25.00'))

        args = parse_arguments(['payout', '--payments', payments])
        payout = run_payout(args, self.settings, REFERENCE)
        self.assertEqual(payout['landlord_amount'], Decimal('19000.00'))

        args = parse_arguments(['breakdown', '--payments', payments])
        months = run_breakdown(args, self.settings, REFERENCE)
        self.assertEqual([m['month_name'] for m in months], ['March 2024', 'February 2024'])
        self.assertEqual(months[0]['revenue'], Decimal('20000.00'))


if __name__ == '__main__':
    unittest.main()
