#!/usr/bin/env python3
"""
Tenant Billing Engine - Main CLI Entrypoint

Runs the billing calculations over exported tenant, payment, expense and
unit records:
1. due        - amount owed by each tenant for the current billing period
2. quote      - price of a short stay, checked against existing bookings
3. summary    - ledger summary for a reporting window
4. breakdown  - month-by-month ledger breakdown
5. payout     - landlord payout for a reporting window

Usage:
  python -m billing.billing COMMAND [options]

Examples:
  python -m billing.billing due --tenants Data/tenants.json --reference_date 2024-03-10
  python -m billing.billing quote --unit Data/unit.json --check_in 2024-06-01 --check_out 2024-06-11
  python -m billing.billing summary --payments Data/payments.csv --tenants Data/tenants.json --window quarter
  python -m billing.billing payout --payments Data/payments.xlsx --expenses Data/expenses.json --window month
"""

import os
import sys
import argparse
import logging
import datetime
from typing import Any, Dict, List, Optional

from billing.settings_loader import get_setting, load_settings
from billing.ledger_loader import load_expenses, load_payments, load_records, load_tenants
from billing.period_calculator import WINDOWS, get_time_window
from billing.calculations.amount_due import calculate_amount_due, calculate_lease_totals
from billing.calculations.stay_rates import ensure_available, quote_stay
from billing.ledger_aggregator import calculate_landlord_payout, monthly_breakdown, summarize_ledger
from billing.payment_tracker import summarize_account
from billing.utils.helpers import format_currency, load_json, resolve_reference_date, save_json

logger = logging.getLogger(__name__)

COMMANDS = ('due', 'quote', 'summary', 'breakdown', 'payout')
LOG_DIR = 'Output'


def configure_logging(verbose: bool = False) -> None:
    """Log to Output/billing.log and to stdout."""
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(LOG_DIR, 'billing.log')),
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Tenant Billing Engine')

    parser.add_argument(
        'command',
        choices=COMMANDS,
        help='Calculation to run'
    )
    parser.add_argument(
        '--tenants',
        type=str,
        help='Tenant export (JSON, CSV or Excel)'
    )
    parser.add_argument(
        '--tenant',
        type=str,
        help='Optional tenant ID to process only one tenant'
    )
    parser.add_argument(
        '--payments',
        type=str,
        help='Payment export (JSON, CSV or Excel)'
    )
    parser.add_argument(
        '--expenses',
        type=str,
        help='Expense export (JSON, CSV or Excel)'
    )
    parser.add_argument(
        '--unit',
        type=str,
        help='JSON file with the short-stay unit and its rates'
    )
    parser.add_argument(
        '--bookings',
        type=str,
        help='Existing bookings for the unit (JSON, CSV or Excel)'
    )
    parser.add_argument(
        '--check_in',
        type=str,
        help='Check-in date (YYYY-MM-DD)'
    )
    parser.add_argument(
        '--check_out',
        type=str,
        help='Check-out date (YYYY-MM-DD)'
    )
    parser.add_argument(
        '--reference_date',
        type=str,
        help='Date to evaluate the calculations at (YYYY-MM-DD, default: today)'
    )
    parser.add_argument(
        '--window',
        type=str,
        choices=WINDOWS,
        default='month',
        help='Reporting window for summary and payout'
    )
    parser.add_argument(
        '--property_id',
        type=str,
        help='Property identifier used to load property settings'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Optional JSON file for the results'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args(argv)

    required = {
        'due': ('tenants',),
        'quote': ('unit', 'check_in', 'check_out'),
        'summary': ('payments',),
        'breakdown': ('payments',),
        'payout': ('payments',)
    }
    missing = [f"--{name}" for name in required[args.command] if not getattr(args, name)]
    if missing:
        parser.error(f"{args.command} requires {', '.join(missing)}")

    return args


def run_due(args: argparse.Namespace, settings: Dict[str, Any], reference_date: datetime.date) -> List[Dict[str, Any]]:
    currency = get_setting(settings, "currency")
    tenants = load_tenants(args.tenants)
    if args.tenant:
        tenants = [t for t in tenants if t.tenant_id == args.tenant]
        if not tenants:
            logger.warning(f"Tenant {args.tenant} not found in {args.tenants}")

    results = []
    for tenant in tenants:
        due = calculate_amount_due(tenant, reference_date, settings)
        account = summarize_account(tenant)
        totals = calculate_lease_totals(tenant, reference_date)

        print(f"\n{tenant.name or tenant.tenant_id}")
        print(f"  Amount due: {format_currency(due['amount_due'], currency)}")
        print(f"  Due date: {due['due_date']}  Next due: {due['next_due_date']}")
        print(f"  Overdue: {'Yes' if due['is_overdue'] else 'No'}")
        if due['has_carry_forward']:
            print(f"  Carry-forward ({due['carry_forward_source']}): "
                  f"{format_currency(due['carry_forward_amount'], currency)} {due['carry_forward_type']}")
        print(f"  Account: {account['balance_type']} {format_currency(account['amount'], currency)}")

        results.append({
            'tenant_id': tenant.tenant_id,
            'name': tenant.name,
            'amount_due': due,
            'account': account,
            'lease_totals': totals
        })

    return results


def run_quote(args: argparse.Namespace, settings: Dict[str, Any]) -> Dict[str, Any]:
    currency = get_setting(settings, "currency")
    unit = load_json(args.unit)

    if args.bookings:
        ensure_available(args.check_in, args.check_out, load_records(args.bookings), settings)

    quote = quote_stay(args.check_in, args.check_out, unit, settings)

    print(f"\nStay: {args.check_in} to {args.check_out} ({quote['nights']} nights)")
    print(f"  Tier: {quote['applied_tier']}")
    print(f"  Total: {format_currency(quote['total_amount'], currency)}")
    if quote['discount_amount']:
        print(f"  Discount: {format_currency(quote['discount_amount'], currency)}")
    if not quote['meets_minimum_stay']:
        print("  Warning: stay is shorter than the unit's minimum stay")

    return quote


def run_summary(args: argparse.Namespace, settings: Dict[str, Any], reference_date: datetime.date) -> Dict[str, Any]:
    currency = get_setting(settings, "currency")
    payments = load_payments(args.payments)
    tenants = load_tenants(args.tenants) if args.tenants else None
    expenses = load_expenses(args.expenses) if args.expenses else None

    summary = summarize_ledger(payments, tenants, expenses, reference_date, args.window, settings)

    print(f"\nLedger summary ({summary['window']}: {summary['period_start']} to {summary['period_end']})")
    print(f"  Revenue: {format_currency(summary['monthly_total'], currency)} "
          f"({summary['growth_rate']}% vs previous {format_currency(summary['last_month_revenue'], currency)})")
    print(f"  Pending: {format_currency(summary['pending_total'], currency)} ({summary['pending_count']})")
    print(f"  Overdue: {format_currency(summary['overdue_total'], currency)} ({summary['overdue_count']})")
    print(f"  Collection rate: {summary['collection_rate']}%")
    print(f"  Net income: {format_currency(summary['net_income'], currency)}")
    print(f"  Critical accounts: {summary['critical_accounts']}")

    return summary


def run_breakdown(args: argparse.Namespace, settings: Dict[str, Any], reference_date: datetime.date) -> List[Dict[str, Any]]:
    currency = get_setting(settings, "currency")
    months = monthly_breakdown(load_payments(args.payments), reference_date)

    print()
    for month in months:
        print(f"{month['month_name']:<16} revenue {format_currency(month['revenue'], currency):>16}  "
              f"pending {format_currency(month['pending'], currency):>16}  "
              f"overdue {format_currency(month['overdue'], currency):>16}  "
              f"collection {month['collection_rate']}%")

    return months


def run_payout(args: argparse.Namespace, settings: Dict[str, Any], reference_date: datetime.date) -> Dict[str, Any]:
    currency = get_setting(settings, "currency")
    start, end = get_time_window(args.window, reference_date)
    expenses = load_expenses(args.expenses) if args.expenses else None

    payout = calculate_landlord_payout(load_payments(args.payments), expenses, start, end)

    print(f"\nLandlord payout ({start or 'all'} to {end or 'all'})")
    print(f"  Collected: {format_currency(payout['total_collected'], currency)}")
    print(f"  Agency fees: {format_currency(payout['agency_fees'], currency)}")
    print(f"  Tax deductions: {format_currency(payout['tax_deductions'], currency)}")
    print(f"  Expenses: {format_currency(payout['total_expenses'], currency)}")
    print(f"  Payout: {format_currency(payout['landlord_amount'], currency)}")

    return payout


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the billing calculations."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    try:
        reference_date = resolve_reference_date(args.reference_date)
        settings = load_settings(args.property_id)

        logger.info(f"Running {args.command} at {reference_date} (property={args.property_id or 'portfolio'})")

        if args.command == 'due':
            results = run_due(args, settings, reference_date)
        elif args.command == 'quote':
            results = run_quote(args, settings)
        elif args.command == 'summary':
            results = run_summary(args, settings, reference_date)
        elif args.command == 'breakdown':
            results = run_breakdown(args, settings, reference_date)
        else:
            results = run_payout(args, settings, reference_date)

        if args.output:
            if save_json(args.output, results):
                print(f"\nResults written to {args.output}")
            else:
                return 1

        return 0  # Success

    except Exception as e:
        logger.exception(f"Error running {args.command}: {str(e)}")
        print(f"\nERROR: {str(e)}")
        return 1  # Error


if __name__ == "__main__":
    sys.exit(main())
