#!/usr/bin/env python3
"""
Billing Records Module

Canonical shapes for the records the billing engine consumes. The
application hands over loosely typed dictionaries (camelCase keys from the
REST backend, synonyms such as `amount`/`amountPaid` or `date`/`paymentDate`,
dates as ISO strings); each record type resolves those once in
`from_record` so the calculations only ever see one shape.
"""

import logging
import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from billing.errors import RateScheduleError
from billing.utils.helpers import ZERO, parse_date, to_decimal

# Configure logging
logger = logging.getLogger(__name__)

PAYMENT_STATUSES = ('pending', 'completed', 'partial', 'failed')
COLLECTED_STATUSES = ('completed', 'partial')
PAYMENT_TYPES = ('rent', 'deposit', 'fee', 'maintenance', 'other', 'bnb')

NIGHTS_PER_WEEK = 7
NIGHTS_PER_MONTH = 30


def _pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-empty value among synonym keys."""
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return default


def _ref_id(value: Any) -> Optional[str]:
    """Reduce a reference (plain id or populated sub-document) to its id."""
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        value = _pick(value, '_id', 'id')
        return str(value) if value is not None else None
    return str(value)


def _fee_amount(value: Any, base: Decimal) -> Decimal:
    """Fee given either as an amount or as {'amount': .., 'percentage': ..}."""
    if isinstance(value, Mapping):
        amount = to_decimal(value.get('amount'))
        if amount:
            return amount
        percentage = to_decimal(value.get('percentage'))
        return base * percentage / Decimal('100') if percentage else ZERO
    return to_decimal(value)


def _optional_rate(value: Any) -> Optional[Decimal]:
    rate = to_decimal(value)
    return rate if rate > ZERO else None


@dataclass(frozen=True)
class Payment:
    """A single payment transaction against a tenant's account."""

    amount_paid: Decimal = ZERO
    amount_due: Optional[Decimal] = None
    payment_date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    status: str = 'pending'
    type: str = 'rent'
    tenant_id: Optional[str] = None
    unit_id: Optional[str] = None
    property_id: Optional[str] = None
    payment_variance: Decimal = ZERO
    previous_balance: Decimal = ZERO
    new_balance: Decimal = ZERO
    agency_fee: Decimal = ZERO
    tax_deduction: Decimal = ZERO
    payment_method: str = 'cash'
    reference: Optional[str] = None
    description: str = ''

    @property
    def is_collected(self) -> bool:
        return self.status in COLLECTED_STATUSES

    @property
    def effective_amount_due(self) -> Decimal:
        # A payment recorded without a due amount was due in full
        if self.amount_due is not None:
            return self.amount_due
        return self.amount_paid

    @classmethod
    def from_record(cls, record: Any) -> 'Payment':
        """
        Build a Payment from a raw payment or payment-history record.

        Args:
            record: Payment instance or mapping with any of the accepted
                synonym keys

        Returns:
            Canonical Payment
        """
        if isinstance(record, Payment):
            return record

        amount_paid = to_decimal(_pick(record, 'amount_paid', 'amountPaid', 'amount'))
        raw_due = _pick(record, 'amount_due', 'amountDue', 'dueAmount')
        amount_due = to_decimal(raw_due, default=None)

        status = str(_pick(record, 'status', default='pending')).strip().lower()
        if status not in PAYMENT_STATUSES:
            logger.warning(f"Unknown payment status '{status}', treating as pending")
            status = 'pending'

        payment_type = str(_pick(record, 'type', default='rent')).strip().lower()
        if payment_type not in PAYMENT_TYPES:
            logger.debug(f"Unknown payment type '{payment_type}', using 'other'")
            payment_type = 'other'

        variance = _pick(record, 'payment_variance', 'paymentVariance')
        if variance is None and amount_due is not None:
            variance = amount_paid - amount_due

        reference = _pick(record, 'reference', 'id', '_id')

        return cls(
            amount_paid=amount_paid,
            amount_due=amount_due,
            payment_date=parse_date(_pick(record, 'payment_date', 'paymentDate', 'date')),
            due_date=parse_date(_pick(record, 'due_date', 'dueDate')),
            status=status,
            type=payment_type,
            tenant_id=_ref_id(_pick(record, 'tenant_id', 'tenantId', 'tenant')),
            unit_id=_ref_id(_pick(record, 'unit_id', 'unitId', 'unit')),
            property_id=_ref_id(_pick(record, 'property_id', 'propertyId', 'property')),
            payment_variance=to_decimal(variance),
            previous_balance=to_decimal(_pick(record, 'previous_balance', 'previousBalance')),
            new_balance=to_decimal(_pick(record, 'new_balance', 'newBalance', 'balance')),
            agency_fee=_fee_amount(_pick(record, 'agency_fee', 'agencyFee'), amount_paid),
            tax_deduction=_fee_amount(_pick(record, 'tax_deduction', 'taxDeduction'), amount_paid),
            payment_method=str(_pick(record, 'payment_method', 'paymentMethod', default='cash')),
            reference=str(reference) if reference is not None else None,
            description=str(_pick(record, 'description', default='')),
        )


@dataclass(frozen=True)
class LeaseDetails:
    """Contracted rent terms of a tenancy."""

    rent_amount: Decimal = ZERO
    payment_due_day: int = 1
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    security_deposit: Decimal = ZERO
    grace_period_days: int = 0
    late_fee: Decimal = ZERO

    @classmethod
    def from_record(cls, record: Any) -> Optional['LeaseDetails']:
        if record is None or isinstance(record, LeaseDetails):
            return record

        try:
            due_day = int(_pick(record, 'payment_due_day', 'paymentDueDay', default=1))
        except (TypeError, ValueError):
            logger.warning(f"Invalid payment due day: {record.get('paymentDueDay')}, using 1")
            due_day = 1

        try:
            grace = int(_pick(record, 'grace_period_days', 'gracePeriod', default=0))
        except (TypeError, ValueError):
            grace = 0

        return cls(
            rent_amount=to_decimal(_pick(record, 'rent_amount', 'rentAmount')),
            payment_due_day=due_day,
            start_date=parse_date(_pick(record, 'start_date', 'startDate')),
            end_date=parse_date(_pick(record, 'end_date', 'endDate')),
            security_deposit=to_decimal(_pick(record, 'security_deposit', 'securityDeposit')),
            grace_period_days=max(0, grace),
            late_fee=to_decimal(_pick(record, 'late_fee', 'lateFee')),
        )


@dataclass(frozen=True)
class Tenant:
    """A tenant with lease terms, running balance and payment history."""

    tenant_id: Optional[str] = None
    name: str = ''
    lease_details: Optional[LeaseDetails] = None
    current_balance: Decimal = ZERO  # negative = credit, positive = debt
    payment_history: Tuple[Payment, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> 'Tenant':
        if isinstance(record, Tenant):
            return record

        name = _pick(record, 'name')
        if name is None:
            name = " ".join(
                part for part in (record.get('firstName'), record.get('lastName')) if part
            )

        lease = _pick(record, 'lease_details', 'leaseDetails')
        if lease is None and _pick(record, 'rent_amount', 'rentAmount') is not None:
            # Flat spreadsheet rows carry the lease terms as columns
            lease = record

        history = [Payment.from_record(entry) for entry in record.get('paymentHistory') or record.get('payment_history') or []]
        history.sort(key=lambda p: p.payment_date or datetime.date.min)

        return cls(
            tenant_id=_ref_id(_pick(record, 'tenant_id', 'tenantId', '_id', 'id')),
            name=str(name or ''),
            lease_details=LeaseDetails.from_record(lease),
            current_balance=to_decimal(_pick(record, 'current_balance', 'currentBalance')),
            payment_history=tuple(history),
        )


@dataclass(frozen=True)
class RateSchedule:
    """
    Nightly, weekly and monthly prices of a short-stay unit.

    Weekly and monthly rates are optional discount tiers. Construction
    rejects schedules whose tiers would cost more than paying nightly.
    """

    nightly_rate: Decimal
    weekly_rate: Optional[Decimal] = None
    monthly_rate: Optional[Decimal] = None
    minimum_stay: int = 1
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None

    def __post_init__(self):
        nightly = to_decimal(self.nightly_rate)
        weekly = None if self.weekly_rate is None else to_decimal(self.weekly_rate)
        monthly = None if self.monthly_rate is None else to_decimal(self.monthly_rate)

        if nightly <= ZERO:
            raise RateScheduleError(f"Nightly rate must be positive, got {self.nightly_rate}")

        if weekly is not None:
            if weekly < ZERO:
                raise RateScheduleError(f"Weekly rate cannot be negative, got {weekly}")
            if weekly > nightly * NIGHTS_PER_WEEK:
                raise RateScheduleError(
                    f"Weekly rate {weekly} exceeds {NIGHTS_PER_WEEK} nights at the nightly rate ({nightly * NIGHTS_PER_WEEK})"
                )

        if monthly is not None:
            if monthly < ZERO:
                raise RateScheduleError(f"Monthly rate cannot be negative, got {monthly}")
            if monthly > nightly * NIGHTS_PER_MONTH:
                raise RateScheduleError(
                    f"Monthly rate {monthly} exceeds {NIGHTS_PER_MONTH} nights at the nightly rate ({nightly * NIGHTS_PER_MONTH})"
                )

        object.__setattr__(self, 'nightly_rate', nightly)
        object.__setattr__(self, 'weekly_rate', weekly)
        object.__setattr__(self, 'monthly_rate', monthly)
        object.__setattr__(self, 'minimum_stay', max(1, int(self.minimum_stay or 1)))

    @classmethod
    def from_record(cls, record: Any) -> 'RateSchedule':
        """
        Build a validated schedule from a unit record.

        Zero or missing weekly/monthly rates mean the tier is not offered.

        Raises:
            RateScheduleError: If the unit's rates are inconsistent
        """
        if isinstance(record, RateSchedule):
            return record

        try:
            minimum_stay = int(_pick(record, 'minimum_stay', 'minimumStay', default=1))
        except (TypeError, ValueError):
            minimum_stay = 1

        return cls(
            nightly_rate=to_decimal(_pick(record, 'nightly_rate', 'nightlyRate')),
            weekly_rate=_optional_rate(_pick(record, 'weekly_rate', 'weeklyRate')),
            monthly_rate=_optional_rate(_pick(record, 'monthly_rate', 'monthlyRate')),
            minimum_stay=minimum_stay,
            check_in_time=_pick(record, 'check_in_time', 'checkInTime'),
            check_out_time=_pick(record, 'check_out_time', 'checkOutTime'),
        )


@dataclass(frozen=True)
class Booking:
    """An existing reservation occupying the half-open interval [start, end)."""

    start_date: datetime.date
    end_date: datetime.date
    status: str = 'confirmed'
    reference: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> Optional['Booking']:
        if isinstance(record, Booking):
            return record

        start = parse_date(_pick(record, 'start_date', 'startDate', 'checkIn', 'check_in'))
        end = parse_date(_pick(record, 'end_date', 'endDate', 'checkOut', 'check_out'))
        if start is None or end is None:
            logger.warning(f"Skipping booking without valid dates: {record}")
            return None

        reference = _pick(record, 'reference', '_id', 'id')
        return cls(
            start_date=start,
            end_date=end,
            status=str(_pick(record, 'status', default='confirmed')).lower(),
            reference=str(reference) if reference is not None else None,
        )


@dataclass(frozen=True)
class Expense:
    """A property expense, used for net income and landlord payouts."""

    amount: Decimal = ZERO
    date: Optional[datetime.date] = None
    category: str = 'other'
    payment_status: str = 'paid'
    property_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> 'Expense':
        if isinstance(record, Expense):
            return record

        return cls(
            amount=to_decimal(record.get('amount')),
            date=parse_date(_pick(record, 'date', 'expenseDate', 'expense_date')),
            category=str(_pick(record, 'category', default='other')),
            payment_status=str(_pick(record, 'payment_status', 'paymentStatus', default='paid')).lower(),
            property_id=_ref_id(_pick(record, 'property_id', 'propertyId', 'property')),
        )


def normalize_payments(records: Optional[Iterable[Any]]) -> List[Payment]:
    """Normalize a payment collection; None yields an empty list."""
    return [Payment.from_record(record) for record in records or []]


def normalize_tenants(records: Optional[Iterable[Any]]) -> List[Tenant]:
    return [Tenant.from_record(record) for record in records or []]


def normalize_expenses(records: Optional[Iterable[Any]]) -> List[Expense]:
    return [Expense.from_record(record) for record in records or []]


def normalize_bookings(records: Optional[Iterable[Any]]) -> List[Booking]:
    bookings = (Booking.from_record(record) for record in records or [])
    return [booking for booking in bookings if booking is not None]
