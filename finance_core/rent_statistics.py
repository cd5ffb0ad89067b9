"""
Rent Statistics Module

Dashboard and trend projections over the rental collections.
"""

from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import get_config
from .currency import Currency, Money, sum_money
from .dates import days_between, month_key
from .loans import PaymentStatus
from .rent import (
    AgreementStatus, MaintenanceRequest, MaintenanceStatus, Property, PropertyExpense,
    PropertyStatus, RentAgreement, RentPayment, Tenant, calculate_late_fee,
    derive_agreement_status, derive_rent_payment_status
)


@dataclass
class OverdueRent:
    """Overdue rent payment with its accrued late fee"""
    rent_payment: RentPayment
    days_overdue: int
    late_fee: Money

    @property
    def amount_due(self) -> Money:
        return self.rent_payment.remaining_amount + self.late_fee


@dataclass
class RentDashboardStats:
    """Rent dashboard figures"""
    currency: Currency
    total_properties: int
    occupied_properties: int
    vacant_properties: int
    total_tenants: int
    active_tenants: int
    total_rent_collected: Money
    pending_rent: Money
    overdue_rent: Money
    monthly_income: Money
    monthly_expenses: Money
    net_income: Money
    upcoming_rent_payments: List[RentPayment] = field(default_factory=list)
    overdue_payments: List[OverdueRent] = field(default_factory=list)
    maintenance_requests: List[MaintenanceRequest] = field(default_factory=list)
    expiring_agreements: List[RentAgreement] = field(default_factory=list)


@dataclass
class TrendPoint:
    """Income and expenses for one calendar month"""
    period: str                 # YYYY-MM
    income: Money
    expenses: Money

    @property
    def net(self) -> Money:
        return self.income - self.expenses


def _report_currency(agreements: List[RentAgreement], rent_payments: List[RentPayment]) -> Currency:
    if agreements:
        return agreements[0].currency
    if rent_payments:
        return rent_payments[0].currency
    return Currency[get_config().default_currency]


def compute_rent_dashboard_stats(
    properties: List[Property],
    tenants: List[Tenant],
    agreements: List[RentAgreement],
    rent_payments: List[RentPayment],
    maintenance_requests: List[MaintenanceRequest],
    expenses: List[PropertyExpense],
    as_of: date,
    list_limit: Optional[int] = None
) -> RentDashboardStats:
    """
    Rent dashboard figures as of a date

    Monthly income and expenses cover the calendar month containing `as_of`.
    Each list is capped at `list_limit` rows (configuration default).
    """
    config = get_config()
    if list_limit is None:
        list_limit = config.dashboard_list_limit
    currency = _report_currency(agreements, rent_payments)

    statuses = {p.id: derive_rent_payment_status(p, as_of) for p in rent_payments}
    unpaid = [p for p in rent_payments if statuses[p.id] != PaymentStatus.PAID]

    active_agreements = [
        a for a in agreements if derive_agreement_status(a, as_of) == AgreementStatus.ACTIVE
    ]

    overdue = [
        OverdueRent(
            rent_payment=p,
            days_overdue=days_between(p.due_date, as_of),
            late_fee=calculate_late_fee(p, as_of)
        )
        for p in sorted(rent_payments, key=lambda p: (p.due_date, p.id))
        if statuses[p.id] == PaymentStatus.OVERDUE
    ]

    current_month = month_key(as_of)
    monthly_income = sum_money(
        [p.paid_amount for p in rent_payments
         if p.payment_date is not None and month_key(p.payment_date) == current_month],
        currency
    )
    monthly_expenses = sum_money(
        [e.amount for e in expenses if month_key(e.expense_date) == current_month],
        currency
    )

    upcoming_end = as_of + timedelta(days=config.rent_upcoming_window_days)
    upcoming = sorted(
        (p for p in unpaid if as_of <= p.due_date <= upcoming_end),
        key=lambda p: (p.due_date, p.id)
    )

    expiry_end = as_of + timedelta(days=config.agreement_expiry_window_days)
    expiring = sorted(
        (a for a in active_agreements if as_of <= a.end_date <= expiry_end),
        key=lambda a: (a.end_date, a.id)
    )

    pending_maintenance = [
        r for r in maintenance_requests if r.status == MaintenanceStatus.PENDING
    ]

    return RentDashboardStats(
        currency=currency,
        total_properties=len(properties),
        occupied_properties=sum(1 for p in properties if p.status == PropertyStatus.OCCUPIED),
        vacant_properties=sum(1 for p in properties if p.status == PropertyStatus.AVAILABLE),
        total_tenants=len(tenants),
        active_tenants=len({a.tenant_id for a in active_agreements}),
        total_rent_collected=sum_money([p.paid_amount for p in rent_payments], currency),
        pending_rent=sum_money([p.remaining_amount for p in unpaid], currency),
        overdue_rent=sum_money([o.amount_due for o in overdue], currency),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        net_income=monthly_income - monthly_expenses,
        upcoming_rent_payments=upcoming[:list_limit],
        overdue_payments=overdue[:list_limit],
        maintenance_requests=pending_maintenance[:list_limit],
        expiring_agreements=expiring[:list_limit]
    )


def financial_trend(
    rent_payments: List[RentPayment],
    expenses: List[PropertyExpense],
    months: Optional[int] = None,
    currency: Optional[Currency] = None
) -> List[TrendPoint]:
    """Collected rent and expenses per calendar month, oldest first, last `months` months with activity"""
    if months is None:
        months = get_config().trend_months
    if currency is None:
        currency = _report_currency([], rent_payments)

    income: Dict[str, Money] = {}
    spent: Dict[str, Money] = {}
    zero = Money.zero(currency)

    for payment in rent_payments:
        if payment.payment_date is None or not payment.paid_amount.is_positive():
            continue
        key = month_key(payment.payment_date)
        income[key] = income.get(key, zero) + payment.paid_amount

    for expense in expenses:
        key = month_key(expense.expense_date)
        spent[key] = spent.get(key, zero) + expense.amount

    periods = sorted(set(income) | set(spent))
    points = [
        TrendPoint(period=key, income=income.get(key, zero), expenses=spent.get(key, zero))
        for key in periods
    ]
    return points[-months:] if months > 0 else []


def expenses_by_category(
    expenses: List[PropertyExpense],
    as_of: date,
    currency: Optional[Currency] = None
) -> List[Tuple[str, Money]]:
    """Expenses in the month containing `as_of`, per category, largest first"""
    current_month = month_key(as_of)
    in_month = [e for e in expenses if month_key(e.expense_date) == current_month]
    if currency is None:
        currency = in_month[0].amount.currency if in_month else Currency[get_config().default_currency]

    buckets: Dict[str, Money] = {}
    for expense in in_month:
        category = expense.category or "Other"
        buckets[category] = buckets.get(category, Money.zero(currency)) + expense.amount

    return sorted(buckets.items(), key=lambda item: (-item[1].amount, item[0]))
