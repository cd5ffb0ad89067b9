"""
Statistics Aggregator Module

Read-side projections over the loan, installment and payment collections:
dashboard figures, monthly rollups and per-borrower reports. Nothing here
mutates its inputs or caches results; every figure is recomputed from the
collections passed in, with statuses derived as of the given date.
"""

from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import get_config
from .currency import Currency, CurrencyConverter, Money, sum_money
from .dates import month_key, month_label
from .loans import Installment, Loan, LoanStatus, Payment, PaymentStatus
from .logging_config import get_logger
from .payments import derive_installment_status, derive_loan_status

logger = get_logger("finance_core.statistics")


@dataclass
class DashboardStats:
    """Loan dashboard figures"""
    currency: Currency
    total_loans_count: int
    active_loans_count: int
    completed_loans_count: int
    overdue_loans_count: int
    defaulted_loans_count: int
    total_amount_lent: Money
    total_amount_to_receive: Money
    total_amount_received: Money
    total_interest_earned: Money
    total_principal_received: Money
    total_outstanding: Money
    total_principal_outstanding: Money
    upcoming_payments: List[Installment] = field(default_factory=list)
    overdue_payments: List[Installment] = field(default_factory=list)


@dataclass
class MonthlyReport:
    """Activity within one calendar month"""
    month: str                  # YYYY-MM
    label: str                  # e.g. January 2024
    loans_created: int
    amount_lent: Money
    payments_received: int
    amount_received: Money
    interest_earned: Money


@dataclass
class CustomerReport:
    """Totals for one borrower"""
    customer_id: str
    borrower_name: str
    total_lent: Money
    total_due: Money
    total_paid: Money
    principal_paid: Money
    interest_paid: Money
    outstanding: Money
    active_loans: int
    completed_loans: int
    overdue_installments: int
    loan_ids: List[str] = field(default_factory=list)


class StatisticsAggregator:
    """
    Pure projections for dashboards and reports

    Amounts in a currency other than the report currency are converted with
    `converter` when one is supplied; otherwise mixing currencies raises.
    """

    def __init__(self, currency: Optional[Currency] = None, converter: Optional[CurrencyConverter] = None):
        self.currency = currency
        self.converter = converter

    def compute_dashboard_stats(
        self,
        loans: List[Loan],
        installments: List[Installment],
        payments: List[Payment],
        as_of: date,
        upcoming_window_days: Optional[int] = None,
        upcoming_limit: Optional[int] = None
    ) -> DashboardStats:
        """
        Dashboard figures as of a date

        Args:
            loans: All loans
            installments: All installments of those loans
            payments: All recorded payments
            as_of: Date statuses and the look-ahead window are computed from
            upcoming_window_days: Look-ahead for upcoming payments
                (defaults to configuration)
            upcoming_limit: Maximum upcoming payments returned
                (defaults to the configured dashboard list limit)

        Returns:
            DashboardStats
        """
        if upcoming_window_days is None:
            upcoming_window_days = get_config().upcoming_window_days
        if upcoming_limit is None:
            upcoming_limit = get_config().dashboard_list_limit
        currency = self._report_currency(loans)

        by_loan: Dict[str, List[Installment]] = {}
        for installment in installments:
            by_loan.setdefault(installment.loan_id, []).append(installment)

        status_counts = {status: 0 for status in LoanStatus}
        for loan in loans:
            status_counts[derive_loan_status(loan, by_loan.get(loan.id, []), as_of)] += 1

        statuses = {i.id: derive_installment_status(i, as_of) for i in installments}
        unpaid = [i for i in installments if statuses[i.id] != PaymentStatus.PAID]

        total_amount_lent = self._sum([l.principal_amount for l in loans], currency)
        total_principal_received = self._sum([p.principal_amount for p in payments], currency)

        window_end = as_of + timedelta(days=upcoming_window_days)
        upcoming = sorted(
            (i for i in unpaid if as_of <= i.due_date <= window_end),
            key=lambda i: (i.due_date, i.loan_id, i.installment_number)
        )
        upcoming = upcoming[:upcoming_limit]

        overdue = sorted(
            (i for i in installments if statuses[i.id] == PaymentStatus.OVERDUE),
            key=lambda i: (i.due_date, i.loan_id, i.installment_number)
        )

        logger.debug(
            f"Dashboard as of {as_of.isoformat()}: {len(loans)} loans, "
            f"{len(unpaid)} unpaid installments, {len(overdue)} overdue"
        )

        return DashboardStats(
            currency=currency,
            total_loans_count=len(loans),
            active_loans_count=status_counts[LoanStatus.ACTIVE],
            completed_loans_count=status_counts[LoanStatus.COMPLETED],
            overdue_loans_count=status_counts[LoanStatus.OVERDUE],
            defaulted_loans_count=status_counts[LoanStatus.DEFAULTED],
            total_amount_lent=total_amount_lent,
            total_amount_to_receive=self._sum([i.total_amount for i in installments], currency),
            total_amount_received=self._sum([i.paid_amount for i in installments], currency),
            total_interest_earned=self._sum([p.interest_amount for p in payments], currency),
            total_principal_received=total_principal_received,
            total_outstanding=self._sum([i.remaining_amount for i in unpaid], currency),
            total_principal_outstanding=total_amount_lent - total_principal_received,
            upcoming_payments=upcoming,
            overdue_payments=overdue
        )

    def monthly_reports(self, loans: List[Loan], payments: List[Payment]) -> List[MonthlyReport]:
        """Loans created and payments received per calendar month, newest first"""
        currency = self._report_currency(loans)
        buckets: Dict[str, MonthlyReport] = {}

        def bucket(day: date) -> MonthlyReport:
            key = month_key(day)
            if key not in buckets:
                zero = Money.zero(currency)
                buckets[key] = MonthlyReport(
                    month=key,
                    label=month_label(day),
                    loans_created=0,
                    amount_lent=zero,
                    payments_received=0,
                    amount_received=zero,
                    interest_earned=zero
                )
            return buckets[key]

        for loan in loans:
            report = bucket(loan.created_at)
            report.loans_created += 1
            report.amount_lent = report.amount_lent + self._convert(loan.principal_amount, currency)

        for payment in payments:
            report = bucket(payment.payment_date)
            report.payments_received += 1
            report.amount_received = report.amount_received + self._convert(payment.applied_amount, currency)
            report.interest_earned = report.interest_earned + self._convert(payment.interest_amount, currency)

        return [buckets[key] for key in sorted(buckets, reverse=True)]

    def customer_reports(
        self,
        loans: List[Loan],
        installments: List[Installment],
        payments: List[Payment],
        as_of: date
    ) -> List[CustomerReport]:
        """Per-borrower totals, ordered by customer id"""
        currency = self._report_currency(loans)
        reports = []

        customers: Dict[str, List[Loan]] = {}
        for loan in loans:
            customers.setdefault(loan.customer_id, []).append(loan)

        for customer_id in sorted(customers):
            customer_loans = customers[customer_id]
            loan_ids = {l.id for l in customer_loans}
            customer_installments = [i for i in installments if i.loan_id in loan_ids]
            customer_payments = [p for p in payments if p.loan_id in loan_ids]

            statuses = [
                derive_loan_status(l, customer_installments, as_of) for l in customer_loans
            ]
            total_due = self._sum([i.total_amount for i in customer_installments], currency)
            total_paid = self._sum([p.applied_amount for p in customer_payments], currency)

            reports.append(CustomerReport(
                customer_id=customer_id,
                borrower_name=customer_loans[0].borrower_name,
                total_lent=self._sum([l.principal_amount for l in customer_loans], currency),
                total_due=total_due,
                total_paid=total_paid,
                principal_paid=self._sum([p.principal_amount for p in customer_payments], currency),
                interest_paid=self._sum([p.interest_amount for p in customer_payments], currency),
                outstanding=total_due - total_paid,
                active_loans=statuses.count(LoanStatus.ACTIVE),
                completed_loans=statuses.count(LoanStatus.COMPLETED),
                overdue_installments=sum(
                    1 for i in customer_installments
                    if derive_installment_status(i, as_of) == PaymentStatus.OVERDUE
                ),
                loan_ids=sorted(loan_ids)
            ))

        return reports

    def _report_currency(self, loans: List[Loan]) -> Currency:
        if self.currency is not None:
            return self.currency
        if loans:
            return loans[0].currency
        return Currency[get_config().default_currency]

    def _convert(self, money: Money, currency: Currency) -> Money:
        if money.currency == currency or self.converter is None:
            return money
        return self.converter.convert(money, currency)

    def _sum(self, values: List[Money], currency: Currency) -> Money:
        return sum_money([self._convert(v, currency) for v in values], currency)


def compute_dashboard_stats(
    loans: List[Loan],
    installments: List[Installment],
    payments: List[Payment],
    as_of: date,
    **kwargs
) -> DashboardStats:
    """Dashboard figures; see StatisticsAggregator.compute_dashboard_stats"""
    return StatisticsAggregator().compute_dashboard_stats(loans, installments, payments, as_of, **kwargs)
