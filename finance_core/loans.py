"""
Loan Module

Loan records: terms and their validation, the installment schedule rows the
amortization engine produces, and immutable payment records.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum

from .currency import Money, Currency
from .dates import InstallmentFrequency, add_period
from .exceptions import InvalidLoanTermsError


class InterestType(Enum):
    """How interest accrues over the term"""
    SIMPLE = "simple"          # Once on the original principal
    COMPOUND = "compound"      # Each period on the outstanding balance


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"
    COMPLETED = "completed"    # Every installment paid
    OVERDUE = "overdue"        # At least one installment past due and unpaid
    DEFAULTED = "defaulted"    # Set manually, never derived


class PaymentStatus(Enum):
    """Installment payment states"""
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"


@dataclass
class LoanTerms:
    """Loan terms and conditions"""
    principal_amount: Money
    annual_interest_rate: Decimal       # Percent, e.g. 12 for 12%
    interest_type: InterestType
    start_date: date
    installment_frequency: InstallmentFrequency
    number_of_installments: int

    def __post_init__(self):
        if not isinstance(self.principal_amount, Money):
            raise InvalidLoanTermsError("Principal amount must be Money")
        if not isinstance(self.annual_interest_rate, Decimal):
            self.annual_interest_rate = Decimal(str(self.annual_interest_rate))
        self.interest_type = InterestType(self.interest_type)
        self.installment_frequency = InstallmentFrequency(self.installment_frequency)

        if not self.principal_amount.is_positive():
            raise InvalidLoanTermsError(
                f"Principal must be positive, got {self.principal_amount.to_string()}"
            )
        if self.annual_interest_rate < Decimal('0'):
            raise InvalidLoanTermsError(
                f"Interest rate cannot be negative, got {self.annual_interest_rate}"
            )
        if isinstance(self.number_of_installments, bool) or not isinstance(self.number_of_installments, int):
            raise InvalidLoanTermsError("Number of installments must be an integer")
        if self.number_of_installments < 1:
            raise InvalidLoanTermsError(
                f"Number of installments must be at least 1, got {self.number_of_installments}"
            )

    @property
    def currency(self) -> Currency:
        return self.principal_amount.currency

    @property
    def period_years(self) -> Decimal:
        return self.installment_frequency.period_years

    @property
    def term_years(self) -> Decimal:
        return self.period_years * Decimal(self.number_of_installments)

    @property
    def periodic_rate(self) -> Decimal:
        """Annual percent rate scaled to one period, as a fraction"""
        return self.annual_interest_rate / Decimal('100') * self.period_years

    @property
    def end_date(self) -> date:
        """Due date of the final installment"""
        return add_period(self.start_date, self.installment_frequency, self.number_of_installments)


@dataclass
class Loan:
    """Loan with borrower details and terms"""
    id: str
    customer_id: str
    terms: LoanTerms
    borrower_name: str = ""
    borrower_phone: str = ""
    end_date: Optional[date] = None
    status: LoanStatus = LoanStatus.ACTIVE   # Only DEFAULTED is honoured as stored
    notes: Optional[str] = None
    created_at: Optional[date] = None

    def __post_init__(self):
        self.status = LoanStatus(self.status)
        expected_end = self.terms.end_date
        if self.end_date is None:
            self.end_date = expected_end
        elif self.end_date != expected_end:
            raise InvalidLoanTermsError(
                f"End date {self.end_date.isoformat()} does not match "
                f"{expected_end.isoformat()} derived from the terms"
            )
        if self.created_at is None:
            self.created_at = self.terms.start_date

    @property
    def currency(self) -> Currency:
        return self.terms.currency

    @property
    def principal_amount(self) -> Money:
        return self.terms.principal_amount


@dataclass
class Installment:
    """Single due-date slice of a loan's repayment"""
    id: str
    loan_id: str
    installment_number: int
    due_date: date
    principal_amount: Money
    interest_amount: Money
    total_amount: Money
    paid_amount: Money = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.paid_amount is None:
            self.paid_amount = Money.zero(self.total_amount.currency)

        if self.principal_amount + self.interest_amount != self.total_amount:
            raise ValueError(
                f"Total {self.total_amount.to_string()} does not equal principal "
                f"{self.principal_amount.to_string()} + interest {self.interest_amount.to_string()}"
            )
        if self.paid_amount.is_negative():
            raise ValueError("Paid amount cannot be negative")
        if self.paid_amount > self.total_amount:
            raise ValueError(
                f"Paid amount {self.paid_amount.to_string()} exceeds total {self.total_amount.to_string()}"
            )

    @property
    def currency(self) -> Currency:
        return self.total_amount.currency

    @property
    def remaining_amount(self) -> Money:
        return self.total_amount - self.paid_amount

    @property
    def is_paid(self) -> bool:
        return self.paid_amount >= self.total_amount

    def status_as_of(self, as_of: date) -> PaymentStatus:
        """Derived payment status; see payments.derive_installment_status"""
        from .payments import derive_installment_status
        return derive_installment_status(self, as_of)


@dataclass(frozen=True)
class Payment:
    """Record of one payment event; never mutated after creation"""
    id: str
    loan_id: str
    installment_id: str                 # Primary target installment
    amount: Money                       # Amount tendered
    principal_amount: Money
    interest_amount: Money
    payment_date: date
    method: str = "Cash"
    unapplied_amount: Money = None      # Excess with no unpaid installment left to absorb it
    allocations: Tuple[Tuple[str, Money], ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    def __post_init__(self):
        if self.unapplied_amount is None:
            object.__setattr__(self, 'unapplied_amount', Money.zero(self.amount.currency))
        object.__setattr__(self, 'allocations', tuple(tuple(a) for a in self.allocations))

    @property
    def applied_amount(self) -> Money:
        return self.principal_amount + self.interest_amount
