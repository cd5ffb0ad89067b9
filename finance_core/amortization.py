"""
Amortization Engine Module

Turns loan terms into an installment schedule. Simple interest is spread
evenly across installments; compound interest amortizes a level payment
against the outstanding balance. Amounts are rounded once, when each
installment is created, and the final installment absorbs every rounding
remainder so that principal portions always sum to the principal exactly.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from dataclasses import dataclass, field
from typing import List, Tuple

from .currency import Money, sum_money
from .dates import InstallmentFrequency, add_period
from .exceptions import InvalidLoanTermsError
from .logging_config import get_logger
from .loans import InterestType, Installment, Loan, LoanTerms

logger = get_logger("finance_core.amortization")

_BISECTION_ITERATIONS = 200


@dataclass
class ScheduleSummary:
    """Totals over a generated schedule"""
    number_of_installments: int
    total_principal: Money
    total_interest: Money
    total_amount: Money
    first_due_date: date
    last_due_date: date
    balances: List[Money] = field(default_factory=list)   # Principal outstanding after each installment


class AmortizationEngine:
    """
    Generates installment schedules for loans
    """

    def generate_schedule(self, loan: Loan) -> List[Installment]:
        """
        Generate the full installment schedule for a loan

        Args:
            loan: Loan whose terms drive the schedule

        Returns:
            Installments ordered by installment number
        """
        terms = loan.terms
        if terms.interest_type == InterestType.SIMPLE:
            rows = self._simple_rows(terms)
        elif terms.interest_type == InterestType.COMPOUND:
            rows = self._compound_rows(terms)
        else:
            raise InvalidLoanTermsError(f"Unsupported interest type: {terms.interest_type}")

        schedule = []
        for number, (principal_amount, interest_amount) in enumerate(rows, start=1):
            schedule.append(Installment(
                id=f"{loan.id}-inst-{number}",
                loan_id=loan.id,
                installment_number=number,
                due_date=add_period(terms.start_date, terms.installment_frequency, number),
                principal_amount=principal_amount,
                interest_amount=interest_amount,
                total_amount=principal_amount + interest_amount
            ))

        logger.debug(
            f"Generated {len(schedule)} installments for loan {loan.id} "
            f"({terms.interest_type.value}, {terms.installment_frequency.value})"
        )
        return schedule

    def calculate_total_interest(self, terms: LoanTerms) -> Money:
        """Total interest over the term for the chosen interest type"""
        if terms.interest_type == InterestType.SIMPLE:
            return terms.principal_amount * (terms.annual_interest_rate / Decimal('100') * terms.term_years)
        return sum_money([interest for _, interest in self._compound_rows(terms)], terms.currency)

    def calculate_level_payment(self, terms: LoanTerms) -> Money:
        """
        Per-installment payment

        For compound loans this is the annuity payment
        P * i / (1 - (1 + i)^-n), or P / n when the rate is zero. For simple
        loans it is the even share of principal plus total interest.
        """
        n = Decimal(terms.number_of_installments)
        if terms.interest_type == InterestType.SIMPLE:
            total = terms.principal_amount + self.calculate_total_interest(terms)
            return Money(total.amount / n, terms.currency)
        return Money(self._annuity_payment(terms.principal_amount.amount, terms.periodic_rate,
                                           terms.number_of_installments), terms.currency)

    def summarize(self, installments: List[Installment]) -> ScheduleSummary:
        """Summarize a schedule ordered by installment number"""
        if not installments:
            raise ValueError("Cannot summarize an empty schedule")

        ordered = sorted(installments, key=lambda i: i.installment_number)
        currency = ordered[0].currency
        balance = sum_money([i.principal_amount for i in ordered], currency)
        total_principal = balance

        balances = []
        for installment in ordered:
            balance = balance - installment.principal_amount
            balances.append(balance)

        return ScheduleSummary(
            number_of_installments=len(ordered),
            total_principal=total_principal,
            total_interest=sum_money([i.interest_amount for i in ordered], currency),
            total_amount=sum_money([i.total_amount for i in ordered], currency),
            first_due_date=ordered[0].due_date,
            last_due_date=ordered[-1].due_date,
            balances=balances
        )

    def rate_for_interest_amount(
        self,
        principal_amount: Money,
        interest_amount: Money,
        interest_type: InterestType,
        frequency: InstallmentFrequency,
        number_of_installments: int
    ) -> Decimal:
        """
        Annual percent rate that yields `interest_amount` over the term

        Lenders may enter the interest they want to earn instead of a rate.
        Simple interest inverts exactly; compound interest is solved by
        bisection on the annuity formula. Result has 4 decimal places.
        """
        terms = LoanTerms(
            principal_amount=principal_amount,
            annual_interest_rate=Decimal('0'),
            interest_type=interest_type,
            start_date=date(2000, 1, 1),
            installment_frequency=frequency,
            number_of_installments=number_of_installments
        )
        if interest_amount.currency != principal_amount.currency:
            raise InvalidLoanTermsError("Interest amount currency must match principal currency")
        if interest_amount.is_negative():
            raise InvalidLoanTermsError("Interest amount cannot be negative")
        if interest_amount.is_zero():
            return Decimal('0.0000')

        quantum = Decimal('0.0001')
        principal = principal_amount.amount
        target = interest_amount.amount

        if terms.interest_type == InterestType.SIMPLE:
            rate = target * Decimal('100') / (principal * terms.term_years)
            return rate.quantize(quantum, rounding=ROUND_HALF_UP)

        n = terms.number_of_installments
        period_years = terms.period_years

        def total_interest(rate: Decimal) -> Decimal:
            periodic = rate / Decimal('100') * period_years
            return self._annuity_payment(principal, periodic, n) * Decimal(n) - principal

        low, high = Decimal('0'), Decimal('100')
        while total_interest(high) < target:
            high *= 2
            if high > Decimal('1000000'):
                raise InvalidLoanTermsError("Interest amount is not reachable with any rate")

        for _ in range(_BISECTION_ITERATIONS):
            mid = (low + high) / 2
            if total_interest(mid) < target:
                low = mid
            else:
                high = mid
            if high - low < Decimal('0.000001'):
                break

        return ((low + high) / 2).quantize(quantum, rounding=ROUND_HALF_UP)

    def _simple_rows(self, terms: LoanTerms) -> List[Tuple[Money, Money]]:
        """Even principal and interest shares; the last row takes the remainders"""
        n = terms.number_of_installments
        total_interest = self.calculate_total_interest(terms)
        principal_share = terms.principal_amount / Decimal(n)
        interest_share = total_interest / Decimal(n)

        rows = []
        principal_left = terms.principal_amount
        interest_left = total_interest
        for _ in range(n - 1):
            principal_amount = min(principal_share, principal_left)
            interest_amount = min(interest_share, interest_left)
            principal_left = principal_left - principal_amount
            interest_left = interest_left - interest_amount
            rows.append((principal_amount, interest_amount))
        rows.append((principal_left, interest_left))
        return rows

    def _compound_rows(self, terms: LoanTerms) -> List[Tuple[Money, Money]]:
        """Level-payment amortization; the last row clears the balance exactly"""
        n = terms.number_of_installments
        periodic_rate = terms.periodic_rate
        payment = self.calculate_level_payment(terms)
        zero = Money.zero(terms.currency)

        rows = []
        balance = terms.principal_amount
        for number in range(1, n + 1):
            interest_amount = balance * periodic_rate

            if number == n:
                principal_amount = balance
            else:
                principal_amount = min(max(payment - interest_amount, zero), balance)

            balance = balance - principal_amount
            rows.append((principal_amount, interest_amount))
        return rows

    @staticmethod
    def _annuity_payment(principal: Decimal, periodic_rate: Decimal, periods: int) -> Decimal:
        if periodic_rate == Decimal('0'):
            return principal / Decimal(periods)
        return principal * periodic_rate / (Decimal('1') - (Decimal('1') + periodic_rate) ** -periods)


def generate_schedule(loan: Loan) -> List[Installment]:
    """Generate the installment schedule for a loan"""
    return AmortizationEngine().generate_schedule(loan)
