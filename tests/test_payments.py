"""
Test suite for the payment ledger

Tests status derivation, payment application with carry-forward, the
principal/interest split and rejection of invalid payments.
"""

import pytest
from decimal import Decimal
from datetime import date
from dataclasses import replace

from finance_core.amortization import AmortizationEngine
from finance_core.currency import Money, Currency, sum_money
from finance_core.exceptions import InvalidPaymentError
from finance_core.loans import (
    Installment, Loan, LoanStatus, LoanTerms, PaymentStatus
)
from finance_core.payments import (
    PaymentLedger, derive_installment_status, derive_loan_status, record_payment
)


def usd(value: str) -> Money:
    return Money(Decimal(value), Currency.USD)


def make_loan(status=LoanStatus.ACTIVE, interest_type="simple") -> Loan:
    terms = LoanTerms(
        principal_amount=usd('1200.00'),
        annual_interest_rate=Decimal('12'),
        interest_type=interest_type,
        start_date=date(2024, 1, 1),
        installment_frequency="monthly",
        number_of_installments=12
    )
    return Loan(id="L1", customer_id="C1", terms=terms, borrower_name="Sam Lee", status=status)


def single_installment(total='100.00', paid='0.00', due=date(2024, 1, 1)) -> Installment:
    return Installment(
        id="I1",
        loan_id="L1",
        installment_number=1,
        due_date=due,
        principal_amount=usd(total),
        interest_amount=usd('0.00'),
        total_amount=usd(total),
        paid_amount=usd(paid)
    )


@pytest.fixture
def loan():
    return make_loan()


@pytest.fixture
def schedule(loan):
    """Twelve installments of 100.00 principal + 12.00 interest"""
    return AmortizationEngine().generate_schedule(loan)


@pytest.fixture
def ledger():
    return PaymentLedger()


class TestInstallmentStatus:
    """Test the derived installment status"""

    def test_overdue_after_due_date(self):
        installment = single_installment()
        assert derive_installment_status(installment, date(2024, 2, 1)) == PaymentStatus.OVERDUE

    def test_pending_on_due_date(self):
        installment = single_installment()
        assert derive_installment_status(installment, date(2024, 1, 1)) == PaymentStatus.PENDING
        assert derive_installment_status(installment, date(2023, 12, 1)) == PaymentStatus.PENDING

    def test_partial_regardless_of_due_date(self):
        installment = single_installment(paid='40.00')
        assert derive_installment_status(installment, date(2024, 2, 1)) == PaymentStatus.PARTIAL
        assert derive_installment_status(installment, date(2023, 12, 1)) == PaymentStatus.PARTIAL

    def test_paid(self):
        installment = single_installment(paid='100.00')
        assert derive_installment_status(installment, date(2030, 1, 1)) == PaymentStatus.PAID

    def test_pure(self):
        installment = single_installment(paid='40.00')
        first = derive_installment_status(installment, date(2024, 2, 1))
        second = derive_installment_status(installment, date(2024, 2, 1))
        assert first == second
        assert installment.paid_amount == usd('40.00')


class TestLoanStatus:
    """Test the derived loan status"""

    def test_active(self, loan, schedule):
        assert derive_loan_status(loan, schedule, date(2024, 1, 15)) == LoanStatus.ACTIVE

    def test_overdue(self, loan, schedule):
        assert derive_loan_status(loan, schedule, date(2024, 2, 2)) == LoanStatus.OVERDUE

    def test_completed(self, loan, schedule):
        paid = [
            replace(i, paid_amount=i.total_amount) for i in schedule
        ]
        assert derive_loan_status(loan, paid, date(2030, 1, 1)) == LoanStatus.COMPLETED

    def test_defaulted_is_sticky(self, schedule):
        loan = make_loan(status=LoanStatus.DEFAULTED)
        assert derive_loan_status(loan, schedule, date(2024, 1, 15)) == LoanStatus.DEFAULTED

    def test_other_loans_ignored(self, loan, schedule):
        stray = Installment(
            id="L2-inst-1", loan_id="L2", installment_number=1, due_date=date(2023, 1, 1),
            principal_amount=usd('10.00'), interest_amount=usd('0.00'), total_amount=usd('10.00')
        )
        assert derive_loan_status(loan, schedule + [stray], date(2024, 1, 15)) == LoanStatus.ACTIVE

    def test_without_loan(self, schedule):
        assert derive_loan_status(None, schedule, date(2024, 2, 2)) == LoanStatus.OVERDUE


class TestRecordPayment:
    """Test applying payments to a schedule"""

    def test_full_payment(self, ledger, loan, schedule):
        result = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1), loan=loan)
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-1"].paid_amount == usd('112.00')
        assert updated["L1-inst-1"].paid_date == date(2024, 2, 1)
        assert updated["L1-inst-1"].status_as_of(date(2024, 2, 1)) == PaymentStatus.PAID
        for number in range(2, 13):
            assert updated[f"L1-inst-{number}"].paid_amount == usd('0.00')

        payment = result.payment
        assert payment.loan_id == "L1"
        assert payment.installment_id == "L1-inst-1"
        assert payment.amount == usd('112.00')
        assert payment.principal_amount == usd('100.00')
        assert payment.interest_amount == usd('12.00')
        assert payment.unapplied_amount == usd('0.00')
        assert payment.allocations == (("L1-inst-1", usd('112.00')),)
        assert payment.method == "Cash"
        assert result.loan_status == LoanStatus.ACTIVE

    def test_inputs_not_mutated(self, ledger, schedule):
        ledger.record_payment(schedule, "L1-inst-1", usd('200.00'), date(2024, 2, 1))
        assert all(i.paid_amount == usd('0.00') for i in schedule)

    def test_partial_payment_split(self, ledger, schedule):
        result = ledger.record_payment(schedule, "L1-inst-1", usd('50.00'), date(2024, 1, 20))
        installment = result.updated_installments[0]

        assert installment.paid_amount == usd('50.00')
        assert installment.status_as_of(date(2024, 3, 1)) == PaymentStatus.PARTIAL
        assert result.payment.principal_amount == usd('44.64')
        assert result.payment.interest_amount == usd('5.36')

    def test_split_adds_up_once_paid(self, ledger, schedule):
        """Payments that complete an installment sum to its exact split"""
        current = schedule
        payments = []
        for amount in ('33.33', '33.33', '45.34'):
            result = ledger.record_payment(current, "L1-inst-1", usd(amount), date(2024, 1, 20))
            current = result.updated_installments
            payments.append(result.payment)

        assert current[0].is_paid
        assert sum_money([p.principal_amount for p in payments], Currency.USD) == usd('100.00')
        assert sum_money([p.interest_amount for p in payments], Currency.USD) == usd('12.00')

    def test_overpayment_carries_forward(self, ledger, schedule):
        result = ledger.record_payment(schedule, "L1-inst-1", usd('150.00'), date(2024, 2, 1))
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-1"].paid_amount == usd('112.00')
        assert updated["L1-inst-2"].paid_amount == usd('38.00')
        assert updated["L1-inst-2"].status_as_of(date(2024, 2, 1)) == PaymentStatus.PARTIAL
        assert updated["L1-inst-3"].paid_amount == usd('0.00')
        assert result.payment.allocations == (
            ("L1-inst-1", usd('112.00')),
            ("L1-inst-2", usd('38.00')),
        )
        assert result.payment.applied_amount == usd('150.00')

    def test_carry_forward_skips_paid_installments(self, ledger, schedule):
        current = ledger.record_payment(schedule, "L1-inst-2", usd('112.00'), date(2024, 2, 1)).updated_installments
        result = ledger.record_payment(current, "L1-inst-1", usd('124.00'), date(2024, 2, 1))
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-1"].paid_amount == usd('112.00')
        assert updated["L1-inst-2"].paid_amount == usd('112.00')
        assert updated["L1-inst-3"].paid_amount == usd('12.00')

    def test_carry_forward_never_backfills_earlier_installments(self, ledger, schedule):
        """Excess goes to the installment after the target, not to unpaid earlier ones"""
        result = ledger.record_payment(schedule, "L1-inst-3", usd('162.00'), date(2024, 2, 1))
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-1"].paid_amount == usd('0.00')
        assert updated["L1-inst-2"].paid_amount == usd('0.00')
        assert updated["L1-inst-3"].paid_amount == usd('112.00')
        assert updated["L1-inst-4"].paid_amount == usd('50.00')
        assert result.payment.unapplied_amount == usd('0.00')

    def test_excess_on_last_installment_discarded(self, ledger, schedule):
        result = ledger.record_payment(schedule, "L1-inst-12", usd('150.00'), date(2024, 2, 1))
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-12"].paid_amount == usd('112.00')
        assert updated["L1-inst-1"].paid_amount == usd('0.00')
        assert result.payment.unapplied_amount == usd('38.00')

    def test_excess_discarded_when_nothing_left(self, ledger, loan, schedule):
        result = ledger.record_payment(schedule, "L1-inst-1", usd('1400.00'), date(2024, 2, 1), loan=loan)

        assert all(i.paid_amount == i.total_amount for i in result.updated_installments)
        assert result.payment.unapplied_amount == usd('56.00')
        assert result.payment.applied_amount == usd('1344.00')
        assert result.loan_status == LoanStatus.COMPLETED

    def test_payment_on_paid_target_carries_forward(self, ledger, schedule):
        current = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1)).updated_installments
        result = ledger.record_payment(current, "L1-inst-1", usd('20.00'), date(2024, 2, 5))
        updated = {i.id: i for i in result.updated_installments}

        assert updated["L1-inst-1"].paid_amount == usd('112.00')
        assert updated["L1-inst-2"].paid_amount == usd('20.00')

    def test_other_loans_untouched(self, ledger, schedule):
        other = Installment(
            id="L2-inst-1", loan_id="L2", installment_number=1, due_date=date(2024, 1, 1),
            principal_amount=usd('10.00'), interest_amount=usd('0.00'), total_amount=usd('10.00')
        )
        result = ledger.record_payment(schedule + [other], "L1-inst-1", usd('2000.00'), date(2024, 2, 1))
        assert all(i.loan_id == "L1" for i in result.updated_installments)
        assert len(result.updated_installments) == 12
        assert result.payment.unapplied_amount == usd('656.00')

    def test_loan_status_derived_at_payment_date(self, ledger, loan, schedule):
        result = ledger.record_payment(schedule, "L1-inst-2", usd('112.00'), date(2024, 3, 5), loan=loan)
        assert result.loan_status == LoanStatus.OVERDUE

    def test_deterministic_ids(self, ledger, schedule):
        first = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1))
        second = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1))
        third = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 2))

        assert first.payment.id == second.payment.id
        assert first.payment.id != third.payment.id
        assert first.updated_installments == second.updated_installments

    def test_repeat_payments_on_paid_target_get_distinct_ids(self, ledger, schedule):
        current = ledger.record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1)).updated_installments
        first = ledger.record_payment(current, "L1-inst-1", usd('10.00'), date(2024, 2, 5))
        second = ledger.record_payment(first.updated_installments, "L1-inst-1", usd('10.00'), date(2024, 2, 5))

        assert first.payment.id != second.payment.id
        assert {i.id: i for i in second.updated_installments}["L1-inst-2"].paid_amount == usd('20.00')

    def test_explicit_payment_id(self, ledger, schedule):
        result = ledger.record_payment(schedule, "L1-inst-1", usd('1.00'), date(2024, 2, 1),
                                       method="Bank Transfer", notes="first", payment_id="P-1")
        assert result.payment.id == "P-1"
        assert result.payment.method == "Bank Transfer"
        assert result.payment.notes == "first"

    def test_module_level_helper(self, schedule):
        result = record_payment(schedule, "L1-inst-1", usd('112.00'), date(2024, 2, 1), "UPI")
        assert result.payment.method == "UPI"


class TestRejectedPayments:
    """Test payments that must be refused"""

    @pytest.mark.parametrize("amount", ['0.00', '-5.00'])
    def test_non_positive_amount(self, ledger, schedule, amount):
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(schedule, "L1-inst-1", usd(amount), date(2024, 2, 1))

    def test_amount_must_be_money(self, ledger, schedule):
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(schedule, "L1-inst-1", Decimal('10'), date(2024, 2, 1))

    def test_unknown_installment(self, ledger, schedule):
        with pytest.raises(InvalidPaymentError, match="not found"):
            ledger.record_payment(schedule, "L1-inst-99", usd('10.00'), date(2024, 2, 1))

    def test_currency_mismatch(self, ledger, schedule):
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(schedule, "L1-inst-1", Money(Decimal('10.00'), Currency.EUR), date(2024, 2, 1))

    def test_defaulted_loan(self, ledger, schedule):
        with pytest.raises(InvalidPaymentError, match="defaulted"):
            ledger.record_payment(schedule, "L1-inst-1", usd('10.00'), date(2024, 2, 1),
                                  loan=make_loan(status=LoanStatus.DEFAULTED))

    def test_fully_paid_loan(self, ledger, schedule):
        paid = ledger.record_payment(schedule, "L1-inst-1", usd('1344.00'), date(2024, 2, 1)).updated_installments
        with pytest.raises(InvalidPaymentError, match="fully paid"):
            ledger.record_payment(paid, "L1-inst-1", usd('1.00'), date(2024, 2, 2))

    def test_nothing_unpaid_after_target(self, ledger, schedule):
        paid = ledger.record_payment(schedule, "L1-inst-12", usd('112.00'), date(2024, 2, 1)).updated_installments
        with pytest.raises(InvalidPaymentError, match="every installment after it"):
            ledger.record_payment(paid, "L1-inst-12", usd('1.00'), date(2024, 2, 2))

    def test_wrong_loan(self, ledger, schedule):
        other = Loan(id="L2", customer_id="C1", terms=make_loan().terms)
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(schedule, "L1-inst-1", usd('10.00'), date(2024, 2, 1), loan=other)


class TestReapplyPayments:
    """Test replaying payments onto a regenerated schedule"""

    def test_replay_after_terms_edit(self, ledger, loan, schedule):
        current = schedule
        payments = []
        for installment_id, amount, day in [("L1-inst-1", '112.00', date(2024, 2, 1)),
                                            ("L1-inst-2", '50.00', date(2024, 3, 1))]:
            result = ledger.record_payment(current, installment_id, usd(amount), day)
            current = result.updated_installments
            payments.append(result.payment)

        edited = make_loan(interest_type="compound")
        regenerated = AmortizationEngine().generate_schedule(edited)
        replayed_schedule, replayed = ledger.reapply_payments(regenerated, payments, loan=edited)

        assert [p.id for p in replayed] == [p.id for p in payments]
        total_paid = sum_money([i.paid_amount for i in replayed_schedule], Currency.USD)
        assert total_paid == usd('162.00')
        assert replayed_schedule[0].is_paid

    def test_missing_target_uses_earliest_unpaid(self, ledger, schedule):
        payments = [ledger.record_payment(schedule, "L1-inst-12", usd('10.00'), date(2024, 2, 1)).payment]
        shorter = AmortizationEngine().generate_schedule(
            Loan(id="L1", customer_id="C1", terms=LoanTerms(
                principal_amount=usd('600.00'), annual_interest_rate=Decimal('12'),
                interest_type="simple", start_date=date(2024, 1, 1),
                installment_frequency="monthly", number_of_installments=6
            ))
        )
        replayed_schedule, replayed = ledger.reapply_payments(shorter, payments)
        assert replayed_schedule[0].paid_amount == usd('10.00')
        assert replayed[0].installment_id == "L1-inst-1"

    def test_payments_after_payoff_dropped(self, ledger, schedule):
        first = ledger.record_payment(schedule, "L1-inst-1", usd('1344.00'), date(2024, 2, 1))
        late = ledger.record_payment(schedule, "L1-inst-1", usd('5.00'), date(2024, 3, 1))
        _, replayed = ledger.reapply_payments(schedule, [late.payment, first.payment])
        assert [p.id for p in replayed] == [first.payment.id]
