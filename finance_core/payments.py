"""
Payment Ledger Module

Applies recorded payments to installments. A payment lands on its target
installment first; any excess carries forward to the unpaid installments that
fall after it in due-date order, and whatever is left once those are paid is
discarded (reported on the Payment as unapplied_amount). Earlier installments
are never back-filled.

Installment and loan statuses are never stored: they are derived on every
read from paid amount, total amount, due date and an explicit as-of date.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple
import uuid

from .currency import Money, sum_money
from .exceptions import InvalidPaymentError
from .logging_config import get_logger, log_action
from .loans import Installment, Loan, LoanStatus, Payment, PaymentStatus

logger = get_logger("finance_core.payments")


def derive_installment_status(installment: Installment, as_of: date) -> PaymentStatus:
    """
    Payment status of an installment as of a date

    paid if fully paid, else partial if anything was paid, else overdue once
    `as_of` is past the due date, else pending.
    """
    if installment.paid_amount >= installment.total_amount:
        return PaymentStatus.PAID
    if installment.paid_amount.is_positive():
        return PaymentStatus.PARTIAL
    if as_of > installment.due_date:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def derive_loan_status(loan: Optional[Loan], installments: List[Installment], as_of: date) -> LoanStatus:
    """
    Loan status as of a date

    A manually defaulted loan stays defaulted. Otherwise completed when every
    installment is paid, overdue when any installment is overdue, else active.
    When `loan` is given only its own installments are considered.
    """
    if loan is not None:
        if loan.status == LoanStatus.DEFAULTED:
            return LoanStatus.DEFAULTED
        installments = [i for i in installments if i.loan_id == loan.id]

    statuses = [derive_installment_status(i, as_of) for i in installments]
    if statuses and all(s == PaymentStatus.PAID for s in statuses):
        return LoanStatus.COMPLETED
    if any(s == PaymentStatus.OVERDUE for s in statuses):
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


@dataclass
class PaymentResult:
    """Outcome of recording a payment"""
    updated_installments: List[Installment]   # Whole schedule of the paid loan, by installment number
    payment: Payment
    loan_status: LoanStatus                   # Derived as of the payment date


class PaymentLedger:
    """
    Records payments against installment schedules
    """

    def record_payment(
        self,
        installments: List[Installment],
        installment_id: str,
        amount: Money,
        payment_date: date,
        method: str = "Cash",
        loan: Optional[Loan] = None,
        notes: Optional[str] = None,
        payment_id: Optional[str] = None
    ) -> PaymentResult:
        """
        Record a payment against an installment

        Args:
            installments: Installments of the loan (others are ignored)
            installment_id: Target installment
            amount: Amount tendered
            payment_date: Date of payment
            method: Payment method label, e.g. Cash or Bank Transfer
            loan: Owning loan; when given, defaulted loans are rejected and
                the manual status is honoured in the returned loan status
            notes: Free text stored on the payment
            payment_id: Explicit id; defaults to a deterministic id

        Returns:
            PaymentResult with new installment objects; inputs are not mutated

        Raises:
            InvalidPaymentError: Non-positive amount, unknown installment,
                currency mismatch, a defaulted loan, or nothing unpaid
                from the target onwards
        """
        if not isinstance(amount, Money):
            raise InvalidPaymentError("Payment amount must be Money")
        if not amount.is_positive():
            raise InvalidPaymentError(f"Payment amount must be positive, got {amount.to_string()}")

        target = next((i for i in installments if i.id == installment_id), None)
        if target is None:
            raise InvalidPaymentError(f"Installment {installment_id} not found")
        if amount.currency != target.currency:
            raise InvalidPaymentError(
                f"Payment currency {amount.currency.code} does not match installment "
                f"currency {target.currency.code}"
            )

        if loan is not None:
            if loan.id != target.loan_id:
                raise InvalidPaymentError(
                    f"Installment {installment_id} does not belong to loan {loan.id}"
                )
            if loan.status == LoanStatus.DEFAULTED:
                raise InvalidPaymentError(f"Loan {loan.id} is defaulted")

        schedule = [i for i in installments if i.loan_id == target.loan_id]
        if all(i.is_paid for i in schedule):
            raise InvalidPaymentError(f"Loan {target.loan_id} is already fully paid")
        if all(i.is_paid for i in self._allocation_order(schedule, target)):
            raise InvalidPaymentError(
                f"Installment {installment_id} and every installment after it are already paid"
            )

        updated: Dict[str, Installment] = {i.id: i for i in schedule}
        allocations: List[Tuple[str, Money]] = []
        principal_total = Money.zero(amount.currency)
        interest_total = Money.zero(amount.currency)
        remaining = amount

        for installment in self._allocation_order(schedule, target):
            if remaining.is_zero():
                break
            due = installment.remaining_amount
            if not due.is_positive():
                continue

            applied = min(remaining, due)
            principal_part, interest_part = self._split(installment, applied)

            updated[installment.id] = replace(
                installment,
                paid_amount=installment.paid_amount + applied,
                paid_date=payment_date
            )
            allocations.append((installment.id, applied))
            principal_total = principal_total + principal_part
            interest_total = interest_total + interest_part
            remaining = remaining - applied

        payment = Payment(
            id=payment_id or self._payment_id(schedule, target, amount, payment_date, method),
            loan_id=target.loan_id,
            installment_id=target.id,
            amount=amount,
            principal_amount=principal_total,
            interest_amount=interest_total,
            payment_date=payment_date,
            method=method,
            unapplied_amount=remaining,
            allocations=tuple(allocations),
            notes=notes
        )

        new_schedule = sorted(updated.values(), key=lambda i: i.installment_number)
        loan_status = derive_loan_status(loan, new_schedule, payment_date)

        log_action(
            logger, "info",
            f"Recorded payment {payment.id} of {amount.to_string()} on installment "
            f"{target.id} across {len(allocations)} installment(s)",
            action="record_payment", resource=target.id,
            extra={"loan_id": target.loan_id, "allocations": len(allocations)}
        )
        if remaining.is_positive():
            log_action(
                logger, "warning",
                f"Discarded {remaining.to_string()} of payment {payment.id}: "
                f"no unpaid installments left after {target.id}",
                action="discard_excess", resource=target.id,
                extra={"loan_id": target.loan_id, "unapplied": str(remaining.amount)}
            )

        return PaymentResult(
            updated_installments=new_schedule,
            payment=payment,
            loan_status=loan_status
        )

    def reapply_payments(
        self,
        installments: List[Installment],
        payments: List[Payment],
        loan: Optional[Loan] = None
    ) -> Tuple[List[Installment], List[Payment]]:
        """
        Replay recorded payments onto a regenerated schedule

        Used after loan terms are edited and the schedule is rebuilt. Payments
        are replayed in date order, keeping their ids, amounts and methods.
        A payment whose original installment no longer exists, or has nothing
        unpaid from it onwards, targets the earliest unpaid installment.
        Payments arriving after the schedule is fully paid are dropped and
        logged.

        Returns:
            The updated schedule and the re-recorded payments
        """
        current = list(installments)
        replayed: List[Payment] = []

        for payment in sorted(payments, key=lambda p: (p.payment_date, p.id)):
            if all(i.is_paid for i in current):
                logger.warning(f"Dropping payment {payment.id}: schedule already fully paid")
                continue

            target = next((i for i in current if i.id == payment.installment_id), None)
            target_id = payment.installment_id
            if target is None or all(i.is_paid for i in self._allocation_order(current, target)):
                earliest = min(
                    (i for i in current if not i.is_paid),
                    key=lambda i: (i.due_date, i.installment_number)
                )
                target_id = earliest.id

            result = self.record_payment(
                current,
                target_id,
                payment.amount,
                payment.payment_date,
                method=payment.method,
                loan=loan,
                notes=payment.notes,
                payment_id=payment.id
            )
            current = result.updated_installments
            replayed.append(result.payment)

        return current, replayed

    @staticmethod
    def _allocation_order(schedule: List[Installment], target: Installment) -> List[Installment]:
        """Target first, then the installments after it by due date"""
        position = (target.due_date, target.installment_number)
        later = sorted(
            (i for i in schedule
             if i.loan_id == target.loan_id and (i.due_date, i.installment_number) > position),
            key=lambda i: (i.due_date, i.installment_number)
        )
        return [target] + later

    @staticmethod
    def _split(installment: Installment, applied: Money) -> Tuple[Money, Money]:
        """
        Principal/interest split of an amount applied to an installment

        Proportional to the installment's own split. Computed on cumulative
        paid amounts so that a fully paid installment's payments add up to
        its principal and interest portions exactly.
        """
        total = installment.total_amount.amount
        if total == Decimal('0'):
            return applied, Money.zero(applied.currency)

        ratio = installment.principal_amount.amount / total
        before = Money(installment.paid_amount.amount * ratio, applied.currency)
        after = Money((installment.paid_amount + applied).amount * ratio, applied.currency)
        if installment.paid_amount + applied >= installment.total_amount:
            after = installment.principal_amount

        principal_part = after - before
        return principal_part, applied - principal_part

    @staticmethod
    def _payment_id(
        schedule: List[Installment],
        target: Installment,
        amount: Money,
        payment_date: date,
        method: str
    ) -> str:
        # Loan-wide paid total so repeat payments on a settled target differ
        paid_so_far = sum_money([i.paid_amount for i in schedule], amount.currency)
        key = "|".join([
            target.id,
            payment_date.isoformat(),
            str(amount.amount),
            amount.currency.code,
            str(paid_so_far.amount),
            method,
        ])
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"finance-core:payment:{key}"))


def record_payment(
    installments: List[Installment],
    installment_id: str,
    amount: Money,
    payment_date: date,
    method: str = "Cash",
    **kwargs
) -> PaymentResult:
    """Record a payment; see PaymentLedger.record_payment"""
    return PaymentLedger().record_payment(
        installments, installment_id, amount, payment_date, method, **kwargs
    )
