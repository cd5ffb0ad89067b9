"""
Loan schedule and payment endpoints
"""

from fastapi import APIRouter, HTTPException

from .schemas import (
    InstallmentModel,
    InstallmentStatusRequest,
    InterestRateRequest,
    MoneyModel,
    PaymentModel,
    RecordPaymentRequest,
    ScheduleRequest,
    resolve_as_of
)
from ..amortization import AmortizationEngine
from ..dates import InstallmentFrequency, format_date, parse_date
from ..loans import InterestType
from ..payments import PaymentLedger, derive_installment_status


router = APIRouter()


@router.post("/schedule")
async def generate_schedule(request: ScheduleRequest):
    """Generate the installment schedule for a loan"""
    try:
        as_of = resolve_as_of(request.as_of)
        loan = request.loan.to_loan()
        engine = AmortizationEngine()
        installments = engine.generate_schedule(loan)
        summary = engine.summarize(installments)

        return {
            "loan_id": loan.id,
            "end_date": format_date(loan.end_date),
            "installment_amount": MoneyModel.from_money(engine.calculate_level_payment(loan.terms)),
            "installments": [InstallmentModel.from_installment(i, as_of) for i in installments],
            "summary": {
                "number_of_installments": summary.number_of_installments,
                "total_principal": MoneyModel.from_money(summary.total_principal),
                "total_interest": MoneyModel.from_money(summary.total_interest),
                "total_amount": MoneyModel.from_money(summary.total_amount),
                "first_due_date": format_date(summary.first_due_date),
                "last_due_date": format_date(summary.last_due_date)
            }
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/payments")
async def record_payment(request: RecordPaymentRequest):
    """Record a payment against an installment"""
    try:
        payment_date = parse_date(request.payment_date)
        result = PaymentLedger().record_payment(
            installments=[i.to_installment() for i in request.installments],
            installment_id=request.installment_id,
            amount=request.amount.to_money(),
            payment_date=payment_date,
            method=request.method,
            loan=request.loan.to_loan() if request.loan else None,
            notes=request.notes
        )

        return {
            "payment": PaymentModel.from_payment(result.payment),
            "installments": [
                InstallmentModel.from_installment(i, payment_date) for i in result.updated_installments
            ],
            "loan_status": result.loan_status.value
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/installment-status")
async def get_installment_status(request: InstallmentStatusRequest):
    """Derive an installment's payment status as of a date"""
    try:
        installment = request.installment.to_installment()
        status = derive_installment_status(installment, parse_date(request.as_of))
        return {"installment_id": installment.id, "status": status.value}

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/interest-rate")
async def get_interest_rate(request: InterestRateRequest):
    """Annual rate that earns a given interest amount over the term"""
    try:
        rate = AmortizationEngine().rate_for_interest_amount(
            principal_amount=request.principal_amount.to_money(),
            interest_amount=request.interest_amount.to_money(),
            interest_type=InterestType(request.interest_type),
            frequency=InstallmentFrequency(request.installment_frequency),
            number_of_installments=request.number_of_installments
        )
        return {"annual_interest_rate": str(rate)}

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
