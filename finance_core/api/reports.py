"""
Loan dashboard and reporting endpoints
"""

from fastapi import APIRouter, HTTPException

from .schemas import (
    DashboardRequest,
    InstallmentModel,
    MoneyModel,
    MonthlyReportRequest,
    parse_currency,
    resolve_as_of
)
from ..dates import format_date
from ..statistics import StatisticsAggregator


router = APIRouter()


@router.post("/dashboard")
async def get_dashboard(request: DashboardRequest):
    """Loan dashboard figures as of a date"""
    try:
        as_of = resolve_as_of(request.as_of)
        currency = parse_currency(request.currency) if request.currency else None
        stats = StatisticsAggregator(currency=currency).compute_dashboard_stats(
            loans=[l.to_loan() for l in request.loans],
            installments=[i.to_installment() for i in request.installments],
            payments=[p.to_payment() for p in request.payments],
            as_of=as_of,
            upcoming_window_days=request.upcoming_window_days,
            upcoming_limit=request.upcoming_limit
        )

        return {
            "as_of": format_date(as_of),
            "currency": stats.currency.code,
            "total_loans_count": stats.total_loans_count,
            "active_loans_count": stats.active_loans_count,
            "completed_loans_count": stats.completed_loans_count,
            "overdue_loans_count": stats.overdue_loans_count,
            "defaulted_loans_count": stats.defaulted_loans_count,
            "total_amount_lent": MoneyModel.from_money(stats.total_amount_lent),
            "total_amount_to_receive": MoneyModel.from_money(stats.total_amount_to_receive),
            "total_amount_received": MoneyModel.from_money(stats.total_amount_received),
            "total_interest_earned": MoneyModel.from_money(stats.total_interest_earned),
            "total_principal_received": MoneyModel.from_money(stats.total_principal_received),
            "total_outstanding": MoneyModel.from_money(stats.total_outstanding),
            "total_principal_outstanding": MoneyModel.from_money(stats.total_principal_outstanding),
            "upcoming_payments": [
                InstallmentModel.from_installment(i, as_of) for i in stats.upcoming_payments
            ],
            "overdue_payments": [
                InstallmentModel.from_installment(i, as_of) for i in stats.overdue_payments
            ]
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/monthly")
async def get_monthly_reports(request: MonthlyReportRequest):
    """Loans created and payments received per month, newest first"""
    try:
        currency = parse_currency(request.currency) if request.currency else None
        reports = StatisticsAggregator(currency=currency).monthly_reports(
            loans=[l.to_loan() for l in request.loans],
            payments=[p.to_payment() for p in request.payments]
        )

        return {
            "months": [
                {
                    "month": r.month,
                    "label": r.label,
                    "loans_created": r.loans_created,
                    "amount_lent": MoneyModel.from_money(r.amount_lent),
                    "payments_received": r.payments_received,
                    "amount_received": MoneyModel.from_money(r.amount_received),
                    "interest_earned": MoneyModel.from_money(r.interest_earned)
                }
                for r in reports
            ]
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/customers")
async def get_customer_reports(request: DashboardRequest):
    """Per-borrower totals"""
    try:
        as_of = resolve_as_of(request.as_of)
        currency = parse_currency(request.currency) if request.currency else None
        reports = StatisticsAggregator(currency=currency).customer_reports(
            loans=[l.to_loan() for l in request.loans],
            installments=[i.to_installment() for i in request.installments],
            payments=[p.to_payment() for p in request.payments],
            as_of=as_of
        )

        return {
            "customers": [
                {
                    "customer_id": r.customer_id,
                    "borrower_name": r.borrower_name,
                    "total_lent": MoneyModel.from_money(r.total_lent),
                    "total_due": MoneyModel.from_money(r.total_due),
                    "total_paid": MoneyModel.from_money(r.total_paid),
                    "principal_paid": MoneyModel.from_money(r.principal_paid),
                    "interest_paid": MoneyModel.from_money(r.interest_paid),
                    "outstanding": MoneyModel.from_money(r.outstanding),
                    "active_loans": r.active_loans,
                    "completed_loans": r.completed_loans,
                    "overdue_installments": r.overdue_installments,
                    "loan_ids": r.loan_ids
                }
                for r in reports
            ]
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
