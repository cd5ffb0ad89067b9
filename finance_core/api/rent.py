"""
Rental dashboard and rent payment endpoints
"""

from fastapi import APIRouter, HTTPException

from .schemas import (
    MoneyModel,
    RecordRentPaymentRequest,
    RentAgreementModel,
    RentDashboardRequest,
    RentPaymentModel,
    resolve_as_of
)
from ..dates import format_date, parse_date
from ..rent import record_rent_payment
from ..rent_statistics import compute_rent_dashboard_stats, expenses_by_category, financial_trend


router = APIRouter()


@router.post("/dashboard")
async def get_rent_dashboard(request: RentDashboardRequest):
    """Rent dashboard figures as of a date"""
    try:
        as_of = resolve_as_of(request.as_of)
        rent_payments = [p.to_rent_payment() for p in request.rent_payments]
        expenses = [e.to_expense() for e in request.expenses]
        stats = compute_rent_dashboard_stats(
            properties=[p.to_property() for p in request.properties],
            tenants=[t.to_tenant() for t in request.tenants],
            agreements=[a.to_agreement() for a in request.agreements],
            rent_payments=rent_payments,
            maintenance_requests=[m.to_request() for m in request.maintenance_requests],
            expenses=expenses,
            as_of=as_of
        )

        return {
            "as_of": format_date(as_of),
            "currency": stats.currency.code,
            "total_properties": stats.total_properties,
            "occupied_properties": stats.occupied_properties,
            "vacant_properties": stats.vacant_properties,
            "total_tenants": stats.total_tenants,
            "active_tenants": stats.active_tenants,
            "total_rent_collected": MoneyModel.from_money(stats.total_rent_collected),
            "pending_rent": MoneyModel.from_money(stats.pending_rent),
            "overdue_rent": MoneyModel.from_money(stats.overdue_rent),
            "monthly_income": MoneyModel.from_money(stats.monthly_income),
            "monthly_expenses": MoneyModel.from_money(stats.monthly_expenses),
            "net_income": MoneyModel.from_money(stats.net_income),
            "upcoming_rent_payments": [
                RentPaymentModel.from_rent_payment(p, as_of) for p in stats.upcoming_rent_payments
            ],
            "overdue_payments": [
                {
                    "rent_payment": RentPaymentModel.from_rent_payment(o.rent_payment, as_of),
                    "days_overdue": o.days_overdue,
                    "late_fee": MoneyModel.from_money(o.late_fee),
                    "amount_due": MoneyModel.from_money(o.amount_due)
                }
                for o in stats.overdue_payments
            ],
            "maintenance_requests": [
                {"id": r.id, "property_id": r.property_id, "title": r.title, "priority": r.priority.value}
                for r in stats.maintenance_requests
            ],
            "expiring_agreements": [
                RentAgreementModel.from_agreement(a, as_of) for a in stats.expiring_agreements
            ],
            "financial_trend": [
                {
                    "period": point.period,
                    "income": MoneyModel.from_money(point.income),
                    "expenses": MoneyModel.from_money(point.expenses),
                    "net": MoneyModel.from_money(point.net)
                }
                for point in financial_trend(rent_payments, expenses, currency=stats.currency)
            ],
            "expenses_by_category": [
                {"category": category, "amount": MoneyModel.from_money(amount)}
                for category, amount in expenses_by_category(expenses, as_of, currency=stats.currency)
            ]
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/payments")
async def record_payment(request: RecordRentPaymentRequest):
    """Record money received against a rent payment"""
    try:
        payment_date = parse_date(request.payment_date)
        updated = record_rent_payment(
            request.rent_payment.to_rent_payment(),
            request.amount.to_money(),
            payment_date,
            method=request.method,
            transaction_id=request.transaction_id
        )
        return {"rent_payment": RentPaymentModel.from_rent_payment(updated, payment_date)}

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
