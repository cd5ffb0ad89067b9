"""
Test suite for rent statistics

Tests the rent dashboard, the monthly financial trend and the expense
breakdown over in-memory rental collections.
"""

import pytest
from decimal import Decimal
from datetime import date

from finance_core.currency import Currency, Money
from finance_core.rent import (
    MaintenanceRequest, Property, PropertyExpense, RentAgreement, RentPayment, Tenant
)
from finance_core.rent_statistics import (
    compute_rent_dashboard_stats, expenses_by_category, financial_trend
)


AS_OF = date(2024, 3, 10)


def usd(value: str) -> Money:
    return Money(Decimal(value), Currency.USD)


def rent_payment(payment_id, due, paid='0.00', payment_date=None) -> RentPayment:
    return RentPayment(
        id=payment_id,
        agreement_id="A1",
        property_id="P1",
        tenant_id="T1",
        due_date=due,
        amount=usd('1000.00'),
        paid_amount=usd(paid),
        payment_date=payment_date
    )


@pytest.fixture
def rentals():
    properties = [
        Property(id="P1", name="Marina Flat", property_type="apartment", address="1 Marina Walk", status="occupied"),
        Property(id="P2", name="Garden Villa", property_type="house", address="2 Palm Road", status="available"),
        Property(id="P3", name="Shop 4", property_type="commercial", address="3 Souk Lane", status="maintenance"),
    ]
    tenants = [
        Tenant(id="T1", name="Jordan Ali", phone="555-0101"),
        Tenant(id="T2", name="Riley Chen", phone="555-0102"),
    ]
    agreements = [
        RentAgreement(id="A1", property_id="P1", tenant_id="T1", start_date=date(2024, 1, 1),
                      end_date=date(2024, 4, 15), rent_amount=usd('1000.00')),
        RentAgreement(id="A2", property_id="P2", tenant_id="T2", start_date=date(2023, 1, 1),
                      end_date=date(2023, 12, 31), rent_amount=usd('800.00')),
    ]
    rent_payments = [
        rent_payment("RP1", date(2024, 2, 1), paid='1000.00', payment_date=date(2024, 2, 1)),
        rent_payment("RP2", date(2024, 3, 1)),
        rent_payment("RP3", date(2024, 4, 1)),
        rent_payment("RP4", date(2024, 3, 5), paid='300.00', payment_date=date(2024, 3, 5)),
    ]
    maintenance = [
        MaintenanceRequest(id="M1", property_id="P3", title="Repaint shopfront"),
        MaintenanceRequest(id="M2", property_id="P1", title="Fix boiler", status="completed"),
    ]
    expenses = [
        PropertyExpense(id="E1", property_id="P1", category="Repairs", amount=usd('150.00'),
                        expense_date=date(2024, 3, 3)),
        PropertyExpense(id="E2", property_id="P2", category="Utilities", amount=usd('50.00'),
                        expense_date=date(2024, 3, 8)),
        PropertyExpense(id="E3", property_id="P1", category="Repairs", amount=usd('80.00'),
                        expense_date=date(2024, 2, 10)),
    ]
    return properties, tenants, agreements, rent_payments, maintenance, expenses


class TestRentDashboard:
    """Test rent dashboard figures"""

    def test_counts(self, rentals):
        stats = compute_rent_dashboard_stats(*rentals, as_of=AS_OF)

        assert stats.currency == Currency.USD
        assert stats.total_properties == 3
        assert stats.occupied_properties == 1
        assert stats.vacant_properties == 1
        assert stats.total_tenants == 2
        assert stats.active_tenants == 1

    def test_money_figures(self, rentals):
        stats = compute_rent_dashboard_stats(*rentals, as_of=AS_OF)

        assert stats.total_rent_collected == usd('1300.00')
        assert stats.pending_rent == usd('2700.00')
        assert stats.overdue_rent == usd('1090.00')
        assert stats.monthly_income == usd('300.00')
        assert stats.monthly_expenses == usd('200.00')
        assert stats.net_income == usd('100.00')

    def test_lists(self, rentals):
        stats = compute_rent_dashboard_stats(*rentals, as_of=AS_OF)

        assert [p.id for p in stats.upcoming_rent_payments] == ["RP3"]
        assert [o.rent_payment.id for o in stats.overdue_payments] == ["RP2"]
        overdue = stats.overdue_payments[0]
        assert overdue.days_overdue == 9
        assert overdue.late_fee == usd('90.00')
        assert overdue.amount_due == usd('1090.00')
        assert [r.id for r in stats.maintenance_requests] == ["M1"]
        assert [a.id for a in stats.expiring_agreements] == ["A1"]

    def test_list_limit(self, rentals):
        properties, tenants, agreements, _, maintenance, expenses = rentals
        overdue = [rent_payment(f"RP{n}", date(2024, 1, n)) for n in range(1, 9)]

        stats = compute_rent_dashboard_stats(properties, tenants, agreements, overdue, maintenance,
                                             expenses, as_of=AS_OF)
        assert len(stats.overdue_payments) == 5
        assert [o.rent_payment.id for o in stats.overdue_payments][:2] == ["RP1", "RP2"]

        stats = compute_rent_dashboard_stats(properties, tenants, agreements, overdue, maintenance,
                                             expenses, as_of=AS_OF, list_limit=2)
        assert len(stats.overdue_payments) == 2

    def test_empty(self):
        stats = compute_rent_dashboard_stats([], [], [], [], [], [], as_of=AS_OF)
        assert stats.total_properties == 0
        assert stats.total_rent_collected.is_zero()
        assert stats.expiring_agreements == []


class TestFinancialTrend:
    """Test the monthly income and expense trend"""

    def test_trend(self, rentals):
        _, _, _, rent_payments, _, expenses = rentals
        points = financial_trend(rent_payments, expenses)

        assert [p.period for p in points] == ["2024-02", "2024-03"]
        february, march = points
        assert february.income == usd('1000.00')
        assert february.expenses == usd('80.00')
        assert february.net == usd('920.00')
        assert march.income == usd('300.00')
        assert march.net == usd('100.00')

    def test_month_limit(self, rentals):
        _, _, _, rent_payments, _, expenses = rentals
        assert [p.period for p in financial_trend(rent_payments, expenses, months=1)] == ["2024-03"]
        assert financial_trend(rent_payments, expenses, months=0) == []


class TestExpensesByCategory:
    """Test the current-month expense breakdown"""

    def test_breakdown(self, rentals):
        expenses = rentals[-1]
        assert expenses_by_category(expenses, AS_OF) == [
            ("Repairs", usd('150.00')),
            ("Utilities", usd('50.00')),
        ]

    def test_uncategorized(self):
        expense = PropertyExpense(id="E9", property_id="P1", category="", amount=usd('5.00'),
                                  expense_date=AS_OF)
        assert expenses_by_category([expense], AS_OF) == [("Other", usd('5.00'))]
