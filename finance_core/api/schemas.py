"""
Pydantic schemas for API requests and responses

Dates travel as DD-MM-YYYY strings and amounts as decimal strings, matching
what the app stores.
"""

from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field

from ..currency import Money, Currency, decimal_from_string
from ..dates import format_date, parse_date
from ..loans import Installment, Loan, LoanTerms, Payment
from ..rent import (
    MaintenanceRequest, Property, PropertyExpense, RentAgreement, RentPayment, Tenant,
    derive_agreement_status, derive_rent_payment_status
)


def _parse_optional(value: Optional[str]) -> Optional[date]:
    return parse_date(value) if value else None


def _format_optional(value: Optional[date]) -> Optional[str]:
    return format_date(value) if value else None


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (USD, AED, etc.)")

    def to_money(self) -> Money:
        return Money(decimal_from_string(self.amount), parse_currency(self.currency))

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


def _money_or_none(model: Optional[MoneyModel]) -> Optional[Money]:
    return model.to_money() if model else None


def _model_or_none(money: Optional[Money]) -> Optional[MoneyModel]:
    return MoneyModel.from_money(money) if money is not None else None


# Loan schemas
class LoanTermsModel(BaseModel):
    principal_amount: MoneyModel
    annual_interest_rate: str = Field(..., description="Percent as decimal string, e.g. 12")
    interest_type: str = Field(..., description="simple or compound")
    start_date: str = Field(..., description="DD-MM-YYYY")
    installment_frequency: str = Field(..., description="weekly, biweekly, monthly, quarterly or yearly")
    number_of_installments: int

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal_amount=self.principal_amount.to_money(),
            annual_interest_rate=decimal_from_string(self.annual_interest_rate),
            interest_type=self.interest_type,
            start_date=parse_date(self.start_date),
            installment_frequency=self.installment_frequency,
            number_of_installments=self.number_of_installments
        )

    @classmethod
    def from_loan_terms(cls, terms: LoanTerms) -> 'LoanTermsModel':
        return cls(
            principal_amount=MoneyModel.from_money(terms.principal_amount),
            annual_interest_rate=str(terms.annual_interest_rate),
            interest_type=terms.interest_type.value,
            start_date=format_date(terms.start_date),
            installment_frequency=terms.installment_frequency.value,
            number_of_installments=terms.number_of_installments
        )


class LoanModel(BaseModel):
    id: str
    customer_id: str
    terms: LoanTermsModel
    borrower_name: str = ""
    borrower_phone: str = ""
    end_date: Optional[str] = None
    status: str = "active"
    notes: Optional[str] = None
    created_at: Optional[str] = None

    def to_loan(self) -> Loan:
        return Loan(
            id=self.id,
            customer_id=self.customer_id,
            terms=self.terms.to_loan_terms(),
            borrower_name=self.borrower_name,
            borrower_phone=self.borrower_phone,
            end_date=_parse_optional(self.end_date),
            status=self.status,
            notes=self.notes,
            created_at=_parse_optional(self.created_at)
        )


class InstallmentModel(BaseModel):
    id: str
    loan_id: str
    installment_number: int
    due_date: str
    principal_amount: MoneyModel
    interest_amount: MoneyModel
    total_amount: MoneyModel
    paid_amount: Optional[MoneyModel] = None
    paid_date: Optional[str] = None
    status: Optional[str] = Field(None, description="Derived on output, ignored on input")
    notes: Optional[str] = None

    def to_installment(self) -> Installment:
        return Installment(
            id=self.id,
            loan_id=self.loan_id,
            installment_number=self.installment_number,
            due_date=parse_date(self.due_date),
            principal_amount=self.principal_amount.to_money(),
            interest_amount=self.interest_amount.to_money(),
            total_amount=self.total_amount.to_money(),
            paid_amount=_money_or_none(self.paid_amount),
            paid_date=_parse_optional(self.paid_date),
            notes=self.notes
        )

    @classmethod
    def from_installment(cls, installment: Installment, as_of: date) -> 'InstallmentModel':
        return cls(
            id=installment.id,
            loan_id=installment.loan_id,
            installment_number=installment.installment_number,
            due_date=format_date(installment.due_date),
            principal_amount=MoneyModel.from_money(installment.principal_amount),
            interest_amount=MoneyModel.from_money(installment.interest_amount),
            total_amount=MoneyModel.from_money(installment.total_amount),
            paid_amount=MoneyModel.from_money(installment.paid_amount),
            paid_date=_format_optional(installment.paid_date),
            status=installment.status_as_of(as_of).value,
            notes=installment.notes
        )


class AllocationModel(BaseModel):
    installment_id: str
    amount: MoneyModel


class PaymentModel(BaseModel):
    id: str
    loan_id: str
    installment_id: str
    amount: MoneyModel
    principal_amount: MoneyModel
    interest_amount: MoneyModel
    payment_date: str
    method: str = "Cash"
    unapplied_amount: Optional[MoneyModel] = None
    allocations: List[AllocationModel] = Field(default_factory=list)
    notes: Optional[str] = None

    def to_payment(self) -> Payment:
        return Payment(
            id=self.id,
            loan_id=self.loan_id,
            installment_id=self.installment_id,
            amount=self.amount.to_money(),
            principal_amount=self.principal_amount.to_money(),
            interest_amount=self.interest_amount.to_money(),
            payment_date=parse_date(self.payment_date),
            method=self.method,
            unapplied_amount=_money_or_none(self.unapplied_amount),
            allocations=tuple((a.installment_id, a.amount.to_money()) for a in self.allocations),
            notes=self.notes
        )

    @classmethod
    def from_payment(cls, payment: Payment) -> 'PaymentModel':
        return cls(
            id=payment.id,
            loan_id=payment.loan_id,
            installment_id=payment.installment_id,
            amount=MoneyModel.from_money(payment.amount),
            principal_amount=MoneyModel.from_money(payment.principal_amount),
            interest_amount=MoneyModel.from_money(payment.interest_amount),
            payment_date=format_date(payment.payment_date),
            method=payment.method,
            unapplied_amount=MoneyModel.from_money(payment.unapplied_amount),
            allocations=[
                AllocationModel(installment_id=installment_id, amount=MoneyModel.from_money(amount))
                for installment_id, amount in payment.allocations
            ],
            notes=payment.notes
        )


class ScheduleRequest(BaseModel):
    loan: LoanModel
    as_of: Optional[str] = None


class RecordPaymentRequest(BaseModel):
    installments: List[InstallmentModel]
    installment_id: str
    amount: MoneyModel
    payment_date: str
    method: str = "Cash"
    loan: Optional[LoanModel] = None
    notes: Optional[str] = None


class InstallmentStatusRequest(BaseModel):
    installment: InstallmentModel
    as_of: str


class InterestRateRequest(BaseModel):
    principal_amount: MoneyModel
    interest_amount: MoneyModel
    interest_type: str
    installment_frequency: str
    number_of_installments: int


# Report schemas
class DashboardRequest(BaseModel):
    loans: List[LoanModel] = Field(default_factory=list)
    installments: List[InstallmentModel] = Field(default_factory=list)
    payments: List[PaymentModel] = Field(default_factory=list)
    as_of: Optional[str] = None
    upcoming_window_days: Optional[int] = None
    upcoming_limit: Optional[int] = None
    currency: Optional[str] = None


class MonthlyReportRequest(BaseModel):
    loans: List[LoanModel] = Field(default_factory=list)
    payments: List[PaymentModel] = Field(default_factory=list)
    currency: Optional[str] = None


# Rent schemas
class PropertyModel(BaseModel):
    id: str
    name: str
    type: str
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    status: str = "available"

    def to_property(self) -> Property:
        return Property(
            id=self.id,
            name=self.name,
            property_type=self.type,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            status=self.status
        )


class TenantModel(BaseModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None

    def to_tenant(self) -> Tenant:
        return Tenant(id=self.id, name=self.name, phone=self.phone, email=self.email)


class RentAgreementModel(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    start_date: str
    end_date: str
    rent_amount: MoneyModel
    security_deposit: Optional[MoneyModel] = None
    rent_frequency: str = "monthly"
    payment_due_day: int = 1
    status: str = "active"

    def to_agreement(self) -> RentAgreement:
        return RentAgreement(
            id=self.id,
            property_id=self.property_id,
            tenant_id=self.tenant_id,
            start_date=parse_date(self.start_date),
            end_date=parse_date(self.end_date),
            rent_amount=self.rent_amount.to_money(),
            security_deposit=_money_or_none(self.security_deposit),
            rent_frequency=self.rent_frequency,
            payment_due_day=self.payment_due_day,
            status=self.status
        )

    @classmethod
    def from_agreement(cls, agreement: RentAgreement, as_of: date) -> 'RentAgreementModel':
        return cls(
            id=agreement.id,
            property_id=agreement.property_id,
            tenant_id=agreement.tenant_id,
            start_date=format_date(agreement.start_date),
            end_date=format_date(agreement.end_date),
            rent_amount=MoneyModel.from_money(agreement.rent_amount),
            security_deposit=MoneyModel.from_money(agreement.security_deposit),
            rent_frequency=agreement.rent_frequency.value,
            payment_due_day=agreement.payment_due_day,
            status=derive_agreement_status(agreement, as_of).value
        )


class RentPaymentModel(BaseModel):
    id: str
    agreement_id: str
    property_id: str
    tenant_id: str
    due_date: str
    amount: MoneyModel
    paid_amount: Optional[MoneyModel] = None
    late_fee: Optional[MoneyModel] = None
    payment_date: Optional[str] = None
    method: Optional[str] = None
    status: Optional[str] = Field(None, description="Derived on output, ignored on input")

    def to_rent_payment(self) -> RentPayment:
        return RentPayment(
            id=self.id,
            agreement_id=self.agreement_id,
            property_id=self.property_id,
            tenant_id=self.tenant_id,
            due_date=parse_date(self.due_date),
            amount=self.amount.to_money(),
            paid_amount=_money_or_none(self.paid_amount),
            late_fee=_money_or_none(self.late_fee),
            payment_date=_parse_optional(self.payment_date),
            method=self.method
        )

    @classmethod
    def from_rent_payment(cls, rent_payment: RentPayment, as_of: date) -> 'RentPaymentModel':
        return cls(
            id=rent_payment.id,
            agreement_id=rent_payment.agreement_id,
            property_id=rent_payment.property_id,
            tenant_id=rent_payment.tenant_id,
            due_date=format_date(rent_payment.due_date),
            amount=MoneyModel.from_money(rent_payment.amount),
            paid_amount=MoneyModel.from_money(rent_payment.paid_amount),
            late_fee=_model_or_none(rent_payment.late_fee),
            payment_date=_format_optional(rent_payment.payment_date),
            method=rent_payment.method,
            status=derive_rent_payment_status(rent_payment, as_of).value
        )


class MaintenanceRequestModel(BaseModel):
    id: str
    property_id: str
    title: str
    description: str = ""
    category: str = "general"
    priority: str = "medium"
    status: str = "pending"

    def to_request(self) -> MaintenanceRequest:
        return MaintenanceRequest(
            id=self.id,
            property_id=self.property_id,
            title=self.title,
            description=self.description,
            category=self.category,
            priority=self.priority,
            status=self.status
        )


class PropertyExpenseModel(BaseModel):
    id: str
    property_id: str
    category: str
    amount: MoneyModel
    date: str
    description: str = ""

    def to_expense(self) -> PropertyExpense:
        return PropertyExpense(
            id=self.id,
            property_id=self.property_id,
            category=self.category,
            amount=self.amount.to_money(),
            expense_date=parse_date(self.date),
            description=self.description
        )


class RentDashboardRequest(BaseModel):
    properties: List[PropertyModel] = Field(default_factory=list)
    tenants: List[TenantModel] = Field(default_factory=list)
    agreements: List[RentAgreementModel] = Field(default_factory=list)
    rent_payments: List[RentPaymentModel] = Field(default_factory=list)
    maintenance_requests: List[MaintenanceRequestModel] = Field(default_factory=list)
    expenses: List[PropertyExpenseModel] = Field(default_factory=list)
    as_of: Optional[str] = None


class RecordRentPaymentRequest(BaseModel):
    rent_payment: RentPaymentModel
    amount: MoneyModel
    payment_date: str
    method: str = "Cash"
    transaction_id: Optional[str] = None


class ConvertRequest(BaseModel):
    amount: MoneyModel
    to_currency: str


def parse_currency(code: str) -> Currency:
    try:
        return Currency[code]
    except KeyError:
        raise ValueError(f"Unsupported currency: {code}")


def resolve_as_of(value: Optional[str]) -> date:
    """Requested as-of date, or today when the caller leaves it out"""
    return parse_date(value) if value else date.today()
