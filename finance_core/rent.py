"""
Rental Management Module

Properties, tenants, rent agreements, rent payments, maintenance requests and
property expenses. Rent payment and agreement statuses are derived from dates
and amounts as of an explicit date, the same way installment statuses are.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field, replace
from typing import List, Optional
from enum import Enum

from .config import get_config
from .currency import Currency, Money
from .dates import days_between
from .exceptions import InvalidPaymentError
from .logging_config import get_logger, log_action
from .loans import PaymentStatus

logger = get_logger("finance_core.rent")

# Rent payments share the installment status vocabulary
RentPaymentStatus = PaymentStatus


class PropertyType(Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    COMMERCIAL = "commercial"
    LAND = "land"
    OTHER = "other"


class PropertyStatus(Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    UNAVAILABLE = "unavailable"


class RentFrequency(Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AgreementStatus(Enum):
    """Agreement lifecycle; only TERMINATED is set by hand"""
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"
    UPCOMING = "upcoming"


class MaintenanceStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenancePriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class Property:
    """Rentable property"""
    id: str
    name: str
    property_type: PropertyType
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    area: Decimal = Decimal('0')
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    purchase_price: Optional[Money] = None
    current_value: Optional[Money] = None
    status: PropertyStatus = PropertyStatus.AVAILABLE
    amenities: List[str] = field(default_factory=list)
    description: Optional[str] = None

    def __post_init__(self):
        self.property_type = PropertyType(self.property_type)
        self.status = PropertyStatus(self.status)


@dataclass
class Tenant:
    """Tenant contact record"""
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    address: str = ""
    occupation: Optional[str] = None
    company_name: Optional[str] = None


@dataclass
class RentAgreement:
    """Lease between a tenant and a property"""
    id: str
    property_id: str
    tenant_id: str
    start_date: date
    end_date: date
    rent_amount: Money
    security_deposit: Money = None
    rent_frequency: RentFrequency = RentFrequency.MONTHLY
    payment_due_day: int = 1
    status: AgreementStatus = AgreementStatus.ACTIVE
    maintenance_charges: Optional[Money] = None
    auto_renewal: bool = False
    notice_period_days: Optional[int] = None
    terms: Optional[str] = None

    def __post_init__(self):
        self.rent_frequency = RentFrequency(self.rent_frequency)
        self.status = AgreementStatus(self.status)
        if self.security_deposit is None:
            self.security_deposit = Money.zero(self.rent_amount.currency)

        if not self.rent_amount.is_positive():
            raise ValueError("Rent amount must be positive")
        if self.end_date < self.start_date:
            raise ValueError("Agreement end date cannot precede its start date")
        if not 1 <= self.payment_due_day <= 31:
            raise ValueError(f"Payment due day must be between 1 and 31, got {self.payment_due_day}")

    @property
    def currency(self) -> Currency:
        return self.rent_amount.currency


@dataclass
class RentPayment:
    """Rent due for one period, with what has been collected against it"""
    id: str
    agreement_id: str
    property_id: str
    tenant_id: str
    due_date: date
    amount: Money
    paid_amount: Money = None
    late_fee: Optional[Money] = None    # Recorded fee; overdue rows get a computed one
    payment_date: Optional[date] = None
    method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.paid_amount is None:
            self.paid_amount = Money.zero(self.amount.currency)
        if self.paid_amount > self.amount:
            raise ValueError(
                f"Paid amount {self.paid_amount.to_string()} exceeds rent {self.amount.to_string()}"
            )

    @property
    def currency(self) -> Currency:
        return self.amount.currency

    @property
    def remaining_amount(self) -> Money:
        return self.amount - self.paid_amount


@dataclass
class MaintenanceRequest:
    """Repair or upkeep job on a property"""
    id: str
    property_id: str
    title: str
    description: str = ""
    category: str = "general"
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    tenant_id: Optional[str] = None
    estimated_cost: Optional[Money] = None
    actual_cost: Optional[Money] = None
    assigned_to: Optional[str] = None
    created_at: Optional[date] = None
    completed_at: Optional[date] = None

    def __post_init__(self):
        self.priority = MaintenancePriority(self.priority)
        self.status = MaintenanceStatus(self.status)


@dataclass
class PropertyExpense:
    """Money spent on a property"""
    id: str
    property_id: str
    category: str
    amount: Money
    expense_date: date
    description: str = ""
    vendor: Optional[str] = None
    recurring: bool = False


def derive_rent_payment_status(rent_payment: RentPayment, as_of: date) -> PaymentStatus:
    """Same rule as installments: paid, partial, overdue past the due date, else pending"""
    if rent_payment.paid_amount >= rent_payment.amount:
        return PaymentStatus.PAID
    if rent_payment.paid_amount.is_positive():
        return PaymentStatus.PARTIAL
    if as_of > rent_payment.due_date:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def derive_agreement_status(agreement: RentAgreement, as_of: date) -> AgreementStatus:
    """Terminated stays terminated; otherwise upcoming, active or expired by date"""
    if agreement.status == AgreementStatus.TERMINATED:
        return AgreementStatus.TERMINATED
    if as_of < agreement.start_date:
        return AgreementStatus.UPCOMING
    if as_of > agreement.end_date:
        return AgreementStatus.EXPIRED
    return AgreementStatus.ACTIVE


def calculate_late_fee(
    rent_payment: RentPayment,
    as_of: date,
    daily_rate: Optional[Decimal] = None,
    cap_rate: Optional[Decimal] = None
) -> Money:
    """
    Late fee owed on a rent payment as of a date

    Overdue rent accrues `daily_rate` of the rent per day past due, capped at
    `cap_rate` of the rent. Rows that are not overdue keep whatever fee was
    recorded on them.
    """
    if derive_rent_payment_status(rent_payment, as_of) != PaymentStatus.OVERDUE:
        return rent_payment.late_fee or Money.zero(rent_payment.currency)

    config = get_config()
    if daily_rate is None:
        daily_rate = config.late_fee_daily_rate
    if cap_rate is None:
        cap_rate = config.late_fee_cap_rate

    days_overdue = days_between(rent_payment.due_date, as_of)
    accrued = rent_payment.amount * (daily_rate * Decimal(days_overdue))
    return min(accrued, rent_payment.amount * cap_rate)


def record_rent_payment(
    rent_payment: RentPayment,
    amount: Money,
    payment_date: date,
    method: str = "Cash",
    transaction_id: Optional[str] = None
) -> RentPayment:
    """
    Record money received against a rent payment

    Rent has no carry-forward: the amount may not exceed what is still owed.

    Raises:
        InvalidPaymentError: Non-positive amount, currency mismatch, rent
            already paid, or an amount above the remaining rent
    """
    if not amount.is_positive():
        raise InvalidPaymentError(f"Payment amount must be positive, got {amount.to_string()}")
    if amount.currency != rent_payment.currency:
        raise InvalidPaymentError(
            f"Payment currency {amount.currency.code} does not match rent currency "
            f"{rent_payment.currency.code}"
        )
    remaining = rent_payment.remaining_amount
    if remaining.is_zero():
        raise InvalidPaymentError(f"Rent payment {rent_payment.id} is already paid")
    if amount > remaining:
        raise InvalidPaymentError(
            f"Payment {amount.to_string()} exceeds remaining rent {remaining.to_string()}"
        )

    log_action(
        logger, "info", f"Recorded {amount.to_string()} against rent payment {rent_payment.id}",
        action="record_rent_payment", resource=rent_payment.id,
        extra={"agreement_id": rent_payment.agreement_id, "method": method}
    )

    return replace(
        rent_payment,
        paid_amount=rent_payment.paid_amount + amount,
        payment_date=payment_date,
        method=method,
        transaction_id=transaction_id or rent_payment.transaction_id
    )
