"""
Finance Core

Loan amortization, payment tracking and rental statistics for a personal or
small-business finance tracker. All money math uses Decimal, and every
status that depends on the calendar takes an explicit as-of date.
"""

__version__ = "1.0.0"

from .amortization import AmortizationEngine, generate_schedule
from .payments import PaymentLedger, derive_installment_status, derive_loan_status, record_payment
from .rent import record_rent_payment
from .rent_statistics import compute_rent_dashboard_stats
from .statistics import StatisticsAggregator, compute_dashboard_stats

__all__ = [
    "AmortizationEngine",
    "PaymentLedger",
    "StatisticsAggregator",
    "generate_schedule",
    "record_payment",
    "derive_installment_status",
    "derive_loan_status",
    "compute_dashboard_stats",
    "record_rent_payment",
    "compute_rent_dashboard_stats",
]
