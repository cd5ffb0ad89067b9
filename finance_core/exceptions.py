"""
Exception Hierarchy Module

Errors raised by the finance core. All derive from ValueError so callers that
treat bad input as a ValueError keep working.
"""


class FinanceCoreError(ValueError):
    """Base exception for all finance core errors"""


class InvalidLoanTermsError(FinanceCoreError):
    """Raised for a non-positive principal, negative rate or installment count below one"""


class InvalidPaymentError(FinanceCoreError):
    """Raised when a payment cannot be applied to its target installment"""


class ParseError(FinanceCoreError):
    """Raised when a DD-MM-YYYY date string is malformed"""


class ExchangeRatesUnavailableError(FinanceCoreError):
    """Raised when no rate source, not even the fallback table, can serve a base currency"""
