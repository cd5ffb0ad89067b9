"""
Multi-Currency Support Module

Handles ISO 4217 currency codes, a flat exchange-rate lookup table and proper
Decimal precision for financial calculations. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union
from enum import Enum
import re

from .exceptions import ExchangeRatesUnavailableError
from .logging_config import get_logger

# Set global decimal context for financial precision
getcontext().prec = 28  # High precision for financial calculations

logger = get_logger("finance_core.currency")


class Currency(Enum):
    """
    ISO 4217 Currency Codes with precision info

    Every amount is kept to two decimal places whatever the currency, so
    schedules and reports round the same way for all of them.
    """
    AED = ("AED", 2)  # UAE Dirham
    USD = ("USD", 2)  # US Dollar
    EUR = ("EUR", 2)  # Euro
    GBP = ("GBP", 2)  # British Pound
    SAR = ("SAR", 2)  # Saudi Riyal
    QAR = ("QAR", 2)  # Qatari Riyal
    OMR = ("OMR", 2)  # Omani Rial
    KWD = ("KWD", 2)  # Kuwaiti Dinar
    BHD = ("BHD", 2)  # Bahraini Dinar
    INR = ("INR", 2)  # Indian Rupee
    PKR = ("PKR", 2)  # Pakistani Rupee
    PHP = ("PHP", 2)  # Philippine Peso
    JPY = ("JPY", 2)  # Japanese Yen

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @property
    def quantum(self) -> Decimal:
        """Smallest representable unit, e.g. 0.01"""
        return Decimal('0.1') ** self.precision


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    All monetary values MUST use this class or raw Decimal.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        # Round to currency precision
        rounded = self.amount.quantize(self.currency.quantum, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency) -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency.code} and {other.currency.code}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency.code} from {self.currency.code}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __truediv__(self, divisor: Decimal) -> 'Money':
        if not isinstance(divisor, Decimal):
            divisor = Decimal(str(divisor))
        return Money(self.amount / divisor, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def sum_money(values: Sequence[Money], currency: Currency) -> Money:
    """Sum a sequence of Money values, returning zero in `currency` when empty"""
    total = Money.zero(currency)
    for value in values:
        total = total + value
    return total


# Static USD-based table served when every live source is down
FALLBACK_RATES: Dict[str, Dict[str, Decimal]] = {
    "USD": {
        "USD": Decimal('1'),
        "AED": Decimal('3.6725'),
        "EUR": Decimal('0.92'),
        "GBP": Decimal('0.79'),
        "SAR": Decimal('3.75'),
        "QAR": Decimal('3.64'),
        "OMR": Decimal('0.3845'),
        "KWD": Decimal('0.307'),
        "BHD": Decimal('0.376'),
        "INR": Decimal('83.1'),
        "PKR": Decimal('278.5'),
        "PHP": Decimal('56.2'),
        "JPY": Decimal('149.5'),
    },
}


@dataclass
class RateTable:
    """Flat exchange-rate table: units of each currency per one unit of `base`"""
    base: Currency
    rates: Dict[Currency, Decimal] = field(default_factory=dict)
    as_of: Optional[date] = None
    source: str = "static"

    def __post_init__(self):
        for currency, value in list(self.rates.items()):
            if not isinstance(value, Decimal):
                self.rates[currency] = Decimal(str(value))
        self.rates[self.base] = Decimal('1')

    @classmethod
    def from_codes(
        cls,
        base: str,
        rates: Mapping[str, Union[Decimal, str, int, float]],
        as_of: Optional[date] = None,
        source: str = "static"
    ) -> 'RateTable':
        """Build a table from code -> rate, dropping codes this module does not support"""
        supported = {currency.code: currency for currency in Currency}
        mapped = {
            supported[code]: Decimal(str(value))
            for code, value in rates.items()
            if code in supported
        }
        return cls(base=Currency[base], rates=mapped, as_of=as_of, source=source)


class CurrencyConverter:
    """Converts Money through a flat rate table (rate = to / from)"""

    def __init__(self, table: RateTable):
        self.table = table

    def get_rate(self, from_currency: Currency, to_currency: Currency) -> Decimal:
        """Get exchange rate for currency pair"""
        if from_currency == to_currency:
            return Decimal('1')

        from_rate = self.table.rates.get(from_currency)
        to_rate = self.table.rates.get(to_currency)
        if from_rate is None or to_rate is None or from_rate == Decimal('0'):
            raise ValueError(
                f"No exchange rate available for {from_currency.code} -> {to_currency.code}"
            )
        return to_rate / from_rate

    def convert(self, money: Money, to_currency: Currency) -> Money:
        """
        Convert money from one currency to another

        Args:
            money: Money to convert
            to_currency: Target currency

        Returns:
            Converted Money object

        Raises:
            ValueError: If no exchange rate available
        """
        if money.currency == to_currency:
            return money
        return Money(money.amount * self.get_rate(money.currency, to_currency), to_currency)


RateSource = Callable[[str], Optional[Mapping[str, Union[Decimal, str, int, float]]]]


class ExchangeRateService:
    """
    Ordered fallback list of rate sources.

    Each source is a callable taking a base code and returning code -> rate
    (or None when it has nothing). Sources are tried in order; a failing
    source is logged and skipped. The static fallback table is tried last.
    """

    def __init__(
        self,
        sources: Optional[List[RateSource]] = None,
        fallback_rates: Optional[Dict[str, Dict[str, Decimal]]] = None
    ):
        self.sources = list(sources or [])
        self.fallback_rates = FALLBACK_RATES if fallback_rates is None else fallback_rates

    def get_rates(self, base: Currency) -> RateTable:
        for index, source in enumerate(self.sources):
            try:
                rates = source(base.code)
            except Exception as e:
                logger.warning(f"Rate source {index} failed for {base.code}: {e}")
                continue
            if rates:
                return RateTable.from_codes(base.code, rates, source=f"source-{index}")

        fallback = self.fallback_rates.get(base.code)
        if fallback:
            logger.info(f"Using fallback exchange rates for {base.code}")
            return RateTable.from_codes(base.code, fallback, source="fallback")

        # Derive from another fallback base when the requested one is absent
        for other_base, rates in self.fallback_rates.items():
            if base.code in rates and rates[base.code]:
                pivot = Decimal(str(rates[base.code]))
                rebased = {code: Decimal(str(value)) / pivot for code, value in rates.items()}
                logger.info(f"Using fallback exchange rates for {base.code} via {other_base}")
                return RateTable.from_codes(base.code, rebased, source="fallback")

        raise ExchangeRatesUnavailableError(f"Exchange rates unavailable for {base.code}")


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    # Handle comma as decimal separator (European format)
    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - assume comma is thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:  # Likely decimal separator
            clean_value = clean_value.replace(',', '.')
        else:  # Likely thousands separator
            clean_value = clean_value.replace(',', '')
    elif ',' in clean_value:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
