"""
Currency conversion into the base currency (HKD).

Rates are a static table. No rounding happens here: callers sum converted
amounts and round once at the end.
"""

from decimal import Decimal
from typing import Union

from wealth_snapshot.models.wealth import Currency


# 1 unit of currency = rate units of base currency
RATES: dict[str, Decimal] = {
    Currency.HKD.value: Decimal("1"),
    Currency.AUD.value: Decimal("5.1"),
    Currency.USD.value: Decimal("7.8"),
}


def _code(currency: Union[Currency, str]) -> str:
    return currency.value if isinstance(currency, Currency) else str(currency).upper()


def rate_for(currency: Union[Currency, str]) -> Decimal:
    """Rate to base; unknown codes are treated as base units (rate 1)."""
    return RATES.get(_code(currency), Decimal("1"))


def to_base(amount: Decimal, currency: Union[Currency, str]) -> Decimal:
    """Convert `amount` held in `currency` to base currency."""
    return Decimal(amount) * rate_for(currency)


def from_base(amount: Decimal, currency: Union[Currency, str]) -> Decimal:
    """Express a base-currency amount in `currency`."""
    return Decimal(amount) / rate_for(currency)
