"""
Valuation Engine

Computes net worth in base currency from the account set and the deposit
set.

CRITICAL: Savings-kind deposits are excluded. Their principal already sits
in one of the accounts; adding it again would double-count it. Fixed-kind
principal is held outside every account and is included.

Rounding happens once, on the final sum. Individual conversions are never
rounded.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from wealth_snapshot.models.report import ValuationBreakdown
from wealth_snapshot.models.wealth import Account, AccountKind, Deposit
from wealth_snapshot.valuation.currency import to_base


def round_whole(value: Decimal) -> int:
    """Round half-up to a whole unit of base currency."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def counted_deposits(deposits: Iterable[Deposit]) -> list[Deposit]:
    """Deposits whose principal counts toward net worth (Fixed only)."""
    return [d for d in deposits if not d.is_savings]


def unrounded_total(
    accounts: Iterable[Account],
    deposits: Iterable[Deposit],
) -> Decimal:
    total = Decimal("0")
    for account in accounts:
        total += to_base(account.balance, account.currency)
    for deposit in counted_deposits(deposits):
        total += to_base(deposit.principal, deposit.currency)
    return total


def compute_total(
    accounts: Iterable[Account],
    deposits: Iterable[Deposit],
) -> int:
    """
    Total net worth in whole units of base currency.

    Pure: no I/O, identical inputs give identical output.
    """
    return round_whole(unrounded_total(accounts, deposits))


def breakdown(
    accounts: Iterable[Account],
    deposits: Iterable[Deposit],
) -> ValuationBreakdown:
    """Subtotals per asset group, plus the rounded total."""
    accounts = list(accounts)
    deposits = list(deposits)

    groups = {kind: Decimal("0") for kind in AccountKind}
    for account in accounts:
        groups[account.kind] += to_base(account.balance, account.currency)

    fixed = Decimal("0")
    savings = Decimal("0")
    for deposit in deposits:
        value = to_base(deposit.principal, deposit.currency)
        if deposit.is_savings:
            savings += value
        else:
            fixed += value

    return ValuationBreakdown(
        cash=groups[AccountKind.CASH],
        stock=groups[AccountKind.STOCK],
        crypto=groups[AccountKind.CRYPTO],
        fixed_deposits=fixed,
        excluded_savings=savings,
        total=compute_total(accounts, deposits),
    )
