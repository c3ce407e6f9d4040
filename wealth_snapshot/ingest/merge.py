"""
Turn validated scan candidates into accounts.

STOCK candidates become Stock accounts holding `amount` shares at the
candidate's price (0 until a price is known). CASH candidates become Cash
accounts with `amount` as the balance. New accounts are appended after the
existing ones; nothing existing is overwritten.
"""

from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import uuid4

from wealth_snapshot.models.scan import ScanCategory, ScannedAsset, ScanResult, ValidationResult
from wealth_snapshot.models.wealth import Account, AccountKind, Currency


def new_account_id() -> str:
    return uuid4().hex[:9]


def scanned_to_account(asset: ScannedAsset, account_id: str) -> Account:
    """Build the account for one scanned asset (assumed valid)."""
    currency = Currency(asset.currency)
    if asset.category == ScanCategory.STOCK:
        return Account(
            id=account_id,
            name=asset.display_name,
            kind=AccountKind.STOCK,
            currency=currency,
            symbol=asset.symbol,
            quantity=asset.amount,
            last_price=asset.price if asset.price and asset.price > 0 else Decimal("0"),
        )
    return Account(
        id=account_id,
        name=asset.display_name,
        kind=AccountKind.CASH,
        currency=currency,
        balance=asset.amount,
    )


def merge_scanned_assets(
    accounts: Iterable[Account],
    scan: ScanResult,
    validation: ValidationResult,
    id_factory: Optional[Callable[[], str]] = None,
) -> list[Account]:
    """
    Existing accounts followed by one new account per accepted scan asset.

    Assets not in validation.accepted_indexes are skipped.
    """
    id_factory = id_factory or new_account_id
    merged = list(accounts)
    taken = {a.id for a in merged}

    for index in validation.accepted_indexes:
        account_id = id_factory()
        while account_id in taken:
            account_id = id_factory()
        taken.add(account_id)
        merged.append(scanned_to_account(scan.assets[index], account_id))

    return merged
