"""
Sync Models

Status of the outbound push, the reconciler's verdict on an inbound
snapshot, and the flattened asset list sent to the backup sink.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wealth_snapshot.models.wealth import AccountKind, AppState, Money


class SyncStatus(str, Enum):
    """Best-effort status of the last remote push."""
    SYNCED = "synced"
    SYNCING = "syncing"
    OFFLINE = "offline"


class ReconcileDecision(str, Enum):
    """What the reconciler did with an inbound remote snapshot."""
    ACCEPTED = "accepted"        # Remote replaced local state
    DISCARDED = "discarded"      # Remote older, or same content
    REJECTED = "rejected"        # Remote payload was malformed
    EMPTY = "empty"              # Remote node holds no state yet


class BackupAsset(BaseModel):
    """One row of the flattened asset backup."""
    model_config = ConfigDict(frozen=True)

    category: str = Field(
        ...,
        pattern="^(CASH|STOCK|CRYPTO|FD)$",
        description="CASH, STOCK, CRYPTO for accounts; FD for deposits"
    )
    institution: str = Field(
        default="",
        description="Account name or bank name"
    )
    symbol: str = Field(
        default="",
        description="Ticker for stocks"
    )
    amount: Money = Field(
        ...,
        description="Quantity for stocks, balance or principal otherwise"
    )
    currency: str
    maturity_date: Optional[str] = Field(
        default=None,
        description="ISO date for deposits"
    )


_ACCOUNT_CATEGORY = {
    AccountKind.CASH: "CASH",
    AccountKind.STOCK: "STOCK",
    AccountKind.CRYPTO: "CRYPTO",
}


def flatten_assets(state: AppState) -> list[BackupAsset]:
    """
    Build the backup asset list from accounts and non-Savings deposits.

    Savings deposits are left out: their principal is already part of an
    account row.
    """
    assets = []

    for account in state.accounts:
        if account.is_stock:
            amount = account.quantity if account.quantity is not None else Decimal("0")
        else:
            amount = account.balance
        assets.append(BackupAsset(
            category=_ACCOUNT_CATEGORY[account.kind],
            institution=account.name or "Other",
            symbol=account.symbol or "",
            amount=amount,
            currency=account.currency.value,
        ))

    for deposit in state.deposits:
        if deposit.is_savings:
            continue
        assets.append(BackupAsset(
            category="FD",
            institution=deposit.bank_name,
            amount=deposit.principal,
            currency=deposit.currency.value,
            maturity_date=deposit.maturity_date.isoformat(),
        ))

    return assets
