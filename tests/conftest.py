"""Shared fixtures: a controllable clock and small account/deposit builders."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from wealth_snapshot.models.wealth import (
    Account,
    AccountKind,
    AppState,
    Currency,
    Deposit,
    DepositKind,
    HistoryEntry,
)
from wealth_snapshot.services.storage import InMemoryStateStorage


FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def cash_account(account_id="cash", balance="1000", currency=Currency.HKD, name="HSBC HK"):
    return Account(
        id=account_id,
        name=name,
        kind=AccountKind.CASH,
        currency=currency,
        balance=Decimal(balance),
    )


def stock_account(account_id="stock", symbol="0700.HK", quantity="100", price="450", currency=Currency.HKD):
    return Account(
        id=account_id,
        name="Interactive Brokers",
        kind=AccountKind.STOCK,
        currency=currency,
        symbol=symbol,
        quantity=Decimal(quantity),
        last_price=Decimal(price),
    )


def deposit(
    deposit_id="fd1",
    principal="5000",
    kind=DepositKind.FIXED,
    currency=Currency.HKD,
    rate="2",
    maturity=date(2024, 4, 1),
):
    return Deposit(
        id=deposit_id,
        bank_name="Standard Chartered",
        principal=Decimal(principal),
        currency=currency,
        maturity_date=maturity,
        interest_rate=Decimal(rate),
        deposit_kind=kind,
    )


def app_state(accounts=(), deposits=(), history=(), last_modified=FIXED_NOW, goal="2000000"):
    return AppState(
        accounts=list(accounts),
        deposits=list(deposits),
        history=list(history),
        last_modified=last_modified,
        wealth_goal=Decimal(goal),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def simple_state() -> AppState:
    """One HKD cash account of 1000 and one Fixed deposit of 5000."""
    return app_state(
        accounts=[cash_account()],
        deposits=[deposit()],
        history=[HistoryEntry(period="2024-02", total_value_base=5500)],
        last_modified=FIXED_NOW - timedelta(days=1),
    )


@pytest.fixture
def storage(simple_state) -> InMemoryStateStorage:
    return InMemoryStateStorage(state=simple_state, access_code="family-code")
