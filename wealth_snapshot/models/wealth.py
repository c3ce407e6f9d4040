"""
Core Data Models for Wealth Snapshot

These models define the application state that is persisted locally,
pushed to the remote store and received back from it.

Wire format: field names on the wire are camelCase and keep the names of
the records already stored remotely (accounts carry their kind under
"type", deposits live under "fixedDeposits", the timestamp is
"lastUpdated", history points are {"date", "totalValueHKD"}). Python code
uses the snake_case field names; both are accepted on input.

Monetary values are Decimal in memory and plain JSON numbers on the wire.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _money_to_json(value: Decimal) -> int | float:
    """Serialize Decimal as a JSON number (int when integral)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(_money_to_json, when_used="json")]


WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    str_strip_whitespace=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """Currencies an account or deposit may be held in. HKD is the base."""
    HKD = "HKD"
    AUD = "AUD"
    USD = "USD"


BASE_CURRENCY = Currency.HKD


class AccountKind(str, Enum):
    """
    Kind of holding.

    Only Cash and Stock carry distinct arithmetic; Crypto is valued by its
    balance like Cash.
    """
    CASH = "Cash"
    STOCK = "Stock"
    CRYPTO = "Crypto"


class DepositKind(str, Enum):
    """
    CRITICAL: A Savings deposit's principal already sits inside one of the
    tracked accounts. It is never added to net worth a second time, and
    settling it pays out interest only.
    """
    FIXED = "Fixed"
    SAVINGS = "Savings"


class MaturityAction(str, Enum):
    """What the user intends to do when a deposit matures."""
    RENEW = "Renew"
    TRANSFER_OUT = "Transfer Out"


# =============================================================================
# ACCOUNTS AND DEPOSITS
# =============================================================================

class Account(BaseModel):
    """
    A holding of value at an institution.

    For Stock accounts the balance is derived: whenever both quantity and
    last_price are known, balance == quantity * last_price. The derived
    value wins over any balance supplied alongside them.
    """
    model_config = WIRE_CONFIG

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, unique within the account set"
    )
    name: str = Field(
        default="",
        max_length=200,
        description="Institution or description"
    )
    kind: AccountKind = Field(
        ...,
        alias="type",
        description="Cash, Stock or Crypto"
    )
    currency: Currency
    balance: Money = Field(
        default=Decimal("0"),
        description="Value in account currency (derived for Stock)"
    )

    # Stock specific
    symbol: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Ticker, e.g. 0700.HK or AAPL"
    )
    quantity: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Number of shares held"
    )
    last_price: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Last known price per share in account currency"
    )

    @model_validator(mode='after')
    def derive_stock_balance(self) -> 'Account':
        """Keep balance == quantity * last_price for Stock accounts."""
        if (
            self.kind == AccountKind.STOCK
            and self.quantity is not None
            and self.last_price is not None
        ):
            derived = self.quantity * self.last_price
            if self.balance != derived:
                object.__setattr__(self, "balance", derived)
        return self

    @property
    def is_stock(self) -> bool:
        return self.kind == AccountKind.STOCK

    def with_price(self, price: Decimal) -> 'Account':
        """Return a copy re-priced at `price`, balance re-derived."""
        quantity = self.quantity or Decimal("0")
        return self.model_copy(
            update={"last_price": price, "balance": quantity * price}
        )

    def with_quantity(self, quantity: Decimal) -> 'Account':
        """Return a copy holding `quantity` shares, balance re-derived."""
        price = self.last_price or Decimal("0")
        return self.model_copy(
            update={"quantity": quantity, "balance": quantity * price}
        )

    def credited(self, amount: Decimal) -> 'Account':
        """Return a copy whose balance is increased by `amount`."""
        return self.model_copy(update={"balance": self.balance + amount})


class Deposit(BaseModel):
    """
    A fixed or savings placement with a maturity date.

    interest_rate is an annual percentage on a simple-interest basis.
    """
    model_config = WIRE_CONFIG

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, unique within the deposit set"
    )
    bank_name: str = Field(
        default="Other",
        max_length=200,
        description="Bank holding the deposit"
    )
    principal: Money = Field(
        ...,
        ge=0,
        description="Principal in deposit currency"
    )
    currency: Currency
    maturity_date: date
    action_on_maturity: MaturityAction = Field(
        default=MaturityAction.RENEW
    )
    interest_rate: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Annual interest rate in percent (e.g. 4.5)"
    )
    auto_roll: bool = Field(
        default=False,
        description="Hint: add interest to principal on renewal"
    )
    deposit_kind: DepositKind = Field(
        default=DepositKind.FIXED,
        alias="type",
        description="Fixed (counted) or Savings (already inside an account)"
    )

    @field_validator('maturity_date', mode='before')
    @classmethod
    def truncate_to_date(cls, v: Any) -> Any:
        """Accept ISO datetimes and keep only the calendar date."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator('interest_rate', mode='before')
    @classmethod
    def missing_rate_is_zero(cls, v: Any) -> Any:
        return Decimal("0") if v is None else v

    @field_validator('deposit_kind', mode='before')
    @classmethod
    def missing_kind_is_fixed(cls, v: Any) -> Any:
        return DepositKind.FIXED if v is None else v

    @property
    def is_savings(self) -> bool:
        return self.deposit_kind == DepositKind.SAVINGS

    def payout(self, interest: Decimal) -> Decimal:
        """
        Amount credited to an account when this deposit is settled.

        Savings: interest only (principal is already in the account).
        Fixed: principal plus interest.
        """
        if self.is_savings:
            return interest
        return self.principal + interest


# =============================================================================
# HISTORY AND AGGREGATE STATE
# =============================================================================

class HistoryEntry(BaseModel):
    """Net worth as of the end of one calendar month."""
    model_config = WIRE_CONFIG

    period: str = Field(
        ...,
        alias="date",
        pattern=r"^\d{4}-\d{2}$",
        description="Year-month key, e.g. 2024-03"
    )
    total_value_base: int = Field(
        ...,
        alias="totalValueHKD",
        description="Total net worth in base currency, whole units"
    )


class AppState(BaseModel):
    """
    The aggregate root: everything the user has recorded.

    Owned by the StateStore. Instances are never modified; every mutation
    produces a new AppState.
    """
    model_config = WIRE_CONFIG

    accounts: list[Account] = Field(default_factory=list)
    deposits: list[Deposit] = Field(
        default_factory=list,
        alias="fixedDeposits"
    )
    history: list[HistoryEntry] = Field(default_factory=list)
    last_modified: Optional[datetime] = Field(
        default=None,
        alias="lastUpdated",
        description="Logical timestamp of the last committed mutation (UTC)"
    )
    wealth_goal: Money = Field(
        default=Decimal("2000000"),
        ge=0,
        alias="wealthGoal",
        description="Target net worth in base currency"
    )

    @field_validator('accounts', 'deposits', 'history', mode='before')
    @classmethod
    def null_list_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator('wealth_goal', mode='before')
    @classmethod
    def null_goal_is_default(cls, v: Any) -> Any:
        return Decimal("2000000") if v is None else v

    @field_validator('last_modified')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are treated as UTC so they stay comparable."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_identities(self) -> 'AppState':
        """Ids are unique per collection and periods are unique in history."""
        account_ids = [a.id for a in self.accounts]
        if len(account_ids) != len(set(account_ids)):
            raise ValueError("Duplicate account id")

        deposit_ids = [d.id for d in self.deposits]
        if len(deposit_ids) != len(set(deposit_ids)):
            raise ValueError("Duplicate deposit id")

        periods = [h.period for h in self.history]
        if len(periods) != len(set(periods)):
            raise ValueError("Duplicate history period")

        return self

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_deposit(self, deposit_id: str) -> Optional[Deposit]:
        return next((d for d in self.deposits if d.id == deposit_id), None)

    def same_content(self, other: 'AppState') -> bool:
        """Structural equality ignoring last_modified."""
        exclude = {"last_modified"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)

    def to_wire(self) -> dict:
        """JSON-ready dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, data: Any) -> 'AppState':
        """Validate a wire dict. Raises pydantic.ValidationError if malformed."""
        return cls.model_validate(data)
