"""
State Store

The single owner of the user's AppState. All changes go through the
mutation methods below; each one is a single transition from one immutable
AppState to the next:

1. Build the new accounts/deposits
2. Recompute net worth (Valuation Engine)
3. Upsert the current month in the history (History Ledger)
4. Stamp last_modified
5. Persist locally (synchronously; a failure is logged, not raised)
6. Notify commit listeners (the push adapter)

CRITICAL: Precondition failures (unknown ids, negative amounts) raise
before anything is changed. A rejected mutation leaves the state, the
local record and the remote store untouched.

The Sync Reconciler bypasses steps 1-4 and 6 through replace_state().
"""

import calendar
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional

from pydantic import ValidationError

from wealth_snapshot.exceptions import (
    InvalidAmountError,
    PreconditionError,
    StorageError,
    UnknownAccountError,
    UnknownDepositError,
)
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.wealth import Account, AccountKind, AppState, Deposit
from wealth_snapshot.services.storage.interface import LocalStateStorageInterface
from wealth_snapshot.store.seed import default_state
from wealth_snapshot.valuation.engine import compute_total
from wealth_snapshot.valuation.history import period_key, upsert_current_period


logger = get_logger(__name__)


Clock = Callable[[], datetime]
CommitListener = Callable[[AppState], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the end of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class StateStore:
    """
    Holds the current AppState and exposes the enumerated mutations.

    Not thread-safe; meant to be driven from a single event loop.
    """

    def __init__(
        self,
        storage: LocalStateStorageInterface,
        clock: Clock = utc_now,
        default_goal: Optional[Decimal] = None,
    ):
        self._storage = storage
        self._clock = clock
        self._default_goal = default_goal
        self._listeners: list[CommitListener] = []
        self._state = self._load_initial()

    # -------------------------------------------------------------------------
    # Loading and persistence
    # -------------------------------------------------------------------------

    def _load_initial(self) -> AppState:
        """Persisted state, or the seed state if it is missing or unusable."""
        try:
            state = self._storage.load()
        except StorageError as e:
            logger.warning("local_state_unusable", error=str(e))
            state = None

        if state is None:
            state = default_state(self._clock(), self._default_goal)
            logger.info("seed_state_created", accounts=len(state.accounts))
            self._persist(state)
        else:
            logger.info(
                "local_state_loaded",
                accounts=len(state.accounts),
                deposits=len(state.deposits),
                last_modified=state.last_modified.isoformat() if state.last_modified else None,
            )
        return state

    def _persist(self, state: AppState) -> bool:
        """Write to local storage. The in-memory state is authoritative if this fails."""
        try:
            self._storage.save(state)
            return True
        except StorageError as e:
            logger.error("local_persist_failed", error=str(e))
            return False

    def _commit(self, state: AppState) -> AppState:
        self._persist(state)
        self._state = state
        logger.info(
            "state_committed",
            total=state.history[-1].total_value_base if state.history else None,
            last_modified=state.last_modified.isoformat() if state.last_modified else None,
        )
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("commit_listener_failed")
        return state

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def total(self) -> int:
        """Current net worth in base currency."""
        return compute_total(self._state.accounts, self._state.deposits)

    def subscribe(self, listener: CommitListener) -> Callable[[], None]:
        """
        Call `listener(new_state)` after every committed mutation.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _revalued(
        self,
        accounts: Iterable[Account],
        deposits: Iterable[Deposit],
    ) -> AppState:
        """Next state for new holdings, with history and timestamp updated."""
        accounts = list(accounts)
        deposits = list(deposits)
        now = self._clock()
        total = compute_total(accounts, deposits)
        history = upsert_current_period(self._state.history, period_key(now), total)

        try:
            return AppState(
                accounts=accounts,
                deposits=deposits,
                history=history,
                last_modified=now,
                wealth_goal=self._state.wealth_goal,
            )
        except ValidationError as e:
            raise PreconditionError(f"Invalid state transition: {e}")

    def _require_deposit(self, deposit_id: str) -> Deposit:
        deposit = self._state.find_deposit(deposit_id)
        if deposit is None:
            raise UnknownDepositError(deposit_id)
        return deposit

    def _require_account(self, account_id: str) -> Account:
        account = self._state.find_account(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        return account

    def update_accounts(self, new_accounts: Iterable[Account]) -> AppState:
        """Replace the account set; deposits unchanged."""
        return self._commit(self._revalued(new_accounts, self._state.deposits))

    def update_deposits(self, new_deposits: Iterable[Deposit]) -> AppState:
        """Replace the deposit set; accounts unchanged."""
        return self._commit(self._revalued(self._state.accounts, new_deposits))

    def settle_deposit(
        self,
        deposit_id: str,
        target_account_id: str,
        credit_amount: Decimal,
    ) -> AppState:
        """
        Remove a deposit and credit `credit_amount` to an account, atomically.

        The caller decides the amount (see settle_deposit_with_interest for
        the kind-aware payout).

        Raises:
            UnknownDepositError: deposit_id does not resolve
            UnknownAccountError: target_account_id does not resolve
            InvalidAmountError: credit_amount is negative
            PreconditionError: the target is a Stock account, whose balance
                               is derived from quantity and price
        """
        credit_amount = Decimal(credit_amount)
        self._require_deposit(deposit_id)
        target = self._require_account(target_account_id)

        if credit_amount < 0:
            raise InvalidAmountError(f"Credit amount cannot be negative: {credit_amount}")
        if target.kind == AccountKind.STOCK:
            raise PreconditionError(
                f"Cannot credit a stock account's balance directly: {target_account_id}"
            )

        accounts = [
            account.credited(credit_amount) if account.id == target_account_id else account
            for account in self._state.accounts
        ]
        deposits = [d for d in self._state.deposits if d.id != deposit_id]

        logger.info(
            "deposit_settled",
            deposit_id=deposit_id,
            target_account_id=target_account_id,
            credit_amount=str(credit_amount),
        )
        return self._commit(self._revalued(accounts, deposits))

    def settle_deposit_with_interest(
        self,
        deposit_id: str,
        target_account_id: str,
        interest: Decimal,
    ) -> AppState:
        """
        Settle with the payout implied by the deposit kind.

        Savings: only `interest` is credited. Fixed: principal + interest.
        """
        interest = Decimal(interest)
        if interest < 0:
            raise InvalidAmountError(f"Interest cannot be negative: {interest}")
        deposit = self._require_deposit(deposit_id)
        return self.settle_deposit(deposit_id, target_account_id, deposit.payout(interest))

    def rollover_deposit(
        self,
        deposit_id: str,
        interest: Decimal,
        new_rate: Optional[Decimal] = None,
        term_months: int = 3,
        new_maturity: Optional[date] = None,
    ) -> AppState:
        """
        Extend a deposit for another term.

        `interest` is added to the principal (pass 0 to roll over without
        compounding). The rate is replaced if `new_rate` is given. The new
        maturity is `new_maturity`, or `term_months` after today.
        """
        interest = Decimal(interest)
        if interest < 0:
            raise InvalidAmountError(f"Interest cannot be negative: {interest}")
        if new_rate is not None and Decimal(new_rate) < 0:
            raise InvalidAmountError(f"Interest rate cannot be negative: {new_rate}")
        if new_maturity is None and term_months <= 0:
            raise InvalidAmountError(f"Term must be at least one month: {term_months}")

        deposit = self._require_deposit(deposit_id)
        maturity = new_maturity or add_months(self._clock().date(), term_months)

        rolled = deposit.model_copy(update={
            "principal": deposit.principal + interest,
            "interest_rate": Decimal(new_rate) if new_rate is not None else deposit.interest_rate,
            "maturity_date": maturity,
        })
        deposits = [rolled if d.id == deposit_id else d for d in self._state.deposits]

        logger.info(
            "deposit_rolled_over",
            deposit_id=deposit_id,
            interest=str(interest),
            maturity_date=maturity.isoformat(),
        )
        return self.update_deposits(deposits)

    def add_deposit(self, deposit: Deposit) -> AppState:
        return self.update_deposits([*self._state.deposits, deposit])

    def remove_deposit(self, deposit_id: str) -> AppState:
        self._require_deposit(deposit_id)
        return self.update_deposits(
            d for d in self._state.deposits if d.id != deposit_id
        )

    def apply_prices(self, prices: Mapping[str, Optional[Decimal]]) -> AppState:
        """
        Re-price Stock accounts from a {symbol: price} map.

        Symbols with no price, or a non-positive one, keep their last price.
        Nothing is committed if no account changed.
        """
        changed = False
        accounts = []
        for account in self._state.accounts:
            price = None
            if account.is_stock and account.symbol:
                price = prices.get(account.symbol.strip().upper())
            if price is not None and price > 0 and price != account.last_price:
                accounts.append(account.with_price(Decimal(price)))
                changed = True
            else:
                accounts.append(account)

        if not changed:
            return self._state
        return self.update_accounts(accounts)

    def update_goal(self, new_goal: Decimal) -> AppState:
        """Replace the wealth goal. History and valuation are untouched."""
        new_goal = Decimal(new_goal)
        if new_goal < 0:
            raise InvalidAmountError(f"Wealth goal cannot be negative: {new_goal}")
        state = self._state.model_copy(update={
            "wealth_goal": new_goal,
            "last_modified": self._clock(),
        })
        return self._commit(state)

    def replace_state(self, state: AppState) -> AppState:
        """
        Adopt `state` wholesale (used by the reconciler).

        Persists it but keeps its timestamp and does not notify commit
        listeners, so an accepted remote snapshot is never pushed back.
        """
        self._persist(state)
        self._state = state
        logger.info(
            "state_replaced",
            last_modified=state.last_modified.isoformat() if state.last_modified else None,
        )
        return state
