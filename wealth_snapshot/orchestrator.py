"""
Main Orchestrator for Wealth Snapshot

Ties the components together and defines the end-to-end flows:
1. Mutation (user action -> State Store -> persist -> push)
2. Sync (remote snapshot -> reconciler -> State Store)
3. Price refresh (stock symbols -> price lookup -> apply_prices)
4. Statement scan (image -> Gemini -> validate -> user review -> import)

DESIGN DECISION: Every remote collaborator is optional. If Firebase, the
backup sink, the price endpoint or Gemini is not configured, the app keeps
working locally and the missing feature degrades to "no data":
- no remote channel -> pushes are no-ops, status stays offline
- no price lookup   -> refresh_prices() changes nothing
- no scanner        -> scan_statement() returns an empty result

CRITICAL: Scanned assets are NEVER imported without an explicit
import_scan() call after the user has reviewed them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import ValidationError

from wealth_snapshot.config import get_settings
from wealth_snapshot.exceptions import WealthSnapshotError
from wealth_snapshot.ingest import ScanValidator, merge_scanned_assets
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.report import MaturityReminder, MonthlyReport, PassiveIncomeInsights
from wealth_snapshot.models.scan import ScanCategory, ScanResult, ValidationResult
from wealth_snapshot.models.sync import SyncStatus
from wealth_snapshot.models.wealth import Account, AppState, Deposit
from wealth_snapshot.reports import (
    build_income_insights,
    build_monthly_report,
    export_csv,
    upcoming_maturities,
)
from wealth_snapshot.services.pricing import PriceLookupService
from wealth_snapshot.services.scanning import GeminiStatementScanner
from wealth_snapshot.services.storage import (
    BackupSinkInterface,
    FirebaseStateChannel,
    GoogleSheetsBackupSink,
    GoogleSheetsClient,
    JsonFileStateStorage,
    LocalStateStorageInterface,
    RemoteStateChannelInterface,
    WebhookBackupSink,
    state_file_for,
)
from wealth_snapshot.store import StateStore, utc_now
from wealth_snapshot.sync import RemotePushAdapter, SyncSession


logger = get_logger(__name__)


# Access code used for the push adapter when no remote is configured
LOCAL_ONLY_CODE = "local"


class WealthSnapshotApp:
    """
    Application facade used by the UI layer.

    Mutations are synchronous and return the new state. Syncing runs in the
    background between start() and stop().
    """

    def __init__(
        self,
        store: StateStore,
        session: SyncSession,
        channel: Optional[RemoteStateChannelInterface] = None,
        backup: Optional[BackupSinkInterface] = None,
        pricing: Optional[PriceLookupService] = None,
        scanner: Optional[GeminiStatementScanner] = None,
    ):
        self._store = store
        self._session = session
        self._channel = channel
        self._backup = backup
        self._pricing = pricing
        self._scanner = scanner
        self._settings = get_settings().app

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        await self._session.start()

    async def stop(self) -> None:
        """Stop syncing and release network clients."""
        await self._session.stop()
        for resource in (self._channel, self._backup, self._pricing):
            aclose = getattr(resource, "aclose", None)
            if aclose is not None:
                await aclose()
        logger.info("app_stopped")

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def session(self) -> SyncSession:
        return self._session

    @property
    def state(self) -> AppState:
        return self._store.state

    @property
    def sync_status(self) -> SyncStatus:
        return self._session.adapter.status

    @property
    def net_worth(self) -> int:
        return self._store.total

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def update_accounts(self, accounts: Iterable[Account]) -> AppState:
        return self._store.update_accounts(accounts)

    def update_deposits(self, deposits: Iterable[Deposit]) -> AppState:
        return self._store.update_deposits(deposits)

    def add_deposit(self, deposit: Deposit) -> AppState:
        return self._store.add_deposit(deposit)

    def remove_deposit(self, deposit_id: str) -> AppState:
        return self._store.remove_deposit(deposit_id)

    def settle_deposit(self, deposit_id: str, target_account_id: str, credit_amount: Decimal) -> AppState:
        return self._store.settle_deposit(deposit_id, target_account_id, credit_amount)

    def settle_deposit_with_interest(self, deposit_id: str, target_account_id: str, interest: Decimal) -> AppState:
        return self._store.settle_deposit_with_interest(deposit_id, target_account_id, interest)

    def rollover_deposit(
        self,
        deposit_id: str,
        interest: Decimal,
        new_rate: Optional[Decimal] = None,
        term_months: int = 3,
        new_maturity: Optional[date] = None,
    ) -> AppState:
        return self._store.rollover_deposit(
            deposit_id,
            interest,
            new_rate=new_rate,
            term_months=term_months,
            new_maturity=new_maturity,
        )

    def update_goal(self, new_goal: Decimal) -> AppState:
        return self._store.update_goal(new_goal)

    # -------------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------------

    async def refresh_prices(self) -> AppState:
        """Re-price every Stock account; symbols without a price keep theirs."""
        if self._pricing is None:
            logger.info("price_refresh_skipped", reason="not_configured")
            return self._store.state

        symbols = [a.symbol for a in self._store.state.accounts if a.is_stock and a.symbol]
        prices = await self._pricing.fetch_prices(symbols)
        return self._store.apply_prices(prices)

    # -------------------------------------------------------------------------
    # Statement scanning
    # -------------------------------------------------------------------------

    async def scan_statement(self, image_bytes: bytes) -> tuple[ScanResult, ValidationResult]:
        """
        Scan a statement and validate the proposed assets.

        Stocks are priced when a lookup is configured. Nothing is imported;
        pass the result to import_scan() once the user has confirmed it.
        """
        if self._scanner is None:
            logger.info("scan_skipped", reason="not_configured")
            scan = ScanResult()
        else:
            scan = await self._scanner.scan(image_bytes)

        if self._pricing is not None and not scan.is_empty:
            symbols = [
                a.symbol for a in scan.assets
                if a.category == ScanCategory.STOCK and a.symbol
            ]
            prices = await self._pricing.fetch_prices(symbols)
            scan = scan.model_copy(update={
                "assets": [
                    a.model_copy(update={"price": prices[a.symbol]})
                    if a.symbol in prices and prices[a.symbol] is not None
                    else a
                    for a in scan.assets
                ]
            })

        validation = ScanValidator(self._store.state.accounts).validate(scan)
        return scan, validation

    def import_scan(self, scan: ScanResult, validation: ValidationResult) -> AppState:
        """Append the accepted scanned assets as new accounts."""
        if not validation.accepted_indexes:
            return self._store.state
        accounts = merge_scanned_assets(self._store.state.accounts, scan, validation)
        logger.info("scan_imported", accounts_added=len(validation.accepted_indexes))
        return self._store.update_accounts(accounts)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def monthly_report(self, now: Optional[datetime] = None) -> MonthlyReport:
        settings = self._settings
        return build_monthly_report(
            self._store.state,
            now or utc_now(),
            monthly_expense_base=settings.monthly_expense_base,
            cash_warning_ratio=settings.cash_warning_ratio,
            stale_after_days=settings.stale_after_days,
            reminder_window_days=settings.reminder_window_days,
            critical_window_days=settings.critical_window_days,
        )

    def income_insights(self) -> PassiveIncomeInsights:
        return build_income_insights(self._store.state, self._settings.monthly_expense_base)

    def maturity_reminders(self, today: Optional[date] = None) -> list[MaturityReminder]:
        return upcoming_maturities(
            self._store.state.deposits,
            today or utc_now().date(),
            self._settings.reminder_window_days,
            self._settings.critical_window_days,
        )

    def export_csv(self) -> str:
        return export_csv(self._store.state)


def _create_backup_sink() -> Optional[BackupSinkInterface]:
    backend = get_settings().backup.backend
    if backend == "webhook":
        return WebhookBackupSink()
    if backend == "sheets":
        return GoogleSheetsBackupSink(GoogleSheetsClient())
    return None


def create_app_components(
    access_code: Optional[str] = None,
    storage: Optional[LocalStateStorageInterface] = None,
    use_remote: bool = True,
    use_backup: bool = True,
    use_pricing: bool = True,
    use_scanner: bool = True,
) -> WealthSnapshotApp:
    """
    Factory function to create all application components.

    Args:
        access_code: Remote key. Persisted locally when given; otherwise the
                     previously persisted code is used.
        storage: Local state storage (defaults to the JSON record for
                 access_code, or the shared state file without one)
        use_remote / use_backup / use_pricing / use_scanner:
                     Set to False to skip a collaborator (e.g. in tests).
                     A collaborator whose settings are missing is skipped
                     with a warning.

    Returns:
        The wired application (call start() to begin syncing)
    """
    settings = get_settings()
    if storage is None:
        storage = JsonFileStateStorage(state_file_for(access_code) if access_code else None)

    if access_code:
        try:
            storage.save_access_code(access_code)
        except WealthSnapshotError as e:
            logger.warning("access_code_not_saved", error=str(e))
    else:
        access_code = storage.load_access_code()

    store = StateStore(storage, default_goal=settings.app.default_wealth_goal)

    channel = None
    readiness_timeout = 30.0
    if use_remote and access_code:
        try:
            channel = FirebaseStateChannel()
            readiness_timeout = settings.firebase.readiness_timeout
        except (ValidationError, WealthSnapshotError) as e:
            logger.warning("remote_not_configured", error=str(e))
            channel = None

    backup = None
    if use_backup and channel is not None:
        try:
            backup = _create_backup_sink()
        except (ValidationError, WealthSnapshotError) as e:
            logger.warning("backup_not_configured", error=str(e))

    pricing = None
    if use_pricing:
        try:
            pricing = PriceLookupService()
        except ValidationError as e:
            logger.warning("price_lookup_not_configured", error=str(e))

    scanner = None
    if use_scanner:
        try:
            scanner = GeminiStatementScanner()
        except ValidationError as e:
            logger.warning("scanner_not_configured", error=str(e))

    adapter = RemotePushAdapter(
        channel,
        backup,
        access_code if channel is not None else (access_code or LOCAL_ONLY_CODE),
    )
    session = SyncSession(
        store,
        channel,
        adapter,
        readiness_timeout=readiness_timeout,
    )

    logger.info(
        "app_components_created",
        remote=channel is not None,
        backup=backup is not None,
        pricing=pricing is not None,
        scanner=scanner is not None,
    )
    return WealthSnapshotApp(
        store,
        session,
        channel=channel,
        backup=backup,
        pricing=pricing,
        scanner=scanner,
    )
