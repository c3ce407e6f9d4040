"""
Integration tests for the application facade.

Everything runs against in-memory storage, an in-memory remote channel, a
mocked price endpoint and a fake scanner.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from tenacity import wait_none

from wealth_snapshot.config import PriceLookupSettings, get_settings
from wealth_snapshot.ingest import ScanValidator
from wealth_snapshot.models import IncomeSourceKind, ScannedAsset, ScanResult, SyncStatus
from wealth_snapshot.orchestrator import WealthSnapshotApp, create_app_components
from wealth_snapshot.services.pricing import PriceLookupService
from wealth_snapshot.services.storage import (
    FirebaseStateChannel,
    InMemoryBackupSink,
    InMemoryRemoteChannel,
    InMemoryStateStorage,
    state_file_for,
)
from wealth_snapshot.store import StateStore
from wealth_snapshot.sync import RemotePushAdapter, SyncSession

from conftest import FIXED_NOW, app_state, cash_account, deposit, stock_account


CODE = "family-code"


class FakeScanner:
    def __init__(self, result: ScanResult):
        self.result = result
        self.calls = 0

    async def scan(self, image_bytes: bytes) -> ScanResult:
        self.calls += 1
        return self.result


def price_service(prices: dict) -> PriceLookupService:
    def handler(request: httpx.Request) -> httpx.Response:
        symbol = request.url.params["symbol"]
        if symbol not in prices:
            return httpx.Response(404)
        return httpx.Response(200, json={"price": prices[symbol]})

    return PriceLookupService(
        settings=PriceLookupSettings(lookup_url="https://prices.example/quote"),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_wait=wait_none(),
    )


def build_app(clock, state=None, prices=None, scan=None, channel=None):
    storage = InMemoryStateStorage(state=state or app_state(), access_code=CODE)
    store = StateStore(storage, clock=clock)
    backup = InMemoryBackupSink()
    adapter = RemotePushAdapter(channel, backup, CODE)
    session = SyncSession(store, channel, adapter, retry_wait=wait_none())
    return WealthSnapshotApp(
        store,
        session,
        channel=channel,
        backup=backup,
        pricing=price_service(prices) if prices is not None else None,
        scanner=FakeScanner(scan) if scan is not None else None,
    )


class TestLifecycle:
    """Tests for start/stop and syncing through the facade."""

    @pytest.mark.asyncio
    async def test_mutation_is_synced(self, clock):
        """Test that a mutation made through the app reaches the remote."""
        channel = InMemoryRemoteChannel()
        app = build_app(clock, state=app_state(accounts=[cash_account()]), channel=channel)
        await app.start()
        await app.session.wait_ready()

        app.update_accounts([cash_account(balance="2500")])
        for _ in range(50):
            if not app.session.adapter.pending:
                break
            await asyncio.sleep(0)

        assert app.sync_status == SyncStatus.SYNCED
        assert channel.documents[CODE]["accounts"][0]["balance"] == 2500
        assert app.net_worth == 2500

        await app.stop()
        assert not app.session.running

    @pytest.mark.asyncio
    async def test_local_only(self, clock):
        """Test that without a remote the app works and reports offline."""
        app = build_app(clock, state=app_state(accounts=[cash_account()]))
        await app.start()
        app.update_goal(Decimal("500000"))

        assert app.sync_status == SyncStatus.OFFLINE
        assert app.state.wealth_goal == Decimal("500000")
        await app.stop()


class TestPrices:
    """Tests for refreshing stock prices."""

    @pytest.mark.asyncio
    async def test_refresh_reprices_stocks(self, clock):
        """Test that found prices update balances and misses keep theirs."""
        state = app_state(accounts=[
            cash_account(),
            stock_account("tencent", symbol="0700.HK", quantity="100", price="450"),
            stock_account("gone", symbol="DELISTED", quantity="10", price="5"),
        ])
        app = build_app(clock, state=state, prices={"0700.HK": 460})

        updated = await app.refresh_prices()

        by_id = {a.id: a for a in updated.accounts}
        assert by_id["tencent"].balance == Decimal("46000")
        assert by_id["gone"].balance == Decimal("50")
        assert app.net_worth == 1000 + 46000 + 50

    @pytest.mark.asyncio
    async def test_refresh_without_lookup(self, clock):
        """Test that an unconfigured lookup changes nothing."""
        app = build_app(clock, state=app_state(accounts=[stock_account()]))
        before = app.state
        assert await app.refresh_prices() is before


class TestStatementScan:
    """Tests for scan -> review -> import."""

    SCAN = ScanResult(assets=[
        ScannedAsset(category="STOCK", institution="IBKR", symbol="AAPL", amount=Decimal("10"), currency="USD"),
        ScannedAsset(category="CASH", institution="HSBC", amount=Decimal("0")),
        ScannedAsset(category="CASH", institution="Mox", amount=Decimal("2000")),
    ])

    @pytest.mark.asyncio
    async def test_scan_prices_and_validates(self, clock):
        """Test that scanned stocks are priced and invalid assets rejected."""
        app = build_app(clock, prices={"AAPL": 190}, scan=self.SCAN)

        scan, validation = await app.scan_statement(b"image")

        assert scan.assets[0].price == Decimal("190")
        assert validation.accepted_indexes == [0, 2]
        assert app.state.accounts == []

    @pytest.mark.asyncio
    async def test_import_after_review(self, clock):
        """Test that accepted assets become accounts only on import."""
        app = build_app(clock, state=app_state(accounts=[cash_account()]), prices={"AAPL": 190}, scan=self.SCAN)
        scan, validation = await app.scan_statement(b"image")

        state = app.import_scan(scan, validation)

        assert [a.name for a in state.accounts] == ["HSBC HK", "IBKR", "Mox"]
        # 1000 + 10 * 190 * 7.8 + 2000
        assert app.net_worth == 1000 + 14820 + 2000

    @pytest.mark.asyncio
    async def test_scan_without_scanner(self, clock):
        """Test that an unconfigured scanner yields an empty result."""
        app = build_app(clock)
        scan, validation = await app.scan_statement(b"image")
        assert scan.is_empty
        assert validation.accepted_indexes == []

    def test_import_nothing_accepted(self, clock):
        """Test that an import with nothing accepted does not commit."""
        app = build_app(clock, state=app_state(accounts=[cash_account()]))
        before = app.state
        scan = ScanResult(assets=[ScannedAsset(category="CASH", amount=Decimal("-1"))])
        assert app.import_scan(scan, ScanValidator().validate(scan)) is before


class TestReports:
    """Tests for the report pass-throughs."""

    def test_reports(self, clock):
        """Test report, reminders and export from the current state."""
        state = app_state(
            accounts=[cash_account()],
            deposits=[deposit(maturity=FIXED_NOW.date() + timedelta(days=3))],
        )
        app = build_app(clock, state=state)
        app.update_accounts(state.accounts)

        report = app.monthly_report(now=FIXED_NOW)
        assert report.net_worth == 6000
        assert [r.deposit.id for r in app.maturity_reminders(today=FIXED_NOW.date())] == ["fd1"]
        assert app.export_csv().splitlines()[1].startswith("Cash,HSBC HK,HKD,1000")

    def test_income_insights(self, clock):
        """Test that insights are built from the current state."""
        app = build_app(clock, state=app_state(accounts=[stock_account()], deposits=[deposit(principal="6000")]))

        insights = app.income_insights()

        # 6000 * 2% / 12 and 45000 * 4.5% / 12
        assert insights.deposit_monthly == Decimal("10")
        assert insights.stock_monthly == Decimal("168.75")
        assert [s.kind for s in insights.sources] == [IncomeSourceKind.STOCK, IncomeSourceKind.DEPOSIT]


class TestCreateAppComponents:
    """Tests for the factory."""

    @pytest.fixture(autouse=True)
    def clean_settings(self, monkeypatch):
        for name in ("FIREBASE_DATABASE_URL", "BACKUP_BACKEND", "BACKUP_WEBHOOK_URL"):
            monkeypatch.delenv(name, raising=False)
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_local_only_when_remote_unconfigured(self):
        """Test that a missing database URL falls back to local-only."""
        storage = InMemoryStateStorage()
        app = create_app_components(
            access_code=CODE,
            storage=storage,
            use_pricing=False,
            use_scanner=False,
        )

        assert storage.load_access_code() == CODE
        assert app.sync_status == SyncStatus.OFFLINE
        assert [a.name for a in app.state.accounts][0] == "HSBC HK"
        assert storage.load() is app.state
        await app.stop()

    @pytest.mark.asyncio
    async def test_remote_configured(self, monkeypatch):
        """Test wiring with a configured database and no backup."""
        monkeypatch.setenv("FIREBASE_DATABASE_URL", "https://wealth-test.firebasedatabase.app/")
        monkeypatch.setenv("BACKUP_BACKEND", "none")
        storage = InMemoryStateStorage(access_code=CODE)

        app = create_app_components(storage=storage, use_pricing=False, use_scanner=False)

        assert isinstance(app._channel, FirebaseStateChannel)
        assert app._backup is None
        assert app.session.adapter.access_code == CODE
        assert app.sync_status == SyncStatus.SYNCED
        await app.stop()

    @pytest.mark.asyncio
    async def test_each_access_code_has_its_own_record(self, monkeypatch, tmp_path):
        """Test that the default local record is kept per access code."""
        base = tmp_path / "state.json"
        monkeypatch.setenv("STATE_FILE", str(base))
        get_settings.cache_clear()

        first = create_app_components(access_code=CODE, use_pricing=False, use_scanner=False)
        first.update_goal(Decimal("1"))
        await first.stop()
        second = create_app_components(access_code="other-code", use_pricing=False, use_scanner=False)

        assert second.state.wealth_goal == Decimal("2000000")
        assert state_file_for(CODE, base).exists()
        assert not base.exists()
        await second.stop()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
