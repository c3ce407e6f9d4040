"""
Streamlit Frontend for Wealth Snapshot

DESIGN PRINCIPLES:
1. The headline number first: net worth, goal progress, sync status
2. Every change is one explicit button press (one StateStore mutation)
3. Scanned statements are shown for review and only imported on confirm
4. Remote problems are shown as a status, never as a blocking error

Streamlit re-runs this script on every interaction, each time on a fresh
thread. The application and its background sync live on one long-lived
event loop in a daemon thread; the UI submits work to that loop. Only one
app runs at a time: entering a different access code stops the current
one (pending pushes, subscription) before the next starts on its own
local record.
"""

import asyncio
import threading
from datetime import date
from decimal import Decimal

import streamlit as st

from wealth_snapshot.config import get_settings, validate_all_settings
from wealth_snapshot.exceptions import PreconditionError
from wealth_snapshot.log import configure_logging
from wealth_snapshot.models import Account, AccountKind, Currency, Deposit, DepositKind, MaturityAction, SyncStatus
from wealth_snapshot.orchestrator import WealthSnapshotApp, create_app_components
from wealth_snapshot.reports import export_filename
from wealth_snapshot.valuation import breakdown, estimate_term_interest, from_base, interest_between


st.set_page_config(
    page_title="Wealth Snapshot",
    page_icon="💰",
    layout="centered",
)

STATUS_BADGES = {
    SyncStatus.SYNCED: "🟢 Synced",
    SyncStatus.SYNCING: "🟡 Syncing...",
    SyncStatus.OFFLINE: "🔴 Offline",
}


class AppRunner:
    """Owns the event loop thread the application runs on."""

    def __init__(self, app: WealthSnapshotApp, access_code: str):
        self.app = app
        self.access_code = access_code
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._thread.start()
        self.run(app.start())

    def run(self, coro):
        """Run a coroutine on the app loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def call(self, fn, *args, **kwargs):
        """Run a synchronous mutation on the app loop (pushes are scheduled there)."""
        async def _call():
            return fn(*args, **kwargs)
        return self.run(_call())

    def close(self) -> None:
        """Stop the app (pending pushes, subscription), then the loop thread."""
        try:
            self.run(self.app.stop())
        finally:
            self.loop.call_soon_threadsafe(self.loop.stop)
            self._thread.join(timeout=5)
            if not self._thread.is_alive():
                self.loop.close()


class RunnerSlot:
    """The one live runner in this process."""

    def __init__(self):
        self.lock = threading.Lock()
        self.runner = None


@st.cache_resource
def get_runner_slot() -> RunnerSlot:
    return RunnerSlot()


def get_runner(access_code: str) -> AppRunner:
    """Runner for access_code. A runner for a different code is stopped first."""
    slot = get_runner_slot()
    with slot.lock:
        runner = slot.runner
        if runner is not None and runner.access_code == access_code:
            return runner
        if runner is not None:
            runner.close()
            slot.runner = None
        configure_logging(get_settings().app.debug_mode)
        slot.runner = AppRunner(create_app_components(access_code=access_code), access_code)
        return slot.runner


def money(value) -> str:
    return f"${Decimal(value):,.0f}"


def main():
    """Main application entry point."""
    st.sidebar.title("💰 Wealth Snapshot")

    access_code = st.sidebar.text_input(
        "Access code",
        type="password",
        help="Devices using the same code share the same data",
    )
    if not access_code:
        st.info("Enter your access code in the sidebar to begin.")
        st.stop()

    runner = get_runner(access_code)
    app = runner.app

    st.sidebar.markdown(f"**Sync:** {STATUS_BADGES[app.sync_status]}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Overview", "✏️ Update Balances", "🏦 Deposits", "📷 Scan Statement", "📅 Monthly Report", "⚙️ Settings"],
        index=0,
    )

    if page == "📊 Overview":
        render_overview_page(runner)
    elif page == "✏️ Update Balances":
        render_update_page(runner)
    elif page == "🏦 Deposits":
        render_deposits_page(runner)
    elif page == "📷 Scan Statement":
        render_scan_page(runner)
    elif page == "📅 Monthly Report":
        render_report_page(runner)
    elif page == "⚙️ Settings":
        render_settings_page(runner)


def render_overview_page(runner: AppRunner):
    app = runner.app
    state = app.state
    st.title("📊 Overview")

    total = app.net_worth
    show_aud = st.toggle("Show in AUD")
    headline = from_base(Decimal(total), Currency.AUD) if show_aud else total
    st.metric("Net worth" + (" (AUD)" if show_aud else " (HKD)"), money(headline))

    goal = state.wealth_goal
    if goal > 0:
        st.progress(min(1.0, float(Decimal(total) / goal)), text=f"Goal {money(goal)}")

    groups = breakdown(state.accounts, state.deposits)
    col1, col2, col3 = st.columns(3)
    col1.metric("Cash", money(groups.cash + groups.crypto))
    col2.metric("Stocks", money(groups.stock))
    col3.metric("Fixed deposits", money(groups.fixed_deposits))

    if state.history:
        recent = state.history[-12:]
        st.caption(f"{recent[0].period} to {recent[-1].period}")
        st.line_chart([h.total_value_base for h in recent])

    reminders = app.maturity_reminders()
    if reminders:
        st.markdown("### Maturing soon")
        for reminder in reminders:
            deposit = reminder.deposit
            label = "MATURED" if reminder.is_matured else f"{reminder.days_left}d left"
            line = f"**{deposit.bank_name}** {deposit.currency.value} {money(deposit.principal)} - {label}"
            if reminder.is_critical:
                st.warning(line)
            else:
                st.info(line)

    st.download_button(
        "Export data to CSV",
        data=app.export_csv(),
        file_name=export_filename(date.today()),
        mime="text/csv",
    )


def render_update_page(runner: AppRunner):
    app = runner.app
    st.title("✏️ Update Balances")

    if st.button("🔄 Refresh stock prices"):
        with st.spinner("Fetching prices..."):
            runner.run(app.refresh_prices())
        st.rerun()

    edited = []
    with st.form("balances"):
        for account in app.state.accounts:
            st.markdown(f"**{account.name}** ({account.kind.value}, {account.currency.value})")
            if account.is_stock:
                quantity = st.number_input(
                    f"Shares of {account.symbol}",
                    value=float(account.quantity or 0),
                    min_value=0.0,
                    key=f"qty_{account.id}",
                )
                edited.append(account.with_quantity(Decimal(str(quantity))))
            else:
                balance = st.number_input(
                    "Balance",
                    value=float(account.balance),
                    key=f"bal_{account.id}",
                )
                edited.append(account.model_copy(update={"balance": Decimal(str(balance))}))

        if st.form_submit_button("💾 Save", type="primary"):
            runner.call(app.update_accounts, edited)
            st.success("Saved.")
            st.rerun()

    with st.expander("Add account"):
        with st.form("new_account"):
            name = st.text_input("Institution")
            kind = st.selectbox("Type", list(AccountKind), format_func=lambda k: k.value)
            currency = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value)
            amount = st.number_input("Balance (or shares for stocks)", min_value=0.0)
            symbol = st.text_input("Ticker (stocks only)")
            if st.form_submit_button("Add"):
                fields = dict(id=str(len(app.state.accounts) + 1), name=name, kind=kind, currency=currency)
                while app.state.find_account(fields["id"]):
                    fields["id"] = str(int(fields["id"]) + 1)
                if kind == AccountKind.STOCK:
                    account = Account(**fields, symbol=symbol.upper(), quantity=Decimal(str(amount)), last_price=Decimal("0"))
                else:
                    account = Account(**fields, balance=Decimal(str(amount)))
                runner.call(app.update_accounts, [*app.state.accounts, account])
                st.rerun()


def render_deposits_page(runner: AppRunner):
    app = runner.app
    state = app.state
    st.title("🏦 Deposits")

    targets = [a for a in state.accounts if not a.is_stock]

    for deposit in state.deposits:
        with st.expander(f"{deposit.bank_name} - {deposit.currency.value} {money(deposit.principal)} ({deposit.deposit_kind.value})"):
            st.markdown(
                f"Rate {deposit.interest_rate}% - matures {deposit.maturity_date.isoformat()} - "
                f"on maturity: {deposit.action_on_maturity.value}"
            )
            interest = st.number_input(
                "Interest",
                value=float(estimate_term_interest(deposit)),
                min_value=0.0,
                key=f"int_{deposit.id}",
            )
            col1, col2 = st.columns(2)
            with col1:
                new_rate = st.number_input(
                    "New rate %",
                    value=float(deposit.interest_rate),
                    min_value=0.0,
                    key=f"rate_{deposit.id}",
                )
                if st.button("🔁 Roll over 3 months", key=f"roll_{deposit.id}"):
                    runner.call(
                        app.rollover_deposit,
                        deposit.id,
                        Decimal(str(interest)),
                        new_rate=Decimal(str(new_rate)),
                    )
                    st.rerun()
            with col2:
                if targets:
                    target = st.selectbox(
                        "Pay into",
                        targets,
                        format_func=lambda a: f"{a.name} ({a.currency.value})",
                        key=f"target_{deposit.id}",
                    )
                    if st.button("✅ Settle", key=f"settle_{deposit.id}"):
                        try:
                            runner.call(
                                app.settle_deposit_with_interest,
                                deposit.id,
                                target.id,
                                Decimal(str(interest)),
                            )
                        except PreconditionError as e:
                            st.error(str(e))
                        else:
                            st.rerun()
            if st.button("🗑️ Delete", key=f"del_{deposit.id}"):
                runner.call(app.remove_deposit, deposit.id)
                st.rerun()

    with st.expander("Add deposit"):
        bank = st.text_input("Bank", key="fd_bank")
        principal = st.number_input("Principal", min_value=0.0, key="fd_principal")
        currency = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value, key="fd_currency")
        rate = st.number_input("Rate %", min_value=0.0, key="fd_rate")
        start = st.date_input("Start date", value=date.today(), key="fd_start")
        maturity = st.date_input("Maturity date", key="fd_maturity")
        kind = st.selectbox("Kind", list(DepositKind), format_func=lambda k: k.value, key="fd_kind")
        action = st.selectbox("On maturity", list(MaturityAction), format_func=lambda a: a.value, key="fd_action")

        expected = interest_between(Decimal(str(principal)), Decimal(str(rate)), start, maturity)
        st.caption(
            f"Expected interest {money(expected)} over {max(0, (maturity - start).days)} days, "
            f"{money(Decimal(str(principal)) + expected)} at maturity"
        )
        if st.button("Add", key="fd_add"):
            deposit_id = str(max([int(d.id) for d in state.deposits if d.id.isdigit()] + [100]) + 1)
            runner.call(app.add_deposit, Deposit(
                id=deposit_id,
                bank_name=bank or "Other",
                principal=Decimal(str(principal)),
                currency=currency,
                interest_rate=Decimal(str(rate)),
                maturity_date=maturity,
                deposit_kind=kind,
                action_on_maturity=action,
            ))
            st.rerun()


def render_scan_page(runner: AppRunner):
    app = runner.app
    st.title("📷 Scan Statement")
    st.markdown("Upload a photo of a bank or brokerage statement.")

    uploaded_file = st.file_uploader("Statement photo", type=["jpg", "jpeg", "png", "webp"])
    if uploaded_file and st.button("🔍 Analyze", type="primary"):
        with st.spinner("Reading your statement..."):
            st.session_state.scan = runner.run(app.scan_statement(uploaded_file.read()))

    if "scan" not in st.session_state:
        return

    scan, validation = st.session_state.scan
    if scan.is_empty:
        st.error("Nothing could be read from this image. Please retry later or enter figures manually.")
        return

    for index, asset in enumerate(scan.assets):
        accepted = index in validation.accepted_indexes
        price = f" @ {asset.price}" if asset.price else ""
        st.markdown(
            f"{'✅' if accepted else '❌'} **{asset.display_name}** "
            f"{asset.symbol or ''} {asset.amount} {asset.currency}{price}"
        )
    if validation.issues:
        st.warning("\n".join(f"- {i.message}" for i in validation.issues if i.severity != "info"))

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Confirm & import", disabled=not validation.accepted_indexes):
            runner.call(app.import_scan, scan, validation)
            del st.session_state.scan
            st.success("Imported.")
    with col2:
        if st.button("❌ Discard"):
            del st.session_state.scan
            st.rerun()


def render_report_page(runner: AppRunner):
    app = runner.app
    report = app.monthly_report()
    st.title("📅 Monthly Report")

    col1, col2 = st.columns(2)
    col1.metric("Net worth", money(report.net_worth), delta=f"{report.net_change:,}")
    col2.metric("Goal progress", f"{report.goal_progress_pct:.0f}%")

    if report.projected_months_to_goal is not None:
        st.markdown(f"At the recent pace the goal is **{report.projected_months_to_goal} months** away.")
    else:
        st.markdown("Net worth has not grown recently; no goal projection.")

    st.markdown(
        f"Passive income: **{money(report.monthly_passive_income)}/month** "
        f"({report.passive_income_coverage_pct:.0f}% of monthly expenses)"
    )
    if report.cash_warning:
        st.warning(f"Cash is {report.cash_ratio:.0%} of your assets. Consider putting some to work.")
    if report.is_stale:
        st.warning(f"Balances were last updated {report.days_since_update} days ago.")

    st.markdown(
        f"Held in HKD: **{report.home_currency_share_pct:.0f}%** - "
        f"foreign currencies: **{report.foreign_currency_share_pct:.0f}%**"
    )
    if report.cleared_positions:
        names = ", ".join(a.symbol or a.name for a in report.cleared_positions)
        st.info(f"Cleared positions this month: {names}")

    insights = app.income_insights()
    st.markdown("### Passive income")
    col1, col2, col3 = st.columns(3)
    col1.metric("Deposits", money(insights.deposit_monthly))
    col2.metric("Dividends (est.)", money(insights.stock_monthly))
    col3.metric("Cash interest (est.)", money(insights.cash_monthly))
    st.progress(
        insights.coverage_pct / 100,
        text=f"{money(insights.total_monthly)}/month covers {insights.coverage_pct:.0f}% of expenses",
    )
    st.markdown(f"Capital efficiency: **{insights.efficiency_score:.0f}%** of net worth is working")
    for source in insights.sources:
        st.markdown(
            f"- **{source.name}** ({source.kind.value}, {source.currency.value}, "
            f"{source.yield_pct}%): {money(source.monthly)}/month"
        )

    with st.form("goal"):
        goal = st.number_input("Wealth goal", value=float(report.wealth_goal), min_value=0.0)
        if st.form_submit_button("Update goal"):
            runner.call(app.update_goal, Decimal(str(goal)))
            st.rerun()


def render_settings_page(runner: AppRunner):
    st.title("⚙️ Settings")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Firebase (Sync)", "firebase"),
        ("Backup", "backup"),
        ("Google Sheets (Backup)", "google_sheets"),
        ("Price lookup", "price_lookup"),
        ("Gemini (Statement scan)", "gemini"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown(f"**Sync status:** {STATUS_BADGES[runner.app.sync_status]}")
    st.markdown(
        "To configure the application, create a `.env` file with the "
        "FIREBASE_, BACKUP_, PRICE_ and GEMINI_ variables."
    )


if __name__ == "__main__":
    main()
