"""Tests for the reconciler, the push adapter and the sync session."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from tenacity import wait_none

from wealth_snapshot.exceptions import BackupError
from wealth_snapshot.models import ReconcileDecision, SyncStatus
from wealth_snapshot.services.storage import (
    InMemoryBackupSink,
    InMemoryRemoteChannel,
    InMemoryStateStorage,
)
from wealth_snapshot.store import StateStore
from wealth_snapshot.sync import Reconciler, RemotePushAdapter, SyncSession, decide, is_empty_payload

from conftest import FIXED_NOW, app_state, cash_account


CODE = "family-code"

T1 = FIXED_NOW - timedelta(hours=2)
T2 = FIXED_NOW - timedelta(hours=1)


class FailingBackupSink(InMemoryBackupSink):
    async def backup(self, access_code, assets):
        raise BackupError("sheet unavailable")


async def drain(adapter: RemotePushAdapter, rounds: int = 50) -> None:
    """Let scheduled pushes run to completion."""
    for _ in range(rounds):
        if not adapter.pending:
            return
        await asyncio.sleep(0)


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class TestDecide:
    """Tests for the pure reconciliation rule."""

    def test_accepts_when_local_absent(self):
        """Test that anything is accepted with no local state."""
        assert decide(None, app_state(last_modified=None)) == ReconcileDecision.ACCEPTED

    def test_discards_content_equal_echo(self):
        """Test that a newer snapshot with the same content is discarded."""
        local = app_state(accounts=[cash_account()], last_modified=T1)
        remote = app_state(accounts=[cash_account()], last_modified=T2)
        assert decide(local, remote) == ReconcileDecision.DISCARDED

    def test_accepts_newer_different(self):
        """Test that a newer, different snapshot wins."""
        local = app_state(accounts=[cash_account(balance="1")], last_modified=T1)
        remote = app_state(accounts=[cash_account(balance="2")], last_modified=T2)
        assert decide(local, remote) == ReconcileDecision.ACCEPTED

    def test_discards_older_different(self):
        """Test that an older snapshot loses."""
        local = app_state(accounts=[cash_account(balance="1")], last_modified=T2)
        remote = app_state(accounts=[cash_account(balance="2")], last_modified=T1)
        assert decide(local, remote) == ReconcileDecision.DISCARDED

    def test_discards_equal_timestamps(self):
        """Test that an identical timestamp is not newer."""
        local = app_state(accounts=[cash_account(balance="1")], last_modified=T1)
        remote = app_state(accounts=[cash_account(balance="2")], last_modified=T1)
        assert decide(local, remote) == ReconcileDecision.DISCARDED

    def test_remote_without_timestamp_is_discarded(self):
        """Test that a remote with no timestamp never wins over local."""
        local = app_state(accounts=[cash_account(balance="1")], last_modified=T1)
        remote = app_state(accounts=[cash_account(balance="2")], last_modified=None)
        assert decide(local, remote) == ReconcileDecision.DISCARDED

    def test_local_without_timestamp_loses(self):
        """Test that any timestamped remote beats an unstamped local."""
        local = app_state(accounts=[cash_account(balance="1")], last_modified=None)
        remote = app_state(accounts=[cash_account(balance="2")], last_modified=T1)
        assert decide(local, remote) == ReconcileDecision.ACCEPTED

    @pytest.mark.parametrize("payload", [None, {}, {"_isNewUser": True}])
    def test_empty_payloads(self, payload):
        """Test what counts as an empty remote node."""
        assert is_empty_payload(payload)


class TestReconciler:
    """Tests for applying remote snapshots to the store."""

    def _store(self, clock):
        storage = InMemoryStateStorage(state=app_state(accounts=[cash_account(balance="1")], last_modified=T1))
        return StateStore(storage, clock=clock), storage

    def test_echo_leaves_local_untouched(self, clock):
        """Test that an echo is not applied and not re-persisted."""
        store, storage = self._store(clock)
        local = store.state
        echo = app_state(accounts=[cash_account(balance="1")], last_modified=T2).to_wire()

        decision = Reconciler(store).receive(echo)

        assert decision == ReconcileDecision.DISCARDED
        assert store.state is local
        assert storage.save_count == 0

    def test_newer_remote_replaces_local(self, clock):
        """Test wholesale acceptance, with the remote timestamp kept."""
        store, storage = self._store(clock)
        pushed = []
        store.subscribe(pushed.append)
        remote = app_state(accounts=[cash_account(balance="2"), cash_account("b")], last_modified=T2)

        decision = Reconciler(store).receive(remote.to_wire())

        assert decision == ReconcileDecision.ACCEPTED
        assert store.state.same_content(remote)
        assert store.state.last_modified == T2
        assert storage.save_count == 1
        assert pushed == []

    def test_seeded_device_adopts_remote(self, clock):
        """Test that a first-run seed gives way to an existing remote state."""
        storage = InMemoryStateStorage()
        store = StateStore(storage, clock=clock)
        remote = app_state(accounts=[cash_account(balance="777777")], last_modified=FIXED_NOW - timedelta(days=1))

        decision = Reconciler(store).receive(remote.to_wire())

        assert decision == ReconcileDecision.ACCEPTED
        assert [a.balance for a in store.state.accounts] == [Decimal("777777")]
        assert storage.load() is store.state

    def test_malformed_payload_is_rejected(self, clock):
        """Test that a snapshot failing validation is not applied."""
        store, _ = self._store(clock)
        local = store.state
        decision = Reconciler(store).receive({"accounts": [{"id": "", "type": "Gold"}], "lastUpdated": T2.isoformat()})
        assert decision == ReconcileDecision.REJECTED
        assert store.state is local

    def test_empty_node_is_ignored(self, clock):
        """Test that a new user's empty node does not wipe local state."""
        store, _ = self._store(clock)
        local = store.state
        assert Reconciler(store).receive({"_isNewUser": True}) == ReconcileDecision.EMPTY
        assert store.state is local


class TestRemotePushAdapter:
    """Tests for fire-and-forget pushes."""

    @pytest.mark.asyncio
    async def test_push_success(self):
        """Test syncing -> synced, the remote write and the backup."""
        channel = InMemoryRemoteChannel()
        backup = InMemoryBackupSink()
        adapter = RemotePushAdapter(channel, backup, CODE)
        adapter.mark_ready()
        state = app_state(accounts=[cash_account()])

        task = adapter.push(state)
        assert adapter.status == SyncStatus.SYNCING
        await task

        assert adapter.status == SyncStatus.SYNCED
        assert channel.documents[CODE] == state.to_wire()
        assert backup.received[0][0] == CODE
        assert [a.category for a in backup.received[0][1]] == ["CASH"]

    @pytest.mark.asyncio
    async def test_push_failure_goes_offline(self):
        """Test that a rejected write sets offline and is not retried."""
        channel = InMemoryRemoteChannel()
        channel.fail_pushes = True
        backup = InMemoryBackupSink()
        adapter = RemotePushAdapter(channel, backup, CODE)
        adapter.mark_ready()

        await adapter.push(app_state())

        assert adapter.status == SyncStatus.OFFLINE
        assert channel.push_count == 0
        assert backup.received == []

    @pytest.mark.asyncio
    async def test_push_waits_for_readiness(self):
        """Test that nothing is written before the channel is ready."""
        channel = InMemoryRemoteChannel()
        adapter = RemotePushAdapter(channel, None, CODE)

        task = adapter.push(app_state())
        await settle()
        assert channel.push_count == 0

        adapter.mark_ready()
        await task
        assert channel.push_count == 1
        assert adapter.status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_unavailable_channel_goes_offline(self):
        """Test that pending pushes end offline if the channel never readies."""
        adapter = RemotePushAdapter(InMemoryRemoteChannel(), None, CODE)
        task = adapter.push(app_state())
        adapter.mark_ready(False)
        await task
        assert adapter.status == SyncStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_backup_failure_keeps_synced(self):
        """Test that the best-effort backup does not affect the status."""
        adapter = RemotePushAdapter(InMemoryRemoteChannel(), FailingBackupSink(), CODE)
        adapter.mark_ready()
        await adapter.push(app_state())
        assert adapter.status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_status_listener(self):
        """Test that observers see each transition."""
        adapter = RemotePushAdapter(InMemoryRemoteChannel(), None, CODE)
        adapter.mark_ready()
        seen = []
        adapter.on_status(seen.append)

        await adapter.push(app_state())

        assert seen == [SyncStatus.SYNCING, SyncStatus.SYNCED]

    @pytest.mark.asyncio
    async def test_aclose_cancels_pending(self):
        """Test that closing cancels pushes still waiting for readiness."""
        channel = InMemoryRemoteChannel()
        adapter = RemotePushAdapter(channel, None, CODE)
        task = adapter.push(app_state())

        await adapter.aclose()

        assert task.cancelled()
        assert adapter.pending == 0
        assert adapter.push(app_state()) is None
        assert channel.push_count == 0

    @pytest.mark.asyncio
    async def test_not_ready_after_close(self):
        """Test that a readiness wait cut short by closing reads as not ready."""
        adapter = RemotePushAdapter(InMemoryRemoteChannel(), None, CODE)
        adapter.push(app_state())
        await settle()

        await adapter.aclose()
        adapter.mark_ready()

        assert adapter.is_ready is False

    def test_local_only_mode(self):
        """Test that without a channel push is a no-op and the status offline."""
        adapter = RemotePushAdapter(None, None, "local")
        assert adapter.push(app_state()) is None
        assert adapter.status == SyncStatus.OFFLINE

    def test_requires_access_code(self):
        """Test that an empty access code is refused."""
        with pytest.raises(ValueError):
            RemotePushAdapter(InMemoryRemoteChannel(), None, "")


class TestSyncSession:
    """Tests for the full push/subscribe loop."""

    def _session(self, clock, channel, **kwargs):
        storage = InMemoryStateStorage(state=app_state(accounts=[cash_account(balance="1")], last_modified=T1))
        store = StateStore(storage, clock=clock)
        adapter = RemotePushAdapter(channel, InMemoryBackupSink(), CODE)
        session = SyncSession(store, channel, adapter, retry_wait=wait_none(), **kwargs)
        return session, store, storage

    @pytest.mark.asyncio
    async def test_mutation_is_pushed_and_echo_discarded(self, clock):
        """Test commit -> push -> own echo discarded without re-persisting."""
        channel = InMemoryRemoteChannel()
        session, store, storage = self._session(clock, channel)
        await session.start()
        assert await session.wait_ready()
        await settle()

        state = store.update_accounts([cash_account(balance="500")])
        saves_after_commit = storage.save_count
        await drain(session.adapter)
        await settle()

        assert channel.documents[CODE] == state.to_wire()
        assert session.adapter.status == SyncStatus.SYNCED
        assert session.last_decision == ReconcileDecision.DISCARDED
        assert store.state is state
        assert storage.save_count == saves_after_commit
        assert channel.push_count == 1

        await session.stop()

    @pytest.mark.asyncio
    async def test_remote_change_is_applied(self, clock):
        """Test that another device's newer state replaces local state."""
        channel = InMemoryRemoteChannel()
        session, store, _ = self._session(clock, channel)
        await session.start()
        await session.wait_ready()
        await settle()

        other = app_state(accounts=[cash_account(balance="999")], last_modified=T2)
        channel.publish(CODE, other.to_wire())
        await settle()

        assert session.last_decision == ReconcileDecision.ACCEPTED
        assert store.state.same_content(other)
        assert channel.push_count == 0

        await session.stop()

    @pytest.mark.asyncio
    async def test_never_ready_channel(self, clock):
        """Test that a channel that never readies leaves pushes offline."""
        channel = InMemoryRemoteChannel(ready=False)
        session, store, _ = self._session(clock, channel, readiness_timeout=0.05)
        await session.start()

        assert await session.wait_ready() is False
        store.update_accounts([cash_account(balance="2")])
        await drain(session.adapter)

        assert session.adapter.status == SyncStatus.OFFLINE
        assert store.state.accounts[0].balance == Decimal("2")

        await session.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_everything(self, clock):
        """Test that stop cancels the readiness wait and pending pushes."""
        channel = InMemoryRemoteChannel(ready=False)
        session, store, _ = self._session(clock, channel, readiness_timeout=60)
        await session.start()
        store.update_accounts([cash_account(balance="3")])
        assert session.adapter.pending == 1

        await session.stop()

        assert session.adapter.pending == 0
        assert not session.running
        store.update_accounts([cash_account(balance="4")])
        assert session.adapter.pending == 0
        assert channel.push_count == 0

    @pytest.mark.asyncio
    async def test_local_only_session(self, clock):
        """Test a session without a remote channel."""
        session, store, _ = self._session(clock, None)
        await session.start()
        store.update_accounts([])
        assert session.adapter.status == SyncStatus.OFFLINE
        assert await session.wait_ready() is False
        await session.stop()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
