"""
Sync Session

Owns the lifetime of remote synchronisation for one access code:

1. Connect the push adapter to the store's commit listeners
2. Probe the remote channel until it is ready (or give up), then resolve
   the adapter's readiness future
3. Follow the remote subscription and feed every snapshot to the reconciler

stop() tears all of it down: the readiness wait, the subscription and any
in-flight pushes are cancelled.
"""

import asyncio
from typing import Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)
from tenacity.wait import wait_base

from wealth_snapshot.exceptions import RemoteChannelError
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.sync import ReconcileDecision
from wealth_snapshot.services.storage.interface import RemoteStateChannelInterface
from wealth_snapshot.store.state_store import StateStore
from wealth_snapshot.sync.push import RemotePushAdapter
from wealth_snapshot.sync.reconciler import Reconciler


logger = get_logger(__name__)


class SyncSession:
    """
    Wires the State Store, the push adapter and the reconciler to a channel.

    `retry_wait` is the tenacity wait strategy between readiness probes and
    between resubscription attempts (tests pass wait_none()).
    """

    def __init__(
        self,
        store: StateStore,
        channel: Optional[RemoteStateChannelInterface],
        adapter: RemotePushAdapter,
        readiness_timeout: float = 30.0,
        retry_wait: Optional[wait_base] = None,
        max_resubscribe_attempts: int = 3,
    ):
        self._store = store
        self._channel = channel
        self._adapter = adapter
        self._reconciler = Reconciler(store)
        self._readiness_timeout = readiness_timeout
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._max_resubscribe_attempts = max_resubscribe_attempts

        self._unsubscribe = None
        self._readiness_task: Optional[asyncio.Task] = None
        self._subscription_task: Optional[asyncio.Task] = None
        self.last_decision: Optional[ReconcileDecision] = None

    @property
    def adapter(self) -> RemotePushAdapter:
        return self._adapter

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        """Begin syncing. Returns without waiting for the channel to be ready."""
        if self.running:
            return
        self._unsubscribe = self._store.subscribe(self._adapter.push)

        if self._channel is None:
            logger.info("sync_session_local_only")
            return

        self._readiness_task = asyncio.create_task(self._await_readiness())
        logger.info("sync_session_started", access_code_length=len(self._adapter.access_code))

    async def wait_ready(self) -> bool:
        """Wait for the readiness probe to finish. Returns True if the channel is usable."""
        if self._readiness_task is None:
            return False
        try:
            await asyncio.shield(self._readiness_task)
        except asyncio.CancelledError:
            return False
        return self._adapter.is_ready

    async def _await_readiness(self) -> None:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_delay(self._readiness_timeout),
                wait=self._retry_wait,
                retry=retry_if_exception_type(RemoteChannelError),
                reraise=True,
            ):
                with attempt:
                    await self._channel.probe()
        except RemoteChannelError as e:
            logger.warning("remote_not_ready", error=str(e), timeout=self._readiness_timeout)
            self._adapter.mark_ready(False)
            return

        self._adapter.mark_ready(True)
        self._subscription_task = asyncio.create_task(self._follow())

    async def _follow(self) -> None:
        """Feed remote snapshots to the reconciler, resubscribing after errors."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_resubscribe_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(RemoteChannelError),
            ):
                with attempt:
                    async for payload in self._channel.subscribe(self._adapter.access_code):
                        self.last_decision = self._reconciler.receive(payload)
        except RetryError as e:
            logger.warning(
                "remote_subscription_lost",
                error=str(e.last_attempt.exception()),
                attempts=self._max_resubscribe_attempts,
            )

    async def stop(self) -> None:
        """Cancel the readiness wait, the subscription and in-flight pushes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = [t for t in (self._readiness_task, self._subscription_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._readiness_task = None
        self._subscription_task = None

        await self._adapter.aclose()
        logger.info("sync_session_stopped")
