"""
Remote Push Adapter

Propagates each committed state to the remote store, then backs up the
flattened asset list. Pushes are fire-and-forget asyncio tasks: push()
returns immediately and the outcome is only visible through the status.

Status lifecycle per push:   syncing -> synced | offline

CRITICAL: A failed push never rolls back the local state, and the same
state is not retried inline. The next committed mutation pushes the whole
state again, which supersedes anything that was lost.

Pushes requested before the remote channel is ready wait on a readiness
future that the sync session resolves after probing the channel.
"""

import asyncio
from typing import Callable, Optional

from wealth_snapshot.exceptions import BackupError, ChannelNotReadyError, RemoteChannelError
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.sync import SyncStatus, flatten_assets
from wealth_snapshot.models.wealth import AppState
from wealth_snapshot.services.storage.interface import (
    BackupSinkInterface,
    RemoteStateChannelInterface,
)


logger = get_logger(__name__)


StatusListener = Callable[[SyncStatus], None]


class RemotePushAdapter:
    """
    Pushes committed states to the remote channel.

    Register push() as a StateStore commit listener. Without a channel the
    adapter runs in local-only mode: push() is a no-op and the status is
    offline.
    """

    def __init__(
        self,
        channel: Optional[RemoteStateChannelInterface],
        backup: Optional[BackupSinkInterface],
        access_code: str,
    ):
        if not access_code:
            raise ValueError("Access code cannot be empty")
        self._channel = channel
        self._backup = backup
        self._access_code = access_code
        self._status = SyncStatus.OFFLINE if channel is None else SyncStatus.SYNCED
        self._listeners: list[StatusListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._ready: Optional[asyncio.Future] = None
        self._sequence = 0
        self._closed = False

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def access_code(self) -> str:
        return self._access_code

    @property
    def pending(self) -> int:
        """Number of pushes still in flight."""
        return len(self._tasks)

    def on_status(self, listener: StatusListener) -> Callable[[], None]:
        """Call `listener(status)` on every status change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_status(self, status: SyncStatus) -> None:
        if status == self._status:
            return
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("status_listener_failed")

    # -------------------------------------------------------------------------
    # Readiness
    # -------------------------------------------------------------------------

    def _readiness(self) -> asyncio.Future:
        if self._ready is None:
            self._ready = asyncio.get_running_loop().create_future()
        return self._ready

    def mark_ready(self, ready: bool = True) -> None:
        """
        Resolve the readiness future.

        ready=False means the channel never became usable: waiting pushes
        end with status offline.
        """
        future = self._readiness()
        if not future.done():
            future.set_result(ready)
        logger.info("remote_channel_ready" if ready else "remote_channel_unavailable")

    @property
    def is_ready(self) -> bool:
        future = self._ready
        return future is not None and future.done() and not future.cancelled() and future.result()

    # -------------------------------------------------------------------------
    # Pushing
    # -------------------------------------------------------------------------

    def push(self, state: AppState) -> Optional[asyncio.Task]:
        """
        Schedule a push of `state` and return immediately.

        Returns the scheduled task, or None when nothing was scheduled.
        """
        if self._channel is None or self._closed:
            self._set_status(SyncStatus.OFFLINE)
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("push_skipped_no_event_loop")
            self._set_status(SyncStatus.OFFLINE)
            return None

        self._sequence += 1
        self._set_status(SyncStatus.SYNCING)

        task = loop.create_task(self._run_push(state, self._sequence))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _finish(self, sequence: int, status: SyncStatus) -> None:
        # An older push completing late must not override a newer one
        if sequence == self._sequence:
            self._set_status(status)

    async def _run_push(self, state: AppState, sequence: int) -> None:
        try:
            if not await self._readiness():
                raise ChannelNotReadyError("Remote channel is not available")
            await self._channel.push(self._access_code, state)
        except RemoteChannelError as e:
            logger.warning("push_failed", error=str(e), sequence=sequence)
            self._finish(sequence, SyncStatus.OFFLINE)
            return

        logger.info(
            "push_succeeded",
            sequence=sequence,
            last_modified=state.last_modified.isoformat() if state.last_modified else None,
        )
        self._finish(sequence, SyncStatus.SYNCED)

        if self._backup is not None:
            await self._run_backup(state)

    async def _run_backup(self, state: AppState) -> None:
        assets = flatten_assets(state)
        try:
            await self._backup.backup(self._access_code, assets)
            logger.info("backup_succeeded", asset_count=len(assets))
        except BackupError as e:
            logger.warning("backup_failed", error=str(e))

    async def aclose(self) -> None:
        """Cancel in-flight pushes and wait for them to unwind."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("pushes_cancelled", count=len(tasks))
        if self._ready is not None and not self._ready.done():
            self._ready.cancel()
