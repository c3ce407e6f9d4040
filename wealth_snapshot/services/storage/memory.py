"""
In-memory storage implementations.

Used by the test suite and when the application runs without a state file
or without a remote store. The in-memory channel behaves like a shared
remote: every push is delivered to every open subscription, including the
pusher's own.
"""

import asyncio
from typing import Any, AsyncIterator, Optional

from wealth_snapshot.exceptions import RemoteChannelError, StorageError
from wealth_snapshot.models.sync import BackupAsset
from wealth_snapshot.models.wealth import AppState
from wealth_snapshot.services.storage.interface import (
    BackupSinkInterface,
    LocalStateStorageInterface,
    RemoteStateChannelInterface,
)


class InMemoryStateStorage(LocalStateStorageInterface):
    """Local state storage held in a dict. Set `fail_writes` to simulate a full disk."""

    def __init__(self, state: Optional[AppState] = None, access_code: Optional[str] = None):
        self._state = state
        self._access_code = access_code
        self.fail_writes = False
        self.save_count = 0

    def load(self) -> Optional[AppState]:
        return self._state

    def save(self, state: AppState) -> None:
        if self.fail_writes:
            raise StorageError("In-memory storage configured to fail")
        self._state = state
        self.save_count += 1

    def load_access_code(self) -> Optional[str]:
        return self._access_code

    def save_access_code(self, access_code: str) -> None:
        if self.fail_writes:
            raise StorageError("In-memory storage configured to fail")
        self._access_code = access_code

    def clear(self) -> None:
        self._state = None


class InMemoryRemoteChannel(RemoteStateChannelInterface):
    """
    A remote store living in this process.

    `ready` controls probe(); `fail_pushes` makes push() raise.
    """

    def __init__(self, ready: bool = True):
        self.ready = ready
        self.fail_pushes = False
        self.documents: dict[str, Any] = {}
        self.push_count = 0
        self._queues: dict[str, list[asyncio.Queue]] = {}

    async def probe(self) -> None:
        if not self.ready:
            raise RemoteChannelError("In-memory channel not ready")

    async def push(self, access_code: str, state: AppState) -> None:
        if self.fail_pushes:
            raise RemoteChannelError("In-memory channel configured to fail")
        self.push_count += 1
        self.publish(access_code, state.to_wire())

    def publish(self, access_code: str, payload: Any) -> None:
        """Store a raw payload and deliver it to subscribers (simulates another device)."""
        self.documents[access_code] = payload
        for queue in self._queues.get(access_code, []):
            queue.put_nowait(payload)

    async def subscribe(self, access_code: str) -> AsyncIterator[Optional[Any]]:
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.setdefault(access_code, []).append(queue)
        try:
            yield self.documents.get(access_code)
            while True:
                yield await queue.get()
        finally:
            self._queues[access_code].remove(queue)

    async def aclose(self) -> None:
        self._queues.clear()


class InMemoryBackupSink(BackupSinkInterface):
    """Records every backup it receives."""

    def __init__(self):
        self.received: list[tuple[str, list[BackupAsset]]] = []

    async def backup(self, access_code: str, assets: list[BackupAsset]) -> bool:
        self.received.append((access_code, list(assets)))
        return True
