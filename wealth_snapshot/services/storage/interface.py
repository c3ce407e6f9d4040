"""
Abstract Storage Interfaces

Three storage collaborators, each behind an interface so the State Store,
the push adapter and the sync session never depend on a concrete backend:

1. Local durable storage: one record holding the full AppState plus the
   access code. Synchronous; owned exclusively by the State Store.
2. Remote state channel: push the full state under an access code and
   subscribe to snapshots of it. Shared by every device using the code,
   with no transactional guarantee.
3. Backup sink: best-effort copy of the flattened asset list.

In-memory implementations (services.storage.memory) back the tests and
local-only mode.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

from wealth_snapshot.models.sync import BackupAsset
from wealth_snapshot.models.wealth import AppState


class LocalStateStorageInterface(ABC):
    """
    Abstract interface for the local persisted state record.
    """

    @abstractmethod
    def load(self) -> Optional[AppState]:
        """
        Load the persisted state.

        Returns:
            The state, or None if nothing has been persisted yet

        Raises:
            CorruptStateError: If a record exists but cannot be parsed
            StorageError: If the storage cannot be read at all
        """
        pass

    @abstractmethod
    def save(self, state: AppState) -> None:
        """
        Persist the state, replacing any previous record.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load_access_code(self) -> Optional[str]:
        """Return the persisted access code, or None."""
        pass

    @abstractmethod
    def save_access_code(self, access_code: str) -> None:
        """
        Persist the access code.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted state (the access code is kept)."""
        pass


class RemoteStateChannelInterface(ABC):
    """
    Abstract interface for the remote state store.

    The channel is an opaque "push state / receive state" pipe with
    unreliable delivery. Snapshots received through subscribe() include
    echoes of this device's own pushes.
    """

    @abstractmethod
    async def probe(self) -> None:
        """
        Check that the channel can be used.

        Raises:
            RemoteChannelError: If the remote store is not reachable yet
        """
        pass

    @abstractmethod
    async def push(self, access_code: str, state: AppState) -> None:
        """
        Write the full state under the access code.

        Raises:
            RemoteChannelError: If the write fails
        """
        pass

    @abstractmethod
    def subscribe(self, access_code: str) -> AsyncIterator[Optional[Any]]:
        """
        Yield the raw remote snapshot every time it changes.

        The first item is the current value. None means the remote node
        holds no state yet. Items are raw wire dicts; validating them is
        the reconciler's job.

        Raises:
            RemoteChannelError: If the subscription cannot be established
                               or is cancelled by the server
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources."""
        pass


class BackupSinkInterface(ABC):
    """
    Abstract interface for the secondary asset backup.
    """

    @abstractmethod
    async def backup(self, access_code: str, assets: list[BackupAsset]) -> bool:
        """
        Send the flattened asset list.

        Returns:
            True if the backup was accepted

        Raises:
            BackupError: If the sink failed
        """
        pass
