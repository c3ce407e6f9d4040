"""
Storage Services Package

Provides abstract interfaces and concrete implementations for local state,
the remote state channel and the backup sink.
"""

from wealth_snapshot.services.storage.interface import (
    BackupSinkInterface,
    LocalStateStorageInterface,
    RemoteStateChannelInterface,
)
from wealth_snapshot.services.storage.local_file import JsonFileStateStorage, state_file_for
from wealth_snapshot.services.storage.memory import (
    InMemoryBackupSink,
    InMemoryRemoteChannel,
    InMemoryStateStorage,
)
from wealth_snapshot.services.storage.firebase import FirebaseStateChannel
from wealth_snapshot.services.storage.webhook import WebhookBackupSink
from wealth_snapshot.services.storage.google_sheets import (
    GoogleSheetsBackupSink,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "BackupSinkInterface",
    "LocalStateStorageInterface",
    "RemoteStateChannelInterface",
    # Local
    "JsonFileStateStorage",
    "InMemoryStateStorage",
    "state_file_for",
    # Remote
    "FirebaseStateChannel",
    "InMemoryRemoteChannel",
    # Backup
    "GoogleSheetsBackupSink",
    "GoogleSheetsClient",
    "InMemoryBackupSink",
    "WebhookBackupSink",
]
