"""Services package."""

from wealth_snapshot.services.pricing import PriceLookupService
from wealth_snapshot.services.scanning import GeminiStatementScanner
from wealth_snapshot.services.storage import (
    BackupSinkInterface,
    FirebaseStateChannel,
    GoogleSheetsBackupSink,
    GoogleSheetsClient,
    InMemoryBackupSink,
    InMemoryRemoteChannel,
    InMemoryStateStorage,
    JsonFileStateStorage,
    LocalStateStorageInterface,
    RemoteStateChannelInterface,
    WebhookBackupSink,
)

__all__ = [
    # Pricing
    "PriceLookupService",
    # Scanning
    "GeminiStatementScanner",
    # Storage
    "BackupSinkInterface",
    "FirebaseStateChannel",
    "GoogleSheetsBackupSink",
    "GoogleSheetsClient",
    "InMemoryBackupSink",
    "InMemoryRemoteChannel",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "LocalStateStorageInterface",
    "RemoteStateChannelInterface",
    "WebhookBackupSink",
]
