"""Remote synchronisation: reconciler, push adapter and session."""

from wealth_snapshot.sync.push import RemotePushAdapter
from wealth_snapshot.sync.reconciler import Reconciler, decide, is_empty_payload
from wealth_snapshot.sync.session import SyncSession

__all__ = [
    "Reconciler",
    "RemotePushAdapter",
    "SyncSession",
    "decide",
    "is_empty_payload",
]
