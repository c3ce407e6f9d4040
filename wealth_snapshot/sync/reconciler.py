"""
Sync Reconciler

Decides whether an inbound remote snapshot should replace the local state.

Rules, in order:
1. No local state yet            -> accept
2. Remote has a timestamp and it is newer than local (or local has none)
   and the content differs        -> accept wholesale
3. Anything else                  -> discard

DESIGN DECISION: Last-writer-wins on the whole document. There is no field
merge; a device that was offline and commits after reconnecting overwrites
whatever the other device wrote in between.

CRITICAL: Discarding must not persist and must not push. Echoes of this
device's own pushes come back through the subscription; a content-equal
echo with a later timestamp is discarded, which is what stops the
push/receive loop.
"""

from typing import Any, Optional

from pydantic import ValidationError

from wealth_snapshot.log import get_logger
from wealth_snapshot.models.sync import ReconcileDecision
from wealth_snapshot.models.wealth import AppState
from wealth_snapshot.store.state_store import StateStore


logger = get_logger(__name__)


# Marker written by other clients for a freshly created user node
NEW_USER_MARKER = "_isNewUser"


def decide(local: Optional[AppState], remote: AppState) -> ReconcileDecision:
    """Pure decision: ACCEPTED or DISCARDED."""
    if local is None:
        return ReconcileDecision.ACCEPTED

    remote_ts = remote.last_modified
    local_ts = local.last_modified
    is_newer = remote_ts is not None and (local_ts is None or remote_ts > local_ts)

    if is_newer and not remote.same_content(local):
        return ReconcileDecision.ACCEPTED
    return ReconcileDecision.DISCARDED


def is_empty_payload(payload: Any) -> bool:
    """True when the remote node holds no state (missing, empty or a new-user marker)."""
    if payload is None:
        return True
    if isinstance(payload, dict):
        return not payload or bool(payload.get(NEW_USER_MARKER))
    return False


class Reconciler:
    """Applies decide() to raw payloads arriving from the remote channel."""

    def __init__(self, store: StateStore):
        self._store = store

    def receive(self, payload: Any) -> ReconcileDecision:
        if is_empty_payload(payload):
            logger.info("remote_snapshot_empty")
            return ReconcileDecision.EMPTY

        try:
            remote = AppState.from_wire(payload)
        except ValidationError as e:
            logger.warning("remote_snapshot_rejected", error_count=e.error_count())
            return ReconcileDecision.REJECTED

        local = self._store.state
        decision = decide(local, remote)

        if decision == ReconcileDecision.ACCEPTED:
            self._store.replace_state(remote)
            logger.info(
                "remote_snapshot_accepted",
                remote_last_modified=remote.last_modified.isoformat() if remote.last_modified else None,
            )
        else:
            logger.debug(
                "remote_snapshot_discarded",
                remote_last_modified=remote.last_modified.isoformat() if remote.last_modified else None,
            )
        return decision
