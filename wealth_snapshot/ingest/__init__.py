"""Validation and merging of scanned statement assets."""

from wealth_snapshot.ingest.merge import (
    merge_scanned_assets,
    new_account_id,
    scanned_to_account,
)
from wealth_snapshot.ingest.validator import ScanValidator

__all__ = [
    "ScanValidator",
    "merge_scanned_assets",
    "new_account_id",
    "scanned_to_account",
]
