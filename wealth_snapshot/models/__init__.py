"""
Data Models Package

This package contains all Pydantic models used in Wealth Snapshot.
All state flowing through the system must conform to these schemas.
"""

from wealth_snapshot.models.wealth import (
    BASE_CURRENCY,
    Account,
    AccountKind,
    AppState,
    Currency,
    Deposit,
    DepositKind,
    HistoryEntry,
    MaturityAction,
)
from wealth_snapshot.models.sync import (
    BackupAsset,
    ReconcileDecision,
    SyncStatus,
    flatten_assets,
)
from wealth_snapshot.models.scan import (
    ScanCategory,
    ScannedAsset,
    ScanResult,
    ValidationIssue,
    ValidationResult,
)
from wealth_snapshot.models.report import (
    IncomeSource,
    IncomeSourceKind,
    MaturityReminder,
    MonthlyReport,
    PassiveIncomeInsights,
    ValuationBreakdown,
)

__all__ = [
    # State models
    "BASE_CURRENCY",
    "Account",
    "AccountKind",
    "AppState",
    "Currency",
    "Deposit",
    "DepositKind",
    "HistoryEntry",
    "MaturityAction",
    # Sync models
    "BackupAsset",
    "ReconcileDecision",
    "SyncStatus",
    "flatten_assets",
    # Scan models
    "ScanCategory",
    "ScannedAsset",
    "ScanResult",
    "ValidationIssue",
    "ValidationResult",
    # Report models
    "IncomeSource",
    "IncomeSourceKind",
    "MaturityReminder",
    "MonthlyReport",
    "PassiveIncomeInsights",
    "ValuationBreakdown",
]
