"""
Statement Scan Models

CRITICAL: A ScannedAsset is PROPOSED data read off a photographed
statement, NOT verified. It goes through validation before it can be merged
into the account set, and invalid candidates are skipped rather than
guessed at.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScanCategory(str, Enum):
    """Asset categories the scanner distinguishes."""
    CASH = "CASH"
    STOCK = "STOCK"


class ScannedAsset(BaseModel):
    """
    One asset candidate extracted from a statement image.

    For STOCK, amount is the QUANTITY of shares. For CASH it is the balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: ScanCategory
    institution: str = Field(
        default="",
        max_length=200,
        description="Bank or brokerage name"
    )
    symbol: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Ticker for stocks"
    )
    amount: Decimal = Field(
        ...,
        description="Quantity (STOCK) or balance (CASH)"
    )
    currency: str = Field(
        default="HKD",
        description="Currency code as read from the statement"
    )
    price: Optional[Decimal] = Field(
        default=None,
        description="Per-share price, looked up or entered by the user"
    )

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "HKD"
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('symbol', mode='before')
    @classmethod
    def empty_symbol_is_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v

    @property
    def display_name(self) -> str:
        """Institution, or a generic label when the scanner found none."""
        if self.institution and self.institution.lower() != "unknown":
            return self.institution
        return "Stocks" if self.category == ScanCategory.STOCK else "Deposit"


class ScanResult(BaseModel):
    """Everything one scan produced."""

    scan_id: UUID = Field(default_factory=uuid4)
    scanned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    assets: list[ScannedAsset] = Field(default_factory=list)
    skipped_items: int = Field(
        default=0,
        ge=0,
        description="Raw items that could not be parsed into a ScannedAsset"
    )

    @property
    def is_empty(self) -> bool:
        return not self.assets


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a scanned asset."""

    index: int = Field(
        ...,
        ge=0,
        description="Position of the asset in the scan result"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unsupported', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="What the user can do about it"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a scan.

    Stage 1: Schema checks per asset (required fields, supported currency)
    Stage 2: Semantic checks (suspicious values, duplicates within the scan)
    """

    issues: list[ValidationIssue] = Field(default_factory=list)
    accepted_indexes: list[int] = Field(
        default_factory=list,
        description="Assets with no error-level issue"
    )

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
