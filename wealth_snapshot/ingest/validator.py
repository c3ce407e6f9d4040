"""
Two-Stage Validation of Scanned Assets

STAGE 1 - SCHEMA VALIDATION (per asset):
- Positive amount
- Ticker present for STOCK
- Currency is one the app can value

STAGE 2 - SEMANTIC VALIDATION (only for assets that passed stage 1):
- Fractional share quantities
- Implausibly large figures
- Duplicates within the same scan
- Stocks with no price yet

IMPORTANT: Validation NEVER silently fixes issues. An asset with an
error-level issue is left out of accepted_indexes; warnings are reported
for the user to review and do not block the asset.
"""

from decimal import Decimal
from typing import Iterable, Optional

from wealth_snapshot.models.scan import (
    ScanCategory,
    ScannedAsset,
    ScanResult,
    ValidationIssue,
    ValidationResult,
)
from wealth_snapshot.models.wealth import Account, Currency


# Above this a scanned figure is more likely a misread than a balance
SUSPICIOUS_AMOUNT = Decimal("100000000")

SUPPORTED_CURRENCIES = {c.value for c in Currency}


class ScanValidator:
    """
    Validates a ScanResult before it is merged into the account set.

    Pass the current accounts to flag scanned stocks already tracked.
    """

    def __init__(self, existing_accounts: Optional[Iterable[Account]] = None):
        self._existing_symbols = {
            a.symbol.upper()
            for a in (existing_accounts or [])
            if a.is_stock and a.symbol
        }

    def _validate_schema(self, index: int, asset: ScannedAsset) -> list[ValidationIssue]:
        issues = []

        if asset.amount <= 0:
            issues.append(ValidationIssue(
                index=index,
                field="amount",
                issue_type="invalid_value",
                message=f"{asset.display_name}: amount must be greater than zero",
                severity="error",
                suggested_fix="Check if the amount was read correctly",
            ))

        if asset.category == ScanCategory.STOCK and not asset.symbol:
            issues.append(ValidationIssue(
                index=index,
                field="symbol",
                issue_type="missing",
                message=f"{asset.display_name}: stock holding has no ticker",
                severity="error",
                suggested_fix="Enter the ticker, e.g. 0700.HK",
            ))

        if asset.currency not in SUPPORTED_CURRENCIES:
            issues.append(ValidationIssue(
                index=index,
                field="currency",
                issue_type="unsupported",
                message=f"{asset.display_name}: currency {asset.currency} is not supported",
                severity="error",
                suggested_fix=f"Use one of {', '.join(sorted(SUPPORTED_CURRENCIES))}",
            ))

        if not asset.institution or asset.institution.lower() == "unknown":
            issues.append(ValidationIssue(
                index=index,
                field="institution",
                issue_type="missing",
                message=f"Asset {index + 1}: institution not found, using '{asset.display_name}'",
                severity="warning",
                suggested_fix="You can rename the account after saving",
            ))

        return issues

    def _validate_semantic(self, index: int, asset: ScannedAsset) -> list[ValidationIssue]:
        issues = []

        if asset.category == ScanCategory.STOCK:
            if asset.amount != asset.amount.to_integral_value():
                issues.append(ValidationIssue(
                    index=index,
                    field="amount",
                    issue_type="suspicious_value",
                    message=f"{asset.symbol}: fractional share quantity {asset.amount}",
                    severity="warning",
                    suggested_fix="Verify the quantity was not read from a price column",
                ))
            if asset.price is None or asset.price <= 0:
                issues.append(ValidationIssue(
                    index=index,
                    field="price",
                    issue_type="missing",
                    message=f"{asset.symbol}: no price yet, valued at 0 until refreshed",
                    severity="info",
                ))
            if asset.symbol in self._existing_symbols:
                issues.append(ValidationIssue(
                    index=index,
                    field="symbol",
                    issue_type="potential_duplicate",
                    message=f"{asset.symbol} is already tracked in another account",
                    severity="warning",
                    suggested_fix="Remove the old account if this replaces it",
                ))

        if asset.amount > SUSPICIOUS_AMOUNT:
            issues.append(ValidationIssue(
                index=index,
                field="amount",
                issue_type="suspicious_value",
                message=f"{asset.display_name}: amount {asset.amount:,} seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def _check_duplicates(self, assets: list[ScannedAsset], accepted: list[int]) -> list[ValidationIssue]:
        """Same category, institution and ticker appearing twice in one scan."""
        issues = []
        seen: dict[tuple, int] = {}
        for index in accepted:
            asset = assets[index]
            key = (asset.category, asset.display_name.lower(), asset.symbol or "")
            if key in seen:
                issues.append(ValidationIssue(
                    index=index,
                    field="asset",
                    issue_type="potential_duplicate",
                    message=(
                        f"{asset.display_name} {asset.symbol or ''}".strip()
                        + f" appears more than once (see asset {seen[key] + 1})"
                    ),
                    severity="warning",
                    suggested_fix="Remove one of the entries if they are the same holding",
                ))
            else:
                seen[key] = index
        return issues

    def validate(self, result: ScanResult) -> ValidationResult:
        """Run both stages over every asset in the scan."""
        all_issues: list[ValidationIssue] = []
        accepted: list[int] = []

        for index, asset in enumerate(result.assets):
            schema_issues = self._validate_schema(index, asset)
            all_issues.extend(schema_issues)
            if any(i.severity == "error" for i in schema_issues):
                continue

            all_issues.extend(self._validate_semantic(index, asset))
            accepted.append(index)

        all_issues.extend(self._check_duplicates(result.assets, accepted))

        return ValidationResult(issues=all_issues, accepted_indexes=accepted)

    def get_user_friendly_summary(self, result: ValidationResult, total: int) -> str:
        """Short text for the review screen."""
        if not result.issues:
            return f"All {total} assets look good. Please review before saving."

        lines = []
        rejected = total - len(result.accepted_indexes)
        if rejected:
            lines.append(f"{rejected} of {total} assets cannot be imported:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
