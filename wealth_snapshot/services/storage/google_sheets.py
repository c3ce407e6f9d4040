"""
Google Sheets Backup Sink

Alternative to the webhook: writes the flattened asset list straight into a
worksheet with a service account. Each access code owns a block of rows;
a backup replaces that block.

gspread is synchronous, so every sheet operation runs in a worker thread.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from wealth_snapshot.config import GoogleSheetsSettings, get_settings
from wealth_snapshot.exceptions import BackupError
from wealth_snapshot.models.sync import BackupAsset
from wealth_snapshot.services.storage.interface import BackupSinkInterface


# Column mappings for the Assets sheet
ASSET_COLUMNS = [
    "user_id",
    "synced_at",
    "category",
    "institution",
    "symbol",
    "amount",
    "currency",
    "maturity_date",
]


class GoogleSheetsClient:
    """
    Service-account connection to the backup spreadsheet.

    The connection is made lazily and retried; the worksheet is created with
    a header row on first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authenticate with the service account credentials."""
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackupError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackupError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackupError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_assets_sheet(self) -> gspread.Worksheet:
        """Get or create the Assets worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.assets_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.assets_sheet_name,
                rows=1000,
                cols=len(ASSET_COLUMNS),
            )
            sheet.append_row(ASSET_COLUMNS)
        return sheet


def asset_to_row(access_code: str, synced_at: datetime, asset: BackupAsset) -> list:
    """Convert a BackupAsset to a spreadsheet row."""
    return [
        access_code,
        synced_at.isoformat(),
        asset.category,
        asset.institution,
        asset.symbol,
        str(asset.amount),
        asset.currency,
        asset.maturity_date or "",
    ]


class GoogleSheetsBackupSink(BackupSinkInterface):
    """
    Google Sheets implementation of the backup sink.

    One row per asset; the user's previous rows are deleted before the new
    ones are appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _replace_rows(self, access_code: str, rows: list[list]) -> None:
        sheet = self._client.get_assets_sheet()
        all_rows = sheet.get_all_values()

        # Delete bottom-up so earlier indexes stay valid (row 1 is header)
        stale = [
            idx for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0] == access_code
        ]
        for idx in reversed(stale):
            sheet.delete_rows(idx)

        if rows:
            sheet.append_rows(rows, value_input_option="RAW")

    async def backup(self, access_code: str, assets: list[BackupAsset]) -> bool:
        synced_at = datetime.now(timezone.utc)
        rows = [asset_to_row(access_code, synced_at, asset) for asset in assets]
        try:
            await asyncio.to_thread(self._replace_rows, access_code, rows)
        except BackupError:
            raise
        except Exception as e:
            raise BackupError(f"Failed to write asset backup: {e}")
        return True
