"""
Webhook Backup Sink

POSTs the flattened asset list to a Google Apps Script web app, which
appends it to the user's spreadsheet. Apps Script answers with a redirect
to the script output, so redirects are followed.
"""

from typing import Optional

import httpx

from wealth_snapshot.config import BackupSettings, get_settings
from wealth_snapshot.exceptions import BackupError
from wealth_snapshot.models.sync import BackupAsset
from wealth_snapshot.services.storage.interface import BackupSinkInterface


class WebhookBackupSink(BackupSinkInterface):
    """Backup sink posting JSON to a webhook URL."""

    def __init__(
        self,
        settings: Optional[BackupSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().backup
        if not self._settings.webhook_url:
            raise BackupError("BACKUP_WEBHOOK_URL is not configured")
        self._url = self._settings.webhook_url
        self._client = client or httpx.AsyncClient(
            timeout=self._settings.timeout,
            follow_redirects=True,
        )

    @staticmethod
    def build_payload(access_code: str, assets: list[BackupAsset]) -> dict:
        return {
            "userId": access_code,
            "assets": [
                asset.model_dump(mode="json", exclude_none=True)
                for asset in assets
            ],
        }

    async def backup(self, access_code: str, assets: list[BackupAsset]) -> bool:
        try:
            response = await self._client.post(
                self._url,
                json=self.build_payload(access_code, assets),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackupError(f"Webhook backup failed: {e}")
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
