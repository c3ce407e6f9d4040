"""
Statement Scanner using Gemini

Reads a photographed bank or brokerage statement and proposes assets:
CASH balances and STOCK holdings (as share quantities).

This service handles:
1. Decoding and downscaling the uploaded image (Pillow)
2. Asking the multimodal model for a JSON list of assets
3. Parsing that list into ScannedAsset candidates, skipping unusable items

CRITICAL: A scan never raises to the caller. Quota and overload errors are
retried; anything else (or exhausted retries) produces an empty ScanResult
and the user enters the figures by hand.

The scanner only PROPOSES assets. Validation and merging into the account
set happen in wealth_snapshot.ingest.
"""

import io
import json
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from wealth_snapshot.config import GeminiSettings, get_settings
from wealth_snapshot.exceptions import ExtractionError
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.scan import ScannedAsset, ScanResult


logger = get_logger(__name__)


# Longest edge sent to the model; statements stay legible well below this
MAX_IMAGE_EDGE = 2048

SCAN_PROMPT = """Analyze the attached financial statement image.
Extract all assets into a JSON array. For each asset:
- category: "STOCK" (shares, equities, funds) or "CASH" (bank balances, deposits).
- institution: name of the bank or brokerage, e.g. "CommSec", "Hang Seng", "HSBC", "Schwab", "IBKR".
- symbol: the ticker or stock code (e.g. "AAPL", "0700.HK", "GOLD.AX", "IVV"). Empty for CASH.
- amount: for STOCK, the QUANTITY of shares. For CASH, the BALANCE.
- currency: "HKD", "USD" or "AUD". Use "HKD" if not shown.

Return ONLY the JSON array."""

# Rate limiting (429) and overload (503) are worth waiting out
RETRYABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.TooManyRequests,
)


def prepare_image(image_bytes: bytes) -> Image.Image:
    """
    Decode an uploaded image and shrink it to MAX_IMAGE_EDGE.

    Raises:
        ExtractionError: If the bytes are not a readable image
    """
    if not image_bytes:
        raise ExtractionError("Empty image")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ExtractionError(f"Unreadable image: {e}")

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.thumbnail((MAX_IMAGE_EDGE, MAX_IMAGE_EDGE))
    return image


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_scan_response(text: Optional[str]) -> ScanResult:
    """
    Turn the model's reply into a ScanResult.

    Accepts a bare JSON array or an object wrapping it under "assets".
    Items that do not validate are counted in skipped_items.

    Raises:
        ExtractionError: If the reply is not JSON of either shape
    """
    if not text or not text.strip():
        raise ExtractionError("Empty model response")

    try:
        parsed: Any = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model response is not JSON: {e}")

    if isinstance(parsed, dict):
        parsed = parsed.get("assets") or []
    if not isinstance(parsed, list):
        raise ExtractionError("Model response is not a list of assets")

    assets = []
    skipped = 0
    for item in parsed:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            assets.append(ScannedAsset.model_validate(item))
        except ValidationError:
            skipped += 1

    return ScanResult(assets=assets, skipped_items=skipped)


class GeminiStatementScanner:
    """
    Extracts asset candidates from statement images.

    BOUNDARIES:
    - NEVER modifies application state
    - NEVER raises to the caller: failures yield an empty result
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model or self._configure_genai()
        self._retry_wait = retry_wait or wait_exponential(multiplier=3, min=3, max=48)

    def _configure_genai(self) -> "genai.GenerativeModel":
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    async def _generate(self, image: Image.Image) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(5),
            wait=self._retry_wait,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("scan_retrying", attempt=attempt.retry_state.attempt_number)
                response = await self._model.generate_content_async([image, SCAN_PROMPT])
        return response.text

    async def scan(self, image_bytes: bytes) -> ScanResult:
        """Scan one statement image. Returns an empty result on any failure."""
        try:
            image = prepare_image(image_bytes)
            text = await self._generate(image)
            result = parse_scan_response(text)
        except ExtractionError as e:
            logger.warning("scan_failed", error=str(e))
            return ScanResult()
        except google_exceptions.GoogleAPIError as e:
            logger.error("scan_model_error", error=str(e))
            return ScanResult()
        except ValueError as e:
            # Blocked or empty candidates make response.text raise ValueError
            logger.warning("scan_no_text", error=str(e))
            return ScanResult()

        logger.info(
            "scan_completed",
            scan_id=str(result.scan_id),
            asset_count=len(result.assets),
            skipped_items=result.skipped_items,
        )
        return result
