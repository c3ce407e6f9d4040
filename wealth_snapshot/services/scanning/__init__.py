"""Statement scanning service package."""

from wealth_snapshot.services.scanning.gemini_scanner import (
    MAX_IMAGE_EDGE,
    GeminiStatementScanner,
    parse_scan_response,
    prepare_image,
)

__all__ = [
    "MAX_IMAGE_EDGE",
    "GeminiStatementScanner",
    "parse_scan_response",
    "prepare_image",
]
