"""Price lookup service."""

from wealth_snapshot.services.pricing.price_lookup import PriceLookupService, normalize_symbol

__all__ = ["PriceLookupService", "normalize_symbol"]
