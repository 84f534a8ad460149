# src/blinkpay/adapters/persistence/__init__.py
"""
Persistence Adapters - Listing Storage

This package contains the JSON-file listing store.
"""

from blinkpay.adapters.persistence.listing_store import ListingStore, validate_listing

__all__ = [
    "ListingStore",
    "validate_listing",
]
