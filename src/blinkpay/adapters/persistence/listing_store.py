# src/blinkpay/adapters/persistence/listing_store.py
"""
Listing Store - Durable Listing Persistence

This module stores merchant listings ("blinks") in a JSON file keyed by
listing id. Every change rewrites the file atomically (temp file + fsync +
rename) under a lock, so concurrent callers never see a half-written file
and never lose each other's writes.

Files that USE this module:
- blinkpay.application.listings (ListingService create/delete/read)
- blinkpay.application.checkout (fetches the listing being bought)
- blinkpay.app (constructs the store from settings)
- tests.test_listing_store (unit tests)

Files that this module USES:
- blinkpay.config (settings.listings_file)
- blinkpay.domain.models (Listing)
- blinkpay.domain.errors (ValidationError)
- blinkpay.shared.validators (validate_wallet_address)
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

from blinkpay.config import settings
from blinkpay.domain.errors import ValidationError
from blinkpay.domain.models import Listing
from blinkpay.shared.validators import validate_wallet_address

logger = logging.getLogger(__name__)


def validate_listing(listing: Listing) -> None:
    """
    Check a listing before it is stored.

    Raises:
        ValidationError: On empty name or description, non-positive price,
            or an owner address that fails the format check
    """
    if not listing.id or not listing.id.strip():
        raise ValidationError("Listing id is required")
    if not listing.name or not listing.name.strip():
        raise ValidationError("Product name is required", listing_id=listing.id)
    if not listing.description or not listing.description.strip():
        raise ValidationError("Product description is required", listing_id=listing.id)
    price = listing.price
    if not isinstance(price, Decimal) or not price.is_finite() or price <= 0:
        raise ValidationError(f"Price must be a positive number, got {price!r}", listing_id=listing.id)
    if not validate_wallet_address(listing.owner):
        raise ValidationError(f"Invalid owner wallet address: {listing.owner!r}", listing_id=listing.id)


class ListingStore:
    """JSON-file listing store keyed by listing id."""

    def __init__(self, store_file: Optional[Path] = None):
        """
        Initialize the store and load any persisted listings.

        Args:
            store_file: Path to the JSON file (defaults to settings.listings_file)
        """
        self.store_file = Path(store_file) if store_file is not None else settings.listings_file
        self.store_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._listings: Dict[str, Listing] = {}
        self._load()

    def _load(self) -> None:
        """Load listings from disk; a corrupt file is backed up and ignored."""
        if not self.store_file.exists():
            logger.info("No listings file found at %s", self.store_file)
            return

        try:
            with self.store_file.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._backup_corrupt(str(e))
            return

        if isinstance(data, dict):
            entries = list(data.values())
        elif isinstance(data, list):
            entries = data
        else:
            self._backup_corrupt(f"top-level {type(data).__name__} instead of an object")
            return

        for entry in entries:
            try:
                listing = Listing.from_json(entry)
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                logger.warning("Skipping unreadable listing entry %r: %s", entry, e)
                continue
            self._listings[listing.id] = listing
        logger.info("Loaded %d listings from %s", len(self._listings), self.store_file)

    def _backup_corrupt(self, reason: str) -> None:
        backup_path = self.store_file.with_suffix(".json.corrupt")
        shutil.copy2(self.store_file, backup_path)
        logger.warning("Listings file corrupted, backed up to %s: %s", backup_path, reason)

    def _save(self) -> None:
        """Write all listings atomically. Caller holds the lock."""
        payload = {listing_id: listing.to_json() for listing_id, listing in self._listings.items()}
        temp_fd, temp_path = tempfile.mkstemp(
            suffix=".json.tmp",
            dir=str(self.store_file.parent),
            text=True,
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, str(self.store_file))
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise RuntimeError(f"Failed to save listings file: {e}") from e

    def create(self, listing: Listing) -> Listing:
        """
        Validate and persist a new listing.

        Raises:
            ValidationError: If the listing is invalid or its id is taken
        """
        validate_listing(listing)
        with self._lock:
            if listing.id in self._listings:
                raise ValidationError(f"Listing {listing.id} already exists", listing_id=listing.id)
            self._listings[listing.id] = listing
            try:
                self._save()
            except RuntimeError:
                del self._listings[listing.id]
                raise
        logger.info("Created listing %s (%s, %s)", listing.id, listing.name, listing.price)
        return listing

    def list(self, owner: Optional[str] = None) -> List[Listing]:
        """All listings, optionally filtered by owner, oldest first."""
        with self._lock:
            listings = list(self._listings.values())
        if owner is not None:
            listings = [item for item in listings if item.owner == owner]
        return sorted(listings, key=lambda item: item.created_at)

    def get(self, listing_id: str) -> Optional[Listing]:
        with self._lock:
            return self._listings.get(listing_id)

    def delete(self, listing_id: str) -> bool:
        """Remove a listing. Returns False if it did not exist."""
        with self._lock:
            listing = self._listings.pop(listing_id, None)
            if listing is None:
                return False
            try:
                self._save()
            except RuntimeError:
                self._listings[listing_id] = listing
                raise
        logger.info("Deleted listing %s", listing_id)
        return True
