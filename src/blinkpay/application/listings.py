# src/blinkpay/application/listings.py
"""
Listing Service - Merchant Listings and Public Read Surface

Creates and deletes listings ("blinks") and exposes the read-only views used
by dashboards: a listing, a merchant's listings, and the payments recorded
against a merchant or a listing. Also builds the shareable blink URL and the
link-preview card for a listing.

Files that USE this module:
- blinkpay.app (listings commands)
- tests.test_listings (unit tests)

Files that this module USES:
- blinkpay.adapters.persistence.listing_store (ListingStore)
- blinkpay.application.ledger (PaymentLedger registration and projections)
- blinkpay.config (BLINK_BASE_URL)
- blinkpay.domain.models (Listing, PaymentRecord)
- blinkpay.shared.validators (slugify, sanitize_user_input, parse_positive_decimal)
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from blinkpay.adapters.persistence.listing_store import ListingStore
from blinkpay.application.ledger import PaymentLedger
from blinkpay.config import settings
from blinkpay.domain.errors import ValidationError
from blinkpay.domain.models import Listing, PaymentRecord, utc_now
from blinkpay.shared.validators import parse_positive_decimal, sanitize_user_input, slugify

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 needs a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_listing_id(name: str, timestamp_ms: int) -> str:
    """Stable listing id: blink-<slug of name>-<base36 creation time in ms>."""
    return f"blink-{slugify(name)}-{to_base36(timestamp_ms)}"


class ListingService:
    """Merchant-facing listing operations backed by the store and the ledger."""

    def __init__(
        self,
        store: ListingStore,
        ledger: PaymentLedger,
        base_url: Optional[str] = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.store = store
        self.ledger = ledger
        self.base_url = (base_url or settings.blink_base_url).rstrip("/")
        self._clock_ms = clock_ms

    def create_listing(
        self,
        name: str,
        description: str,
        price,
        owner: str,
        image_url: str = "",
    ) -> Listing:
        """
        Create, store and register a new listing.

        Raises:
            ValidationError: If any field fails validation
        """
        clean_name = sanitize_user_input(name, max_length=120)
        clean_description = sanitize_user_input(description)
        value = parse_positive_decimal(price)
        if value is None:
            raise ValidationError(f"Price must be a positive number, got {price!r}")

        listing = Listing(
            id=make_listing_id(clean_name, self._clock_ms()),
            name=clean_name,
            description=clean_description,
            price=value,
            owner=(owner or "").strip(),
            image_url=(image_url or "").strip(),
            created_at=utc_now(),
        )
        self.store.create(listing)
        self.ledger.register_listing(
            listing.id,
            listing.owner,
            listing.name,
            listing.price,
            description=listing.description,
            image_url=listing.image_url,
        )
        return listing

    def delete_listing(self, listing_id: str) -> bool:
        """Delete from the store and drop its aggregate; payment records stay."""
        deleted = self.store.delete(listing_id)
        self.ledger.discard_listing(listing_id)
        return deleted

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        return self.store.get(listing_id)

    def my_listings(self, owner: str) -> List[Listing]:
        return self.store.list(owner=owner)

    def get_merchant_payments(self, address: str) -> List[PaymentRecord]:
        return self.ledger.transactions_for_merchant(address)

    def get_listing_payments(self, listing_id: str) -> List[PaymentRecord]:
        return self.ledger.transactions_for_listing(listing_id)

    def blink_url(self, listing_id: str) -> str:
        return f"{self.base_url}/{quote(listing_id, safe='')}"

    def share_card(self, listing: Listing) -> Dict[str, str]:
        """Title, description, image and URL used for link previews."""
        return {
            "title": f"Buy {listing.name} on BlinkShop - {listing.price} USDC",
            "description": listing.description,
            "image": listing.image_url,
            "url": self.blink_url(listing.id),
        }
