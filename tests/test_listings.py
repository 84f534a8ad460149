# tests/test_listings.py
"""
Listing Service Tests - Creation, Deletion and Read Surface

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.application.listings (ListingService, make_listing_id)
- pytest (testing framework)
"""
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from conftest import BUYER, MERCHANT
from blinkpay.adapters.persistence.listing_store import ListingStore
from blinkpay.application.ledger import PaymentLedger
from blinkpay.application.listings import ListingService, make_listing_id, to_base36
from blinkpay.domain.errors import ValidationError


@pytest.fixture
def service(listings_file):
    return ListingService(
        ListingStore(listings_file),
        PaymentLedger(),
        base_url="https://blinkshop.app/buy/",
        clock_ms=lambda: 1_700_000_000_000,
    )


class TestListingIds:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_id_from_name_and_time(self):
        assert make_listing_id("Coffee Mug XL!", 36) == "blink-coffee-mug-xl-10"


class TestCreateListing:
    def test_creates_and_registers(self, service):
        listing = service.create_listing("Coffee Mug", "Ceramic, 350ml", "12.5", MERCHANT)

        assert listing.id == make_listing_id("Coffee Mug", 1_700_000_000_000)
        assert listing.price == Decimal("12.5")
        assert service.get_listing(listing.id) == listing
        assert service.ledger.get_listing(listing.id) is not None
        assert service.ledger.aggregate(listing.id).sale_count == 0

    def test_strips_markup_characters(self, service):
        listing = service.create_listing('<b>Mug</b>', 'Say "hi"', "1", MERCHANT)
        assert listing.name == "bMug/b"
        assert listing.description == "Say hi"

    @pytest.mark.parametrize("price", ["0", "-2", "free", None])
    def test_rejects_bad_price(self, service, price):
        with pytest.raises(ValidationError):
            service.create_listing("Mug", "Ceramic", price, MERCHANT)

    def test_rejects_bad_owner(self, service):
        with pytest.raises(ValidationError):
            service.create_listing("Mug", "Ceramic", "1", "not-a-wallet")
        assert service.my_listings("not-a-wallet") == []


class TestReadSurface:
    def test_my_listings(self, service):
        mine = service.create_listing("Mug", "Ceramic", "1", MERCHANT)
        assert service.my_listings(MERCHANT) == [mine]
        assert service.my_listings(BUYER) == []

    def test_payments_projections(self, service):
        listing = service.create_listing("Mug", "Ceramic", "1", MERCHANT)
        record = service.ledger.record_payment(listing.id, BUYER, MERCHANT, 1, "USDC", "sig-1")

        assert service.get_merchant_payments(MERCHANT) == [record]
        assert service.get_listing_payments(listing.id) == [record]

    def test_blink_url_and_share_card(self, service):
        listing = service.create_listing("Mug", "Ceramic", "12.50", MERCHANT, image_url="https://img/mug.png")

        assert service.blink_url(listing.id) == f"https://blinkshop.app/buy/{listing.id}"
        card = service.share_card(listing)
        assert card["title"] == "Buy Mug on BlinkShop - 12.50 USDC"
        assert card["description"] == "Ceramic"
        assert card["image"] == "https://img/mug.png"


class TestDeleteListing:
    def test_delete_discards_aggregate_but_keeps_payments(self, service):
        listing = service.create_listing("Mug", "Ceramic", "1", MERCHANT)
        service.ledger.record_payment(listing.id, BUYER, MERCHANT, 1, "USDC", "sig-1")

        assert service.delete_listing(listing.id) is True

        assert service.get_listing(listing.id) is None
        assert service.ledger.aggregate(listing.id) is None
        assert len(service.get_listing_payments(listing.id)) == 1

    def test_delete_missing(self, service):
        assert service.delete_listing("blink-none") is False
