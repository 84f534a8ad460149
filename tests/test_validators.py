# tests/test_validators.py
"""
Validator Tests - Addresses, Amounts and Form Input

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.shared.validators (validation helpers)
- pytest (testing framework)
"""
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from conftest import BUYER
from blinkpay.shared.validators import (
    parse_positive_decimal,
    sanitize_user_input,
    slugify,
    validate_http_url,
    validate_wallet_address,
)


class TestWalletAddress:
    def test_base58_address(self):
        assert validate_wallet_address(BUYER) is True
        assert validate_wallet_address("  " + BUYER + "  ") is True

    @pytest.mark.parametrize("address", [None, "", "short", "1" * 31, "not a wallet address at all, no way"])
    def test_rejected(self, address):
        assert validate_wallet_address(address) is False

    def test_alphanumeric_fallback(self):
        # 0 and l fall outside base58 but the fallback still accepts them
        assert validate_wallet_address("0l" * 20) is True
        assert validate_wallet_address("0l" * 20 + "_") is False


class TestParsePositiveDecimal:
    @pytest.mark.parametrize("value,expected", [
        ("12.50", Decimal("12.50")),
        (" 3 ", Decimal("3")),
        (7, Decimal("7")),
        (Decimal("0.000001"), Decimal("0.000001")),
    ])
    def test_valid(self, value, expected):
        assert parse_positive_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "abc", "0", "-1", "NaN", "Infinity"])
    def test_invalid(self, value):
        assert parse_positive_decimal(value) is None


class TestFormHelpers:
    def test_slugify(self):
        assert slugify("Vintage  Leather Bag!") == "vintage-leather-bag"
        assert slugify("") == ""

    def test_validate_http_url(self):
        assert validate_http_url("https://api.devnet.solana.com") is True
        assert validate_http_url("http://localhost:8899") is True
        assert validate_http_url("ftp://example.com") is False
        assert validate_http_url("") is False

    def test_sanitize_user_input(self):
        assert sanitize_user_input("  <script>hi</script>  ") == "scripthi/script"
        assert sanitize_user_input("a" * 20, max_length=5) == "aaaaa"
        assert sanitize_user_input(None) == ""
