# tests/test_tokens.py
"""
Token Catalog Tests - Lookup and Decimal Scaling

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.domain.tokens (TokenCatalog, to_base_units, from_base_units)
- pytest (testing framework)
"""
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from blinkpay.domain.errors import AmountInvalid, UnknownToken
from blinkpay.domain.models import TransferKind
from blinkpay.domain.tokens import (
    NATIVE_MINT,
    TokenCatalog,
    from_base_units,
    to_base_units,
)


class TestTokenCatalog:
    def test_default_tokens(self):
        catalog = TokenCatalog()
        assert catalog.supported_symbols() == ["SOL", "USDC", "USDT"]

    def test_describe_native(self):
        sol = TokenCatalog().describe("SOL")
        assert sol.kind is TransferKind.NATIVE
        assert sol.decimals == 9
        assert sol.mint == NATIVE_MINT

    def test_describe_is_case_insensitive(self):
        usdc = TokenCatalog().describe(" usdc ")
        assert usdc.symbol == "USDC"
        assert usdc.kind is TransferKind.ACCOUNT_BASED
        assert usdc.decimals == 6

    def test_unknown_token(self):
        with pytest.raises(UnknownToken):
            TokenCatalog().describe("DOGE")

    def test_format_amount(self):
        assert TokenCatalog().format_amount(Decimal("25"), "usdc") == "25.00 USDC"
        assert TokenCatalog().format_amount("0.129", "SOL") == "0.12 SOL"


class TestScaling:
    def test_whole_amounts(self):
        assert to_base_units(Decimal("25"), 6) == 25_000_000
        assert to_base_units(5, 9) == 5_000_000_000

    def test_truncates_extra_digits(self):
        assert to_base_units(Decimal("1.0000019"), 6) == 1_000_001
        assert to_base_units("0.0000009", 6) == 0

    def test_float_input_uses_shortest_repr(self):
        assert to_base_units(0.1, 6) == 100_000

    def test_non_numeric_rejected(self):
        with pytest.raises(AmountInvalid):
            to_base_units("ten", 6)
        with pytest.raises(AmountInvalid):
            to_base_units("NaN", 6)

    @pytest.mark.parametrize("symbol,amount", [
        ("SOL", Decimal("1.123456789")),
        ("USDC", Decimal("19.99")),
        ("USDT", Decimal("0.000001")),
    ])
    def test_scaling_recovers_amount_at_token_precision(self, symbol, amount):
        catalog = TokenCatalog()
        units = catalog.to_base_units(symbol, amount)
        assert catalog.from_base_units(symbol, units) == amount

    def test_from_base_units(self):
        assert from_base_units(1_500_000, 6) == Decimal("1.5")
