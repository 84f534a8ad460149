# src/blinkpay/domain/tokens.py
"""
Token Catalog - Supported Payment Tokens

Static registry mapping a token symbol to its transfer mechanics and decimal
scaling. The catalog is built once at process start and never mutated, so it
is shared between coroutines and threads without locking.

Amount scaling uses truncation (ROUND_DOWN): a human-entered decimal amount
is converted to the largest whole number of base units that does not exceed
it, so a buyer never transfers more than the amount shown.

Files that USE this module:
- blinkpay.application.transaction_builder (describe, to_base_units)
- blinkpay.application.checkout (describe for account resolution)
- blinkpay.app (tokens command)
- tests.test_tokens (unit tests)

Files that this module USES:
- blinkpay.domain.models (TokenDescriptor, TransferKind)
- blinkpay.domain.errors (UnknownToken, AmountInvalid)
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Dict, Iterable, List, Optional

from blinkpay.domain.errors import AmountInvalid, UnknownToken
from blinkpay.domain.models import TokenDescriptor, TransferKind

NATIVE_MINT = "native"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

DEFAULT_TOKENS = (
    TokenDescriptor(symbol="SOL", decimals=9, kind=TransferKind.NATIVE, mint=NATIVE_MINT, icon="◎"),
    TokenDescriptor(
        symbol="USDC",
        decimals=6,
        kind=TransferKind.ACCOUNT_BASED,
        mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        icon="💵",
    ),
    TokenDescriptor(
        symbol="USDT",
        decimals=6,
        kind=TransferKind.ACCOUNT_BASED,
        mint="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenEqw",
        icon="₮",
    ),
)


def _as_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1 instead of its binary expansion
        value = Decimal(str(amount))
    else:
        try:
            value = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError) as e:
            raise AmountInvalid(f"Amount is not a number: {amount!r}") from e
    if not value.is_finite():
        raise AmountInvalid(f"Amount is not a finite number: {amount!r}")
    return value


def to_base_units(amount, decimals: int) -> int:
    """
    Convert a decimal amount to integer base units, truncating extra digits.

    Args:
        amount: Decimal, int, float or numeric string
        decimals: Token decimal places

    Returns:
        Integer base units (floor of amount × 10^decimals for positive amounts)

    Raises:
        AmountInvalid: If the amount is not a finite number
    """
    scaled = _as_decimal(amount) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(units: int, decimals: int) -> Decimal:
    """Exact inverse of to_base_units for whole base units."""
    return Decimal(units).scaleb(-decimals)


class TokenCatalog:
    """Read-only lookup of token descriptors by symbol."""

    def __init__(self, tokens: Optional[Iterable[TokenDescriptor]] = None):
        registry: Dict[str, TokenDescriptor] = {}
        for descriptor in tokens if tokens is not None else DEFAULT_TOKENS:
            registry[descriptor.symbol.upper()] = descriptor
        self._tokens = registry

    def describe(self, symbol: str) -> TokenDescriptor:
        """
        Look up a token by symbol (case-insensitive).

        Raises:
            UnknownToken: If the symbol is not registered
        """
        key = (symbol or "").strip().upper()
        try:
            return self._tokens[key]
        except KeyError:
            raise UnknownToken(f"Unsupported token: {symbol!r}") from None

    def supported_symbols(self) -> List[str]:
        return list(self._tokens)

    def to_base_units(self, symbol: str, amount) -> int:
        return to_base_units(amount, self.describe(symbol).decimals)

    def from_base_units(self, symbol: str, units: int) -> Decimal:
        return from_base_units(units, self.describe(symbol).decimals)

    def format_amount(self, amount, symbol: str) -> str:
        """Format an amount for display, e.g. '25.00 USDC'."""
        descriptor = self.describe(symbol)
        value = _as_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
        return f"{value} {descriptor.symbol}"
