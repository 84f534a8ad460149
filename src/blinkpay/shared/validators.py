# src/blinkpay/shared/validators.py
"""
Input Validation Utilities - Address and Form Validation

This module provides validation functions for wallet addresses, listing form
fields and configuration values. The address check here is a format check
only: it never proves that an address exists on-chain or who owns it.

Files that USE this module:
- blinkpay.adapters.persistence.listing_store (listing validation on create)
- blinkpay.application.listings (slug generation and input cleanup)
- blinkpay.config.settings (URL and commitment validators)

Files that this module USES:
- None (pure utility functions)
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

# Base58 excludes 0, O, I and l to avoid visual confusion
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
MIN_ADDRESS_LENGTH = 32

_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")
_ALNUM_RE = re.compile(r"^[a-zA-Z0-9]+$")


def validate_wallet_address(address: Optional[str]) -> bool:
    """
    Check that a string looks like a chain wallet address.

    Accepts strings of at least 32 characters drawn from the base58 alphabet.
    Any alphanumeric string of the same length is also accepted, since some
    wallets report addresses that fail the stricter check. This fallback is
    known to be weak.

    Args:
        address: Address to validate

    Returns:
        True if the address passes the format check, False otherwise
    """
    if not address or not isinstance(address, str):
        return False

    trimmed = address.strip()
    if len(trimmed) < MIN_ADDRESS_LENGTH:
        return False

    if _BASE58_RE.match(trimmed):
        return True

    return bool(_ALNUM_RE.match(trimmed))


def parse_positive_decimal(value) -> Optional[Decimal]:
    """
    Parse a price or amount entered by a user.

    Args:
        value: String, int, float or Decimal

    Returns:
        Decimal greater than zero, or None if the value is not a positive number
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


def slugify(text: str) -> str:
    """Lower-case, hyphenate whitespace and drop anything outside [a-z0-9-]."""
    slug = re.sub(r"\s+", "-", (text or "").lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def validate_http_url(url: str) -> bool:
    if not url:
        return False
    return bool(re.match(r"^https?://[^\s/$.?#].[^\s]*$", url))


def sanitize_user_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitize free-text input (names, descriptions).

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove potentially dangerous characters
    sanitized = re.sub(r'[<>"\']', '', text)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized.strip()
