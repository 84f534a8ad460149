# src/blinkpay/shared/__init__.py
"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation
- Logging configuration
"""

from blinkpay.shared.validators import (
    parse_positive_decimal,
    sanitize_user_input,
    slugify,
    validate_http_url,
    validate_wallet_address,
)
from blinkpay.shared.logging_conf import setup_logging

__all__ = [
    "parse_positive_decimal",
    "sanitize_user_input",
    "slugify",
    "validate_http_url",
    "validate_wallet_address",
    "setup_logging",
]
