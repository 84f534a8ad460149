# src/blinkpay/adapters/wallet/__init__.py
"""
Wallet Adapters - Signers

This package contains Signer implementations backed by local keys.
"""

from blinkpay.adapters.wallet.keypair_signer import KeypairSigner, load_keypair

__all__ = ["KeypairSigner", "load_keypair"]
