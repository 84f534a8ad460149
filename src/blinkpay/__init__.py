# src/blinkpay/__init__.py
"""
BlinkPay - Shareable Payment Links with On-Chain Checkout

Merchants publish a payable link for a single product; buyers pay with
SOL, USDC or USDT. Each confirmed payment is recorded in a local ledger
and settled through a payments network, with a basic fallback when the
network is unavailable.
"""

__version__ = "0.1.0"
