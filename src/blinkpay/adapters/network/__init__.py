# src/blinkpay/adapters/network/__init__.py
"""
Network Adapters - Chain RPC Clients

This package contains the JSON-RPC client implementing NetworkClient.
"""

from blinkpay.adapters.network.solana_rpc import SolanaRpcClient

__all__ = ["SolanaRpcClient"]
