# src/blinkpay/adapters/settlement/__init__.py
"""
Settlement Adapters - Settlement Network Clients

This package contains the settlement-network HTTP client and the basic
in-memory recorder used as its fallback.
"""

from blinkpay.adapters.settlement.basic import BasicSettlementRecorder, BasicTransaction, MerchantAccount
from blinkpay.adapters.settlement.circle import CircleSettlementClient, parse_status

__all__ = [
    "BasicSettlementRecorder",
    "BasicTransaction",
    "MerchantAccount",
    "CircleSettlementClient",
    "parse_status",
]
