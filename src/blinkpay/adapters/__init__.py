# src/blinkpay/adapters/__init__.py
"""
Adapters Layer - External System Integrations

This package contains adapters for external systems:
- Chain RPC network client
- Local keypair signer
- Settlement network client and basic fallback recorder
- Listing persistence
"""
