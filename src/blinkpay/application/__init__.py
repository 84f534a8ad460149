# src/blinkpay/application/__init__.py
"""
Application Layer - Payment Pipeline Services

This package contains the pipeline services that orchestrate the domain:
- TransactionBuilder: builds unsigned transfers
- TransactionSubmitter: signs, sends and confirms
- PaymentLedger: records listings and payments
- SettlementOrchestrator: off-chain settlement with fallback
- CheckoutService: end-to-end purchase
- ListingService: merchant listings and read surface
"""
