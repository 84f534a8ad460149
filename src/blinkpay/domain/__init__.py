# src/blinkpay/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models, the token catalog and the error
taxonomy. No dependencies on infrastructure or external systems.
"""

from blinkpay.domain.models import (
    LedgerAggregate,
    Listing,
    MerchantSummary,
    PaymentRecord,
    SettlementOutcome,
    SettlementStage,
    SettlementStatus,
    SignedTransaction,
    SubmittedTransaction,
    TokenDescriptor,
    TransactionStatus,
    TransferInstruction,
    TransferKind,
    TransferRequest,
    UnsignedTransaction,
)
from blinkpay.domain.errors import (
    AddressInvalid,
    AmountInvalid,
    BlinkPayError,
    ConfirmationTimeout,
    SettlementTrackingFailed,
    SignerRejected,
    SubmissionFailed,
    TokenAccountUnavailable,
    TransactionRejected,
    UnknownListing,
    UnknownToken,
    ValidationError,
)
from blinkpay.domain.tokens import TokenCatalog

__all__ = [
    "LedgerAggregate",
    "Listing",
    "MerchantSummary",
    "PaymentRecord",
    "SettlementOutcome",
    "SettlementStage",
    "SettlementStatus",
    "SignedTransaction",
    "SubmittedTransaction",
    "TokenDescriptor",
    "TransactionStatus",
    "TransferInstruction",
    "TransferKind",
    "TransferRequest",
    "UnsignedTransaction",
    "TokenCatalog",
    "BlinkPayError",
    "AddressInvalid",
    "AmountInvalid",
    "ConfirmationTimeout",
    "SettlementTrackingFailed",
    "SignerRejected",
    "SubmissionFailed",
    "TokenAccountUnavailable",
    "TransactionRejected",
    "UnknownListing",
    "UnknownToken",
    "ValidationError",
]
